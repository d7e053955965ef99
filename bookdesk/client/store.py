"""
Client-side state for API resources.

Each resource has a slice holding ``data``, ``loading`` and ``error``. A
dispatch marks the slice loading, runs a service call and records the
outcome. Every dispatch gets a sequence number; an outcome that arrives for
an older request than the slice's latest is dropped, so a slow response can
never overwrite newer state.
"""

import itertools
import threading

from .services import ApiRequestError


class ResourceSlice:
    def __init__(self, name):
        self.name = name
        self.data = None
        self.pagination = None
        self.loading = False
        self.error = None
        self.latest_request = 0

    def request(self, seq):
        self.latest_request = seq
        self.loading = True
        self.error = None

    def success(self, seq, payload):
        if seq != self.latest_request:
            return False
        self.loading = False
        self.error = None
        if isinstance(payload, dict) and "data" in payload:
            self.data = payload["data"]
            self.pagination = payload.get("pagination", self.pagination)
        else:
            self.data = payload
        return True

    def failure(self, seq, error):
        if seq != self.latest_request:
            return False
        self.loading = False
        self.error = {
            "status": getattr(error, "status_code", None),
            "message": getattr(error, "message", str(error)),
            "errors": getattr(error, "errors", []),
        }
        return True

    def snapshot(self):
        return {
            "data": self.data,
            "pagination": self.pagination,
            "loading": self.loading,
            "error": self.error,
        }


class Store:
    def __init__(self):
        self._slices = {}
        self._seq = itertools.count(1)
        self._lock = threading.Lock()
        self.notifications = []

    def slice(self, name):
        with self._lock:
            return self._get_slice(name)

    def begin(self, name):
        with self._lock:
            seq = next(self._seq)
            self._get_slice(name).request(seq)
        return seq

    def resolve(self, name, seq, payload, message=None):
        with self._lock:
            applied = self._get_slice(name).success(seq, payload)
            if applied and message:
                self.notifications.append({"type": "success", "resource": name, "message": message})
            return applied

    def reject(self, name, seq, error):
        with self._lock:
            applied = self._get_slice(name).failure(seq, error)
            if applied:
                self.notifications.append(
                    {"type": "error", "resource": name, "message": getattr(error, "message", str(error))}
                )
            return applied

    def _get_slice(self, name):
        if name not in self._slices:
            self._slices[name] = ResourceSlice(name)
        return self._slices[name]

    def dispatch(self, name, call, *args, success_message=None, **kwargs):
        """Run ``call`` for slice ``name``; returns the payload or None on failure."""
        seq = self.begin(name)
        try:
            payload = call(*args, **kwargs)
        except ApiRequestError as e:
            self.reject(name, seq, e)
            return None
        self.resolve(name, seq, payload, success_message)
        return payload
