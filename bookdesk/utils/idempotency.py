"""Replay protection for create endpoints.

A request carrying an ``Idempotency-Key`` header is executed once per
(key, caller, endpoint). Later requests with the same key get the stored
response back instead of creating a second record. Anonymous callers are
told apart by a digest of the e-mail they submit.
"""

import hashlib
from functools import wraps

from flask import current_app, g, jsonify, make_response, request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import IdempotencyKey
from .errors import ValidationError

HEADER = "Idempotency-Key"
MAX_KEY_LENGTH = 128


def request_key():
    key = request.headers.get(HEADER, "").strip()
    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError(
            "Validation error",
            errors=[
                {
                    "field": HEADER,
                    "message": f"Must be at most {MAX_KEY_LENGTH} characters",
                }
            ],
        )
    return key


def caller_scope():
    current = g.get("current_user")
    if current:
        return current.id
    body = request.get_json(silent=True)
    email = body.get("email") if isinstance(body, dict) else None
    if not isinstance(email, str):
        email = ""
    digest = hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()
    return f"anon:{digest[:40]}"


def idempotent(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        key = request_key()
        if not key:
            return view(*args, **kwargs)

        scope = caller_scope()
        endpoint = request.endpoint or request.path

        stored = db.session.scalar(
            select(IdempotencyKey).where(
                IdempotencyKey.key == key,
                IdempotencyKey.scope == scope,
                IdempotencyKey.endpoint == endpoint,
            )
        )
        if stored:
            current_app.logger.info(f"Replaying stored response for key {key} on {endpoint}")
            response = jsonify(stored.response_body)
            response.status_code = stored.status_code
            response.headers["Idempotent-Replay"] = "true"
            return response

        response = make_response(view(*args, **kwargs))
        if response.status_code < 500 and response.is_json:
            db.session.add(
                IdempotencyKey(
                    key=key,
                    scope=scope,
                    endpoint=endpoint,
                    status_code=response.status_code,
                    response_body=response.get_json(),
                )
            )
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                current_app.logger.warning(
                    f"Idempotency key {key} on {endpoint} was stored by a concurrent request"
                )
        return response

    return wrapper
