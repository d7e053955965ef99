from functools import wraps

import pydantic
from flask import request

from .errors import ValidationError


def format_errors(exc: pydantic.ValidationError):
    """Flatten pydantic errors into ``[{field, message}]``."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field, "message": message})
    return errors


def parse(schema, data):
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError("Validation error", errors=format_errors(exc)) from exc


def validate_body(schema):
    """Validate the JSON body and pass it to the view as ``body``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            data = request.get_json(silent=True)
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ValidationError(
                    "Validation error",
                    errors=[{"field": "body", "message": "Expected a JSON object"}],
                )
            kwargs["body"] = parse(schema, data)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def validate_query(schema):
    """Validate the query string and pass it to the view as ``query``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            data = {k: v for k, v in request.args.items() if v != ""}
            kwargs["query"] = parse(schema, data)
            return view(*args, **kwargs)

        return wrapper

    return decorator
