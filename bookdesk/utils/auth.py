import datetime
from functools import wraps

import bcrypt
import jwt
from flask import current_app, g, request
from sqlalchemy import select

from ..constants.user_roles import SYSTEM_ADMIN, USER, has_permission
from ..extensions import db
from ..models import User, UserRole
from .errors import AccessDeniedError, UnauthorizedError


class CurrentUser:
    """Identity attached to ``g.current_user`` for an authenticated request."""

    def __init__(self, user, role_level, company_id, role_id=None):
        self.id = user.id
        self.email = user.email
        self.user = user
        self.role_level = role_level
        self.company_id = company_id
        self.role_id = role_id

    @property
    def is_system_admin(self):
        return self.role_level == SYSTEM_ADMIN


def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def check_password(password: str, stored_hash) -> bool:
    if not stored_hash:
        return False
    if isinstance(stored_hash, str):
        stored_hash = stored_hash.encode("utf-8")
    return bcrypt.checkpw(password.encode("utf-8"), stored_hash)


def create_token(user, role=None):
    hours = current_app.config.get("JWT_EXPIRATION_HOURS", 24)
    payload = {
        "userId": user.id,
        "email": user.email,
        "role": role.role if role else USER,
        "roleId": role.id if role else None,
        "companyId": role.company_id if role else None,
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + datetime.timedelta(hours=hours),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def default_role(user_id):
    roles = db.session.scalars(
        select(UserRole).where(UserRole.user_id == user_id).order_by(UserRole.role)
    ).all()
    for role in roles:
        if role.is_default:
            return role
    return roles[0] if roles else None


def _resolve_role(user, payload):
    role_id = payload.get("roleId")
    if role_id is not None:
        role = db.session.scalar(
            select(UserRole).where(UserRole.id == role_id, UserRole.user_id == user.id)
        )
        if role:
            return role.role, role.company_id, role.id
    if payload.get("role") is not None:
        return payload["role"], payload.get("companyId"), None
    role = default_role(user.id)
    if role:
        return role.role, role.company_id, role.id
    return USER, None, None


def _decode_request_token():
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise UnauthorizedError("Access token required")
    token = header.split(" ", 1)[1].strip()
    try:
        return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError as e:
        raise UnauthorizedError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError("Invalid token") from e


def token_required(view):
    """Verify the bearer token and load ``g.current_user``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        payload = _decode_request_token()
        user = db.session.get(User, payload.get("userId"))
        if not user or not user.is_active:
            raise UnauthorizedError("User not found or inactive")
        role_level, company_id, role_id = _resolve_role(user, payload)
        g.current_user = CurrentUser(user, role_level, company_id, role_id)
        return view(*args, **kwargs)

    return wrapper


def require_role(min_level):
    """Allow users whose role level is ``min_level`` or more privileged."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            current = g.get("current_user")
            if current is None:
                raise UnauthorizedError()
            if current.role_level > min_level:
                raise AccessDeniedError("Insufficient permissions")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def require_permission(permission):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            current = g.get("current_user")
            if current is None:
                raise UnauthorizedError()
            if not has_permission(current.role_level, permission):
                current_app.logger.info(
                    f"User {current.id} denied '{permission}' at level {current.role_level}"
                )
                raise AccessDeniedError("Insufficient permissions")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def scoped_company_id(requested=None):
    """Company a query should be limited to for the current user."""
    current = g.current_user
    if current.role_level > SYSTEM_ADMIN and current.company_id:
        return current.company_id
    return requested


def ensure_company_access(resource_company_id):
    current = g.current_user
    if current.is_system_admin:
        return
    if current.company_id != resource_company_id:
        raise AccessDeniedError("Access denied - different company")
