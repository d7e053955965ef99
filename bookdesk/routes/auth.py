from flask import Blueprint, current_app, g, jsonify
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..constants.user_roles import USER, get_role_name, permissions_for
from ..extensions import db
from ..models import User, UserRole
from ..schemas import LoginSchema, SignupSchema
from ..utils.auth import check_password, create_token, default_role, hash_password, token_required
from ..utils.errors import ConflictError, UnauthorizedError, ValidationError
from ..utils.idempotency import idempotent
from ..utils.serializers import iso
from ..utils.validation import validate_body

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def serialize_user(user):
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "phone": user.phone,
        "avatar": user.avatar,
        "address": user.address,
        "isActive": bool(user.is_active),
        "isVerified": bool(user.is_verified),
        "createdAt": iso(user.created_at),
    }


def serialize_role(role):
    return {
        "id": role.id,
        "role": role.role,
        "roleName": get_role_name(role.role),
        "companyId": role.company_id,
        "companyName": role.company.name if role.company else None,
        "isDefault": bool(role.is_default),
    }


@auth_bp.route("/signup", methods=["POST"])
@idempotent
@validate_body(SignupSchema)
def signup_user(body):
    """
    Register a new user
    ---
    tags:
      - Authentication
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, firstName]
          properties:
            email: {type: string}
            password: {type: string}
            firstName: {type: string}
            lastName: {type: string}
            phone: {type: string}
    responses:
      201:
        description: User registered
      400:
        description: Validation error
      409:
        description: Email already exists
    """
    email = body.email.lower()
    existing = db.session.scalar(select(User).where(User.email == email))
    if existing:
        raise ConflictError("Email already exists")

    try:
        user = User(
            email=email,
            password_hash=hash_password(body.password),
            first_name=body.first_name,
            last_name=body.last_name,
            phone=body.phone,
            address=body.address,
        )
        db.session.add(user)
        db.session.flush()
        db.session.add(UserRole(user_id=user.id, role=USER, is_default=True))
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning(f"Signup integrity error: {e.orig}")
        raise ConflictError("Email already exists") from e

    return jsonify(
        {
            "success": True,
            "message": "User registered successfully",
            "data": serialize_user(user),
        }
    ), 201


@auth_bp.route("/login", methods=["POST"])
@validate_body(LoginSchema)
def login_user(body):
    """
    Log in and receive a bearer token
    ---
    tags:
      - Authentication
    description: >
      Users holding several roles may pass roleId to pick one; otherwise the
      default role is used.
    responses:
      200:
        description: Login successful
      401:
        description: Invalid credentials
    """
    user = db.session.scalar(select(User).where(User.email == body.email.lower()))
    if not user or not check_password(body.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    if not user.is_active:
        raise UnauthorizedError("Account is deactivated")

    if body.role_id is not None:
        role = db.session.scalar(
            select(UserRole).where(UserRole.id == body.role_id, UserRole.user_id == user.id)
        )
        if role is None:
            raise ValidationError(
                "Validation error",
                errors=[{"field": "roleId", "message": "Role does not belong to this user"}],
            )
    else:
        role = default_role(user.id)

    token = create_token(user, role)
    level = role.role if role else USER

    return jsonify(
        {
            "success": True,
            "message": "Login successful",
            "data": {
                "token": token,
                "user": serialize_user(user),
                "role": serialize_role(role) if role else None,
                "roles": [serialize_role(r) for r in user.roles],
                "permissions": sorted(permissions_for(level)),
            },
        }
    ), 200


@auth_bp.route("/me", methods=["GET"])
@token_required
def current_user_profile():
    current = g.current_user
    return jsonify(
        {
            "success": True,
            "data": {
                "user": serialize_user(current.user),
                "roleLevel": current.role_level,
                "roleName": get_role_name(current.role_level),
                "companyId": current.company_id,
                "permissions": sorted(permissions_for(current.role_level)),
            },
        }
    ), 200
