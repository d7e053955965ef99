from flask import Blueprint, current_app, jsonify
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ...constants.user_roles import STAFF_MEMBER
from ...extensions import db
from ...models import User, UserRole
from ...repositories.base import transaction
from ...repositories.staff_repository import StaffRepository
from ...schemas import StaffCreateSchema, StaffFilterQuery, StaffUpdateSchema
from ...utils.auth import (
    ensure_company_access,
    require_permission,
    scoped_company_id,
    token_required,
)
from ...utils.errors import ConflictError, NotFoundError, ValidationError
from ...utils.validation import validate_body, validate_query

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


def _load_staff(staff_id):
    staff = StaffRepository.get(staff_id)
    if staff is None:
        raise NotFoundError("Staff member")
    ensure_company_access(staff.company_id)
    return staff


@staff_bp.route("/", methods=["GET"])
@token_required
@require_permission("view_schedule")
@validate_query(StaffFilterQuery)
def list_staff(query):
    """
    GET /api/staff/
    Staff of the caller's company, searchable by name, e-mail, phone or bio.
    """
    items, page_info = StaffRepository.find_all_paginated(
        company_id=scoped_company_id(),
        status=query.status,
        search=query.search,
        page=query.page,
        limit=query.limit,
    )
    return jsonify({"success": True, "data": items, "pagination": page_info}), 200


@staff_bp.route("/<staff_id>", methods=["GET"])
@token_required
@require_permission("view_schedule")
def get_staff(staff_id):
    _load_staff(staff_id)
    return jsonify({"success": True, "data": StaffRepository.find_by_id(staff_id)}), 200


@staff_bp.route("/", methods=["POST"])
@token_required
@require_permission("manage_staff")
@validate_body(StaffCreateSchema)
def create_staff(body):
    data = body.model_dump(exclude_none=True)
    company_id = scoped_company_id(data.get("company_id"))
    if not company_id:
        raise ValidationError("Company ID is required")
    data["company_id"] = company_id

    if db.session.get(User, data["user_id"]) is None:
        raise ValidationError(
            "Validation error", errors=[{"field": "userId", "message": "User does not exist"}]
        )
    if StaffRepository.find_by_user(data["user_id"], company_id):
        raise ConflictError("User is already a staff member of this company")

    try:
        with transaction("creating staff member"):
            staff = StaffRepository.create(data)
            has_role = db.session.scalar(
                select(UserRole).where(
                    UserRole.user_id == data["user_id"], UserRole.company_id == company_id
                )
            )
            if not has_role:
                db.session.add(
                    UserRole(user_id=data["user_id"], company_id=company_id, role=STAFF_MEMBER)
                )
    except IntegrityError as e:
        current_app.logger.error(f"Error creating staff member: {e.orig}")
        raise ConflictError("User is already a staff member of this company") from e

    return jsonify(
        {
            "success": True,
            "message": "Staff member created successfully",
            "data": StaffRepository.find_by_id(staff.id),
        }
    ), 201


@staff_bp.route("/<staff_id>", methods=["PUT"])
@token_required
@require_permission("manage_staff")
@validate_body(StaffUpdateSchema)
def update_staff(staff_id, body):
    staff = _load_staff(staff_id)
    data = body.model_dump(exclude_unset=True)
    if "user_id" in data and db.session.get(User, data["user_id"]) is None:
        raise ValidationError(
            "Validation error", errors=[{"field": "userId", "message": "User does not exist"}]
        )

    with transaction(f"updating staff member {staff_id}"):
        StaffRepository.update(staff, data)

    return jsonify(
        {
            "success": True,
            "message": "Staff member updated successfully",
            "data": StaffRepository.find_by_id(staff_id),
        }
    ), 200


@staff_bp.route("/<staff_id>", methods=["DELETE"])
@token_required
@require_permission("manage_staff")
def delete_staff(staff_id):
    _load_staff(staff_id)
    with transaction(f"deleting staff member {staff_id}"):
        StaffRepository.delete(staff_id)
    return jsonify({"success": True, "message": "Staff member deleted successfully"}), 200
