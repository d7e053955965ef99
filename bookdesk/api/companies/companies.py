from flask import Blueprint, g, jsonify
from sqlalchemy import select

from ...constants.user_roles import COMPANY_OWNER, SYSTEM_ADMIN
from ...extensions import db
from ...models import Company, UserRole
from ...repositories.base import transaction
from ...repositories.company_user_repository import CompanyUserRepository
from ...schemas import CompanyCreateSchema
from ...utils.auth import ensure_company_access, require_permission, token_required
from ...utils.errors import NotFoundError
from ...utils.serializers import iso
from ...utils.validation import validate_body

companies_bp = Blueprint("companies", __name__, url_prefix="/api/companies")


def serialize_company(company):
    return {
        "id": company.id,
        "name": company.name,
        "email": company.email,
        "phone": company.phone,
        "address": company.address,
        "isActive": bool(company.is_active),
        "createdAt": iso(company.created_at),
    }


@companies_bp.route("/", methods=["GET"])
@token_required
def list_companies():
    """
    GET /api/companies/
    System admins see every company; other users see the companies they
    hold a role in.
    """
    current = g.current_user
    stmt = select(Company).order_by(Company.name)
    if current.role_level != SYSTEM_ADMIN:
        member_of = select(UserRole.company_id).where(UserRole.user_id == current.id)
        stmt = stmt.where(Company.id.in_(member_of))
    companies = db.session.scalars(stmt).all()
    return jsonify({"success": True, "data": [serialize_company(c) for c in companies]}), 200


@companies_bp.route("/<company_id>", methods=["GET"])
@token_required
def get_company(company_id):
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFoundError("Company")
    ensure_company_access(company.id)
    return jsonify({"success": True, "data": serialize_company(company)}), 200


@companies_bp.route("/", methods=["POST"])
@token_required
@validate_body(CompanyCreateSchema)
def create_company(body):
    """
    Create a company
    ---
    tags:
      - Companies
    description: The creator becomes the company owner.
    responses:
      201:
        description: Company created
    """
    current = g.current_user
    with transaction("creating company"):
        company = Company(**body.model_dump(exclude_none=True))
        db.session.add(company)
        db.session.flush()
        db.session.add(
            UserRole(
                user_id=current.id,
                company_id=company.id,
                role=COMPANY_OWNER,
                is_default=False,
            )
        )

    return jsonify(
        {
            "success": True,
            "message": "Company created successfully",
            "data": serialize_company(company),
        }
    ), 201


@companies_bp.route("/<company_id>/clients/<user_id>", methods=["GET"])
@token_required
@require_permission("view_client_info")
def company_client(company_id, user_id):
    """Interaction totals for one client of the company."""
    ensure_company_access(company_id)
    row = CompanyUserRepository.find(company_id, user_id)
    if row is None:
        raise NotFoundError("Client")
    return jsonify({"success": True, "data": CompanyUserRepository.serialize(row)}), 200
