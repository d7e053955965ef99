from flask import Blueprint, jsonify
from sqlalchemy import func, or_, select

from ...extensions import db
from ...models import CompanyService
from ...repositories.base import clamp_page, like, pagination, transaction
from ...schemas import PageQuery, ServiceSchema, ServiceUpdateSchema
from ...utils.auth import (
    ensure_company_access,
    require_permission,
    scoped_company_id,
    token_required,
)
from ...utils.errors import NotFoundError, ValidationError
from ...utils.serializers import iso, money
from ...utils.validation import validate_body, validate_query

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


def serialize_service(service):
    return {
        "id": service.id,
        "companyId": service.company_id,
        "name": service.name,
        "description": service.description,
        "category": service.category,
        "subcategory": service.subcategory,
        "duration": service.duration,
        "price": money(service.price),
        "status": service.status,
        "imageUrl": service.image_url,
        "createdAt": iso(service.created_at),
    }


@services_bp.route("/", methods=["GET"])
@token_required
@validate_query(PageQuery)
def list_services(query):
    conditions = []
    company_id = scoped_company_id()
    if company_id:
        conditions.append(CompanyService.company_id == company_id)
    if query.search:
        term = like(query.search)
        conditions.append(
            or_(CompanyService.name.like(term), CompanyService.category.like(term))
        )

    page, limit, offset = clamp_page(query.page, query.limit)
    total = db.session.scalar(
        select(func.count(CompanyService.id)).where(*conditions)
    ) or 0
    services = db.session.scalars(
        select(CompanyService)
        .where(*conditions)
        .order_by(CompanyService.name)
        .limit(limit)
        .offset(offset)
    ).all()

    return jsonify(
        {
            "success": True,
            "data": [serialize_service(s) for s in services],
            "pagination": pagination(total, page, limit, offset),
        }
    ), 200


@services_bp.route("/<service_id>", methods=["GET"])
@token_required
def get_service(service_id):
    service = db.session.get(CompanyService, service_id)
    if service is None:
        raise NotFoundError("Service")
    return jsonify({"success": True, "data": serialize_service(service)}), 200


@services_bp.route("/", methods=["POST"])
@token_required
@require_permission("manage_services")
@validate_body(ServiceSchema)
def create_service(body):
    data = body.model_dump(exclude_none=True)
    company_id = scoped_company_id(data.pop("company_id", None))
    if not company_id:
        raise ValidationError("Company ID is required")

    with transaction("creating service"):
        service = CompanyService(company_id=company_id, **data)
        db.session.add(service)
        db.session.flush()

    return jsonify(
        {
            "success": True,
            "message": "Service created successfully",
            "data": serialize_service(service),
        }
    ), 201


@services_bp.route("/<service_id>", methods=["PUT"])
@token_required
@require_permission("manage_services")
@validate_body(ServiceUpdateSchema)
def update_service(service_id, body):
    service = db.session.get(CompanyService, service_id)
    if service is None:
        raise NotFoundError("Service")
    ensure_company_access(service.company_id)

    with transaction(f"updating service {service_id}"):
        for key, value in body.model_dump(exclude_unset=True).items():
            setattr(service, key, value)

    return jsonify(
        {
            "success": True,
            "message": "Service updated successfully",
            "data": serialize_service(service),
        }
    ), 200
