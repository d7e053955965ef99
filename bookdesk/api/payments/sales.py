# Point-of-sale records. Sales are immutable once written.
from flask import Blueprint, g, jsonify

from ...constants.user_roles import USER
from ...extensions import db
from ...models import User
from ...repositories.base import transaction
from ...repositories.sale_repository import SaleRepository
from ...repositories.staff_repository import StaffRepository
from ...schemas import SaleCreateSchema, SaleFilterQuery
from ...utils.auth import (
    ensure_company_access,
    require_permission,
    scoped_company_id,
    token_required,
)
from ...utils.errors import AccessDeniedError, NotFoundError, ValidationError
from ...utils.idempotency import idempotent
from ...utils.validation import validate_body, validate_query

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.route("/", methods=["GET"])
@token_required
@validate_query(SaleFilterQuery)
def list_sales(query):
    """
    List sales for a company
    ---
    tags:
      - Sales
    parameters:
      - {name: companyId, in: query, type: string}
      - {name: page, in: query, type: integer}
      - {name: limit, in: query, type: integer}
      - {name: search, in: query, type: string}
      - {name: dateFrom, in: query, type: string, format: date}
      - {name: dateTo, in: query, type: string, format: date}
      - {name: enrich, in: query, type: boolean}
    responses:
      200:
        description: Sales, newest first
      400:
        description: Company ID missing
    """
    current = g.current_user
    options = query.model_dump(exclude_none=True)
    enrich = options.pop("enrich", False)

    if current.role_level == USER:
        options["user_id"] = current.id
    else:
        company_id = scoped_company_id(options.get("company_id"))
        if not company_id:
            raise ValidationError("Company ID is required")
        options["company_id"] = company_id

    sales, page_info = SaleRepository.find_all(options)
    if enrich:
        sales = [SaleRepository.enrich_with_details(s) for s in sales]

    payload = {"success": True, "data": sales, "count": len(sales)}
    if page_info:
        payload["pagination"] = page_info
    return jsonify(payload), 200


@sales_bp.route("/customers", methods=["GET"])
@token_required
@require_permission("view_client_info")
def list_customers():
    company_id = scoped_company_id()
    if not company_id:
        raise ValidationError("Company ID is required")
    return jsonify({"success": True, "data": SaleRepository.get_customers(company_id)}), 200


@sales_bp.route("/<sale_id>", methods=["GET"])
@token_required
def get_sale(sale_id):
    sale = SaleRepository.find_by_id(sale_id)
    if sale is None:
        raise NotFoundError("Sale")

    current = g.current_user
    if current.role_level == USER:
        if sale["userId"] != current.id:
            raise AccessDeniedError("Access denied")
    else:
        ensure_company_access(sale["companyId"])

    return jsonify({"success": True, "data": SaleRepository.enrich_with_details(sale)}), 200


@sales_bp.route("/", methods=["POST"])
@token_required
@require_permission("process_payments")
@idempotent
@validate_body(SaleCreateSchema)
def create_sale(body):
    """
    Record a sale
    ---
    tags:
      - Sales
    description: >
      The acting user is recorded as the selling staff member; a staff record
      is created for them in the company if they do not have one yet.
    parameters:
      - in: header
        name: Idempotency-Key
        type: string
      - in: body
        name: body
        schema:
          type: object
          required: [clientId, amount]
          properties:
            companyId: {type: string}
            clientId: {type: string}
            amount: {type: number}
            notes: {type: string}
            items:
              type: array
              items:
                type: object
                properties:
                  type: {type: string, enum: [product, service]}
                  serviceId: {type: string}
                  variantId: {type: string}
                  name: {type: string}
                  quantity: {type: integer}
                  unitPrice: {type: number}
                  discount: {type: number}
    responses:
      201:
        description: Sale created
      400:
        description: Validation error
    """
    current = g.current_user
    company_id = scoped_company_id(body.company_id)
    if not company_id:
        raise ValidationError(
            "Validation error",
            errors=[{"field": "companyId", "message": "companyId is required"}],
        )
    if db.session.get(User, body.client_id) is None:
        raise ValidationError(
            "Validation error",
            errors=[{"field": "clientId", "message": "Client does not exist"}],
        )

    services_used = [
        {
            "service_id": i.service_id,
            "quantity": i.quantity,
            "unit_price": i.unit_price,
            "discount": i.discount,
        }
        for i in body.items
        if i.type == "service" and i.service_id
    ]
    products_used = [
        {
            "variant_id": i.variant_id,
            "quantity": i.quantity,
            "unit_price": i.unit_price,
            "discount": i.discount,
        }
        for i in body.items
        if i.type == "product" and i.variant_id
    ]

    with transaction("creating sale"):
        staff = StaffRepository.find_or_create_for_user(current.id, company_id)
        sale = SaleRepository.create(
            {
                "user_id": body.client_id,
                "company_id": company_id,
                "staff_id": staff.id,
                "services_used": services_used,
                "products_used": products_used,
                "total_amount": body.amount,
                "notes": body.notes,
            }
        )

    return jsonify(
        {
            "success": True,
            "message": "Sale created successfully",
            "data": SaleRepository.find_by_id(sale.id),
        }
    ), 201
