# Book, update, complete and cancel appointments
import datetime

from flask import Blueprint, current_app, g, jsonify

from ...constants.user_roles import COMPANY_OWNER, SYSTEM_ADMIN, USER
from ...extensions import db
from ...models import CompanyService, CompanySpace, CompanyStaff, User
from ...repositories.appointment_repository import AppointmentRepository
from ...repositories.base import transaction
from ...repositories.sale_repository import SaleRepository
from ...schemas import (
    AppointmentCreateSchema,
    AppointmentFilterQuery,
    AppointmentPaymentSchema,
    AppointmentStatusSchema,
    AppointmentUpdateSchema,
    DateRangeQuery,
    UserAppointmentsQuery,
)
from ...services import appointment_service
from ...utils.auth import (
    ensure_company_access,
    require_permission,
    require_role,
    scoped_company_id,
    token_required,
)
from ...utils.errors import AccessDeniedError, NotFoundError, ValidationError
from ...utils.idempotency import idempotent
from ...utils.validation import validate_body, validate_query

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


def _load_for_write(appointment_id):
    appointment = AppointmentRepository.get(appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment")
    ensure_company_access(appointment.company_id)
    return appointment


def _check_references(data, company_id):
    """Referenced client must exist; service, staff and space must belong to the company."""
    if "client_id" in data and db.session.get(User, data["client_id"]) is None:
        raise ValidationError(
            "Validation error",
            errors=[{"field": "clientId", "message": "Client does not exist"}],
        )
    for field, model, label in (
        ("service_id", CompanyService, "serviceId"),
        ("staff_id", CompanyStaff, "staffId"),
        ("space_id", CompanySpace, "spaceId"),
    ):
        ref_id = data.get(field)
        if not ref_id:
            continue
        row = db.session.get(model, ref_id)
        if row is None or row.company_id != company_id:
            raise ValidationError(
                "Validation error",
                errors=[{"field": label, "message": "Not found in this company"}],
            )


@appointments_bp.route("/", methods=["GET"])
@token_required
@validate_query(AppointmentFilterQuery)
def list_appointments(query):
    """
    List appointments
    ---
    tags:
      - Appointments
    parameters:
      - {name: page, in: query, type: integer, minimum: 1}
      - {name: limit, in: query, type: integer, minimum: 1, maximum: 1000}
      - {name: status, in: query, type: string}
      - {name: date, in: query, type: string, format: date}
      - {name: dateFrom, in: query, type: string, format: date}
      - {name: dateTo, in: query, type: string, format: date}
      - {name: search, in: query, type: string}
    responses:
      200:
        description: Appointments with pagination and per-status counts
      400:
        description: Invalid query parameters
    """
    current = g.current_user
    options = query.model_dump(exclude_none=True)

    client_id = None
    if current.role_level == USER:
        client_id = options["client_id"] = current.id
        company_id = options.get("company_id")
    else:
        company_id = scoped_company_id(options.get("company_id"))
    if company_id:
        options["company_id"] = company_id

    items, page_info = AppointmentRepository.find_all(options)
    stats = AppointmentRepository.get_stats(company_id, client_id)

    return jsonify(
        {"success": True, "data": items, "pagination": page_info, "stats": stats}
    ), 200


@appointments_bp.route("/<appointment_id>", methods=["GET"])
@token_required
def get_appointment(appointment_id):
    """
    GET /api/appointments/<appointment_id>
    Clients may only read their own appointments; everyone else is limited
    to their company.
    """
    appointment = AppointmentRepository.find_by_id(appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment")

    current = g.current_user
    if current.role_level == USER:
        if appointment["clientId"] != current.id:
            raise AccessDeniedError("Access denied - not your appointment")
    else:
        ensure_company_access(appointment["companyId"])

    return jsonify({"success": True, "data": appointment}), 200


@appointments_bp.route("/", methods=["POST"])
@token_required
@require_permission("manage_appointments")
@idempotent
@validate_body(AppointmentCreateSchema)
def create_appointment(body):
    """
    Create an appointment
    ---
    tags:
      - Appointments
    parameters:
      - in: header
        name: Idempotency-Key
        type: string
        required: false
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [clientId, companyId, date, time, duration]
          properties:
            clientId: {type: string}
            companyId: {type: string}
            serviceId: {type: string}
            staffId: {type: string}
            spaceId: {type: string}
            date: {type: string, format: date}
            time: {type: string, example: "14:30"}
            duration: {type: integer, minimum: 15, maximum: 480}
            status: {type: string, example: "Confirmed"}
    responses:
      201:
        description: Appointment created
      400:
        description: Validation error
      403:
        description: Insufficient permissions
    """
    data = body.model_dump(exclude_none=True)
    current = g.current_user
    if not current.is_system_admin:
        if not current.company_id:
            raise AccessDeniedError("No company associated with this account")
        data["company_id"] = current.company_id

    _check_references(data, data["company_id"])

    with transaction("creating appointment"):
        appointment = AppointmentRepository.create(data)

    return jsonify(
        {
            "success": True,
            "message": "Appointment created successfully",
            "data": AppointmentRepository.find_by_id(appointment.id),
        }
    ), 201


@appointments_bp.route("/<appointment_id>", methods=["PUT"])
@token_required
@require_permission("manage_appointments")
@validate_body(AppointmentUpdateSchema)
def update_appointment(appointment_id, body):
    appointment = _load_for_write(appointment_id)
    data = body.model_dump(exclude_unset=True)
    _check_references(data, appointment.company_id)

    with transaction(f"updating appointment {appointment_id}"):
        AppointmentRepository.update(appointment, data)

    return jsonify(
        {
            "success": True,
            "message": "Appointment updated successfully",
            "data": AppointmentRepository.find_by_id(appointment_id),
        }
    ), 200


@appointments_bp.route("/<appointment_id>", methods=["DELETE"])
@token_required
@require_permission("manage_appointments")
def delete_appointment(appointment_id):
    _load_for_write(appointment_id)

    with transaction(f"deleting appointment {appointment_id}"):
        deleted = AppointmentRepository.delete(appointment_id)
    if not deleted:
        raise NotFoundError("Appointment")

    return jsonify({"success": True, "message": "Appointment deleted successfully"}), 200


@appointments_bp.route("/stats/overview", methods=["GET"])
@token_required
@require_role(COMPANY_OWNER)
def appointment_stats():
    stats = AppointmentRepository.get_stats(scoped_company_id())
    return jsonify({"success": True, "data": stats}), 200


@appointments_bp.route("/range/<start_date>/<end_date>", methods=["GET"])
@token_required
@validate_query(DateRangeQuery)
def appointments_in_range(start_date, end_date, query):
    """Clients only see their own appointments; staff and owners their company's."""
    try:
        start = datetime.date.fromisoformat(start_date)
        end = datetime.date.fromisoformat(end_date)
    except ValueError as e:
        raise ValidationError(
            "Validation error",
            errors=[{"field": "date", "message": "Dates must be YYYY-MM-DD"}],
        ) from e
    if end < start:
        raise ValidationError("End date must not be before start date")

    current = g.current_user
    client_id = company_id = None
    if current.is_system_admin:
        company_id = query.company_id
    elif current.role_level == USER or not current.company_id:
        client_id = current.id
    else:
        company_id = current.company_id

    items = AppointmentRepository.get_by_date_range(start, end, company_id, client_id)
    return jsonify({"success": True, "data": items}), 200


@appointments_bp.route("/user/<user_id>", methods=["GET"])
@token_required
@validate_query(UserAppointmentsQuery)
def appointments_for_user(user_id, query):
    current = g.current_user
    if current.role_level == USER and current.id != user_id:
        raise AccessDeniedError("Access denied - can only view your own appointments")

    items = AppointmentRepository.get_by_user_id(user_id, query.status, query.limit)
    if current.role_level not in (USER, SYSTEM_ADMIN):
        items = [a for a in items if a["companyId"] == current.company_id]
    return jsonify({"success": True, "data": items}), 200


@appointments_bp.route("/<appointment_id>/status", methods=["PATCH"])
@token_required
@require_permission("manage_appointments")
@validate_body(AppointmentStatusSchema)
def update_appointment_status(appointment_id, body):
    """
    Change appointment status
    ---
    tags:
      - Appointments
    description: >
      Setting status to Completed with completionData records one sale from
      the billing items and links it to the appointment. The status change
      and the sale are saved together; if the sale fails nothing is saved.
    parameters:
      - in: path
        name: appointment_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          required: [status]
          properties:
            status: {type: string, example: "completed"}
            completionData:
              type: object
              properties:
                totalAmount: {type: number}
                billingItems:
                  type: array
                  items:
                    type: object
                    properties:
                      type: {type: string, enum: [service, product]}
                      serviceId: {type: string}
                      variantId: {type: string}
                      quantity: {type: integer}
                      unitPrice: {type: number}
                      discount: {type: number}
    responses:
      200:
        description: Status updated
      400:
        description: Invalid status
      404:
        description: Appointment not found
    """
    appointment = _load_for_write(appointment_id)
    completion = body.completion_data.model_dump() if body.completion_data else None

    sale_id = appointment_service.change_status(
        appointment, body.status, g.current_user, completion
    )

    payload = {
        "success": True,
        "message": "Appointment status updated successfully",
        "data": AppointmentRepository.find_by_id(appointment_id),
    }
    if sale_id:
        payload["saleId"] = sale_id
    return jsonify(payload), 200


@appointments_bp.route("/<appointment_id>/payment", methods=["PATCH"])
@token_required
@require_permission("process_payments")
@validate_body(AppointmentPaymentSchema)
def update_payment_status(appointment_id, body):
    appointment = _load_for_write(appointment_id)

    with transaction(f"updating payment of appointment {appointment_id}"):
        AppointmentRepository.update(appointment, body.model_dump(exclude_none=True))

    return jsonify(
        {
            "success": True,
            "message": "Payment status updated successfully",
            "data": AppointmentRepository.find_by_id(appointment_id),
        }
    ), 200


@appointments_bp.route("/<appointment_id>/sale", methods=["GET"])
@token_required
def appointment_sale(appointment_id):
    appointment = AppointmentRepository.get(appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment")
    current = g.current_user
    if current.role_level == USER:
        if appointment.client_id != current.id:
            raise AccessDeniedError("Access denied - not your appointment")
    else:
        ensure_company_access(appointment.company_id)

    sale = SaleRepository.find_by_appointment_id(appointment_id)
    if sale is None:
        raise NotFoundError("Sale")
    return jsonify({"success": True, "data": SaleRepository.enrich_with_details(sale)}), 200


@appointments_bp.route("/today/list", methods=["GET"])
@token_required
def todays_appointments():
    options = {"date": datetime.date.today(), "limit": 50}
    company_id = scoped_company_id()
    if company_id:
        options["company_id"] = company_id
    if g.current_user.role_level == USER:
        options["client_id"] = g.current_user.id

    items, _ = AppointmentRepository.find_all(options)
    return jsonify({"success": True, "data": items}), 200


@appointments_bp.route("/upcoming/list", methods=["GET"])
@token_required
@validate_query(UserAppointmentsQuery)
def upcoming_appointments(query):
    options = {"date_from": datetime.date.today(), "limit": query.limit, "order": "asc"}
    company_id = scoped_company_id()
    if company_id:
        options["company_id"] = company_id
    if g.current_user.role_level == USER:
        options["client_id"] = g.current_user.id

    items, _ = AppointmentRepository.find_all(options)
    current_app.logger.debug(f"Upcoming appointments: {len(items)} returned")
    return jsonify({"success": True, "data": items}), 200
