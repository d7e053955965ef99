"""
Appointment lifecycle operations that span more than one table.

Completing an appointment with billing data records a sale and links it to
the appointment. The status change, the sale with its items, stock
deduction, client tracking and the link are committed together or not at
all.
"""

from flask import current_app

from ..constants.appointment_status import AppointmentStatus, require_appointment_status
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.base import transaction
from ..repositories.sale_repository import SaleRepository
from ..repositories.staff_repository import StaffRepository
from ..utils.serializers import to_decimal


def partition_billing_items(billing_items):
    """
    Split billing items into service and product usages.

    Service items need a ``service_id`` and product items a ``variant_id``;
    anything else is dropped. Unit prices are kept exactly as submitted.
    """
    services_used, products_used = [], []
    for item in billing_items or []:
        item_type = item.get("type")
        line = {
            "quantity": item.get("quantity") or 1,
            "unit_price": item.get("unit_price"),
            "discount": item.get("discount") or 0,
        }
        if item_type == "service" and item.get("service_id"):
            services_used.append({"service_id": item["service_id"], **line})
        elif item_type == "product" and item.get("variant_id"):
            products_used.append({"variant_id": item["variant_id"], **line})
    return services_used, products_used


def change_status(appointment, status, acting_user, completion_data=None):
    """
    Set the appointment status and, on completion with billing data, record
    the sale. Returns the sale id linked by this call, or None.
    """
    status = require_appointment_status(status)
    sale_id = None

    with transaction(f"updating status of appointment {appointment.id}"):
        AppointmentRepository.update(appointment, {"status": status})

        if status == AppointmentStatus.COMPLETED and completion_data:
            if appointment.sale_id:
                current_app.logger.info(
                    f"Appointment {appointment.id} already linked to sale "
                    f"{appointment.sale_id}, not recording another"
                )
            else:
                sale_id = _record_sale(appointment, acting_user, completion_data)

    return sale_id


def _record_sale(appointment, acting_user, completion_data):
    services_used, products_used = partition_billing_items(
        completion_data.get("billing_items")
    )
    staff = StaffRepository.find_or_create_for_user(acting_user.id, appointment.company_id)

    total = completion_data.get("total_amount")
    sale_data = {
        "user_id": appointment.client_id,
        "company_id": appointment.company_id,
        "staff_id": staff.id,
        "services_used": services_used,
        "products_used": products_used,
    }
    if total is not None:
        sale_data.update(
            {
                "total_amount": to_decimal(total),
                "subtotal": to_decimal(total),
                "discount_amount": 0,
            }
        )

    sale = SaleRepository.create(sale_data)
    AppointmentRepository.link_sale(appointment, sale.id)
    current_app.logger.info(f"Appointment {appointment.id} completed with sale {sale.id}")
    return sale.id
