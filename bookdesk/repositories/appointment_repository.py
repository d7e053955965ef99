"""Appointment data access: writes, enriched reads, filtering and stats."""

from flask import current_app
from sqlalchemy import func, or_, select
from sqlalchemy.orm import aliased

from ..constants.appointment_status import (
    AppointmentStatus,
    get_appointment_status_label,
    normalize_appointment_status,
    require_appointment_status,
)
from ..extensions import db
from ..models import (
    Appointment,
    Company,
    CompanyService,
    CompanySpace,
    CompanyStaff,
    User,
)
from ..utils.serializers import as_date, dump_json_list, iso, load_json_list, money
from .base import clamp_page, like, pagination
from .company_user_repository import CompanyUserRepository

ClientUser = aliased(User, name="client_user")
ProviderUser = aliased(User, name="provider_user")

# Columns a caller may change after creation. company_id and sale_id are
# excluded; the sale link goes through link_sale().
MUTABLE_FIELDS = frozenset(
    {
        "client_id",
        "service_id",
        "staff_id",
        "space_id",
        "date",
        "time",
        "duration",
        "status",
        "type",
        "priority",
        "price",
        "payment_status",
        "payment_method",
        "notes",
        "reminder_sent",
        "preferred_staff_ids",
    }
)

CREATE_FIELDS = MUTABLE_FIELDS | {"company_id"}

STATS_KEYS = {
    AppointmentStatus.PENDING: "pendingAppointments",
    AppointmentStatus.CONFIRMED: "confirmedAppointments",
    AppointmentStatus.IN_PROGRESS: "inProgressAppointments",
    AppointmentStatus.COMPLETED: "completedAppointments",
    AppointmentStatus.CANCELLED: "cancelledAppointments",
    AppointmentStatus.NO_SHOW: "noShowAppointments",
}


def _with_joins(stmt):
    return (
        stmt.outerjoin(ClientUser, ClientUser.id == Appointment.client_id)
        .outerjoin(Company, Company.id == Appointment.company_id)
        .outerjoin(CompanyService, CompanyService.id == Appointment.service_id)
        .outerjoin(CompanyStaff, CompanyStaff.id == Appointment.staff_id)
        .outerjoin(ProviderUser, ProviderUser.id == CompanyStaff.user_id)
        .outerjoin(CompanySpace, CompanySpace.id == Appointment.space_id)
    )


def _enriched_select():
    stmt = select(
        Appointment,
        ClientUser.first_name.label("client_first_name"),
        ClientUser.last_name.label("client_last_name"),
        ClientUser.email.label("client_email"),
        ClientUser.phone.label("client_phone"),
        ClientUser.avatar.label("client_avatar"),
        Company.name.label("company_name"),
        CompanyService.name.label("service_name"),
        CompanyService.duration.label("service_duration"),
        CompanyService.price.label("service_price"),
        CompanyService.image_url.label("service_image_url"),
        ProviderUser.first_name.label("provider_first_name"),
        ProviderUser.last_name.label("provider_last_name"),
        ProviderUser.avatar.label("provider_avatar"),
        CompanyStaff.status.label("provider_status"),
        CompanySpace.name.label("space_name"),
        CompanySpace.capacity.label("space_capacity"),
        CompanySpace.image_url.label("space_image_url"),
    ).select_from(Appointment)
    return _with_joins(stmt)


def _full_name(first, last):
    name = " ".join(p for p in (first, last) if p)
    return name or None


def _filter_conditions(options):
    """Predicates shared by the data query and its COUNT."""
    conditions = []
    if options.get("client_id"):
        conditions.append(Appointment.client_id == options["client_id"])
    if options.get("company_id"):
        conditions.append(Appointment.company_id == options["company_id"])
    if options.get("staff_id"):
        conditions.append(Appointment.staff_id == options["staff_id"])

    status = normalize_appointment_status(options.get("status"))
    if status is not None:
        conditions.append(Appointment.status == int(status))

    if options.get("date"):
        conditions.append(Appointment.date == as_date(options["date"]))
    if options.get("date_from"):
        conditions.append(Appointment.date >= as_date(options["date_from"]))
    if options.get("date_to"):
        conditions.append(Appointment.date <= as_date(options["date_to"]))

    search = options.get("search")
    if search and search.strip():
        term = like(search)
        conditions.append(
            or_(
                ClientUser.first_name.like(term),
                ClientUser.last_name.like(term),
                ClientUser.email.like(term),
                ClientUser.phone.like(term),
                CompanyService.name.like(term),
            )
        )
    return conditions


class AppointmentRepository:
    @staticmethod
    def get(appointment_id):
        return db.session.get(Appointment, appointment_id)

    @staticmethod
    def create(data):
        """
        Insert an appointment and record the client against the company.

        Status defaults to Pending when missing or unrecognised. Must run
        inside ``transaction()``.
        """
        values = {k: v for k, v in data.items() if k in CREATE_FIELDS}
        status = normalize_appointment_status(values.get("status"))
        values["status"] = int(status if status is not None else AppointmentStatus.PENDING)
        values["preferred_staff_ids"] = dump_json_list(values.get("preferred_staff_ids"))
        for key in ("type", "priority", "payment_status", "reminder_sent"):
            if values.get(key) is None:
                values.pop(key, None)

        appointment = Appointment(**values)
        db.session.add(appointment)
        db.session.flush()

        CompanyUserRepository.record_interaction(
            appointment.company_id, appointment.client_id, "appointment"
        )
        current_app.logger.info(
            f"Created appointment {appointment.id} for company {appointment.company_id}"
        )
        return appointment

    @staticmethod
    def find_by_id(appointment_id):
        row = db.session.execute(
            _enriched_select().where(Appointment.id == appointment_id)
        ).first()
        return AppointmentRepository.serialize_row(row) if row else None

    @staticmethod
    def find_all(options=None):
        """
        Filtered, paginated list ordered newest first, or soonest first when
        ``options["order"]`` is ``"asc"``.

        Returns ``(items, pagination)``; page and limit are clamped to valid
        values rather than rejected.
        """
        options = options or {}
        page, limit, offset = clamp_page(options.get("page"), options.get("limit"))
        conditions = _filter_conditions(options)

        count_stmt = _with_joins(
            select(func.count(Appointment.id)).select_from(Appointment)
        ).where(*conditions)
        total = db.session.scalar(count_stmt) or 0

        if options.get("order") == "asc":
            ordering = (Appointment.date, Appointment.time, Appointment.id)
        else:
            ordering = (Appointment.date.desc(), Appointment.time.desc(), Appointment.id)
        stmt = (
            _enriched_select()
            .where(*conditions)
            .order_by(*ordering)
            .limit(limit)
            .offset(offset)
        )
        rows = db.session.execute(stmt).all()
        items = [AppointmentRepository.serialize_row(r) for r in rows]
        return items, pagination(total, page, limit, offset)

    @staticmethod
    def update(appointment, data):
        """Write only present, allow-listed fields. Last write wins."""
        for key, value in data.items():
            if key not in MUTABLE_FIELDS:
                current_app.logger.debug(f"Ignoring non-updatable appointment field {key}")
                continue
            if key == "status":
                value = int(require_appointment_status(value))
            elif key == "preferred_staff_ids":
                value = dump_json_list(value)
            setattr(appointment, key, value)
        db.session.flush()
        return appointment

    @staticmethod
    def link_sale(appointment, sale_id):
        """Attach a sale once. Returns False if a sale is already linked."""
        if appointment.sale_id:
            return False
        appointment.sale_id = sale_id
        db.session.flush()
        return True

    @staticmethod
    def delete(appointment_id):
        appointment = db.session.get(Appointment, appointment_id)
        if appointment is None:
            return False
        db.session.delete(appointment)
        db.session.flush()
        return True

    @staticmethod
    def get_stats(company_id=None, client_id=None):
        stmt = select(Appointment.status, func.count(Appointment.id)).group_by(
            Appointment.status
        )
        if company_id:
            stmt = stmt.where(Appointment.company_id == company_id)
        if client_id:
            stmt = stmt.where(Appointment.client_id == client_id)
        counts = dict(db.session.execute(stmt).all())

        stats = {"totalAppointments": sum(counts.values())}
        for status, key in STATS_KEYS.items():
            stats[key] = counts.get(int(status), 0)
        return stats

    @staticmethod
    def get_by_date_range(start_date, end_date, company_id=None, client_id=None):
        stmt = _enriched_select().where(
            Appointment.date >= as_date(start_date), Appointment.date <= as_date(end_date)
        )
        if company_id:
            stmt = stmt.where(Appointment.company_id == company_id)
        if client_id:
            stmt = stmt.where(Appointment.client_id == client_id)
        stmt = stmt.order_by(Appointment.date, Appointment.time)
        return [
            AppointmentRepository.serialize_row(r) for r in db.session.execute(stmt).all()
        ]

    @staticmethod
    def get_by_user_id(user_id, status=None, limit=10):
        stmt = _enriched_select().where(Appointment.client_id == user_id)
        normalized = normalize_appointment_status(status)
        if normalized is not None:
            stmt = stmt.where(Appointment.status == int(normalized))
        _, limit, _ = clamp_page(1, limit)
        stmt = stmt.order_by(Appointment.date.desc(), Appointment.time.desc()).limit(limit)
        return [
            AppointmentRepository.serialize_row(r) for r in db.session.execute(stmt).all()
        ]

    @staticmethod
    def serialize(appointment):
        return {
            "id": appointment.id,
            "clientId": appointment.client_id,
            "companyId": appointment.company_id,
            "serviceId": appointment.service_id,
            "staffId": appointment.staff_id,
            "spaceId": appointment.space_id,
            "saleId": appointment.sale_id,
            "date": iso(appointment.date),
            "time": iso(appointment.time),
            "duration": appointment.duration,
            "status": appointment.status,
            "statusLabel": get_appointment_status_label(appointment.status),
            "type": appointment.type,
            "priority": appointment.priority,
            "price": money(appointment.price),
            "paymentStatus": appointment.payment_status,
            "paymentMethod": appointment.payment_method,
            "notes": appointment.notes,
            "reminderSent": bool(appointment.reminder_sent),
            "preferredStaffIds": load_json_list(appointment.preferred_staff_ids),
            "createdAt": iso(appointment.created_at),
            "updatedAt": iso(appointment.updated_at),
        }

    @staticmethod
    def serialize_row(row):
        data = AppointmentRepository.serialize(row.Appointment)
        data.update(
            {
                "clientName": _full_name(row.client_first_name, row.client_last_name),
                "clientEmail": row.client_email,
                "clientPhone": row.client_phone,
                "clientAvatar": row.client_avatar,
                "companyName": row.company_name,
                "serviceName": row.service_name,
                "serviceDuration": row.service_duration,
                "servicePrice": money(row.service_price),
                "serviceImageUrl": row.service_image_url,
                "providerName": _full_name(row.provider_first_name, row.provider_last_name),
                "providerAvatar": row.provider_avatar,
                "providerStatus": row.provider_status,
                "spaceName": row.space_name,
                "spaceCapacity": row.space_capacity,
                "spaceImageUrl": row.space_image_url,
            }
        )
        return data
