"""Sales: creation with line items and stock deduction, plus reads."""

import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, or_, select

from ..extensions import db
from ..models import (
    Appointment,
    Company,
    CompanyProduct,
    CompanyProductStock,
    CompanyProductVariant,
    CompanyService,
    Sale,
    SaleItem,
    User,
)
from ..utils.errors import ValidationError
from ..utils.serializers import as_date, iso, money, to_decimal
from .base import clamp_page, like, pagination
from .company_user_repository import CompanyUserRepository

CENT = Decimal("0.01")


def _line_amounts(item):
    gross = to_decimal(item.get("unit_price")) * int(item.get("quantity") or 1)
    discount = gross * to_decimal(item.get("discount")) / Decimal(100)
    return gross, discount


def _select_sales():
    return (
        select(
            Sale,
            Appointment.id.label("appointment_id"),
            Appointment.service_id.label("service_id"),
            Appointment.space_id.label("space_id"),
            User.first_name.label("user_first_name"),
            User.last_name.label("user_last_name"),
            User.email.label("user_email"),
            User.phone.label("user_phone"),
            User.avatar.label("user_avatar"),
            Company.name.label("company_name"),
        )
        .select_from(Sale)
        .outerjoin(User, User.id == Sale.user_id)
        .outerjoin(Company, Company.id == Sale.company_id)
        .outerjoin(Appointment, Appointment.sale_id == Sale.id)
    )


def _filter_conditions(options):
    conditions = []
    if options.get("company_id"):
        conditions.append(Sale.company_id == options["company_id"])
    if options.get("user_id"):
        conditions.append(Sale.user_id == options["user_id"])
    if options.get("staff_id"):
        conditions.append(Sale.staff_id == options["staff_id"])
    if options.get("service_id"):
        conditions.append(Appointment.service_id == options["service_id"])

    date_from = as_date(options.get("date_from"))
    if date_from:
        conditions.append(
            Sale.created_at >= datetime.datetime.combine(date_from, datetime.time.min)
        )
    date_to = as_date(options.get("date_to"))
    if date_to:
        conditions.append(
            Sale.created_at
            < datetime.datetime.combine(date_to + datetime.timedelta(days=1), datetime.time.min)
        )

    search = options.get("search")
    if search and search.strip():
        term = like(search)
        full_name = User.first_name + " " + func.coalesce(User.last_name, "")
        conditions.append(
            or_(
                User.first_name.like(term),
                User.last_name.like(term),
                User.email.like(term),
                User.phone.like(term),
                full_name.like(term),
                Sale.id.like(term),
            )
        )
    return conditions


class SaleRepository:
    @staticmethod
    def create(data):
        """
        Record a sale with its line items.

        ``services_used`` and ``products_used`` are lists of dicts with the
        unit price as charged; it is stored as-is. Product lines deduct stock.
        Must run inside ``transaction()``.
        """
        if not data.get("user_id"):
            raise ValidationError("userId is required")
        if not data.get("company_id"):
            raise ValidationError("companyId is required")

        services_used = data.get("services_used") or []
        products_used = data.get("products_used") or []

        items = []
        gross_total = Decimal(0)
        discount_total = Decimal(0)
        for kind, key, lines in (
            ("service", "service_id", services_used),
            ("product", "variant_id", products_used),
        ):
            for line in lines:
                gross, discount = _line_amounts(line)
                gross_total += gross
                discount_total += discount
                items.append(
                    SaleItem(
                        item_type=kind,
                        quantity=int(line.get("quantity") or 1),
                        unit_price=to_decimal(line.get("unit_price")),
                        discount=to_decimal(line.get("discount")),
                        **{key: line.get(key)},
                    )
                )

        subtotal = data.get("subtotal")
        discount_amount = data.get("discount_amount")
        total_amount = data.get("total_amount")
        if subtotal is None:
            subtotal = gross_total
        if discount_amount is None:
            discount_amount = discount_total
        if total_amount is None:
            total_amount = to_decimal(subtotal) - to_decimal(discount_amount)

        sale = Sale(
            user_id=data["user_id"],
            company_id=data["company_id"],
            staff_id=data.get("staff_id"),
            subtotal=to_decimal(subtotal).quantize(CENT),
            discount_amount=to_decimal(discount_amount).quantize(CENT),
            total_amount=to_decimal(total_amount).quantize(CENT),
            notes=data.get("notes"),
            items=items,
        )
        db.session.add(sale)
        db.session.flush()

        for line in products_used:
            SaleRepository.deduct_stock(line.get("variant_id"), int(line.get("quantity") or 1))

        CompanyUserRepository.record_interaction(
            sale.company_id, sale.user_id, "sale", sale.total_amount
        )
        current_app.logger.info(
            f"Created sale {sale.id} for company {sale.company_id} with {len(items)} items"
        )
        return sale

    @staticmethod
    def deduct_stock(variant_id, quantity):
        """
        Take ``quantity`` units from the variant's active stock batches, oldest
        purchase first. Returns the quantity that could not be covered.
        """
        if not variant_id or quantity <= 0:
            return 0

        batches = db.session.scalars(
            select(CompanyProductStock)
            .where(
                CompanyProductStock.variant_id == variant_id,
                CompanyProductStock.is_active.is_(True),
            )
            .order_by(
                CompanyProductStock.purchase_date,
                CompanyProductStock.created_at,
                CompanyProductStock.id,
            )
        ).all()

        remaining = quantity
        for batch in batches:
            if remaining <= 0:
                break
            available = batch.quantity or 0
            if available <= 0:
                continue
            taken = min(remaining, available)
            batch.quantity = available - taken
            remaining -= taken

        if remaining > 0:
            current_app.logger.warning(
                f"Stock shortfall for variant {variant_id}: {remaining} of {quantity} not deducted"
            )
        db.session.flush()
        return remaining

    @staticmethod
    def get(sale_id):
        return db.session.get(Sale, sale_id)

    @staticmethod
    def find_by_id(sale_id):
        row = db.session.execute(_select_sales().where(Sale.id == sale_id)).first()
        return SaleRepository.serialize_row(row) if row else None

    @staticmethod
    def find_by_appointment_id(appointment_id):
        sale_id = db.session.scalar(
            select(Appointment.sale_id).where(Appointment.id == appointment_id)
        )
        return SaleRepository.find_by_id(sale_id) if sale_id else None

    @staticmethod
    def find_all(options=None):
        """
        List sales newest first.

        Paginates only when ``page`` or ``limit`` is given; otherwise the
        pagination part of the result is None.
        """
        options = options or {}
        conditions = _filter_conditions(options)
        stmt = (
            _select_sales()
            .where(*conditions)
            .order_by(Sale.created_at.desc(), Sale.id.desc())
        )

        page_info = None
        if options.get("page") or options.get("limit"):
            page, limit, offset = clamp_page(options.get("page"), options.get("limit"))
            count_stmt = (
                select(func.count(Sale.id))
                .select_from(Sale)
                .outerjoin(User, User.id == Sale.user_id)
                .outerjoin(Appointment, Appointment.sale_id == Sale.id)
                .where(*conditions)
            )
            total = db.session.scalar(count_stmt) or 0
            stmt = stmt.limit(limit).offset(offset)
            page_info = pagination(total, page, limit, offset)

        rows = db.session.execute(stmt).all()
        return [SaleRepository.serialize_row(r) for r in rows], page_info

    @staticmethod
    def get_customers(company_id):
        """Users who bought from the company, else users who booked with it."""
        buyers = select(Sale.user_id).where(Sale.company_id == company_id)
        users = db.session.scalars(
            select(User).where(User.id.in_(buyers)).order_by(User.first_name, User.last_name)
        ).all()
        if not users:
            bookers = select(Appointment.client_id).where(Appointment.company_id == company_id)
            users = db.session.scalars(
                select(User).where(User.id.in_(bookers)).order_by(User.first_name, User.last_name)
            ).all()
        return [
            {
                "id": u.id,
                "firstName": u.first_name,
                "lastName": u.last_name,
                "name": u.full_name,
                "email": u.email,
                "phone": u.phone,
                "avatar": u.avatar,
            }
            for u in users
        ]

    @staticmethod
    def enrich_with_details(sale):
        """Add display names to each line item of a serialized sale."""
        service_ids = {i["serviceId"] for i in sale["items"] if i["serviceId"]}
        variant_ids = {i["variantId"] for i in sale["items"] if i["variantId"]}

        service_names = {}
        if service_ids:
            service_names = dict(
                db.session.execute(
                    select(CompanyService.id, CompanyService.name).where(
                        CompanyService.id.in_(service_ids)
                    )
                ).all()
            )

        variant_names = {}
        if variant_ids:
            rows = db.session.execute(
                select(CompanyProductVariant.id, CompanyProduct.name, CompanyProductVariant.name)
                .join(CompanyProduct, CompanyProduct.id == CompanyProductVariant.product_id)
                .where(CompanyProductVariant.id.in_(variant_ids))
            ).all()
            variant_names = {vid: f"{product} - {variant}" for vid, product, variant in rows}

        for item in sale["items"]:
            if item["itemType"] == "service":
                item["name"] = service_names.get(item["serviceId"], "Unknown Service")
            else:
                item["name"] = variant_names.get(item["variantId"], "Unknown Product")
        return sale

    @staticmethod
    def serialize_item(item):
        return {
            "id": item.id,
            "itemType": item.item_type,
            "serviceId": item.service_id,
            "variantId": item.variant_id,
            "quantity": item.quantity,
            "unitPrice": money(item.unit_price),
            "discount": money(item.discount),
        }

    @staticmethod
    def serialize_row(row):
        sale = row.Sale
        items = [SaleRepository.serialize_item(i) for i in sale.items]
        first, last = row.user_first_name, row.user_last_name
        return {
            "id": sale.id,
            "appointmentId": row.appointment_id,
            "userId": sale.user_id,
            "companyId": sale.company_id,
            "serviceId": row.service_id,
            "staffId": sale.staff_id,
            "spaceId": row.space_id,
            "items": items,
            "servicesUsed": [i for i in items if i["itemType"] == "service"],
            "productsUsed": [i for i in items if i["itemType"] == "product"],
            "totalAmount": money(sale.total_amount),
            "subtotal": money(sale.subtotal),
            "discountAmount": money(sale.discount_amount),
            "notes": sale.notes,
            "createdAt": iso(sale.created_at),
            "updatedAt": iso(sale.updated_at),
            "userName": " ".join(p for p in (first, last) if p) or None,
            "userEmail": row.user_email,
            "userPhone": row.user_phone,
            "userAvatar": row.user_avatar,
            "userFirstName": first,
            "userLastName": last,
            "companyName": row.company_name,
        }
