"""Per-company client tracking (company_users)."""

import datetime

from sqlalchemy import select

from ..extensions import db
from ..models import CompanyUser
from ..utils.serializers import iso, money, to_decimal


class CompanyUserRepository:
    @staticmethod
    def find(company_id, user_id):
        return db.session.scalar(
            select(CompanyUser).where(
                CompanyUser.company_id == company_id, CompanyUser.user_id == user_id
            )
        )

    @staticmethod
    def record_interaction(company_id, user_id, interaction, amount=None):
        """Upsert the tracking row. Runs inside the caller's transaction."""
        now = datetime.datetime.now()
        row = CompanyUserRepository.find(company_id, user_id)
        if row is None:
            row = CompanyUser(
                company_id=company_id,
                user_id=user_id,
                first_interaction=now,
                total_appointments=0,
                total_sales=0,
                total_spent=0,
            )
            db.session.add(row)

        row.last_interaction = now
        if interaction == "appointment":
            row.total_appointments = (row.total_appointments or 0) + 1
        elif interaction == "sale":
            row.total_sales = (row.total_sales or 0) + 1
            row.total_spent = to_decimal(row.total_spent) + to_decimal(amount)
        else:
            raise ValueError(f"Unknown interaction '{interaction}'")

        db.session.flush()
        return row

    @staticmethod
    def serialize(row):
        return {
            "companyId": row.company_id,
            "userId": row.user_id,
            "firstInteraction": iso(row.first_interaction),
            "lastInteraction": iso(row.last_interaction),
            "totalAppointments": row.total_appointments,
            "totalSales": row.total_sales,
            "totalSpent": money(row.total_spent),
        }
