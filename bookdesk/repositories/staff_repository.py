"""Company staff records. Identity fields always come from the users table."""

from flask import current_app
from sqlalchemy import func, or_, select

from ..extensions import db
from ..models import CompanyStaff, User
from ..utils.serializers import iso
from .base import clamp_page, like, pagination

UPDATABLE_FIELDS = frozenset(
    {
        "user_id",
        "status",
        "bio",
        "permissions",
        "emergency_contact",
        "work_schedule",
        "last_active",
    }
)


def _select_staff():
    return (
        select(CompanyStaff, User)
        .select_from(CompanyStaff)
        .join(User, User.id == CompanyStaff.user_id)
    )


class StaffRepository:
    @staticmethod
    def get(staff_id):
        return db.session.get(CompanyStaff, staff_id)

    @staticmethod
    def create(data):
        staff = CompanyStaff(
            company_id=data["company_id"],
            user_id=data["user_id"],
            status=data.get("status") or "Active",
            bio=data.get("bio"),
            permissions=data.get("permissions"),
            emergency_contact=data.get("emergency_contact"),
            work_schedule=data.get("work_schedule"),
        )
        db.session.add(staff)
        db.session.flush()
        return staff

    @staticmethod
    def update(staff, data):
        for key, value in data.items():
            if key in UPDATABLE_FIELDS:
                setattr(staff, key, value)
        db.session.flush()
        return staff

    @staticmethod
    def delete(staff_id):
        staff = db.session.get(CompanyStaff, staff_id)
        if staff is None:
            return False
        db.session.delete(staff)
        db.session.flush()
        return True

    @staticmethod
    def find_by_user(user_id, company_id):
        return db.session.scalar(
            select(CompanyStaff).where(
                CompanyStaff.user_id == user_id, CompanyStaff.company_id == company_id
            )
        )

    @staticmethod
    def find_or_create_for_user(user_id, company_id):
        staff = StaffRepository.find_by_user(user_id, company_id)
        if staff is None:
            staff = StaffRepository.create(
                {"user_id": user_id, "company_id": company_id, "status": "Active"}
            )
            current_app.logger.info(
                f"Created staff record {staff.id} for user {user_id} in company {company_id}"
            )
        return staff

    @staticmethod
    def find_by_id(staff_id):
        row = db.session.execute(_select_staff().where(CompanyStaff.id == staff_id)).first()
        return StaffRepository.serialize(*row) if row else None

    @staticmethod
    def find_all_paginated(company_id=None, status=None, search=None, page=1, limit=10):
        conditions = []
        if company_id:
            conditions.append(CompanyStaff.company_id == company_id)
        if status:
            conditions.append(CompanyStaff.status == status)
        if search and search.strip():
            term = like(search)
            conditions.append(
                or_(
                    User.first_name.like(term),
                    User.last_name.like(term),
                    User.email.like(term),
                    User.phone.like(term),
                    CompanyStaff.bio.like(term),
                )
            )

        page, limit, offset = clamp_page(page, limit)
        total = db.session.scalar(
            select(func.count(CompanyStaff.id))
            .select_from(CompanyStaff)
            .join(User, User.id == CompanyStaff.user_id)
            .where(*conditions)
        ) or 0
        rows = db.session.execute(
            _select_staff()
            .where(*conditions)
            .order_by(User.first_name, User.last_name, CompanyStaff.id)
            .limit(limit)
            .offset(offset)
        ).all()
        return [StaffRepository.serialize(*r) for r in rows], pagination(total, page, limit, offset)

    @staticmethod
    def serialize(staff, user):
        return {
            "id": staff.id,
            "companyId": staff.company_id,
            "userId": staff.user_id,
            "status": staff.status,
            "bio": staff.bio,
            "permissions": staff.permissions,
            "emergencyContact": staff.emergency_contact,
            "workSchedule": staff.work_schedule,
            "joinDate": iso(staff.join_date),
            "lastActive": iso(staff.last_active),
            "firstName": user.first_name,
            "lastName": user.last_name,
            "name": user.full_name,
            "email": user.email,
            "phone": user.phone,
            "avatar": user.avatar,
            "createdAt": iso(staff.created_at),
            "updatedAt": iso(staff.updated_at),
        }
