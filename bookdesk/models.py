from datetime import date
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from .utils.ids import generate_id

Base = declarative_base()
metadata = Base.metadata


class User(Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    email = mapped_column(String(255), nullable=False)
    password_hash = mapped_column(String(72), nullable=False)
    first_name = mapped_column(String(100), nullable=False)
    last_name = mapped_column(String(100))
    phone = mapped_column(String(30))
    avatar = mapped_column(String(500))
    address = mapped_column(String(255))
    is_active = mapped_column(Boolean, nullable=False, default=True)
    is_verified = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    roles: Mapped[List["UserRole"]] = relationship(
        "UserRole", uselist=True, back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class Company(Base):
    __tablename__ = "companies"

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    name = mapped_column(String(255), nullable=False)
    email = mapped_column(String(255))
    phone = mapped_column(String(30))
    address = mapped_column(String(255))
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    services: Mapped[List["CompanyService"]] = relationship(
        "CompanyService", uselist=True, back_populates="company"
    )
    staff: Mapped[List["CompanyStaff"]] = relationship(
        "CompanyStaff", uselist=True, back_populates="company"
    )


class UserRole(Base):
    __tablename__ = "users_role"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_role_user"
        ),
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="CASCADE", name="fk_role_company"
        ),
        Index("ix_users_role_user", "user_id"),
    )

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id = mapped_column(String(10), nullable=False)
    company_id = mapped_column(String(10))
    role = mapped_column(Integer, nullable=False, default=3)
    is_default = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))

    user: Mapped["User"] = relationship("User", back_populates="roles")
    company: Mapped[Optional["Company"]] = relationship("Company")


class ServiceCategory(Base):
    __tablename__ = "service_categories"
    __table_args__ = (Index("ix_service_categories_name", "name", unique=True),)

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    name = mapped_column(String(255), nullable=False)
    description = mapped_column(Text)
    icon = mapped_column(String(10))
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))


class CompanyService(Base):
    __tablename__ = "company_services"
    __table_args__ = (
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="CASCADE", name="fk_service_company"
        ),
        Index("ix_company_services_company", "company_id"),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    company_id = mapped_column(String(10), nullable=False)
    name = mapped_column(String(255), nullable=False)
    description = mapped_column(Text)
    category = mapped_column(String(100))
    subcategory = mapped_column(String(100))
    duration = mapped_column(Integer, nullable=False, default=60)
    price = mapped_column(Numeric(10, 2), nullable=False, default=0)
    status = mapped_column(String(20), nullable=False, default="Active")
    image_url = mapped_column(String(500))
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    company: Mapped["Company"] = relationship("Company", back_populates="services")


class CompanyStaff(Base):
    __tablename__ = "company_staff"
    __table_args__ = (
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="CASCADE", name="fk_staff_company"
        ),
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_staff_user"
        ),
        UniqueConstraint("company_id", "user_id", name="uq_staff_company_user"),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    company_id = mapped_column(String(10), nullable=False)
    user_id = mapped_column(String(10), nullable=False)
    status = mapped_column(String(20), nullable=False, default="Active")
    bio = mapped_column(Text)
    permissions = mapped_column(JSON)
    emergency_contact = mapped_column(JSON)
    work_schedule = mapped_column(JSON)
    join_date = mapped_column(Date, default=date.today)
    last_active = mapped_column(DateTime)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    company: Mapped["Company"] = relationship("Company", back_populates="staff")
    user: Mapped["User"] = relationship("User")


class CompanySpace(Base):
    __tablename__ = "company_spaces"
    __table_args__ = (
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="CASCADE", name="fk_space_company"
        ),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    company_id = mapped_column(String(10), nullable=False)
    name = mapped_column(String(255), nullable=False)
    capacity = mapped_column(Integer, default=1)
    image_url = mapped_column(String(500))
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))


class CompanyProduct(Base):
    __tablename__ = "company_products"
    __table_args__ = (
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="CASCADE", name="fk_product_company"
        ),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    company_id = mapped_column(String(10), nullable=False)
    name = mapped_column(String(255), nullable=False)
    description = mapped_column(Text)
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))

    variants: Mapped[List["CompanyProductVariant"]] = relationship(
        "CompanyProductVariant", uselist=True, back_populates="product"
    )


class CompanyProductVariant(Base):
    __tablename__ = "company_product_variants"
    __table_args__ = (
        ForeignKeyConstraint(
            ["product_id"],
            ["company_products.id"],
            ondelete="CASCADE",
            name="fk_variant_product",
        ),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    product_id = mapped_column(String(10), nullable=False)
    name = mapped_column(String(255), nullable=False)
    sku = mapped_column(String(100))
    price = mapped_column(Numeric(10, 2), nullable=False, default=0)
    attributes = mapped_column(JSON)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))

    product: Mapped["CompanyProduct"] = relationship(
        "CompanyProduct", back_populates="variants"
    )
    stock: Mapped[List["CompanyProductStock"]] = relationship(
        "CompanyProductStock", uselist=True, back_populates="variant"
    )


class CompanyProductStock(Base):
    __tablename__ = "company_product_stock"
    __table_args__ = (
        ForeignKeyConstraint(
            ["variant_id"],
            ["company_product_variants.id"],
            ondelete="CASCADE",
            name="fk_stock_variant",
        ),
        Index("ix_stock_variant_active", "variant_id", "is_active"),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    variant_id = mapped_column(String(10), nullable=False)
    quantity = mapped_column(Integer, nullable=False, default=0)
    cost = mapped_column(Numeric(10, 2))
    purchase_date = mapped_column(Date)
    is_active = mapped_column(Boolean, nullable=False, default=True)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    variant: Mapped["CompanyProductVariant"] = relationship(
        "CompanyProductVariant", back_populates="stock"
    )


class Sale(Base):
    __tablename__ = "company_sales"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="RESTRICT", name="fk_sale_user"
        ),
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="RESTRICT", name="fk_sale_company"
        ),
        ForeignKeyConstraint(
            ["staff_id"], ["company_staff.id"], ondelete="SET NULL", name="fk_sale_staff"
        ),
        Index("ix_company_sales_company", "company_id"),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    user_id = mapped_column(String(10), nullable=False)
    company_id = mapped_column(String(10), nullable=False)
    staff_id = mapped_column(String(10))
    total_amount = mapped_column(Numeric(10, 2), nullable=False, default=0)
    subtotal = mapped_column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = mapped_column(Numeric(10, 2), nullable=False, default=0)
    notes = mapped_column(Text)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    items: Mapped[List["SaleItem"]] = relationship(
        "SaleItem",
        uselist=True,
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )


class SaleItem(Base):
    __tablename__ = "company_sales_items"
    __table_args__ = (
        ForeignKeyConstraint(
            ["sale_id"], ["company_sales.id"], ondelete="CASCADE", name="fk_item_sale"
        ),
        ForeignKeyConstraint(
            ["service_id"],
            ["company_services.id"],
            ondelete="SET NULL",
            name="fk_item_service",
        ),
        ForeignKeyConstraint(
            ["variant_id"],
            ["company_product_variants.id"],
            ondelete="SET NULL",
            name="fk_item_variant",
        ),
    )

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_id = mapped_column(String(10), nullable=False)
    item_type = mapped_column(String(10), nullable=False)
    service_id = mapped_column(String(10))
    variant_id = mapped_column(String(10))
    quantity = mapped_column(Integer, nullable=False, default=1)
    unit_price = mapped_column(Numeric(10, 2), nullable=False, default=0)
    discount = mapped_column(Numeric(5, 2), nullable=False, default=0)

    sale: Mapped["Sale"] = relationship("Sale", back_populates="items")


class Appointment(Base):
    __tablename__ = "company_appointments"
    __table_args__ = (
        ForeignKeyConstraint(
            ["client_id"], ["users.id"], ondelete="CASCADE", name="fk_appt_client"
        ),
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="CASCADE", name="fk_appt_company"
        ),
        ForeignKeyConstraint(
            ["service_id"],
            ["company_services.id"],
            ondelete="SET NULL",
            name="fk_appt_service",
        ),
        ForeignKeyConstraint(
            ["staff_id"], ["company_staff.id"], ondelete="SET NULL", name="fk_appt_staff"
        ),
        ForeignKeyConstraint(
            ["space_id"], ["company_spaces.id"], ondelete="SET NULL", name="fk_appt_space"
        ),
        ForeignKeyConstraint(
            ["sale_id"], ["company_sales.id"], ondelete="SET NULL", name="fk_appt_sale"
        ),
        Index("ix_appt_company_date", "company_id", "date"),
        Index("ix_appt_client", "client_id"),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    client_id = mapped_column(String(10), nullable=False)
    company_id = mapped_column(String(10), nullable=False)
    service_id = mapped_column(String(10))
    staff_id = mapped_column(String(10))
    space_id = mapped_column(String(10))
    sale_id = mapped_column(String(10))
    date = mapped_column(Date, nullable=False)
    time = mapped_column(Time, nullable=False)
    duration = mapped_column(Integer, nullable=False, default=60)
    status = mapped_column(Integer, nullable=False, default=0)
    type = mapped_column(String(20), default="Regular")
    priority = mapped_column(String(10), default="Medium")
    price = mapped_column(Numeric(10, 2))
    payment_status = mapped_column(String(20), default="Pending")
    payment_method = mapped_column(String(50))
    notes = mapped_column(Text)
    reminder_sent = mapped_column(Boolean, nullable=False, default=False)
    preferred_staff_ids = mapped_column(Text)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now()
    )

    sale: Mapped[Optional["Sale"]] = relationship("Sale")


class CompanyUser(Base):
    __tablename__ = "company_users"
    __table_args__ = (
        ForeignKeyConstraint(
            ["company_id"], ["companies.id"], ondelete="CASCADE", name="fk_cu_company"
        ),
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_cu_user"
        ),
        UniqueConstraint("company_id", "user_id", name="uq_company_user"),
    )

    id = mapped_column(String(10), primary_key=True, default=generate_id)
    company_id = mapped_column(String(10), nullable=False)
    user_id = mapped_column(String(10), nullable=False)
    first_interaction = mapped_column(DateTime)
    last_interaction = mapped_column(DateTime)
    total_appointments = mapped_column(Integer, nullable=False, default=0)
    total_sales = mapped_column(Integer, nullable=False, default=0)
    total_spent = mapped_column(Numeric(12, 2), nullable=False, default=0)


class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"
    __table_args__ = (
        UniqueConstraint("key", "scope", "endpoint", name="uq_idempotency"),
    )

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    key = mapped_column(String(128), nullable=False)
    scope = mapped_column(String(45), nullable=False, default="")
    endpoint = mapped_column(String(128), nullable=False)
    status_code = mapped_column(Integer, nullable=False)
    response_body = mapped_column(JSON)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))
