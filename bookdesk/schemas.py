"""Request schemas for every JSON body and query string the API accepts.

Field names are snake_case in Python and camelCase on the wire. Unknown
fields are dropped silently.
"""

import re
import datetime as dt
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .constants.appointment_status import normalize_appointment_status

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$")
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

AppointmentType = Literal["Regular", "Consultation", "Follow-up", "Emergency"]
AppointmentPriority = Literal["Low", "Medium", "High", "Urgent"]
PaymentStatus = Literal["Pending", "Paid", "Partially Paid", "Refunded"]
StaffStatus = Literal["Active", "Inactive", "Pending"]
ServiceStatus = Literal["Active", "Inactive", "Suspended"]


class ApiSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


class PartialUpdate(ApiSchema):
    """Update payloads must carry at least one field."""

    @model_validator(mode="after")
    def require_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


def _parse_time(value):
    if isinstance(value, dt.time) or value is None:
        return value
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    parts = [int(p) for p in value.split(":")]
    return dt.time(*parts)


def _parse_status(value):
    if value is None:
        return None
    status = normalize_appointment_status(value)
    if status is None:
        raise ValueError(f"Invalid status '{value}'")
    return int(status)


# Auth


class SignupSchema(ApiSchema):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)


class LoginSchema(ApiSchema):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    role_id: Optional[int] = None


# Companies and catalog


class CompanyCreateSchema(ApiSchema):
    name: str = Field(min_length=2, max_length=255)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)


class CategorySchema(ApiSchema):
    name: str = Field(min_length=2, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    icon: Optional[str] = Field(default=None, max_length=10)
    is_active: bool = True


class CategoryUpdateSchema(PartialUpdate):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    icon: Optional[str] = Field(default=None, max_length=10)
    is_active: Optional[bool] = None


class ServiceSchema(ApiSchema):
    name: str = Field(min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    duration: int = Field(ge=15, le=480)
    price: Decimal = Field(ge=0)
    category: Optional[str] = Field(default=None, min_length=2, max_length=100)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    status: ServiceStatus = "Active"
    company_id: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=500)


class ServiceUpdateSchema(PartialUpdate):
    name: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    duration: Optional[int] = Field(default=None, ge=15, le=480)
    price: Optional[Decimal] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=2, max_length=100)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    status: Optional[ServiceStatus] = None
    image_url: Optional[str] = Field(default=None, max_length=500)


# Appointments


class AppointmentCreateSchema(ApiSchema):
    client_id: str
    company_id: str
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    space_id: Optional[str] = None
    date: dt.date
    time: dt.time
    duration: int = Field(ge=15, le=480)
    status: Optional[int] = None
    type: Optional[AppointmentType] = None
    priority: Optional[AppointmentPriority] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=1000)
    preferred_staff_ids: Optional[List[str]] = None
    reminder_sent: Optional[bool] = None

    parse_time = field_validator("time", mode="before")(_parse_time)
    parse_status = field_validator("status", mode="before")(_parse_status)


class AppointmentUpdateSchema(PartialUpdate):
    client_id: Optional[str] = None
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    space_id: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    duration: Optional[int] = Field(default=None, ge=15, le=480)
    status: Optional[int] = None
    type: Optional[AppointmentType] = None
    priority: Optional[AppointmentPriority] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=1000)
    preferred_staff_ids: Optional[List[str]] = None
    reminder_sent: Optional[bool] = None

    parse_time = field_validator("time", mode="before")(_parse_time)
    parse_status = field_validator("status", mode="before")(_parse_status)


class BillingItemSchema(ApiSchema):
    type: str
    service_id: Optional[str] = None
    variant_id: Optional[str] = None
    product_id: Optional[str] = None
    name: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class CompletionDataSchema(ApiSchema):
    billing_items: List[BillingItemSchema] = Field(default_factory=list)
    total_amount: Optional[Decimal] = Field(default=None, ge=0)


class AppointmentStatusSchema(ApiSchema):
    status: Any
    completion_data: Optional[CompletionDataSchema] = None

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, value):
        if value is None:
            raise ValueError("Status is required")
        return _parse_status(value)


class AppointmentPaymentSchema(ApiSchema):
    payment_status: PaymentStatus
    payment_method: Optional[str] = Field(default=None, max_length=50)


class PageQuery(ApiSchema):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=1000)
    search: Optional[str] = Field(default=None, max_length=255)


class AppointmentFilterQuery(PageQuery):
    client_id: Optional[str] = None
    company_id: Optional[str] = None
    staff_id: Optional[str] = None
    status: Optional[str] = None
    date: Optional[dt.date] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None


class UserAppointmentsQuery(ApiSchema):
    status: Optional[str] = None
    limit: int = Field(default=10, ge=1, le=1000)


class DateRangeQuery(ApiSchema):
    company_id: Optional[str] = None


# Sales


class SaleItemSchema(ApiSchema):
    id: Optional[str] = None
    type: Literal["product", "service"]
    product_id: Optional[str] = None
    service_id: Optional[str] = None
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    name: str = Field(min_length=1)
    description: Optional[str] = None
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(gt=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    unit: Optional[str] = None


class SaleCreateSchema(ApiSchema):
    company_id: Optional[str] = None
    client_id: str
    amount: Decimal = Field(gt=0)
    payment_method: str = "Cash"
    payment_status: Literal["Pending", "Paid", "Refunded"] = "Paid"
    sale_date: Optional[dt.date] = None
    items: List[SaleItemSchema] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)


class SaleFilterQuery(ApiSchema):
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=1000)
    search: Optional[str] = Field(default=None, max_length=255)
    company_id: Optional[str] = None
    user_id: Optional[str] = None
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    enrich: bool = False


# Staff


class StaffCreateSchema(ApiSchema):
    user_id: str
    company_id: Optional[str] = None
    status: StaffStatus = "Active"
    bio: Optional[str] = Field(default=None, max_length=2000)
    permissions: Optional[Any] = None
    emergency_contact: Optional[dict] = None
    work_schedule: Optional[dict] = None


class StaffUpdateSchema(PartialUpdate):
    user_id: Optional[str] = None
    status: Optional[StaffStatus] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    permissions: Optional[Any] = None
    emergency_contact: Optional[dict] = None
    work_schedule: Optional[dict] = None


class StaffFilterQuery(PageQuery):
    status: Optional[StaffStatus] = None
