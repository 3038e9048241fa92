import re
from datetime import date
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from propdesk.enums import (
    ArrearsStatus,
    ComplaintStatus,
    PaymentCategory,
    PaymentMethod,
    PaymentStatus,
    TenantStatus,
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _as_text(value):
    # Date columns have NUMERIC affinity, so a malformed value can come back as a number
    return "" if value is None else str(value)


OptionalInt = Annotated[Optional[int], BeforeValidator(_blank_to_none)]
OptionalFloat = Annotated[Optional[float], BeforeValidator(_blank_to_none)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]
OptionalStr = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
RawText = Annotated[str, BeforeValidator(_as_text)]


def _tenant_status(value):
    # Older rows store "Active" or "Moving Out"
    if isinstance(value, TenantStatus):
        return value
    if value is None or not str(value).strip():
        return TenantStatus.ACTIVE
    return str(value).strip().lower().replace(" ", "-")


def _check_email(value):
    if value and not EMAIL_RE.match(value):
        raise ValueError("Invalid email format")
    return value


class Record(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True, validate_default=True)


class Manager(Record):
    manager_id: OptionalInt = None
    name: str = Field(min_length=1)
    email: OptionalStr = None
    phone: str = Field(min_length=1)
    hire_date: date

    check_email = field_validator("email")(_check_email)


class Property(Record):
    property_id: OptionalInt = None
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    total_units: int = Field(default=0, ge=0)
    property_type: str = Field(min_length=1)
    status: str = "active"
    last_inspection: OptionalDate = None
    manager_id: int
    created_at: OptionalStr = None
    updated_at: OptionalStr = None

    manager_name: OptionalStr = None


class Block(Record):
    block_id: OptionalInt = None
    block_name: str = Field(min_length=1)
    property_id: int
    floor_count: OptionalInt = None
    notes: OptionalStr = None

    property_name: OptionalStr = None


class Unit(Record):
    unit_id: OptionalInt = None
    unit_number: str = Field(min_length=1)
    property_id: int
    block_id: OptionalInt = None
    floor_number: OptionalInt = None
    unit_status: str = "vacant"
    unit_type: str = Field(min_length=1)
    bedroom_count: float = Field(default=0, ge=0)
    bathroom_count: float = Field(default=0, ge=0)
    monthly_rent: OptionalFloat = None
    security_deposit: OptionalFloat = None
    tenant_id: OptionalInt = None
    notes: OptionalStr = None

    property_name: OptionalStr = None
    block_name: OptionalStr = None
    tenant_name: OptionalStr = None


class Tenant(Record):
    """A tenant row.

    Lease dates are kept as the raw stored text: rows written before input
    validation existed may hold values that do not parse, and the arrears
    report has to be able to name those tenants rather than fail the whole load.
    """

    tenant_id: OptionalInt = None
    full_name: str = Field(min_length=1)
    phone_number: OptionalStr = None
    email: OptionalStr = None
    id_number: OptionalStr = None
    lease_start_date: RawText
    lease_end_date: OptionalStr = None
    rent_amount: OptionalFloat = None
    deposit_amount: OptionalFloat = None
    unit_id: OptionalInt = None
    status: Annotated[TenantStatus, BeforeValidator(_tenant_status)] = TenantStatus.ACTIVE
    created_at: OptionalStr = None
    updated_at: OptionalStr = None

    unit_number: OptionalStr = None
    property_id: OptionalInt = None

    check_email = field_validator("email")(_check_email)


class Payment(Record):
    payment_id: OptionalStr = None
    tenant_id: int
    unit_id: int
    property_id: int
    amount_paid: float
    payment_date: date
    due_date: date
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    payment_category: PaymentCategory
    receipt_number: OptionalStr = None
    transaction_reference: OptionalStr = None
    remarks: OptionalStr = None
    payment_month: OptionalStr = None
    created_at: OptionalStr = None
    updated_at: OptionalStr = None

    tenant_name: OptionalStr = None
    unit_number: OptionalStr = None
    property_name: OptionalStr = None

    @model_validator(mode="after")
    def derive_payment_month(self):
        self.payment_month = self.due_date.strftime("%Y-%m")
        return self


class Complaint(Record):
    complaint_id: OptionalInt = None
    unit_id: int
    tenant_id: OptionalInt = None
    description: str = Field(min_length=1)
    status: ComplaintStatus = ComplaintStatus.OPEN
    created_at: OptionalStr = None
    updated_at: OptionalStr = None

    unit_number: OptionalStr = None
    tenant_name: OptionalStr = None


class Expense(Record):
    expense_id: OptionalInt = None
    amount: float = Field(gt=0)
    category: str = Field(min_length=1)
    description: OptionalStr = None
    expense_date: date
    unit_id: OptionalInt = None
    block_id: OptionalInt = None
    property_id: OptionalInt = None
    payment_method: str = Field(min_length=1)
    vendor: str = Field(min_length=1)
    invoice_number: OptionalStr = None
    paid_by: OptionalStr = None
    created_at: OptionalStr = None

    unit_number: OptionalStr = None
    block_name: OptionalStr = None
    property_name: OptionalStr = None


class Activity(Record):
    recent_activity_id: OptionalInt = None
    activity_type: str
    message: str
    time: str


class Task(Record):
    task_id: OptionalInt = None
    task_name: str
    due_date: str
    priority: str


# Reports


class ArrearsRow(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    tenant_id: int
    tenant_name: str
    unit_number: str
    expected_amount: float
    total_paid: float
    balance: float
    status: ArrearsStatus
    months_counted: int


class SkippedTenant(BaseModel):
    tenant_id: int
    tenant_name: str
    lease_start_date: str
    reason: str


class ArrearsReport(BaseModel):
    period_end: date
    rows: List[ArrearsRow] = []
    skipped: List[SkippedTenant] = []


class PropertySummary(BaseModel):
    total_collected: float
    total_arrears: float
    tenant_count: int


class ExpenseSummary(BaseModel):
    total: float
    this_month: float
    count: int
    by_category: Dict[str, float] = {}


class DashboardStats(BaseModel):
    total_properties: int
    total_units: int
    occupied_units: int
    occupancy_rate: float
    active_tenants: int
    average_rent: float
    monthly_revenue: float
    open_complaints: int
    monthly_expenses: float
