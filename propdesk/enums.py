from enum import Enum


class PaymentStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"
    OVERDUE = "Overdue"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    CREDIT_CARD = "Credit Card"
    MOBILE_MONEY = "Mobile Money"
    CHECK = "Check"
    OTHER = "Other"


class PaymentCategory(str, Enum):
    RENT = "Rent"
    UTILITIES = "Utilities"
    DEPOSIT = "Deposit"
    OTHER = "Other"


class ComplaintStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class TenantStatus(str, Enum):
    ACTIVE = "active"
    MOVING_OUT = "moving-out"
    INACTIVE = "inactive"


class ArrearsStatus(str, Enum):
    ARREARS = "Arrears"
    OVERPAID = "Overpaid"
    CURRENT = "Current"


EXPENSE_CATEGORIES = [
    "Maintenance",
    "Utilities",
    "Security",
    "Cleaning",
    "Renovation",
    "Insurance",
    "Legal",
]

PROPERTY_TYPES = [
    "Single",
    "1bedroom",
    "2bedroom",
    "3bedroom",
    "4bedroom",
    "5bedroom",
    "6bedroom",
]

UNIT_STATUSES = ["vacant", "occupied", "maintenance", "reserved"]


def values(enum_cls):
    return [member.value for member in enum_cls]
