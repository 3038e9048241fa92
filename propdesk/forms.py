from typing import Dict

from pydantic import ValidationError

from propdesk.errors import FormError
from propdesk.ledger import parse_date
from propdesk.schemas import Block, Complaint, Expense, Manager, Payment, Property, Tenant, Unit

FORM_SCHEMAS = {
    "managers": Manager,
    "properties": Property,
    "blocks": Block,
    "units": Unit,
    "tenants": Tenant,
    "payments": Payment,
    "complaints": Complaint,
    "expenses": Expense,
}

REQUIRED_MESSAGES = {
    "missing": "This field is required",
    "string_too_short": "This field is required",
}


def _field_errors(exc: ValidationError) -> Dict[str, str]:
    errors = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "__all__"
        message = REQUIRED_MESSAGES.get(err["type"], err["msg"])
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


def _check_tenant(record: Tenant, errors):
    start = parse_date(record.lease_start_date)
    if start is None:
        errors["lease_start_date"] = "Enter a date as YYYY-MM-DD"
    if record.lease_end_date:
        end = parse_date(record.lease_end_date)
        if end is None:
            errors["lease_end_date"] = "Enter a date as YYYY-MM-DD"
        elif start is not None and end < start:
            errors["lease_end_date"] = "Lease end must be after lease start"


def _check_payment(record: Payment, errors):
    if record.amount_paid <= 0:
        errors["amount_paid"] = "Amount must be greater than 0"


EXTRA_CHECKS = {
    "tenants": _check_tenant,
    "payments": _check_payment,
}


def clean_form(table, data):
    """Validate raw form input for ``table`` and return a record ready to save.

    Blank strings become ``None`` and numbers/dates are parsed. Raises
    ``FormError`` with a message per offending field.
    """
    schema = FORM_SCHEMAS[table]
    try:
        record = schema.model_validate(data)
    except ValidationError as exc:
        raise FormError(_field_errors(exc)) from exc
    errors = {}
    check = EXTRA_CHECKS.get(table)
    if check:
        check(record, errors)
    if errors:
        raise FormError(errors)
    return record
