import datetime

import pytest

from propdesk.errors import FormError
from propdesk.forms import clean_form


def manager_form(**overrides):
    data = {"name": "Alice Johnson", "email": "alice@example.com", "phone": "0711000111",
            "hire_date": "2023-01-15"}
    data.update(overrides)
    return data


def test_valid_manager_form():
    manager = clean_form("managers", manager_form())
    assert manager.manager_id is None
    assert manager.hire_date == datetime.date(2023, 1, 15)


def test_required_fields_are_reported():
    with pytest.raises(FormError) as info:
        clean_form("managers", manager_form(name="  ", phone=""))
    assert info.value.errors["name"] == "This field is required"
    assert info.value.errors["phone"] == "This field is required"


def test_missing_field_is_reported():
    data = manager_form()
    del data["hire_date"]
    with pytest.raises(FormError) as info:
        clean_form("managers", data)
    assert info.value.errors == {"hire_date": "This field is required"}


def test_invalid_email():
    with pytest.raises(FormError) as info:
        clean_form("managers", manager_form(email="not-an-email"))
    assert info.value.errors["email"] == "Invalid email format"


def test_blank_optional_fields_become_none():
    manager = clean_form("managers", manager_form(email=""))
    assert manager.email is None
    unit = clean_form("units", {"unit_number": "A1", "property_id": 1, "block_id": "", "floor_number": "",
                                "unit_status": "vacant", "unit_type": "2bedroom", "bedroom_count": "2",
                                "bathroom_count": "1", "monthly_rent": "", "security_deposit": "",
                                "tenant_id": None, "notes": ""})
    assert unit.block_id is None
    assert unit.monthly_rent is None
    assert unit.bedroom_count == 2


def test_tenant_lease_dates_must_parse():
    with pytest.raises(FormError) as info:
        clean_form("tenants", {"full_name": "Jane Wanjiru", "lease_start_date": "15/01/2025"})
    assert "lease_start_date" in info.value.errors


def test_tenant_lease_end_after_start():
    with pytest.raises(FormError) as info:
        clean_form("tenants", {"full_name": "Jane Wanjiru", "lease_start_date": "2025-01-15",
                               "lease_end_date": "2024-12-31"})
    assert info.value.errors == {"lease_end_date": "Lease end must be after lease start"}


def test_valid_tenant_form_keeps_lease_text():
    tenant = clean_form("tenants", {"full_name": "Jane Wanjiru", "lease_start_date": "2025-01-15",
                                    "lease_end_date": "", "status": "moving-out"})
    assert tenant.lease_start_date == "2025-01-15"
    assert tenant.lease_end_date is None
    assert tenant.status == "moving-out"


def test_payment_form_ignores_submitted_month():
    payment = clean_form("payments", {
        "tenant_id": 1, "unit_id": 1, "property_id": 1, "amount_paid": "20000",
        "payment_date": "2025-03-02", "due_date": "2025-03-01", "payment_status": "Paid",
        "payment_method": "Cash", "payment_category": "Rent", "payment_month": "2020-01",
    })
    assert payment.payment_month == "2025-03"
    assert payment.payment_id is None


PAYMENT_FORM = {
    "tenant_id": 1, "unit_id": 1, "property_id": 1, "amount_paid": "20000",
    "payment_date": "2025-03-02", "due_date": "2025-03-01", "payment_status": "Paid",
    "payment_method": "Cash", "payment_category": "Rent",
}


@pytest.mark.parametrize("amount", ["0", "-500"])
def test_payment_amount_must_be_positive(amount):
    with pytest.raises(FormError) as info:
        clean_form("payments", dict(PAYMENT_FORM, amount_paid=amount))
    assert info.value.errors == {"amount_paid": "Amount must be greater than 0"}


def test_payment_category_must_be_known():
    with pytest.raises(FormError) as info:
        clean_form("payments", dict(PAYMENT_FORM, payment_category="Bogus"))
    assert set(info.value.errors) == {"payment_category"}

