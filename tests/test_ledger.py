import datetime

import pytest

from propdesk.ledger import (
    LedgerController,
    build_arrears_report,
    classify,
    expense_summary,
    month_end,
    months_counted,
    parse_date,
    parse_month,
)
from propdesk.schemas import Expense, Payment, Tenant, Unit

D = datetime.date


def tenant(tenant_id=1, lease="2025-01-15", unit_id=10, name="Jane Wanjiru"):
    return Tenant(tenant_id=tenant_id, full_name=name, lease_start_date=lease, unit_id=unit_id)


def unit(unit_id=10, rent=20000):
    return Unit(unit_id=unit_id, unit_number="A1", property_id=1, unit_type="2bedroom", monthly_rent=rent)


def payment(paid_on, amount=20000, tenant_id=1, category="Rent"):
    return Payment(tenant_id=tenant_id, unit_id=10, property_id=1, amount_paid=amount, payment_date=paid_on,
                   due_date=paid_on, payment_status="Paid", payment_method="Cash", payment_category=category)


def test_parse_helpers():
    assert parse_date("2025-01-15") == D(2025, 1, 15)
    assert parse_date("2025-01-15 08:30:00") == D(2025, 1, 15)
    assert parse_date("15/01/2025") is None
    assert parse_date("") is None
    assert parse_date(D(2025, 2, 1)) == D(2025, 2, 1)
    assert parse_month("2025-03") == D(2025, 3, 1)
    assert parse_month(None) is None
    with pytest.raises(ValueError):
        parse_month("March")


def test_month_end_and_months_counted():
    assert month_end(D(2024, 2, 10)) == D(2024, 2, 29)
    assert month_end(D(2025, 12, 1)) == D(2025, 12, 31)
    assert months_counted(D(2025, 1, 15), D(2025, 3, 31)) == 3
    assert months_counted(D(2025, 1, 31), D(2025, 1, 1)) == 1
    assert months_counted(D(2024, 11, 1), D(2025, 2, 28)) == 4
    assert months_counted(D(2025, 1, 15), D(2024, 12, 31)) == 0


def test_classify():
    assert classify(1) == "Arrears"
    assert classify(-0.5) == "Overpaid"
    assert classify(0) == "Current"


def test_arrears_example():
    report = build_arrears_report(
        [tenant()], [unit()], [payment("2025-01-20"), payment("2025-02-20")], month="2025-03")
    assert report.period_end == D(2025, 3, 31)
    row = report.rows[0]
    assert row.months_counted == 3
    assert row.expected_amount == 60000
    assert row.total_paid == 40000
    assert row.balance == 20000
    assert row.status == "Arrears"
    assert row.unit_number == "A1"
    assert report.skipped == []


def test_balance_matches_expected_minus_paid():
    payments = [payment("2025-01-20"), payment("2025-02-20"), payment("2025-03-20", amount=30000)]
    row = build_arrears_report([tenant()], [unit()], payments, month="2025-03").rows[0]
    assert row.balance == row.expected_amount - row.total_paid == -10000
    assert row.status == "Overpaid"


def test_unresolved_unit_counts_zero_rent():
    report = build_arrears_report([tenant(unit_id=99)], [unit()], [payment("2025-01-20")], month="2025-03")
    row = report.rows[0]
    assert row.unit_number == "N/A"
    assert row.expected_amount == 0
    assert row.status == "Overpaid"

    report = build_arrears_report([tenant(unit_id=None)], [], [], month="2025-03")
    assert report.rows[0].status == "Current"


def test_unparseable_lease_is_skipped_not_fatal(caplog):
    tenants = [tenant(), tenant(tenant_id=2, lease="sometime", name="Mark Kamau")]
    with caplog.at_level("WARNING", logger="propdesk.ledger"):
        report = build_arrears_report(tenants, [unit()], [], month="2025-03")
    assert [r.tenant_id for r in report.rows] == [1]
    assert report.skipped[0].tenant_id == 2
    assert report.skipped[0].lease_start_date == "sometime"
    assert "Mark Kamau" in caplog.text


def test_target_month_before_lease():
    row = build_arrears_report([tenant()], [unit()], [payment("2025-01-20")], month="2024-12").rows[0]
    assert row.months_counted == 0
    assert row.expected_amount == 0
    assert row.total_paid == 0
    assert row.status == "Current"


def test_payment_window_and_category():
    payments = [
        payment("2025-01-14"),                      # before the lease
        payment("2025-01-15"),                      # lease start day counts
        payment("2025-03-31"),                      # last day of the period counts
        payment("2025-04-01"),                      # after the period
        payment("2025-02-10", category="Utilities"),
        payment("2025-02-10", tenant_id=2),
    ]
    row = build_arrears_report([tenant()], [unit()], payments, month="2025-03").rows[0]
    assert row.total_paid == 40000


def test_without_month_runs_to_today():
    report = build_arrears_report([tenant()], [unit()], [payment("2025-01-20")], today=D(2025, 2, 10))
    assert report.period_end == D(2025, 2, 10)
    assert report.rows[0].months_counted == 2
    assert report.rows[0].balance == 20000


def test_expense_summary():
    expenses = [
        Expense(amount=4500, category="Maintenance", expense_date="2025-03-02", payment_method="Cash", vendor="A"),
        Expense(amount=500, category="Cleaning", expense_date="2025-03-20", payment_method="Cash", vendor="B"),
        Expense(amount=1000, category="Legal", expense_date="2025-02-28", payment_method="Cash", vendor="C"),
    ]
    summary = expense_summary(expenses, today=D(2025, 3, 25))
    assert summary.total == 6000
    assert summary.this_month == 5000
    assert summary.count == 3
    assert summary.by_category == {"Maintenance": 4500, "Cleaning": 500, "Legal": 1000}


def test_expense_summary_groups_repeated_categories():
    expenses = [
        Expense(amount=4500, category="Maintenance", expense_date="2025-03-02", payment_method="Cash", vendor="A"),
        Expense(amount=700, category="Maintenance", expense_date="2025-03-09", payment_method="Cash", vendor="B"),
    ]
    assert expense_summary(expenses, today=D(2025, 3, 25)).by_category == {"Maintenance": 5200}
    assert expense_summary([], today=D(2025, 3, 25)).by_category == {}


def test_ledger_controller_against_database(db, models, estate, make_payment):
    models.payments.save(make_payment(paid_on="2025-01-20"))
    models.payments.save(make_payment(paid_on="2025-02-20", due="2025-02-15"))
    models.payments.save(make_payment(paid_on="2025-02-21", category="Deposit"))
    db.execute("INSERT INTO tenants (full_name, lease_start_date, unit_id) VALUES (?,?,?)",
               ("Legacy Row", "01-15-2025", estate.unit_id))
    ledger = LedgerController(models.tenants, models.units, models.payments)

    report = ledger.arrears_report(estate.property_id, month="2025-03")
    assert [(r.tenant_name, r.balance) for r in report.rows] == [("Jane Wanjiru", 20000)]
    assert [s.tenant_name for s in report.skipped] == ["Legacy Row"]

    summary = ledger.property_summary(estate.property_id, month="2025-03")
    assert summary.total_collected == 40000
    assert summary.total_arrears == 20000
    assert summary.tenant_count == 2

    assert len(ledger.arrears_report(month="2025-03").rows) == 1


def test_arrears_report_survives_older_tenant_and_payment_rows(db, models, estate, make_payment):
    models.payments.save(make_payment(paid_on="2025-01-20"))
    refund_id = models.payments.save(make_payment(paid_on="2025-02-20", due="2025-02-15"))
    db.execute("UPDATE payments SET amount_paid=0 WHERE payment_id=?", (refund_id,))
    db.execute("UPDATE tenants SET status='Active' WHERE tenant_id=?", (estate.tenant_id,))
    ledger = LedgerController(models.tenants, models.units, models.payments)

    report = ledger.arrears_report(estate.property_id, month="2025-03")
    assert [(r.tenant_name, r.total_paid, r.balance) for r in report.rows] == [("Jane Wanjiru", 20000, 40000)]
