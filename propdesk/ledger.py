"""Rent ledger: arrears per tenant, plus property and expense summaries.

Everything here is recomputed from the rows passed in on every call; nothing
is cached between reports.
"""
import datetime
import logging
from collections import defaultdict
from typing import Iterable, Optional, Union

from dateutil.relativedelta import relativedelta

from propdesk.enums import ArrearsStatus, PaymentCategory
from propdesk.schemas import (
    ArrearsReport,
    ArrearsRow,
    Expense,
    ExpenseSummary,
    Payment,
    PropertySummary,
    SkippedTenant,
    Tenant,
    Unit,
)

logger = logging.getLogger(__name__)

MonthLike = Union[str, datetime.date, None]


def parse_date(value) -> Optional[datetime.date]:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not value:
        return None
    try:
        return datetime.date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def parse_month(value: MonthLike) -> Optional[datetime.date]:
    """Return the first day of the month named by ``value`` ("YYYY-MM" or a date)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.date):
        return value.replace(day=1)
    try:
        return datetime.datetime.strptime(str(value).strip(), "%Y-%m").date()
    except ValueError:
        raise ValueError(f"Month must be YYYY-MM, got {value!r}") from None


def month_end(day: datetime.date) -> datetime.date:
    return day + relativedelta(day=31)


def months_counted(lease_start: datetime.date, period_end: datetime.date) -> int:
    """Whole months from the lease-start month through the period month, inclusive.

    Zero when the period month is before the lease starts.
    """
    first = lease_start.replace(day=1)
    last = period_end.replace(day=1)
    if last < first:
        return 0
    delta = relativedelta(last, first)
    return delta.years * 12 + delta.months + 1


def classify(balance) -> ArrearsStatus:
    if balance > 0:
        return ArrearsStatus.ARREARS
    if balance < 0:
        return ArrearsStatus.OVERPAID
    return ArrearsStatus.CURRENT


def build_arrears_report(
    tenants: Iterable[Tenant],
    units: Iterable[Unit],
    payments: Iterable[Payment],
    month: MonthLike = None,
    today: Optional[datetime.date] = None,
) -> ArrearsReport:
    """Compute one arrears row per tenant.

    ``month`` picks the period ("YYYY-MM"); without it the period runs to
    ``today``. Expected rent is counted per month from the lease-start month
    at the tenant's current unit rent (0 when the unit cannot be resolved).
    Paid is the sum of Rent payments dated from the lease start through the
    period end. Tenants whose lease start does not parse are listed in
    ``skipped`` instead of getting a row.
    """
    today = today or datetime.date.today()
    period_month = parse_month(month)
    period_end = month_end(period_month) if period_month else today

    units_by_id = {u.unit_id: u for u in units}
    rent_by_tenant = defaultdict(list)
    for p in payments:
        if p.payment_category == PaymentCategory.RENT.value:
            rent_by_tenant[p.tenant_id].append(p)

    report = ArrearsReport(period_end=period_end)
    for tenant in tenants:
        lease_start = parse_date(tenant.lease_start_date)
        if lease_start is None:
            logger.warning("Skipping tenant %s (%s): unparseable lease start %r",
                           tenant.tenant_id, tenant.full_name, tenant.lease_start_date)
            report.skipped.append(SkippedTenant(
                tenant_id=tenant.tenant_id,
                tenant_name=tenant.full_name,
                lease_start_date=tenant.lease_start_date,
                reason="Lease start date is not a valid date",
            ))
            continue

        unit = units_by_id.get(tenant.unit_id)
        rent = (unit.monthly_rent or 0) if unit else 0
        months = months_counted(lease_start, period_end)
        expected = months * rent
        paid = sum(
            p.amount_paid for p in rent_by_tenant.get(tenant.tenant_id, [])
            if lease_start <= p.payment_date <= period_end
        )
        balance = expected - paid
        report.rows.append(ArrearsRow(
            tenant_id=tenant.tenant_id,
            tenant_name=tenant.full_name,
            unit_number=unit.unit_number if unit else "N/A",
            expected_amount=expected,
            total_paid=paid,
            balance=balance,
            status=classify(balance),
            months_counted=months,
        ))
    return report


def property_summary(payments: Iterable[Payment], report: ArrearsReport, tenant_count: int) -> PropertySummary:
    collected = sum(p.amount_paid for p in payments if p.payment_category == PaymentCategory.RENT.value)
    arrears = sum(r.balance for r in report.rows if r.status == ArrearsStatus.ARREARS.value)
    return PropertySummary(total_collected=collected, total_arrears=arrears, tenant_count=tenant_count)


def expense_summary(expenses: Iterable[Expense], today: Optional[datetime.date] = None) -> ExpenseSummary:
    today = today or datetime.date.today()
    expenses = list(expenses)
    this_month = [e for e in expenses
                  if e.expense_date.year == today.year and e.expense_date.month == today.month]
    by_category = defaultdict(float)
    for e in expenses:
        by_category[e.category] += e.amount
    return ExpenseSummary(
        total=sum(e.amount for e in expenses),
        this_month=sum(e.amount for e in this_month),
        count=len(expenses),
        by_category=dict(by_category),
    )


class LedgerController:
    def __init__(self, tenant_model, unit_model, payment_model):
        self.tenant_model = tenant_model
        self.unit_model = unit_model
        self.payment_model = payment_model

    def arrears_report(self, property_id=None, month=None, today=None) -> ArrearsReport:
        if property_id is None:
            tenants = self.tenant_model.all()
            units = self.unit_model.all()
        else:
            tenants = self.tenant_model.by_property(property_id)
            units = self.unit_model.by_property(property_id)
        payments = self.payment_model.rent_payments(t.tenant_id for t in tenants)
        return build_arrears_report(tenants, units, payments, month=month, today=today)

    def property_summary(self, property_id, month=None, today=None) -> PropertySummary:
        report = self.arrears_report(property_id, month=month, today=today)
        payments = self.payment_model.by_property(property_id)
        tenant_count = len(self.tenant_model.by_property(property_id))
        return property_summary(payments, report, tenant_count)
