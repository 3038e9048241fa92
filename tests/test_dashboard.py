import datetime

from propdesk.dashboard import DashboardController
from propdesk.schemas import Complaint, Expense, Unit


def test_empty_database_reports_zeros(db, models):
    stats = DashboardController(db, models.activities, models.tasks).stats()
    assert stats.total_properties == 0
    assert stats.total_units == 0
    assert stats.occupancy_rate == 0
    assert stats.average_rent == 0
    assert stats.monthly_revenue == 0


def test_aggregates(db, models, estate, make_payment):
    today = datetime.date.today()
    this_month = today.replace(day=1)
    last_month = this_month - datetime.timedelta(days=1)

    unit = models.units.get(estate.unit_id)
    unit.unit_status = "Occupied"
    models.units.save(unit)
    models.units.save(Unit(unit_number="A2", property_id=estate.property_id, unit_type="2bedroom",
                           monthly_rent=10000))
    models.payments.save(make_payment(amount=20000, paid_on=this_month, due=this_month))
    models.payments.save(make_payment(amount=5000, paid_on=this_month, due=this_month, status="Pending"))
    models.payments.save(make_payment(amount=7000, paid_on=last_month, due=last_month))
    models.complaints.save(Complaint(unit_id=estate.unit_id, description="Leaking tap"))
    models.complaints.save(Complaint(unit_id=estate.unit_id, description="Door", status="Resolved"))
    models.expenses.save(Expense(amount=4500, category="Maintenance", expense_date=today,
                                 payment_method="Cash", vendor="ProFix"))
    models.expenses.save(Expense(amount=800, category="Cleaning", expense_date=last_month,
                                 payment_method="Cash", vendor="Shine"))

    dashboard = DashboardController(db, models.activities, models.tasks)
    stats = dashboard.stats(today)
    assert stats.total_properties == 1
    assert stats.total_units == 2
    assert stats.occupied_units == 1
    assert stats.occupancy_rate == 50.0
    assert stats.active_tenants == 1
    assert stats.average_rent == 15000
    assert stats.monthly_revenue == 20000
    assert stats.open_complaints == 1
    assert stats.monthly_expenses == 4500

    cards = dict((title, value) for title, value, _ in dashboard.summary_cards(today))
    assert cards["Occupancy"] == "50.0%"
    assert cards["Monthly Revenue"].endswith("20,000.00")


def test_recent_activities_and_tasks(db, models, estate, make_payment):
    db.execute("INSERT INTO tasks (task_name, due_date, priority) VALUES (?,?,?)", ("Later", "2030-01-01", "low"))
    db.execute("INSERT INTO tasks (task_name, due_date, priority) VALUES (?,?,?)", ("Sooner", "2029-01-01", "high"))
    models.payments.save(make_payment())
    dashboard = DashboardController(db, models.activities, models.tasks)
    assert [t.task_name for t in dashboard.upcoming_tasks()] == ["Sooner", "Later"]
    activities = dashboard.recent_activities(limit=1)
    assert len(activities) == 1
    assert activities[0].activity_type == "payment"
