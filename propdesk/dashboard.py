import datetime

from propdesk.config import CURRENCY
from propdesk.database import Database
from propdesk.models import ActivityModel, TaskModel
from propdesk.schemas import DashboardStats


class DashboardController:
    """Summary cards for the landing tab. Every call re-queries the database."""

    def __init__(self, db: Database, activity_model: ActivityModel, task_model: TaskModel):
        self.db = db
        self.activity_model = activity_model
        self.task_model = task_model

    def stats(self, today=None) -> DashboardStats:
        today = today or datetime.date.today()
        month = today.strftime("%Y-%m")
        total_units = self.db.scalar("SELECT COUNT(*) FROM units")
        occupied = self.db.scalar("SELECT COUNT(*) FROM units WHERE lower(unit_status)='occupied'")
        occupancy = round(occupied * 100.0 / total_units, 1) if total_units else 0.0
        return DashboardStats(
            total_properties=self.db.scalar("SELECT COUNT(*) FROM properties"),
            total_units=total_units,
            occupied_units=occupied,
            occupancy_rate=occupancy,
            active_tenants=self.db.scalar("SELECT COUNT(*) FROM tenants WHERE lower(status)='active'"),
            average_rent=self.db.scalar("SELECT AVG(monthly_rent) FROM units WHERE monthly_rent IS NOT NULL"),
            monthly_revenue=self.db.scalar(
                "SELECT SUM(amount_paid) FROM payments WHERE payment_status='Paid' AND payment_month=?", (month,)),
            open_complaints=self.db.scalar("SELECT COUNT(*) FROM complaints WHERE status != 'Resolved'"),
            monthly_expenses=self.db.scalar(
                "SELECT SUM(amount) FROM expenses WHERE strftime('%Y-%m', expense_date)=?", (month,)),
        )

    def summary_cards(self, today=None):
        """Return (title, value, note) triples in display order."""
        s = self.stats(today)
        return [
            ("Properties", str(s.total_properties), f"{s.total_units} units"),
            ("Occupancy", f"{s.occupancy_rate:.1f}%", f"{s.occupied_units} of {s.total_units} occupied"),
            ("Active Tenants", str(s.active_tenants), ""),
            ("Monthly Revenue", f"{CURRENCY} {s.monthly_revenue:,.2f}", "Paid this month"),
            ("Average Rent", f"{CURRENCY} {s.average_rent:,.2f}", "per unit"),
            ("Open Complaints", str(s.open_complaints), "not resolved"),
            ("Monthly Expenses", f"{CURRENCY} {s.monthly_expenses:,.2f}", "this month"),
        ]

    def recent_activities(self, limit=5):
        return self.activity_model.recent(limit)

    def upcoming_tasks(self, limit=5):
        return self.task_model.upcoming(limit)
