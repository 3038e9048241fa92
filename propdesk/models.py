import datetime
import logging
import uuid
from typing import List, Optional

from pydantic import ValidationError

from propdesk.database import Database
from propdesk.errors import ConstraintError, NotFoundError, ReferenceInUseError, RowValidationError
from propdesk.schemas import (
    Activity,
    Block,
    Complaint,
    Expense,
    Manager,
    Payment,
    Property,
    Task,
    Tenant,
    Unit,
)

logger = logging.getLogger(__name__)


class EntityModel:
    """Row access for one table.

    Subclasses name the table, its primary key, the columns a form writes,
    and the SELECT (with joins for display names) used for listing.
    """

    table = ""
    pk = ""
    alias = ""
    schema = None
    columns = ()
    select_sql = ""
    order_by = ""
    touch_on_update = False

    # Client-side search and CSV export, as (header, attribute)
    search_fields = ()
    csv_columns = ()

    def __init__(self, db: Database):
        self.db = db

    def _record(self, row):
        data = dict(row)
        try:
            return self.schema.model_validate(data)
        except ValidationError as exc:
            raise RowValidationError(self.table, data, str(exc)) from exc

    def _select(self, where="", params=()):
        sql = self.select_sql
        if where:
            sql += f" WHERE {where}"
        if self.order_by:
            sql += f" ORDER BY {self.order_by}"
        return [self._record(r) for r in self.db.query(sql, params)]

    def all(self):
        return self._select()

    def get(self, pk):
        rows = self._select(f"{self.alias}.{self.pk}=?", (pk,))
        return rows[0] if rows else None

    def new_pk(self):
        return None

    def save(self, record):
        """Insert when the record has no primary key, otherwise replace every form column."""
        values = [_db_value(getattr(record, c)) for c in self.columns]
        pk_value = getattr(record, self.pk)
        if pk_value is None:
            columns = list(self.columns)
            generated = self.new_pk()
            if generated is not None:
                columns.insert(0, self.pk)
                values.insert(0, generated)
            placeholders = ",".join("?" * len(columns))
            rowid = self.db.insert(
                f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})", values)
            new_id = generated if generated is not None else rowid
            logger.info("Created %s #%s", self.table, new_id)
            self.after_insert(record, new_id)
            return new_id

        assignments = ", ".join(f"{c}=?" for c in self.columns)
        if self.touch_on_update:
            assignments += ", updated_at=CURRENT_TIMESTAMP"
        affected = self.db.execute(
            f"UPDATE {self.table} SET {assignments} WHERE {self.pk}=?", values + [pk_value])
        if affected != 1:
            raise NotFoundError(self.table, pk_value)
        logger.info("Updated %s #%s", self.table, pk_value)
        return pk_value

    def after_insert(self, record, new_id):
        pass

    def delete(self, pk):
        try:
            affected = self.db.execute(f"DELETE FROM {self.table} WHERE {self.pk}=?", (pk,))
        except ConstraintError as exc:
            for ref_table, column in self.db.references_to(self.table):
                count = self.db.scalar(f"SELECT COUNT(*) FROM {ref_table} WHERE {column}=?", (pk,))
                if count:
                    raise ReferenceInUseError(self.table, pk, ref_table, count) from exc
            raise
        if affected:
            logger.info("Deleted %s #%s", self.table, pk)
        return affected == 1


def _db_value(value):
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


class ManagerModel(EntityModel):
    table = "managers"
    pk = "manager_id"
    alias = "m"
    schema = Manager
    columns = ("name", "email", "phone", "hire_date")
    select_sql = "SELECT m.* FROM managers m"
    order_by = "m.name"
    search_fields = ("name", "email", "phone")
    csv_columns = (
        ("ID", "manager_id"),
        ("Name", "name"),
        ("Email", "email"),
        ("Phone", "phone"),
        ("Hire Date", "hire_date"),
    )


class PropertyModel(EntityModel):
    table = "properties"
    pk = "property_id"
    alias = "p"
    schema = Property
    columns = ("name", "address", "total_units", "property_type", "status", "last_inspection", "manager_id")
    select_sql = """SELECT p.*, m.name AS manager_name
                    FROM properties p LEFT JOIN managers m ON p.manager_id = m.manager_id"""
    order_by = "p.name"
    touch_on_update = True
    search_fields = ("name", "address")
    csv_columns = (
        ("ID", "property_id"),
        ("Name", "name"),
        ("Address", "address"),
        ("Total Units", "total_units"),
        ("Type", "property_type"),
        ("Status", "status"),
        ("Last Inspection", "last_inspection"),
        ("Manager", "manager_name"),
    )


class BlockModel(EntityModel):
    table = "blocks"
    pk = "block_id"
    alias = "b"
    schema = Block
    columns = ("block_name", "property_id", "floor_count", "notes")
    select_sql = """SELECT b.block_id, b.block_name, b.property_id, b.floor_count, b.notes, p.name AS property_name
                    FROM blocks b LEFT JOIN properties p ON b.property_id = p.property_id"""
    order_by = "b.block_name"
    search_fields = ("block_name", "property_name")
    csv_columns = (
        ("Block ID", "block_id"),
        ("Block Name", "block_name"),
        ("Property ID", "property_id"),
        ("Property Name", "property_name"),
        ("Floor Count", "floor_count"),
        ("Notes", "notes"),
    )

    def by_property(self, property_id):
        return self._select("b.property_id=?", (property_id,))


class UnitModel(EntityModel):
    table = "units"
    pk = "unit_id"
    alias = "u"
    schema = Unit
    columns = ("unit_number", "property_id", "block_id", "floor_number", "unit_status", "unit_type",
               "bedroom_count", "bathroom_count", "monthly_rent", "security_deposit", "tenant_id", "notes")
    select_sql = """SELECT u.*, p.name AS property_name, b.block_name, t.full_name AS tenant_name
                    FROM units u
                    LEFT JOIN properties p ON u.property_id = p.property_id
                    LEFT JOIN blocks b ON u.block_id = b.block_id
                    LEFT JOIN tenants t ON u.tenant_id = t.tenant_id"""
    order_by = "u.unit_number"
    search_fields = ("unit_number", "property_name", "block_name", "unit_type")
    csv_columns = (
        ("ID", "unit_id"),
        ("Unit Number", "unit_number"),
        ("Property", "property_name"),
        ("Block", "block_name"),
        ("Floor", "floor_number"),
        ("Status", "unit_status"),
        ("Type", "unit_type"),
        ("Bedrooms", "bedroom_count"),
        ("Bathrooms", "bathroom_count"),
        ("Monthly Rent", "monthly_rent"),
        ("Deposit", "security_deposit"),
        ("Tenant", "tenant_name"),
    )

    def by_property(self, property_id):
        return self._select("u.property_id=?", (property_id,))

    def available(self):
        return self._select("lower(u.unit_status)='vacant'")


class TenantModel(EntityModel):
    table = "tenants"
    pk = "tenant_id"
    alias = "t"
    schema = Tenant
    columns = ("full_name", "phone_number", "email", "id_number", "lease_start_date", "lease_end_date",
               "rent_amount", "deposit_amount", "unit_id", "status")
    select_sql = """SELECT t.*, u.unit_number, u.property_id
                    FROM tenants t LEFT JOIN units u ON t.unit_id = u.unit_id"""
    order_by = "t.full_name"
    touch_on_update = True
    search_fields = ("full_name", "email", "phone_number", "unit_number")
    csv_columns = (
        ("ID", "tenant_id"),
        ("Name", "full_name"),
        ("Phone", "phone_number"),
        ("Email", "email"),
        ("Unit", "unit_number"),
        ("Lease Start", "lease_start_date"),
        ("Lease End", "lease_end_date"),
        ("Rent", "rent_amount"),
        ("Status", "status"),
    )

    def by_property(self, property_id):
        return self._select("u.property_id=?", (property_id,))


class PaymentModel(EntityModel):
    table = "payments"
    pk = "payment_id"
    alias = "p"
    schema = Payment
    columns = ("tenant_id", "unit_id", "property_id", "amount_paid", "payment_date", "due_date",
               "payment_status", "payment_method", "payment_category", "receipt_number",
               "transaction_reference", "remarks", "payment_month")
    select_sql = """SELECT p.*, t.full_name AS tenant_name, u.unit_number, pr.name AS property_name
                    FROM payments p
                    LEFT JOIN tenants t ON p.tenant_id = t.tenant_id
                    LEFT JOIN units u ON p.unit_id = u.unit_id
                    LEFT JOIN properties pr ON p.property_id = pr.property_id"""
    order_by = "p.payment_date DESC"
    touch_on_update = True
    search_fields = ("tenant_name", "unit_number", "property_name", "receipt_number")
    csv_columns = (
        ("ID", "payment_id"),
        ("Tenant", "tenant_name"),
        ("Unit", "unit_number"),
        ("Property", "property_name"),
        ("Amount", "amount_paid"),
        ("Payment Date", "payment_date"),
        ("Due Date", "due_date"),
        ("Month", "payment_month"),
        ("Status", "payment_status"),
        ("Method", "payment_method"),
        ("Category", "payment_category"),
    )

    def __init__(self, db: Database, activities: Optional["ActivityModel"] = None):
        super().__init__(db)
        self.activities = activities or ActivityModel(db)

    def new_pk(self):
        return uuid.uuid4().hex

    def save(self, record):
        # due_date may have been reassigned since validation
        record.payment_month = record.due_date.strftime("%Y-%m")
        return super().save(record)

    def after_insert(self, record, new_id):
        unit = self.db.query("SELECT unit_number FROM units WHERE unit_id=?", (record.unit_id,))
        label = unit[0]["unit_number"] if unit else record.unit_id
        self.activities.record(
            "payment", f"{record.payment_category} payment of {record.amount_paid:,.2f} received from Unit {label}")

    def by_property(self, property_id):
        return self._select("p.property_id=?", (property_id,))

    def rent_payments(self, tenant_ids=None):
        if tenant_ids is None:
            return self._select("p.payment_category='Rent'")
        tenant_ids = list(tenant_ids)
        if not tenant_ids:
            return []
        marks = ",".join("?" * len(tenant_ids))
        return self._select(f"p.payment_category='Rent' AND p.tenant_id IN ({marks})", tenant_ids)


class ComplaintModel(EntityModel):
    table = "complaints"
    pk = "complaint_id"
    alias = "c"
    schema = Complaint
    columns = ("unit_id", "tenant_id", "description", "status")
    select_sql = """SELECT c.complaint_id, c.unit_id, c.tenant_id, c.description, c.status, c.created_at,
                           c.updated_at, u.unit_number, t.full_name AS tenant_name
                    FROM complaints c
                    LEFT JOIN units u ON c.unit_id = u.unit_id
                    LEFT JOIN tenants t ON c.tenant_id = t.tenant_id"""
    order_by = "c.created_at DESC"
    touch_on_update = True
    search_fields = ("description", "unit_number")
    csv_columns = (
        ("ID", "complaint_id"),
        ("Unit", "unit_number"),
        ("Tenant", "tenant_name"),
        ("Description", "description"),
        ("Status", "status"),
        ("Created At", "created_at"),
    )

    def __init__(self, db: Database, activities: Optional["ActivityModel"] = None):
        super().__init__(db)
        self.activities = activities or ActivityModel(db)

    def after_insert(self, record, new_id):
        unit = self.db.query("SELECT unit_number FROM units WHERE unit_id=?", (record.unit_id,))
        label = unit[0]["unit_number"] if unit else record.unit_id
        self.activities.record("maintenance", f"Complaint submitted for Unit {label}")


class ExpenseModel(EntityModel):
    table = "expenses"
    pk = "expense_id"
    alias = "e"
    schema = Expense
    columns = ("amount", "category", "description", "expense_date", "unit_id", "block_id", "property_id",
               "payment_method", "vendor", "invoice_number", "paid_by")
    select_sql = """SELECT e.*, u.unit_number, b.block_name, p.name AS property_name
                    FROM expenses e
                    LEFT JOIN units u ON e.unit_id = u.unit_id
                    LEFT JOIN blocks b ON e.block_id = b.block_id
                    LEFT JOIN properties p ON e.property_id = p.property_id"""
    order_by = "e.expense_date DESC"
    search_fields = ("description", "vendor", "unit_number")
    csv_columns = (
        ("ID", "expense_id"),
        ("Date", "expense_date"),
        ("Category", "category"),
        ("Description", "description"),
        ("Amount", "amount"),
        ("Unit", "unit_number"),
        ("Block", "block_name"),
        ("Property", "property_name"),
        ("Method", "payment_method"),
        ("Vendor", "vendor"),
    )

    def by_property(self, property_id):
        return self._select("e.property_id=?", (property_id,))


class ActivityModel:
    def __init__(self, db: Database):
        self.db = db

    def record(self, activity_type, message):
        self.db.insert("INSERT INTO recent_activities (activity_type, message, time) VALUES (?,?,?)",
                       (activity_type, message, datetime.datetime.now().isoformat(timespec="minutes")))

    def recent(self, limit=5) -> List[Activity]:
        rows = self.db.query("SELECT * FROM recent_activities ORDER BY recent_activity_id DESC LIMIT ?", (limit,))
        return [Activity.model_validate(dict(r)) for r in rows]


class TaskModel:
    def __init__(self, db: Database):
        self.db = db

    def upcoming(self, limit=5) -> List[Task]:
        rows = self.db.query("SELECT * FROM tasks ORDER BY due_date LIMIT ?", (limit,))
        return [Task.model_validate(dict(r)) for r in rows]
