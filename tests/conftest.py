from types import SimpleNamespace

import pytest

from propdesk.database import Database
from propdesk.models import (
    ActivityModel,
    BlockModel,
    ComplaintModel,
    ExpenseModel,
    ManagerModel,
    PaymentModel,
    PropertyModel,
    TaskModel,
    TenantModel,
    UnitModel,
)
from propdesk.schemas import Block, Manager, Payment, Property, Tenant, Unit


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "propdesk-test.db"))
    yield database
    database.close()


@pytest.fixture
def models(db):
    activities = ActivityModel(db)
    return SimpleNamespace(
        activities=activities,
        tasks=TaskModel(db),
        managers=ManagerModel(db),
        properties=PropertyModel(db),
        blocks=BlockModel(db),
        units=UnitModel(db),
        tenants=TenantModel(db),
        payments=PaymentModel(db, activities),
        complaints=ComplaintModel(db, activities),
        expenses=ExpenseModel(db),
    )


@pytest.fixture
def estate(models):
    """One manager, property, block, unit (rent 20000) and tenant with a lease from 2025-01-15."""
    manager_id = models.managers.save(Manager(name="Alice Johnson", phone="0711000111", hire_date="2023-01-15"))
    property_id = models.properties.save(Property(
        name="Sunset Lofts", address="12 Ngong Road", total_units=3, property_type="2bedroom",
        manager_id=manager_id))
    block_id = models.blocks.save(Block(block_name="Block A", property_id=property_id, floor_count=3))
    unit_id = models.units.save(Unit(
        unit_number="A1", property_id=property_id, block_id=block_id, unit_type="2bedroom",
        monthly_rent=20000))
    tenant_id = models.tenants.save(Tenant(full_name="Jane Wanjiru", lease_start_date="2025-01-15", unit_id=unit_id))
    return SimpleNamespace(manager_id=manager_id, property_id=property_id, block_id=block_id,
                           unit_id=unit_id, tenant_id=tenant_id)


@pytest.fixture
def make_payment(estate):
    def factory(amount=20000, paid_on="2025-01-20", due="2025-01-15", category="Rent", status="Paid", **extra):
        return Payment(
            tenant_id=estate.tenant_id,
            unit_id=estate.unit_id,
            property_id=estate.property_id,
            amount_paid=amount,
            payment_date=paid_on,
            due_date=due,
            payment_status=status,
            payment_method="Mobile Money",
            payment_category=category,
            **extra,
        )
    return factory
