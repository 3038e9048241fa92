from types import SimpleNamespace

import pytest

from propdesk.schemas import Block

app = pytest.importorskip("propdesk.app")


class FakeCombo:
    def __init__(self):
        self.values = None

    def configure(self, values):
        self.values = values


class FakeVar:
    def __init__(self, value):
        self.value = value

    def get(self):
        return self.value

    def set(self, value):
        self.value = value


def admin_stub(models):
    stub = SimpleNamespace(
        property_model=models.properties,
        block_model=models.blocks,
        arrears_property_combo=FakeCombo(),
        arrears_property_var=FakeVar("99 - Gone"),
    )
    stub.property_choices = lambda: app.AdminInterface.property_choices(stub)
    return stub


def test_arrears_property_list(models, estate):
    stub = admin_stub(models)
    app.AdminInterface.load_arrears_properties(stub)
    assert stub.arrears_property_combo.values == [app.ALL_PROPERTIES, f"{estate.property_id} - Sunset Lofts"]
    assert stub.arrears_property_var.get() == app.ALL_PROPERTIES


def test_arrears_property_list_reports_storage_failure(monkeypatch, db, models):
    shown = []
    monkeypatch.setattr(app.messagebox, "showerror", lambda title, message: shown.append(message))
    stub = admin_stub(models)
    db.close()
    app.AdminInterface.load_arrears_properties(stub)
    assert shown == ["Could not load properties. See the log for details."]
    assert stub.arrears_property_combo.values is None


def test_block_names_for_expense_facet(models, estate):
    models.blocks.save(Block(block_name="Annex", property_id=estate.property_id))
    models.blocks.save(Block(block_name="Block A", property_id=estate.property_id))
    assert app.AdminInterface.block_names(admin_stub(models)) == ["Annex", "Block A"]
