import datetime
import logging
from collections import namedtuple

import customtkinter as ctk
import tkinter as tk
from tkinter import ttk, messagebox, filedialog

from propdesk.config import CURRENCY, DB_FILE, SEED_DEMO, setup_logging
from propdesk.dashboard import DashboardController
from propdesk.database import Database
from propdesk.enums import (
    EXPENSE_CATEGORIES,
    PROPERTY_TYPES,
    UNIT_STATUSES,
    ComplaintStatus,
    PaymentCategory,
    PaymentMethod,
    PaymentStatus,
    TenantStatus,
    values,
)
from propdesk.errors import FormError, NotFoundError, PropdeskError, ReferenceInUseError, StorageError
from propdesk.forms import clean_form
from propdesk.ledger import LedgerController, expense_summary
from propdesk.listing import ALL, SortState, filter_rows, page_count, paginate, write_csv
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

logger = logging.getLogger(__name__)

ctk.set_appearance_mode("System")
ctk.set_default_color_theme("blue")

# kind is one of text, date, choice (fixed values) or ref ("id - label" from another table)
FieldSpec = namedtuple("FieldSpec", "name label kind choices required", defaults=("text", None, True))

ARREARS_COLUMNS = (
    ("Tenant", "tenant_name"),
    ("Unit", "unit_number"),
    ("Months", "months_counted"),
    ("Expected", "expected_amount"),
    ("Paid", "total_paid"),
    ("Balance", "balance"),
    ("Status", "status"),
)

ALL_PROPERTIES = "All properties"


def _fmt(value):
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.2f}"
    return value


def ref_choices(rows, pk, label):
    return [f"{getattr(r, pk)} - {getattr(r, label)}" for r in rows]


def ref_id(text):
    text = (text or "").strip()
    if not text:
        return None
    return int(text.split(" - ")[0])


class EntityTab:
    """A list view for one model: search, facets, sortable headings, optional paging, CRUD buttons.

    ``facets`` is a sequence of ``(field, options)``; ``options`` may be a
    callable, re-read on every load.
    """

    def __init__(self, app, frame, model, fields, noun, facets=(), paged=False, on_render=None,
                 source=None, on_change=None, extra_buttons=()):
        self.app = app
        self.frame = frame
        self.model = model
        self.fields = fields
        self.noun = noun
        self.facets = list(facets)
        self.paged = paged
        self.on_render = on_render
        self.source = source or model.all
        self.on_change = on_change or app.refresh_all
        self.extra_buttons = extra_buttons
        self.sort = SortState()
        self.page = 1
        self.rows = []
        self._pks = {}
        self.build()

    def build(self):
        top = ttk.Frame(self.frame, padding=6)
        top.pack(side="top", fill="x")
        ttk.Button(top, text=f"Add {self.noun}", command=self.add_dialog).pack(side="left", padx=4)
        ttk.Button(top, text=f"Edit {self.noun}", command=self.edit_dialog).pack(side="left", padx=4)
        ttk.Button(top, text=f"Delete {self.noun}", command=self.delete_selected).pack(side="left", padx=4)
        ttk.Button(top, text="Export CSV", command=self.export_csv).pack(side="left", padx=4)
        ttk.Button(top, text="Refresh", command=self.load).pack(side="left", padx=4)
        for text, command in self.extra_buttons:
            ttk.Button(top, text=text, command=command).pack(side="left", padx=4)

        self.search_var = tk.StringVar()
        self.search_var.trace_add("write", lambda *_: self.reset_page())
        ttk.Entry(top, textvariable=self.search_var, width=28).pack(side="right", padx=4)
        ttk.Label(top, text="Search").pack(side="right", padx=4)

        self.facet_vars = {}
        self.facet_combos = {}
        for field, options in self.facets:
            var = tk.StringVar(value=ALL)
            values = [] if callable(options) else list(options)
            combo = ttk.Combobox(top, values=[ALL] + values, state="readonly", width=16, textvariable=var)
            combo.bind("<<ComboboxSelected>>", lambda _e: self.reset_page())
            combo.pack(side="right", padx=4)
            ttk.Label(top, text=field.replace("_", " ").title()).pack(side="right", padx=4)
            self.facet_vars[field] = var
            self.facet_combos[field] = combo

        cols = [attr for _, attr in self.model.csv_columns]
        self.tree = ttk.Treeview(self.frame, columns=cols, show="headings", height=18)
        for header, attr in self.model.csv_columns:
            self.tree.heading(attr, text=header, command=lambda a=attr: self.sort_by(a))
            self.tree.column(attr, width=220 if attr in ("description", "address", "notes") else 120)
        self.tree.bind("<Double-1>", lambda _e: self.edit_dialog())

        if self.paged:
            pager = ttk.Frame(self.frame, padding=4)
            pager.pack(side="bottom", fill="x")
            ttk.Button(pager, text="< Prev", command=lambda: self.go_page(-1)).pack(side="left", padx=4)
            self.page_label = ttk.Label(pager, text="Page 1 of 1")
            self.page_label.pack(side="left", padx=8)
            ttk.Button(pager, text="Next >", command=lambda: self.go_page(1)).pack(side="left", padx=4)
        self.tree.pack(fill="both", expand=True, padx=8, pady=8)

    def load(self):
        try:
            self.rows = self.source()
            self.load_facet_options()
        except StorageError:
            self.rows = []
            messagebox.showerror("Error", f"Could not load {self.model.table}. See the log for details.")
        self.render()

    def load_facet_options(self):
        for field, options in self.facets:
            if not callable(options):
                continue
            choices = [ALL] + list(options())
            self.facet_combos[field].configure(values=choices)
            if self.facet_vars[field].get() not in choices:
                self.facet_vars[field].set(ALL)

    def visible_rows(self):
        facets = {field: var.get() for field, var in self.facet_vars.items()}
        rows = filter_rows(self.rows, self.search_var.get(), self.model.search_fields, **facets)
        return self.sort.apply(rows)

    def render(self):
        for r in self.tree.get_children():
            self.tree.delete(r)
        self._pks = {}
        rows = self.visible_rows()
        shown = rows
        if self.paged:
            self.page = min(self.page, page_count(rows))
            shown = paginate(rows, self.page)
            self.page_label.configure(text=f"Page {self.page} of {page_count(rows)} ({len(rows)} rows)")
        for row in shown:
            iid = self.tree.insert("", tk.END, values=[_fmt(getattr(row, a, None)) for _, a in self.model.csv_columns])
            self._pks[iid] = getattr(row, self.model.pk)
        if self.on_render:
            self.on_render(rows)

    def reset_page(self):
        self.page = 1
        self.render()

    def go_page(self, step):
        self.page = max(1, self.page + step)
        self.render()

    def sort_by(self, attr):
        self.sort.toggle(attr)
        self.render()

    def selected_pk(self):
        sel = self.tree.selection()
        if not sel:
            messagebox.showwarning("Select", f"Please select a {self.noun.lower()} first")
            return None
        return self._pks.get(sel[0])

    def add_dialog(self):
        dlg = EntityDialog(self.frame.winfo_toplevel(), self.model.table, self.noun, self.fields)
        self.app.wait_window(dlg)
        if dlg.saved:
            self.save(dlg.record, "added")

    def edit_dialog(self):
        pk = self.selected_pk()
        if pk is None:
            return
        record = self.model.get(pk)
        if record is None:
            messagebox.showwarning("Not Found", f"{self.noun} no longer exists")
            self.load()
            return
        dlg = EntityDialog(self.frame.winfo_toplevel(), self.model.table, self.noun, self.fields, record=record, pk=self.model.pk)
        self.app.wait_window(dlg)
        if dlg.saved:
            self.save(dlg.record, "updated")

    def save(self, record, verb):
        try:
            self.model.save(record)
        except NotFoundError as e:
            messagebox.showwarning("Not Found", str(e))
        except StorageError as e:
            messagebox.showerror("Error", f"Could not save {self.noun.lower()}: {e}")
        else:
            messagebox.showinfo("Saved", f"{self.noun} {verb}")
        self.on_change()

    def delete_selected(self):
        pk = self.selected_pk()
        if pk is None:
            return
        if not messagebox.askyesno("Confirm", f"Delete {self.noun.lower()} #{pk}? This cannot be undone."):
            return
        try:
            deleted = self.model.delete(pk)
        except ReferenceInUseError as e:
            messagebox.showerror("Cannot Delete", f"{e}.\nRemove or reassign those rows first.")
            return
        except StorageError:
            messagebox.showerror("Error", f"Failed to delete {self.noun.lower()}. See the log for details.")
            return
        if deleted:
            messagebox.showinfo("Deleted", f"{self.noun} deleted")
        else:
            messagebox.showwarning("Not Found", f"{self.noun} #{pk} was already removed")
        self.on_change()

    def export_csv(self):
        rows = self.visible_rows()
        if not rows:
            messagebox.showwarning("No Data", f"No {self.model.table} to export")
            return
        filepath = filedialog.asksaveasfilename(defaultextension=".csv", filetypes=[("CSV", "*.csv")],
                                                initialfile=f"{self.model.table}_{datetime.date.today():%Y-%m-%d}.csv",
                                                title=f"Save {self.model.table} CSV")
        if not filepath:
            return
        try:
            write_csv(filepath, rows, self.model.csv_columns)
        except OSError as e:
            messagebox.showerror("Error", f"Export failed: {e}")
            return
        messagebox.showinfo("Exported", f"{len(rows)} row(s) exported to {filepath}")


class EntityDialog(ctk.CTkToplevel):
    def __init__(self, parent, table, noun, fields, record=None, pk=None):
        super().__init__(parent)
        self.parent = parent
        self.table = table
        self.fields = fields
        self.source = record
        self.pk = pk
        self.saved = False
        self.record = None
        self.widgets = {}
        self.title(f"{'Edit' if record else 'New'} {noun}")
        self.build()
        self.grab_set()

    def build(self):
        self.geometry(f"560x{120 + 40 * len(self.fields)}")
        frm = ctk.CTkFrame(self, corner_radius=8)
        frm.pack(fill="both", expand=True, padx=10, pady=10)
        for i, f in enumerate(self.fields):
            label = f.label if f.required else f"{f.label} (optional)"
            ctk.CTkLabel(frm, text=label).grid(row=i, column=0, sticky="w", pady=4, padx=6)
            if f.kind in ("choice", "ref"):
                options = list(f.choices() if callable(f.choices) else f.choices)
                if not f.required:
                    options.insert(0, "")
                var = tk.StringVar()
                widget = ttk.Combobox(frm, values=options, state="readonly", width=42, textvariable=var)
                if options and f.required and self.source is None:
                    widget.current(0)
            else:
                widget = ctk.CTkEntry(frm, width=320)
                if f.kind == "date" and self.source is None and f.required:
                    widget.insert(0, datetime.date.today().isoformat())
            widget.grid(row=i, column=1, padx=6, pady=4, sticky="w")
            self.widgets[f.name] = widget

        if self.source is not None:
            self.fill(self.source)

        btnfrm = ctk.CTkFrame(frm)
        btnfrm.grid(row=len(self.fields), column=0, columnspan=2, pady=12)
        ctk.CTkButton(btnfrm, text="Save", width=120, command=self.save).pack(side="left", padx=8)
        ctk.CTkButton(btnfrm, text="Cancel", width=120, command=self.destroy).pack(side="left", padx=8)

    def fill(self, record):
        for f in self.fields:
            value = getattr(record, f.name, None)
            widget = self.widgets[f.name]
            if value is None:
                continue
            if f.kind == "ref":
                prefix = f"{value} - "
                match = [v for v in widget["values"] if str(v).startswith(prefix)]
                widget.set(match[0] if match else str(value))
            elif f.kind == "choice":
                widget.set(str(value))
            else:
                text = value.isoformat() if isinstance(value, datetime.date) else str(value)
                widget.insert(0, text)

    def collect(self):
        data = {}
        for f in self.fields:
            raw = self.widgets[f.name].get().strip()
            data[f.name] = ref_id(raw) if f.kind == "ref" else raw
        if self.source is not None:
            data[self.pk] = getattr(self.source, self.pk)
        return data

    def save(self):
        try:
            self.record = clean_form(self.table, self.collect())
        except FormError as e:
            labels = {f.name: f.label for f in self.fields}
            lines = [f"{labels.get(k, k)}: {v}" for k, v in e.errors.items()]
            messagebox.showwarning("Input", "\n".join(lines), parent=self)
            return
        self.saved = True
        self.destroy()


class PropertyDetailWindow(ctk.CTkToplevel):
    """One property's units and blocks (paged), with its rent and expense totals."""

    def __init__(self, app, prop):
        super().__init__(app)
        self.app = app
        self.prop = prop
        self.tabs = []
        self.title(f"Property - {prop.name}")
        self.geometry("1100x640")
        self.build()
        self.refresh_tabs()

    def build(self):
        header = ctk.CTkFrame(self, corner_radius=8)
        header.pack(side="top", fill="x", padx=8, pady=8)
        ctk.CTkLabel(header, text=self.prop.name, font=ctk.CTkFont(size=18, weight="bold")).pack(anchor="w", padx=8)
        ctk.CTkLabel(header, text=f"{self.prop.address}   Type: {self.prop.property_type}   "
                                  f"Manager: {self.prop.manager_name or '-'}").pack(anchor="w", padx=8)
        self.summary_label = ctk.CTkLabel(header, text="")
        self.summary_label.pack(anchor="w", padx=8, pady=(0, 6))

        notebook = ttk.Notebook(self)
        notebook.pack(fill="both", expand=True, padx=8, pady=8)
        pid = self.prop.property_id
        for title, model, fields, noun in (
            ("Units", self.app.unit_model, self.app.unit_fields(), "Unit"),
            ("Blocks", self.app.block_model, self.app.block_fields(), "Block"),
        ):
            frame = ttk.Frame(notebook)
            notebook.add(frame, text=title)
            self.tabs.append(EntityTab(self.app, frame, model, fields, noun, paged=True,
                                       source=lambda m=model: m.by_property(pid), on_change=self.refresh))

    def refresh(self):
        self.app.refresh_all()
        self.refresh_tabs()

    def refresh_tabs(self):
        for tab in self.tabs:
            tab.load()
        pid = self.prop.property_id
        try:
            rent = self.app.ledger_ctrl.property_summary(pid)
            spent = expense_summary(self.app.expense_model.by_property(pid))
        except PropdeskError:
            logger.exception("Summary for property %s failed", pid)
            self.summary_label.configure(text="Summary unavailable. See the log for details.")
            return
        self.summary_label.configure(
            text=f"Tenants: {rent.tenant_count}   Rent collected: {CURRENCY} {rent.total_collected:,.2f}   "
                 f"Arrears: {CURRENCY} {rent.total_arrears:,.2f}   Expenses: {CURRENCY} {spent.total:,.2f} "
                 f"({CURRENCY} {spent.this_month:,.2f} this month)")


class AdminInterface(ctk.CTk):
    def __init__(self, db: Database):
        super().__init__()
        self.db = db
        self.title("Property Management - Admin Dashboard")
        self.geometry("1280x760")
        self.protocol("WM_DELETE_WINDOW", self.on_close)
        self.activity_model = ActivityModel(db)
        self.task_model = TaskModel(db)
        self.manager_model = ManagerModel(db)
        self.property_model = PropertyModel(db)
        self.block_model = BlockModel(db)
        self.unit_model = UnitModel(db)
        self.tenant_model = TenantModel(db)
        self.payment_model = PaymentModel(db, self.activity_model)
        self.complaint_model = ComplaintModel(db, self.activity_model)
        self.expense_model = ExpenseModel(db)
        self.dashboard_ctrl = DashboardController(db, self.activity_model, self.task_model)
        self.ledger_ctrl = LedgerController(self.tenant_model, self.unit_model, self.payment_model)
        self.entity_tabs = []
        self.arrears_report = None
        self.create_widgets()
        self.refresh_all()

    def create_widgets(self):
        menubar = tk.Menu(self)
        file_menu = tk.Menu(menubar, tearoff=0)
        file_menu.add_command(label="Refresh", command=self.refresh_all)
        file_menu.add_command(label="Exit", command=self.on_close)
        menubar.add_cascade(label="File", menu=file_menu)
        self.configure(menu=menubar)

        header = ctk.CTkFrame(self, corner_radius=8)
        header.pack(side="top", fill="x", padx=12, pady=8)
        ctk.CTkLabel(header, text="Property Management", font=ctk.CTkFont(size=20, weight="bold")).pack(side="left", padx=8)
        ctk.CTkButton(header, text="Refresh", width=110, command=self.refresh_all).pack(side="right", padx=(8, 6))

        self.tabs = ttk.Notebook(self)
        self.tabs.pack(fill="both", expand=True, padx=12, pady=8)

        self.tab_dashboard = ttk.Frame(self.tabs)
        self.tabs.add(self.tab_dashboard, text="Dashboard")
        self._build_dashboard_tab()

        self.properties_tab = self._add_entity_tab(
            "Properties", self.property_model, self.property_fields(), "Property",
            extra_buttons=(("View Details", self.show_property_details),))
        self._add_entity_tab("Blocks", self.block_model, self.block_fields(), "Block", paged=True)
        self._add_entity_tab("Units", self.unit_model, self.unit_fields(), "Unit",
                             facets=[("unit_status", UNIT_STATUSES)], paged=True)
        self._add_entity_tab("Tenants", self.tenant_model, self.tenant_fields(), "Tenant",
                             facets=[("status", values(TenantStatus))])
        self._add_entity_tab("Managers", self.manager_model, self.manager_fields(), "Manager")
        self._add_entity_tab("Payments", self.payment_model, self.payment_fields(), "Payment",
                             facets=[("payment_category", values(PaymentCategory))])
        self._add_entity_tab("Complaints", self.complaint_model, self.complaint_fields(), "Complaint",
                             facets=[("status", values(ComplaintStatus))])
        self._build_expenses_tab()

        self.tab_arrears = ttk.Frame(self.tabs)
        self.tabs.add(self.tab_arrears, text="Arrears")
        self._build_arrears_tab()

    def _add_entity_tab(self, title, model, fields, noun, **options):
        frame = ttk.Frame(self.tabs)
        self.tabs.add(frame, text=title)
        tab = EntityTab(self, frame, model, fields, noun, **options)
        self.entity_tabs.append(tab)
        return tab

    def show_property_details(self):
        pk = self.properties_tab.selected_pk()
        if pk is None:
            return
        prop = self.property_model.get(pk)
        if prop is None:
            messagebox.showwarning("Not Found", "Property no longer exists")
            self.properties_tab.load()
            return
        PropertyDetailWindow(self, prop)

    # Form layouts

    def property_choices(self):
        return ref_choices(self.property_model.all(), "property_id", "name")

    def block_names(self):
        return sorted({b.block_name for b in self.block_model.all()})

    def manager_fields(self):
        return [
            FieldSpec("name", "Name"),
            FieldSpec("email", "Email", required=False),
            FieldSpec("phone", "Phone"),
            FieldSpec("hire_date", "Hire Date (YYYY-MM-DD)", "date"),
        ]

    def property_fields(self):
        return [
            FieldSpec("name", "Name"),
            FieldSpec("address", "Address"),
            FieldSpec("total_units", "Total Units"),
            FieldSpec("property_type", "Property Type", "choice", PROPERTY_TYPES),
            FieldSpec("status", "Status", "choice", ["active", "inactive"]),
            FieldSpec("last_inspection", "Last Inspection (YYYY-MM-DD)", "date", required=False),
            FieldSpec("manager_id", "Manager", "ref",
                      lambda: ref_choices(self.manager_model.all(), "manager_id", "name")),
        ]

    def block_fields(self):
        return [
            FieldSpec("block_name", "Block Name"),
            FieldSpec("property_id", "Property", "ref", self.property_choices),
            FieldSpec("floor_count", "Floor Count", required=False),
            FieldSpec("notes", "Notes", required=False),
        ]

    def unit_fields(self):
        return [
            FieldSpec("unit_number", "Unit Number"),
            FieldSpec("property_id", "Property", "ref", self.property_choices),
            FieldSpec("block_id", "Block", "ref",
                      lambda: ref_choices(self.block_model.all(), "block_id", "block_name"), required=False),
            FieldSpec("floor_number", "Floor", required=False),
            FieldSpec("unit_status", "Status", "choice", UNIT_STATUSES),
            FieldSpec("unit_type", "Type", "choice", PROPERTY_TYPES),
            FieldSpec("bedroom_count", "Bedrooms"),
            FieldSpec("bathroom_count", "Bathrooms"),
            FieldSpec("monthly_rent", "Monthly Rent", required=False),
            FieldSpec("security_deposit", "Security Deposit", required=False),
            FieldSpec("tenant_id", "Tenant", "ref",
                      lambda: ref_choices(self.tenant_model.all(), "tenant_id", "full_name"), required=False),
            FieldSpec("notes", "Notes", required=False),
        ]

    def tenant_fields(self):
        return [
            FieldSpec("full_name", "Full Name"),
            FieldSpec("phone_number", "Phone", required=False),
            FieldSpec("email", "Email", required=False),
            FieldSpec("id_number", "ID Number", required=False),
            FieldSpec("lease_start_date", "Lease Start (YYYY-MM-DD)", "date"),
            FieldSpec("lease_end_date", "Lease End (YYYY-MM-DD)", "date", required=False),
            FieldSpec("rent_amount", "Rent Amount", required=False),
            FieldSpec("deposit_amount", "Deposit Amount", required=False),
            FieldSpec("unit_id", "Unit", "ref",
                      lambda: ref_choices(self.unit_model.all(), "unit_id", "unit_number"), required=False),
            FieldSpec("status", "Status", "choice", values(TenantStatus)),
        ]

    def payment_fields(self):
        return [
            FieldSpec("tenant_id", "Tenant", "ref",
                      lambda: ref_choices(self.tenant_model.all(), "tenant_id", "full_name")),
            FieldSpec("unit_id", "Unit", "ref",
                      lambda: ref_choices(self.unit_model.all(), "unit_id", "unit_number")),
            FieldSpec("property_id", "Property", "ref", self.property_choices),
            FieldSpec("amount_paid", f"Amount ({CURRENCY})"),
            FieldSpec("payment_date", "Payment Date (YYYY-MM-DD)", "date"),
            FieldSpec("due_date", "Due Date (YYYY-MM-DD)", "date"),
            FieldSpec("payment_status", "Status", "choice", values(PaymentStatus)),
            FieldSpec("payment_method", "Method", "choice", values(PaymentMethod)),
            FieldSpec("payment_category", "Category", "choice", values(PaymentCategory)),
            FieldSpec("receipt_number", "Receipt Number", required=False),
            FieldSpec("transaction_reference", "Transaction Reference", required=False),
            FieldSpec("remarks", "Remarks", required=False),
        ]

    def complaint_fields(self):
        return [
            FieldSpec("unit_id", "Unit", "ref",
                      lambda: ref_choices(self.unit_model.all(), "unit_id", "unit_number")),
            FieldSpec("tenant_id", "Tenant", "ref",
                      lambda: ref_choices(self.tenant_model.all(), "tenant_id", "full_name"), required=False),
            FieldSpec("description", "Description"),
            FieldSpec("status", "Status", "choice", values(ComplaintStatus)),
        ]

    def expense_fields(self):
        return [
            FieldSpec("amount", f"Amount ({CURRENCY})"),
            FieldSpec("category", "Category", "choice", EXPENSE_CATEGORIES),
            FieldSpec("description", "Description", required=False),
            FieldSpec("expense_date", "Expense Date (YYYY-MM-DD)", "date"),
            FieldSpec("property_id", "Property", "ref", self.property_choices, required=False),
            FieldSpec("block_id", "Block", "ref",
                      lambda: ref_choices(self.block_model.all(), "block_id", "block_name"), required=False),
            FieldSpec("unit_id", "Unit", "ref",
                      lambda: ref_choices(self.unit_model.all(), "unit_id", "unit_number"), required=False),
            FieldSpec("payment_method", "Payment Method", "choice", values(PaymentMethod)),
            FieldSpec("vendor", "Vendor"),
            FieldSpec("invoice_number", "Invoice Number", required=False),
            FieldSpec("paid_by", "Paid By", required=False),
        ]

    # Dashboard

    def _build_dashboard_tab(self):
        frame = self.tab_dashboard
        self.cards_frame = ctk.CTkFrame(frame, corner_radius=8)
        self.cards_frame.pack(side="top", fill="x", padx=8, pady=8)

        lower = ttk.Frame(frame, padding=6)
        lower.pack(fill="both", expand=True)
        ttk.Label(lower, text="Recent Activities").grid(row=0, column=0, sticky="w", padx=6)
        ttk.Label(lower, text="Upcoming Tasks").grid(row=0, column=1, sticky="w", padx=6)
        self.activity_tree = ttk.Treeview(lower, columns=("time", "type", "message"), show="headings", height=10)
        for c, w in (("time", 140), ("type", 100), ("message", 380)):
            self.activity_tree.heading(c, text=c.title())
            self.activity_tree.column(c, width=w)
        self.activity_tree.grid(row=1, column=0, sticky="nsew", padx=6, pady=6)
        self.task_tree = ttk.Treeview(lower, columns=("task", "due", "priority"), show="headings", height=10)
        for c, w in (("task", 280), ("due", 110), ("priority", 90)):
            self.task_tree.heading(c, text=c.title())
            self.task_tree.column(c, width=w)
        self.task_tree.grid(row=1, column=1, sticky="nsew", padx=6, pady=6)
        lower.columnconfigure(0, weight=3)
        lower.columnconfigure(1, weight=2)
        lower.rowconfigure(1, weight=1)

    def load_dashboard(self):
        for w in self.cards_frame.winfo_children():
            w.destroy()
        try:
            cards = self.dashboard_ctrl.summary_cards()
            activities = self.dashboard_ctrl.recent_activities()
            tasks = self.dashboard_ctrl.upcoming_tasks()
        except StorageError:
            messagebox.showerror("Error", "Could not load dashboard. See the log for details.")
            return
        for i, (title, value, note) in enumerate(cards):
            card = ctk.CTkFrame(self.cards_frame, corner_radius=8)
            card.grid(row=0, column=i, padx=6, pady=6, sticky="nsew")
            ctk.CTkLabel(card, text=title).pack(anchor="w", padx=8, pady=(6, 0))
            ctk.CTkLabel(card, text=value, font=ctk.CTkFont(size=18, weight="bold")).pack(anchor="w", padx=8)
            ctk.CTkLabel(card, text=note, font=ctk.CTkFont(size=11)).pack(anchor="w", padx=8, pady=(0, 6))
            self.cards_frame.columnconfigure(i, weight=1)

        for r in self.activity_tree.get_children():
            self.activity_tree.delete(r)
        for a in activities:
            self.activity_tree.insert("", tk.END, values=(a.time, a.activity_type, a.message))
        for r in self.task_tree.get_children():
            self.task_tree.delete(r)
        for t in tasks:
            self.task_tree.insert("", tk.END, values=(t.task_name, t.due_date, t.priority))

    # Expenses

    def _build_expenses_tab(self):
        tab = self._add_entity_tab("Expenses", self.expense_model, self.expense_fields(), "Expense",
                                   facets=[("category", EXPENSE_CATEGORIES), ("block_name", self.block_names)],
                                   on_render=self.show_expense_summary)
        self.expense_summary_label = ttk.Label(tab.frame, text="", padding=6)
        self.expense_summary_label.pack(side="bottom", fill="x")

    def show_expense_summary(self, rows):
        s = expense_summary(rows)
        breakdown = "   ".join(f"{cat}: {amount:,.2f}" for cat, amount in sorted(s.by_category.items()))
        self.expense_summary_label.configure(
            text=f"{s.count} expense(s)   Total: {CURRENCY} {s.total:,.2f}   This month: {CURRENCY} {s.this_month:,.2f}"
                 + (f"\n{breakdown}" if breakdown else ""))

    # Arrears

    def _build_arrears_tab(self):
        frame = self.tab_arrears
        top = ttk.Frame(frame, padding=6)
        top.pack(side="top", fill="x")
        ttk.Label(top, text="Property").pack(side="left", padx=4)
        self.arrears_property_var = tk.StringVar(value=ALL_PROPERTIES)
        self.arrears_property_combo = ttk.Combobox(top, state="readonly", width=36,
                                                   textvariable=self.arrears_property_var)
        self.arrears_property_combo.pack(side="left", padx=4)
        ttk.Label(top, text="Month (YYYY-MM)").pack(side="left", padx=4)
        self.arrears_month_e = ttk.Entry(top, width=10)
        self.arrears_month_e.insert(0, datetime.date.today().strftime("%Y-%m"))
        self.arrears_month_e.pack(side="left", padx=4)
        ttk.Button(top, text="Generate", command=self.generate_arrears).pack(side="left", padx=4)
        ttk.Button(top, text="Export CSV", command=self.export_arrears_csv).pack(side="left", padx=4)

        cols = [attr for _, attr in ARREARS_COLUMNS]
        self.arrears_tree = ttk.Treeview(frame, columns=cols, show="headings", height=18)
        for header, attr in ARREARS_COLUMNS:
            self.arrears_tree.heading(attr, text=header)
            self.arrears_tree.column(attr, width=200 if attr == "tenant_name" else 110)
        self.arrears_tree.tag_configure("Arrears", foreground="#b00020")
        self.arrears_tree.tag_configure("Overpaid", foreground="#1565c0")

        self.arrears_summary_label = ttk.Label(frame, text="", padding=6)
        self.arrears_summary_label.pack(side="bottom", fill="x")
        self.arrears_skipped_label = ttk.Label(frame, text="", padding=6, foreground="#b26a00")
        self.arrears_skipped_label.pack(side="bottom", fill="x")
        self.arrears_tree.pack(fill="both", expand=True, padx=8, pady=8)

    def load_arrears_properties(self):
        try:
            choices = [ALL_PROPERTIES] + self.property_choices()
        except StorageError:
            messagebox.showerror("Error", "Could not load properties. See the log for details.")
            return
        self.arrears_property_combo.configure(values=choices)
        if self.arrears_property_var.get() not in choices:
            self.arrears_property_var.set(ALL_PROPERTIES)

    def generate_arrears(self):
        selected = self.arrears_property_var.get()
        property_id = None if selected == ALL_PROPERTIES else ref_id(selected)
        month = self.arrears_month_e.get().strip() or None
        try:
            report = self.ledger_ctrl.arrears_report(property_id, month=month)
            summary = self.ledger_ctrl.property_summary(property_id, month=month) if property_id else None
        except ValueError as e:
            messagebox.showwarning("Input", str(e))
            return
        except PropdeskError:
            logger.exception("Arrears report failed")
            messagebox.showerror("Error", "Could not build the arrears report. See the log for details.")
            return
        self.arrears_report = report

        for r in self.arrears_tree.get_children():
            self.arrears_tree.delete(r)
        for row in report.rows:
            self.arrears_tree.insert("", tk.END, values=[_fmt(getattr(row, a)) for _, a in ARREARS_COLUMNS],
                                     tags=(row.status,))

        total_arrears = sum(r.balance for r in report.rows if r.balance > 0)
        text = f"Period ending {report.period_end.isoformat()}   Outstanding: {CURRENCY} {total_arrears:,.2f}"
        if summary:
            text += (f"   Rent collected: {CURRENCY} {summary.total_collected:,.2f}"
                     f"   Tenants: {summary.tenant_count}")
        self.arrears_summary_label.configure(text=text)
        if report.skipped:
            names = ", ".join(f"{s.tenant_name} ({s.lease_start_date or 'blank'})" for s in report.skipped)
            self.arrears_skipped_label.configure(text=f"Skipped, invalid lease start date: {names}")
        else:
            self.arrears_skipped_label.configure(text="")

    def export_arrears_csv(self):
        if not self.arrears_report or not self.arrears_report.rows:
            messagebox.showwarning("No Data", "Generate a report first")
            return
        filepath = filedialog.asksaveasfilename(
            defaultextension=".csv", filetypes=[("CSV", "*.csv")],
            initialfile=f"arrears_{self.arrears_report.period_end:%Y-%m}.csv", title="Save arrears CSV")
        if not filepath:
            return
        try:
            write_csv(filepath, self.arrears_report.rows, ARREARS_COLUMNS)
        except OSError as e:
            messagebox.showerror("Error", f"Export failed: {e}")
            return
        messagebox.showinfo("Exported", f"Arrears report exported to {filepath}")

    def refresh_all(self):
        for tab in self.entity_tabs:
            tab.load()
        self.load_dashboard()
        self.load_arrears_properties()

    def on_close(self):
        if messagebox.askyesno("Exit", "Exit application?"):
            self.destroy()


def main():
    setup_logging()
    with Database(DB_FILE, seed=SEED_DEMO) as db:
        app = AdminInterface(db)
        app.mainloop()


if __name__ == "__main__":
    main()
