import datetime
import logging
import sqlite3

from propdesk.config import DB_FILE
from propdesk.errors import ConstraintError, StorageError

logger = logging.getLogger(__name__)

TABLES = [
    """
    CREATE TABLE IF NOT EXISTS managers (
        manager_id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT,
        phone TEXT NOT NULL,
        hire_date TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS properties (
        property_id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        address TEXT NOT NULL,
        total_units INTEGER NOT NULL,
        property_type TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'active',
        last_inspection DATE,
        manager_id INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (manager_id) REFERENCES managers(manager_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS blocks (
        block_id INTEGER PRIMARY KEY AUTOINCREMENT,
        block_name TEXT NOT NULL,
        property_id INTEGER NOT NULL,
        floor_count INTEGER,
        notes TEXT,
        FOREIGN KEY (property_id) REFERENCES properties(property_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tenants (
        tenant_id INTEGER PRIMARY KEY AUTOINCREMENT,
        full_name TEXT NOT NULL,
        phone_number TEXT,
        email TEXT,
        id_number TEXT,
        lease_start_date DATE NOT NULL,
        lease_end_date DATE,
        rent_amount DECIMAL(10, 2),
        deposit_amount DECIMAL(10, 2),
        unit_id INTEGER,
        status TEXT DEFAULT 'active',
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (unit_id) REFERENCES units(unit_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS units (
        unit_id INTEGER PRIMARY KEY AUTOINCREMENT,
        unit_number TEXT NOT NULL,
        property_id INTEGER NOT NULL,
        block_id INTEGER,
        floor_number INTEGER,
        unit_status TEXT NOT NULL,
        unit_type TEXT NOT NULL,
        bedroom_count REAL NOT NULL DEFAULT 0,
        bathroom_count REAL NOT NULL DEFAULT 0,
        monthly_rent DECIMAL(10, 2),
        security_deposit DECIMAL(10, 2),
        tenant_id INTEGER,
        notes TEXT,
        FOREIGN KEY (property_id) REFERENCES properties(property_id),
        FOREIGN KEY (block_id) REFERENCES blocks(block_id),
        FOREIGN KEY (tenant_id) REFERENCES tenants(tenant_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        payment_id TEXT PRIMARY KEY NOT NULL,
        tenant_id INTEGER NOT NULL,
        unit_id INTEGER NOT NULL,
        property_id INTEGER NOT NULL,
        amount_paid DECIMAL(10, 2) NOT NULL,
        payment_date DATE NOT NULL,
        due_date DATE NOT NULL,
        payment_status TEXT NOT NULL CHECK (payment_status IN ('Paid', 'Pending', 'Overdue')),
        payment_method TEXT NOT NULL CHECK (payment_method IN ('Cash', 'Bank Transfer', 'Credit Card', 'Mobile Money', 'Check', 'Other')),
        payment_category TEXT NOT NULL CHECK (payment_category IN ('Rent', 'Utilities', 'Deposit', 'Other')),
        receipt_number TEXT UNIQUE,
        transaction_reference TEXT,
        remarks TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (tenant_id) REFERENCES tenants(tenant_id),
        FOREIGN KEY (unit_id) REFERENCES units(unit_id),
        FOREIGN KEY (property_id) REFERENCES properties(property_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS complaints (
        complaint_id INTEGER PRIMARY KEY AUTOINCREMENT,
        unit_id INTEGER NOT NULL,
        tenant_id INTEGER,
        description TEXT NOT NULL,
        status TEXT NOT NULL CHECK (status IN ('Open', 'In Progress', 'Resolved')),
        created_at TEXT DEFAULT (datetime('now')),
        updated_at TEXT DEFAULT (datetime('now')),
        FOREIGN KEY (unit_id) REFERENCES units(unit_id),
        FOREIGN KEY (tenant_id) REFERENCES tenants(tenant_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS expenses (
        expense_id INTEGER PRIMARY KEY AUTOINCREMENT,
        amount DECIMAL(10, 2) NOT NULL,
        category TEXT NOT NULL,
        description TEXT,
        expense_date DATE NOT NULL,
        unit_id INTEGER,
        block_id INTEGER,
        property_id INTEGER,
        payment_method TEXT NOT NULL,
        vendor TEXT NOT NULL,
        invoice_number TEXT,
        paid_by TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (unit_id) REFERENCES units(unit_id),
        FOREIGN KEY (block_id) REFERENCES blocks(block_id),
        FOREIGN KEY (property_id) REFERENCES properties(property_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS recent_activities (
        recent_activity_id INTEGER PRIMARY KEY AUTOINCREMENT,
        activity_type TEXT NOT NULL,
        message TEXT NOT NULL,
        time TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        task_id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_name TEXT UNIQUE NOT NULL,
        due_date TEXT NOT NULL,
        priority TEXT NOT NULL
    );
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_payment_month ON payments(payment_month)",
    "CREATE INDEX IF NOT EXISTS idx_payments_tenant_id ON payments(tenant_id)",
    "CREATE INDEX IF NOT EXISTS idx_payments_unit_id ON payments(unit_id)",
]


def ensure_column(db_conn, table, column, col_def):
    cur = db_conn.cursor()
    cur.execute(f"PRAGMA table_info({table})")
    cols = [r[1] for r in cur.fetchall()]
    if column not in cols:
        cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_def}")
        db_conn.commit()
        return True
    return False


class Database:
    """One SQLite handle shared by every model for the lifetime of the app.

    Use it as a context manager so the connection is released on every exit
    path. Engine failures are logged here and re-raised as ``StorageError``
    (``ConstraintError`` for integrity violations).
    """

    def __init__(self, db_file=DB_FILE, seed=False):
        self.db_file = db_file
        self.conn = sqlite3.connect(db_file, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        logger.info("Opened database %s", db_file)
        try:
            self.setup_tables()
            if seed:
                self.seed_defaults()
        except Exception:
            self.close()
            raise

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def is_open(self):
        return self.conn is not None

    def setup_tables(self):
        cur = self.conn.cursor()
        for ddl in TABLES:
            cur.execute(ddl)
        self.conn.commit()

        if ensure_column(self.conn, "payments", "payment_month", "TEXT NOT NULL DEFAULT ''"):
            self.conn.execute(
                "UPDATE payments SET payment_month = strftime('%Y-%m', due_date) WHERE payment_month = ''"
            )
            self.conn.commit()
        for ddl in INDEXES:
            cur.execute(ddl)
        self.conn.commit()

    def seed_defaults(self):
        if self.scalar("SELECT COUNT(*) FROM managers") == 0:
            managers = [
                ("Alice Johnson", "alice.j@example.com", "111-222-3333", "2023-01-15"),
                ("Bob Smith", "bob.s@example.com", "444-555-6666", "2022-07-01"),
                ("Carol White", "carol.w@example.com", "777-888-9999", "2024-03-20"),
            ]
            for m in managers:
                self.execute("INSERT INTO managers (name, email, phone, hire_date) VALUES (?,?,?,?)", m)

        if self.scalar("SELECT COUNT(*) FROM properties") == 0:
            self._seed_estate()

        if self.scalar("SELECT COUNT(*) FROM tasks") == 0:
            today = datetime.date.today()
            tasks = [
                ("Lease renewal - Unit A2", today + datetime.timedelta(days=1), "high"),
                ("Property inspection - Sunset Lofts", today + datetime.timedelta(days=5), "medium"),
                ("Maintenance follow-up - Unit B1", today + datetime.timedelta(days=7), "low"),
                ("Rent collection - Green Valley", today + datetime.timedelta(days=10), "high"),
            ]
            for name, due, priority in tasks:
                self.execute("INSERT INTO tasks (task_name, due_date, priority) VALUES (?,?,?)",
                             (name, due.isoformat(), priority))
        logger.info("Seeded demo data into %s", self.db_file)

    def _seed_estate(self):
        today = datetime.date.today()
        estates = [
            ("Sunset Lofts", "12 Ngong Road", "2bedroom", 1, ["A", "B"], 18000),
            ("Green Valley Apartments", "4 Riverside Drive", "1bedroom", 2, ["C"], 12000),
        ]
        sample_names = ["Jasmine Wanjiru", "Rafael Otieno", "Elaine Mwangi", "Mark Kamau",
                        "Jenny Achieng", "Paolo Njoroge", "April Chebet", "Irene Nduta"]
        idx = 0
        for name, address, ptype, manager_id, block_names, rent in estates:
            property_id = self.insert(
                """INSERT INTO properties (name, address, total_units, property_type, status, last_inspection, manager_id)
                   VALUES (?,?,?,?,?,?,?)""",
                (name, address, len(block_names) * 3, ptype, "active",
                 (today - datetime.timedelta(days=45)).isoformat(), manager_id))
            for block_name in block_names:
                block_id = self.insert(
                    "INSERT INTO blocks (block_name, property_id, floor_count, notes) VALUES (?,?,?,?)",
                    (f"Block {block_name}", property_id, 3, ""))
                for floor in range(1, 4):
                    unit_number = f"{block_name}{floor}"
                    unit_id = self.insert(
                        """INSERT INTO units (unit_number, property_id, block_id, floor_number, unit_status, unit_type,
                                              bedroom_count, bathroom_count, monthly_rent, security_deposit)
                           VALUES (?,?,?,?,?,?,?,?,?,?)""",
                        (unit_number, property_id, block_id, floor, "vacant", ptype, 2, 1, rent, rent))
                    if floor == 3:
                        continue
                    tenant_name = sample_names[idx % len(sample_names)]
                    lease_start = (today.replace(day=1) - datetime.timedelta(days=90 * (idx % 3 + 1))).replace(day=15)
                    tenant_id = self.insert(
                        """INSERT INTO tenants (full_name, phone_number, email, lease_start_date, rent_amount,
                                                deposit_amount, unit_id, status)
                           VALUES (?,?,?,?,?,?,?,?)""",
                        (tenant_name, f"0712{100000 + idx * 7919}", "", lease_start.isoformat(), rent, rent,
                         unit_id, "active"))
                    self.execute("UPDATE units SET unit_status=?, tenant_id=? WHERE unit_id=?",
                                 ("occupied", tenant_id, unit_id))
                    paid_on = lease_start
                    # Leave every third tenant one month behind
                    while paid_on <= today - datetime.timedelta(days=30 if idx % 3 == 0 else 0):
                        self.execute(
                            """INSERT INTO payments (payment_id, tenant_id, unit_id, property_id, amount_paid, payment_date,
                                                     due_date, payment_status, payment_method, payment_category,
                                                     payment_month)
                               VALUES (?,?,?,?,?,?,?,?,?,?,?)""",
                            (f"seed-{tenant_id}-{paid_on.isoformat()}", tenant_id, unit_id, property_id, rent,
                             paid_on.isoformat(), paid_on.isoformat(), "Paid", "Mobile Money", "Rent",
                             paid_on.strftime("%Y-%m")))
                        paid_on = (paid_on.replace(day=1) + datetime.timedelta(days=32)).replace(day=15)
                    idx += 1
            self.execute(
                """INSERT INTO expenses (amount, category, description, expense_date, property_id, payment_method, vendor)
                   VALUES (?,?,?,?,?,?,?)""",
                (4500, "Maintenance", f"Plumbing repair - {name}", today.isoformat(), property_id,
                 "Bank Transfer", "ProFix Plumbing"))
            self.execute("INSERT INTO recent_activities (activity_type, message, time) VALUES (?,?,?)",
                         ("inspection", f"Property inspection completed - {name}",
                          datetime.datetime.now().isoformat(timespec="minutes")))

    def execute(self, query, params=()):
        """Run one statement, commit it and return the affected row count."""
        cur = self._run(query, params)
        self.conn.commit()
        return cur.rowcount

    def insert(self, query, params=()):
        cur = self._run(query, params)
        self.conn.commit()
        return cur.lastrowid

    def query(self, query, params=()):
        return self._run(query, params).fetchall()

    def scalar(self, query, params=(), default=0):
        rows = self.query(query, params)
        if not rows or rows[0][0] is None:
            return default
        return rows[0][0]

    def tables(self):
        rows = self.query("SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'")
        return [r["name"] for r in rows]

    def references_to(self, table):
        """Return (table, column) pairs whose foreign keys point at ``table``."""
        refs = []
        for other in self.tables():
            for fk in self.query(f"PRAGMA foreign_key_list({other})"):
                if fk["table"] == table:
                    refs.append((other, fk["from"]))
        return refs

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Closed database %s", self.db_file)

    def _run(self, query, params):
        if self.conn is None:
            raise StorageError(f"Database {self.db_file} is closed")
        try:
            cur = self.conn.cursor()
            cur.execute(query, params)
            return cur
        except sqlite3.IntegrityError as exc:
            self.conn.rollback()
            logger.warning("Constraint violation: %s", exc)
            raise ConstraintError(str(exc)) from exc
        except sqlite3.Error as exc:
            self.conn.rollback()
            logger.exception("Statement failed: %s", " ".join(query.split()))
            raise StorageError(str(exc)) from exc
