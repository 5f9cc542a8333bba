"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), a cursor context manager (``get_cursor``) and
``init_db`` which applies migrations on application start.  SQLite is
used as a lightweight embedded database; to switch to another DBMS you
would replace the connection logic and adapt the SQL syntax.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings


logger = logging.getLogger(__name__)


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the package root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # mixer_rental_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Dates are stored as ISO strings and returned unparsed.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    # Foreign keys are off by default in SQLite and must be enabled per
    # connection, otherwise the REFERENCES clauses below are ignored.
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: admin accounts, audit trail, company profile and terms
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS admin_users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1,
            last_login TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT,
            FOREIGN KEY(user_id) REFERENCES admin_users(id)
        );

        CREATE TABLE IF NOT EXISTS our_company_details (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_name TEXT NOT NULL,
            gst_number TEXT,
            email TEXT,
            phone TEXT,
            phone2 TEXT,
            address TEXT,
            logo_url TEXT,
            signature_url TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS terms_conditions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            is_default INTEGER NOT NULL DEFAULT 0,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """,
    ),
    # Migration 2: machine inventory and customers
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS machines (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            machine_number TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            description TEXT,
            price_by_day REAL NOT NULL DEFAULT 0,
            price_by_week REAL NOT NULL DEFAULT 0,
            price_by_month REAL NOT NULL DEFAULT 0,
            gst_percentage REAL NOT NULL DEFAULT 18,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_name TEXT NOT NULL,
            contact_person TEXT,
            email TEXT,
            phone TEXT NOT NULL,
            address TEXT,
            site_location TEXT,
            gst_number TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS idx_customers_phone ON customers(phone);
        """,
    ),
    # Migration 3: quotations with line items and the number counter
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS quotation_counter (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            last_number INTEGER NOT NULL DEFAULT 0
        );
        INSERT OR IGNORE INTO quotation_counter (id, last_number) VALUES (1, 0);

        CREATE TABLE IF NOT EXISTS quotations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            quotation_number TEXT NOT NULL UNIQUE,
            customer_id INTEGER,
            customer_name TEXT NOT NULL,
            customer_contact TEXT NOT NULL,
            company_name TEXT,
            subtotal REAL NOT NULL DEFAULT 0,
            total_gst_amount REAL NOT NULL DEFAULT 0,
            grand_total REAL NOT NULL DEFAULT 0,
            terms_text TEXT,
            additional_notes TEXT,
            quotation_status TEXT NOT NULL DEFAULT 'draft',
            delivery_status TEXT NOT NULL DEFAULT 'pending',
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(customer_id) REFERENCES customers(id),
            FOREIGN KEY(created_by) REFERENCES admin_users(id)
        );

        CREATE TABLE IF NOT EXISTS quotation_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            quotation_id INTEGER NOT NULL,
            item_type TEXT NOT NULL DEFAULT 'machine',
            machine_id INTEGER,
            description TEXT NOT NULL,
            duration_type TEXT,
            quantity REAL NOT NULL DEFAULT 1,
            unit_price REAL NOT NULL DEFAULT 0,
            gst_percentage REAL NOT NULL DEFAULT 0,
            gst_amount REAL NOT NULL DEFAULT 0,
            total_amount REAL NOT NULL DEFAULT 0,
            sort_order INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY(quotation_id) REFERENCES quotations(id) ON DELETE CASCADE,
            FOREIGN KEY(machine_id) REFERENCES machines(id)
        );
        CREATE INDEX IF NOT EXISTS idx_quotation_items_quotation ON quotation_items(quotation_id);
        CREATE INDEX IF NOT EXISTS idx_quotation_items_machine ON quotation_items(machine_id);
        """,
    ),
    # Migration 4: service catalogue and maintenance records
    (
        4,
        """
        CREATE TABLE IF NOT EXISTS service_categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS service_sub_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            category_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(category_id) REFERENCES service_categories(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS service_records (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            machine_id INTEGER NOT NULL,
            service_date DATE NOT NULL,
            engine_hours REAL,
            site_location TEXT,
            operator TEXT NOT NULL,
            general_notes TEXT,
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(machine_id) REFERENCES machines(id),
            FOREIGN KEY(created_by) REFERENCES admin_users(id)
        );
        CREATE INDEX IF NOT EXISTS idx_service_records_machine ON service_records(machine_id);

        CREATE TABLE IF NOT EXISTS service_record_services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            service_record_id INTEGER NOT NULL,
            service_category_id INTEGER NOT NULL,
            was_performed INTEGER NOT NULL DEFAULT 1,
            service_notes TEXT,
            FOREIGN KEY(service_record_id) REFERENCES service_records(id) ON DELETE CASCADE,
            FOREIGN KEY(service_category_id) REFERENCES service_categories(id)
        );

        CREATE TABLE IF NOT EXISTS service_record_sub_services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            service_record_service_id INTEGER NOT NULL,
            sub_service_id INTEGER NOT NULL,
            was_performed INTEGER NOT NULL DEFAULT 1,
            sub_service_notes TEXT,
            FOREIGN KEY(service_record_service_id) REFERENCES service_record_services(id) ON DELETE CASCADE,
            FOREIGN KEY(sub_service_id) REFERENCES service_sub_items(id)
        );
        """,
    ),
    # Migration 5: inquiries submitted from the public website
    (
        5,
        """
        CREATE TABLE IF NOT EXISTS customer_queries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_name TEXT NOT NULL,
            email TEXT NOT NULL,
            site_location TEXT NOT NULL,
            contact_number TEXT NOT NULL,
            duration TEXT NOT NULL,
            work_description TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'new',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS idx_customer_queries_status ON customer_queries(status);
        """,
    ),
]


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    ``MIGRATIONS``.  A new migration is appended with an incremented
    version number.  Finally the seed administrator is created when
    ``ADMIN_PASSWORD`` is configured.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                logger.info("Applying migration %s", version)
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version

        if settings.admin_password:
            from .security import hash_password

            cursor.execute(
                "INSERT OR IGNORE INTO admin_users (username, email, password) VALUES (?, ?, ?)",
                (settings.admin_username, settings.admin_email, hash_password(settings.admin_password)),
            )
