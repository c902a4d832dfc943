import logging
import os
import sqlite3
from contextlib import contextmanager
from utils.app_config import db_path
from utils.constants import DB_FILE, DEFAULT_CATEGORIES, DEFAULT_ACCOUNT_NAME, DEFAULT_DISPLAY_CURRENCY

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_FILE
        self._conn: sqlite3.Connection | None = None

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    @contextmanager
    def transaction(self):
        """Commit on success, roll back everything on any error."""
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self, seed: bool = True):
        """Create schema and seed defaults."""
        conn = self.get_connection()
        self._create_schema(conn)
        if seed:
            self._seed_defaults(conn)
        conn.commit()
        logger.debug("Database ready at %s", self.db_path)

    def _create_schema(self, conn: sqlite3.Connection):
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS accounts (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                name            TEXT    NOT NULL UNIQUE,
                currency        TEXT    NOT NULL DEFAULT 'ARS',
                account_type    TEXT    NOT NULL DEFAULT 'Caja de ahorro',
                opening_balance REAL    NOT NULL DEFAULT 0.0,
                is_credit_card  INTEGER NOT NULL DEFAULT 0,
                closing_day     INTEGER CHECK(closing_day IS NULL OR closing_day BETWEEN 1 AND 31),
                due_day         INTEGER,
                icon            TEXT    NOT NULL DEFAULT '',
                created_at      TEXT    NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS categories (
                id    INTEGER PRIMARY KEY AUTOINCREMENT,
                name  TEXT NOT NULL,
                type  TEXT NOT NULL CHECK(type IN ('income','expense')),
                icon  TEXT NOT NULL DEFAULT '',
                UNIQUE(name, type)
            );

            CREATE TABLE IF NOT EXISTS installment_purchases (
                id                     INTEGER PRIMARY KEY AUTOINCREMENT,
                description            TEXT NOT NULL DEFAULT '',
                total_amount           REAL NOT NULL CHECK(total_amount > 0),
                installments           INTEGER NOT NULL CHECK(installments BETWEEN 1 AND 48),
                account_id             INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                category_id            INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                currency               TEXT NOT NULL DEFAULT 'ARS',
                purchase_date          TEXT NOT NULL,
                first_installment_date TEXT NOT NULL,
                created_at             TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS recurring_transactions (
                id                  INTEGER PRIMARY KEY AUTOINCREMENT,
                name                TEXT NOT NULL,
                description         TEXT NOT NULL DEFAULT '',
                type                TEXT NOT NULL CHECK(type IN ('income','expense','transfer')),
                amount              REAL NOT NULL CHECK(amount > 0),
                currency            TEXT NOT NULL DEFAULT 'ARS',
                account_id          INTEGER REFERENCES accounts(id) ON DELETE CASCADE,
                category_id         INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                from_account_id     INTEGER REFERENCES accounts(id) ON DELETE CASCADE,
                to_account_id       INTEGER REFERENCES accounts(id) ON DELETE CASCADE,
                to_amount           REAL,
                frequency           TEXT NOT NULL,
                weekend_handling    TEXT NOT NULL DEFAULT 'as_is',
                start_date          TEXT NOT NULL,
                end_date            TEXT,
                creation_mode       TEXT NOT NULL DEFAULT 'automatic',
                is_active           INTEGER NOT NULL DEFAULT 1,
                is_paused           INTEGER NOT NULL DEFAULT 0,
                last_generated_date TEXT,
                next_execution_date TEXT,
                created_at          TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS recurring_occurrences (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                recurring_id   INTEGER NOT NULL REFERENCES recurring_transactions(id) ON DELETE CASCADE,
                scheduled_date TEXT NOT NULL,
                status         TEXT NOT NULL DEFAULT 'pending'
                               CHECK(status IN ('pending','confirmed','skipped')),
                movement_id    INTEGER,
                transfer_id    INTEGER,
                actual_amount  REAL,
                confirmed_at   TEXT,
                confirmed_via  TEXT,
                UNIQUE(recurring_id, scheduled_date)
            );

            CREATE TABLE IF NOT EXISTS movements (
                id                      INTEGER PRIMARY KEY AUTOINCREMENT,
                type                    TEXT NOT NULL CHECK(type IN ('income','expense')),
                date                    TEXT NOT NULL,
                amount                  REAL NOT NULL CHECK(amount > 0),
                currency                TEXT NOT NULL DEFAULT 'ARS',
                account_id              INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                category_id             INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                note                    TEXT NOT NULL DEFAULT '',
                attachment_path         TEXT,
                installment             TEXT,
                installment_purchase_id INTEGER REFERENCES installment_purchases(id) ON DELETE CASCADE,
                recurring_occurrence_id INTEGER REFERENCES recurring_occurrences(id) ON DELETE SET NULL,
                is_future               INTEGER NOT NULL DEFAULT 0,
                created_at              TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_movements_date     ON movements(date);
            CREATE INDEX IF NOT EXISTS idx_movements_account  ON movements(account_id);
            CREATE INDEX IF NOT EXISTS idx_movements_category ON movements(category_id);
            CREATE INDEX IF NOT EXISTS idx_movements_purchase ON movements(installment_purchase_id);

            CREATE TABLE IF NOT EXISTS transfers (
                id                      INTEGER PRIMARY KEY AUTOINCREMENT,
                date                    TEXT NOT NULL,
                from_account_id         INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                to_account_id           INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                from_amount             REAL NOT NULL CHECK(from_amount > 0),
                to_amount               REAL NOT NULL CHECK(to_amount > 0),
                note                    TEXT NOT NULL DEFAULT '',
                is_future               INTEGER NOT NULL DEFAULT 0,
                recurring_occurrence_id INTEGER REFERENCES recurring_occurrences(id) ON DELETE SET NULL,
                created_at              TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_transfers_date ON transfers(date);

            CREATE TABLE IF NOT EXISTS budgets (
                id           INTEGER PRIMARY KEY AUTOINCREMENT,
                name         TEXT NOT NULL,
                amount       REAL NOT NULL CHECK(amount > 0),
                currency     TEXT NOT NULL DEFAULT 'ARS',
                period_type  TEXT NOT NULL CHECK(period_type IN ('weekly','monthly','yearly','custom')),
                start_date   TEXT NOT NULL,
                end_date     TEXT,
                is_recurring INTEGER NOT NULL DEFAULT 1,
                is_global    INTEGER NOT NULL DEFAULT 0,
                icon         TEXT NOT NULL DEFAULT '',
                is_active    INTEGER NOT NULL DEFAULT 1,
                is_paused    INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS budget_categories (
                budget_id   INTEGER NOT NULL REFERENCES budgets(id) ON DELETE CASCADE,
                category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
                PRIMARY KEY (budget_id, category_id)
            );

            CREATE TABLE IF NOT EXISTS budget_accounts (
                budget_id  INTEGER NOT NULL REFERENCES budgets(id) ON DELETE CASCADE,
                account_id INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                PRIMARY KEY (budget_id, account_id)
            );

            CREATE TABLE IF NOT EXISTS goals (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                name          TEXT NOT NULL,
                goal_type     TEXT NOT NULL CHECK(goal_type IN ('savings','income','spending_reduction')),
                target_amount REAL NOT NULL CHECK(target_amount > 0),
                currency      TEXT NOT NULL DEFAULT 'ARS',
                period_type   TEXT NOT NULL DEFAULT 'monthly',
                start_date    TEXT NOT NULL,
                end_date      TEXT,
                icon          TEXT NOT NULL DEFAULT '',
                is_active     INTEGER NOT NULL DEFAULT 1,
                is_completed  INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS goal_categories (
                goal_id     INTEGER NOT NULL REFERENCES goals(id) ON DELETE CASCADE,
                category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
                PRIMARY KEY (goal_id, category_id)
            );

            CREATE TABLE IF NOT EXISTS goal_accounts (
                goal_id    INTEGER NOT NULL REFERENCES goals(id) ON DELETE CASCADE,
                account_id INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                PRIMARY KEY (goal_id, account_id)
            );

            CREATE TABLE IF NOT EXISTS scheduled_transactions (
                id                   INTEGER PRIMARY KEY AUTOINCREMENT,
                type                 TEXT NOT NULL CHECK(type IN ('income','expense','transfer')),
                scheduled_date       TEXT NOT NULL,
                amount               REAL NOT NULL CHECK(amount > 0),
                account_id           INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                category_id          INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                to_account_id        INTEGER REFERENCES accounts(id) ON DELETE CASCADE,
                to_amount            REAL,
                note                 TEXT NOT NULL DEFAULT '',
                status               TEXT NOT NULL DEFAULT 'pending'
                                     CHECK(status IN ('pending','executed','rejected')),
                executed_movement_id INTEGER,
                executed_transfer_id INTEGER,
                created_at           TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS auto_rules (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                name           TEXT NOT NULL,
                priority       INTEGER NOT NULL DEFAULT 0,
                logic_operator TEXT NOT NULL DEFAULT 'AND' CHECK(logic_operator IN ('AND','OR')),
                is_active      INTEGER NOT NULL DEFAULT 1
            );

            CREATE TABLE IF NOT EXISTS auto_rule_conditions (
                id       INTEGER PRIMARY KEY AUTOINCREMENT,
                rule_id  INTEGER NOT NULL REFERENCES auto_rules(id) ON DELETE CASCADE,
                field    TEXT NOT NULL,
                operator TEXT NOT NULL,
                value    TEXT NOT NULL DEFAULT ''
            );

            CREATE TABLE IF NOT EXISTS auto_rule_actions (
                id      INTEGER PRIMARY KEY AUTOINCREMENT,
                rule_id INTEGER NOT NULL REFERENCES auto_rules(id) ON DELETE CASCADE,
                field   TEXT NOT NULL,
                value   TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS statement_payments (
                id                   INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id           INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
                period               TEXT NOT NULL,
                currency             TEXT NOT NULL,
                amount               REAL NOT NULL,
                paid_from_account_id INTEGER REFERENCES accounts(id) ON DELETE SET NULL,
                transfer_id          INTEGER REFERENCES transfers(id) ON DELETE SET NULL,
                paid_at              TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE(account_id, period, currency)
            );

            CREATE TABLE IF NOT EXISTS app_settings (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)

    def _seed_defaults(self, conn: sqlite3.Connection):
        defaults = [
            ("appearance_mode", "system"),
            ("display_currency", DEFAULT_DISPLAY_CURRENCY),
            ("date_format", "DD-MM-YYYY"),
            ("last_tab", ""),
        ]
        for key, value in defaults:
            conn.execute(
                "INSERT OR IGNORE INTO app_settings(key, value) VALUES (?, ?)",
                (key, value),
            )

        for cat in DEFAULT_CATEGORIES:
            conn.execute(
                "INSERT OR IGNORE INTO categories(name, type, icon) VALUES (?, ?, ?)",
                (cat["name"], cat["type"], cat["icon"]),
            )

        conn.execute(
            "INSERT OR IGNORE INTO accounts(name, account_type, icon) VALUES (?, ?, ?)",
            (DEFAULT_ACCOUNT_NAME, "Efectivo", "💵"),
        )

    def get_setting(self, key: str, default: str = "") -> str:
        conn = self.get_connection()
        row = conn.execute(
            "SELECT value FROM app_settings WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str):
        conn = self.get_connection()
        conn.execute(
            "INSERT OR REPLACE INTO app_settings(key, value) VALUES (?, ?)",
            (key, value),
        )
        conn.commit()

    @staticmethod
    def open(db_folder: str | None = None) -> "DatabaseManager":
        """Startup factory: opens (creating if needed) the database file."""
        path = db_path(db_folder, DB_FILE)
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        db = DatabaseManager(path)
        db.initialize()
        logger.info("Opened database %s", path)
        return db

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None
