from typing import Optional
from database.db_manager import DatabaseManager
from models.budget import Budget

_COLUMNS = ("name", "amount", "currency", "period_type", "start_date", "end_date",
            "is_recurring", "is_global", "icon", "is_active", "is_paused")


class BudgetDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Budget:
        conn = self._db.get_connection()
        category_ids = [r[0] for r in conn.execute(
            "SELECT category_id FROM budget_categories WHERE budget_id = ? ORDER BY category_id",
            (row["id"],),
        ).fetchall()]
        account_ids = [r[0] for r in conn.execute(
            "SELECT account_id FROM budget_accounts WHERE budget_id = ? ORDER BY account_id",
            (row["id"],),
        ).fetchall()]
        return Budget(
            id=row["id"],
            name=row["name"],
            amount=row["amount"],
            currency=row["currency"],
            period_type=row["period_type"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            is_recurring=bool(row["is_recurring"]),
            is_global=bool(row["is_global"]),
            icon=row["icon"],
            is_active=bool(row["is_active"]),
            is_paused=bool(row["is_paused"]),
            category_ids=category_ids,
            account_ids=account_ids,
        )

    def get_all(self) -> list[Budget]:
        rows = self._db.get_connection().execute(
            "SELECT * FROM budgets ORDER BY is_active DESC, name"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        row = self._db.get_connection().execute(
            "SELECT * FROM budgets WHERE id = ?", (budget_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def _values(self, data: dict) -> tuple:
        values = []
        for col in _COLUMNS:
            value = data.get(col)
            if isinstance(value, bool):
                value = int(value)
            values.append(value)
        return tuple(values)

    def _set_links(self, conn, budget_id: int, category_ids, account_ids):
        conn.execute("DELETE FROM budget_categories WHERE budget_id = ?", (budget_id,))
        conn.execute("DELETE FROM budget_accounts WHERE budget_id = ?", (budget_id,))
        conn.executemany(
            "INSERT INTO budget_categories(budget_id, category_id) VALUES (?, ?)",
            [(budget_id, cid) for cid in dict.fromkeys(category_ids or [])],
        )
        conn.executemany(
            "INSERT INTO budget_accounts(budget_id, account_id) VALUES (?, ?)",
            [(budget_id, aid) for aid in dict.fromkeys(account_ids or [])],
        )

    def create(self, data: dict) -> Budget:
        conn = self._db.get_connection()
        cursor = conn.execute(
            f"INSERT INTO budgets({', '.join(_COLUMNS)}) VALUES ({', '.join('?' * len(_COLUMNS))})",
            self._values(data),
        )
        self._set_links(conn, cursor.lastrowid, data.get("category_ids"), data.get("account_ids"))
        conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(self, budget_id: int, data: dict) -> Budget:
        conn = self._db.get_connection()
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS)
        conn.execute(
            f"UPDATE budgets SET {assignments} WHERE id = ?",
            (*self._values(data), budget_id),
        )
        self._set_links(conn, budget_id, data.get("category_ids"), data.get("account_ids"))
        conn.commit()
        return self.get_by_id(budget_id)

    def set_flags(self, budget_id: int, **flags):
        conn = self._db.get_connection()
        for name in ("is_active", "is_paused"):
            if name in flags:
                conn.execute(f"UPDATE budgets SET {name} = ? WHERE id = ?",
                             (int(flags[name]), budget_id))
        conn.commit()

    def delete(self, budget_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
        conn.commit()
