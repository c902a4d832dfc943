from typing import Optional
from database.db_manager import DatabaseManager
from models.goal import Goal

_COLUMNS = ("name", "goal_type", "target_amount", "currency", "period_type",
            "start_date", "end_date", "icon", "is_active", "is_completed")


class GoalDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Goal:
        conn = self._db.get_connection()
        category_ids = [r[0] for r in conn.execute(
            "SELECT category_id FROM goal_categories WHERE goal_id = ? ORDER BY category_id",
            (row["id"],),
        ).fetchall()]
        account_ids = [r[0] for r in conn.execute(
            "SELECT account_id FROM goal_accounts WHERE goal_id = ? ORDER BY account_id",
            (row["id"],),
        ).fetchall()]
        return Goal(
            id=row["id"],
            name=row["name"],
            goal_type=row["goal_type"],
            target_amount=row["target_amount"],
            currency=row["currency"],
            period_type=row["period_type"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            icon=row["icon"],
            is_active=bool(row["is_active"]),
            is_completed=bool(row["is_completed"]),
            category_ids=category_ids,
            account_ids=account_ids,
        )

    def get_all(self) -> list[Goal]:
        rows = self._db.get_connection().execute(
            "SELECT * FROM goals ORDER BY is_completed, name"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, goal_id: int) -> Optional[Goal]:
        row = self._db.get_connection().execute(
            "SELECT * FROM goals WHERE id = ?", (goal_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def _values(self, data: dict) -> tuple:
        return tuple(int(data[c]) if isinstance(data.get(c), bool) else data.get(c) for c in _COLUMNS)

    def _set_links(self, conn, goal_id: int, category_ids, account_ids):
        conn.execute("DELETE FROM goal_categories WHERE goal_id = ?", (goal_id,))
        conn.execute("DELETE FROM goal_accounts WHERE goal_id = ?", (goal_id,))
        conn.executemany(
            "INSERT INTO goal_categories(goal_id, category_id) VALUES (?, ?)",
            [(goal_id, cid) for cid in dict.fromkeys(category_ids or [])],
        )
        conn.executemany(
            "INSERT INTO goal_accounts(goal_id, account_id) VALUES (?, ?)",
            [(goal_id, aid) for aid in dict.fromkeys(account_ids or [])],
        )

    def create(self, data: dict) -> Goal:
        conn = self._db.get_connection()
        cursor = conn.execute(
            f"INSERT INTO goals({', '.join(_COLUMNS)}) VALUES ({', '.join('?' * len(_COLUMNS))})",
            self._values(data),
        )
        self._set_links(conn, cursor.lastrowid, data.get("category_ids"), data.get("account_ids"))
        conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(self, goal_id: int, data: dict) -> Goal:
        conn = self._db.get_connection()
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS)
        conn.execute(
            f"UPDATE goals SET {assignments} WHERE id = ?",
            (*self._values(data), goal_id),
        )
        self._set_links(conn, goal_id, data.get("category_ids"), data.get("account_ids"))
        conn.commit()
        return self.get_by_id(goal_id)

    def set_completed(self, goal_id: int, completed: bool):
        conn = self._db.get_connection()
        conn.execute("UPDATE goals SET is_completed = ? WHERE id = ?", (int(completed), goal_id))
        conn.commit()

    def delete(self, goal_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM goals WHERE id = ?", (goal_id,))
        conn.commit()
