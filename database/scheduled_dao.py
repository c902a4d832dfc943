from typing import Optional
from database.db_manager import DatabaseManager
from models.scheduled import ScheduledTransaction

_COLUMNS = ("type", "scheduled_date", "amount", "account_id", "category_id",
            "to_account_id", "to_amount", "note")


class ScheduledDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> ScheduledTransaction:
        return ScheduledTransaction(
            id=row["id"],
            type=row["type"],
            scheduled_date=row["scheduled_date"],
            amount=row["amount"],
            account_id=row["account_id"],
            category_id=row["category_id"],
            to_account_id=row["to_account_id"],
            to_amount=row["to_amount"],
            note=row["note"],
            status=row["status"],
            executed_movement_id=row["executed_movement_id"],
            executed_transfer_id=row["executed_transfer_id"],
            account_name=row["account_name"],
            to_account_name=row["to_account_name"],
            category_name=row["category_name"],
            created_at=row["created_at"],
        )

    def _select(self) -> str:
        return """
            SELECT s.*,
                   COALESCE(a.name, '') AS account_name,
                   COALESCE(ta.name, '') AS to_account_name,
                   COALESCE(c.name, '') AS category_name
            FROM scheduled_transactions s
            LEFT JOIN accounts a ON s.account_id = a.id
            LEFT JOIN accounts ta ON s.to_account_id = ta.id
            LEFT JOIN categories c ON s.category_id = c.id
        """

    def get_all(self, status: str | None = None) -> list[ScheduledTransaction]:
        sql = self._select()
        params: list = []
        if status:
            sql += " WHERE s.status = ?"
            params.append(status)
        sql += " ORDER BY s.scheduled_date, s.id"
        rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, scheduled_id: int) -> Optional[ScheduledTransaction]:
        row = self._db.get_connection().execute(
            self._select() + " WHERE s.id = ?", (scheduled_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def create(self, data: dict) -> ScheduledTransaction:
        conn = self._db.get_connection()
        cursor = conn.execute(
            f"INSERT INTO scheduled_transactions({', '.join(_COLUMNS)}) "
            f"VALUES ({', '.join('?' * len(_COLUMNS))})",
            tuple(data.get(c) for c in _COLUMNS),
        )
        conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(self, scheduled_id: int, data: dict) -> ScheduledTransaction:
        conn = self._db.get_connection()
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS)
        conn.execute(
            f"UPDATE scheduled_transactions SET {assignments} WHERE id = ?",
            (*tuple(data.get(c) for c in _COLUMNS), scheduled_id),
        )
        conn.commit()
        return self.get_by_id(scheduled_id)

    def set_status(self, scheduled_id: int, status: str, movement_id: int | None = None,
                   transfer_id: int | None = None, commit: bool = True):
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE scheduled_transactions
               SET status = ?, executed_movement_id = ?, executed_transfer_id = ?
               WHERE id = ?""",
            (status, movement_id, transfer_id, scheduled_id),
        )
        if commit:
            conn.commit()

    def delete(self, scheduled_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM scheduled_transactions WHERE id = ?", (scheduled_id,))
        conn.commit()

    def count_by_status(self) -> dict[str, int]:
        rows = self._db.get_connection().execute(
            "SELECT status, COUNT(*) AS cnt FROM scheduled_transactions GROUP BY status"
        ).fetchall()
        return {r["status"]: r["cnt"] for r in rows}
