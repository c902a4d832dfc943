import json
from typing import Optional
from database.db_manager import DatabaseManager
from models.recurring import Frequency, RecurringOccurrence, RecurringTransaction

_COLUMNS = ("name", "description", "type", "amount", "currency", "account_id", "category_id",
            "from_account_id", "to_account_id", "to_amount", "frequency", "weekend_handling",
            "start_date", "end_date", "creation_mode", "is_active", "is_paused",
            "last_generated_date", "next_execution_date")


class RecurringDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def transaction(self):
        return self._db.transaction()

    def _row_to_model(self, row) -> RecurringTransaction:
        return RecurringTransaction(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            type=row["type"],
            amount=row["amount"],
            currency=row["currency"],
            account_id=row["account_id"],
            category_id=row["category_id"],
            from_account_id=row["from_account_id"],
            to_account_id=row["to_account_id"],
            to_amount=row["to_amount"],
            frequency=Frequency.from_dict(json.loads(row["frequency"])),
            weekend_handling=row["weekend_handling"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            creation_mode=row["creation_mode"],
            is_active=bool(row["is_active"]),
            is_paused=bool(row["is_paused"]),
            last_generated_date=row["last_generated_date"],
            next_execution_date=row["next_execution_date"],
            account_name=row["account_name"],
            category_name=row["category_name"],
        )

    def _select(self) -> str:
        return """
            SELECT r.*,
                   COALESCE(a.name, fa.name, '') AS account_name,
                   COALESCE(c.name, '') AS category_name
            FROM recurring_transactions r
            LEFT JOIN accounts a ON r.account_id = a.id
            LEFT JOIN accounts fa ON r.from_account_id = fa.id
            LEFT JOIN categories c ON r.category_id = c.id
        """

    def get_all(self) -> list[RecurringTransaction]:
        rows = self._db.get_connection().execute(
            self._select() + " ORDER BY r.is_active DESC, r.next_execution_date, r.name"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_due(self, as_of: str) -> list[RecurringTransaction]:
        rows = self._db.get_connection().execute(
            self._select() + """
            WHERE r.is_active = 1 AND r.is_paused = 0
              AND r.next_execution_date IS NOT NULL AND r.next_execution_date <= ?
            ORDER BY r.next_execution_date
            """,
            (as_of,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, recurring_id: int) -> Optional[RecurringTransaction]:
        row = self._db.get_connection().execute(
            self._select() + " WHERE r.id = ?", (recurring_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def _values(self, data: dict) -> tuple:
        values = []
        for col in _COLUMNS:
            value = data.get(col)
            if col == "frequency":
                value = json.dumps(value.to_dict() if isinstance(value, Frequency) else value)
            elif isinstance(value, bool):
                value = int(value)
            values.append(value)
        return tuple(values)

    def create(self, data: dict) -> RecurringTransaction:
        conn = self._db.get_connection()
        cursor = conn.execute(
            f"INSERT INTO recurring_transactions({', '.join(_COLUMNS)}) "
            f"VALUES ({', '.join('?' * len(_COLUMNS))})",
            self._values(data),
        )
        conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(self, recurring_id: int, data: dict) -> RecurringTransaction:
        conn = self._db.get_connection()
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS)
        conn.execute(
            f"UPDATE recurring_transactions SET {assignments} WHERE id = ?",
            (*self._values(data), recurring_id),
        )
        conn.commit()
        return self.get_by_id(recurring_id)

    def set_fields(self, recurring_id: int, commit: bool = True, **fields):
        conn = self._db.get_connection()
        for name, value in fields.items():
            if name not in _COLUMNS or name == "frequency":
                raise ValueError(f"Cannot set field: {name}")
            conn.execute(
                f"UPDATE recurring_transactions SET {name} = ? WHERE id = ?",
                (int(value) if isinstance(value, bool) else value, recurring_id),
            )
        if commit:
            conn.commit()

    def delete(self, recurring_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM recurring_transactions WHERE id = ?", (recurring_id,))
        conn.commit()

    # ── Occurrences ──────────────────────────────────────────────────────────
    def _occ_to_model(self, row) -> RecurringOccurrence:
        return RecurringOccurrence(
            id=row["id"],
            recurring_id=row["recurring_id"],
            scheduled_date=row["scheduled_date"],
            status=row["status"],
            movement_id=row["movement_id"],
            transfer_id=row["transfer_id"],
            actual_amount=row["actual_amount"],
            confirmed_at=row["confirmed_at"],
            confirmed_via=row["confirmed_via"],
            recurring_name=row["recurring_name"],
        )

    def _occ_select(self) -> str:
        return """
            SELECT o.*, r.name AS recurring_name
            FROM recurring_occurrences o
            JOIN recurring_transactions r ON o.recurring_id = r.id
        """

    def create_occurrence(self, recurring_id: int, scheduled_date: str, status: str,
                          commit: bool = True) -> RecurringOccurrence:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO recurring_occurrences(recurring_id, scheduled_date, status)
               VALUES (?, ?, ?)""",
            (recurring_id, scheduled_date, status),
        )
        if commit:
            conn.commit()
        return self.get_occurrence(cursor.lastrowid)

    def get_occurrence(self, occurrence_id: int) -> Optional[RecurringOccurrence]:
        row = self._db.get_connection().execute(
            self._occ_select() + " WHERE o.id = ?", (occurrence_id,)
        ).fetchone()
        return self._occ_to_model(row) if row else None

    def find_occurrence(self, recurring_id: int, scheduled_date: str) -> Optional[RecurringOccurrence]:
        row = self._db.get_connection().execute(
            self._occ_select() + " WHERE o.recurring_id = ? AND o.scheduled_date = ?",
            (recurring_id, scheduled_date),
        ).fetchone()
        return self._occ_to_model(row) if row else None

    def get_occurrences(self, recurring_id: int | None = None,
                        status: str | None = None) -> list[RecurringOccurrence]:
        sql = self._occ_select() + " WHERE 1 = 1"
        params: list = []
        if recurring_id is not None:
            sql += " AND o.recurring_id = ?"
            params.append(recurring_id)
        if status:
            sql += " AND o.status = ?"
            params.append(status)
        sql += " ORDER BY o.scheduled_date, o.id"
        rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._occ_to_model(r) for r in rows]

    def resolve_occurrence(
        self,
        occurrence_id: int,
        status: str,
        movement_id: int | None = None,
        transfer_id: int | None = None,
        actual_amount: float | None = None,
        confirmed_via: str | None = None,
        commit: bool = True,
    ):
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE recurring_occurrences
               SET status = ?, movement_id = ?, transfer_id = ?, actual_amount = ?,
                   confirmed_via = ?,
                   confirmed_at = CASE WHEN ? = 'confirmed' THEN datetime('now') ELSE confirmed_at END
               WHERE id = ?""",
            (status, movement_id, transfer_id, actual_amount, confirmed_via, status, occurrence_id),
        )
        if commit:
            conn.commit()

    def occurrence_stats(self) -> dict[int, dict]:
        rows = self._db.get_connection().execute(
            """SELECT recurring_id,
                      COUNT(*) AS total,
                      SUM(CASE WHEN status = 'confirmed' THEN 1 ELSE 0 END) AS confirmed,
                      SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending,
                      SUM(CASE WHEN status = 'skipped' THEN 1 ELSE 0 END) AS skipped,
                      COALESCE(SUM(CASE WHEN status = 'confirmed' THEN actual_amount END), 0) AS total_amount
               FROM recurring_occurrences GROUP BY recurring_id"""
        ).fetchall()
        return {r["recurring_id"]: dict(r) for r in rows}
