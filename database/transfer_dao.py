from typing import Optional
from database.db_manager import DatabaseManager
from models.movement import Transfer

_EDITABLE_FIELDS = ("date", "from_account_id", "to_account_id", "from_amount",
                    "to_amount", "note", "is_future")


class TransferDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Transfer:
        return Transfer(
            id=row["id"],
            date=row["date"],
            from_account_id=row["from_account_id"],
            to_account_id=row["to_account_id"],
            from_amount=row["from_amount"],
            to_amount=row["to_amount"],
            note=row["note"],
            is_future=bool(row["is_future"]),
            recurring_occurrence_id=row["recurring_occurrence_id"],
            from_account_name=row["from_account_name"],
            to_account_name=row["to_account_name"],
            from_currency=row["from_currency"],
            to_currency=row["to_currency"],
            created_at=row["created_at"],
        )

    def _select(self) -> str:
        return """
            SELECT t.*,
                   COALESCE(fa.name, '') AS from_account_name,
                   COALESCE(ta.name, '') AS to_account_name,
                   COALESCE(fa.currency, 'ARS') AS from_currency,
                   COALESCE(ta.currency, 'ARS') AS to_currency
            FROM transfers t
            LEFT JOIN accounts fa ON t.from_account_id = fa.id
            LEFT JOIN accounts ta ON t.to_account_id = ta.id
        """

    def get_filtered(
        self,
        start_date: str | None = None,
        end_date: str | None = None,
        account_ids: list[int] | None = None,
    ) -> list[Transfer]:
        sql = self._select() + " WHERE 1 = 1"
        params: list = []
        if start_date:
            sql += " AND t.date >= ?"
            params.append(start_date)
        if end_date:
            sql += " AND t.date <= ?"
            params.append(end_date)
        if account_ids:
            marks = ",".join("?" * len(account_ids))
            sql += f" AND (t.from_account_id IN ({marks}) OR t.to_account_id IN ({marks}))"
            params.extend(account_ids)
            params.extend(account_ids)
        sql += " ORDER BY t.date DESC, t.id DESC"
        rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, transfer_id: int) -> Optional[Transfer]:
        row = self._db.get_connection().execute(
            self._select() + " WHERE t.id = ?", (transfer_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def create(
        self,
        date: str,
        from_account_id: int,
        to_account_id: int,
        from_amount: float,
        to_amount: float,
        note: str = "",
        is_future: bool = False,
        recurring_occurrence_id: int | None = None,
        commit: bool = True,
    ) -> Transfer:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO transfers(date, from_account_id, to_account_id, from_amount, to_amount,
                                     note, is_future, recurring_occurrence_id)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (date, from_account_id, to_account_id, from_amount, to_amount, note,
             int(is_future), recurring_occurrence_id),
        )
        if commit:
            conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(self, transfer_id: int, **fields) -> Optional[Transfer]:
        unknown = set(fields) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if fields:
            if "is_future" in fields:
                fields["is_future"] = int(fields["is_future"])
            assignments = ", ".join(f"{name} = ?" for name in fields)
            conn = self._db.get_connection()
            conn.execute(
                f"UPDATE transfers SET {assignments} WHERE id = ?",
                (*fields.values(), transfer_id),
            )
            conn.commit()
        return self.get_by_id(transfer_id)

    def delete(self, transfer_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM transfers WHERE id = ?", (transfer_id,))
        conn.commit()

    def mark_arrived(self, as_of: str) -> int:
        conn = self._db.get_connection()
        cursor = conn.execute(
            "UPDATE transfers SET is_future = 0 WHERE is_future = 1 AND date <= ?", (as_of,)
        )
        conn.commit()
        return cursor.rowcount
