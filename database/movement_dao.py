from typing import Optional
from database.db_manager import DatabaseManager
from models.movement import Movement, InstallmentPurchase

_EDITABLE_FIELDS = ("type", "date", "amount", "currency", "account_id", "category_id",
                    "note", "attachment_path", "is_future")


class MovementDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def transaction(self):
        return self._db.transaction()

    def _row_to_model(self, row) -> Movement:
        keys = row.keys()
        return Movement(
            id=row["id"],
            type=row["type"],
            date=row["date"],
            amount=row["amount"],
            account_id=row["account_id"],
            category_id=row["category_id"],
            note=row["note"],
            currency=row["currency"],
            attachment_path=row["attachment_path"],
            installment=row["installment"],
            installment_purchase_id=row["installment_purchase_id"],
            recurring_occurrence_id=row["recurring_occurrence_id"],
            is_future=bool(row["is_future"]),
            account_name=row["account_name"] if "account_name" in keys else "",
            category_name=row["category_name"] if "category_name" in keys else "",
            created_at=row["created_at"],
        )

    def _select(self) -> str:
        return """
            SELECT m.*,
                   COALESCE(a.name, '') AS account_name,
                   COALESCE(c.name, '') AS category_name
            FROM movements m
            LEFT JOIN accounts a ON m.account_id = a.id
            LEFT JOIN categories c ON m.category_id = c.id
        """

    def get_filtered(
        self,
        type_: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        account_ids: list[int] | None = None,
        category_ids: list[int] | None = None,
        include_future: bool = True,
    ) -> list[Movement]:
        sql = self._select() + " WHERE 1 = 1"
        params: list = []
        if type_:
            sql += " AND m.type = ?"
            params.append(type_)
        if start_date:
            sql += " AND m.date >= ?"
            params.append(start_date)
        if end_date:
            sql += " AND m.date <= ?"
            params.append(end_date)
        if account_ids:
            sql += f" AND m.account_id IN ({','.join('?' * len(account_ids))})"
            params.extend(account_ids)
        if category_ids:
            sql += f" AND m.category_id IN ({','.join('?' * len(category_ids))})"
            params.extend(category_ids)
        if not include_future:
            sql += " AND m.is_future = 0"
        sql += " ORDER BY m.date DESC, m.id DESC"
        rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, movement_id: int) -> Optional[Movement]:
        row = self._db.get_connection().execute(
            self._select() + " WHERE m.id = ?", (movement_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_with_attachments(self) -> list[Movement]:
        rows = self._db.get_connection().execute(
            self._select() + " WHERE m.attachment_path IS NOT NULL ORDER BY m.date DESC, m.id DESC"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_purchase(self, purchase_id: int) -> list[Movement]:
        rows = self._db.get_connection().execute(
            self._select() + " WHERE m.installment_purchase_id = ? ORDER BY m.date, m.id",
            (purchase_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_pending_installments(self, from_date: str) -> list[Movement]:
        rows = self._db.get_connection().execute(
            self._select() + """
            WHERE m.installment_purchase_id IS NOT NULL AND m.date >= ?
            ORDER BY m.date, m.id
            """,
            (from_date,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_recent(self, limit: int) -> list[Movement]:
        rows = self._db.get_connection().execute(
            self._select() + " ORDER BY m.created_at DESC, m.id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def create(
        self,
        type_: str,
        date: str,
        amount: float,
        account_id: int,
        category_id: int | None = None,
        note: str = "",
        currency: str = "ARS",
        attachment_path: str | None = None,
        installment: str | None = None,
        installment_purchase_id: int | None = None,
        recurring_occurrence_id: int | None = None,
        is_future: bool = False,
        commit: bool = True,
    ) -> Movement:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO movements(type, date, amount, currency, account_id, category_id, note,
                                     attachment_path, installment, installment_purchase_id,
                                     recurring_occurrence_id, is_future)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (type_, date, amount, currency, account_id, category_id, note, attachment_path,
             installment, installment_purchase_id, recurring_occurrence_id, int(is_future)),
        )
        if commit:
            conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(self, movement_id: int, commit: bool = True, **fields) -> Optional[Movement]:
        unknown = set(fields) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if fields:
            if "is_future" in fields:
                fields["is_future"] = int(fields["is_future"])
            assignments = ", ".join(f"{name} = ?" for name in fields)
            conn = self._db.get_connection()
            conn.execute(
                f"UPDATE movements SET {assignments} WHERE id = ?",
                (*fields.values(), movement_id),
            )
            if commit:
                conn.commit()
        return self.get_by_id(movement_id)

    def delete(self, movement_id: int, commit: bool = True):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM movements WHERE id = ?", (movement_id,))
        if commit:
            conn.commit()

    def mark_arrived(self, as_of: str) -> int:
        """Clear is_future on movements dated on or before as_of."""
        conn = self._db.get_connection()
        cursor = conn.execute(
            "UPDATE movements SET is_future = 0 WHERE is_future = 1 AND date <= ?", (as_of,)
        )
        conn.commit()
        return cursor.rowcount

    def sum_by_filters(
        self,
        type_: str,
        start_date: str,
        end_date: str,
        currency: str | None = None,
        account_ids: list[int] | None = None,
        category_ids: list[int] | None = None,
    ) -> float:
        sql = "SELECT COALESCE(SUM(amount), 0) AS total FROM movements WHERE type = ? AND date BETWEEN ? AND ?"
        params: list = [type_, start_date, end_date]
        if currency:
            sql += " AND currency = ?"
            params.append(currency)
        if account_ids:
            sql += f" AND account_id IN ({','.join('?' * len(account_ids))})"
            params.extend(account_ids)
        if category_ids:
            sql += f" AND category_id IN ({','.join('?' * len(category_ids))})"
            params.extend(category_ids)
        row = self._db.get_connection().execute(sql, params).fetchone()
        return row["total"]

    def get_monthly_totals(self, start_date: str, end_date: str) -> list[dict]:
        """Return [{month, currency, income, expense}, ...] between two dates."""
        rows = self._db.get_connection().execute(
            """SELECT strftime('%Y-%m', date) AS month, currency,
                      SUM(CASE WHEN type='income'  THEN amount ELSE 0 END) AS income,
                      SUM(CASE WHEN type='expense' THEN amount ELSE 0 END) AS expense
               FROM movements
               WHERE date BETWEEN ? AND ?
               GROUP BY month, currency
               ORDER BY month""",
            (start_date, end_date),
        ).fetchall()
        return [dict(r) for r in rows]

    def get_totals_by_category(self, type_: str, start_date: str, end_date: str) -> list[dict]:
        """Return [{month, category_id, category, icon, currency, total}, ...]."""
        rows = self._db.get_connection().execute(
            """SELECT strftime('%Y-%m', m.date) AS month,
                      m.category_id,
                      COALESCE(c.name, '') AS category,
                      COALESCE(c.icon, '') AS icon,
                      m.currency,
                      SUM(m.amount) AS total
               FROM movements m
               LEFT JOIN categories c ON m.category_id = c.id
               WHERE m.type = ? AND m.date BETWEEN ? AND ?
               GROUP BY month, m.category_id, m.currency
               ORDER BY month""",
            (type_, start_date, end_date),
        ).fetchall()
        return [dict(r) for r in rows]

    # ── Installment purchases ────────────────────────────────────────────────
    def _purchase_to_model(self, row) -> InstallmentPurchase:
        return InstallmentPurchase(
            id=row["id"],
            description=row["description"],
            total_amount=row["total_amount"],
            installments=row["installments"],
            account_id=row["account_id"],
            category_id=row["category_id"],
            currency=row["currency"],
            purchase_date=row["purchase_date"],
            first_installment_date=row["first_installment_date"],
            created_at=row["created_at"],
        )

    def create_purchase(
        self,
        description: str,
        total_amount: float,
        installments: int,
        account_id: int,
        category_id: int | None,
        currency: str,
        purchase_date: str,
        first_installment_date: str,
        commit: bool = True,
    ) -> InstallmentPurchase:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO installment_purchases(description, total_amount, installments, account_id,
                                                 category_id, currency, purchase_date, first_installment_date)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (description, total_amount, installments, account_id, category_id, currency,
             purchase_date, first_installment_date),
        )
        if commit:
            conn.commit()
        return self.get_purchase(cursor.lastrowid)

    def get_purchase(self, purchase_id: int) -> Optional[InstallmentPurchase]:
        row = self._db.get_connection().execute(
            "SELECT * FROM installment_purchases WHERE id = ?", (purchase_id,)
        ).fetchone()
        return self._purchase_to_model(row) if row else None

    def delete_purchase(self, purchase_id: int):
        """Removes the purchase; its installments go with it (ON DELETE CASCADE)."""
        conn = self._db.get_connection()
        conn.execute("DELETE FROM installment_purchases WHERE id = ?", (purchase_id,))
        conn.commit()
