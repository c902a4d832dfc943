from database.db_manager import DatabaseManager
from models.statement import StatementPayment


class StatementPaymentDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> StatementPayment:
        return StatementPayment(
            id=row["id"],
            account_id=row["account_id"],
            period=row["period"],
            currency=row["currency"],
            amount=row["amount"],
            paid_from_account_id=row["paid_from_account_id"],
            transfer_id=row["transfer_id"],
            paid_at=row["paid_at"],
        )

    def get_for_account(self, account_id: int) -> list[StatementPayment]:
        rows = self._db.get_connection().execute(
            "SELECT * FROM statement_payments WHERE account_id = ? ORDER BY period",
            (account_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def create(self, account_id: int, period: str, currency: str, amount: float,
               paid_from_account_id: int | None, transfer_id: int | None,
               commit: bool = True) -> StatementPayment:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO statement_payments(account_id, period, currency, amount,
                                              paid_from_account_id, transfer_id)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (account_id, period, currency, amount, paid_from_account_id, transfer_id),
        )
        if commit:
            conn.commit()
        row = conn.execute(
            "SELECT * FROM statement_payments WHERE id = ?", (cursor.lastrowid,)
        ).fetchone()
        return self._row_to_model(row)

    def delete(self, payment_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM statement_payments WHERE id = ?", (payment_id,))
        conn.commit()
