from typing import Optional
from database.db_manager import DatabaseManager
from models.account import Account


class AccountDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db
        self._all_cache: list | None = None

    def _invalidate_cache(self):
        self._all_cache = None

    def _row_to_model(self, row) -> Account:
        return Account(
            id=row["id"],
            name=row["name"],
            currency=row["currency"],
            account_type=row["account_type"],
            opening_balance=row["opening_balance"],
            is_credit_card=bool(row["is_credit_card"]),
            closing_day=row["closing_day"],
            due_day=row["due_day"],
            icon=row["icon"],
            created_at=row["created_at"],
        )

    def get_all(self) -> list[Account]:
        if self._all_cache is None:
            conn = self._db.get_connection()
            rows = conn.execute(
                "SELECT * FROM accounts ORDER BY name"
            ).fetchall()
            self._all_cache = [self._row_to_model(r) for r in rows]
        return self._all_cache

    def get_credit_cards(self) -> list[Account]:
        return [a for a in self.get_all() if a.is_credit_card]

    def get_by_id(self, account_id: int) -> Optional[Account]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM accounts WHERE id = ?", (account_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_name(self, name: str) -> Optional[Account]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM accounts WHERE name = ?", (name,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def create(
        self,
        name: str,
        currency: str = "ARS",
        account_type: str = "Caja de ahorro",
        opening_balance: float = 0.0,
        is_credit_card: bool = False,
        closing_day: int | None = None,
        due_day: int | None = None,
        icon: str = "",
    ) -> Account:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO accounts(name, currency, account_type, opening_balance,
                                    is_credit_card, closing_day, due_day, icon)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (name, currency, account_type, opening_balance,
             int(is_credit_card), closing_day, due_day, icon),
        )
        conn.commit()
        self._invalidate_cache()
        return self.get_by_id(cursor.lastrowid)

    def update(
        self,
        account_id: int,
        name: str,
        currency: str = "ARS",
        account_type: str = "Caja de ahorro",
        opening_balance: float = 0.0,
        is_credit_card: bool = False,
        closing_day: int | None = None,
        due_day: int | None = None,
        icon: str = "",
    ) -> Account:
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE accounts SET name = ?, currency = ?, account_type = ?, opening_balance = ?,
                                   is_credit_card = ?, closing_day = ?, due_day = ?, icon = ?
               WHERE id = ?""",
            (name, currency, account_type, opening_balance, int(is_credit_card),
             closing_day, due_day, icon, account_id),
        )
        conn.commit()
        self._invalidate_cache()
        return self.get_by_id(account_id)

    def delete(self, account_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
        conn.commit()
        self._invalidate_cache()

    def has_movements(self, account_id: int) -> bool:
        conn = self._db.get_connection()
        row = conn.execute(
            """SELECT (SELECT COUNT(*) FROM movements WHERE account_id = ?)
                    + (SELECT COUNT(*) FROM transfers WHERE from_account_id = ? OR to_account_id = ?)
                   AS cnt""",
            (account_id, account_id, account_id),
        ).fetchone()
        return row["cnt"] > 0

    def get_balances(self) -> dict[int, float]:
        """Opening balance plus every non-future movement and transfer."""
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT a.id,
                      a.opening_balance
                      + COALESCE((SELECT SUM(CASE WHEN m.type = 'income' THEN m.amount ELSE -m.amount END)
                                  FROM movements m WHERE m.account_id = a.id AND m.is_future = 0), 0)
                      + COALESCE((SELECT SUM(t.to_amount) FROM transfers t
                                  WHERE t.to_account_id = a.id AND t.is_future = 0), 0)
                      - COALESCE((SELECT SUM(t.from_amount) FROM transfers t
                                  WHERE t.from_account_id = a.id AND t.is_future = 0), 0)
                      AS balance
               FROM accounts a"""
        ).fetchall()
        return {r["id"]: round(r["balance"], 2) for r in rows}
