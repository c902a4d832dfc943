import logging
from datetime import date
from database.account_dao import AccountDAO
from database.movement_dao import MovementDAO
from database.statement_payment_dao import StatementPaymentDAO
from models.statement import Statement, StatementPayment
from services.data_events import ACCOUNTS_CHANGED, DataEventBus, data_events
from services.movement_service import MovementService
from utils.card_periods import close_date_for, statement_period_for
from utils.date_helpers import format_date, today as _today
from utils.errors import FinanceError

logger = logging.getLogger(__name__)


class StatementService:
    """Credit-card statements: charges grouped by closing period, and their payments."""

    def __init__(
        self,
        account_dao: AccountDAO,
        movement_dao: MovementDAO,
        payment_dao: StatementPaymentDAO,
        movement_service: MovementService,
        events: DataEventBus = data_events,
    ):
        self._account_dao = account_dao
        self._movement_dao = movement_dao
        self._payment_dao = payment_dao
        self._movements = movement_service
        self._events = events

    def get_statement_payments(self, card_id: int) -> dict[str, StatementPayment]:
        """Payments keyed '<YYYY-MM>_<CURRENCY>'."""
        return {p.payment_key: p for p in self._payment_dao.get_for_account(card_id)}

    def get_statements(self, card_id: int, today: date | None = None) -> list[Statement]:
        card = self._require_card(card_id)
        today = today or _today()
        current = statement_period_for(today, card.closing_day)
        payments = self.get_statement_payments(card_id)

        statements: dict[str, Statement] = {}
        for m in self._movement_dao.get_filtered(type_="expense", account_ids=[card_id]):
            key = statement_period_for(m.date, card.closing_day)
            if key is None:
                continue
            st = statements.get(key)
            if st is None:
                year, month = int(key[:4]), int(key[5:7])
                st = Statement(
                    period=key,
                    close_date=close_date_for(year, month, card.closing_day),
                    is_past=key < current,
                    is_current=key == current,
                    is_future=key > current,
                    paid_ars=f"{key}_ARS" in payments,
                    paid_usd=f"{key}_USD" in payments,
                )
                statements[key] = st
            if m.currency == "USD":
                st.total_usd = round(st.total_usd + m.amount, 2)
            else:
                st.total_ars = round(st.total_ars + m.amount, 2)
            st.items.append(m)

        for st in statements.values():
            st.items.sort(key=lambda m: (m.date, m.id))
        return sorted(statements.values(), key=lambda st: st.close_date)

    def pay_statement(
        self,
        card_id: int,
        period: str,
        currency: str,
        amount: float,
        from_account_id: int | None = None,
        paid_amount: float | None = None,
        date_str: str | None = None,
    ) -> StatementPayment:
        """Mark a statement paid, optionally moving the money from another account.

        `paid_amount` is what leaves the paying account when its currency
        differs from the statement's.
        """
        self._require_card(card_id)
        if f"{period}_{currency}" in self.get_statement_payments(card_id):
            raise FinanceError("Ese resumen ya figura como pagado.")
        if amount is None or float(amount) <= 0:
            raise FinanceError("El monto debe ser mayor a cero.")

        transfer_id = None
        if from_account_id:
            transfer = self._movements.add_transfer(
                from_account_id, card_id,
                paid_amount if paid_amount not in (None, "") else amount,
                date_str or format_date(_today()),
                f"Pago resumen {period} {currency}",
                to_amount=amount,
            )
            transfer_id = transfer.id
        payment = self._payment_dao.create(card_id, period, currency, round(float(amount), 2),
                                           from_account_id, transfer_id)
        logger.info("Statement %s %s paid for card %s", period, currency, card_id)
        self._events.emit(ACCOUNTS_CHANGED)
        return payment

    def undo_payment(self, card_id: int, period: str, currency: str):
        payment = self.get_statement_payments(card_id).get(f"{period}_{currency}")
        if payment is None:
            raise FinanceError("No hay un pago registrado para ese resumen.")
        self._payment_dao.delete(payment.id)
        if payment.transfer_id:
            self._movements.delete_transfer(payment.transfer_id)
        self._events.emit(ACCOUNTS_CHANGED)

    def _require_card(self, card_id: int):
        card = self._account_dao.get_by_id(card_id)
        if card is None or not card.is_credit_card:
            raise FinanceError("La cuenta no es una tarjeta de crédito.")
        return card
