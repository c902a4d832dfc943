import logging
from models.account import Account
from database.account_dao import AccountDAO
from services.data_events import ACCOUNTS_CHANGED, DataEventBus, data_events
from utils.constants import ACCOUNT_TYPES, CREDIT_CARD_TYPE, CURRENCIES
from utils.errors import FinanceError

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, account_dao: AccountDAO, events: DataEventBus = data_events):
        self._dao = account_dao
        self._events = events

    def get_all(self) -> list[Account]:
        return self._dao.get_all()

    def get_by_id(self, account_id: int) -> Account | None:
        return self._dao.get_by_id(account_id)

    def get_credit_cards(self) -> list[Account]:
        return self._dao.get_credit_cards()

    def get_balances(self) -> dict[int, float]:
        return self._dao.get_balances()

    def create(
        self,
        name: str,
        currency: str = "ARS",
        account_type: str = "Caja de ahorro",
        opening_balance: float = 0.0,
        closing_day: int | None = None,
        due_day: int | None = None,
        icon: str = "",
    ) -> Account:
        name = name.strip()
        if self._dao.get_by_name(name):
            raise FinanceError(f"Ya existe una cuenta llamada '{name}'.")
        is_card, closing_day = self._validate(name, currency, account_type, closing_day)
        account = self._dao.create(name, currency, account_type, opening_balance,
                                   is_card, closing_day, due_day, icon)
        logger.info("Created account %s", account.id)
        self._events.emit(ACCOUNTS_CHANGED)
        return account

    def update(
        self,
        account_id: int,
        name: str,
        currency: str = "ARS",
        account_type: str = "Caja de ahorro",
        opening_balance: float = 0.0,
        closing_day: int | None = None,
        due_day: int | None = None,
        icon: str = "",
    ) -> Account:
        name = name.strip()
        existing = self._dao.get_by_name(name)
        if existing and existing.id != account_id:
            raise FinanceError(f"Ya existe una cuenta llamada '{name}'.")
        is_card, closing_day = self._validate(name, currency, account_type, closing_day)
        current = self._dao.get_by_id(account_id)
        if current is None:
            raise FinanceError("La cuenta no existe.")
        if current.currency != currency and self._dao.has_movements(account_id):
            raise FinanceError("No se puede cambiar la moneda de una cuenta con movimientos.")
        account = self._dao.update(account_id, name, currency, account_type, opening_balance,
                                   is_card, closing_day, due_day, icon)
        logger.info("Updated account %s", account_id)
        self._events.emit(ACCOUNTS_CHANGED)
        return account

    def delete(self, account_id: int):
        if self._dao.has_movements(account_id):
            raise FinanceError(
                "No se puede eliminar una cuenta con movimientos. "
                "Eliminá los movimientos primero."
            )
        self._dao.delete(account_id)
        logger.info("Deleted account %s", account_id)
        self._events.emit(ACCOUNTS_CHANGED)

    # ── Helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _validate(name: str, currency: str, account_type: str, closing_day):
        if not name:
            raise FinanceError("El nombre de la cuenta es obligatorio.")
        if currency not in CURRENCIES:
            raise FinanceError(f"Moneda inválida: {currency}.")
        if account_type not in ACCOUNT_TYPES:
            raise FinanceError(f"Tipo de cuenta inválido: {account_type}.")
        is_card = account_type == CREDIT_CARD_TYPE
        if not is_card:
            return False, None
        closing_day = closing_day or 1
        if not 1 <= int(closing_day) <= 31:
            raise FinanceError("El día de cierre debe estar entre 1 y 31.")
        return True, int(closing_day)
