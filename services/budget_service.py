import logging
from datetime import date
from database.budget_dao import BudgetDAO
from database.movement_dao import MovementDAO
from models.budget import Budget
from services.data_events import BUDGETS_CHANGED, DataEventBus, data_events
from utils.constants import CURRENCIES, PERIOD_TYPES
from utils.date_helpers import format_date, parse_date, period_window, today as _today
from utils.errors import FinanceError

logger = logging.getLogger(__name__)


def validate_period(data: dict) -> dict:
    """Shared date checks for budgets and goals."""
    if data.get("period_type") not in PERIOD_TYPES:
        raise FinanceError("Período inválido.")
    start = parse_date(data.get("start_date"))
    if start is None:
        raise FinanceError("Fecha de inicio inválida.")
    end = parse_date(data.get("end_date")) if data.get("end_date") else None
    if data.get("end_date") and end is None:
        raise FinanceError("Fecha de fin inválida.")
    if data["period_type"] == "custom" and end is None:
        raise FinanceError("Un período personalizado necesita fecha de fin.")
    if end and end < start:
        raise FinanceError("La fecha de fin debe ser posterior al inicio.")
    data["start_date"] = format_date(start)
    data["end_date"] = format_date(end) if end else None
    return data


class BudgetService:
    def __init__(
        self,
        budget_dao: BudgetDAO,
        movement_dao: MovementDAO,
        events: DataEventBus = data_events,
    ):
        self._dao = budget_dao
        self._movement_dao = movement_dao
        self._events = events

    def get_all(self) -> list[Budget]:
        return self._dao.get_all()

    def get_by_id(self, budget_id: int) -> Budget | None:
        return self._dao.get_by_id(budget_id)

    def get_budgets_with_progress(self, today: date | None = None) -> list[Budget]:
        """All budgets with spent / period bounds filled in."""
        today = today or _today()
        budgets = self._dao.get_all()
        for b in budgets:
            self._fill_progress(b, today)
        return budgets

    def _fill_progress(self, b: Budget, today: date):
        reference = today
        if not b.is_recurring and b.period_type != "custom":
            reference = parse_date(b.start_date) or today
        start, end = period_window(b.period_type, reference, b.start_date, b.end_date)
        b.period_start = format_date(start)
        b.period_end = format_date(end)
        b.spent = round(self._movement_dao.sum_by_filters(
            "expense", b.period_start, b.period_end,
            currency=b.currency,
            account_ids=None if b.is_global else b.account_ids,
            category_ids=None if b.is_global else b.category_ids,
        ), 2)

    def create(self, data: dict) -> Budget:
        budget = self._dao.create(self._validate(data))
        logger.info("Created budget %s", budget.id)
        self._events.emit(BUDGETS_CHANGED)
        return budget

    def update(self, budget_id: int, data: dict) -> Budget:
        if self._dao.get_by_id(budget_id) is None:
            raise FinanceError("El presupuesto no existe.")
        budget = self._dao.update(budget_id, self._validate(data))
        self._events.emit(BUDGETS_CHANGED)
        return budget

    def duplicate(self, budget_id: int) -> Budget:
        source = self._dao.get_by_id(budget_id)
        if source is None:
            raise FinanceError("El presupuesto no existe.")
        data = {
            "name": f"{source.name} (copia)",
            "amount": source.amount,
            "currency": source.currency,
            "period_type": source.period_type,
            "start_date": source.start_date,
            "end_date": source.end_date,
            "is_recurring": source.is_recurring,
            "is_global": source.is_global,
            "icon": source.icon,
            "category_ids": list(source.category_ids),
            "account_ids": list(source.account_ids),
        }
        return self.create(data)

    def set_paused(self, budget_id: int, paused: bool):
        self._dao.set_flags(budget_id, is_paused=paused)
        self._events.emit(BUDGETS_CHANGED)

    def set_active(self, budget_id: int, active: bool):
        self._dao.set_flags(budget_id, is_active=active)
        self._events.emit(BUDGETS_CHANGED)

    def delete(self, budget_id: int):
        self._dao.delete(budget_id)
        logger.info("Deleted budget %s", budget_id)
        self._events.emit(BUDGETS_CHANGED)

    @staticmethod
    def _validate(data: dict) -> dict:
        data = dict(data)
        data["name"] = (data.get("name") or "").strip()
        if not data["name"]:
            raise FinanceError("El nombre es obligatorio.")
        try:
            data["amount"] = round(float(data.get("amount")), 2)
        except (TypeError, ValueError):
            raise FinanceError("Monto inválido.") from None
        if data["amount"] <= 0:
            raise FinanceError("El monto debe ser mayor a cero.")
        data.setdefault("currency", "ARS")
        if data["currency"] not in CURRENCIES:
            raise FinanceError("Moneda inválida.")
        validate_period(data)
        data["is_global"] = bool(data.get("is_global"))
        if not data["is_global"] and not (data.get("category_ids") or data.get("account_ids")):
            raise FinanceError("Elegí al menos una categoría o cuenta, o marcá el presupuesto como global.")
        data.setdefault("is_recurring", True)
        data.setdefault("is_active", True)
        data.setdefault("is_paused", False)
        data.setdefault("icon", "")
        return data
