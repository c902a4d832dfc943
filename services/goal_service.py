import logging
from datetime import date
from database.goal_dao import GoalDAO
from database.movement_dao import MovementDAO
from models.goal import Goal
from services.budget_service import validate_period
from services.data_events import GOALS_CHANGED, DataEventBus, data_events
from utils.constants import CURRENCIES, GOAL_TYPES
from utils.date_helpers import format_date, period_window, today as _today
from utils.errors import FinanceError

logger = logging.getLogger(__name__)


class GoalService:
    def __init__(
        self,
        goal_dao: GoalDAO,
        movement_dao: MovementDAO,
        events: DataEventBus = data_events,
    ):
        self._dao = goal_dao
        self._movement_dao = movement_dao
        self._events = events

    def get_all(self) -> list[Goal]:
        return self._dao.get_all()

    def get_goals_with_progress(self, today: date | None = None) -> list[Goal]:
        today = today or _today()
        goals = self._dao.get_all()
        for g in goals:
            g.current_amount = round(self._current_amount(g, today), 2)
        return goals

    def _current_amount(self, g: Goal, today: date) -> float:
        start, end = period_window(g.period_type, today, g.start_date, g.end_date)
        bounds = (format_date(start), format_date(end))
        filters = {
            "currency": g.currency,
            "account_ids": g.account_ids or None,
            "category_ids": g.category_ids or None,
        }
        if g.goal_type == "income":
            return self._movement_dao.sum_by_filters("income", *bounds, **filters)
        if g.goal_type == "spending_reduction":
            return self._movement_dao.sum_by_filters("expense", *bounds, **filters)
        # Savings: what came in minus what went out, category filter ignored.
        filters["category_ids"] = None
        return (self._movement_dao.sum_by_filters("income", *bounds, **filters)
                - self._movement_dao.sum_by_filters("expense", *bounds, **filters))

    def create(self, data: dict) -> Goal:
        goal = self._dao.create(self._validate(data))
        logger.info("Created goal %s", goal.id)
        self._events.emit(GOALS_CHANGED)
        return goal

    def update(self, goal_id: int, data: dict) -> Goal:
        if self._dao.get_by_id(goal_id) is None:
            raise FinanceError("El objetivo no existe.")
        goal = self._dao.update(goal_id, self._validate(data))
        self._events.emit(GOALS_CHANGED)
        return goal

    def set_completed(self, goal_id: int, completed: bool = True):
        self._dao.set_completed(goal_id, completed)
        self._events.emit(GOALS_CHANGED)

    def delete(self, goal_id: int):
        self._dao.delete(goal_id)
        logger.info("Deleted goal %s", goal_id)
        self._events.emit(GOALS_CHANGED)

    @staticmethod
    def _validate(data: dict) -> dict:
        data = dict(data)
        data["name"] = (data.get("name") or "").strip()
        if not data["name"]:
            raise FinanceError("El nombre es obligatorio.")
        if data.get("goal_type") not in GOAL_TYPES:
            raise FinanceError("Tipo de objetivo inválido.")
        try:
            data["target_amount"] = round(float(data.get("target_amount")), 2)
        except (TypeError, ValueError):
            raise FinanceError("Monto inválido.") from None
        if data["target_amount"] <= 0:
            raise FinanceError("El monto objetivo debe ser mayor a cero.")
        data.setdefault("currency", "ARS")
        if data["currency"] not in CURRENCIES:
            raise FinanceError("Moneda inválida.")
        validate_period(data)
        data.setdefault("is_active", True)
        data.setdefault("is_completed", False)
        data.setdefault("icon", "")
        return data
