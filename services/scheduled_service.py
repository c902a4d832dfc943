import logging
from datetime import date
from database.scheduled_dao import ScheduledDAO
from models.scheduled import ScheduledTransaction
from services.data_events import ALL_DATA_CHANGED, SCHEDULED_CHANGED, DataEventBus, data_events
from services.movement_service import MovementService
from utils.constants import SCHEDULED_STATUSES
from utils.date_helpers import format_date, parse_date, today as _today
from utils.errors import FinanceError

logger = logging.getLogger(__name__)


class ScheduledService:
    """Future transactions that wait for approval before becoming movements."""

    def __init__(
        self,
        scheduled_dao: ScheduledDAO,
        movement_service: MovementService,
        events: DataEventBus = data_events,
    ):
        self._dao = scheduled_dao
        self._movements = movement_service
        self._events = events

    def get_all(self, status: str | None = None) -> list[ScheduledTransaction]:
        if status and status not in SCHEDULED_STATUSES:
            raise FinanceError(f"Estado inválido: {status}.")
        return self._dao.get_all(status)

    def get_by_id(self, scheduled_id: int) -> ScheduledTransaction | None:
        return self._dao.get_by_id(scheduled_id)

    def counts(self) -> dict[str, int]:
        found = self._dao.count_by_status()
        return {status: found.get(status, 0) for status in SCHEDULED_STATUSES}

    def process_due(self, today: date | None = None) -> list[ScheduledTransaction]:
        """Pending items whose date has already arrived.

        Nothing is executed here; due items wait for approve() or reject().
        """
        as_of = format_date(today or _today())
        due = [s for s in self._dao.get_all("pending") if s.scheduled_date <= as_of]
        if due:
            logger.info("%d scheduled transactions awaiting approval", len(due))
        return due

    def create(self, data: dict, today: date | None = None) -> ScheduledTransaction:
        item = self._dao.create(self._validate(data, today or _today()))
        logger.info("Scheduled %s %s for %s", item.type, item.id, item.scheduled_date)
        self._events.emit(SCHEDULED_CHANGED)
        return item

    def update(self, scheduled_id: int, data: dict, today: date | None = None) -> ScheduledTransaction:
        self._require_pending(scheduled_id)
        item = self._dao.update(scheduled_id, self._validate(data, today or _today()))
        self._events.emit(SCHEDULED_CHANGED)
        return item

    def approve(self, scheduled_id: int) -> ScheduledTransaction:
        """Create the real movement or transfer and mark the item executed."""
        item = self._require_pending(scheduled_id)
        if item.type == "transfer":
            transfer = self._movements.add_transfer(
                item.account_id, item.to_account_id, item.amount, item.scheduled_date,
                item.note, to_amount=item.to_amount, emit=False,
            )
            self._dao.set_status(scheduled_id, "executed", transfer_id=transfer.id)
        else:
            movement = self._movements.add_movement(
                item.type, item.account_id, item.amount, item.scheduled_date,
                item.category_id, item.note, emit=False,
            )
            self._dao.set_status(scheduled_id, "executed", movement_id=movement.id)
        logger.info("Approved scheduled %s", scheduled_id)
        self._events.emit(SCHEDULED_CHANGED)
        self._events.emit(ALL_DATA_CHANGED)
        return self._dao.get_by_id(scheduled_id)

    def reject(self, scheduled_id: int) -> ScheduledTransaction:
        self._require_pending(scheduled_id)
        self._dao.set_status(scheduled_id, "rejected")
        logger.info("Rejected scheduled %s", scheduled_id)
        self._events.emit(SCHEDULED_CHANGED)
        return self._dao.get_by_id(scheduled_id)

    def delete(self, scheduled_id: int):
        self._dao.delete(scheduled_id)
        self._events.emit(SCHEDULED_CHANGED)

    def _require_pending(self, scheduled_id: int) -> ScheduledTransaction:
        item = self._dao.get_by_id(scheduled_id)
        if item is None:
            raise FinanceError("La transacción programada no existe.")
        if item.status != "pending":
            raise FinanceError("La transacción programada ya fue procesada.")
        return item

    @staticmethod
    def _validate(data: dict, today: date) -> dict:
        data = dict(data)
        type_ = data.get("type")
        if type_ not in ("income", "expense", "transfer"):
            raise FinanceError("Tipo inválido.")
        d = parse_date(data.get("scheduled_date"))
        if d is None:
            raise FinanceError("Fecha inválida.")
        if d <= today:
            raise FinanceError("La fecha programada debe ser a partir de mañana.")
        data["scheduled_date"] = format_date(d)
        try:
            data["amount"] = round(float(data.get("amount")), 2)
        except (TypeError, ValueError):
            raise FinanceError("Monto inválido.") from None
        if data["amount"] <= 0:
            raise FinanceError("El monto debe ser mayor a cero.")
        if not data.get("account_id"):
            raise FinanceError("Seleccioná una cuenta.")
        if type_ == "transfer":
            if not data.get("to_account_id"):
                raise FinanceError("Seleccioná la cuenta destino.")
            if data["to_account_id"] == data["account_id"]:
                raise FinanceError("No se puede transferir a la misma cuenta.")
            data["category_id"] = None
            if data.get("to_amount") not in (None, ""):
                data["to_amount"] = round(float(data["to_amount"]), 2)
            else:
                data["to_amount"] = None
        else:
            data["to_account_id"] = None
            data["to_amount"] = None
        data["note"] = (data.get("note") or "").strip()
        return data
