import logging
from dataclasses import replace
from datetime import date, timedelta
from database.recurring_dao import RecurringDAO
from models.recurring import Frequency, RecurringOccurrence, RecurringTransaction
from services.data_events import ALL_DATA_CHANGED, RECURRING_CHANGED, DataEventBus, data_events
from services.movement_service import MovementService
from utils.constants import (
    CREATION_MODES, DAY_STEP, FREQUENCY_MONTHLY_FACTOR, FREQUENCY_TYPES, MONTH_STEP,
    UPCOMING_DAYS, WEEKEND_HANDLING,
)
from utils.date_helpers import add_months, clamp_day_to_month, format_date, parse_date, today as _today
from utils.errors import FinanceError

logger = logging.getLogger(__name__)

# Guard against runaway catch-up on very old daily rules.
MAX_CATCHUP_OCCURRENCES = 400
# A date moved back to Friday can fall due up to two days before its stored date.
WEEKEND_LOOKAHEAD_DAYS = 2


def advance(current: date, frequency: Frequency, anchor_day: int | None = None) -> date:
    """Next raw execution date after `current`."""
    if frequency.type in DAY_STEP:
        return current + timedelta(days=DAY_STEP[frequency.type])
    if frequency.type == "custom_days":
        return current + timedelta(days=max(1, int(frequency.interval or 1)))
    step = MONTH_STEP.get(frequency.type, 1)
    return add_months(current, step, day=frequency.day or anchor_day or current.day)


def first_execution_date(start: date, frequency: Frequency) -> date:
    """First raw execution date on or after `start`."""
    ftype = frequency.type
    if ftype in ("weekly", "biweekly") and frequency.day_of_week is not None:
        return start + timedelta(days=(frequency.day_of_week - start.weekday()) % 7)
    if ftype == "yearly" and frequency.month:
        day = frequency.day or start.day
        candidate = date(start.year, frequency.month,
                         clamp_day_to_month(start.year, frequency.month, day))
        if candidate < start:
            year = start.year + 1
            candidate = date(year, frequency.month, clamp_day_to_month(year, frequency.month, day))
        return candidate
    if ftype in MONTH_STEP and frequency.day:
        candidate = date(start.year, start.month,
                         clamp_day_to_month(start.year, start.month, frequency.day))
        if candidate < start:
            candidate = add_months(candidate, 1, day=frequency.day)
        return candidate
    return start


def adjust_for_weekend(d: date, handling: str) -> date:
    if d.weekday() < 5 or handling == "as_is":
        return d
    if handling == "previous_business_day":
        return d - timedelta(days=d.weekday() - 4)
    return d + timedelta(days=7 - d.weekday())


def next_date(rec: RecurringTransaction, from_date: date) -> date:
    """Raw execution date after `from_date`, anchored on the rule's start day."""
    anchor = parse_date(rec.start_date)
    return advance(from_date, rec.frequency, anchor.day if anchor else None)


def monthly_equivalent(rec: RecurringTransaction) -> float:
    ftype = rec.frequency.type
    if ftype == "custom_days":
        return rec.amount * 30 / max(1, int(rec.frequency.interval or 1))
    return rec.amount * FREQUENCY_MONTHLY_FACTOR.get(ftype, 1)


class RecurringService:
    def __init__(
        self,
        recurring_dao: RecurringDAO,
        movement_service: MovementService,
        events: DataEventBus = data_events,
    ):
        self._dao = recurring_dao
        self._movements = movement_service
        self._events = events

    # ── Queries ──────────────────────────────────────────────────────────────
    def get_all(self) -> list[RecurringTransaction]:
        return self._dao.get_all()

    def get_by_id(self, recurring_id: int) -> RecurringTransaction | None:
        return self._dao.get_by_id(recurring_id)

    def get_with_stats(self) -> list[RecurringTransaction]:
        stats = self._dao.occurrence_stats()
        items = self._dao.get_all()
        for rec in items:
            rec.stats = {
                "total": 0, "confirmed": 0, "pending": 0, "skipped": 0, "total_amount": 0.0,
                **stats.get(rec.id, {}),
                "monthly_amount": round(monthly_equivalent(rec), 2),
            }
        return items

    def get_pending_occurrences(self) -> list[RecurringOccurrence]:
        return self._dao.get_occurrences(status="pending")

    def get_occurrences(self, recurring_id: int) -> list[RecurringOccurrence]:
        return self._dao.get_occurrences(recurring_id=recurring_id)

    def effective_next_date(self, rec: RecurringTransaction) -> date | None:
        d = parse_date(rec.next_execution_date)
        return adjust_for_weekend(d, rec.weekend_handling) if d else None

    def upcoming(self, days: int = UPCOMING_DAYS, today: date | None = None) -> list[tuple[date, RecurringTransaction]]:
        today = today or _today()
        horizon = today + timedelta(days=days)
        result = []
        for rec in self._dao.get_all():
            if rec.status != "active":
                continue
            d = self.effective_next_date(rec)
            if d and today <= d <= horizon:
                result.append((d, rec))
        result.sort(key=lambda pair: pair[0])
        return result

    def projected_dates(self, rec: RecurringTransaction, start: date, end: date) -> list[date]:
        """Effective execution dates of an active rule that fall in [start, end]."""
        if rec.status != "active":
            return []
        current = parse_date(rec.next_execution_date)
        rule_end = parse_date(rec.end_date)
        dates = []
        for _ in range(MAX_CATCHUP_OCCURRENCES):
            if current is None or (rule_end and current > rule_end):
                break
            effective = adjust_for_weekend(current, rec.weekend_handling)
            if effective > end:
                break
            if effective >= start:
                dates.append(effective)
            current = next_date(rec, current)
        return dates

    # ── Mutations ────────────────────────────────────────────────────────────
    def create(self, data: dict) -> RecurringTransaction:
        data = self._validate(data)
        start = parse_date(data["start_date"])
        data["next_execution_date"] = format_date(first_execution_date(start, data["frequency"]))
        data.setdefault("is_active", True)
        data.setdefault("is_paused", False)
        rec = self._dao.create(data)
        logger.info("Created recurring %s next=%s", rec.id, rec.next_execution_date)
        self._events.emit(RECURRING_CHANGED)
        return rec

    def update(self, recurring_id: int, data: dict) -> RecurringTransaction:
        current = self._dao.get_by_id(recurring_id)
        if current is None:
            raise FinanceError("La transacción recurrente no existe.")
        data = self._validate(data)
        base = parse_date(data["start_date"])
        last = parse_date(current.last_generated_date)
        if last and last >= base:
            base = last + timedelta(days=1)
        data["next_execution_date"] = format_date(first_execution_date(base, data["frequency"]))
        data["last_generated_date"] = current.last_generated_date
        data.setdefault("is_active", current.is_active)
        data.setdefault("is_paused", current.is_paused)
        rec = self._dao.update(recurring_id, data)
        self._events.emit(RECURRING_CHANGED)
        return rec

    def set_paused(self, recurring_id: int, paused: bool):
        self._dao.set_fields(recurring_id, is_paused=paused)
        logger.info("Recurring %s %s", recurring_id, "paused" if paused else "resumed")
        self._events.emit(RECURRING_CHANGED)

    def set_active(self, recurring_id: int, active: bool):
        self._dao.set_fields(recurring_id, is_active=active)
        self._events.emit(RECURRING_CHANGED)

    def delete(self, recurring_id: int):
        self._dao.delete(recurring_id)
        logger.info("Deleted recurring %s", recurring_id)
        self._events.emit(RECURRING_CHANGED)

    def convert_to_recurring(self, movement_id: int, frequency: Frequency,
                             creation_mode: str = "automatic", name: str = "") -> RecurringTransaction:
        """Create a rule that repeats an existing movement, starting after it."""
        movement = self._movements.get_movement(movement_id)
        if movement is None:
            raise FinanceError("El movimiento no existe.")
        origin = parse_date(movement.date)
        anchored = replace(frequency)
        if anchored.type in MONTH_STEP and not anchored.day:
            anchored.day = origin.day
        return self.create({
            "name": name or movement.note or movement.category_name or "Recurrente",
            "description": movement.note,
            "type": movement.type,
            "amount": movement.amount,
            "currency": movement.currency,
            "account_id": movement.account_id,
            "category_id": movement.category_id,
            "frequency": anchored,
            "start_date": format_date(advance(origin, anchored, origin.day)),
            "creation_mode": creation_mode,
        })

    # ── Occurrences ──────────────────────────────────────────────────────────
    def process_due(self, today: date | None = None) -> list[RecurringOccurrence]:
        """Generate every occurrence that has fallen due up to `today`.

        Automatic rules get their movement or transfer immediately; rules
        needing confirmation leave a pending occurrence. Rules whose end
        date has passed are deactivated.
        """
        today = today or _today()
        created: list[RecurringOccurrence] = []
        lookahead = format_date(today + timedelta(days=WEEKEND_LOOKAHEAD_DAYS))
        for rec in self._dao.get_due(lookahead):
            try:
                created.extend(self._process_rule(rec, today))
            except FinanceError:
                logger.exception("Could not process recurring %s", rec.id)
        if created:
            logger.info("Generated %d recurring occurrences", len(created))
            self._events.emit(RECURRING_CHANGED)
            self._events.emit(ALL_DATA_CHANGED)
        return created

    def _process_rule(self, rec: RecurringTransaction, today: date) -> list[RecurringOccurrence]:
        created = []
        current = parse_date(rec.next_execution_date)
        end = parse_date(rec.end_date)
        last_generated = rec.last_generated_date
        # A failed execution leaves the rule on the failing date so the next run retries it.
        try:
            for _ in range(MAX_CATCHUP_OCCURRENCES):
                if end and current > end:
                    break
                effective = adjust_for_weekend(current, rec.weekend_handling)
                if effective > today:
                    break
                scheduled = format_date(effective)
                if self._dao.find_occurrence(rec.id, scheduled) is None:
                    created.append(self._create_occurrence(rec, scheduled))
                last_generated = scheduled
                current = next_date(rec, current)
        finally:
            fields = {"next_execution_date": format_date(current), "last_generated_date": last_generated}
            if end and current > end:
                fields["is_active"] = False
                logger.info("Recurring %s reached its end date", rec.id)
            self._dao.set_fields(rec.id, **fields)
        return created

    def _create_occurrence(self, rec: RecurringTransaction, scheduled: str) -> RecurringOccurrence:
        status = "confirmed" if rec.creation_mode == "automatic" else "pending"
        with self._dao.transaction():
            occurrence = self._dao.create_occurrence(rec.id, scheduled, status, commit=False)
            if status == "confirmed":
                self._execute(rec, occurrence, rec.amount, via="auto", commit=False)
        return self._dao.get_occurrence(occurrence.id)

    def _execute(self, rec: RecurringTransaction, occurrence: RecurringOccurrence,
                 amount: float, via: str, date_str: str | None = None,
                 to_amount: float | None = None, commit: bool = True):
        when = date_str or occurrence.scheduled_date
        if rec.type == "transfer":
            if to_amount in (None, "") and rec.to_amount:
                # Keep the rule's exchange ratio when the sent amount was adjusted.
                to_amount = round(rec.to_amount * amount / rec.amount, 2)
            transfer = self._movements.add_transfer(
                rec.from_account_id, rec.to_account_id, amount, when, rec.name,
                to_amount=to_amount, recurring_occurrence_id=occurrence.id,
                commit=commit, emit=False,
            )
            self._dao.resolve_occurrence(occurrence.id, "confirmed", transfer_id=transfer.id,
                                         actual_amount=amount, confirmed_via=via, commit=commit)
        else:
            movement = self._movements.add_movement(
                rec.type, rec.account_id, amount, when, rec.category_id, rec.name,
                recurring_occurrence_id=occurrence.id, commit=commit, emit=False,
            )
            self._dao.resolve_occurrence(occurrence.id, "confirmed", movement_id=movement.id,
                                         actual_amount=amount, confirmed_via=via, commit=commit)

    def confirm_occurrence(self, occurrence_id: int, actual_amount: float | None = None,
                           date_str: str | None = None,
                           actual_to_amount: float | None = None) -> RecurringOccurrence:
        occurrence = self._require_pending(occurrence_id)
        rec = self._dao.get_by_id(occurrence.recurring_id)
        amount = rec.amount if actual_amount in (None, "") else float(actual_amount)
        with self._dao.transaction():
            self._execute(rec, occurrence, amount, via="manual", date_str=date_str,
                          to_amount=actual_to_amount, commit=False)
        logger.info("Confirmed occurrence %s", occurrence_id)
        self._events.emit(RECURRING_CHANGED)
        self._events.emit(ALL_DATA_CHANGED)
        return self._dao.get_occurrence(occurrence_id)

    def skip_occurrence(self, occurrence_id: int) -> RecurringOccurrence:
        self._require_pending(occurrence_id)
        self._dao.resolve_occurrence(occurrence_id, "skipped")
        self._events.emit(RECURRING_CHANGED)
        return self._dao.get_occurrence(occurrence_id)

    def skip_next_occurrence(self, recurring_id: int) -> RecurringOccurrence:
        """Record the next execution as skipped and move the rule past it."""
        rec = self._dao.get_by_id(recurring_id)
        if rec is None or not rec.next_execution_date:
            raise FinanceError("La transacción recurrente no tiene próxima ejecución.")
        current = parse_date(rec.next_execution_date)
        scheduled = format_date(adjust_for_weekend(current, rec.weekend_handling))
        occurrence = self._dao.find_occurrence(rec.id, scheduled)
        if occurrence is None:
            occurrence = self._dao.create_occurrence(rec.id, scheduled, "skipped")
        else:
            self._dao.resolve_occurrence(occurrence.id, "skipped")
        nxt = next_date(rec, current)
        fields = {"next_execution_date": format_date(nxt)}
        end = parse_date(rec.end_date)
        if end and nxt > end:
            fields["is_active"] = False
        self._dao.set_fields(rec.id, **fields)
        self._events.emit(RECURRING_CHANGED)
        return self._dao.get_occurrence(occurrence.id)

    # ── Summaries ────────────────────────────────────────────────────────────
    def monthly_totals(self, items: list[RecurringTransaction] | None = None,
                       currency: str | None = None) -> dict[str, float]:
        items = self._dao.get_all() if items is None else items
        income = expense = 0.0
        for rec in items:
            if rec.status != "active" or (currency and rec.currency != currency):
                continue
            if rec.type == "income":
                income += monthly_equivalent(rec)
            elif rec.type == "expense":
                expense += monthly_equivalent(rec)
        return {
            "monthly_income": round(income, 2),
            "monthly_expense": round(expense, 2),
            "balance": round(income - expense, 2),
        }

    # ── Helpers ──────────────────────────────────────────────────────────────
    def _require_pending(self, occurrence_id: int) -> RecurringOccurrence:
        occurrence = self._dao.get_occurrence(occurrence_id)
        if occurrence is None:
            raise FinanceError("La ocurrencia no existe.")
        if occurrence.status != "pending":
            raise FinanceError("La ocurrencia ya fue procesada.")
        return occurrence

    def _validate(self, data: dict) -> dict:
        data = dict(data)
        if not (data.get("name") or "").strip():
            raise FinanceError("El nombre es obligatorio.")
        data["name"] = data["name"].strip()
        if data.get("type") not in ("income", "expense", "transfer"):
            raise FinanceError("Tipo inválido.")
        try:
            amount = float(data.get("amount"))
        except (TypeError, ValueError):
            raise FinanceError("Monto inválido.") from None
        if amount <= 0:
            raise FinanceError("El monto debe ser mayor a cero.")
        data["amount"] = round(amount, 2)
        if data["type"] == "transfer":
            if not data.get("from_account_id") or not data.get("to_account_id"):
                raise FinanceError("Seleccioná las cuentas de origen y destino.")
            if data["from_account_id"] == data["to_account_id"]:
                raise FinanceError("No se puede transferir a la misma cuenta.")
            to_amount = data.get("to_amount")
            resolved = self._movements.transfer_to_amount(
                data["from_account_id"], data["to_account_id"], data["amount"], to_amount)
            data["to_amount"] = None if to_amount in (None, "") else resolved
            data["account_id"] = None
            data["category_id"] = None
        elif not data.get("account_id"):
            raise FinanceError("Seleccioná una cuenta.")

        frequency = data.get("frequency")
        if isinstance(frequency, dict):
            frequency = Frequency.from_dict(frequency)
        if not isinstance(frequency, Frequency) or frequency.type not in FREQUENCY_TYPES:
            raise FinanceError("Frecuencia inválida.")
        if frequency.type == "custom_days" and not (frequency.interval and int(frequency.interval) >= 1):
            raise FinanceError("Indicá cada cuántos días se repite.")
        if frequency.day is not None and not 1 <= int(frequency.day) <= 31:
            raise FinanceError("El día del mes debe estar entre 1 y 31.")
        data["frequency"] = frequency

        data.setdefault("weekend_handling", "as_is")
        if data["weekend_handling"] not in WEEKEND_HANDLING:
            raise FinanceError("Manejo de fin de semana inválido.")
        data.setdefault("creation_mode", "automatic")
        if data["creation_mode"] not in CREATION_MODES:
            raise FinanceError("Modo de creación inválido.")

        start = parse_date(data.get("start_date"))
        if start is None:
            raise FinanceError("Fecha de inicio inválida.")
        data["start_date"] = format_date(start)
        end = parse_date(data.get("end_date")) if data.get("end_date") else None
        if data.get("end_date") and end is None:
            raise FinanceError("Fecha de fin inválida.")
        if end and end < start:
            raise FinanceError("La fecha de fin debe ser posterior al inicio.")
        data["end_date"] = format_date(end) if end else None
        data.setdefault("currency", "ARS")
        data.setdefault("description", "")
        return data
