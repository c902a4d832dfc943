import calendar
import logging
from datetime import date, timedelta
from models.calendar_event import CalendarEvent
from services.movement_service import MovementService
from services.recurring_service import RecurringService
from services.scheduled_service import ScheduledService
from utils.date_helpers import format_date, parse_date, today as _today

logger = logging.getLogger(__name__)


def filter_events(events: list[CalendarEvent], types: set[str] | None = None) -> list[CalendarEvent]:
    if not types:
        return list(events)
    return [e for e in events if e.type in types]


def group_by_date(events: list[CalendarEvent]) -> dict[str, list[CalendarEvent]]:
    grouped: dict[str, list[CalendarEvent]] = {}
    for e in sorted(events, key=lambda e: e.date):
        grouped.setdefault(e.date, []).append(e)
    return grouped


def period_summary(events: list[CalendarEvent], currency: str | None = None) -> dict[str, float]:
    income = sum(e.amount for e in events if e.type == "income" and (not currency or e.currency == currency))
    expense = sum(e.amount for e in events if e.type == "expense" and (not currency or e.currency == currency))
    return {
        "income": round(income, 2),
        "expense": round(expense, 2),
        "balance": round(income - expense, 2),
    }


def month_grid(year: int, month: int) -> list[list[date | None]]:
    """Weeks of the month, Monday first; days outside the month are None."""
    weeks = []
    for week in calendar.Calendar(firstweekday=0).monthdayscalendar(year, month):
        weeks.append([date(year, month, d) if d else None for d in week])
    return weeks


class CalendarService:
    def __init__(
        self,
        movement_service: MovementService,
        scheduled_service: ScheduledService,
        recurring_service: RecurringService,
    ):
        self._movements = movement_service
        self._scheduled = scheduled_service
        self._recurring = recurring_service

    def get_calendar_events(self, start, end, today: date | None = None) -> list[CalendarEvent]:
        """Booked movements plus what is planned (scheduled and recurring) in [start, end]."""
        start_d, end_d = parse_date(start), parse_date(end)
        if start_d is None or end_d is None or end_d < start_d:
            return []
        start_s, end_s = format_date(start_d), format_date(end_d)
        events: list[CalendarEvent] = []

        for m in self._movements.get_movements(start_date=start_s, end_date=end_s):
            events.append(CalendarEvent(
                date=m.date, type=m.type, event_type="movement", amount=m.amount,
                title=m.note or m.category_name, currency=m.currency, source_id=m.id,
                account_name=m.account_name, category_name=m.category_name,
            ))
        for t in self._movements.get_transfers(start_date=start_s, end_date=end_s):
            events.append(CalendarEvent(
                date=t.date, type="transfer", event_type="movement", amount=t.from_amount,
                title=t.note or f"{t.from_account_name} → {t.to_account_name}",
                currency=t.from_currency, source_id=t.id, account_name=t.from_account_name,
            ))
        for s in self._scheduled.get_all("pending"):
            if start_s <= s.scheduled_date <= end_s:
                events.append(CalendarEvent(
                    date=s.scheduled_date, type=s.type, event_type="scheduled", amount=s.amount,
                    title=s.note or s.category_name, source_id=s.id,
                    account_name=s.account_name, category_name=s.category_name,
                ))

        # Past dates already produced movements; only project forward.
        projection_start = max(start_d, (today or _today()) + timedelta(days=1))
        if projection_start <= end_d:
            for rec in self._recurring.get_all():
                for d in self._recurring.projected_dates(rec, projection_start, end_d):
                    events.append(CalendarEvent(
                        date=format_date(d), type=rec.type, event_type="recurring_scheduled",
                        amount=rec.amount, title=rec.name, currency=rec.currency,
                        source_id=rec.id, account_name=rec.account_name,
                        category_name=rec.category_name,
                    ))

        events.sort(key=lambda e: (e.date, e.event_type))
        logger.debug("%d calendar events between %s and %s", len(events), start_s, end_s)
        return events
