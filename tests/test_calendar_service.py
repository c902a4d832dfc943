from __future__ import annotations

from datetime import date

from models.calendar_event import CalendarEvent
from services.calendar_service import filter_events, group_by_date, month_grid, period_summary

TODAY = date(2026, 3, 15)


def _populate(services, account) -> None:
    savings = services.accounts.create("Ahorro")
    services.movements.add_income(account.id, 1000, "2026-03-02", note="Sueldo")
    services.movements.add_expense(account.id, 200, "2026-03-05", note="Super")
    services.movements.add_transfer(account.id, savings.id, 100, "2026-03-06")
    services.scheduled.create({
        "type": "expense", "scheduled_date": "2026-03-20", "amount": 50,
        "account_id": account.id, "note": "Dentista",
    }, today=TODAY)
    services.recurring.create({
        "name": "Gimnasio", "type": "expense", "amount": 300,
        "frequency": {"type": "monthly", "day": 25}, "start_date": "2026-03-01",
        "account_id": account.id,
    })


def test_calendar_merges_booked_and_planned_items(services, cash) -> None:
    _populate(services, cash)

    events = services.calendar.get_calendar_events("2026-03-01", "2026-03-31", today=TODAY)

    assert [(e.date, e.type, e.event_type) for e in events] == [
        ("2026-03-02", "income", "movement"),
        ("2026-03-05", "expense", "movement"),
        ("2026-03-06", "transfer", "movement"),
        ("2026-03-20", "expense", "scheduled"),
        ("2026-03-25", "expense", "recurring_scheduled"),
    ]
    assert events[3].title == "Dentista"
    assert events[4].title == "Gimnasio"


def test_recurring_projection_only_looks_forward(services, cash) -> None:
    _populate(services, cash)

    events = services.calendar.get_calendar_events("2026-03-01", "2026-03-31", today=date(2026, 3, 28))

    assert all(e.event_type != "recurring_scheduled" for e in events)


def test_recurring_projection_spans_several_months(services, cash) -> None:
    _populate(services, cash)

    events = services.calendar.get_calendar_events("2026-04-01", "2026-06-30", today=TODAY)

    assert [e.date for e in events if e.event_type == "recurring_scheduled"] == [
        "2026-04-25", "2026-05-25", "2026-06-25",
    ]


def test_invalid_range_returns_nothing(services) -> None:
    assert services.calendar.get_calendar_events("2026-03-31", "2026-03-01") == []
    assert services.calendar.get_calendar_events("", "2026-03-01") == []


def test_summary_filter_and_grouping(services, cash) -> None:
    _populate(services, cash)
    events = services.calendar.get_calendar_events("2026-03-01", "2026-03-31", today=TODAY)

    assert period_summary(events) == {"income": 1000, "expense": 550, "balance": 450}
    assert [e.date for e in filter_events(events, {"income"})] == ["2026-03-02"]
    assert filter_events(events, set()) == events
    assert list(group_by_date(events)) == [
        "2026-03-02", "2026-03-05", "2026-03-06", "2026-03-20", "2026-03-25",
    ]


def test_summary_by_currency() -> None:
    events = [
        CalendarEvent(date="2026-03-01", type="expense", event_type="movement", amount=10, currency="USD"),
        CalendarEvent(date="2026-03-01", type="expense", event_type="movement", amount=500),
    ]

    assert period_summary(events, "USD") == {"income": 0, "expense": 10, "balance": -10}


def test_month_grid_starts_on_monday() -> None:
    weeks = month_grid(2026, 3)

    assert len(weeks) == 6
    assert weeks[0] == [None] * 6 + [date(2026, 3, 1)]
    assert weeks[-1][:2] == [date(2026, 3, 30), date(2026, 3, 31)]
    assert weeks[-1][2:] == [None] * 5
