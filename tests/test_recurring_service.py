from __future__ import annotations

from datetime import date

import pytest

from database.recurring_dao import RecurringDAO
from models.recurring import Frequency, RecurringTransaction
from services.recurring_service import (
    adjust_for_weekend,
    advance,
    first_execution_date,
    monthly_equivalent,
    next_date,
)
from utils.errors import FinanceError

TODAY = date(2026, 3, 15)


def _rule(services, account, **overrides):
    data = {
        "name": "Alquiler",
        "type": "expense",
        "amount": 1000,
        "frequency": {"type": "monthly", "day": 10},
        "start_date": "2026-01-01",
        "account_id": account.id,
    }
    data.update(overrides)
    return services.recurring.create(data)


def test_advance_keeps_the_anchor_day_across_short_months() -> None:
    monthly = Frequency(type="monthly")

    feb = advance(date(2026, 1, 31), monthly, anchor_day=31)
    mar = advance(feb, monthly, anchor_day=31)

    assert feb == date(2026, 2, 28)
    assert mar == date(2026, 3, 31)


def test_next_date_anchors_on_the_start_day() -> None:
    rent = RecurringTransaction(id=1, name="Alquiler", type="expense", amount=100,
                                frequency=Frequency(type="monthly"), start_date="2026-01-30")

    assert next_date(rent, date(2026, 2, 28)) == date(2026, 3, 30)
    assert next_date(rent, date(2026, 1, 30)) == date(2026, 2, 28)


def test_advance_day_based_frequencies() -> None:
    start = date(2026, 1, 1)

    assert advance(start, Frequency(type="weekly")) == date(2026, 1, 8)
    assert advance(start, Frequency(type="biweekly")) == date(2026, 1, 15)
    assert advance(start, Frequency(type="custom_days", interval=10)) == date(2026, 1, 11)
    assert advance(start, Frequency(type="quarterly")) == date(2026, 4, 1)


def test_first_execution_date() -> None:
    start = date(2026, 1, 1)  # Thursday

    assert first_execution_date(start, Frequency(type="weekly", day_of_week=0)) == date(2026, 1, 5)
    assert first_execution_date(start, Frequency(type="monthly", day=5)) == date(2026, 1, 5)
    assert first_execution_date(date(2026, 1, 10), Frequency(type="monthly", day=5)) == date(2026, 2, 5)
    assert first_execution_date(date(2026, 5, 1), Frequency(type="yearly", month=3, day=1)) == date(2027, 3, 1)
    assert first_execution_date(start, Frequency(type="daily")) == start


def test_adjust_for_weekend() -> None:
    saturday, sunday, monday = date(2026, 1, 10), date(2026, 1, 11), date(2026, 1, 12)

    assert adjust_for_weekend(saturday, "previous_business_day") == date(2026, 1, 9)
    assert adjust_for_weekend(sunday, "previous_business_day") == date(2026, 1, 9)
    assert adjust_for_weekend(saturday, "next_business_day") == monday
    assert adjust_for_weekend(sunday, "next_business_day") == monday
    assert adjust_for_weekend(saturday, "as_is") == saturday
    assert adjust_for_weekend(monday, "previous_business_day") == monday


def test_monthly_equivalent() -> None:
    weekly = RecurringTransaction(id=1, name="x", type="expense", amount=100,
                                  frequency=Frequency(type="weekly"), start_date="2026-01-01")
    every_15 = RecurringTransaction(id=2, name="y", type="expense", amount=100,
                                    frequency=Frequency(type="custom_days", interval=15),
                                    start_date="2026-01-01")

    assert monthly_equivalent(weekly) == 400
    assert monthly_equivalent(every_15) == 200


def test_create_sets_the_first_execution_date(services, cash) -> None:
    rec = _rule(services, cash)

    assert rec.next_execution_date == "2026-01-10"
    assert rec.status == "active"


def test_automatic_rule_catches_up_and_is_idempotent(services, cash) -> None:
    rec = _rule(services, cash)

    created = services.recurring.process_due(TODAY)

    assert [o.scheduled_date for o in created] == ["2026-01-10", "2026-02-10", "2026-03-10"]
    assert all(o.status == "confirmed" and o.movement_id for o in created)
    movements = services.movements.get_movements(account_ids=[cash.id])
    assert sorted(m.date for m in movements) == ["2026-01-10", "2026-02-10", "2026-03-10"]
    assert all(m.note == "Alquiler" for m in movements)

    refreshed = services.recurring.get_by_id(rec.id)
    assert refreshed.next_execution_date == "2026-04-10"
    assert refreshed.last_generated_date == "2026-03-10"
    assert services.recurring.process_due(TODAY) == []


def test_weekend_handling_moves_the_occurrence(services, cash) -> None:
    _rule(services, cash, weekend_handling="previous_business_day",
          start_date="2026-01-05", end_date="2026-01-31")

    created = services.recurring.process_due(date(2026, 1, 9))

    # 2026-01-10 is a Saturday; it falls due on Friday the 9th.
    assert [o.scheduled_date for o in created] == ["2026-01-09"]


def test_manual_rule_waits_for_confirmation(services, cash) -> None:
    _rule(services, cash, creation_mode="manual_confirmation")

    created = services.recurring.process_due(TODAY)

    assert [o.status for o in created] == ["pending"] * 3
    assert services.movements.get_movements(account_ids=[cash.id]) == []

    confirmed = services.recurring.confirm_occurrence(created[0].id, 1200)
    skipped = services.recurring.skip_occurrence(created[1].id)

    assert confirmed.status == "confirmed"
    assert confirmed.actual_amount == 1200
    assert confirmed.confirmed_via == "manual"
    assert skipped.status == "skipped"
    assert [m.amount for m in services.movements.get_movements(account_ids=[cash.id])] == [1200]
    assert len(services.recurring.get_pending_occurrences()) == 1
    with pytest.raises(FinanceError):
        services.recurring.confirm_occurrence(created[0].id)


def test_rule_is_deactivated_after_its_end_date(services, cash) -> None:
    rec = _rule(services, cash, end_date="2026-02-15")

    created = services.recurring.process_due(TODAY)

    assert len(created) == 2
    assert services.recurring.get_by_id(rec.id).status == "inactive"


def test_paused_rule_generates_nothing(services, cash) -> None:
    rec = _rule(services, cash)
    services.recurring.set_paused(rec.id, True)

    assert services.recurring.process_due(TODAY) == []
    assert services.recurring.get_by_id(rec.id).status == "paused"


def test_recurring_transfer_creates_transfers(services, cash) -> None:
    savings = services.accounts.create("Ahorro")
    _rule(services, cash, type="transfer", account_id=None,
          from_account_id=cash.id, to_account_id=savings.id, amount=100,
          end_date="2026-01-31")

    created = services.recurring.process_due(TODAY)

    assert len(created) == 1 and created[0].transfer_id
    assert services.accounts.get_balances()[savings.id] == 100


def test_skip_next_occurrence_advances_the_rule(services, cash) -> None:
    rec = _rule(services, cash)

    occurrence = services.recurring.skip_next_occurrence(rec.id)

    assert occurrence.status == "skipped"
    assert occurrence.scheduled_date == "2026-01-10"
    assert services.recurring.get_by_id(rec.id).next_execution_date == "2026-02-10"


def test_upcoming_and_projected_dates(services, cash) -> None:
    rec = _rule(services, cash, start_date="2026-04-01")

    upcoming = services.recurring.upcoming(days=7, today=date(2026, 4, 5))
    projected = services.recurring.projected_dates(rec, date(2026, 4, 1), date(2026, 6, 30))

    assert [(d, r.id) for d, r in upcoming] == [(date(2026, 4, 10), rec.id)]
    assert projected == [date(2026, 4, 10), date(2026, 5, 10), date(2026, 6, 10)]
    assert services.recurring.upcoming(days=3, today=date(2026, 4, 5)) == []


def test_monthly_totals_by_currency(services, cash) -> None:
    _rule(services, cash, amount=1000)
    _rule(services, cash, name="Sueldo", type="income", amount=5000)
    _rule(services, cash, name="Netflix", amount=10, currency="USD")

    totals = services.recurring.monthly_totals(currency="ARS")

    assert totals == {"monthly_income": 5000, "monthly_expense": 1000, "balance": 4000}


def test_stats_count_occurrences(services, cash) -> None:
    rec = _rule(services, cash)
    services.recurring.process_due(TODAY)

    stats = next(r for r in services.recurring.get_with_stats() if r.id == rec.id).stats

    assert stats["confirmed"] == 3
    assert stats["total_amount"] == 3000
    assert stats["monthly_amount"] == 1000


def test_convert_movement_to_recurring(services, cash) -> None:
    movement = services.movements.add_expense(cash.id, 300, "2026-01-15", note="Gimnasio")

    rec = services.recurring.convert_to_recurring(movement.id, Frequency(type="monthly"))

    assert rec.name == "Gimnasio"
    assert rec.amount == 300
    assert rec.start_date == "2026-02-15"
    assert rec.next_execution_date == "2026-02-15"
    assert rec.frequency.day == 15


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "  "},
        {"amount": 0},
        {"frequency": {"type": "fortnightly"}},
        {"frequency": {"type": "custom_days"}},
        {"end_date": "2025-12-01"},
        {"weekend_handling": "skip"},
    ],
)
def test_invalid_rules_are_rejected(services, cash, overrides) -> None:
    with pytest.raises(FinanceError):
        _rule(services, cash, **overrides)


def test_transfer_rule_needs_two_accounts(services, cash) -> None:
    with pytest.raises(FinanceError):
        _rule(services, cash, type="transfer", from_account_id=cash.id, to_account_id=cash.id)


def test_transfer_rule_between_currencies_needs_received_amount(services, cash, usd_account) -> None:
    with pytest.raises(FinanceError):
        _rule(services, cash, type="transfer", account_id=None,
              from_account_id=cash.id, to_account_id=usd_account.id)

    rec = _rule(services, cash, type="transfer", account_id=None,
                from_account_id=cash.id, to_account_id=usd_account.id, to_amount=1)

    assert rec.to_amount == 1


def test_failed_automatic_transfer_records_nothing(db, services, cash, usd_account) -> None:
    rec = _rule(services, cash, type="transfer", account_id=None,
                from_account_id=cash.id, to_account_id=usd_account.id, to_amount=1)
    dao = RecurringDAO(db)
    dao.set_fields(rec.id, to_amount=None)

    assert services.recurring.process_due(TODAY) == []
    assert services.recurring.process_due(TODAY) == []
    assert services.recurring.get_occurrences(rec.id) == []
    assert services.movements.get_transfers() == []
    stored = services.recurring.get_by_id(rec.id)
    assert stored.next_execution_date == "2026-01-10"
    assert stored.status == "active"

    dao.set_fields(rec.id, to_amount=1)
    created = services.recurring.process_due(TODAY)

    assert [o.status for o in created] == ["confirmed"] * 3
    assert all(o.transfer_id for o in created)
    assert services.accounts.get_balances()[usd_account.id] == 3


def test_confirming_an_adjusted_transfer_keeps_the_exchange_ratio(services, cash, usd_account) -> None:
    _rule(services, cash, type="transfer", account_id=None, creation_mode="manual_confirmation",
          from_account_id=cash.id, to_account_id=usd_account.id, to_amount=1)
    created = services.recurring.process_due(TODAY)

    services.recurring.confirm_occurrence(created[0].id, 2000)
    services.recurring.confirm_occurrence(created[1].id, 1000, actual_to_amount=1.5)

    assert sorted(t.to_amount for t in services.movements.get_transfers()) == [1.5, 2]
    assert services.recurring.get_occurrences(created[2].recurring_id)[2].status == "pending"
