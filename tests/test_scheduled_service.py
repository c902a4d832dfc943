from __future__ import annotations

from datetime import date

import pytest

from services.data_events import ALL_DATA_CHANGED, SCHEDULED_CHANGED
from utils.errors import FinanceError

TODAY = date(2026, 3, 15)


def _schedule(services, account, **overrides):
    data = {
        "type": "expense",
        "scheduled_date": "2026-03-20",
        "amount": 250,
        "account_id": account.id,
        "note": "Seguro",
    }
    data.update(overrides)
    return services.scheduled.create(data, today=TODAY)


def test_create_keeps_the_item_pending(services, cash) -> None:
    item = _schedule(services, cash)

    assert item.status == "pending"
    assert item.to_account_id is None
    assert services.scheduled.counts() == {"pending": 1, "executed": 0, "rejected": 0}
    assert services.movements.get_movements(account_ids=[cash.id]) == []


def test_date_must_be_after_today(services, cash) -> None:
    with pytest.raises(FinanceError):
        _schedule(services, cash, scheduled_date="2026-03-15")


@pytest.mark.parametrize(
    "overrides",
    [{"type": "loan"}, {"amount": "x"}, {"amount": 0}, {"account_id": None},
     {"scheduled_date": "someday"}],
)
def test_invalid_items_are_rejected(services, cash, overrides) -> None:
    with pytest.raises(FinanceError):
        _schedule(services, cash, **overrides)


def test_approve_creates_the_movement(services, cash, recorded) -> None:
    item = _schedule(services, cash)
    recorded.clear()

    approved = services.scheduled.approve(item.id)

    movements = services.movements.get_movements(account_ids=[cash.id])
    assert approved.status == "executed"
    assert approved.executed_movement_id == movements[0].id
    assert (movements[0].date, movements[0].amount, movements[0].note) == ("2026-03-20", 250, "Seguro")
    assert recorded == [SCHEDULED_CHANGED, ALL_DATA_CHANGED]
    with pytest.raises(FinanceError):
        services.scheduled.approve(item.id)


def test_approve_transfer(services, cash) -> None:
    savings = services.accounts.create("Ahorro")
    item = _schedule(services, cash, type="transfer", to_account_id=savings.id, category_id=7)

    assert item.category_id is None
    approved = services.scheduled.approve(item.id)

    transfer = services.movements.get_transfer(approved.executed_transfer_id)
    assert (transfer.from_account_id, transfer.to_account_id, transfer.to_amount) == (cash.id, savings.id, 250)


def test_transfer_needs_a_different_target(services, cash) -> None:
    with pytest.raises(FinanceError):
        _schedule(services, cash, type="transfer")
    with pytest.raises(FinanceError):
        _schedule(services, cash, type="transfer", to_account_id=cash.id)


def test_reject_and_status_filter(services, cash) -> None:
    first = _schedule(services, cash)
    second = _schedule(services, cash, scheduled_date="2026-04-01")

    services.scheduled.reject(first.id)

    assert [s.id for s in services.scheduled.get_all("pending")] == [second.id]
    assert [s.id for s in services.scheduled.get_all("rejected")] == [first.id]
    with pytest.raises(FinanceError):
        services.scheduled.get_all("lost")


def test_process_due_flags_arrived_pending_items(services, cash) -> None:
    due = _schedule(services, cash)
    _schedule(services, cash, scheduled_date="2026-04-01")

    assert services.scheduled.process_due(date(2026, 3, 19)) == []
    assert [s.id for s in services.scheduled.process_due(date(2026, 3, 20))] == [due.id]


def test_only_pending_items_can_be_edited(services, cash) -> None:
    item = _schedule(services, cash)
    updated = services.scheduled.update(item.id, {
        "type": "income", "scheduled_date": "2026-03-25", "amount": 90, "account_id": cash.id,
    }, today=TODAY)

    assert (updated.type, updated.amount) == ("income", 90)
    services.scheduled.reject(item.id)
    with pytest.raises(FinanceError):
        services.scheduled.update(item.id, {"type": "income"}, today=TODAY)
