from __future__ import annotations

from datetime import date

import pytest

from models.movement import InstallmentPurchase, Movement
from services.data_events import ALL_DATA_CHANGED, EXPENSES_CHANGED, INCOMES_CHANGED, TRANSFERS_CHANGED
from utils.errors import FinanceError

FUTURE = "2031-06-15"


def test_balance_counts_effective_movements_only(services, cash) -> None:
    services.movements.add_income(cash.id, 500, "2026-01-10", note="Sueldo")
    services.movements.add_expense(cash.id, 200, "2026-01-11")
    services.movements.add_expense(cash.id, 999, FUTURE)

    assert services.accounts.get_balances()[cash.id] == 1300


def test_add_income_emits_incomes_topic(services, cash, recorded) -> None:
    recorded.clear()
    movement = services.movements.add_income(cash.id, "150.5", "2026-02-01", note="  extra  ")

    assert movement.amount == 150.5
    assert movement.note == "extra"
    assert movement.currency == "ARS"
    assert recorded == [INCOMES_CHANGED]


def test_future_dated_movement_is_flagged(services, cash) -> None:
    movement = services.movements.add_expense(cash.id, 10, FUTURE)

    assert movement.is_future is True


@pytest.mark.parametrize("amount", [0, -5, "abc", None])
def test_invalid_amount_is_rejected(services, cash, amount) -> None:
    with pytest.raises(FinanceError):
        services.movements.add_expense(cash.id, amount, "2026-01-10")


def test_invalid_date_or_account_is_rejected(services, cash) -> None:
    with pytest.raises(FinanceError):
        services.movements.add_expense(cash.id, 10, "31-31-2026")
    with pytest.raises(FinanceError):
        services.movements.add_expense(9999, 10, "2026-01-10")


def test_only_cards_accept_foreign_currency(services, cash, card) -> None:
    on_card = services.movements.add_expense(card.id, 20, "2026-01-10", currency="USD")

    assert on_card.currency == "USD"
    with pytest.raises(FinanceError):
        services.movements.add_expense(cash.id, 20, "2026-01-10", currency="USD")


def test_installment_purchase_splits_into_card_movements(services, card, expense_category) -> None:
    purchase = services.movements.add_expense_with_installments(
        card.id, 100, "2026-01-10", 3, category_id=expense_category.id, description="TV",
    )

    assert isinstance(purchase, InstallmentPurchase)
    assert purchase.first_installment_date == "2026-02-20"
    items = services.movements.get_installments_by_purchase(purchase.id)
    assert [m.date for m in items] == ["2026-02-20", "2026-03-20", "2026-04-20"]
    assert [m.amount for m in items] == [33.33, 33.33, 33.34]
    assert [m.note for m in items] == ["TV - Cuota 1/3", "TV - Cuota 2/3", "TV - Cuota 3/3"]
    assert items[1].installment_number == 2


def test_single_installment_is_a_plain_expense(services, card) -> None:
    result = services.movements.add_expense_with_installments(card.id, 80, "2026-01-10", 1)

    assert isinstance(result, Movement)
    assert result.date == "2026-01-10"
    assert result.installment is None


def test_installments_require_a_card(services, cash) -> None:
    with pytest.raises(FinanceError):
        services.movements.add_expense_with_installments(cash.id, 100, "2026-01-10", 3)

    assert services.movements.get_movements(account_ids=[cash.id]) == []


def test_pending_installments_and_purchase_delete(services, card) -> None:
    purchase = services.movements.add_expense_with_installments(card.id, 300, "2026-01-10", 3)

    pending = services.movements.get_pending_installments(date(2026, 3, 1))
    assert [m.date for m in pending] == ["2026-03-20", "2026-04-20"]

    services.movements.delete_installment_purchase(purchase.id)

    assert services.movements.get_installments_by_purchase(purchase.id) == []
    with pytest.raises(FinanceError):
        services.movements.delete_installment_purchase(purchase.id)


def test_update_movement_moves_it_to_another_type(services, cash, recorded) -> None:
    movement = services.movements.add_expense(cash.id, 40, "2026-01-10")
    recorded.clear()

    updated = services.movements.update_movement(movement.id, type="income", amount="45")

    assert updated.type == "income"
    assert updated.amount == 45
    assert recorded == [EXPENSES_CHANGED, INCOMES_CHANGED]


def test_delete_missing_movement_fails(services) -> None:
    with pytest.raises(FinanceError):
        services.movements.delete_movement(12345)


def test_bulk_operations_broadcast_once(services, cash, expense_category, recorded) -> None:
    ids = [services.movements.add_expense(cash.id, n, "2026-01-10").id for n in (1, 2, 3)]
    recorded.clear()

    assert services.movements.bulk_update_movements(ids, "category_id", expense_category.id) == 3
    assert all(m.category_id == expense_category.id
               for m in services.movements.get_movements(account_ids=[cash.id]))
    assert services.movements.bulk_delete_movements(ids[:2]) == 2
    assert recorded == [ALL_DATA_CHANGED, ALL_DATA_CHANGED]
    assert len(services.movements.get_movements(account_ids=[cash.id])) == 1


def test_bulk_update_rejects_unknown_fields(services, cash) -> None:
    movement = services.movements.add_expense(cash.id, 5, "2026-01-10")

    with pytest.raises(FinanceError):
        services.movements.bulk_update_movements([movement.id], "amount", 10)


def test_transfer_moves_money_between_accounts(services, cash, recorded) -> None:
    savings = services.accounts.create("Ahorro")
    recorded.clear()

    transfer = services.movements.add_transfer(cash.id, savings.id, 250, "2026-01-10", "ahorro")

    balances = services.accounts.get_balances()
    assert transfer.to_amount == 250
    assert balances[cash.id] == 750
    assert balances[savings.id] == 250
    assert recorded == [TRANSFERS_CHANGED]


def test_transfer_between_currencies_needs_received_amount(services, cash, usd_account) -> None:
    with pytest.raises(FinanceError):
        services.movements.add_transfer(cash.id, usd_account.id, 980, "2026-01-10")

    transfer = services.movements.add_transfer(cash.id, usd_account.id, 980, "2026-01-10", to_amount=1)

    assert transfer.from_currency == "ARS"
    assert transfer.to_currency == "USD"
    assert services.accounts.get_balances()[usd_account.id] == 1


def test_transfer_to_same_account_fails(services, cash) -> None:
    with pytest.raises(FinanceError):
        services.movements.add_transfer(cash.id, cash.id, 10, "2026-01-10")


def test_process_arrived_future_flips_due_items(services, cash, recorded) -> None:
    services.movements.add_expense(cash.id, 10, FUTURE)
    recorded.clear()

    assert services.movements.process_arrived_future(date(2031, 1, 1)) == 0
    assert services.movements.process_arrived_future(date(2031, 6, 15)) == 1
    assert recorded == [ALL_DATA_CHANGED]
    assert services.accounts.get_balances()[cash.id] == 990


def test_recent_usage_lists_latest_first(services, cash, expense_category) -> None:
    other = services.accounts.create("Otra")
    services.movements.add_expense(other.id, 1, "2026-01-10")
    services.movements.add_expense(cash.id, 1, "2026-01-11", category_id=expense_category.id)

    usage = services.movements.get_recent_usage()

    assert usage["account_ids"][:2] == [cash.id, other.id]
    assert usage["category_ids"] == [expense_category.id]
