from __future__ import annotations

import pytest

from services.data_events import ACCOUNTS_CHANGED, CATEGORIES_CHANGED
from utils.constants import CREDIT_CARD_TYPE
from utils.errors import FinanceError


def test_create_account_emits_and_lists(services, recorded) -> None:
    account = services.accounts.create("  Mercado Pago ", opening_balance=50)

    assert account.name == "Mercado Pago"
    assert recorded == [ACCOUNTS_CHANGED]
    assert services.accounts.get_balances()[account.id] == 50


def test_credit_card_defaults_its_closing_day(services) -> None:
    card = services.accounts.create("Master", account_type=CREDIT_CARD_TYPE)

    assert card.is_credit_card
    assert card.closing_day == 1
    assert [c.id for c in services.accounts.get_credit_cards()] == [card.id]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": ""},
        {"name": "X", "currency": "BRL"},
        {"name": "X", "account_type": "Alcancía"},
        {"name": "X", "account_type": CREDIT_CARD_TYPE, "closing_day": 40},
        {"name": "Efectivo"},
    ],
)
def test_invalid_accounts_are_rejected(services, kwargs) -> None:
    with pytest.raises(FinanceError):
        services.accounts.create(**kwargs)


def test_account_with_movements_cannot_be_deleted_or_change_currency(services, cash) -> None:
    services.movements.add_expense(cash.id, 10, "2026-01-10")

    with pytest.raises(FinanceError):
        services.accounts.delete(cash.id)
    with pytest.raises(FinanceError):
        services.accounts.update(cash.id, "Banco", currency="USD")

    renamed = services.accounts.update(cash.id, "Banco Nación", opening_balance=1000)
    assert renamed.name == "Banco Nación"


def test_empty_account_can_be_deleted(services) -> None:
    account = services.accounts.create("Temporal")

    services.accounts.delete(account.id)

    assert services.accounts.get_by_id(account.id) is None


def test_category_names_are_unique_per_type(services, recorded) -> None:
    category = services.categories.create("Mascotas", "expense", icon="🐶")

    assert recorded == [CATEGORIES_CHANGED]
    assert category.display_name == "🐶 Mascotas"
    with pytest.raises(FinanceError):
        services.categories.create("mascotas", "expense")
    assert services.categories.create("Mascotas", "income").type == "income"


def test_deleting_a_used_category_keeps_its_movements(services, cash, expense_category) -> None:
    movement = services.movements.add_expense(cash.id, 10, "2026-01-10", category_id=expense_category.id)

    services.categories.delete(expense_category.id)

    assert services.movements.get_movement(movement.id).category_id is None


def test_invalid_categories_are_rejected(services) -> None:
    with pytest.raises(FinanceError):
        services.categories.create(" ", "expense")
    with pytest.raises(FinanceError):
        services.categories.create("Viajes", "transfer")
