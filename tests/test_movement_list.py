from __future__ import annotations

from models.movement import Movement, Transfer
from services.movement_list import (
    DEFAULT_SORT,
    filter_movements,
    load_sort_preference,
    save_sort_preference,
    sort_movements,
    sort_options,
    subtotals,
)


def _movements() -> list[Movement]:
    return [
        Movement(id=1, type="expense", date="2026-03-01", amount=50, account_id=1,
                 category_id=10, note="Cafe", account_name="Banco", category_name="Salidas"),
        Movement(id=2, type="expense", date="2026-03-10", amount=500, account_id=2,
                 category_id=11, note="Zapatillas", account_name="Visa", category_name="Ropa"),
        Movement(id=3, type="expense", date="2026-02-20", amount=30, account_id=2,
                 category_id=10, note="", currency="USD", account_name="Visa",
                 category_name="Salidas"),
    ]


def _transfers() -> list[Transfer]:
    return [
        Transfer(id=1, date="2026-03-01", from_account_id=1, to_account_id=2, from_amount=980,
                 to_amount=1, from_currency="ARS", to_currency="USD",
                 from_account_name="Banco", to_account_name="Dólares"),
        Transfer(id=2, date="2026-03-05", from_account_id=2, to_account_id=3, from_amount=5,
                 to_amount=5, from_currency="USD", to_currency="USD",
                 from_account_name="Dólares", to_account_name="Broker"),
    ]


def test_filter_by_date_account_category_and_search() -> None:
    items = _movements()

    assert [m.id for m in filter_movements(items, "expense", "2026-03-01", "2026-03-31")] == [1, 2]
    assert [m.id for m in filter_movements(items, "expense", account_ids=[2])] == [2, 3]
    assert [m.id for m in filter_movements(items, "expense", category_ids=[10])] == [1, 3]
    assert [m.id for m in filter_movements(items, "expense", search="ropa")] == [2]
    assert [m.id for m in filter_movements(items, "expense", search="  VISA ")] == [2, 3]


def test_transfer_filters_match_either_side_and_ignore_categories() -> None:
    items = _transfers()

    assert [t.id for t in filter_movements(items, "transfer", account_ids=[2])] == [1, 2]
    assert [t.id for t in filter_movements(items, "transfer", account_ids=[3])] == [2]
    assert [t.id for t in filter_movements(items, "transfer", category_ids=[10])] == [1, 2]
    assert [t.id for t in filter_movements(items, "transfer", search="broker")] == [2]


def test_sorting() -> None:
    items = _movements()

    assert [m.id for m in sort_movements(items)] == [2, 1, 3]
    assert [m.id for m in sort_movements(items, "amount", "asc")] == [3, 1, 2]
    assert [m.id for m in sort_movements(items, "category", "asc")] == [2, 1, 3]
    assert [m.id for m in sort_movements(items, "account_to", "asc")] == [3, 1, 2]
    assert [t.id for t in sort_movements(_transfers(), "account_to", "asc", kind="transfer")] == [2, 1]


def test_sort_options_per_kind() -> None:
    assert "category" in sort_options("income")
    assert "category" not in sort_options("transfer")
    assert "account_from" in sort_options("transfer")


def test_subtotals_per_currency() -> None:
    assert subtotals(_movements(), "expense") == {"total": {"ARS": 550, "USD": 30}, "count": 3}
    assert subtotals(_transfers(), "transfer") == {
        "outgoing": {"ARS": 980, "USD": 5},
        "incoming": {"USD": 6},
        "count": 2,
    }


def test_subtotals_in_a_single_currency() -> None:
    assert subtotals(_movements(), "expense", "ARS") == {"total": {"ARS": 29950}, "count": 3}
    assert subtotals(_transfers(), "transfer", "ARS") == {
        "outgoing": {"ARS": 5880},
        "incoming": {"ARS": 5880},
        "count": 2,
    }


def test_sort_preference_round_trip(db) -> None:
    assert load_sort_preference(db, "expense") == DEFAULT_SORT

    save_sort_preference(db, "expense", "amount", "asc")

    assert load_sort_preference(db, "expense") == ("amount", "asc")
    assert load_sort_preference(db, "income") == DEFAULT_SORT


def test_invalid_stored_preference_falls_back(db) -> None:
    save_sort_preference(db, "transfer", "category", "asc")

    assert load_sort_preference(db, "transfer") == DEFAULT_SORT
