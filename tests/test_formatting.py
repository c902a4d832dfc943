"""Currency, date and recency helpers used by every view."""
from __future__ import annotations

from datetime import date

import pytest

from utils.currency import (
    convert_currency,
    format_currency,
    format_currency_with_sign,
    format_number,
    parse_amount,
)
from utils.date_helpers import (
    add_months,
    format_display_date,
    month_range,
    parse_date,
    parse_display_date,
    period_window,
)
from utils.recency import sort_by_recency


def test_format_currency_uses_local_separators() -> None:
    assert format_currency(1234.56) == "$ 1.234,56"
    assert format_currency(1234567.5, "USD") == "US$ 1.234.567,50"
    assert format_currency(-10) == "$ 10,00"


def test_format_currency_handles_missing_values() -> None:
    assert format_currency(None) == "$ -"
    assert format_currency(float("nan"), "USD") == "US$ -"
    assert format_number("abc") == "-"


def test_format_currency_with_sign() -> None:
    assert format_currency_with_sign(5) == "+$ 5,00"
    assert format_currency_with_sign(-5) == "-$ 5,00"
    assert format_currency_with_sign(0) == "$ 0,00"


def test_convert_currency_goes_through_usd() -> None:
    assert convert_currency(980, "ARS", "USD") == pytest.approx(1.0)
    assert convert_currency(2, "USD", "ARS") == pytest.approx(1960.0)
    assert convert_currency(15, "ARS", "ARS") == 15


def test_convert_currency_rejects_unknown_codes() -> None:
    with pytest.raises(ValueError):
        convert_currency(1, "XYZ", "ARS")


@pytest.mark.parametrize(
    ("text", "expected"),
    [("1.234,56", 1234.56), ("1234.56", 1234.56), ("1234,5", 1234.5), ("$ 300", 300.0)],
)
def test_parse_amount_accepts_common_inputs(text: str, expected: float) -> None:
    assert parse_amount(text) == pytest.approx(expected)


def test_parse_amount_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_amount("")
    with pytest.raises(ValueError):
        parse_amount("doce")


def test_parse_date_accepts_iso_and_local_formats() -> None:
    assert parse_date("2026-05-04") == date(2026, 5, 4)
    assert parse_date("04/05/2026") == date(2026, 5, 4)
    assert parse_date("2026-05-04T10:00:00") == date(2026, 5, 4)
    assert parse_date("mañana") is None


def test_display_dates_follow_the_chosen_format() -> None:
    assert format_display_date("2026-05-04", "DD/MM/YYYY") == "04/05/2026"
    assert format_display_date("2026-05-04", "YYYY-MM-DD") == "2026-05-04"
    assert parse_display_date("04-05-2026", "DD-MM-YYYY") == date(2026, 5, 4)


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2026, 12, 15), 2) == date(2027, 2, 15)


def test_month_range() -> None:
    assert month_range("2028-02") == ("2028-02-01", "2028-02-29")


def test_period_windows() -> None:
    ref = date(2026, 5, 14)  # Thursday
    assert period_window("weekly", ref) == (date(2026, 5, 11), date(2026, 5, 17))
    assert period_window("monthly", ref) == (date(2026, 5, 1), date(2026, 5, 31))
    assert period_window("yearly", ref) == (date(2026, 1, 1), date(2026, 12, 31))
    assert period_window("custom", ref, "2026-05-01", "2026-05-10") == (
        date(2026, 5, 1), date(2026, 5, 10),
    )


def test_sort_by_recency_moves_recent_items_first() -> None:
    items = [{"id": 1}, {"id": 2}, {"id": 3}, {"id": 4}]

    ordered = sort_by_recency(items, [3, 1, 3])

    assert [i["id"] for i in ordered] == [3, 1, 2, 4]


def test_sort_by_recency_without_history_keeps_order() -> None:
    items = [{"id": 2}, {"id": 1}]

    assert sort_by_recency(items, []) == items
    assert sort_by_recency([], [1]) == []


@pytest.mark.parametrize(("source", "target"), [("ARS", "USD"), ("USD", "EUR"), ("EUR", "ARS")])
def test_conversion_round_trip(source: str, target: str) -> None:
    there = convert_currency(1234.5, source, target)

    assert convert_currency(there, target, source) == pytest.approx(1234.5)


def test_sort_by_recency_with_objects() -> None:
    class Item:
        def __init__(self, id_: int) -> None:
            self.id = id_

    a, b, c = Item(1), Item(2), Item(3)

    assert sort_by_recency([a, b, c], [b.id, c.id]) == [b, c, a]
