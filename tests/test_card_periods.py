from __future__ import annotations

from datetime import date

from utils.card_periods import (
    clamp_installments,
    first_installment_date,
    first_unpaid_period,
    generate_statement_periods,
    installment_dates,
    last_installment_date,
    split_installment_amounts,
    statement_period_for,
)


def test_purchase_before_closing_is_billed_next_month() -> None:
    assert first_installment_date("2026-03-10", 20) == date(2026, 4, 20)


def test_purchase_on_closing_day_still_counts_as_before_closing() -> None:
    assert first_installment_date("2026-03-20", 20) == date(2026, 4, 20)


def test_purchase_after_closing_rolls_two_months() -> None:
    assert first_installment_date("2026-03-25", 20) == date(2026, 5, 20)


def test_first_installment_needs_a_closing_day() -> None:
    assert first_installment_date("2026-03-25", None) is None
    assert first_installment_date("not a date", 20) is None


def test_installment_dates_reclamp_the_closing_day_each_month() -> None:
    dates = installment_dates("2026-01-15", 31, 3)

    assert dates == [date(2026, 2, 28), date(2026, 3, 31), date(2026, 4, 30)]


def test_last_installment_matches_the_generated_schedule() -> None:
    dates = installment_dates("2026-01-15", 31, 12)

    assert last_installment_date(dates[0], 12, 31) == dates[-1] == date(2027, 1, 31)
    assert last_installment_date("2026-04-10", 3) == date(2026, 6, 10)
    assert last_installment_date("2026-02-20", 1) == date(2026, 2, 20)
    assert last_installment_date(None, 3) is None


def test_installment_dates_cross_year_boundary() -> None:
    dates = installment_dates("2026-11-25", 10, 2)

    assert dates == [date(2027, 1, 10), date(2027, 2, 10)]


def test_split_amounts_put_the_remainder_on_the_last_installment() -> None:
    amounts = split_installment_amounts(100, 3)

    assert amounts == [33.33, 33.33, 33.34]
    assert round(sum(amounts), 2) == 100


def test_clamp_installments_bounds() -> None:
    assert clamp_installments(0) == 1
    assert clamp_installments("abc") == 1
    assert clamp_installments(99) == 48
    assert clamp_installments("6") == 6


def test_statement_periods_before_closing() -> None:
    periods = generate_statement_periods(20, date(2026, 3, 10))

    assert [p.key for p in periods] == [
        "2026-02", "2026-03", "2026-04", "2026-05", "2026-06", "2026-07",
    ]
    assert [p.offset for p in periods] == [-1, 0, 1, 2, 3, 4]
    assert periods[1].close_date == date(2026, 3, 20)
    assert periods[1].reference_date == date(2026, 3, 19)


def test_statement_periods_after_closing_shift_one_month() -> None:
    periods = generate_statement_periods(20, date(2026, 3, 25))

    assert periods[0].key == "2026-03"
    assert periods[1].key == "2026-04"


def test_statement_close_date_is_clamped_to_month_end() -> None:
    periods = generate_statement_periods(31, date(2026, 3, 1))

    assert periods[0].key == "2026-02"
    assert periods[0].close_date == date(2026, 2, 28)


def test_statement_period_for_charges() -> None:
    assert statement_period_for("2026-03-19", 20) == "2026-03"
    assert statement_period_for("2026-03-20", 20) == "2026-04"
    assert statement_period_for("2026-12-25", 20) == "2027-01"
    assert statement_period_for("", 20) is None


def test_first_unpaid_period_skips_paid_and_past_periods() -> None:
    periods = generate_statement_periods(20, date(2026, 3, 10))
    payments = {"2026-02_ARS": object(), "2026-03_USD": object()}

    assert first_unpaid_period(periods, payments) == "2026-04"


def test_statement_periods_are_one_month_apart() -> None:
    periods = generate_statement_periods(5, date(2026, 11, 30))

    assert len(periods) == 6
    months = [p.year * 12 + p.month for p in periods]
    assert all(later - earlier == 1 for earlier, later in zip(months, months[1:]))
