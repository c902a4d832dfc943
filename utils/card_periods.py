"""Credit-card statement periods and installment dates.

A card closes its statement on `closing_day`. A purchase made on or before
that day is billed in the next calendar month; a later purchase rolls over
one more month. Every function here is pure and takes `today` explicitly
where it matters so callers and tests control the clock.
"""
from datetime import date
from models.statement import StatementPeriod
from utils.constants import MAX_INSTALLMENTS, MIN_INSTALLMENTS, STATEMENT_PERIOD_OFFSETS
from utils.date_helpers import add_months, clamp_day_to_month, parse_date


def period_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def _closing(closing_day: int | None) -> int:
    return max(1, min(int(closing_day or 1), 31))


def close_date_for(year: int, month: int, closing_day: int | None) -> date:
    return date(year, month, clamp_day_to_month(year, month, _closing(closing_day)))


def period_reference_date(period_start: date, closing_day: int | None) -> date:
    """Default purchase date for a period: the day before the card closes."""
    day = max(1, _closing(closing_day) - 1)
    return date(period_start.year, period_start.month,
                clamp_day_to_month(period_start.year, period_start.month, day))


def generate_statement_periods(closing_day: int | None, today: date | None = None) -> list[StatementPeriod]:
    """Six consecutive periods, one before the base month and four after."""
    today = today or date.today()
    closing = _closing(closing_day)
    base = date(today.year, today.month, 1)
    if today.day >= closing:
        base = add_months(base, 1)

    periods = []
    for offset in STATEMENT_PERIOD_OFFSETS:
        start = add_months(base, offset, day=1)
        periods.append(StatementPeriod(
            key=period_key(start),
            year=start.year,
            month=start.month,
            offset=offset,
            reference_date=period_reference_date(start, closing),
            close_date=close_date_for(start.year, start.month, closing),
        ))
    return periods


def first_unpaid_period(periods: list[StatementPeriod], payments: dict, today: date | None = None) -> str:
    """Key of the first period from the current one onward with no payment.

    `payments` is keyed '<YYYY-MM>_<CURRENCY>'; a period counts as paid when
    either the ARS or the USD statement was paid.
    """
    for period in periods:
        if period.offset < 0:
            continue
        if f"{period.key}_ARS" in payments or f"{period.key}_USD" in payments:
            continue
        return period.key
    return period_key(today or date.today())


def statement_period_for(value, closing_day: int | None) -> str | None:
    """Period a charge dated `value` is billed in."""
    d = parse_date(value)
    if d is None:
        return None
    if closing_day and d.day >= closing_day:
        return period_key(add_months(date(d.year, d.month, 1), 1))
    return period_key(d)


def clamp_installments(count) -> int:
    try:
        n = int(count)
    except (TypeError, ValueError):
        return MIN_INSTALLMENTS
    return max(MIN_INSTALLMENTS, min(n, MAX_INSTALLMENTS))


def first_installment_date(purchase_date, closing_day: int | None) -> date | None:
    d = parse_date(purchase_date)
    if d is None or not closing_day:
        return None
    months_ahead = 1 if d.day <= closing_day else 2
    return add_months(date(d.year, d.month, 1), months_ahead, day=closing_day)


def last_installment_date(first, count: int, closing_day: int | None = None) -> date | None:
    """Due date of the final installment given the first one."""
    d = parse_date(first)
    if d is None:
        return None
    return add_months(d, clamp_installments(count) - 1, day=closing_day or d.day)


def installment_dates(purchase_date, closing_day: int | None, count: int) -> list[date]:
    """Due date of every installment; the day is re-clamped in each month."""
    first = first_installment_date(purchase_date, closing_day)
    if first is None:
        return []
    start = date(first.year, first.month, 1)
    return [add_months(start, i, day=closing_day) for i in range(clamp_installments(count))]


def installment_amount(total: float, count: int) -> float:
    """Per-installment value shown to the user (unrounded)."""
    return total / clamp_installments(count)


def split_installment_amounts(total: float, count: int) -> list[float]:
    """Amounts to persist: cents-rounded, the last one absorbs the remainder."""
    n = clamp_installments(count)
    base = round(total / n, 2)
    amounts = [base] * (n - 1)
    amounts.append(round(total - base * (n - 1), 2))
    return amounts
