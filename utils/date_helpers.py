from datetime import date, datetime, timedelta
import calendar
from utils.constants import DATE_FORMAT, MONTH_FORMAT

# ── Display date format options ───────────────────────────────────────────────

DATE_FORMAT_OPTIONS = ["DD-MM-YYYY", "DD/MM/YYYY", "YYYY-MM-DD"]

_STRFTIME_MAP = {
    "DD-MM-YYYY": "%d-%m-%Y",
    "DD/MM/YYYY": "%d/%m/%Y",
    "YYYY-MM-DD": "%Y-%m-%d",
}

MONTH_NAMES_ES = ["Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio", "Julio",
                  "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre"]


def today() -> date:
    return date.today()


def today_str() -> str:
    return date.today().strftime(DATE_FORMAT)


def current_month_str() -> str:
    return date.today().strftime(MONTH_FORMAT)


def parse_date(value) -> date | None:
    """Parse a YYYY-MM-DD string (or pass a date through), None on failure."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)[:10]
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def format_month(d: date) -> str:
    return d.strftime(MONTH_FORMAT)


def parse_month(month_str: str) -> date | None:
    """Return the first day of the given YYYY-MM month string."""
    if not month_str:
        return None
    try:
        return datetime.strptime(month_str, MONTH_FORMAT).date()
    except ValueError:
        return None


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_range(month_str: str) -> tuple[str, str]:
    """Return (first_day_str, last_day_str) for a YYYY-MM month."""
    d = parse_month(month_str)
    if d is None:
        raise ValueError(f"Invalid month: {month_str}")
    return (
        format_date(d),
        format_date(d.replace(day=last_day_of_month(d.year, d.month))),
    )


def prev_month(month_str: str) -> str:
    d = parse_month(month_str)
    if d is None:
        raise ValueError(f"Invalid month: {month_str}")
    return format_month(add_months(d, -1))


def next_month(month_str: str) -> str:
    d = parse_month(month_str)
    if d is None:
        raise ValueError(f"Invalid month: {month_str}")
    return format_month(add_months(d, 1))


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    return max(1, min(day, last_day_of_month(year, month)))


def add_months(d: date, n: int, day: int | None = None) -> date:
    """Add n months to date d, clamping the day (or `day`) to month end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    target = clamp_day_to_month(year, month, day if day is not None else d.day)
    return date(year, month, target)


def week_start(d: date) -> date:
    """Monday of the week containing d."""
    return d - timedelta(days=d.weekday())


def friendly_month(month_str: str) -> str:
    """Convert YYYY-MM to e.g. 'Febrero 2026'."""
    d = parse_month(month_str)
    if d is None:
        return month_str
    return f"{MONTH_NAMES_ES[d.month - 1]} {d.year}"


def format_full_date(value) -> str:
    """'dd-MM-yyyy', or '-' when the value is not a date."""
    d = parse_date(value)
    return d.strftime("%d-%m-%Y") if d else "-"


def format_display_date(date_str: str, fmt_key: str = "DD-MM-YYYY") -> str:
    """Convert a YYYY-MM-DD storage string to the user-facing display format."""
    if not date_str:
        return date_str
    d = parse_date(date_str)
    if d is None:
        return date_str
    return d.strftime(_STRFTIME_MAP.get(fmt_key, "%d-%m-%Y"))


def parse_display_date(display_str: str, fmt_key: str) -> date | None:
    """Parse a date in the given display format. Returns None on failure.

    Falls back to ISO 8601 parse if the display format doesn't match.
    """
    if not display_str:
        return None
    fmt = _STRFTIME_MAP.get(fmt_key, "%d-%m-%Y")
    try:
        return datetime.strptime(display_str.strip(), fmt).date()
    except ValueError:
        return parse_date(display_str.strip())


def period_window(period_type: str, reference: date, start_date=None, end_date=None) -> tuple[date, date]:
    """Bounds of the budgeting period that contains `reference`.

    'custom' uses the explicit start/end; an open end runs through reference.
    """
    if period_type == "custom":
        start = parse_date(start_date) or reference
        end = parse_date(end_date) or max(start, reference)
        return start, end
    if period_type == "weekly":
        start = week_start(reference)
        return start, start + timedelta(days=6)
    if period_type == "yearly":
        return date(reference.year, 1, 1), date(reference.year, 12, 31)
    start = date(reference.year, reference.month, 1)
    return start, start.replace(day=last_day_of_month(start.year, start.month))
