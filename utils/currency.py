import math
from utils.constants import EXCHANGE_RATES

CURRENCY_SYMBOLS = {"ARS": "$", "USD": "US$"}


def _is_missing(amount) -> bool:
    if amount is None:
        return True
    try:
        return math.isnan(float(amount))
    except (TypeError, ValueError):
        return True


def format_number(amount, decimals: int = 2) -> str:
    """Format with '.' thousands and ',' decimals, e.g. '1.234,56'."""
    if _is_missing(amount):
        return "-"
    text = f"{abs(float(amount)):,.{decimals}f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(amount, currency: str = "ARS") -> str:
    """Format an amount as '$ 1.234,56' / 'US$ 1.234,56'.

    The sign is dropped; callers colour or prefix it themselves.
    """
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    if _is_missing(amount):
        return f"{symbol} -"
    return f"{symbol} {format_number(amount)}"


def format_currency_with_sign(amount, currency: str = "ARS", force_sign: bool = True) -> str:
    if _is_missing(amount):
        return format_currency(None, currency)
    value = float(amount)
    if value < 0:
        sign = "-"
    elif force_sign and value > 0:
        sign = "+"
    else:
        sign = ""
    return f"{sign}{format_currency(value, currency)}"


def convert_currency(amount: float, from_currency: str, to_currency: str,
                     rates: dict[str, float] | None = None) -> float:
    """Convert through USD using static rates."""
    if from_currency == to_currency:
        return amount
    rates = rates or EXCHANGE_RATES
    if from_currency not in rates:
        raise ValueError(f"Unknown currency: {from_currency}")
    if to_currency not in rates:
        raise ValueError(f"Unknown currency: {to_currency}")
    in_usd = amount / rates[from_currency]
    return in_usd * rates[to_currency]


def parse_amount(text: str) -> float:
    """Parse user input accepting '1.234,56', '1234.56' or '1234,56'."""
    raw = (text or "").strip().replace("$", "").replace("US", "").replace(" ", "")
    if not raw:
        raise ValueError("Invalid amount.")
    if "," in raw:
        raw = raw.replace(".", "").replace(",", ".")
    try:
        return float(raw)
    except ValueError:
        raise ValueError("Invalid amount.") from None
