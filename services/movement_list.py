"""Filtering, sorting and subtotals for the movement lists.

Pure functions over Movement / Transfer lists so the tab only renders.
`kind` is 'income', 'expense' or 'transfer'.
"""
from database.db_manager import DatabaseManager
from utils.currency import convert_currency
from utils.date_helpers import parse_date

DEFAULT_SORT = ("date", "desc")

_SORT_OPTIONS = {
    "income": ["date", "amount", "category", "account"],
    "expense": ["date", "amount", "category", "account"],
    "transfer": ["date", "amount", "account_from", "account_to"],
}

SORT_LABELS = {
    "date": "Fecha",
    "amount": "Monto",
    "category": "Categoría",
    "account": "Cuenta",
    "account_from": "Cuenta origen",
    "account_to": "Cuenta destino",
}


def sort_options(kind: str) -> list[str]:
    return list(_SORT_OPTIONS.get(kind, _SORT_OPTIONS["expense"]))


def _searchable(item, kind: str) -> str:
    if kind == "transfer":
        parts = [item.note, item.from_account_name, item.to_account_name]
    else:
        parts = [item.note, item.category_name, item.account_name]
    return " ".join(p for p in parts if p).lower()


def filter_movements(
    items: list,
    kind: str,
    date_from: str | None = None,
    date_to: str | None = None,
    account_ids: list[int] | None = None,
    category_ids: list[int] | None = None,
    search: str = "",
) -> list:
    start = parse_date(date_from) if date_from else None
    end = parse_date(date_to) if date_to else None
    accounts = set(account_ids or [])
    categories = set(category_ids or [])
    needle = (search or "").strip().lower()

    result = []
    for item in items:
        d = parse_date(item.date)
        if start and (d is None or d < start):
            continue
        if end and (d is None or d > end):
            continue
        if accounts:
            if kind == "transfer":
                if item.from_account_id not in accounts and item.to_account_id not in accounts:
                    continue
            elif item.account_id not in accounts:
                continue
        # Transfers carry no category.
        if categories and kind != "transfer" and item.category_id not in categories:
            continue
        if needle and needle not in _searchable(item, kind):
            continue
        result.append(item)
    return result


def _sort_key(sort_by: str, kind: str):
    if sort_by == "amount":
        if kind == "transfer":
            return lambda t: (t.from_amount, t.id)
        return lambda m: (m.amount, m.id)
    if sort_by == "category":
        return lambda m: ((m.category_name or "").lower(), m.id)
    if sort_by == "account":
        return lambda m: ((m.account_name or "").lower(), m.id)
    if sort_by == "account_from":
        return lambda t: ((t.from_account_name or "").lower(), t.id)
    if sort_by == "account_to":
        return lambda t: ((t.to_account_name or "").lower(), t.id)
    return lambda item: (item.date, item.id)


def sort_movements(items: list, sort_by: str = "date", order: str = "desc", kind: str = "expense") -> list:
    if sort_by not in sort_options(kind):
        sort_by = DEFAULT_SORT[0]
    return sorted(items, key=_sort_key(sort_by, kind), reverse=(order == "desc"))


def subtotals(items: list, kind: str, currency: str | None = None) -> dict:
    """Totals per currency; transfers split into outgoing and incoming.

    With `currency` every amount is converted into it and a single total is
    returned under that key.
    """
    def add(bucket: dict, amount: float, code: str):
        if currency:
            amount, code = convert_currency(amount, code, currency), currency
        bucket[code] = round(bucket.get(code, 0.0) + amount, 2)

    if kind == "transfer":
        outgoing: dict[str, float] = {}
        incoming: dict[str, float] = {}
        for t in items:
            add(outgoing, t.from_amount, t.from_currency)
            add(incoming, t.to_amount, t.to_currency)
        return {"outgoing": outgoing, "incoming": incoming, "count": len(items)}

    totals: dict[str, float] = {}
    for m in items:
        add(totals, m.amount, m.currency)
    return {"total": totals, "count": len(items)}


def load_sort_preference(db: DatabaseManager, kind: str) -> tuple[str, str]:
    raw = db.get_setting(f"sort_{kind}", "")
    field, _, order = raw.partition(":")
    if field not in sort_options(kind) or order not in ("asc", "desc"):
        return DEFAULT_SORT
    return field, order


def save_sort_preference(db: DatabaseManager, kind: str, sort_by: str, order: str):
    db.set_setting(f"sort_{kind}", f"{sort_by}:{order}")
