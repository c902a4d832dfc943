"""Home summary and per-category reports, converted to one display currency."""
import logging
from database.account_dao import AccountDAO
from database.movement_dao import MovementDAO
from utils.currency import convert_currency
from utils.date_helpers import add_months, current_month_str, format_month, month_range, parse_month

logger = logging.getLogger(__name__)

NO_CATEGORY = "Sin categoría"
OTHER_CATEGORIES = "Otras"


def months_ending(end_month: str, months: int) -> list[str]:
    """The `months` YYYY-MM strings ending at end_month, oldest first."""
    last = parse_month(end_month)
    if last is None:
        raise ValueError(f"Invalid month: {end_month}")
    return [format_month(add_months(last, -i)) for i in range(max(months, 1) - 1, -1, -1)]


def _category_label(row: dict) -> str:
    if row["category_id"] is None or not row["category"]:
        return NO_CATEGORY
    return f"{row['icon']} {row['category']}".strip()


class ReportService:
    def __init__(self, movement_dao: MovementDAO, account_dao: AccountDAO):
        self._movement_dao = movement_dao
        self._account_dao = account_dao

    def get_balances(self, currency: str = "ARS") -> dict:
        """Return {accounts: [{account, balance}], by_currency, total} with total in `currency`."""
        balances = self._account_dao.get_balances()
        accounts = []
        by_currency: dict[str, float] = {}
        total = 0.0
        for account in self._account_dao.get_all():
            balance = balances.get(account.id, 0.0)
            accounts.append({"account": account, "balance": balance})
            by_currency[account.currency] = round(by_currency.get(account.currency, 0.0) + balance, 2)
            total += convert_currency(balance, account.currency, currency)
        return {"accounts": accounts, "by_currency": by_currency, "total": round(total, 2)}

    def get_summary(self, month: str | None = None, currency: str = "ARS") -> dict:
        m = month or current_month_str()
        start, end = month_range(m)
        income = expense = 0.0
        for row in self._movement_dao.get_monthly_totals(start, end):
            income += convert_currency(row["income"], row["currency"], currency)
            expense += convert_currency(row["expense"], row["currency"], currency)
        totals = {"income": round(income, 2), "expense": round(expense, 2)}
        totals["net"] = round(totals["income"] - totals["expense"], 2)
        return totals

    def get_monthly_chart_data(self, months: int = 6, currency: str = "ARS",
                               end_month: str | None = None) -> list[dict]:
        """Return list of {month, income, expense, net} for bar chart, empty months included."""
        keys = months_ending(end_month or current_month_str(), months)
        data = {k: {"month": k, "income": 0.0, "expense": 0.0} for k in keys}
        start, _ = month_range(keys[0])
        _, end = month_range(keys[-1])
        for row in self._movement_dao.get_monthly_totals(start, end):
            entry = data[row["month"]]
            entry["income"] += convert_currency(row["income"], row["currency"], currency)
            entry["expense"] += convert_currency(row["expense"], row["currency"], currency)
        rows = []
        for k in keys:
            entry = data[k]
            entry["income"] = round(entry["income"], 2)
            entry["expense"] = round(entry["expense"], 2)
            entry["net"] = round(entry["income"] - entry["expense"], 2)
            rows.append(entry)
        return rows

    def get_category_breakdown(self, month: str | None = None, type_: str = "expense",
                               currency: str = "ARS") -> list[dict]:
        """Return [{category, total, percentage}, ...], largest first."""
        start, end = month_range(month or current_month_str())
        totals: dict[str, float] = {}
        for row in self._movement_dao.get_totals_by_category(type_, start, end):
            label = _category_label(row)
            totals[label] = totals.get(label, 0.0) + convert_currency(row["total"], row["currency"], currency)
        grand = sum(totals.values())
        items = [
            {
                "category": label,
                "total": round(total, 2),
                "percentage": round(total / grand * 100, 1) if grand else 0.0,
            }
            for label, total in totals.items()
        ]
        items.sort(key=lambda i: (-i["total"], i["category"]))
        return items

    def get_category_trend(self, months: int = 6, type_: str = "expense", currency: str = "ARS",
                           end_month: str | None = None, top: int = 5) -> dict:
        """Per-category totals for each month.

        Returns {months: [YYYY-MM, ...], series: [{category, values, total}, ...]}.
        The `top` largest categories over the whole window get their own series;
        the rest are summed into one "Otras" series.
        """
        keys = months_ending(end_month or current_month_str(), months)
        index = {k: i for i, k in enumerate(keys)}
        start, _ = month_range(keys[0])
        _, end = month_range(keys[-1])

        values: dict[str, list[float]] = {}
        for row in self._movement_dao.get_totals_by_category(type_, start, end):
            label = _category_label(row)
            series = values.setdefault(label, [0.0] * len(keys))
            series[index[row["month"]]] += convert_currency(row["total"], row["currency"], currency)

        ranked = sorted(values.items(), key=lambda kv: (-sum(kv[1]), kv[0]))
        kept, rest = ranked[:max(top, 1)], ranked[max(top, 1):]
        if rest:
            other = [sum(v[i] for _, v in rest) for i in range(len(keys))]
            kept.append((OTHER_CATEGORIES, other))

        series = [
            {"category": label, "values": [round(v, 2) for v in vals], "total": round(sum(vals), 2)}
            for label, vals in kept
        ]
        logger.debug("Category trend %s..%s: %d series", keys[0], keys[-1], len(series))
        return {"months": keys, "series": series}
