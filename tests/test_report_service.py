from __future__ import annotations

import pytest

from services.report_service import NO_CATEGORY, OTHER_CATEGORIES, months_ending


@pytest.fixture
def march(services, cash, usd_account):
    """Income and expenses around March 2025 in two currencies, plus a transfer."""
    mv = services.movements
    mv.add_income(cash.id, 5000, "2025-03-05")
    mv.add_expense(cash.id, 1200, "2025-03-10")
    mv.add_expense(cash.id, 300, "2025-02-28")
    mv.add_income(usd_account.id, 10, "2025-03-15")
    mv.add_transfer(cash.id, usd_account.id, 980, "2025-03-20", to_amount=1)


def test_summary_converts_and_ignores_transfers(services, march) -> None:
    reports = services.reports

    assert reports.get_summary("2025-03", "ARS") == {"income": 14800, "expense": 1200, "net": 13600}
    assert reports.get_summary("2025-03", "USD") == {"income": 15.1, "expense": 1.22, "net": 13.88}
    assert reports.get_summary("2025-04", "ARS") == {"income": 0, "expense": 0, "net": 0}


def test_balances_per_account_and_currency(services, cash, usd_account, march) -> None:
    balances = services.reports.get_balances("ARS")

    by_id = {row["account"].id: row["balance"] for row in balances["accounts"]}
    assert by_id[cash.id] == 3520
    assert by_id[usd_account.id] == 11
    assert balances["by_currency"] == {"ARS": 3520, "USD": 11}
    assert balances["total"] == 3520 + 11 * 980


def test_monthly_chart_fills_empty_months(services, march) -> None:
    data = services.reports.get_monthly_chart_data(months=4, end_month="2025-04")

    assert [d["month"] for d in data] == ["2025-01", "2025-02", "2025-03", "2025-04"]
    assert data[0] == {"month": "2025-01", "income": 0, "expense": 0, "net": 0}
    assert data[1]["expense"] == 300
    assert data[2] == {"month": "2025-03", "income": 14800, "expense": 1200, "net": 13600}


def test_category_breakdown_sorted_with_uncategorized(services, cash) -> None:
    food = services.categories.create("Comida informe", "expense")
    pharmacy = services.categories.create("Farmacia informe", "expense")
    mv = services.movements
    mv.add_expense(cash.id, 600, "2025-03-01", category_id=food.id)
    mv.add_expense(cash.id, 150, "2025-03-02", category_id=pharmacy.id)
    mv.add_expense(cash.id, 250, "2025-03-03")
    mv.add_expense(cash.id, 9999, "2025-04-01", category_id=pharmacy.id)

    items = services.reports.get_category_breakdown("2025-03")

    assert [(i["category"], i["total"], i["percentage"]) for i in items] == [
        ("Comida informe", 600, 60.0),
        (NO_CATEGORY, 250, 25.0),
        ("Farmacia informe", 150, 15.0),
    ]
    assert services.reports.get_category_breakdown("2025-05") == []


def test_category_trend_keeps_top_and_groups_the_rest(services, cash, usd_account) -> None:
    cats = [services.categories.create(f"Tendencia {n}", "expense") for n in "ABC"]
    mv = services.movements
    mv.add_expense(cash.id, 1000, "2025-01-10", category_id=cats[0].id)
    mv.add_expense(cash.id, 500, "2025-03-10", category_id=cats[0].id)
    mv.add_expense(usd_account.id, 1, "2025-02-10", category_id=cats[1].id)
    mv.add_expense(cash.id, 100, "2025-02-11", category_id=cats[2].id)
    mv.add_expense(cash.id, 50, "2025-03-11")
    mv.add_expense(cash.id, 7000, "2024-12-31", category_id=cats[2].id)

    trend = services.reports.get_category_trend(months=3, end_month="2025-03", top=2)

    assert trend["months"] == ["2025-01", "2025-02", "2025-03"]
    assert trend["series"] == [
        {"category": "Tendencia A", "values": [1000, 0, 500], "total": 1500},
        {"category": "Tendencia B", "values": [0, 980, 0], "total": 980},
        {"category": OTHER_CATEGORIES, "values": [0, 100, 50], "total": 150},
    ]


def test_months_ending_crosses_the_year() -> None:
    assert months_ending("2025-02", 3) == ["2024-12", "2025-01", "2025-02"]
    assert months_ending("2025-02", 0) == ["2025-02"]
    with pytest.raises(ValueError):
        months_ending("febrero", 3)
