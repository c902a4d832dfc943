from __future__ import annotations

from datetime import date

import pytest

from services.data_events import BUDGETS_CHANGED, GOALS_CHANGED
from utils.errors import FinanceError

TODAY = date(2026, 3, 15)


def _budget(services, **overrides):
    data = {
        "name": "Comida",
        "amount": 1000,
        "period_type": "monthly",
        "start_date": "2026-01-01",
        "is_global": True,
    }
    data.update(overrides)
    return services.budgets.create(data)


def _progress(services, budget_id, today=TODAY):
    return next(b for b in services.budgets.get_budgets_with_progress(today) if b.id == budget_id)


def test_budget_spent_covers_the_current_period(services, cash, recorded) -> None:
    budget = _budget(services)
    services.movements.add_expense(cash.id, 300, "2026-03-02")
    services.movements.add_expense(cash.id, 450, "2026-03-14")
    services.movements.add_expense(cash.id, 999, "2026-02-27")
    services.movements.add_income(cash.id, 5000, "2026-03-01")

    b = _progress(services, budget.id)

    assert BUDGETS_CHANGED in recorded
    assert (b.period_start, b.period_end) == ("2026-03-01", "2026-03-31")
    assert b.spent == 750
    assert b.remaining == 250
    assert b.percentage_used == pytest.approx(75)
    assert not b.is_exceeded


def test_category_budget_ignores_other_categories(services, cash, expense_category) -> None:
    budget = _budget(services, is_global=False, category_ids=[expense_category.id], amount=100)
    services.movements.add_expense(cash.id, 150, "2026-03-02", category_id=expense_category.id)
    services.movements.add_expense(cash.id, 400, "2026-03-03")

    b = _progress(services, budget.id)

    assert b.category_ids == [expense_category.id]
    assert b.spent == 150
    assert b.is_exceeded


def test_budget_only_counts_its_currency(services, card) -> None:
    budget = _budget(services, currency="USD")
    services.movements.add_expense(card.id, 40, "2026-03-05", currency="USD")
    services.movements.add_expense(card.id, 4000, "2026-03-05")

    assert _progress(services, budget.id).spent == 40


def test_one_off_budget_stays_on_its_start_period(services, cash) -> None:
    budget = _budget(services, is_recurring=False, start_date="2026-01-01")
    services.movements.add_expense(cash.id, 80, "2026-01-20")
    services.movements.add_expense(cash.id, 500, "2026-03-02")

    b = _progress(services, budget.id)

    assert b.period_start == "2026-01-01"
    assert b.spent == 80


def test_duplicate_pause_and_delete(services) -> None:
    budget = _budget(services)

    copy = services.budgets.duplicate(budget.id)
    services.budgets.set_paused(budget.id, True)

    assert copy.name == "Comida (copia)"
    assert services.budgets.get_by_id(budget.id).is_paused
    services.budgets.delete(copy.id)
    assert [b.id for b in services.budgets.get_all()] == [budget.id]


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"amount": -1},
        {"currency": "EUR"},
        {"period_type": "daily"},
        {"period_type": "custom", "end_date": None},
        {"is_global": False},
    ],
)
def test_invalid_budgets_are_rejected(services, overrides) -> None:
    with pytest.raises(FinanceError):
        _budget(services, **overrides)


def _goal(services, **overrides):
    data = {
        "name": "Ahorrar",
        "goal_type": "savings",
        "target_amount": 1000,
        "period_type": "monthly",
        "start_date": "2026-01-01",
    }
    data.update(overrides)
    return services.goals.create(data)


def _goal_progress(services, goal_id, today=TODAY):
    return next(g for g in services.goals.get_goals_with_progress(today) if g.id == goal_id)


def test_savings_goal_is_income_minus_expenses(services, cash, recorded) -> None:
    goal = _goal(services)
    services.movements.add_income(cash.id, 2000, "2026-03-01")
    services.movements.add_expense(cash.id, 700, "2026-03-05")

    g = _goal_progress(services, goal.id)

    assert GOALS_CHANGED in recorded
    assert g.current_amount == 1300
    assert g.is_achieved
    assert g.percentage_achieved == pytest.approx(130)


def test_spending_reduction_goal(services, cash) -> None:
    goal = _goal(services, goal_type="spending_reduction", target_amount=500)
    services.movements.add_expense(cash.id, 1000, "2026-03-05")

    g = _goal_progress(services, goal.id)

    assert g.current_amount == 1000
    assert not g.is_achieved
    assert g.percentage_achieved == pytest.approx(50)


def test_income_goal_respects_category_filter(services, cash) -> None:
    salary = services.categories.create("Bonos test", "income")
    goal = _goal(services, goal_type="income", target_amount=300, category_ids=[salary.id])
    services.movements.add_income(cash.id, 200, "2026-03-01", category_id=salary.id)
    services.movements.add_income(cash.id, 900, "2026-03-02")

    g = _goal_progress(services, goal.id)

    assert g.current_amount == 200
    assert g.percentage_achieved == pytest.approx(200 / 3)


def test_goal_completion_flag(services) -> None:
    goal = _goal(services)

    services.goals.set_completed(goal.id)

    assert services.goals.get_all()[0].is_completed


@pytest.mark.parametrize(
    "overrides",
    [{"goal_type": "debt"}, {"target_amount": 0}, {"start_date": "nope"},
     {"end_date": "2025-01-01"}],
)
def test_invalid_goals_are_rejected(services, overrides) -> None:
    with pytest.raises(FinanceError):
        _goal(services, **overrides)
