from __future__ import annotations

import pytest

from models.auto_rule import AutoRule, RuleAction, RuleCondition
from services.auto_rule_service import condition_matches, evaluate_rules
from utils.errors import FinanceError


def _rule(rule_id: int, conditions, category_id=10, priority=0, logic="AND", active=True) -> AutoRule:
    return AutoRule(
        id=rule_id,
        name=f"regla {rule_id}",
        priority=priority,
        logic_operator=logic,
        is_active=active,
        conditions=conditions,
        actions=[RuleAction("category_id", str(category_id))],
    )


@pytest.mark.parametrize(
    ("operator", "value", "note", "expected"),
    [
        ("contains", "uber", "Viaje UBER centro", True),
        ("equals", "netflix", "Netflix", True),
        ("equals", "netflix", "Netflix premium", False),
        ("starts_with", "pago", "Pago luz", True),
        ("ends_with", "luz", "Pago luz", True),
        ("ends_with", "gas", "Pago luz", False),
    ],
)
def test_note_conditions_are_case_insensitive(operator, value, note, expected) -> None:
    condition = RuleCondition("note", operator, value)

    assert condition_matches(condition, note, None, None, None) is expected


def test_amount_conditions() -> None:
    between = RuleCondition("amount", "between", "100|200")

    assert condition_matches(between, "", 150, None, None)
    assert not condition_matches(between, "", 250, None, None)
    assert condition_matches(RuleCondition("amount", "greater_than", "99,5"), "", 100, None, None)
    assert condition_matches(RuleCondition("amount", "less_than", "10"), "", "9", None, None)
    assert not condition_matches(RuleCondition("amount", "equals", "10"), "", None, None, None)


def test_account_and_type_conditions() -> None:
    assert condition_matches(RuleCondition("account_id", "equals", "3"), "", None, 3, None)
    assert not condition_matches(RuleCondition("account_id", "equals", "3"), "", None, None, None)
    assert condition_matches(RuleCondition("type", "equals", "income"), "", None, None, "income")


def test_highest_priority_matching_rule_wins() -> None:
    low = _rule(1, [RuleCondition("note", "contains", "super")], category_id=1, priority=1)
    high = _rule(2, [RuleCondition("note", "contains", "super")], category_id=2, priority=5)

    suggestion = evaluate_rules([low, high], note="Supermercado")

    assert (suggestion.rule_id, suggestion.category_id) == (2, 2)


def test_inactive_and_empty_rules_never_match() -> None:
    inactive = _rule(1, [RuleCondition("note", "contains", "a")], active=False)
    empty = _rule(2, [])

    assert evaluate_rules([inactive, empty], note="abc") is None


def test_logic_operators() -> None:
    conditions = [RuleCondition("note", "contains", "cafe"), RuleCondition("amount", "greater_than", "1000")]
    both = _rule(1, conditions, logic="AND")
    either = _rule(2, conditions, logic="OR")

    assert evaluate_rules([both], note="cafe", amount=50) is None
    assert evaluate_rules([either], note="cafe", amount=50).rule_id == 2


def test_service_assigns_priorities_and_evaluates(services, cash, expense_category) -> None:
    first = services.rules.create(
        "Uber", [RuleCondition("note", "contains", "uber")],
        [RuleAction("category_id", str(expense_category.id)), RuleAction("account_id", str(cash.id))],
    )
    second = services.rules.create(
        "Otro", [RuleCondition("type", "equals", "expense")],
        [RuleAction("category_id", str(expense_category.id))],
    )

    assert (first.priority, second.priority) == (1, 2)
    suggestion = services.rules.evaluate_auto_rules(note="uber al centro", amount=10, type_="income")
    assert (suggestion.rule_id, suggestion.category_id, suggestion.account_id) == (
        first.id, expense_category.id, cash.id,
    )


def test_reorder_puts_the_first_id_on_top(services, expense_category) -> None:
    action = [RuleAction("category_id", str(expense_category.id))]
    a = services.rules.create("A", [RuleCondition("note", "contains", "x")], action)
    b = services.rules.create("B", [RuleCondition("note", "contains", "x")], action)
    c = services.rules.create("C", [RuleCondition("note", "contains", "x")], action)

    services.rules.reorder([a.id, c.id, b.id])

    assert [r.id for r in services.rules.get_all()] == [a.id, c.id, b.id]
    assert services.rules.evaluate_auto_rules(note="x").rule_id == a.id


def test_deactivated_rule_is_skipped(services, expense_category) -> None:
    rule = services.rules.create("A", [RuleCondition("note", "contains", "x")],
                                 [RuleAction("category_id", str(expense_category.id))])

    services.rules.set_active(rule.id, False)

    assert services.rules.evaluate_auto_rules(note="x") is None
    assert services.rules.get_by_id(rule.id).is_active is False


@pytest.mark.parametrize(
    ("name", "conditions", "actions", "logic"),
    [
        ("", [RuleCondition("note", "contains", "x")], [RuleAction("category_id", "1")], "AND"),
        ("r", [], [RuleAction("category_id", "1")], "AND"),
        ("r", [RuleCondition("note", "contains", "x")], [], "AND"),
        ("r", [RuleCondition("note", "contains", "x")], [RuleAction("category_id", "1")], "XOR"),
        ("r", [RuleCondition("note", "greater_than", "x")], [RuleAction("category_id", "1")], "AND"),
        ("r", [RuleCondition("amount", "between", "10")], [RuleAction("category_id", "1")], "AND"),
        ("r", [RuleCondition("note", "contains", " ")], [RuleAction("category_id", "1")], "AND"),
        ("r", [RuleCondition("note", "contains", "x")], [RuleAction("category_id", "")], "AND"),
    ],
)
def test_invalid_rules_are_rejected(services, name, conditions, actions, logic) -> None:
    with pytest.raises(FinanceError):
        services.rules.create(name, conditions, actions, logic_operator=logic)
