import logging
from database.auto_rule_dao import AutoRuleDAO
from models.auto_rule import AutoRule, RuleAction, RuleCondition, RuleSuggestion
from services.data_events import RULES_CHANGED, DataEventBus, data_events
from utils.constants import RULE_LOGIC_OPERATORS
from utils.errors import FinanceError

logger = logging.getLogger(__name__)

FIELD_OPTIONS = {
    "note": "Nota",
    "amount": "Monto",
    "account_id": "Cuenta",
    "type": "Tipo",
}

OPERATOR_OPTIONS = {
    "note": ["contains", "equals", "starts_with", "ends_with"],
    "amount": ["equals", "greater_than", "less_than", "between"],
    "account_id": ["equals"],
    "type": ["equals"],
}

OPERATOR_LABELS = {
    "contains": "contiene",
    "equals": "es igual a",
    "starts_with": "empieza con",
    "ends_with": "termina con",
    "greater_than": "mayor que",
    "less_than": "menor que",
    "between": "entre",
}

ACTION_FIELDS = {
    "category_id": "Asignar categoría",
    "account_id": "Asignar cuenta",
}


def _to_float(value) -> float | None:
    try:
        return float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return None


def condition_matches(condition: RuleCondition, note: str, amount, account_id, type_) -> bool:
    op = condition.operator
    if condition.field == "note":
        text = (note or "").lower()
        needle = str(condition.value or "").lower()
        if op == "contains":
            return needle in text
        if op == "equals":
            return text == needle
        if op == "starts_with":
            return text.startswith(needle)
        if op == "ends_with":
            return text.endswith(needle)
        return False

    if condition.field == "amount":
        value = _to_float(amount)
        if value is None:
            return False
        if op == "between":
            low, _, high = str(condition.value).partition("|")
            low, high = _to_float(low), _to_float(high)
            if low is None or high is None:
                return False
            return low <= value <= high
        target = _to_float(condition.value)
        if target is None:
            return False
        if op == "equals":
            return abs(value - target) < 1e-9
        if op == "greater_than":
            return value > target
        if op == "less_than":
            return value < target
        return False

    if condition.field == "account_id":
        return op == "equals" and account_id is not None and str(account_id) == str(condition.value)
    if condition.field == "type":
        return op == "equals" and type_ == condition.value
    return False


def rule_matches(rule: AutoRule, note: str, amount, account_id, type_) -> bool:
    # A rule without conditions would match everything; never apply it.
    if not rule.conditions:
        return False
    results = (condition_matches(c, note, amount, account_id, type_) for c in rule.conditions)
    if rule.logic_operator == "OR":
        return any(results)
    return all(results)


def evaluate_rules(rules: list[AutoRule], note: str = "", amount=None,
                   account_id=None, type_: str | None = None) -> RuleSuggestion | None:
    """First active rule, by descending priority, whose conditions match."""
    candidates = sorted((r for r in rules if r.is_active), key=lambda r: -r.priority)
    for rule in candidates:
        if not rule_matches(rule, note, amount, account_id, type_):
            continue
        suggestion = RuleSuggestion(rule_id=rule.id, rule_name=rule.name)
        for action in rule.actions:
            if action.field == "category_id":
                suggestion.category_id = int(action.value)
            elif action.field == "account_id":
                suggestion.account_id = int(action.value)
        return suggestion
    return None


class AutoRuleService:
    def __init__(self, rule_dao: AutoRuleDAO, events: DataEventBus = data_events):
        self._dao = rule_dao
        self._events = events

    def get_all(self) -> list[AutoRule]:
        return self._dao.get_all()

    def get_by_id(self, rule_id: int) -> AutoRule | None:
        return self._dao.get_by_id(rule_id)

    def evaluate_auto_rules(self, note: str = "", amount=None, account_id=None,
                            type_: str | None = None) -> RuleSuggestion | None:
        suggestion = evaluate_rules(self._dao.get_all(), note, amount, account_id, type_)
        if suggestion:
            logger.debug("Rule %s matched", suggestion.rule_id)
        return suggestion

    def create(self, name: str, conditions: list[RuleCondition], actions: list[RuleAction],
               logic_operator: str = "AND", priority: int | None = None,
               is_active: bool = True) -> AutoRule:
        name = self._validate(name, conditions, actions, logic_operator)
        if priority is None:
            existing = self._dao.get_all()
            priority = (max(r.priority for r in existing) + 1) if existing else 1
        rule = self._dao.create(name, priority, logic_operator, is_active, conditions, actions)
        logger.info("Created auto rule %s", rule.id)
        self._events.emit(RULES_CHANGED)
        return rule

    def update(self, rule_id: int, name: str, conditions: list[RuleCondition],
               actions: list[RuleAction], logic_operator: str = "AND",
               priority: int | None = None, is_active: bool = True) -> AutoRule:
        current = self._dao.get_by_id(rule_id)
        if current is None:
            raise FinanceError("La regla no existe.")
        name = self._validate(name, conditions, actions, logic_operator)
        rule = self._dao.update(rule_id, name, current.priority if priority is None else priority,
                                logic_operator, is_active, conditions, actions)
        self._events.emit(RULES_CHANGED)
        return rule

    def set_active(self, rule_id: int, is_active: bool):
        self._dao.set_active(rule_id, is_active)
        self._events.emit(RULES_CHANGED)

    def reorder(self, rule_ids: list[int]):
        """Assign priorities so the first id ends up evaluated first."""
        total = len(rule_ids)
        self._dao.set_priorities({rule_id: total - pos for pos, rule_id in enumerate(rule_ids)})
        self._events.emit(RULES_CHANGED)

    def delete(self, rule_id: int):
        self._dao.delete(rule_id)
        logger.info("Deleted auto rule %s", rule_id)
        self._events.emit(RULES_CHANGED)

    @staticmethod
    def _validate(name: str, conditions: list[RuleCondition], actions: list[RuleAction],
                  logic_operator: str) -> str:
        name = (name or "").strip()
        if not name:
            raise FinanceError("El nombre de la regla es obligatorio.")
        if logic_operator not in RULE_LOGIC_OPERATORS:
            raise FinanceError("Operador lógico inválido.")
        if not conditions:
            raise FinanceError("Agregá al menos una condición.")
        if not actions:
            raise FinanceError("Agregá al menos una acción.")
        for c in conditions:
            if c.operator not in OPERATOR_OPTIONS.get(c.field, []):
                raise FinanceError(f"Condición inválida: {c.field} {c.operator}.")
            if c.field == "amount":
                parts = str(c.value).split("|") if c.operator == "between" else [c.value]
                if len(parts) != (2 if c.operator == "between" else 1) or any(_to_float(p) is None for p in parts):
                    raise FinanceError("El monto de la condición no es un número válido.")
            elif str(c.value or "").strip() == "":
                raise FinanceError("Completá el valor de cada condición.")
        for a in actions:
            if a.field not in ACTION_FIELDS:
                raise FinanceError(f"Acción inválida: {a.field}.")
            try:
                int(a.value)
            except (TypeError, ValueError):
                raise FinanceError("Elegí un valor para cada acción.") from None
        return name
