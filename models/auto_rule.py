from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RuleCondition:
    field: str          # 'note' | 'amount' | 'account_id' | 'type'
    operator: str
    value: str
    id: Optional[int] = None


@dataclass
class RuleAction:
    field: str          # 'category_id' | 'account_id'
    value: str
    id: Optional[int] = None


@dataclass
class AutoRule:
    id: int
    name: str
    priority: int = 0
    logic_operator: str = "AND"
    is_active: bool = True
    conditions: list[RuleCondition] = field(default_factory=list)
    actions: list[RuleAction] = field(default_factory=list)


@dataclass
class RuleSuggestion:
    rule_id: int
    rule_name: str
    category_id: Optional[int] = None
    account_id: Optional[int] = None
