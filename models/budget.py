from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Budget:
    id: int
    name: str
    amount: float
    currency: str = "ARS"
    period_type: str = "monthly"    # 'weekly' | 'monthly' | 'yearly' | 'custom'
    start_date: str = ""
    end_date: Optional[str] = None
    is_recurring: bool = True
    is_global: bool = False
    icon: str = ""
    is_active: bool = True
    is_paused: bool = False
    category_ids: list[int] = field(default_factory=list)
    account_ids: list[int] = field(default_factory=list)
    # Filled in by BudgetService
    spent: float = 0.0
    period_start: str = ""
    period_end: str = ""

    @property
    def remaining(self) -> float:
        return self.amount - self.spent

    @property
    def percentage_used(self) -> float:
        if self.amount <= 0:
            return 0.0
        return self.spent / self.amount * 100

    @property
    def is_exceeded(self) -> bool:
        return self.percentage_used > 100
