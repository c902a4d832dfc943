from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Goal:
    id: int
    name: str
    goal_type: str          # 'savings' | 'income' | 'spending_reduction'
    target_amount: float
    currency: str = "ARS"
    period_type: str = "monthly"
    start_date: str = ""
    end_date: Optional[str] = None
    icon: str = ""
    is_active: bool = True
    is_completed: bool = False
    category_ids: list[int] = field(default_factory=list)
    account_ids: list[int] = field(default_factory=list)
    # Filled in by GoalService
    current_amount: float = 0.0

    @property
    def percentage_achieved(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        if self.goal_type == "spending_reduction":
            # Full marks while spending stays under the ceiling.
            if self.current_amount <= 0:
                return 100.0
            return min(100.0, self.target_amount / self.current_amount * 100)
        return self.current_amount / self.target_amount * 100

    @property
    def is_achieved(self) -> bool:
        if self.goal_type == "spending_reduction":
            return self.current_amount <= self.target_amount
        return self.current_amount >= self.target_amount
