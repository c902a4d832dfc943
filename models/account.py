from dataclasses import dataclass
from typing import Optional


@dataclass
class Account:
    id: int
    name: str
    currency: str = "ARS"
    account_type: str = "Caja de ahorro"
    opening_balance: float = 0.0
    is_credit_card: bool = False
    closing_day: Optional[int] = None
    due_day: Optional[int] = None
    icon: str = ""
    created_at: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.icon} {self.name}".strip()
