from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Frequency:
    type: str = "monthly"
    day: Optional[int] = None           # day of month
    day_of_week: Optional[int] = None   # 0=Mon..6=Sun
    month: Optional[int] = None         # yearly only
    interval: Optional[int] = None      # custom_days only

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Frequency":
        data = data or {}
        return cls(
            type=data.get("type", "monthly"),
            day=data.get("day"),
            day_of_week=data.get("day_of_week", data.get("dayOfWeek")),
            month=data.get("month"),
            interval=data.get("interval"),
        )


@dataclass
class RecurringTransaction:
    id: int
    name: str
    type: str                   # 'income' | 'expense' | 'transfer'
    amount: float
    frequency: Frequency
    start_date: str
    currency: str = "ARS"
    description: str = ""
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    from_account_id: Optional[int] = None
    to_account_id: Optional[int] = None
    to_amount: Optional[float] = None
    weekend_handling: str = "as_is"
    end_date: Optional[str] = None
    creation_mode: str = "automatic"
    is_active: bool = True
    is_paused: bool = False
    last_generated_date: Optional[str] = None
    next_execution_date: Optional[str] = None
    account_name: str = ""
    category_name: str = ""
    # Filled in by RecurringService.get_with_stats
    stats: dict = field(default_factory=dict)

    @property
    def status(self) -> str:
        if not self.is_active:
            return "inactive"
        return "paused" if self.is_paused else "active"


@dataclass
class RecurringOccurrence:
    id: int
    recurring_id: int
    scheduled_date: str
    status: str                 # 'pending' | 'confirmed' | 'skipped'
    movement_id: Optional[int] = None
    transfer_id: Optional[int] = None
    actual_amount: Optional[float] = None
    confirmed_at: Optional[str] = None
    confirmed_via: Optional[str] = None
    recurring_name: str = ""
