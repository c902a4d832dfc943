from dataclasses import dataclass
from typing import Optional


@dataclass
class CalendarEvent:
    date: str
    type: str               # 'income' | 'expense' | 'transfer'
    event_type: str         # 'movement' | 'scheduled' | 'recurring_scheduled'
    amount: float
    title: str = ""
    currency: str = "ARS"
    source_id: Optional[int] = None
    account_name: str = ""
    category_name: str = ""
