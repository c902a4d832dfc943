from dataclasses import dataclass
from typing import Optional


@dataclass
class ScheduledTransaction:
    id: int
    type: str                   # 'income' | 'expense' | 'transfer'
    scheduled_date: str
    amount: float
    account_id: int
    category_id: Optional[int] = None
    to_account_id: Optional[int] = None
    to_amount: Optional[float] = None
    note: str = ""
    status: str = "pending"     # 'pending' | 'executed' | 'rejected'
    executed_movement_id: Optional[int] = None
    executed_transfer_id: Optional[int] = None
    account_name: str = ""
    to_account_name: str = ""
    category_name: str = ""
    created_at: str = ""
