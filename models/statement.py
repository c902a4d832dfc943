from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass
class StatementPeriod:
    key: str                # 'YYYY-MM'
    year: int
    month: int
    offset: int             # months from the base period
    reference_date: date    # default purchase date for this period
    close_date: date

    @property
    def label(self) -> str:
        from utils.date_helpers import friendly_month
        return friendly_month(self.key)


@dataclass
class StatementPayment:
    id: int
    account_id: int
    period: str
    currency: str
    amount: float
    paid_from_account_id: Optional[int] = None
    transfer_id: Optional[int] = None
    paid_at: str = ""

    @property
    def payment_key(self) -> str:
        return f"{self.period}_{self.currency}"


@dataclass
class Statement:
    """Charges of one credit card grouped into a statement period."""
    period: str
    close_date: date
    total_ars: float = 0.0
    total_usd: float = 0.0
    items: list = field(default_factory=list)
    is_past: bool = False
    is_current: bool = False
    is_future: bool = False
    paid_ars: bool = False
    paid_usd: bool = False

    @property
    def has_installments(self) -> bool:
        return any(m.installment for m in self.items)
