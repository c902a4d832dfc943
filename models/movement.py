from dataclasses import dataclass
from typing import Optional


@dataclass
class Movement:
    id: int
    type: str               # 'income' | 'expense'
    date: str               # 'YYYY-MM-DD'
    amount: float
    account_id: int
    category_id: Optional[int] = None
    note: str = ""
    currency: str = "ARS"
    attachment_path: Optional[str] = None
    installment: Optional[str] = None        # 'n/total'
    installment_purchase_id: Optional[int] = None
    recurring_occurrence_id: Optional[int] = None
    is_future: bool = False
    account_name: str = ""
    category_name: str = ""
    created_at: str = ""

    @property
    def installment_number(self) -> Optional[int]:
        if not self.installment:
            return None
        return int(self.installment.split("/")[0])


@dataclass
class Transfer:
    id: int
    date: str
    from_account_id: int
    to_account_id: int
    from_amount: float
    to_amount: float
    note: str = ""
    is_future: bool = False
    recurring_occurrence_id: Optional[int] = None
    from_account_name: str = ""
    to_account_name: str = ""
    from_currency: str = "ARS"
    to_currency: str = "ARS"
    created_at: str = ""

    type = "transfer"


@dataclass
class InstallmentPurchase:
    id: int
    description: str
    total_amount: float
    installments: int
    account_id: int
    category_id: Optional[int]
    currency: str
    purchase_date: str
    first_installment_date: str
    created_at: str = ""

    @property
    def installment_amount(self) -> float:
        return self.total_amount / self.installments
