from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional
from schemas.chart_of_accounts import AccountSummary


class JournalItemBase(BaseModel):
    account_id: int
    description: Optional[str] = None
    debit_amount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    credit_amount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class JournalItemCreate(JournalItemBase):
    pass


class JournalItem(JournalItemBase):
    id: int
    journal_entry_id: int
    account: Optional[AccountSummary] = None

    class Config:
        from_attributes = True
