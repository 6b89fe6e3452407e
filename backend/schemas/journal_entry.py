from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from models.journal_entry import JournalEntryStatus
from schemas.common import Pagination
from schemas.financial_year import FinancialYearSummary
from .journal_item import JournalItemCreate, JournalItem


class JournalEntryBase(BaseModel):
    entry_date: date
    description: str = Field(..., min_length=1)
    reference: Optional[str] = None
    reference_type: Optional[str] = None
    is_recurring: bool = False
    recurring_interval: Optional[str] = None
    next_recurring_date: Optional[date] = None


class JournalEntryCreate(JournalEntryBase):
    """Debit/credit balancing is checked by the crud layer so the errors keep their order."""
    financial_year_id: int
    items: List[JournalItemCreate] = Field(..., min_length=1)


class JournalEntryUpdate(BaseModel):
    entry_date: Optional[date] = None
    description: Optional[str] = Field(None, min_length=1)
    is_recurring: Optional[bool] = None
    recurring_interval: Optional[str] = None
    next_recurring_date: Optional[date] = None
    # Only POSTED is accepted here; it is routed to the posting flow.
    status: Optional[JournalEntryStatus] = None
    items: Optional[List[JournalItemCreate]] = Field(None, min_length=1)


class JournalEntryReverse(BaseModel):
    reason: Optional[str] = None
    reversal_date: Optional[date] = None


class JournalEntry(JournalEntryBase):
    id: int
    entry_number: str
    financial_year_id: int
    total_debit: Decimal
    total_credit: Decimal
    status: JournalEntryStatus
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    reversed_by: Optional[str] = None
    reversed_at: Optional[datetime] = None
    reversal_entry_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    financial_year: Optional[FinancialYearSummary] = None
    items: List[JournalItem] = []

    class Config:
        from_attributes = True


class JournalEntryPage(BaseModel):
    data: List[JournalEntry]
    pagination: Pagination


class ReversalResult(BaseModel):
    original_entry: JournalEntry
    reversal_entry: JournalEntry
