import enum

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, Numeric, ForeignKey, Enum
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class JournalEntryStatus(enum.Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    REVERSED = "REVERSED"


REVERSAL_REFERENCE_TYPE = "REVERSAL"


class JournalEntry(Base, TimestampMixin):
    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True, index=True)
    entry_number = Column(String(20), nullable=False, unique=True, index=True)
    entry_date = Column(Date, nullable=False, index=True)
    financial_year_id = Column(Integer, ForeignKey("financial_years.id"), nullable=False, index=True)
    reference = Column(String, nullable=True, index=True)
    reference_type = Column(String(50), nullable=True)
    description = Column(Text, nullable=False)
    total_debit = Column(Numeric(14, 2), nullable=False, default=0)
    total_credit = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(Enum(JournalEntryStatus), nullable=False, default=JournalEntryStatus.DRAFT, index=True)

    # Scheduling metadata only; nothing generates the next occurrence.
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_interval = Column(String(20), nullable=True)
    next_recurring_date = Column(Date, nullable=True)

    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    reversed_by = Column(String, nullable=True)
    reversed_at = Column(DateTime(timezone=True), nullable=True)
    reversal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)

    # Relationships
    items = relationship(
        "JournalItem",
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        order_by="JournalItem.id",
    )
    financial_year = relationship("FinancialYear", back_populates="journal_entries")
    reversal_entry = relationship("JournalEntry", remote_side=[id], foreign_keys=[reversal_entry_id])
