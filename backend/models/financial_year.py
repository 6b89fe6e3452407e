import enum

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, Enum
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class FinancialYearStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class FinancialYear(Base, TimestampMixin):
    __tablename__ = "financial_years"

    id = Column(Integer, primary_key=True, index=True)
    year_name = Column(String(50), nullable=False, unique=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(Enum(FinancialYearStatus), nullable=False, default=FinancialYearStatus.ACTIVE)
    is_current = Column(Boolean, nullable=False, default=False)
    closed_by = Column(String, nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    journal_entries = relationship("JournalEntry", back_populates="financial_year", lazy="dynamic")
