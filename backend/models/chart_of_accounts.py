import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, ForeignKey, Enum
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class AccountType(enum.Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


# Debit-normal accounts grow with debits; every other type grows with credits.
DEBIT_NORMAL_TYPES = (AccountType.ASSET, AccountType.EXPENSE)


class ChartOfAccounts(Base, TimestampMixin):
    __tablename__ = "chart_of_accounts"

    id = Column(Integer, primary_key=True, index=True)
    account_code = Column(String(20), nullable=False, unique=True, index=True)
    account_name = Column(String(100), nullable=False)
    account_type = Column(Enum(AccountType), nullable=False)
    parent_account_id = Column(Integer, ForeignKey("chart_of_accounts.id"), nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    description = Column(Text, nullable=True)
    opening_balance = Column(Numeric(14, 2), nullable=False, default=0)
    current_balance = Column(Numeric(14, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    parent_account = relationship("ChartOfAccounts", remote_side=[id], back_populates="child_accounts")
    child_accounts = relationship(
        "ChartOfAccounts",
        back_populates="parent_account",
        order_by="ChartOfAccounts.account_code",
    )
    department = relationship("Department")
