from pydantic import BaseModel
from datetime import date
from decimal import Decimal
from typing import List, Optional
from models.chart_of_accounts import AccountType
from models.journal_entry import JournalEntryStatus
from schemas.common import Pagination


class LedgerAccount(BaseModel):
    id: int
    account_code: str
    account_name: str
    account_type: AccountType
    current_balance: Decimal


class LedgerFinancialYear(BaseModel):
    id: int
    year_name: str
    start_date: date
    end_date: date


# Account ledger (statement of one account)
class AccountLedgerEntry(BaseModel):
    journal_entry_id: int
    entry_number: str
    entry_date: date
    status: JournalEntryStatus
    reference: Optional[str] = None
    reference_type: Optional[str] = None
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal


class AccountLedger(BaseModel):
    account: LedgerAccount
    financial_year: Optional[LedgerFinancialYear] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    opening_balance: Decimal
    closing_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal
    entries: List[AccountLedgerEntry]
    pagination: Pagination


# Trial balance
class TrialBalanceLine(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    opening_balance: Decimal
    period_debits: Decimal   # activity inside the financial year up to as_of_date
    period_credits: Decimal
    balance: Decimal
    debit_balance: Decimal
    credit_balance: Decimal


class TrialBalanceGroup(BaseModel):
    account_type: AccountType
    total_debit_balance: Decimal
    total_credit_balance: Decimal


class TrialBalance(BaseModel):
    financial_year: LedgerFinancialYear
    as_of_date: date
    lines: List[TrialBalanceLine]
    groups: List[TrialBalanceGroup]
    total_debit_balance: Decimal
    total_credit_balance: Decimal
    is_balanced: bool
