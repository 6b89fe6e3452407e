from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from models.chart_of_accounts import AccountType


class AccountSummary(BaseModel):
    id: int
    account_code: str
    account_name: str
    account_type: AccountType

    class Config:
        from_attributes = True


class ChildAccount(AccountSummary):
    current_balance: Decimal


class ChartOfAccountsBase(BaseModel):
    account_code: str = Field(..., min_length=1, max_length=20)
    account_name: str = Field(..., min_length=1, max_length=100)
    account_type: AccountType
    parent_account_id: Optional[int] = None
    department_id: Optional[int] = None
    description: Optional[str] = None
    is_active: bool = True


class ChartOfAccountsCreate(ChartOfAccountsBase):
    opening_balance: Decimal = Field(Decimal("0"), decimal_places=2)


class ChartOfAccountsUpdate(BaseModel):
    # account_type is fixed at creation; sending it is rejected.
    account_code: Optional[str] = Field(None, min_length=1, max_length=20)
    account_name: Optional[str] = Field(None, min_length=1, max_length=100)
    parent_account_id: Optional[int] = None
    department_id: Optional[int] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    opening_balance: Optional[Decimal] = Field(None, decimal_places=2)

    class Config:
        extra = "forbid"


class ChartOfAccounts(ChartOfAccountsBase):
    id: int
    opening_balance: Decimal
    current_balance: Decimal
    parent_account: Optional[AccountSummary] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChartOfAccountsDetail(ChartOfAccounts):
    child_accounts: List[ChildAccount] = []


class AccountTreeNode(BaseModel):
    id: int
    account_code: str
    account_name: str
    account_type: AccountType
    current_balance: Decimal
    is_active: bool
    children: List["AccountTreeNode"] = []


class AccountReconciliation(BaseModel):
    account_id: int
    account_code: str
    opening_balance: Decimal
    current_balance: Decimal
    computed_balance: Decimal
    difference: Decimal
    is_consistent: bool


AccountTreeNode.model_rebuild()
