from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from crud import chart_of_accounts as crud
from models.chart_of_accounts import AccountType
from schemas.chart_of_accounts import (
    AccountReconciliation,
    AccountTreeNode,
    ChartOfAccounts,
    ChartOfAccountsCreate,
    ChartOfAccountsDetail,
    ChartOfAccountsUpdate,
)
from utils.auth_utils import get_current_user, get_user_identifier, require_accounting

router = APIRouter(
    prefix="/chart-of-accounts",
    tags=["Chart of Accounts"],
)


@router.post("/", response_model=ChartOfAccounts, status_code=status.HTTP_201_CREATED)
def create_account(
    account: ChartOfAccountsCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.create_account(db, account, get_user_identifier(user))


@router.get("/", response_model=List[ChartOfAccounts])
def get_accounts(
    account_type: Optional[AccountType] = None,
    parent_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    department_id: Optional[int] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_accounts(
        db,
        account_type=account_type,
        parent_id=parent_id,
        is_active=is_active,
        department_id=department_id,
        search=search,
    )


@router.get("/tree", response_model=List[AccountTreeNode])
def get_account_tree(
    account_type: Optional[AccountType] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Accounts nested under their parents."""
    return crud.get_account_tree(db, account_type=account_type, is_active=is_active)


@router.post("/initialize", response_model=List[ChartOfAccounts], status_code=status.HTTP_201_CREATED)
def initialize_default_accounts(
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    """
    Seed the standard hospital chart of accounts.

    Codes that already exist are skipped, so calling this twice is harmless.
    Returns only the accounts created by this call.
    """
    return crud.initialize_default_accounts(db, get_user_identifier(user))


@router.get("/{account_id}", response_model=ChartOfAccountsDetail)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_account(db, account_id)


@router.get("/{account_id}/reconcile", response_model=AccountReconciliation)
def reconcile_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Compare the running balance with opening balance plus posted history."""
    return crud.reconcile_account(db, account_id)


@router.patch("/{account_id}", response_model=ChartOfAccounts)
def update_account(
    account_id: int,
    account_update: ChartOfAccountsUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.update_account(db, account_id, account_update, get_user_identifier(user))


@router.delete("/{account_id}", response_model=ChartOfAccounts)
def deactivate_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    """Accounts are never removed; this marks the account inactive."""
    return crud.deactivate_account(db, account_id, get_user_identifier(user))
