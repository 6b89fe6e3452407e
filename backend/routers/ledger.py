from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from crud import ledger as crud
from schemas.ledger import AccountLedger, TrialBalance
from utils.auth_utils import get_current_user

router = APIRouter(
    prefix="/ledger",
    tags=["Ledger"],
)


@router.get("/accounts/{account_id}", response_model=AccountLedger)
def get_account_ledger(
    account_id: int,
    financial_year_id: Optional[int] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Posted lines of one account with opening, running and closing balances."""
    return crud.get_account_ledger(
        db,
        account_id,
        financial_year_id=financial_year_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        limit=limit,
    )


@router.get("/trial-balance", response_model=TrialBalance)
def get_trial_balance(
    financial_year_id: int,
    as_of_date: Optional[date] = None,
    exclude_zero_balances: bool = False,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_trial_balance(
        db, financial_year_id, as_of_date=as_of_date, exclude_zero_balances=exclude_zero_balances
    )
