from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from crud import financial_year as crud
from models.financial_year import FinancialYearStatus
from schemas.financial_year import FinancialYear, FinancialYearCreate, FinancialYearUpdate
from utils.auth_utils import get_current_user, get_user_identifier, require_accounting

router = APIRouter(
    prefix="/financial-years",
    tags=["Financial Years"],
)


@router.post("/", response_model=FinancialYear, status_code=status.HTTP_201_CREATED)
def create_financial_year(
    financial_year: FinancialYearCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.create_financial_year(db, financial_year, get_user_identifier(user))


@router.get("/", response_model=List[FinancialYear])
def get_financial_years(
    status: Optional[FinancialYearStatus] = None,
    is_current: Optional[bool] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_financial_years(db, status=status, is_current=is_current)


@router.get("/{financial_year_id}", response_model=FinancialYear)
def get_financial_year(
    financial_year_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_financial_year(db, financial_year_id)


@router.patch("/{financial_year_id}", response_model=FinancialYear)
def update_financial_year(
    financial_year_id: int,
    update: FinancialYearUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    """
    Rename, move, close or reopen a financial year.

    Closing is refused while DRAFT entries remain in the year. Reopening is
    refused once a later year has been closed.
    """
    return crud.update_financial_year(db, financial_year_id, update, get_user_identifier(user))


@router.delete("/{financial_year_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_financial_year(
    financial_year_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    crud.delete_financial_year(db, financial_year_id, get_user_identifier(user))
