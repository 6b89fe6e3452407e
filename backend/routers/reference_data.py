from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from crud import reference_data as crud
from schemas.reference_data import Department, DepartmentCreate, HsnSacCode, HsnSacCodeCreate
from utils.auth_utils import get_current_user, get_user_identifier, require_accounting

router = APIRouter(tags=["Reference Data"])


@router.post("/departments/", response_model=Department, status_code=status.HTTP_201_CREATED)
def create_department(
    department: DepartmentCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.create_department(db, department, get_user_identifier(user))


@router.get("/departments/", response_model=List[Department])
def get_departments(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return crud.get_departments(db)


@router.post("/hsn-sac-codes/", response_model=HsnSacCode, status_code=status.HTTP_201_CREATED)
def create_hsn_sac_code(
    hsn_sac_code: HsnSacCodeCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.create_hsn_sac_code(db, hsn_sac_code, get_user_identifier(user))


@router.get("/hsn-sac-codes/", response_model=List[HsnSacCode])
def get_hsn_sac_codes(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return crud.get_hsn_sac_codes(db)
