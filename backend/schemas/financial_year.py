from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from models.financial_year import FinancialYearStatus


class FinancialYearBase(BaseModel):
    year_name: str = Field(..., min_length=1, max_length=50)
    start_date: date
    end_date: date
    is_current: bool = False


class FinancialYearCreate(FinancialYearBase):
    pass


class FinancialYearUpdate(BaseModel):
    year_name: Optional[str] = Field(None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[FinancialYearStatus] = None
    is_current: Optional[bool] = None


class FinancialYearSummary(BaseModel):
    id: int
    year_name: str

    class Config:
        from_attributes = True


class FinancialYear(FinancialYearBase):
    id: int
    status: FinancialYearStatus
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
