from pydantic import BaseModel, Field
from typing import Optional


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class Department(DepartmentCreate):
    id: int
    is_active: bool

    class Config:
        from_attributes = True


class HsnSacCodeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    description: Optional[str] = None


class HsnSacCode(HsnSacCodeCreate):
    id: int

    class Config:
        from_attributes = True
