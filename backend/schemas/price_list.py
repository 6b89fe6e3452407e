from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Union
from datetime import date, datetime
from decimal import Decimal
from models.price_list import GstRateType
from schemas.common import Pagination
from schemas.reference_data import Department, HsnSacCode


class PackageItemCreate(BaseModel):
    service_id: int
    quantity: Decimal = Field(..., gt=0)
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)


class ServicePriceCreate(BaseModel):
    type: Literal["service"]
    service_name: str = Field(..., min_length=1)
    service_code: str = Field(..., min_length=1, max_length=30)
    department_id: int
    hsn_sac_code: str
    base_price: Decimal = Field(..., gt=0, decimal_places=2)
    gst_rate_type: GstRateType
    description: Optional[str] = None
    is_active: bool = True
    effective_from: date
    effective_to: Optional[date] = None


class PackagePriceCreate(BaseModel):
    type: Literal["package"]
    package_name: str = Field(..., min_length=1)
    package_code: str = Field(..., min_length=1, max_length=30)
    department_id: int
    hsn_sac_code: str
    base_price: Decimal = Field(..., gt=0, decimal_places=2)
    gst_rate_type: GstRateType
    description: str
    duration: Optional[int] = Field(None, gt=0)
    is_active: bool = True
    effective_from: date
    effective_to: Optional[date] = None
    package_items: List[PackageItemCreate] = Field(..., min_length=1)


# One request shape for both catalog kinds, discriminated on "type".
PriceListCreateRequest = Union[ServicePriceCreate, PackagePriceCreate]


class ServicePriceUpdate(BaseModel):
    service_name: Optional[str] = Field(None, min_length=1)
    service_code: Optional[str] = Field(None, min_length=1, max_length=30)
    department_id: Optional[int] = None
    hsn_sac_code: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    gst_rate_type: Optional[GstRateType] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None


class PackagePriceUpdate(BaseModel):
    package_name: Optional[str] = Field(None, min_length=1)
    package_code: Optional[str] = Field(None, min_length=1, max_length=30)
    department_id: Optional[int] = None
    hsn_sac_code: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    gst_rate_type: Optional[GstRateType] = None
    description: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    package_items: Optional[List[PackageItemCreate]] = Field(None, min_length=1)


class ServiceSummary(BaseModel):
    id: int
    service_name: str
    service_code: str
    base_price: Decimal

    class Config:
        from_attributes = True


class ServicePrice(BaseModel):
    id: int
    service_name: str
    service_code: str
    department_id: int
    base_price: Decimal
    gst_rate_type: GstRateType
    description: Optional[str] = None
    is_active: bool
    effective_from: date
    effective_to: Optional[date] = None
    department: Optional[Department] = None
    hsn_sac_code: Optional[HsnSacCode] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PackageItem(BaseModel):
    id: int
    service_id: int
    quantity: Decimal
    discount_percentage: Decimal
    service: Optional[ServiceSummary] = None

    class Config:
        from_attributes = True


class PackagePrice(BaseModel):
    id: int
    package_name: str
    package_code: str
    department_id: int
    base_price: Decimal
    gst_rate_type: GstRateType
    description: str
    duration: Optional[int] = None
    is_active: bool
    effective_from: date
    effective_to: Optional[date] = None
    department: Optional[Department] = None
    hsn_sac_code: Optional[HsnSacCode] = None
    package_items: List[PackageItem] = []
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServicePricePage(BaseModel):
    data: List[ServicePrice]
    pagination: Pagination


class PackagePricePage(BaseModel):
    data: List[PackagePrice]
    pagination: Pagination


class GstBreakdown(BaseModel):
    taxable_amount: Decimal
    gst_rate_type: GstRateType
    gst_rate: Decimal
    inter_state: bool
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_tax: Decimal
    total_amount: Decimal


class PriceQuote(BaseModel):
    code: str
    name: str
    quantity: Decimal
    unit_price: Decimal
    quote_date: date
    gst: GstBreakdown
    # Packages only: what the components would cost on their own.
    components_total: Optional[Decimal] = None
