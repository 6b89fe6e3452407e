import math
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from crud import price_list as crud
from schemas.common import Pagination
from schemas.price_list import (
    PackagePrice,
    PackagePricePage,
    PackagePriceUpdate,
    PriceListCreateRequest,
    PriceQuote,
    ServicePrice,
    ServicePriceCreate,
    ServicePricePage,
    ServicePriceUpdate,
)
from utils.auth_utils import get_current_user, get_user_identifier, require_accounting

router = APIRouter(
    prefix="/price-lists",
    tags=["Price Lists"],
)


@router.post("/", response_model=Union[ServicePrice, PackagePrice], status_code=status.HTTP_201_CREATED)
def create_price_list_entry(
    request: PriceListCreateRequest = Body(..., discriminator="type"),
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    """Create a service or a package price; ``type`` selects which."""
    actor = get_user_identifier(user)
    if isinstance(request, ServicePriceCreate):
        return crud.create_service_price(db, request, actor)
    return crud.create_package_price(db, request, actor)


# --- Services -------------------------------------------------------------------

@router.get("/services", response_model=ServicePricePage)
def get_service_prices(
    department_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    services, total = crud.get_service_prices(
        db, department_id=department_id, is_active=is_active, search=search, page=page, limit=limit
    )
    return {
        "data": services,
        "pagination": Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    }


@router.get("/services/{service_id}", response_model=ServicePrice)
def get_service_price(
    service_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_service_price(db, service_id)


@router.patch("/services/{service_id}", response_model=ServicePrice)
def update_service_price(
    service_id: int,
    update: ServicePriceUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.update_service_price(db, service_id, update, get_user_identifier(user))


@router.delete("/services/{service_id}", response_model=ServicePrice)
def deactivate_service_price(
    service_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.deactivate_service_price(db, service_id, get_user_identifier(user))


@router.get("/services/{service_id}/quote", response_model=PriceQuote)
def quote_service(
    service_id: int,
    quantity: Decimal = Query(Decimal("1"), gt=0),
    quote_date: Optional[date] = None,
    inter_state: bool = False,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Price and GST for ``quantity`` units on ``quote_date`` (default today)."""
    return crud.quote_service(db, service_id, quantity=quantity, quote_date=quote_date, inter_state=inter_state)


# --- Packages -------------------------------------------------------------------

@router.get("/packages", response_model=PackagePricePage)
def get_package_prices(
    department_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    packages, total = crud.get_package_prices(
        db, department_id=department_id, is_active=is_active, search=search, page=page, limit=limit
    )
    return {
        "data": packages,
        "pagination": Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    }


@router.get("/packages/{package_id}", response_model=PackagePrice)
def get_package_price(
    package_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_package_price(db, package_id)


@router.patch("/packages/{package_id}", response_model=PackagePrice)
def update_package_price(
    package_id: int,
    update: PackagePriceUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.update_package_price(db, package_id, update, get_user_identifier(user))


@router.delete("/packages/{package_id}", response_model=PackagePrice)
def deactivate_package_price(
    package_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.deactivate_package_price(db, package_id, get_user_identifier(user))


@router.get("/packages/{package_id}/quote", response_model=PriceQuote)
def quote_package(
    package_id: int,
    quantity: Decimal = Query(Decimal("1"), gt=0),
    quote_date: Optional[date] = None,
    inter_state: bool = False,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """
    Price and GST at the package's listed price.

    ``components_total`` shows what the bundled services would cost on their
    own; the two figures are not required to agree.
    """
    return crud.quote_package(db, package_id, quantity=quantity, quote_date=quote_date, inter_state=inter_state)
