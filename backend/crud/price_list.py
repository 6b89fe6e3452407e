import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from models.price_list import ServicePriceList, PackagePriceList, PackageItem
from models.audit_mixin import ist_now
from schemas.price_list import (
    PackageItemCreate,
    PackagePriceCreate,
    PackagePriceUpdate,
    ServicePriceCreate,
    ServicePriceUpdate,
)
from schemas.audit_log import AuditLogCreate
from crud.audit_log import record_audit_log
from crud.gst import calculate_gst, package_components_total
from crud.reference_data import get_department, get_hsn_sac_code_by_code
from utils import reject_cleared_fields, sqlalchemy_to_dict
from exceptions import (
    DuplicateCodeError,
    InvalidDateRangeError,
    PackagePriceNotFoundError,
    PriceNotEffectiveError,
    ServicePriceNotFoundError,
)

logger = logging.getLogger(__name__)

REQUIRED_SERVICE_FIELDS = (
    'service_name', 'service_code', 'department_id', 'hsn_sac_code',
    'base_price', 'gst_rate_type', 'is_active', 'effective_from',
)
REQUIRED_PACKAGE_FIELDS = (
    'package_name', 'package_code', 'department_id', 'hsn_sac_code', 'base_price',
    'gst_rate_type', 'description', 'is_active', 'effective_from', 'package_items',
)


# --- Lookups --------------------------------------------------------------------

def get_service_price(db: Session, service_id: int) -> ServicePriceList:
    service = db.query(ServicePriceList).options(
        selectinload(ServicePriceList.department),
        selectinload(ServicePriceList.hsn_sac_code),
    ).filter(ServicePriceList.id == service_id).first()
    if not service:
        raise ServicePriceNotFoundError(f"Service price {service_id} not found")
    return service


def get_package_price(db: Session, package_id: int) -> PackagePriceList:
    package = db.query(PackagePriceList).options(
        selectinload(PackagePriceList.department),
        selectinload(PackagePriceList.hsn_sac_code),
        selectinload(PackagePriceList.package_items).selectinload(PackageItem.service),
    ).filter(PackagePriceList.id == package_id).first()
    if not package:
        raise PackagePriceNotFoundError(f"Package price {package_id} not found")
    return package


def get_service_prices(
    db: Session,
    department_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[ServicePriceList], int]:
    query = db.query(ServicePriceList)
    if department_id:
        query = query.filter(ServicePriceList.department_id == department_id)
    if is_active is not None:
        query = query.filter(ServicePriceList.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            ServicePriceList.service_name.ilike(pattern),
            ServicePriceList.service_code.ilike(pattern),
        ))

    total = query.count()
    services = query.options(
        selectinload(ServicePriceList.department),
        selectinload(ServicePriceList.hsn_sac_code),
    ).order_by(ServicePriceList.service_name).offset((page - 1) * limit).limit(limit).all()
    return services, total


def get_package_prices(
    db: Session,
    department_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[PackagePriceList], int]:
    query = db.query(PackagePriceList)
    if department_id:
        query = query.filter(PackagePriceList.department_id == department_id)
    if is_active is not None:
        query = query.filter(PackagePriceList.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            PackagePriceList.package_name.ilike(pattern),
            PackagePriceList.package_code.ilike(pattern),
        ))

    total = query.count()
    packages = query.options(
        selectinload(PackagePriceList.department),
        selectinload(PackagePriceList.hsn_sac_code),
        selectinload(PackagePriceList.package_items).selectinload(PackageItem.service),
    ).order_by(PackagePriceList.package_name).offset((page - 1) * limit).limit(limit).all()
    return packages, total


def get_service_price_by_code(db: Session, service_code: str) -> Optional[ServicePriceList]:
    return db.query(ServicePriceList).filter(ServicePriceList.service_code == service_code).first()


def get_package_price_by_code(db: Session, package_code: str) -> Optional[PackagePriceList]:
    return db.query(PackagePriceList).filter(PackagePriceList.package_code == package_code).first()


# --- Validation -----------------------------------------------------------------

def _flush_unique_code(db: Session, lookup, code: str, label: str, record_id: int = None):
    """Flush; a concurrent writer that took ``code`` first surfaces as DuplicateCodeError."""
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        holder = lookup(db, code)
        if holder is not None and holder.id != record_id:
            raise DuplicateCodeError(f"{label} with code {code} already exists")
        raise


def _check_effective_window(effective_from: date, effective_to: Optional[date]):
    if effective_to is not None and effective_to < effective_from:
        raise InvalidDateRangeError("effective_to cannot be before effective_from")


def _build_package_items(db: Session, items: List[PackageItemCreate]) -> List[PackageItem]:
    service_ids = {item.service_id for item in items}
    services = db.query(ServicePriceList).filter(
        ServicePriceList.id.in_(service_ids),
        ServicePriceList.is_active.is_(True),
    ).all()
    missing = service_ids - {service.id for service in services}
    if missing:
        raise ServicePriceNotFoundError(
            "One or more services not found or inactive",
            details=[{"service_id": service_id} for service_id in sorted(missing)],
        )
    return [PackageItem(**item.model_dump()) for item in items]


# --- Services -------------------------------------------------------------------

def create_service_price(db: Session, service: ServicePriceCreate, actor: str) -> ServicePriceList:
    if get_service_price_by_code(db, service.service_code):
        raise DuplicateCodeError(f"Service with code {service.service_code} already exists")
    get_department(db, service.department_id)
    hsn_sac_code = get_hsn_sac_code_by_code(db, service.hsn_sac_code)
    _check_effective_window(service.effective_from, service.effective_to)

    db_service = ServicePriceList(
        **service.model_dump(exclude={'type', 'hsn_sac_code'}),
        hsn_sac_code_id=hsn_sac_code.id,
        created_by=actor,
    )
    db.add(db_service)
    _flush_unique_code(db, get_service_price_by_code, db_service.service_code, "Service")

    record_audit_log(db, AuditLogCreate(
        table_name='service_price_list',
        record_id=str(db_service.id),
        changed_by=actor,
        action='CREATE',
        old_values={},
        new_values=sqlalchemy_to_dict(db_service),
    ))
    db.commit()
    logger.info(f"Service price {db_service.service_code} created by {actor}")
    return get_service_price(db, db_service.id)


def update_service_price(db: Session, service_id: int, update: ServicePriceUpdate, actor: str) -> ServicePriceList:
    service = get_service_price(db, service_id)
    update_data = update.model_dump(exclude_unset=True)
    reject_cleared_fields(update_data, REQUIRED_SERVICE_FIELDS)
    old_values = sqlalchemy_to_dict(service)

    new_code = update_data.get('service_code')
    if new_code and new_code != service.service_code:
        duplicate = db.query(ServicePriceList).filter(
            ServicePriceList.service_code == new_code,
            ServicePriceList.id != service_id,
        ).first()
        if duplicate:
            raise DuplicateCodeError(f"Service with code {new_code} already exists")

    if update_data.get('department_id') is not None:
        get_department(db, update_data['department_id'])
    hsn_code = update_data.pop('hsn_sac_code', None)
    if hsn_code is not None:
        update_data['hsn_sac_code_id'] = get_hsn_sac_code_by_code(db, hsn_code).id

    _check_effective_window(
        update_data.get('effective_from') or service.effective_from,
        update_data['effective_to'] if 'effective_to' in update_data else service.effective_to,
    )

    for key, value in update_data.items():
        setattr(service, key, value)
    service.updated_by = actor
    service.updated_at = ist_now()
    _flush_unique_code(db, get_service_price_by_code, service.service_code, "Service", record_id=service.id)

    record_audit_log(db, AuditLogCreate(
        table_name='service_price_list',
        record_id=str(service.id),
        changed_by=actor,
        action='UPDATE',
        old_values=old_values,
        new_values=sqlalchemy_to_dict(service),
    ))
    db.commit()
    return get_service_price(db, service_id)


def deactivate_service_price(db: Session, service_id: int, actor: str) -> ServicePriceList:
    return update_service_price(db, service_id, ServicePriceUpdate(is_active=False), actor)


# --- Packages -------------------------------------------------------------------

def create_package_price(db: Session, package: PackagePriceCreate, actor: str) -> PackagePriceList:
    if get_package_price_by_code(db, package.package_code):
        raise DuplicateCodeError(f"Package with code {package.package_code} already exists")
    get_department(db, package.department_id)
    hsn_sac_code = get_hsn_sac_code_by_code(db, package.hsn_sac_code)
    _check_effective_window(package.effective_from, package.effective_to)
    items = _build_package_items(db, package.package_items)

    db_package = PackagePriceList(
        **package.model_dump(exclude={'type', 'hsn_sac_code', 'package_items'}),
        hsn_sac_code_id=hsn_sac_code.id,
        created_by=actor,
    )
    db_package.package_items = items
    db.add(db_package)
    _flush_unique_code(db, get_package_price_by_code, db_package.package_code, "Package")

    new_values = sqlalchemy_to_dict(db_package)
    new_values['package_items'] = [sqlalchemy_to_dict(item) for item in items]
    record_audit_log(db, AuditLogCreate(
        table_name='package_price_list',
        record_id=str(db_package.id),
        changed_by=actor,
        action='CREATE',
        old_values={},
        new_values=new_values,
    ))
    db.commit()
    logger.info(f"Package price {db_package.package_code} created by {actor} with {len(items)} services")
    return get_package_price(db, db_package.id)


def update_package_price(db: Session, package_id: int, update: PackagePriceUpdate, actor: str) -> PackagePriceList:
    package = get_package_price(db, package_id)
    update_data = update.model_dump(exclude_unset=True)
    reject_cleared_fields(update_data, REQUIRED_PACKAGE_FIELDS)
    old_values = sqlalchemy_to_dict(package)
    old_values['package_items'] = [sqlalchemy_to_dict(item) for item in package.package_items]

    new_code = update_data.get('package_code')
    if new_code and new_code != package.package_code:
        duplicate = db.query(PackagePriceList).filter(
            PackagePriceList.package_code == new_code,
            PackagePriceList.id != package_id,
        ).first()
        if duplicate:
            raise DuplicateCodeError(f"Package with code {new_code} already exists")

    if update_data.get('department_id') is not None:
        get_department(db, update_data['department_id'])
    hsn_code = update_data.pop('hsn_sac_code', None)
    if hsn_code is not None:
        update_data['hsn_sac_code_id'] = get_hsn_sac_code_by_code(db, hsn_code).id

    _check_effective_window(
        update_data.get('effective_from') or package.effective_from,
        update_data['effective_to'] if 'effective_to' in update_data else package.effective_to,
    )

    update_data.pop('package_items', None)
    if update.package_items is not None:
        # Replaced wholesale; delete-orphan removes the old rows
        package.package_items = _build_package_items(db, update.package_items)

    for key, value in update_data.items():
        setattr(package, key, value)
    package.updated_by = actor
    package.updated_at = ist_now()
    _flush_unique_code(db, get_package_price_by_code, package.package_code, "Package", record_id=package.id)

    new_values = sqlalchemy_to_dict(package)
    new_values['package_items'] = [sqlalchemy_to_dict(item) for item in package.package_items]
    record_audit_log(db, AuditLogCreate(
        table_name='package_price_list',
        record_id=str(package.id),
        changed_by=actor,
        action='UPDATE',
        old_values=old_values,
        new_values=new_values,
    ))
    db.commit()
    return get_package_price(db, package_id)


def deactivate_package_price(db: Session, package_id: int, actor: str) -> PackagePriceList:
    return update_package_price(db, package_id, PackagePriceUpdate(is_active=False), actor)


# --- Quotes ---------------------------------------------------------------------

def _assert_effective(entry, code: str, on_date: date):
    if not entry.is_active:
        raise PriceNotEffectiveError(f"{code} is inactive")
    if on_date < entry.effective_from or (entry.effective_to is not None and on_date > entry.effective_to):
        raise PriceNotEffectiveError(
            f"{code} is not effective on {on_date}",
            details=[{
                "effective_from": entry.effective_from.isoformat(),
                "effective_to": entry.effective_to.isoformat() if entry.effective_to else None,
            }],
        )


def quote_service(db: Session, service_id: int, quantity: Decimal = Decimal("1"), quote_date: date = None, inter_state: bool = False) -> dict:
    service = get_service_price(db, service_id)
    quote_date = quote_date or ist_now().date()
    _assert_effective(service, service.service_code, quote_date)

    unit_price = Decimal(service.base_price)
    return {
        "code": service.service_code,
        "name": service.service_name,
        "quantity": quantity,
        "unit_price": unit_price,
        "quote_date": quote_date,
        "gst": calculate_gst(unit_price * quantity, service.gst_rate_type, inter_state),
    }


def quote_package(db: Session, package_id: int, quantity: Decimal = Decimal("1"), quote_date: date = None, inter_state: bool = False) -> dict:
    """Quote a package at its listed price; the component total is reported alongside, not enforced."""
    package = get_package_price(db, package_id)
    quote_date = quote_date or ist_now().date()
    _assert_effective(package, package.package_code, quote_date)

    unit_price = Decimal(package.base_price)
    return {
        "code": package.package_code,
        "name": package.package_name,
        "quantity": quantity,
        "unit_price": unit_price,
        "quote_date": quote_date,
        "gst": calculate_gst(unit_price * quantity, package.gst_rate_type, inter_state),
        "components_total": package_components_total(package),
    }
