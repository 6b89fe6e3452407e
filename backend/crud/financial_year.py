import logging
from datetime import date

from sqlalchemy.orm import Session

from models.financial_year import FinancialYear, FinancialYearStatus
from models.journal_entry import JournalEntry, JournalEntryStatus
from models.audit_mixin import ist_now
from schemas.financial_year import FinancialYearCreate, FinancialYearUpdate
from schemas.audit_log import AuditLogCreate
from crud.audit_log import record_audit_log
from utils import reject_cleared_fields, sqlalchemy_to_dict
from exceptions import (
    DateOutsideFinancialYearError,
    DuplicateCodeError,
    FinancialYearClosedError,
    FinancialYearHasDraftsError,
    FinancialYearInUseError,
    FinancialYearNotFoundError,
    InvalidDateRangeError,
    OverlappingFinancialYearError,
    StateError,
)

logger = logging.getLogger(__name__)

REQUIRED_YEAR_FIELDS = ('year_name', 'start_date', 'end_date', 'status', 'is_current')


def assert_postable(db: Session, financial_year_id: int, entry_date: date) -> FinancialYear:
    """
    Gate every ledger mutation on the financial year.

    Raises FinancialYearNotFoundError, FinancialYearClosedError or
    DateOutsideFinancialYearError. Read only.
    """
    financial_year = db.query(FinancialYear).filter(FinancialYear.id == financial_year_id).first()
    if not financial_year:
        raise FinancialYearNotFoundError(financial_year_id)
    if financial_year.status != FinancialYearStatus.ACTIVE:
        raise FinancialYearClosedError(financial_year.year_name)
    if entry_date < financial_year.start_date or entry_date > financial_year.end_date:
        raise DateOutsideFinancialYearError(entry_date, financial_year)
    return financial_year


def get_financial_year(db: Session, financial_year_id: int) -> FinancialYear:
    financial_year = db.query(FinancialYear).filter(FinancialYear.id == financial_year_id).first()
    if not financial_year:
        raise FinancialYearNotFoundError(financial_year_id)
    return financial_year


def get_financial_years(db: Session, status: FinancialYearStatus = None, is_current: bool = None):
    query = db.query(FinancialYear)
    if status:
        query = query.filter(FinancialYear.status == status)
    if is_current is not None:
        query = query.filter(FinancialYear.is_current == is_current)
    return query.order_by(FinancialYear.start_date.desc()).all()


def _check_name_and_dates(db: Session, year_name: str, start_date: date, end_date: date, exclude_id: int = None):
    if start_date >= end_date:
        raise InvalidDateRangeError("Start date must be before end date")

    duplicate = db.query(FinancialYear).filter(FinancialYear.year_name == year_name)
    overlapping = db.query(FinancialYear).filter(
        FinancialYear.start_date <= end_date,
        FinancialYear.end_date >= start_date,
    )
    if exclude_id is not None:
        duplicate = duplicate.filter(FinancialYear.id != exclude_id)
        overlapping = overlapping.filter(FinancialYear.id != exclude_id)

    if duplicate.first():
        raise DuplicateCodeError(f"Financial year with name {year_name} already exists")
    other = overlapping.first()
    if other:
        raise OverlappingFinancialYearError(
            f"Financial year overlaps with existing financial year {other.year_name}"
        )


def _clear_current_flag(db: Session, exclude_id: int = None):
    query = db.query(FinancialYear).filter(FinancialYear.is_current.is_(True))
    if exclude_id is not None:
        query = query.filter(FinancialYear.id != exclude_id)
    query.update({FinancialYear.is_current: False}, synchronize_session=False)


def create_financial_year(db: Session, financial_year: FinancialYearCreate, actor: str) -> FinancialYear:
    _check_name_and_dates(db, financial_year.year_name, financial_year.start_date, financial_year.end_date)

    if financial_year.is_current:
        _clear_current_flag(db)

    db_financial_year = FinancialYear(
        **financial_year.model_dump(),
        status=FinancialYearStatus.ACTIVE,
        created_by=actor,
    )
    db.add(db_financial_year)
    db.flush()

    record_audit_log(db, AuditLogCreate(
        table_name='financial_years',
        record_id=str(db_financial_year.id),
        changed_by=actor,
        action='CREATE',
        old_values={},
        new_values=sqlalchemy_to_dict(db_financial_year),
    ))
    db.commit()
    db.refresh(db_financial_year)
    logger.info(f"Financial year {db_financial_year.year_name} created by {actor}")
    return db_financial_year


def update_financial_year(db: Session, financial_year_id: int, update: FinancialYearUpdate, actor: str) -> FinancialYear:
    financial_year = get_financial_year(db, financial_year_id)
    update_data = update.model_dump(exclude_unset=True)
    reject_cleared_fields(update_data, REQUIRED_YEAR_FIELDS)
    old_values = sqlalchemy_to_dict(financial_year)

    year_name = update_data.get('year_name') or financial_year.year_name
    start_date = update_data.get('start_date') or financial_year.start_date
    end_date = update_data.get('end_date') or financial_year.end_date
    _check_name_and_dates(db, year_name, start_date, end_date, exclude_id=financial_year_id)

    new_status = update_data.get('status')
    if new_status == FinancialYearStatus.CLOSED and financial_year.status == FinancialYearStatus.ACTIVE:
        has_drafts = db.query(JournalEntry.id).filter(
            JournalEntry.financial_year_id == financial_year_id,
            JournalEntry.status == JournalEntryStatus.DRAFT,
        ).first()
        if has_drafts:
            raise FinancialYearHasDraftsError("Cannot close financial year with draft journal entries")
        financial_year.closed_by = actor
        financial_year.closed_at = ist_now()
        logger.info(f"Financial year {financial_year.year_name} closed by {actor}")

    if new_status == FinancialYearStatus.ACTIVE and financial_year.status == FinancialYearStatus.CLOSED:
        newer_closed = db.query(FinancialYear).filter(
            FinancialYear.start_date > financial_year.start_date,
            FinancialYear.status == FinancialYearStatus.CLOSED,
        ).first()
        if newer_closed:
            raise StateError(
                f"Cannot reopen a financial year when a newer financial year ({newer_closed.year_name}) is already closed"
            )
        logger.info(f"Financial year {financial_year.year_name} reopened by {actor}")

    if update_data.get('is_current'):
        _clear_current_flag(db, exclude_id=financial_year_id)

    for key, value in update_data.items():
        setattr(financial_year, key, value)
    financial_year.updated_by = actor
    financial_year.updated_at = ist_now()
    db.flush()

    record_audit_log(db, AuditLogCreate(
        table_name='financial_years',
        record_id=str(financial_year.id),
        changed_by=actor,
        action='UPDATE',
        old_values=old_values,
        new_values=sqlalchemy_to_dict(financial_year),
    ))
    db.commit()
    db.refresh(financial_year)
    return financial_year


def delete_financial_year(db: Session, financial_year_id: int, actor: str):
    financial_year = get_financial_year(db, financial_year_id)
    has_entries = db.query(JournalEntry.id).filter(JournalEntry.financial_year_id == financial_year_id).first()
    if has_entries:
        raise FinancialYearInUseError("Cannot delete a financial year with journal entries")

    year_name = financial_year.year_name
    record_audit_log(db, AuditLogCreate(
        table_name='financial_years',
        record_id=str(financial_year.id),
        changed_by=actor,
        action='DELETE',
        old_values=sqlalchemy_to_dict(financial_year),
        new_values={},
    ))
    db.delete(financial_year)
    db.commit()
    logger.info(f"Financial year {year_name} deleted by {actor}")
