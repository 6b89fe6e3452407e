import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from models.journal_entry import JournalEntry, JournalEntryStatus, REVERSAL_REFERENCE_TYPE
from models.journal_item import JournalItem
from models.audit_mixin import ist_now
from schemas.journal_entry import JournalEntryCreate, JournalEntryUpdate
from schemas.journal_item import JournalItemCreate
from schemas.audit_log import AuditLogCreate
from crud.audit_log import record_audit_log
from crud.chart_of_accounts import apply_balance_delta, assert_accounts_active
from crud.entry_sequence import next_entry_number
from crud.financial_year import assert_postable, get_financial_year
from utils import reject_cleared_fields, sqlalchemy_to_dict
from utils.retry import run_with_retry
from exceptions import (
    DebitCreditMismatchError,
    EntryNotEditableError,
    InvalidReversalTargetError,
    InvalidStateTransitionError,
    JournalEntryNotFoundError,
    ReasonRequiredError,
    StaleEntryStateError,
    UnbalancedEntryCompositionError,
)

logger = logging.getLogger(__name__)

BALANCE_TOLERANCE = Decimal("0.01")
CENT = Decimal("0.01")


def validate_items(items: List[JournalItemCreate]) -> Tuple[Decimal, Decimal]:
    """
    Check the double-entry shape of a set of lines and return (total_debit, total_credit).

    Composition is checked before the totals so an entry with only debit
    lines reports UnbalancedEntryCompositionError rather than a mismatch.
    """
    has_debit = any(item.debit_amount > 0 for item in items)
    has_credit = any(item.credit_amount > 0 for item in items)
    if not (has_debit and has_credit):
        raise UnbalancedEntryCompositionError()

    total_debit = sum((Decimal(item.debit_amount) for item in items), Decimal("0")).quantize(CENT)
    total_credit = sum((Decimal(item.credit_amount) for item in items), Decimal("0")).quantize(CENT)
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        raise DebitCreditMismatchError(total_debit, total_credit)
    return total_debit, total_credit


def _entry_query(db: Session):
    return db.query(JournalEntry).options(
        selectinload(JournalEntry.items).selectinload(JournalItem.account),
        selectinload(JournalEntry.financial_year),
    )


def get_journal_entry(db: Session, entry_id: int) -> JournalEntry:
    entry = _entry_query(db).filter(JournalEntry.id == entry_id).first()
    if not entry:
        raise JournalEntryNotFoundError(entry_id)
    return entry


def get_journal_entries(
    db: Session,
    financial_year_id: Optional[int] = None,
    status: Optional[JournalEntryStatus] = None,
    reference: Optional[str] = None,
    reference_type: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    account_id: Optional[int] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[JournalEntry], int]:
    """Filtered page of entries, newest first, with the total match count."""
    query = db.query(JournalEntry)

    if financial_year_id:
        query = query.filter(JournalEntry.financial_year_id == financial_year_id)
    if status:
        query = query.filter(JournalEntry.status == status)
    if reference:
        query = query.filter(JournalEntry.reference.ilike(f"%{reference}%"))
    if reference_type:
        query = query.filter(JournalEntry.reference_type == reference_type)
    if from_date:
        query = query.filter(JournalEntry.entry_date >= from_date)
    if to_date:
        query = query.filter(JournalEntry.entry_date <= to_date)
    if account_id:
        query = query.filter(JournalEntry.items.any(JournalItem.account_id == account_id))

    total = query.count()
    entries = (
        query.options(
            selectinload(JournalEntry.items).selectinload(JournalItem.account),
            selectinload(JournalEntry.financial_year),
        )
        .order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return entries, total


def _lock_entry(db: Session, entry_id: int) -> JournalEntry:
    """Load the entry row with a row lock held until the transaction ends."""
    entry = (
        db.query(JournalEntry)
        .filter(JournalEntry.id == entry_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not entry:
        raise JournalEntryNotFoundError(entry_id)
    return entry


def _claim_status(db: Session, entry: JournalEntry, expected: JournalEntryStatus, values: dict):
    """Compare-and-set the status column; a lost race raises StaleEntryStateError."""
    rowcount = (
        db.query(JournalEntry)
        .filter(JournalEntry.id == entry.id, JournalEntry.status == expected)
        .update(values, synchronize_session=False)
    )
    if rowcount != 1:
        raise StaleEntryStateError(
            f"Journal entry {entry.entry_number} is no longer {expected.value}",
            details=[{"entry_id": entry.id, "expected_status": expected.value}],
        )


def _apply_items(db: Session, items):
    # Fixed account order keeps concurrent postings from deadlocking on balance rows
    for item in sorted(items, key=lambda line: (line.account_id, line.id or 0)):
        apply_balance_delta(db, item.account_id, item.debit_amount, item.credit_amount)


def _entry_audit_values(entry: JournalEntry) -> dict:
    values = sqlalchemy_to_dict(entry)
    values['items'] = [sqlalchemy_to_dict(item) for item in entry.items]
    return values


def create_journal_entry(db: Session, entry: JournalEntryCreate, actor: str) -> JournalEntry:
    """Persist a balanced DRAFT entry with a freshly allocated entry number."""
    def _create():
        total_debit, total_credit = validate_items(entry.items)
        assert_postable(db, entry.financial_year_id, entry.entry_date)
        assert_accounts_active(db, {item.account_id for item in entry.items})

        entry_number = next_entry_number(db, entry.entry_date)
        db_entry = JournalEntry(
            **entry.model_dump(exclude={'items'}),
            entry_number=entry_number,
            total_debit=total_debit,
            total_credit=total_credit,
            status=JournalEntryStatus.DRAFT,
            created_by=actor,
        )
        db_entry.items = [JournalItem(**item.model_dump()) for item in entry.items]
        db.add(db_entry)
        db.flush()

        record_audit_log(db, AuditLogCreate(
            table_name='journal_entries',
            record_id=str(db_entry.id),
            changed_by=actor,
            action='CREATE',
            old_values={},
            new_values=_entry_audit_values(db_entry),
        ))
        db.commit()
        logger.info(f"Journal entry {entry_number} created as DRAFT by {actor} (total {total_debit})")
        return db_entry.id

    entry_id = run_with_retry(db, _create, "Create journal entry")
    return get_journal_entry(db, entry_id)


def update_journal_entry(db: Session, entry_id: int, entry_update: JournalEntryUpdate, actor: str) -> JournalEntry:
    """
    Edit a DRAFT entry.

    Items, when given, replace the stored lines wholesale and the full
    validation runs again. A ``status`` of POSTED in the patch is handed to
    :func:`post_journal_entry` after the edits are saved; any other status
    value is rejected.
    """
    update_data = entry_update.model_dump(exclude_unset=True)
    reject_cleared_fields(update_data, ('entry_date', 'description', 'is_recurring', 'items'))
    target_status = update_data.pop('status', None)
    new_items = entry_update.items if update_data.pop('items', None) is not None else None

    if target_status is not None and target_status != JournalEntryStatus.POSTED:
        current = get_journal_entry(db, entry_id)
        logger.warning(f"Rejected status change of {current.entry_number} to {target_status.value}")
        raise InvalidStateTransitionError(current.entry_number, current.status.value, target_status.value)

    if update_data or new_items is not None:
        def _update():
            db_entry = _lock_entry(db, entry_id)
            if db_entry.status != JournalEntryStatus.DRAFT:
                raise EntryNotEditableError(db_entry.entry_number, db_entry.status.value)

            totals = validate_items(new_items) if new_items is not None else None
            assert_postable(db, db_entry.financial_year_id, update_data.get('entry_date', db_entry.entry_date))
            if new_items is not None:
                assert_accounts_active(db, {item.account_id for item in new_items})

            old_values = _entry_audit_values(db_entry)
            _claim_status(db, db_entry, JournalEntryStatus.DRAFT, {
                JournalEntry.updated_by: actor,
                JournalEntry.updated_at: ist_now(),
            })

            new_date = update_data.get('entry_date')
            if new_date is not None and new_date.strftime("%Y%m") != db_entry.entry_date.strftime("%Y%m"):
                # The number carries the month, so a draft moved across months is renumbered
                update_data['entry_number'] = next_entry_number(db, new_date)
                logger.info(f"Journal entry {db_entry.entry_number} renumbered {update_data['entry_number']}")

            for key, value in update_data.items():
                setattr(db_entry, key, value)
            if new_items is not None:
                db_entry.items = [JournalItem(**item.model_dump()) for item in new_items]
                db_entry.total_debit, db_entry.total_credit = totals
            db.flush()

            record_audit_log(db, AuditLogCreate(
                table_name='journal_entries',
                record_id=str(db_entry.id),
                changed_by=actor,
                action='UPDATE',
                old_values=old_values,
                new_values=_entry_audit_values(db_entry),
            ))
            db.commit()
            logger.info(f"Journal entry {db_entry.entry_number} updated by {actor}")

        run_with_retry(db, _update, "Update journal entry")

    if target_status == JournalEntryStatus.POSTED:
        return post_journal_entry(db, entry_id, actor)
    return get_journal_entry(db, entry_id)


def post_journal_entry(db: Session, entry_id: int, actor: str) -> JournalEntry:
    """
    DRAFT -> POSTED.

    The gate and account activity are checked again because the year may
    have closed or an account may have been retired since the draft was
    saved. Claiming the status and applying every line's balance delta
    happen in one transaction.
    """
    def _post():
        db_entry = _lock_entry(db, entry_id)
        if db_entry.status != JournalEntryStatus.DRAFT:
            logger.warning(f"Rejected posting of {db_entry.entry_number}: status is {db_entry.status.value}")
            raise InvalidStateTransitionError(
                db_entry.entry_number, db_entry.status.value, JournalEntryStatus.POSTED.value
            )

        assert_postable(db, db_entry.financial_year_id, db_entry.entry_date)
        items = db_entry.items
        assert_accounts_active(db, {item.account_id for item in items})

        now = ist_now()
        _claim_status(db, db_entry, JournalEntryStatus.DRAFT, {
            JournalEntry.status: JournalEntryStatus.POSTED,
            JournalEntry.approved_by: actor,
            JournalEntry.approved_at: now,
            JournalEntry.updated_by: actor,
            JournalEntry.updated_at: now,
        })
        _apply_items(db, items)

        record_audit_log(db, AuditLogCreate(
            table_name='journal_entries',
            record_id=str(db_entry.id),
            changed_by=actor,
            action='POST',
            old_values={'status': JournalEntryStatus.DRAFT.value},
            new_values={'status': JournalEntryStatus.POSTED.value, 'approved_by': actor},
        ))
        db.commit()
        logger.info(f"Journal entry {db_entry.entry_number} posted by {actor}")

    run_with_retry(db, _post, "Post journal entry")
    return get_journal_entry(db, entry_id)


def reverse_journal_entry(
    db: Session,
    entry_id: int,
    reason: Optional[str],
    actor: str,
    reversal_date: Optional[date] = None,
) -> Tuple[JournalEntry, JournalEntry]:
    """
    POSTED -> REVERSED, minting a POSTED counter-entry.

    The reversal carries the original's lines with debit and credit swapped,
    and its balance deltas go through the same sign convention as a normal
    posting. An explicit ``reversal_date`` must fall inside the original's
    financial year; without one the reversal is dated today (Asia/Kolkata),
    capped at the year's end date. The year must still be ACTIVE.
    Accounts retired since the original posting do not block a reversal.

    Returns (original, reversal).
    """
    def _reverse():
        original = _lock_entry(db, entry_id)
        if original.status != JournalEntryStatus.POSTED:
            logger.warning(f"Rejected reversal of {original.entry_number}: status is {original.status.value}")
            raise InvalidReversalTargetError(original.entry_number, original.status.value)
        if not reason or not reason.strip():
            raise ReasonRequiredError()

        if reversal_date is None:
            # Today, pulled back inside the original's year once that year has ended
            year = get_financial_year(db, original.financial_year_id)
            on_date = min(max(ist_now().date(), year.start_date), year.end_date)
        else:
            on_date = reversal_date
        assert_postable(db, original.financial_year_id, on_date)

        now = ist_now()
        _claim_status(db, original, JournalEntryStatus.POSTED, {
            JournalEntry.status: JournalEntryStatus.REVERSED,
            JournalEntry.reversed_by: actor,
            JournalEntry.reversed_at: now,
            JournalEntry.updated_by: actor,
            JournalEntry.updated_at: now,
        })

        reversal = JournalEntry(
            entry_number=next_entry_number(db, on_date),
            entry_date=on_date,
            financial_year_id=original.financial_year_id,
            reference=original.entry_number,
            reference_type=REVERSAL_REFERENCE_TYPE,
            description=f"Reversal of {original.entry_number}: {reason.strip()}",
            total_debit=original.total_credit,
            total_credit=original.total_debit,
            status=JournalEntryStatus.POSTED,
            created_by=actor,
            approved_by=actor,
            approved_at=now,
        )
        reversal.items = [
            JournalItem(
                account_id=item.account_id,
                description=item.description,
                debit_amount=item.credit_amount,
                credit_amount=item.debit_amount,
            )
            for item in original.items
        ]
        db.add(reversal)
        db.flush()
        _apply_items(db, reversal.items)

        db.query(JournalEntry).filter(JournalEntry.id == original.id).update(
            {JournalEntry.reversal_entry_id: reversal.id}, synchronize_session=False
        )

        record_audit_log(db, AuditLogCreate(
            table_name='journal_entries',
            record_id=str(original.id),
            changed_by=actor,
            action='REVERSE',
            old_values={'status': JournalEntryStatus.POSTED.value},
            new_values={
                'status': JournalEntryStatus.REVERSED.value,
                'reversal_entry_id': reversal.id,
                'reason': reason.strip(),
            },
        ))
        record_audit_log(db, AuditLogCreate(
            table_name='journal_entries',
            record_id=str(reversal.id),
            changed_by=actor,
            action='CREATE',
            old_values={},
            new_values=_entry_audit_values(reversal),
        ))
        db.commit()
        logger.info(f"Journal entry {original.entry_number} reversed by {actor} via {reversal.entry_number}")
        return reversal.id

    reversal_id = run_with_retry(db, _reverse, "Reverse journal entry")
    return get_journal_entry(db, entry_id), get_journal_entry(db, reversal_id)
