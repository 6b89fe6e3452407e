import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from crud import journal_entry as crud
from models.journal_entry import JournalEntryStatus
from schemas.common import Pagination
from schemas.journal_entry import (
    JournalEntry,
    JournalEntryCreate,
    JournalEntryPage,
    JournalEntryReverse,
    JournalEntryUpdate,
    ReversalResult,
)
from utils.auth_utils import get_current_user, get_user_identifier, require_accounting

router = APIRouter(
    prefix="/journal-entries",
    tags=["Journal Entries"],
)


@router.post("/", response_model=JournalEntry, status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    entry: JournalEntryCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    """
    Create a new journal entry in DRAFT status.

    Lines must include at least one debit and one credit, and the totals must
    agree to the paisa. Balances are untouched until the entry is posted.
    """
    return crud.create_journal_entry(db, entry, get_user_identifier(user))


@router.get("/", response_model=JournalEntryPage)
def get_journal_entries(
    financial_year_id: Optional[int] = None,
    status: Optional[JournalEntryStatus] = None,
    reference: Optional[str] = None,
    reference_type: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    account_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    entries, total = crud.get_journal_entries(
        db,
        financial_year_id=financial_year_id,
        status=status,
        reference=reference,
        reference_type=reference_type,
        from_date=from_date,
        to_date=to_date,
        account_id=account_id,
        page=page,
        limit=limit,
    )
    return {
        "data": entries,
        "pagination": Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    }


@router.get("/{entry_id}", response_model=JournalEntry)
def get_journal_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return crud.get_journal_entry(db, entry_id)


@router.patch("/{entry_id}", response_model=JournalEntry)
def update_journal_entry(
    entry_id: int,
    entry_update: JournalEntryUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    """
    Edit a DRAFT entry. Sending ``"status": "POSTED"`` posts it after any
    other changes in the same request are saved.
    """
    return crud.update_journal_entry(db, entry_id, entry_update, get_user_identifier(user))


@router.post("/{entry_id}/post", response_model=JournalEntry)
def post_journal_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return crud.post_journal_entry(db, entry_id, get_user_identifier(user))


@router.post("/{entry_id}/reverse", response_model=ReversalResult)
def reverse_journal_entry(
    entry_id: int,
    reversal: JournalEntryReverse,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    original, reversal_entry = crud.reverse_journal_entry(
        db, entry_id, reversal.reason, get_user_identifier(user), reversal_date=reversal.reversal_date
    )
    return {"original_entry": original, "reversal_entry": reversal_entry}


@router.delete("/{entry_id}", response_model=ReversalResult)
def delete_journal_entry(
    entry_id: int,
    reason: Optional[str] = None,
    reversal_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    """Journal entries are never removed; deleting a POSTED entry reverses it."""
    original, reversal_entry = crud.reverse_journal_entry(
        db, entry_id, reason, get_user_identifier(user), reversal_date=reversal_date
    )
    return {"original_entry": original, "reversal_entry": reversal_entry}
