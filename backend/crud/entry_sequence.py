import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.entry_sequence import EntrySequence

logger = logging.getLogger(__name__)

ENTRY_NUMBER_PREFIX = "JE"


def format_entry_number(period: str, value: int) -> str:
    return f"{ENTRY_NUMBER_PREFIX}-{period}-{value:04d}"


def _lock_counter(db: Session, period: str):
    return (
        db.query(EntrySequence)
        .filter(EntrySequence.period == period)
        .with_for_update()
        .first()
    )


def next_entry_number(db: Session, entry_date: date) -> str:
    """
    Allocate the next ``JE-YYYYMM-NNNN`` number for the month of ``entry_date``.

    The month's counter row is locked with SELECT ... FOR UPDATE and bumped in
    the caller's transaction, so two concurrent creates serialize on the row
    and a rolled-back create releases its number with everything else. The
    first allocation of a month inserts the row under a savepoint; losing that
    insert race falls back to locking the row the winner created.
    """
    period = entry_date.strftime("%Y%m")

    counter = _lock_counter(db, period)
    if counter is None:
        try:
            with db.begin_nested():
                db.add(EntrySequence(period=period, last_value=0))
        except IntegrityError:
            logger.debug(f"Counter row for {period} created concurrently; re-reading")
        counter = _lock_counter(db, period)

    counter.last_value += 1
    db.flush()
    return format_entry_number(period, counter.last_value)
