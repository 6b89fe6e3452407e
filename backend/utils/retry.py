import logging
import os

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from exceptions import ConcurrencyError

logger = logging.getLogger(__name__)

LEDGER_MAX_RETRIES = int(os.getenv("LEDGER_MAX_RETRIES", "3"))

# PostgreSQL SQLSTATEs for serialization_failure and deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def _is_retryable_operational_error(error: OperationalError) -> bool:
    sqlstate = getattr(error.orig, "pgcode", None) or getattr(error.orig, "sqlstate", None)
    return sqlstate in RETRYABLE_SQLSTATES


def run_with_retry(db: Session, operation, name: str, attempts: int = None):
    """
    Run ``operation()`` and retry it after a lost race.

    ``operation`` must do its own reads, validation and commit, so a retry
    re-validates against whatever the competing transaction committed. Only
    unique-constraint violations, lost compare-and-set claims and
    serialization/deadlock aborts are retried; every other error rolls the
    session back and propagates unchanged.
    """
    attempts = attempts or LEDGER_MAX_RETRIES
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrencyError as e:
            db.rollback()
            last_error = e
        except IntegrityError as e:
            db.rollback()
            last_error = e
        except OperationalError as e:
            db.rollback()
            if not _is_retryable_operational_error(e):
                raise
            last_error = e
        except Exception:
            db.rollback()
            raise
        logger.warning(f"{name}: concurrent update detected (attempt {attempt}/{attempts}): {last_error}")

    logger.error(f"{name}: giving up after {attempts} attempts")
    raise ConcurrencyError(
        f"{name} could not be completed because of concurrent updates; please retry",
        details=[{"attempts": attempts}],
    ) from last_error
