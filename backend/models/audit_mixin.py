from sqlalchemy import Column, DateTime, String
from datetime import datetime
import pytz


IST = pytz.timezone('Asia/Kolkata')


def ist_now():
    return datetime.now(IST)


class TimestampMixin:
    """Mixin that provides created/updated timestamps and the acting user.

    Ledger rows are never hard-deleted; accounts and price lists are retired
    with their own ``is_active`` flag, so no soft-delete columns live here.
    """
    # DateTime(timezone=True) keeps the Asia/Kolkata offset in the database.
    created_at = Column(DateTime(timezone=True), default=ist_now)
    updated_at = Column(DateTime(timezone=True), onupdate=ist_now)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
