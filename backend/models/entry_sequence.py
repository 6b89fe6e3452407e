from sqlalchemy import Column, Integer, String
from database import Base


class EntrySequence(Base):
    """One counter row per calendar month (``YYYYMM``) for journal entry numbers."""
    __tablename__ = "journal_entry_sequences"

    id = Column(Integer, primary_key=True, index=True)
    period = Column(String(6), nullable=False, unique=True)
    last_value = Column(Integer, nullable=False, default=0)
