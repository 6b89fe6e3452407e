from decimal import Decimal
import enum

from sqlalchemy.orm import class_mapper

from exceptions import LedgerValidationError


def sqlalchemy_to_dict(obj):
    """Convert a SQLAlchemy object to a JSON-safe dictionary for the audit log."""
    if not obj:
        return None
    mapper = class_mapper(obj.__class__)
    result = {}
    for c in mapper.columns:
        value = getattr(obj, c.key)
        # Dates and datetimes as ISO strings
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        # Money stays exact
        elif isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, enum.Enum):
            value = value.value
        result[c.key] = value
    return result


def reject_cleared_fields(update_data: dict, required_fields):
    """A PATCH may omit a required field but may not set it to null."""
    cleared = sorted(key for key in required_fields if key in update_data and update_data[key] is None)
    if cleared:
        raise LedgerValidationError(
            f"{', '.join(cleared)} cannot be null",
            details=[{"field": key, "message": "field is required and cannot be null"} for key in cleared],
        )


__all__ = ['reject_cleared_fields', 'sqlalchemy_to_dict']
