"""
Shared Enums for the reservation import
"""
from enum import Enum
from datetime import datetime


class RsvpStatus(str, Enum):
    """Reservation status assigned to imported rows"""
    PENDING = "pending"
    READY = "ready"
    COMPLETED = "completed"

    @classmethod
    def for_import_row(cls, is_valid: bool, is_projected: bool) -> "RsvpStatus":
        """Explicit lines are past visits, projected lines are upcoming ones"""
        if not is_valid:
            return cls.PENDING
        return cls.READY if is_projected else cls.COMPLETED


class PreviewRowStatus(str, Enum):
    """Validity of a single preview row"""
    VALID = "valid"
    ERROR = "error"


class LineKind(str, Enum):
    """Shapes recognised by the line classifier"""
    YEAR_MARKER = "year_marker"
    HEADER = "header"
    RESERVATION = "reservation"
    CONTINUATION = "continuation"


class ReservationSource(str, Enum):
    """Source of reservation"""
    IMPORT = "import"


def serialize_for_db(obj: dict) -> dict:
    """Convert datetime fields to ISO strings for MongoDB storage"""
    result = obj.copy()
    for key, value in result.items():
        if isinstance(value, datetime):
            result[key] = value.isoformat()
        elif isinstance(value, Enum):
            result[key] = value.value
    return result
