# Core Module - Shared configurations and utilities
from .config import settings, get_settings
from .database import db, client
from .models import RsvpStatus, PreviewRowStatus, LineKind, ReservationSource, serialize_for_db
from .validators import (
    validate_currency,
    validate_staff_pricing,
    collect_preview_row_errors,
    validate_store_settings_data
)
from .exceptions import (
    StoreCoreException,
    NotFoundException,
    ValidationException,
    MissingPricingBasisException,
    ImportHasErrorsException
)

__all__ = [
    'settings', 'get_settings', 'db', 'client',
    'RsvpStatus', 'PreviewRowStatus', 'LineKind', 'ReservationSource', 'serialize_for_db',
    'validate_currency', 'validate_staff_pricing',
    'collect_preview_row_errors', 'validate_store_settings_data',
    'StoreCoreException', 'NotFoundException', 'ValidationException',
    'MissingPricingBasisException', 'ImportHasErrorsException'
]
