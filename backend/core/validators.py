"""
Validators - Centralized validation logic
"""
from datetime import datetime
from typing import List, Optional
import re

import pytz

from .exceptions import ValidationException, MissingPricingBasisException

CURRENCY_PATTERN = re.compile(r"^[a-z]{3}$")


def validate_currency(currency: str) -> str:
    """Normalize and validate a 3-letter currency code (display only)"""
    cleaned = (currency or "").strip().lower()
    if not CURRENCY_PATTERN.match(cleaned):
        raise ValidationException(f"Invalid currency code: {currency}")
    return cleaned


def validate_staff_pricing(staff: Optional[dict]) -> dict:
    """
    Validate the pricing basis of an import.
    A missing staff record fails the whole import before any row is produced.
    """
    if not staff:
        raise MissingPricingBasisException()

    errors = []

    default_cost = staff.get("default_cost")
    if default_cost is None:
        errors.append("Staff default cost is required")
    elif default_cost < 0:
        errors.append("Staff default cost cannot be negative")

    default_duration = staff.get("default_duration")
    if default_duration is None:
        errors.append("Staff default duration is required")
    elif default_duration < 0:
        errors.append("Staff default duration cannot be negative")

    if errors:
        raise ValidationException("; ".join(errors))

    return staff


def collect_preview_row_errors(data: dict) -> List[str]:
    """
    Check an (edited) preview row.
    Returns the list of problems, empty when the row can be committed.
    """
    errors = []

    customer_name = (data.get("customer_name") or "").strip()
    if not customer_name:
        errors.append("Customer name is required")

    instant = data.get("reservation_instant")
    if instant is None:
        errors.append("Reservation time is required")
    elif isinstance(instant, datetime) and instant.tzinfo is None:
        errors.append("Reservation time must carry a timezone")

    duration = data.get("duration_minutes")
    if duration is None or duration <= 0:
        errors.append("Duration must be greater than zero")

    cost = data.get("cost")
    if cost is not None and cost < 0:
        errors.append("Cost cannot be negative")

    return errors


def validate_store_settings_data(data: dict) -> dict:
    """Validate a (partial) store settings update"""
    errors = []

    store_name = data.get("store_name")
    if store_name is not None and len(store_name.strip()) < 2:
        errors.append("Store name must be at least 2 characters long")

    tz = data.get("timezone")
    if tz is not None and tz not in pytz.all_timezones_set:
        errors.append(f"Unknown timezone: {tz}")

    currency = data.get("currency")
    if currency is not None and not CURRENCY_PATTERN.match(currency.strip().lower()):
        errors.append(f"Invalid currency code: {currency}")

    if errors:
        raise ValidationException("; ".join(errors))

    return data
