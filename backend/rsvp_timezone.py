"""
StoreCore RSVP Import - Timezone Converter
================================================================================
Converts store-local wall-clock readings into absolute UTC instants.

The UTC offset is looked up for the specific calendar date being converted
(trial instant at noon UTC, rendered in the store zone), never for "now" and
never from the host process timezone. Dates on either side of a daylight
saving transition therefore get their own offset.

Unknown timezone identifiers degrade to UTC with a warning.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple

import pytz
from pydantic import BaseModel

logger = logging.getLogger(__name__)


# ============== ERRORS ==============
class LocalTimeConversionError(ValueError):
    """A reservation line's date/time cannot be turned into an instant"""


# ============== MODELS ==============
class ReservationTime(BaseModel):
    start_instant: datetime   # UTC
    end_instant: datetime     # UTC
    duration_minutes: int
    local_start: datetime     # naive, store wall-clock
    weekday: int              # Monday=0


# ============== TIMEZONE LOOKUP ==============
@lru_cache(maxsize=64)
def resolve_timezone(timezone_id: Optional[str]):
    """Return the pytz zone for an IANA id, or UTC (with a warning) if unknown"""
    if not timezone_id:
        logger.warning("No store timezone configured, falling back to UTC")
        return pytz.utc
    try:
        return pytz.timezone(timezone_id)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{timezone_id}', falling back to UTC offset 0")
        return pytz.utc


def get_utc_offset_minutes(year: int, month: int, day: int, timezone_id: str) -> int:
    """
    UTC offset of the store zone on a given calendar date, in minutes.
    Positive east of Greenwich (Asia/Taipei -> 480).
    """
    tz = resolve_timezone(timezone_id)
    trial = datetime(year, month, day, 12, 0, tzinfo=timezone.utc)
    local = trial.astimezone(tz)
    delta = local.replace(tzinfo=None) - trial.replace(tzinfo=None)
    return int(delta.total_seconds() // 60)


def convert_local_to_instant(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    timezone_id: str
) -> datetime:
    """
    Convert a store-local wall-clock reading to a UTC instant.

    Raises:
        LocalTimeConversionError: if the components do not form a valid date/time
                                  or the instant falls outside the datetime range
    """
    try:
        local = datetime(year, month, day, hour, minute)
    except (TypeError, ValueError):
        raise LocalTimeConversionError(
            f"Invalid date/time: {year}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}"
        )
    try:
        offset = get_utc_offset_minutes(year, month, day, timezone_id)
        return (local - timedelta(minutes=offset)).replace(tzinfo=timezone.utc)
    except OverflowError:
        raise LocalTimeConversionError(
            f"Date out of range: {year}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}"
        )


def convert_wall_clock_to_instant(local: datetime, timezone_id: str) -> datetime:
    """Same as convert_local_to_instant for a naive wall-clock datetime"""
    return convert_local_to_instant(
        local.year, local.month, local.day, local.hour, local.minute, timezone_id
    )


def to_store_local(instant: datetime, timezone_id: str) -> datetime:
    """UTC instant -> naive store wall-clock"""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(resolve_timezone(timezone_id)).replace(tzinfo=None)


# ============== LINE PARSING ==============
def _parse_month_day(date_text: str) -> Tuple[int, int]:
    parts = (date_text or "").split("/")
    if len(parts) != 2:
        raise LocalTimeConversionError(f"Invalid date format: {date_text}")
    try:
        return int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        raise LocalTimeConversionError(f"Invalid date format: {date_text}")


def _parse_hh_mm(time_text: str, label: str) -> Tuple[int, int]:
    parts = (time_text or "").split(":")
    if len(parts) != 2:
        raise LocalTimeConversionError(f"Invalid {label} time format: {time_text}")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        raise LocalTimeConversionError(f"Invalid {label} time format: {time_text}")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise LocalTimeConversionError(f"Invalid {label} time format: {time_text}")
    return hour, minute


def parse_reservation_datetime(
    date_text: str,
    start_text: str,
    end_text: str,
    year: int,
    timezone_id: str
) -> ReservationTime:
    """
    Convert an explicit reservation line ('1/2', '14:00', '15:00') to instants.

    Raises:
        LocalTimeConversionError: unparsable components, or end not after start
    """
    month, day = _parse_month_day(date_text)
    start_hour, start_minute = _parse_hh_mm(start_text, "start")
    end_hour, end_minute = _parse_hh_mm(end_text, "end")

    start_instant = convert_local_to_instant(year, month, day, start_hour, start_minute, timezone_id)
    end_instant = convert_local_to_instant(year, month, day, end_hour, end_minute, timezone_id)

    duration_minutes = int((end_instant - start_instant).total_seconds() // 60)
    if duration_minutes <= 0:
        raise LocalTimeConversionError(
            f"End time must be after start time: {start_text}～{end_text}"
        )

    local_start = datetime(year, month, day, start_hour, start_minute)
    return ReservationTime(
        start_instant=start_instant,
        end_instant=end_instant,
        duration_minutes=duration_minutes,
        local_start=local_start,
        weekday=local_start.weekday(),
    )
