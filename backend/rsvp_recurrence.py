"""
StoreCore RSVP Import - Recurrence Projector
================================================================================
Walks one block's lines and projects a future instant for every continuation
line ("3-" with no date/time).

State is an immutable RecurrenceState; every step takes a state and returns a
new one:
    observe_confirmed_slot  - explicit line seen (measures the gap to the previous one)
    advance_continuation    - continuation line seen (bumps the run counter)
    project_continuation    - instant for the current continuation line

Projection rules:
    1. Measured interval > 0: last slot + interval * count, pushed forward by
       whole intervals until strictly after now.
    2. Otherwise weekly: soonest future date with the last slot's weekday,
       plus (count - 1) weeks, at the last slot's start time.

The interval is always taken from the most recent pair of explicit slots.
Projection runs on the store wall-clock and converts each candidate with the
offset of its own date, so a 10:00 slot stays 10:00 across a DST change.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from core.models import LineKind
from rsvp_import_parser import RawBlock, RawLine
from rsvp_timezone import (
    LocalTimeConversionError,
    convert_local_to_instant,
    convert_wall_clock_to_instant,
    parse_reservation_datetime,
    to_store_local,
)

logger = logging.getLogger(__name__)

NO_SLOT_ERROR = "No valid time slot found for recurring RSVP."
RECURRING_NOTE = "Recurring ({count})"
PROJECTION_OUT_OF_RANGE_ERROR = "Projected date out of range"


# ============== STATE ==============
class ConfirmedSlot(BaseModel):
    """An explicit reservation slot, as remembered for projection"""
    model_config = ConfigDict(frozen=True)

    start_time: str          # HH:MM
    end_time: str            # HH:MM
    duration_minutes: int
    weekday: int             # Monday=0, store-local
    instant: datetime        # UTC
    local_start: datetime    # naive, store wall-clock


class RecurrenceState(BaseModel):
    model_config = ConfigDict(frozen=True)

    last_confirmed_slot: Optional[ConfirmedSlot] = None
    previous_confirmed_instant: Optional[datetime] = None
    measured_interval_millis: Optional[int] = None
    continuation_count: int = 0


class SlotOutcome(BaseModel):
    """Result of walking one line: an instant (explicit or projected) or an error"""
    ordinal: int
    line_number: int
    kind: LineKind
    reservation_instant: Optional[datetime] = None
    arrival_instant: Optional[datetime] = None
    duration_minutes: int = 0
    is_projected: bool = False
    note: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


# ============== TRANSITIONS ==============
def _to_millis(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


def observe_confirmed_slot(state: RecurrenceState, slot: ConfirmedSlot) -> RecurrenceState:
    """Record an explicit slot; the interval becomes the gap to the previous slot"""
    interval = state.measured_interval_millis
    if state.last_confirmed_slot is not None:
        interval = _to_millis(slot.local_start - state.last_confirmed_slot.local_start)

    return state.model_copy(update={
        "last_confirmed_slot": slot,
        "previous_confirmed_instant": slot.instant,
        "measured_interval_millis": interval,
        "continuation_count": 0,
    })


def advance_continuation(state: RecurrenceState) -> RecurrenceState:
    return state.model_copy(update={"continuation_count": state.continuation_count + 1})


def _project_by_interval(
    slot: ConfirmedSlot,
    interval_millis: int,
    count: int,
    timezone_id: str,
    now: datetime
) -> datetime:
    step = timedelta(milliseconds=interval_millis)
    local = slot.local_start + step * count
    candidate = convert_wall_clock_to_instant(local, timezone_id)
    if candidate > now:
        return candidate

    # Jump close to now in one go, then step until strictly after it
    behind = to_store_local(now, timezone_id) - local
    if behind > timedelta(0):
        local += step * (behind // step)
        candidate = convert_wall_clock_to_instant(local, timezone_id)
    while candidate <= now:
        local += step
        candidate = convert_wall_clock_to_instant(local, timezone_id)
    return candidate


def _project_weekly(slot: ConfirmedSlot, count: int, timezone_id: str, now: datetime) -> datetime:
    today = to_store_local(now, timezone_id).date()
    days_ahead = (slot.weekday - today.weekday()) % 7 or 7
    target = today + timedelta(days=days_ahead) + timedelta(weeks=max(count, 1) - 1)
    return convert_local_to_instant(
        target.year, target.month, target.day,
        slot.local_start.hour, slot.local_start.minute,
        timezone_id
    )


def project_continuation(state: RecurrenceState, timezone_id: str, now: datetime) -> datetime:
    """
    Instant for the current continuation line.
    The state must already be advanced (continuation_count >= 1).
    """
    slot = state.last_confirmed_slot
    if slot is None:
        raise ValueError(NO_SLOT_ERROR)

    interval = state.measured_interval_millis
    if interval is not None and interval > 0:
        return _project_by_interval(slot, interval, state.continuation_count, timezone_id, now)
    return _project_weekly(slot, state.continuation_count, timezone_id, now)


# ============== BLOCK WALK ==============
def _confirmed_outcome(line: RawLine, timezone_id: str):
    reservation_time = parse_reservation_datetime(
        line.date_text, line.start_text, line.end_text, line.year, timezone_id
    )
    start = reservation_time.local_start
    end = start + timedelta(minutes=reservation_time.duration_minutes)
    slot = ConfirmedSlot(
        start_time=f"{start.hour:02d}:{start.minute:02d}",
        end_time=f"{end.hour:02d}:{end.minute:02d}",
        duration_minutes=reservation_time.duration_minutes,
        weekday=reservation_time.weekday,
        instant=reservation_time.start_instant,
        local_start=start,
    )
    outcome = SlotOutcome(
        ordinal=line.ordinal,
        line_number=line.line_number,
        kind=LineKind.RESERVATION,
        reservation_instant=reservation_time.start_instant,
        arrival_instant=reservation_time.start_instant,
        duration_minutes=reservation_time.duration_minutes,
    )
    return slot, outcome


def walk_block(block: RawBlock, timezone_id: str, now: Optional[datetime] = None) -> List[SlotOutcome]:
    """
    Walk a block's lines in the order they were written.

    Args:
        block: Parsed block
        timezone_id: Store timezone (IANA id)
        now: Reference instant for "future"; defaults to the current UTC time

    Returns:
        One SlotOutcome per line, same order as block.lines
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    state = RecurrenceState()
    outcomes: List[SlotOutcome] = []

    for line in block.lines:
        if not line.is_continuation:
            try:
                slot, outcome = _confirmed_outcome(line, timezone_id)
            except LocalTimeConversionError as e:
                outcomes.append(SlotOutcome(
                    ordinal=line.ordinal,
                    line_number=line.line_number,
                    kind=LineKind.RESERVATION,
                    error=str(e),
                ))
                continue
            state = observe_confirmed_slot(state, slot)
            outcomes.append(outcome)
            continue

        if state.last_confirmed_slot is None:
            outcomes.append(SlotOutcome(
                ordinal=line.ordinal,
                line_number=line.line_number,
                kind=LineKind.CONTINUATION,
                error=NO_SLOT_ERROR,
            ))
            continue

        state = advance_continuation(state)
        try:
            instant = project_continuation(state, timezone_id, now)
        except (OverflowError, LocalTimeConversionError):
            outcomes.append(SlotOutcome(
                ordinal=line.ordinal,
                line_number=line.line_number,
                kind=LineKind.CONTINUATION,
                error=PROJECTION_OUT_OF_RANGE_ERROR,
            ))
            continue
        outcomes.append(SlotOutcome(
            ordinal=line.ordinal,
            line_number=line.line_number,
            kind=LineKind.CONTINUATION,
            reservation_instant=instant,
            duration_minutes=state.last_confirmed_slot.duration_minutes,
            is_projected=True,
            note=RECURRING_NOTE.format(count=state.continuation_count),
        ))

    logger.debug(
        f"Block '{block.customer_name}': {len(outcomes)} line(s), "
        f"interval={state.measured_interval_millis}ms"
    )
    return outcomes
