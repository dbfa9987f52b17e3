"""
StoreCore RSVP Import - Block Splitter & Line Classifier
================================================================================
Turns a pasted appointment book into ordered reservation blocks.

Accepted shapes (tried in this order):
    2026                              -> year marker
    張三 網球課10H（1/2 2026）         -> header (customer, product, paid date)
    1-   1/2 14:00～15:00             -> explicit reservation line
    3-                                -> continuation line (same slot, next occurrence)

Lines that match nothing while a block is open are collected as errors and
skipped; the rest of the text is still parsed.
"""

import re
import logging
from datetime import datetime, timezone, date
from typing import Callable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from core.models import LineKind

logger = logging.getLogger(__name__)


# ============== PATTERNS ==============
YEAR_MARKER_PATTERN = re.compile(r"^(\d{4})$")
HEADER_PATTERN = re.compile(
    r"^(?P<name>.+?)\s+(?P<product>\S+?\d+H)\s*(?:[（(]\s*(?P<paid>[^）)]*?)\s*[）)])?$"
)
PRODUCT_COUNT_PATTERN = re.compile(r"(\d+)H$")
PAID_DATE_PATTERN = re.compile(r"^(\d{1,2})\s*/\s*(\d{1,2})\s+(\d{4})$")
RESERVATION_PATTERN = re.compile(r"^(?P<ordinal>\d+)-\s*(?P<rest>.*)$")
SLOT_PATTERN = re.compile(
    r"^(?P<month>\d{1,2})\s*/\s*(?P<day>\d{1,2})\s+"
    r"(?P<start>\d{1,2}:\d{2})\s*[～~]\s*(?P<end>\d{1,2}:\d{2})$"
)


# ============== MODELS ==============
class RawLine(BaseModel):
    """One numbered reservation line inside a block"""
    ordinal: int
    date_text: Optional[str] = None   # M/D
    start_text: Optional[str] = None  # H:MM
    end_text: Optional[str] = None    # H:MM
    year: int
    line_number: int
    is_continuation: bool = False


class RawBlock(BaseModel):
    """One customer's pasted entry: header plus its numbered lines"""
    customer_name: str
    product_label: str
    total_reservations: int = 0
    paid_date_text: Optional[str] = None  # MM/DD YYYY
    paid_date: Optional[date] = None
    year: int
    line_number: int
    lines: List[RawLine] = Field(default_factory=list)

    @property
    def already_paid(self) -> bool:
        return self.paid_date is not None


class LineParseError(BaseModel):
    block_index: int
    line: int
    error: str


class ParsedImport(BaseModel):
    blocks: List[RawBlock] = Field(default_factory=list)
    errors: List[LineParseError] = Field(default_factory=list)

    @property
    def line_count(self) -> int:
        return sum(len(b.lines) for b in self.blocks)


# ============== MATCHERS ==============
class YearMarkerMatch(BaseModel):
    year: int


class HeaderMatch(BaseModel):
    customer_name: str
    product_label: str
    total_reservations: int = 0
    paid_date_text: Optional[str] = None
    paid_date: Optional[date] = None


class ReservationMatch(BaseModel):
    ordinal: int
    date_text: Optional[str] = None
    start_text: Optional[str] = None
    end_text: Optional[str] = None
    is_continuation: bool = False
    # Set when "<n>-" is followed by text that is not a date/time range
    invalid_text: Optional[str] = None


LineMatch = Union[YearMarkerMatch, HeaderMatch, ReservationMatch]


def match_year_marker(line: str) -> Optional[YearMarkerMatch]:
    m = YEAR_MARKER_PATTERN.match(line)
    if not m:
        return None
    return YearMarkerMatch(year=int(m.group(1)))


def parse_paid_date(text: Optional[str]) -> Tuple[Optional[str], Optional[date]]:
    """
    Parse a paid date like '1/2 2026'.
    Returns (normalized 'MM/DD YYYY', date) or (None, None) if not a real date.
    """
    if not text:
        return None, None
    m = PAID_DATE_PATTERN.match(text.strip())
    if not m:
        return None, None
    month, day, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    try:
        paid = date(year, month, day)
    except ValueError:
        return None, None
    return f"{month:02d}/{day:02d} {year}", paid


def match_header_line(line: str) -> Optional[HeaderMatch]:
    m = HEADER_PATTERN.match(line)
    if not m:
        return None

    product = m.group("product").strip()
    count_match = PRODUCT_COUNT_PATTERN.search(product)
    total = int(count_match.group(1)) if count_match else 0

    raw_paid = m.group("paid")
    paid_text, paid_date = parse_paid_date(raw_paid)
    if raw_paid and paid_date is None:
        logger.warning(f"Unparseable paid date '{raw_paid}' in header: {line}")

    return HeaderMatch(
        customer_name=m.group("name").strip(),
        product_label=product,
        total_reservations=total,
        paid_date_text=paid_text,
        paid_date=paid_date,
    )


def match_reservation_line(line: str) -> Optional[ReservationMatch]:
    m = RESERVATION_PATTERN.match(line)
    if not m:
        return None

    ordinal = int(m.group("ordinal"))
    rest = m.group("rest").strip()
    if not rest:
        return ReservationMatch(ordinal=ordinal, is_continuation=True)

    slot = SLOT_PATTERN.match(rest)
    if not slot:
        return ReservationMatch(ordinal=ordinal, invalid_text=rest)

    return ReservationMatch(
        ordinal=ordinal,
        date_text=f"{int(slot.group('month'))}/{int(slot.group('day'))}",
        start_text=slot.group("start"),
        end_text=slot.group("end"),
    )


# Priority order matters: a 4-digit line is a year, never a header
LINE_MATCHERS: List[Tuple[LineKind, Callable[[str], Optional[LineMatch]]]] = [
    (LineKind.YEAR_MARKER, match_year_marker),
    (LineKind.HEADER, match_header_line),
    (LineKind.RESERVATION, match_reservation_line),
]


def classify_line(line: str) -> Optional[Tuple[LineKind, LineMatch]]:
    """Try every matcher in priority order; None if nothing matches"""
    for kind, matcher in LINE_MATCHERS:
        match = matcher(line)
        if match is None:
            continue
        if kind == LineKind.RESERVATION and match.is_continuation:
            return LineKind.CONTINUATION, match
        return kind, match
    return None


# ============== SPLITTER ==============
def parse_rsvp_import_text(text: str, default_year: Optional[int] = None) -> ParsedImport:
    """
    Split pasted import text into blocks and collect line-level errors.

    Args:
        text: Raw multi-line text as pasted by the operator
        default_year: Year used until a year marker or paid date says otherwise
                      (defaults to the current UTC year)

    Returns:
        ParsedImport with blocks in input order and non-fatal errors
    """
    if default_year is None:
        default_year = datetime.now(timezone.utc).year

    result = ParsedImport()
    current: Optional[RawBlock] = None
    marker_year: Optional[int] = None
    current_year = default_year

    for line_index, raw_line in enumerate((text or "").splitlines()):
        line = raw_line.strip()
        if not line:
            continue
        line_number = line_index + 1

        classified = classify_line(line)
        if classified is None:
            if current is not None:
                result.errors.append(LineParseError(
                    block_index=len(result.blocks),
                    line=line_number,
                    error=f"Unexpected line format: {line}"
                ))
            else:
                logger.debug(f"Ignoring line {line_number} outside of any block: {line}")
            continue

        kind, match = classified

        if kind == LineKind.YEAR_MARKER:
            marker_year = match.year
            current_year = match.year
            continue

        if kind == LineKind.HEADER:
            if current is not None:
                result.blocks.append(current)
            if match.paid_date is not None:
                current_year = match.paid_date.year
            else:
                current_year = marker_year or default_year
            current = RawBlock(
                customer_name=match.customer_name,
                product_label=match.product_label,
                total_reservations=match.total_reservations,
                paid_date_text=match.paid_date_text,
                paid_date=match.paid_date,
                year=current_year,
                line_number=line_number,
            )
            continue

        # Reservation or continuation line
        if current is None:
            logger.debug(f"Ignoring reservation line {line_number} before any header: {line}")
            continue

        if match.invalid_text is not None:
            result.errors.append(LineParseError(
                block_index=len(result.blocks),
                line=line_number,
                error=f"Invalid reservation format: {line}"
            ))
            continue

        current.lines.append(RawLine(
            ordinal=match.ordinal,
            date_text=match.date_text,
            start_text=match.start_text,
            end_text=match.end_text,
            year=current_year,
            line_number=line_number,
            is_continuation=match.is_continuation,
        ))

    if current is not None:
        result.blocks.append(current)

    logger.info(
        f"RSVP import text parsed: {len(result.blocks)} block(s), "
        f"{result.line_count} line(s), {len(result.errors)} error(s)"
    )
    return result
