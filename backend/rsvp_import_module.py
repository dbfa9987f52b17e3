"""
StoreCore RSVP Import Module
================================================================================
Bulk import of an existing appointment book (pasted text) into reservations.

Flow:
    1. POST /api/rsvp-import/preview       text -> validated preview rows
    2. POST /api/rsvp-import/preview/edit  operator corrects single rows
    3. POST /api/rsvp-import/commit        rows -> reservations (blocked while any row has errors)

Preview generation is pure (parser -> timezone -> recurrence -> pricing);
only the commit touches the database.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field, computed_field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import uuid
import logging

from core.config import settings
from core.database import db
from core.models import RsvpStatus, PreviewRowStatus, ReservationSource, serialize_for_db
from core.validators import collect_preview_row_errors, validate_currency
from core.exceptions import (
    NotFoundException,
    ValidationException,
    ImportHasErrorsException,
    MissingPricingBasisException,
)
from rsvp_import_parser import RawBlock, LineParseError, parse_rsvp_import_text
from rsvp_recurrence import SlotOutcome, walk_block
from rsvp_timezone import to_store_local
from rsvp_pricing import StaffPricing, calculate_cost, require_staff_pricing
from store_settings_module import get_store_import_defaults

logger = logging.getLogger(__name__)


# ============== ROUTER ==============
rsvp_import_router = APIRouter(prefix="/rsvp-import", tags=["RSVP Import"])


# ============== PYDANTIC MODELS ==============
class StoreImportContext(BaseModel):
    """Caller-supplied context of one import"""
    timezone_id: str
    currency: str = "twd"
    staff: Optional[StaffPricing] = None


class PreviewRow(BaseModel):
    customer_name: str
    product_label: str
    reservation_instant: Optional[datetime] = None
    arrival_instant: Optional[datetime] = None
    duration_minutes: int = 0
    staff_label: str = ""
    cost: float = 0.0
    already_paid: bool = False
    status: PreviewRowStatus
    rsvp_status: RsvpStatus = RsvpStatus.PENDING
    note_or_error: Optional[str] = None
    block_index: int
    ordinal: int


class RsvpImportPreview(BaseModel):
    rows: List[PreviewRow] = []
    parse_errors: List[LineParseError] = []
    timezone_id: str
    currency: str
    generated_at: datetime

    @computed_field
    @property
    def has_errors(self) -> bool:
        return any(row.status == PreviewRowStatus.ERROR for row in self.rows)

    @property
    def error_count(self) -> int:
        return sum(1 for row in self.rows if row.status == PreviewRowStatus.ERROR)


class PreviewRowEdit(BaseModel):
    """Inline correction of a single preview row"""
    customer_name: Optional[str] = Field(None, max_length=200)
    reservation_instant: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    already_paid: Optional[bool] = None


class RsvpImportPreviewRequest(BaseModel):
    text: str = Field(..., min_length=1)
    timezone_id: Optional[str] = None
    currency: Optional[str] = None
    staff: Optional[StaffPricing] = None
    staff_member_id: Optional[str] = None
    default_year: Optional[int] = Field(None, ge=1900, le=9999)


class RsvpImportEditRequest(BaseModel):
    preview: RsvpImportPreview
    index: int
    changes: PreviewRowEdit
    staff: Optional[StaffPricing] = None
    staff_member_id: Optional[str] = None


class RsvpImportCommitRequest(BaseModel):
    rows: List[PreviewRow]
    operator: Optional[str] = Field(None, max_length=200)


# ============== HELPER FUNCTIONS ==============
def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    return now_utc().isoformat()


def _row_from_outcome(
    block: RawBlock,
    block_index: int,
    outcome: SlotOutcome,
    staff: StaffPricing
) -> PreviewRow:
    if not outcome.is_valid:
        return PreviewRow(
            customer_name=block.customer_name,
            product_label=block.product_label,
            staff_label=staff.name,
            already_paid=block.already_paid,
            status=PreviewRowStatus.ERROR,
            rsvp_status=RsvpStatus.for_import_row(False, outcome.is_projected),
            note_or_error=outcome.error,
            block_index=block_index,
            ordinal=outcome.ordinal,
        )

    return PreviewRow(
        customer_name=block.customer_name,
        product_label=block.product_label,
        reservation_instant=outcome.reservation_instant,
        arrival_instant=outcome.arrival_instant,
        duration_minutes=outcome.duration_minutes,
        staff_label=staff.name,
        cost=calculate_cost(staff, outcome.duration_minutes),
        already_paid=block.already_paid,
        status=PreviewRowStatus.VALID,
        rsvp_status=RsvpStatus.for_import_row(True, outcome.is_projected),
        note_or_error=outcome.note,
        block_index=block_index,
        ordinal=outcome.ordinal,
    )


# ============== PREVIEW ASSEMBLER ==============
def build_rsvp_import_preview(
    text: str,
    context: StoreImportContext,
    now: Optional[datetime] = None,
    default_year: Optional[int] = None
) -> RsvpImportPreview:
    """
    Parse pasted import text into a validated, editable preview.

    Args:
        text: Pasted appointment book
        context: Store timezone, currency and the staff rate card
        now: Reference instant for projected rows (defaults to current UTC time)
        default_year: Year for blocks without year marker or paid date
                      (defaults to the current year in the store timezone)

    Returns:
        RsvpImportPreview, one row per reservation line in input order

    Raises:
        MissingPricingBasisException: no staff record supplied (nothing is parsed)
        ValidationException: text or resulting row count over the configured limits
    """
    staff = require_staff_pricing(context.staff)

    if len(text or "") > settings.RSVP_IMPORT_MAX_TEXT_LENGTH:
        raise ValidationException(
            f"Import text too long (max {settings.RSVP_IMPORT_MAX_TEXT_LENGTH} characters)"
        )

    if now is None:
        now = now_utc()
    if default_year is None:
        default_year = to_store_local(now, context.timezone_id).year

    parsed = parse_rsvp_import_text(text, default_year=default_year)

    rows: List[PreviewRow] = []
    for block_index, block in enumerate(parsed.blocks):
        for outcome in walk_block(block, context.timezone_id, now):
            rows.append(_row_from_outcome(block, block_index, outcome, staff))

    if len(rows) > settings.RSVP_IMPORT_MAX_ROWS:
        raise ValidationException(
            f"Too many reservations in one import ({len(rows)}, max {settings.RSVP_IMPORT_MAX_ROWS})"
        )

    preview = RsvpImportPreview(
        rows=rows,
        parse_errors=parsed.errors,
        timezone_id=context.timezone_id,
        currency=context.currency,
        generated_at=now,
    )

    if preview.has_errors or parsed.errors:
        logger.info(
            f"RSVP import preview: {len(rows)} row(s), {preview.error_count} row error(s), "
            f"{len(parsed.errors)} line error(s)"
        )
    else:
        logger.info(f"RSVP import preview: {len(rows)} row(s) from {len(parsed.blocks)} block(s)")

    return preview


def apply_row_edit(
    preview: RsvpImportPreview,
    index: int,
    changes: PreviewRowEdit,
    staff: StaffPricing
) -> RsvpImportPreview:
    """
    Apply an operator correction to one row and re-validate it.
    A new duration without an explicit cost re-prices the row.
    Returns a new preview; the given one is left untouched.
    """
    if index < 0 or index >= len(preview.rows):
        raise NotFoundException("Preview row")

    row = preview.rows[index]
    update = changes.model_dump(exclude_unset=True)
    if not update:
        raise ValidationException("No changes submitted")

    # Explicit rows arrive at their reservation time
    if "reservation_instant" in update and row.arrival_instant is not None:
        update["arrival_instant"] = update["reservation_instant"]

    if "duration_minutes" in update and "cost" not in update:
        update["cost"] = calculate_cost(staff, update["duration_minutes"])

    edited = row.model_copy(update=update)
    problems = collect_preview_row_errors(edited.model_dump())

    if problems:
        edited = edited.model_copy(update={
            "status": PreviewRowStatus.ERROR,
            "rsvp_status": RsvpStatus.PENDING,
            "note_or_error": "; ".join(problems),
        })
    elif row.status == PreviewRowStatus.ERROR:
        # A fixed error row becomes an upcoming reservation
        edited = edited.model_copy(update={
            "status": PreviewRowStatus.VALID,
            "rsvp_status": RsvpStatus.READY,
            "note_or_error": None,
        })

    rows = list(preview.rows)
    rows[index] = edited
    return preview.model_copy(update={"rows": rows})


# ============== COMMIT ==============
def _group_rows_by_block(rows: List[PreviewRow]) -> Dict[int, List[PreviewRow]]:
    grouped: Dict[int, List[PreviewRow]] = {}
    for row in rows:
        grouped.setdefault(row.block_index, []).append(row)
    return grouped


async def _find_or_create_customer(customer_name: str) -> dict:
    existing = await db.customers.find_one(
        {"name": customer_name, "archived": False},
        {"_id": 0}
    )
    if existing:
        return existing

    customer = {
        "id": str(uuid.uuid4()),
        "name": customer_name,
        "source": ReservationSource.IMPORT.value,
        "created_at": now_iso(),
        "updated_at": now_iso(),
        "archived": False,
    }
    await db.customers.insert_one(customer)
    logger.info(f"RSVP import: customer created '{customer_name}'")
    return customer


def _reservation_doc(row: PreviewRow, customer: dict, batch_id: str) -> dict:
    return serialize_for_db({
        "id": str(uuid.uuid4()),
        "customer_id": customer["id"],
        "customer_name": row.customer_name,
        "product_label": row.product_label,
        "staff_name": row.staff_label,
        "rsvp_time": row.reservation_instant,
        "arrive_time": row.arrival_instant,
        "duration_minutes": row.duration_minutes,
        "service_staff_cost": row.cost if row.cost > 0 else None,
        "already_paid": row.already_paid,
        "status": row.rsvp_status,
        "source": ReservationSource.IMPORT,
        "import_batch_id": batch_id,
        "block_index": row.block_index,
        "ordinal": row.ordinal,
        "created_at": now_iso(),
        "updated_at": now_iso(),
        "archived": False,
    })


async def commit_rsvp_import(rows: List[PreviewRow], operator: Optional[str] = None) -> Dict[str, Any]:
    """
    Persist a fully valid preview.

    Returns:
        Import report with block/reservation counts and per-block errors

    Raises:
        ValidationException: no rows
        ImportHasErrorsException: any row still has status = error
    """
    if not rows:
        raise ValidationException("RSVP data is required")

    error_count = sum(1 for r in rows if r.status == PreviewRowStatus.ERROR)
    if error_count:
        raise ImportHasErrorsException(error_count)

    batch_id = str(uuid.uuid4())
    grouped = _group_rows_by_block(rows)
    results = {
        "success": True,
        "import_batch_id": batch_id,
        "total_blocks": len(grouped),
        "total_reservations": len(rows),
        "created_reservations": 0,
        "skipped_reservations": 0,
        "errors": [],
    }

    # Rows of one block can be renamed individually in the preview
    customers: Dict[str, dict] = {}

    for block_index, block_rows in grouped.items():
        customer_name = block_rows[0].customer_name
        try:
            for row in block_rows:
                if row.reservation_instant is None:
                    results["skipped_reservations"] += 1
                    results["errors"].append({
                        "block_index": block_index,
                        "customer_name": row.customer_name,
                        "ordinal": row.ordinal,
                        "error": "RSVP time is missing",
                    })
                    continue
                customer = customers.get(row.customer_name)
                if customer is None:
                    customer = await _find_or_create_customer(row.customer_name)
                    customers[row.customer_name] = customer
                await db.reservations.insert_one(_reservation_doc(row, customer, batch_id))
                results["created_reservations"] += 1
        except Exception as e:
            logger.error(f"RSVP import: block {block_index} ('{customer_name}') failed: {e}")
            results["errors"].append({
                "block_index": block_index,
                "customer_name": customer_name,
                "error": str(e),
            })

    if results["errors"]:
        result_status = "partial" if results["created_reservations"] > 0 else "error"
    else:
        result_status = "success"
    results["success"] = result_status == "success"

    await db.import_logs.insert_one({
        "id": str(uuid.uuid4()),
        "type": "rsvp_import",
        "timestamp": now_iso(),
        "user": operator or "unknown",
        "import_batch_id": batch_id,
        "total_blocks": results["total_blocks"],
        "total_reservations": results["total_reservations"],
        "created": results["created_reservations"],
        "skipped": results["skipped_reservations"],
        "errors": results["errors"][:10],
        "success": results["success"],
        "result": result_status,
    })

    logger.info(
        f"RSVP import committed: {results['created_reservations']}/{results['total_reservations']} "
        f"reservation(s) in {results['total_blocks']} block(s)"
    )
    return results


# ============== STAFF LOOKUP ==============
async def load_staff_pricing(
    staff: Optional[StaffPricing],
    staff_member_id: Optional[str]
) -> Optional[StaffPricing]:
    """Explicit rate card wins; otherwise read the staff member's defaults"""
    if staff is not None:
        return staff
    if not staff_member_id:
        return None

    member = await db.staff_members.find_one(
        {"id": staff_member_id, "archived": False},
        {"_id": 0}
    )
    if not member:
        raise MissingPricingBasisException(f"Service staff {staff_member_id} not found")

    return StaffPricing(
        name=member.get("name") or member.get("email") or "",
        default_cost=float(member.get("default_cost") or 0),
        default_duration=int(member.get("default_duration") or 0),
    )


# ============== API ENDPOINTS ==============
@rsvp_import_router.post(
    "/preview",
    response_model=RsvpImportPreview,
    summary="Parse RSVP import text",
    description="Parses pasted reservation text into an editable preview. Nothing is stored."
)
async def preview_rsvp_import(data: RsvpImportPreviewRequest):
    """POST /api/rsvp-import/preview"""
    store_timezone, store_currency = await get_store_import_defaults()
    staff = await load_staff_pricing(data.staff, data.staff_member_id)

    context = StoreImportContext(
        timezone_id=data.timezone_id or store_timezone,
        currency=validate_currency(data.currency) if data.currency else store_currency,
        staff=staff,
    )
    return build_rsvp_import_preview(data.text, context, default_year=data.default_year)


@rsvp_import_router.post(
    "/preview/edit",
    response_model=RsvpImportPreview,
    summary="Correct a preview row",
)
async def edit_rsvp_import_preview(data: RsvpImportEditRequest):
    """POST /api/rsvp-import/preview/edit"""
    staff = require_staff_pricing(await load_staff_pricing(data.staff, data.staff_member_id))
    return apply_row_edit(data.preview, data.index, data.changes, staff)


@rsvp_import_router.post(
    "/commit",
    summary="Store an RSVP import",
    description="Creates reservations from a preview without errors."
)
async def commit_rsvp_import_endpoint(data: RsvpImportCommitRequest):
    """POST /api/rsvp-import/commit"""
    if len(data.rows) > settings.RSVP_IMPORT_MAX_ROWS:
        raise ValidationException(
            f"Too many reservations in one import ({len(data.rows)}, max {settings.RSVP_IMPORT_MAX_ROWS})"
        )
    return await commit_rsvp_import(data.rows, data.operator)
