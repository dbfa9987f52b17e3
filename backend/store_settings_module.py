"""
StoreCore Store Settings Module
================================================================================
Store profile used as default context for imports

Features:
- Store name, timezone (IANA id), display currency
- Singleton document in db.store_settings, created with defaults on first read
- Timezone/currency are the defaults of every RSVP import preview
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field
from typing import Optional, Tuple
from datetime import datetime, timezone
import uuid

from core.config import settings as app_settings
from core.database import db
from core.validators import validate_currency, validate_store_settings_data
from core.exceptions import ValidationException

import logging
logger = logging.getLogger(__name__)


# ============== ROUTER ==============
store_settings_router = APIRouter(tags=["Store Settings"])


# ============== CONSTANTS ==============
DEFAULT_STORE_NAME = "My Store"


# ============== PYDANTIC MODELS ==============

class StoreSettingsUpdate(BaseModel):
    """Update Store Settings"""
    store_name: Optional[str] = Field(None, min_length=2, max_length=200)
    timezone: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class StoreSettingsResponse(BaseModel):
    """Response Model"""
    id: str
    store_name: str
    timezone: str
    currency: str
    created_at: str
    updated_at: str


# ============== HELPER FUNCTIONS ==============

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def get_or_create_store_settings() -> dict:
    """
    Load the store settings or create the default entry.
    There is only ever ONE entry (singleton).
    """
    store = await db.store_settings.find_one({}, {"_id": 0})

    if not store:
        store = {
            "id": str(uuid.uuid4()),
            "store_name": DEFAULT_STORE_NAME,
            "timezone": app_settings.DEFAULT_STORE_TIMEZONE,
            "currency": app_settings.DEFAULT_STORE_CURRENCY,
            "created_at": now_iso(),
            "updated_at": now_iso()
        }
        await db.store_settings.insert_one(dict(store))
        logger.info("Store settings: default entry created")

    return store


# ============== API ENDPOINTS ==============

@store_settings_router.get(
    "/store/settings",
    response_model=StoreSettingsResponse,
    summary="Get store settings",
    description="Store name, timezone and currency used as import defaults."
)
async def get_store_settings():
    """GET /api/store/settings"""
    return await get_or_create_store_settings()


@store_settings_router.put(
    "/store/settings",
    response_model=StoreSettingsResponse,
    summary="Update store settings",
)
async def update_store_settings(data: StoreSettingsUpdate):
    """PUT /api/store/settings"""
    store = await get_or_create_store_settings()

    # Only the submitted fields
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise ValidationException("No changes submitted")
    validate_store_settings_data(update_data)
    if "currency" in update_data:
        update_data["currency"] = validate_currency(update_data["currency"])

    update_data["updated_at"] = now_iso()

    await db.store_settings.update_one(
        {"id": store["id"]},
        {"$set": update_data}
    )

    updated = await db.store_settings.find_one(
        {"id": store["id"]},
        {"_id": 0}
    )

    logger.info(f"Store settings updated: {sorted(k for k in update_data if k != 'updated_at')}")
    return updated


# ============== PUBLIC HELPER (for other modules) ==============

async def get_store_import_defaults() -> Tuple[str, str]:
    """(timezone_id, currency) of the store for import previews"""
    store = await get_or_create_store_settings()
    return (
        store.get("timezone") or app_settings.DEFAULT_STORE_TIMEZONE,
        store.get("currency") or app_settings.DEFAULT_STORE_CURRENCY,
    )
