"""
Shared pytest fixtures for the StoreCore backend
"""
import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time of core.config
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "storecore_test")

import pytest

from rsvp_pricing import StaffPricing
from rsvp_import_module import StoreImportContext

STORE_TIMEZONE = "Asia/Taipei"


@pytest.fixture
def staff():
    return StaffPricing(name="Amy", default_cost=1200, default_duration=60)


@pytest.fixture
def context(staff):
    return StoreImportContext(timezone_id=STORE_TIMEZONE, currency="twd", staff=staff)


@pytest.fixture
def fixed_now():
    return datetime(2026, 1, 3, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store_doc():
    return {
        "id": "store-1",
        "store_name": "Test Store",
        "timezone": STORE_TIMEZONE,
        "currency": "twd",
        "created_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
    }


@pytest.fixture
def fake_db(monkeypatch, store_doc):
    """In-place replacement of the motor handle used by the routers"""
    import rsvp_import_module
    import store_settings_module

    fake = MagicMock()
    fake.store_settings.find_one = AsyncMock(return_value=store_doc)
    fake.store_settings.insert_one = AsyncMock()
    fake.store_settings.update_one = AsyncMock()
    fake.customers.find_one = AsyncMock(return_value=None)
    fake.customers.insert_one = AsyncMock()
    fake.reservations.insert_one = AsyncMock()
    fake.import_logs.insert_one = AsyncMock()
    fake.staff_members.find_one = AsyncMock(return_value=None)

    monkeypatch.setattr(rsvp_import_module, "db", fake)
    monkeypatch.setattr(store_settings_module, "db", fake)
    return fake


@pytest.fixture
def api_client(fake_db, monkeypatch):
    from fastapi.testclient import TestClient
    import server

    monkeypatch.setattr(server, "check_db_connection", AsyncMock(return_value=True))
    return TestClient(server.app)
