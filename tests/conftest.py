"""
Pytest fixtures for roof4u tests.
"""

import pytest

from roof4u.core import config
from roof4u.service.manager import PropertyManager
from roof4u.stores.memory import InMemoryRecordStore


@pytest.fixture
def seed_data():
    """Small record set: one occupied and one vacant property."""
    return {
        "properties": [
            {"id": 1, "address": "12 Oak St", "city": "Austin", "zip": "73301", "type": "house",
             "status": "occupied", "bedrooms": 3, "rent_amount": 1500},
            {"id": 2, "address": "4 Elm Ave", "city": "Dallas", "zip": "75201", "type": "condo",
             "status": "vacant", "bedrooms": 2, "rent_amount": 1100},
        ],
        "tenants": [
            {"id": 10, "property_id": 1, "name": "Ana Lima", "status": "active",
             "lease_start": "2026-01-01", "lease_end": "2026-11-01", "rent_amount": 1500},
        ],
        "payments": [],
        "maintenance": [],
    }


@pytest.fixture
def store(seed_data):
    """In-memory store seeded with seed_data."""
    return InMemoryRecordStore(seed_data)


@pytest.fixture
def manager(store):
    """PropertyManager over the seeded store (data not loaded yet)."""
    return PropertyManager(store)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Isolate tests from ROOF4U_* variables and cached settings."""
    for name in (
        "ROOF4U_API_URL",
        "ROOF4U_TIMEOUT",
        "ROOF4U_STORE",
        "ROOF4U_OCCUPANCY_REVERT",
        "ROOF4U_ACTIVE_TENANT_POLICY",
        "ROOF4U_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    config.clear_cache()
    yield
    config.clear_cache()
