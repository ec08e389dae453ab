"""
Tests for the PropertyManager coordinator.
"""

import asyncio
import re

import pytest
from pydantic import ValidationError

from roof4u.service.integrity import (
    ActiveTenantPolicy,
    IntegrityViolation,
    OccupancyRevertPolicy,
)
from roof4u.service.manager import PartialSyncError, PropertyManager, add_one_year
from roof4u.stores.base import NotFoundError, TransportError


@pytest.fixture
def loaded(manager):
    """Manager with all core collections loaded."""
    asyncio.run(manager.load_initial_data())
    return manager


class TestLoading:
    """Tests for connection check and initial load."""

    def test_check_connection(self, manager):
        assert asyncio.run(manager.check_connection()) is True

    def test_check_connection_failure(self, manager, store):
        store.fail_on("list")

        assert asyncio.run(manager.check_connection()) is False

    def test_load_initial_data(self, loaded):
        assert loaded.cache.count("properties") == 2
        assert loaded.cache.count("tenants") == 1
        assert loaded.cache.count("payments") == 0


class TestProperties:
    """Tests for property operations."""

    def test_add_property_defaults(self, loaded):
        created = asyncio.run(loaded.add_property({"address": "9 Pine Rd", "city": "Austin", "type": "studio"}))

        assert created["status"] == "available"
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", created["created_at"])
        assert loaded.cache.find_by_id("properties", created["id"]) == created

    def test_add_property_rejects_unknown_type(self, loaded, store):
        with pytest.raises(ValidationError):
            asyncio.run(loaded.add_property({"address": "9 Pine Rd", "type": "castle"}))

        assert store.calls_for("create") == []

    def test_update_property(self, loaded):
        updated = asyncio.run(loaded.update_property(2, {"address": "4 Elm Ave", "status": "maintenance"}))

        assert updated["status"] == "maintenance"
        assert loaded.cache.find_by_id("properties", 2)["status"] == "maintenance"

    def test_update_without_status_keeps_cached_status(self, loaded):
        """Test an occupied property is not reset to the default status."""
        updated = asyncio.run(loaded.update_property(1, {"address": "12 Oak Street", "city": "Austin"}))

        assert updated["status"] == "occupied"
        assert loaded.cache.find_by_id("properties", 1)["address"] == "12 Oak Street"

    def test_delete_property_with_active_tenant_is_refused(self, loaded, store):
        """Test the guard blocks the delete before it reaches the store."""
        with pytest.raises(IntegrityViolation) as exc_info:
            asyncio.run(loaded.delete_property(1))

        assert exc_info.value.reason == "has active tenant"
        assert store.calls_for("delete") == []
        assert loaded.cache.find_by_id("properties", 1) is not None

    def test_delete_vacant_property(self, loaded, store):
        asyncio.run(loaded.delete_property(2))

        assert loaded.cache.find_by_id("properties", 2) is None
        assert store.calls_for("delete", "properties") == [("delete", "properties", 2)]


class TestTenants:
    """Tests for tenant operations and occupancy sync."""

    def test_adding_active_tenant_occupies_property(self, loaded, store):
        """Test property 2 (vacant) becomes occupied after an active tenant is added."""
        tenant = asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 2, "status": "active"}))

        assert tenant["status"] == "active"
        assert loaded.cache.find_by_id("properties", 2)["status"] == "occupied"
        assert store.collections["properties"][1]["status"] == "occupied"

    def test_tenant_status_defaults_to_active(self, loaded):
        tenant = asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 2}))

        assert tenant["status"] == "active"
        assert loaded.cache.find_by_id("properties", 2)["status"] == "occupied"

    def test_prospective_tenant_leaves_property_alone(self, loaded, store):
        asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 2, "status": "prospective"}))

        assert loaded.cache.find_by_id("properties", 2)["status"] == "vacant"
        assert store.calls_for("replace") == []

    def test_tenant_with_unknown_property_is_refused(self, loaded, store):
        with pytest.raises(IntegrityViolation):
            asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 99}))

        assert store.calls_for("create") == []

    def test_second_active_tenant_allowed_by_default(self, loaded):
        asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 1}))

        assert len(loaded.rules.active_tenants_of(1)) == 2

    def test_second_active_tenant_refused_when_enforced(self, store):
        manager = PropertyManager(store, active_tenant_policy=ActiveTenantPolicy.ENFORCE)
        asyncio.run(manager.load_initial_data())

        with pytest.raises(IntegrityViolation):
            asyncio.run(manager.add_tenant({"name": "Bo Chen", "property_id": 1}))

        assert store.calls_for("create") == []

    def test_side_effect_failure_is_surfaced(self, loaded, store):
        """Test a failed property update after a saved tenant raises PartialSyncError."""
        store.fail_on("replace", "properties")

        with pytest.raises(PartialSyncError) as exc_info:
            asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 2}))

        error = exc_info.value
        assert error.record["name"] == "Bo Chen"
        assert isinstance(error.cause, TransportError)
        assert loaded.cache.find_by_id("tenants", error.record["id"]) is not None
        assert loaded.cache.find_by_id("properties", 2)["status"] == "vacant"

    def test_move_with_failed_revert_still_occupies_new_property(self, loaded, store):
        """Test both occupancy updates of a move are attempted and reported."""
        store.fail_on("replace", "properties")
        tenant = loaded.cache.find_by_id("tenants", 10)

        with pytest.raises(PartialSyncError) as exc_info:
            asyncio.run(loaded.update_tenant(10, {**tenant, "property_id": 2}))

        error = exc_info.value
        assert [(c.property_id, c.status.value) for c in error.changes] == [(1, "vacant"), (2, "occupied")]
        assert len(error.causes) == 2
        assert error.change.property_id == 1
        assert store.calls_for("replace", "properties") == [
            ("replace", "properties", 1),
            ("replace", "properties", 2),
        ]
        assert loaded.cache.find_by_id("tenants", 10)["property_id"] == 2

    def test_update_without_status_keeps_prospective_tenant(self, loaded):
        """Test leaving out status does not activate a prospective tenant."""
        tenant = asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 2, "status": "prospective"}))

        updated = asyncio.run(loaded.update_tenant(tenant["id"], {"name": "Bo Chen", "property_id": 2}))

        assert updated["status"] == "prospective"
        assert loaded.cache.find_by_id("properties", 2)["status"] == "vacant"

    def test_tenant_create_failure_propagates(self, loaded, store):
        store.fail_on("create", "tenants")

        with pytest.raises(TransportError):
            asyncio.run(loaded.add_tenant({"name": "Bo Chen", "property_id": 2}))

        assert loaded.cache.count("tenants") == 1
        assert loaded.cache.find_by_id("properties", 2)["status"] == "vacant"

    def test_deactivating_last_tenant_reverts_property(self, loaded):
        tenant = loaded.cache.find_by_id("tenants", 10)

        asyncio.run(loaded.update_tenant(10, {**tenant, "status": "inactive"}))

        assert loaded.cache.find_by_id("properties", 1)["status"] == "vacant"

    def test_deactivating_with_keep_status_policy(self, store):
        manager = PropertyManager(store, revert_policy=OccupancyRevertPolicy.KEEP_STATUS)
        asyncio.run(manager.load_initial_data())
        tenant = manager.cache.find_by_id("tenants", 10)

        asyncio.run(manager.update_tenant(10, {**tenant, "status": "inactive"}))

        assert manager.cache.find_by_id("properties", 1)["status"] == "occupied"

    def test_moving_tenant_updates_both_properties(self, loaded):
        tenant = loaded.cache.find_by_id("tenants", 10)

        asyncio.run(loaded.update_tenant(10, {**tenant, "property_id": 2}))

        assert loaded.cache.find_by_id("properties", 1)["status"] == "vacant"
        assert loaded.cache.find_by_id("properties", 2)["status"] == "occupied"

    def test_reactivating_tenant_occupies_property(self, loaded, store):
        store.collections["tenants"][0]["status"] = "inactive"
        store.collections["properties"][0]["status"] = "vacant"
        asyncio.run(loaded.load_initial_data())
        tenant = loaded.cache.find_by_id("tenants", 10)

        asyncio.run(loaded.update_tenant(10, {**tenant, "status": "active"}))

        assert loaded.cache.find_by_id("properties", 1)["status"] == "occupied"

    def test_delete_tenant_reverts_property(self, loaded):
        asyncio.run(loaded.delete_tenant(10))

        assert loaded.cache.find_by_id("tenants", 10) is None
        assert loaded.cache.find_by_id("properties", 1)["status"] == "vacant"

    def test_delete_tenant_missing_remotely_still_reverts_property(self, loaded, store):
        """Test a tenant already deleted on the server releases its property."""
        store.collections["tenants"].clear()

        with pytest.raises(NotFoundError):
            asyncio.run(loaded.delete_tenant(10))

        assert loaded.cache.find_by_id("tenants", 10) is None
        assert loaded.cache.find_by_id("properties", 1)["status"] == "vacant"
        assert store.collections["properties"][0]["status"] == "vacant"

    def test_delete_tenant_with_keep_status_policy(self, store):
        manager = PropertyManager(store, revert_policy=OccupancyRevertPolicy.KEEP_STATUS)
        asyncio.run(manager.load_initial_data())

        asyncio.run(manager.delete_tenant(10))

        assert manager.cache.find_by_id("properties", 1)["status"] == "occupied"

    def test_delete_tenant_with_pending_payment_is_refused(self, loaded, store):
        asyncio.run(loaded.add_payment({"tenant_id": 10, "property_id": 1, "amount": 1500, "status": "pending"}))

        with pytest.raises(IntegrityViolation) as exc_info:
            asyncio.run(loaded.delete_tenant(10))

        assert exc_info.value.reason == "has pending payments"
        assert store.calls_for("delete") == []

    def test_renew_lease_defaults_to_one_year(self, loaded):
        renewed = asyncio.run(loaded.renew_lease(10))

        assert renewed["lease_end"] == "2027-11-01"
        assert loaded.cache.find_by_id("tenants", 10)["lease_end"] == "2027-11-01"

    def test_renew_lease_explicit_date(self, loaded):
        renewed = asyncio.run(loaded.renew_lease("10", "2027-06-30"))

        assert renewed["lease_end"] == "2027-06-30"

    def test_renew_lease_without_lease_end(self, loaded):
        asyncio.run(loaded.add_tenant({"name": "Bo Chen", "status": "prospective"}))
        tenant = loaded.cache.find("tenants", lambda t: t["name"] == "Bo Chen")[0]

        with pytest.raises(ValueError):
            asyncio.run(loaded.renew_lease(tenant["id"]))

    def test_rental_application_creates_prospective_tenant(self, loaded):
        tenant = asyncio.run(loaded.submit_rental_application({
            "property_id": "2",
            "name": "Cy Diaz",
            "email": "cy@example.com",
            "income": 72000,
            "move_in_date": "2026-11-15",
            "employment": "Nurse",
        }))

        assert tenant["status"] == "prospective"
        assert tenant["lease_start"] == "2026-11-15"
        assert tenant["annual_income"] == 72000
        assert "Nurse" in tenant["notes"]
        assert loaded.cache.find_by_id("properties", 2)["status"] == "vacant"

    def test_rental_application_for_unknown_property(self, loaded):
        with pytest.raises(IntegrityViolation):
            asyncio.run(loaded.submit_rental_application({"property_id": 42, "name": "Cy Diaz"}))


class TestPayments:
    """Tests for payment operations."""

    def test_add_payment_generates_receipt(self, loaded):
        payment = asyncio.run(loaded.add_payment({"tenant_id": 10, "property_id": 1, "amount": 1500}))

        assert re.fullmatch(r"RCT-\d+-\d{1,3}", payment["receipt_number"])
        assert payment["status"] == "paid"
        assert payment["created_at"]

    def test_receipt_numbers_are_unique(self, loaded, monkeypatch):
        """Test a colliding receipt number is regenerated."""
        numbers = iter(["RCT-1-1", "RCT-1-1", "RCT-1-2"])
        monkeypatch.setattr("roof4u.service.manager.generate_receipt_number", lambda: next(numbers))

        first = asyncio.run(loaded.add_payment({"tenant_id": 10, "amount": 100}))
        second = asyncio.run(loaded.add_payment({"tenant_id": 10, "amount": 100}))

        assert first["receipt_number"] == "RCT-1-1"
        assert second["receipt_number"] == "RCT-1-2"

    def test_client_receipt_number_is_ignored(self, loaded):
        payment = asyncio.run(loaded.add_payment({"tenant_id": 10, "amount": 100, "receipt_number": "MINE"}))

        assert payment["receipt_number"] != "MINE"

    def test_update_payment_keeps_receipt(self, loaded):
        payment = asyncio.run(loaded.add_payment({"tenant_id": 10, "amount": 100, "status": "pending"}))

        updated = asyncio.run(loaded.update_payment(payment["id"], {"tenant_id": 10, "amount": 100, "status": "paid"}))

        assert updated["receipt_number"] == payment["receipt_number"]
        assert updated["status"] == "paid"


class TestMaintenance:
    """Tests for maintenance operations."""

    def test_add_maintenance_defaults(self, loaded):
        ticket = asyncio.run(loaded.add_maintenance({"property_id": 1, "issue": "Leaking tap"}))

        assert ticket["status"] == "open"
        assert ticket["priority"] == "medium"
        assert ticket["created_at"]

    def test_resolving_stamps_completed_date(self, loaded):
        ticket = asyncio.run(loaded.add_maintenance({"property_id": 1, "issue": "Leaking tap"}))

        resolved = asyncio.run(loaded.update_maintenance(ticket["id"], {**ticket, "status": "resolved"}))

        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", resolved["completed_date"])


class TestHelpers:

    def test_add_one_year(self):
        assert add_one_year("2026-11-01") == "2027-11-01"
        assert add_one_year("2028-02-29") == "2029-02-28"
        assert add_one_year("2026-03-05T00:00:00Z") == "2027-03-05"
