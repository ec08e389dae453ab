"""
Property Manager

Coordinator for all property-management mutations.

Owns one RepositoryCache and one IntegrityRules instance:
1. Validate input (pydantic record models)
2. Check integrity rules against the cache
3. Write through the cache to the store
4. Persist occupancy side effects planned by the rules

A side effect is a second, independent store call. If it fails after the
primary write succeeded, PartialSyncError is raised so callers can report
the inconsistency and retry the side effect.
"""

import logging
import random
import time
from datetime import date, datetime, timezone
from typing import Any

from roof4u.contracts.records import (
    DONE_MAINTENANCE_STATUSES,
    Collection,
    MaintenanceRecord,
    PaymentRecord,
    PropertyRecord,
    Record,
    RecordId,
    RentalApplication,
    TenantRecord,
    TenantStatus,
)
from roof4u.persistence.cache import RepositoryCache
from roof4u.service.integrity import (
    ActiveTenantPolicy,
    IntegrityRules,
    IntegrityViolation,
    OccupancyRevertPolicy,
    StatusChange,
    is_active,
)
from roof4u.stores.base import NotFoundError, RecordStore, StoreError, TransportError

logger = logging.getLogger(__name__)

CORE_COLLECTIONS = (
    Collection.PROPERTIES.value,
    Collection.TENANTS.value,
    Collection.PAYMENTS.value,
    Collection.MAINTENANCE.value,
)

MAX_RECEIPT_ATTEMPTS = 10


class PartialSyncError(Exception):
    """
    The primary write succeeded but one or more dependent writes failed.

    Attributes:
        record: The primary record that was persisted
        changes: The side effects that did not persist
        causes: The store errors raised by those side effects, in the same order
    """

    def __init__(
        self,
        message: str,
        record: Record,
        changes: list[StatusChange],
        causes: list[StoreError],
    ):
        super().__init__(message)
        self.record = record
        self.changes = changes
        self.causes = causes

    @property
    def change(self) -> StatusChange:
        """First side effect that did not persist."""
        return self.changes[0]

    @property
    def cause(self) -> StoreError:
        return self.causes[0]


def today_iso() -> str:
    return date.today().isoformat()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_receipt_number() -> str:
    """Receipt number in the form RCT-<epoch ms>-<0..999>."""
    timestamp = int(time.time() * 1000)
    return f"RCT-{timestamp}-{random.randint(0, 999)}"


def add_one_year(value: str) -> str:
    """Same calendar day one year later (Feb 29 -> Feb 28)."""
    current = date.fromisoformat(value[:10])
    try:
        return current.replace(year=current.year + 1).isoformat()
    except ValueError:
        return current.replace(year=current.year + 1, day=28).isoformat()


class PropertyManager:
    """
    Coordinates cache, integrity rules and store for every entity.

    Usage:
        manager = PropertyManager(HttpRecordStore("http://localhost:3000"))
        await manager.load_initial_data()
        await manager.add_tenant({"name": "Ana", "property_id": 1})
    """

    def __init__(
        self,
        store: RecordStore,
        revert_policy: OccupancyRevertPolicy = OccupancyRevertPolicy.REVERT_TO_VACANT,
        active_tenant_policy: ActiveTenantPolicy = ActiveTenantPolicy.ALLOW_MULTIPLE,
    ):
        self.store = store
        self.cache = RepositoryCache(store)
        self.rules = IntegrityRules(
            self.cache,
            revert_policy=revert_policy,
            active_tenant_policy=active_tenant_policy,
        )

    async def close(self) -> None:
        await self.store.close()

    # =========================================================================
    # Loading
    # =========================================================================

    async def check_connection(self) -> bool:
        """True if the record server answers a properties listing."""
        try:
            await self.store.list(Collection.PROPERTIES.value)
        except TransportError as e:
            logger.error(f"Cannot connect to record server: {e}")
            return False
        logger.info("Connected to record server")
        return True

    async def load_initial_data(self, collections: tuple[str, ...] = CORE_COLLECTIONS) -> None:
        """Refresh every collection the views depend on."""
        await self.cache.refresh_all(collections)
        logger.info(
            "All data loaded",
            extra={c: self.cache.count(c) for c in collections},
        )

    # =========================================================================
    # Side effects
    # =========================================================================

    async def _apply_status_changes(self, changes: list[StatusChange | None], primary: Record) -> None:
        """
        Persist planned property status changes.

        Every change is attempted even when an earlier one fails; failures are
        reported together in one PartialSyncError.
        """
        failed: list[StatusChange] = []
        causes: list[StoreError] = []

        for change in changes:
            if change is None:
                continue

            prop = self.cache.require(Collection.PROPERTIES.value, change.property_id)
            updated = {**prop, "status": change.status.value}

            try:
                await self.cache.update(Collection.PROPERTIES.value, change.property_id, updated)
            except StoreError as e:
                logger.error(
                    f"Property {change.property_id} status not synced: {e}",
                    extra={"property_id": change.property_id, "status": change.status.value},
                )
                failed.append(change)
                causes.append(e)
                continue

            logger.info(
                f"Property {change.property_id} set to {change.status.value}",
                extra={"reason": change.reason},
            )

        if failed:
            targets = ", ".join(f"property {c.property_id} to {c.status.value}" for c in failed)
            raise PartialSyncError(
                f"Saved record {primary.get('id')} but could not set {targets}: {causes[0]}",
                record=primary,
                changes=failed,
                causes=causes,
            ) from causes[0]

    def _with_cached_status(self, collection: str, record_id: RecordId, data: dict[str, Any]) -> dict[str, Any]:
        """Keep the cached status when an update leaves it out."""
        if "status" in data:
            return data
        existing = self.cache.find_by_id(collection, record_id)
        if existing is None or existing.get("status") is None:
            return data
        return {**data, "status": existing["status"]}

    # =========================================================================
    # Properties
    # =========================================================================

    async def add_property(self, data: dict[str, Any]) -> Record:
        """Create a property (status defaults to available)."""
        record = PropertyRecord.model_validate(data).to_record()
        record.setdefault("created_at", today_iso())
        return await self.cache.add(Collection.PROPERTIES.value, record)

    async def update_property(self, property_id: RecordId, data: dict[str, Any]) -> Record:
        """Overwrite a property. A missing status keeps the cached one."""
        data = self._with_cached_status(Collection.PROPERTIES.value, property_id, data)
        record = PropertyRecord.model_validate(data).to_record()
        return await self.cache.update(Collection.PROPERTIES.value, property_id, record)

    async def delete_property(self, property_id: RecordId) -> Record:
        """
        Delete a property.

        Raises:
            IntegrityViolation: an active tenant references the property
        """
        self.rules.check_delete_property(property_id)
        return await self.cache.remove(Collection.PROPERTIES.value, property_id)

    # =========================================================================
    # Tenants
    # =========================================================================

    async def add_tenant(self, data: dict[str, Any]) -> Record:
        """
        Create a tenant (status defaults to active).

        An active tenant marks its property occupied.

        Raises:
            IntegrityViolation: unknown property, or a second active tenant under ENFORCE
            PartialSyncError: tenant saved, property status not updated
        """
        record = TenantRecord.model_validate(data).to_record()
        record.setdefault("created_at", today_iso())

        self.rules.check_tenant_reference(record)
        self.rules.check_single_active_tenant(record)

        tenant = await self.cache.add(Collection.TENANTS.value, record)
        await self._apply_status_changes([self.rules.on_tenant_activated(tenant)], tenant)
        return tenant

    async def update_tenant(self, tenant_id: RecordId, data: dict[str, Any]) -> Record:
        """
        Overwrite a tenant and keep property occupancy in step.

        A missing status keeps the cached one. Moving an active tenant plans
        both the revert of the old property and the occupation of the new one.

        Raises:
            IntegrityViolation: unknown property, or a second active tenant under ENFORCE
            PartialSyncError: tenant saved, some property status not updated
        """
        data = self._with_cached_status(Collection.TENANTS.value, tenant_id, data)
        record = TenantRecord.model_validate(data).to_record()
        record["id"] = record.get("id", tenant_id)

        self.rules.check_tenant_reference(record)
        self.rules.check_single_active_tenant(record, exclude_tenant_id=tenant_id)

        previous = self.cache.find_by_id(Collection.TENANTS.value, tenant_id)
        previous = dict(previous) if previous is not None else None

        tenant = await self.cache.update(Collection.TENANTS.value, tenant_id, record)

        changes = []
        if previous is not None and is_active(previous):
            moved = str(previous.get("property_id")) != str(tenant.get("property_id"))
            if moved or not is_active(tenant):
                changes.append(self.rules.on_tenant_deactivated_or_removed(previous))
        changes.append(self.rules.on_tenant_activated(tenant))

        await self._apply_status_changes(changes, tenant)
        return tenant

    async def delete_tenant(self, tenant_id: RecordId) -> Record:
        """
        Delete a tenant, reverting the property when it was the last active tenant.

        A tenant already gone from the store still releases its property
        before NotFoundError is re-raised.

        Raises:
            IntegrityViolation: a pending payment references the tenant
            NotFoundError: the store no longer had the tenant
            PartialSyncError: tenant deleted, property status not updated
        """
        self.rules.check_delete_tenant(tenant_id)

        previous = self.cache.find_by_id(Collection.TENANTS.value, tenant_id)
        previous = dict(previous) if previous is not None else None

        try:
            removed = await self.cache.remove(Collection.TENANTS.value, tenant_id)
        except NotFoundError:
            if previous is not None:
                await self._apply_status_changes(
                    [self.rules.on_tenant_deactivated_or_removed(previous)], previous
                )
            raise

        tenant = previous or removed
        await self._apply_status_changes([self.rules.on_tenant_deactivated_or_removed(tenant)], tenant)
        return removed

    async def renew_lease(self, tenant_id: RecordId, new_end: str | None = None) -> Record:
        """
        Extend a tenant's lease.

        Args:
            tenant_id: Tenant to renew
            new_end: New lease end (YYYY-MM-DD); defaults to one year after the current end
        """
        tenant = self.cache.require(Collection.TENANTS.value, tenant_id)

        if new_end is None:
            if not tenant.get("lease_end"):
                raise ValueError(f"Tenant {tenant_id} has no lease_end to renew from")
            new_end = add_one_year(tenant["lease_end"])

        logger.info(f"Renewing lease of tenant {tenant_id}", extra={"lease_end": new_end})
        return await self.update_tenant(tenant_id, {**tenant, "lease_end": new_end})

    async def submit_rental_application(self, application: RentalApplication | dict[str, Any]) -> Record:
        """
        Turn a rental application into a prospective tenant.

        Raises:
            IntegrityViolation: the property does not exist
        """
        application = RentalApplication.model_validate(application)

        notes = f"Applied on {today_iso()}"
        if application.employment:
            notes += f"; employment: {application.employment}"

        return await self.add_tenant({
            "property_id": application.property_id,
            "name": application.name,
            "email": application.email,
            "phone": application.phone,
            "status": TenantStatus.PROSPECTIVE.value,
            "annual_income": application.income,
            "lease_start": application.move_in_date,
            "notes": notes,
            "rent_amount": 0,
        })

    # =========================================================================
    # Payments
    # =========================================================================

    def _new_receipt_number(self) -> str:
        taken = {
            p.get("receipt_number") for p in self.cache.records(Collection.PAYMENTS.value)
        }
        for _ in range(MAX_RECEIPT_ATTEMPTS):
            receipt = generate_receipt_number()
            if receipt not in taken:
                return receipt
        raise IntegrityViolation("could not generate a unique receipt number", Collection.PAYMENTS.value)

    async def add_payment(self, data: dict[str, Any]) -> Record:
        """Record a payment with a freshly generated, unique receipt number."""
        record = PaymentRecord.model_validate(data).to_record()
        record["receipt_number"] = self._new_receipt_number()
        record.setdefault("created_at", now_iso())
        return await self.cache.add(Collection.PAYMENTS.value, record)

    async def update_payment(self, payment_id: RecordId, data: dict[str, Any]) -> Record:
        """Overwrite a payment, keeping its receipt number."""
        existing = self.cache.find_by_id(Collection.PAYMENTS.value, payment_id)
        data = self._with_cached_status(Collection.PAYMENTS.value, payment_id, data)
        record = PaymentRecord.model_validate(data).to_record()
        if existing is not None and existing.get("receipt_number"):
            record["receipt_number"] = existing["receipt_number"]
        return await self.cache.update(Collection.PAYMENTS.value, payment_id, record)

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def add_maintenance(self, data: dict[str, Any]) -> Record:
        """Open a maintenance ticket."""
        record = MaintenanceRecord.model_validate(data).to_record()
        record.setdefault("created_at", now_iso())
        return await self.cache.add(Collection.MAINTENANCE.value, record)

    async def update_maintenance(self, request_id: RecordId, data: dict[str, Any]) -> Record:
        """Overwrite a ticket; closing it stamps completed_date."""
        data = self._with_cached_status(Collection.MAINTENANCE.value, request_id, data)
        record = MaintenanceRecord.model_validate(data).to_record()
        if record.get("status") in DONE_MAINTENANCE_STATUSES:
            record.setdefault("completed_date", today_iso())
        return await self.cache.update(Collection.MAINTENANCE.value, request_id, record)
