"""
Integrity Rules

Cross-entity rules evaluated against the cache before a mutation is allowed
to reach the store:
- Deletion guards (property with active tenants, tenant with pending payments)
- Tenant -> property reference checks
- Property occupancy coupling with tenant status

The rules never write. Occupancy changes are returned as StatusChange plans
for the caller to persist.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from roof4u.contracts.records import (
    Collection,
    PaymentStatus,
    PropertyStatus,
    Record,
    RecordId,
    TenantStatus,
    same_id,
)
from roof4u.persistence.cache import RepositoryCache

logger = logging.getLogger(__name__)

REASON_ACTIVE_TENANT = "has active tenant"
REASON_PENDING_PAYMENTS = "has pending payments"
REASON_UNKNOWN_PROPERTY = "unknown property"
REASON_PROPERTY_TAKEN = "property already has an active tenant"


class OccupancyRevertPolicy(str, Enum):
    """What happens to a property when its last active tenant goes away."""

    REVERT_TO_VACANT = "revert_to_vacant"
    KEEP_STATUS = "keep_status"


class ActiveTenantPolicy(str, Enum):
    """Whether a property may have more than one active tenant."""

    ALLOW_MULTIPLE = "allow_multiple"
    ENFORCE = "enforce"


class IntegrityViolation(Exception):
    """A mutation was rejected by an integrity rule. Never retried."""

    def __init__(self, reason: str, collection: str, record_id: RecordId | None = None):
        target = f"{collection}/{record_id}" if record_id is not None else collection
        super().__init__(f"Cannot modify {target}: {reason}")
        self.reason = reason
        self.collection = collection
        self.record_id = record_id


@dataclass
class StatusChange:
    """A property status update planned by a rule."""

    property_id: RecordId
    status: PropertyStatus
    reason: str


def is_active(tenant: Record) -> bool:
    return tenant.get("status") == TenantStatus.ACTIVE.value


class IntegrityRules:
    """
    Integrity rules over a RepositoryCache.

    Policies make the two ambiguous behaviours explicit:
    - revert_policy: revert a property to vacant when its last active tenant leaves
    - active_tenant_policy: reject a second active tenant on the same property
    """

    def __init__(
        self,
        cache: RepositoryCache,
        revert_policy: OccupancyRevertPolicy = OccupancyRevertPolicy.REVERT_TO_VACANT,
        active_tenant_policy: ActiveTenantPolicy = ActiveTenantPolicy.ALLOW_MULTIPLE,
    ):
        self.cache = cache
        self.revert_policy = OccupancyRevertPolicy(revert_policy)
        self.active_tenant_policy = ActiveTenantPolicy(active_tenant_policy)

    def active_tenants_of(
        self,
        property_id: RecordId,
        exclude_tenant_id: RecordId | None = None,
    ) -> list[Record]:
        """Cached active tenants referencing a property."""
        return self.cache.find(
            Collection.TENANTS.value,
            lambda t: (
                is_active(t)
                and same_id(t.get("property_id"), property_id)
                and not same_id(t.get("id"), exclude_tenant_id)
            ),
        )

    # =========================================================================
    # Deletion guards
    # =========================================================================

    def can_delete_property(self, property_id: RecordId) -> bool:
        """False iff an active tenant references the property."""
        return not self.active_tenants_of(property_id)

    def can_delete_tenant(self, tenant_id: RecordId) -> bool:
        """False iff a pending payment references the tenant."""
        pending = self.cache.find(
            Collection.PAYMENTS.value,
            lambda p: (
                p.get("status") == PaymentStatus.PENDING.value
                and same_id(p.get("tenant_id"), tenant_id)
            ),
        )
        return not pending

    def check_delete_property(self, property_id: RecordId) -> None:
        """Raise IntegrityViolation unless the property may be deleted."""
        if not self.can_delete_property(property_id):
            logger.info(
                f"Refused to delete property {property_id}: {REASON_ACTIVE_TENANT}",
                extra={"property_id": property_id},
            )
            raise IntegrityViolation(REASON_ACTIVE_TENANT, Collection.PROPERTIES.value, property_id)

    def check_delete_tenant(self, tenant_id: RecordId) -> None:
        """Raise IntegrityViolation unless the tenant may be deleted."""
        if not self.can_delete_tenant(tenant_id):
            logger.info(
                f"Refused to delete tenant {tenant_id}: {REASON_PENDING_PAYMENTS}",
                extra={"tenant_id": tenant_id},
            )
            raise IntegrityViolation(REASON_PENDING_PAYMENTS, Collection.TENANTS.value, tenant_id)

    # =========================================================================
    # Write checks
    # =========================================================================

    def check_tenant_reference(self, tenant: Record) -> None:
        """A tenant's property_id, if set, must reference a cached property."""
        property_id = tenant.get("property_id")
        if property_id in (None, ""):
            return
        if self.cache.find_by_id(Collection.PROPERTIES.value, property_id) is None:
            raise IntegrityViolation(REASON_UNKNOWN_PROPERTY, Collection.TENANTS.value, tenant.get("id"))

    def check_single_active_tenant(
        self,
        tenant: Record,
        exclude_tenant_id: RecordId | None = None,
    ) -> None:
        """Under ENFORCE, reject an active tenant on a property that already has one."""
        if self.active_tenant_policy != ActiveTenantPolicy.ENFORCE:
            return
        if not is_active(tenant) or tenant.get("property_id") in (None, ""):
            return
        if self.active_tenants_of(tenant["property_id"], exclude_tenant_id=exclude_tenant_id):
            raise IntegrityViolation(REASON_PROPERTY_TAKEN, Collection.TENANTS.value, tenant.get("id"))

    # =========================================================================
    # Occupancy coupling
    # =========================================================================

    def on_tenant_activated(self, tenant: Record) -> StatusChange | None:
        """
        Plan the property update for a tenant that is (now) active.

        Returns:
            StatusChange to "occupied", or None when nothing needs to change
        """
        property_id = tenant.get("property_id")
        if not is_active(tenant) or property_id in (None, ""):
            return None

        prop = self.cache.find_by_id(Collection.PROPERTIES.value, property_id)
        if prop is None or prop.get("status") == PropertyStatus.OCCUPIED.value:
            return None

        return StatusChange(
            property_id=prop["id"],
            status=PropertyStatus.OCCUPIED,
            reason=f"tenant {tenant.get('id')} is active",
        )

    def on_tenant_deactivated_or_removed(self, tenant: Record) -> StatusChange | None:
        """
        Plan the property update for a tenant that stopped being active or was removed.

        `tenant` is the tenant as it was before the change. Only reverts when no
        other active tenant remains on the property and the policy allows it.

        Returns:
            StatusChange to "vacant", or None when nothing needs to change
        """
        property_id = tenant.get("property_id")
        if not is_active(tenant) or property_id in (None, ""):
            return None
        if self.revert_policy == OccupancyRevertPolicy.KEEP_STATUS:
            return None
        if self.active_tenants_of(property_id, exclude_tenant_id=tenant.get("id")):
            return None

        prop = self.cache.find_by_id(Collection.PROPERTIES.value, property_id)
        if prop is None or prop.get("status") != PropertyStatus.OCCUPIED.value:
            return None

        return StatusChange(
            property_id=prop["id"],
            status=PropertyStatus.VACANT,
            reason=f"last active tenant {tenant.get('id')} left",
        )
