"""
Roof4U Services

- IntegrityRules: cross-entity checks before mutations
- PropertyManager: coordinator for every write
- projection: pure view-model functions over the cache
"""

from roof4u.service.integrity import (
    ActiveTenantPolicy,
    IntegrityRules,
    IntegrityViolation,
    OccupancyRevertPolicy,
    StatusChange,
)
from roof4u.service.manager import PartialSyncError, PropertyManager

__all__ = [
    "ActiveTenantPolicy",
    "IntegrityRules",
    "IntegrityViolation",
    "OccupancyRevertPolicy",
    "PartialSyncError",
    "PropertyManager",
    "StatusChange",
]
