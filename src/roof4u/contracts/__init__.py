"""
Roof4U Contracts

Record models, collection names and status enums shared by every layer.
"""

from roof4u.contracts.records import (
    Collection,
    MaintenancePriority,
    MaintenanceRecord,
    MaintenanceStatus,
    PaymentRecord,
    PaymentStatus,
    PropertyRecord,
    PropertyStatus,
    PropertyType,
    Record,
    RecordId,
    RentalApplication,
    TenantRecord,
    TenantStatus,
    same_id,
)

__all__ = [
    "Collection",
    "MaintenancePriority",
    "MaintenanceRecord",
    "MaintenanceStatus",
    "PaymentRecord",
    "PaymentStatus",
    "PropertyRecord",
    "PropertyStatus",
    "PropertyType",
    "Record",
    "RecordId",
    "RentalApplication",
    "TenantRecord",
    "TenantStatus",
    "same_id",
]
