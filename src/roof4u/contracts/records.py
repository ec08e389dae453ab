"""
Roof4U Record Models

Pydantic models for the records kept by the property-management record server.
These are used to validate write input before it reaches the store; unknown
fields are preserved so records round-trip unchanged.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

RecordId = int | str
Record = dict[str, Any]


class Collection(str, Enum):
    """Collections exposed by the record server."""

    PROPERTIES = "properties"
    TENANTS = "tenants"
    PAYMENTS = "payments"
    MAINTENANCE = "maintenance"
    USERS = "users"


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    DUPLEX = "duplex"
    STUDIO = "studio"


class PropertyStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    VACANT = "vacant"


class TenantStatus(str, Enum):
    ACTIVE = "active"
    PROSPECTIVE = "prospective"
    INACTIVE = "inactive"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    LATE = "late"


class MaintenancePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class MaintenanceStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    RESOLVED = "resolved"
    CLOSED = "closed"


OPEN_MAINTENANCE_STATUSES = {
    MaintenanceStatus.OPEN.value,
    MaintenanceStatus.IN_PROGRESS.value,
    MaintenanceStatus.PENDING_REVIEW.value,
}

DONE_MAINTENANCE_STATUSES = {
    MaintenanceStatus.RESOLVED.value,
    MaintenanceStatus.CLOSED.value,
}


def same_id(left: Any, right: Any) -> bool:
    """Compare record ids by their string form (1 and "1" are the same record)."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


class _RecordModel(BaseModel):
    """Base for all record models."""

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: RecordId | None = Field(None, description="Identifier assigned by the record server")
    created_at: str | None = Field(None, description="Creation date (ISO 8601)")

    def to_record(self) -> Record:
        """Dump to a JSON-ready record, dropping unset (None) fields."""
        return self.model_dump(mode="json", exclude_none=True)


class PropertyRecord(_RecordModel):
    """A rentable property."""

    address: str = Field(..., description="Street address")
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    type: PropertyType | None = None
    status: PropertyStatus = PropertyStatus.AVAILABLE
    bedrooms: int | None = Field(None, ge=0)
    bathrooms: float | None = Field(None, ge=0)
    square_feet: int | None = Field(None, ge=0)
    rent_amount: float | None = Field(None, ge=0)
    security_deposit: float | None = Field(None, ge=0)


class TenantRecord(_RecordModel):
    """A tenant, optionally bound to a property."""

    name: str = Field(..., description="Full name")
    property_id: RecordId | None = Field(None, description="Referenced property, if any")
    email: str | None = None
    phone: str | None = None
    lease_start: str | None = Field(None, description="Lease start date (YYYY-MM-DD)")
    lease_end: str | None = Field(None, description="Lease end date (YYYY-MM-DD)")
    rent_amount: float | None = Field(None, ge=0)
    status: TenantStatus = TenantStatus.ACTIVE


class PaymentRecord(_RecordModel):
    """A rent payment."""

    tenant_id: RecordId = Field(..., description="Paying tenant")
    property_id: RecordId | None = None
    amount: float = Field(..., ge=0)
    date: str | None = Field(None, description="Payment date (YYYY-MM-DD)")
    method: str | None = None
    status: PaymentStatus = PaymentStatus.PAID
    receipt_number: str | None = None


class MaintenanceRecord(_RecordModel):
    """A maintenance ticket."""

    property_id: RecordId = Field(..., description="Affected property")
    tenant_id: RecordId | None = None
    date: str | None = Field(None, description="Reported date (YYYY-MM-DD)")
    issue: str = Field(..., description="Short description of the problem")
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    status: MaintenanceStatus = MaintenanceStatus.OPEN
    notes: str | None = None
    estimated_cost: float | None = Field(None, ge=0)
    actual_cost: float | None = Field(None, ge=0)
    completed_date: str | None = None


class RentalApplication(BaseModel):
    """Application submitted from the public rentals listing."""

    property_id: RecordId
    name: str
    email: str | None = None
    phone: str | None = None
    employment: str | None = None
    income: float | None = Field(None, ge=0)
    move_in_date: str | None = None
