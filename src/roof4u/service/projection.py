"""
View Projection

Pure functions from cache state to view models for dashboards and tables.
Nothing here writes to the cache or the store.

All date windows take an explicit `today` so results are reproducible.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from roof4u.contracts.records import (
    DONE_MAINTENANCE_STATUSES,
    OPEN_MAINTENANCE_STATUSES,
    Collection,
    MaintenancePriority,
    PaymentStatus,
    PropertyStatus,
    Record,
    RecordId,
    TenantStatus,
    same_id,
)
from roof4u.persistence.cache import RepositoryCache

LEASE_WINDOW_DAYS = 30

# Dashboard "pending maintenance" also counts the legacy "pending" status
DASHBOARD_PENDING_MAINTENANCE = {"pending", "open", "in_progress"}


def parse_date(value: Any) -> date | None:
    """Parse "YYYY-MM-DD" or an ISO datetime string; None when absent or invalid."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def to_amount(value: Any) -> Decimal:
    """Money value as Decimal; missing or malformed values count as zero."""
    if value in (None, ""):
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def _count(value: Any) -> Decimal | None:
    """Numeric field as Decimal; None when missing or malformed."""
    if value in (None, ""):
        return None
    try:
        count = Decimal(str(value))
    except InvalidOperation:
        return None
    return count if count.is_finite() else None


def percent(part: Decimal | int, whole: Decimal | int) -> int:
    """Rounded percentage, 0 when whole is zero."""
    if not whole:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _record_date(record: Record) -> date:
    return parse_date(record.get("date")) or parse_date(record.get("created_at")) or date.min


def _known_date(record: Record) -> date | None:
    value = _record_date(record)
    return None if value == date.min else value


def _active(tenant: Record) -> bool:
    return tenant.get("status") == TenantStatus.ACTIVE.value


def _in_month(value: date | None, today: date) -> bool:
    return value is not None and value.year == today.year and value.month == today.month


# =============================================================================
# View models
# =============================================================================


@dataclass
class DashboardStats:
    total_properties: int
    occupied_properties: int
    active_tenants: int
    total_revenue: Decimal
    pending_maintenance: int


@dataclass
class RentStats:
    total_tenants: int
    active_leases: int
    expiring_leases: int
    vacancy_rate: int


@dataclass
class PaymentStats:
    total_collected: Decimal
    pending_payments: Decimal
    late_payments: Decimal
    collection_rate: int


@dataclass
class MaintenanceStats:
    open_tickets: int
    urgent_tickets: int
    avg_resolution_days: int
    maintenance_cost: Decimal


@dataclass
class Activity:
    """A recent payment or maintenance request."""

    kind: str  # payment, maintenance
    title: str
    description: str
    occurred_on: date | None
    status: str | None = None


@dataclass
class Vacancy:
    """An active lease ending soon."""

    tenant_id: RecordId
    tenant_name: str
    property_address: str
    lease_end: date
    days_until: int


# =============================================================================
# Stats
# =============================================================================


def dashboard_stats(cache: RepositoryCache) -> DashboardStats:
    """Headline numbers for the dashboard."""
    properties = cache.records(Collection.PROPERTIES.value)
    payments = cache.records(Collection.PAYMENTS.value)

    return DashboardStats(
        total_properties=len(properties),
        occupied_properties=sum(1 for p in properties if p.get("status") == PropertyStatus.OCCUPIED.value),
        active_tenants=len(cache.find(Collection.TENANTS.value, _active)),
        total_revenue=sum(
            (to_amount(p.get("amount")) for p in payments if p.get("status") == PaymentStatus.PAID.value),
            Decimal("0"),
        ),
        pending_maintenance=len(cache.find(
            Collection.MAINTENANCE.value,
            lambda m: m.get("status") in DASHBOARD_PENDING_MAINTENANCE,
        )),
    )


def rent_stats(cache: RepositoryCache, today: date | None = None) -> RentStats:
    """Tenant and lease numbers for the rent page."""
    today = today or date.today()
    window_end = today + timedelta(days=LEASE_WINDOW_DAYS)

    active = len(cache.find(Collection.TENANTS.value, _active))
    properties = cache.records(Collection.PROPERTIES.value)
    occupied = sum(1 for p in properties if p.get("status") == PropertyStatus.OCCUPIED.value)

    def expiring(tenant: Record) -> bool:
        lease_end = parse_date(tenant.get("lease_end"))
        return lease_end is not None and today <= lease_end <= window_end

    return RentStats(
        total_tenants=active,
        active_leases=active,
        expiring_leases=len(cache.find(Collection.TENANTS.value, expiring)),
        vacancy_rate=percent(len(properties) - occupied, len(properties)),
    )


def payment_stats(cache: RepositoryCache, today: date | None = None) -> PaymentStats:
    """Collection numbers for the payments page."""
    today = today or date.today()
    payments = cache.records(Collection.PAYMENTS.value)

    def total(status: str) -> Decimal:
        return sum((to_amount(p.get("amount")) for p in payments if p.get("status") == status), Decimal("0"))

    collected = sum(
        (
            to_amount(p.get("amount"))
            for p in payments
            if p.get("status") == PaymentStatus.PAID.value and _in_month(parse_date(p.get("date")), today)
        ),
        Decimal("0"),
    )
    total_due = sum(
        (to_amount(t.get("rent_amount")) for t in cache.find(Collection.TENANTS.value, _active)),
        Decimal("0"),
    )

    return PaymentStats(
        total_collected=collected,
        pending_payments=total(PaymentStatus.PENDING.value),
        late_payments=total(PaymentStatus.LATE.value),
        collection_rate=percent(collected, total_due),
    )


def maintenance_stats(cache: RepositoryCache, today: date | None = None) -> MaintenanceStats:
    """Ticket numbers for the maintenance page."""
    today = today or date.today()
    tickets = cache.records(Collection.MAINTENANCE.value)

    durations = []
    for ticket in tickets:
        if ticket.get("status") not in DONE_MAINTENANCE_STATUSES:
            continue
        reported = _known_date(ticket)
        if reported is None:
            continue
        finished = (
            parse_date(ticket.get("completed_date"))
            or parse_date(ticket.get("updated_at"))
            or reported
        )
        durations.append(abs((finished - reported).days))
    avg_days = round(sum(durations) / len(durations)) if durations else 0

    cost = sum(
        (
            to_amount(m.get("actual_cost") or m.get("estimated_cost"))
            for m in tickets
            if _in_month(parse_date(m.get("date")), today)
        ),
        Decimal("0"),
    )

    return MaintenanceStats(
        open_tickets=sum(1 for m in tickets if m.get("status") in OPEN_MAINTENANCE_STATUSES),
        urgent_tickets=sum(
            1 for m in tickets
            if m.get("priority") == MaintenancePriority.EMERGENCY.value
            and m.get("status") not in DONE_MAINTENANCE_STATUSES
        ),
        avg_resolution_days=avg_days,
        maintenance_cost=cost,
    )


# =============================================================================
# Lists
# =============================================================================


def property_address(cache: RepositoryCache, property_id: RecordId | None) -> str:
    """Display address for a property id."""
    if property_id in (None, ""):
        return "No Property"
    prop = cache.find_by_id(Collection.PROPERTIES.value, property_id)
    if prop is None:
        return "Unknown Property"
    return f"{prop.get('address')}, {prop.get('city')}"


def active_tenant_for(cache: RepositoryCache, property_id: RecordId) -> Record | None:
    """First active tenant of a property, if any."""
    tenants = cache.find(
        Collection.TENANTS.value,
        lambda t: _active(t) and same_id(t.get("property_id"), property_id),
    )
    return tenants[0] if tenants else None


def recent_activities(cache: RepositoryCache, limit: int = 5) -> list[Activity]:
    """Latest three payments and two maintenance requests, newest first."""
    payments = sorted(cache.records(Collection.PAYMENTS.value), key=_record_date, reverse=True)[:3]
    tickets = sorted(cache.records(Collection.MAINTENANCE.value), key=_record_date, reverse=True)[:2]

    activities = []
    for payment in payments:
        tenant = cache.find_by_id(Collection.TENANTS.value, payment.get("tenant_id"))
        payer = tenant.get("name") if tenant else f"Tenant #{payment.get('tenant_id')}"
        activities.append(Activity(
            kind="payment",
            title="Payment Received",
            description=f"${payment.get('amount')} from {payer}",
            occurred_on=_known_date(payment),
            status=payment.get("status"),
        ))
    for ticket in tickets:
        activities.append(Activity(
            kind="maintenance",
            title="Maintenance Request",
            description=ticket.get("issue") or ticket.get("description") or "Maintenance issue",
            occurred_on=_known_date(ticket),
            status=ticket.get("status") or "open",
        ))

    activities.sort(key=lambda a: a.occurred_on or date.min, reverse=True)
    return activities[:limit]


def upcoming_vacancies(
    cache: RepositoryCache,
    today: date | None = None,
    days: int = LEASE_WINDOW_DAYS,
    limit: int = 5,
) -> list[Vacancy]:
    """Active leases ending within `days`, soonest first."""
    today = today or date.today()
    window_end = today + timedelta(days=days)

    vacancies = []
    for tenant in cache.find(Collection.TENANTS.value, _active):
        lease_end = parse_date(tenant.get("lease_end"))
        if lease_end is None or not today <= lease_end <= window_end:
            continue
        prop = cache.find_by_id(Collection.PROPERTIES.value, tenant.get("property_id"))
        vacancies.append(Vacancy(
            tenant_id=tenant["id"],
            tenant_name=tenant.get("name", ""),
            property_address=prop.get("address", "") if prop else "Unknown Property",
            lease_end=lease_end,
            days_until=(lease_end - today).days,
        ))

    vacancies.sort(key=lambda v: v.lease_end)
    return vacancies[:limit]


def available_rentals(cache: RepositoryCache, search: str | None = None) -> list[Record]:
    """Available or vacant properties, optionally matching city/address/zip."""
    available = cache.find(
        Collection.PROPERTIES.value,
        lambda p: p.get("status") in (PropertyStatus.AVAILABLE.value, PropertyStatus.VACANT.value),
    )
    if not search:
        return available

    needle = search.lower()
    return [
        p for p in available
        if any(needle in str(p.get(field) or "").lower() for field in ("city", "address", "zip"))
    ]


def filter_properties(
    cache: RepositoryCache,
    status: str | None = None,
    property_type: str | None = None,
    bedrooms: int | None = None,
    city: str | None = None,
) -> list[Record]:
    """
    Properties matching every given filter.

    bedrooms=3 means "3 or more", any other value is an exact match.
    """
    def matches(p: Record) -> bool:
        if status and p.get("status") != status:
            return False
        if property_type and p.get("type") != property_type:
            return False
        if bedrooms is not None:
            count = _count(p.get("bedrooms"))
            if count is None:
                return False
            if bedrooms >= 3 and count < 3:
                return False
            if bedrooms < 3 and count != bedrooms:
                return False
        if city and city.lower() not in str(p.get("city") or "").lower():
            return False
        return True

    return cache.find(Collection.PROPERTIES.value, matches)


def property_choices(cache: RepositoryCache) -> list[tuple[RecordId, str]]:
    """(id, label) pairs for property pickers."""
    return [
        (p["id"], f"{p.get('address')} - {p.get('type')}")
        for p in cache.records(Collection.PROPERTIES.value)
    ]


def tenant_choices(cache: RepositoryCache) -> list[tuple[RecordId, str]]:
    """(id, label) pairs of active tenants for tenant pickers."""
    return [
        (t["id"], f"{t.get('name')} - {property_address(cache, t.get('property_id'))}")
        for t in cache.find(Collection.TENANTS.value, _active)
    ]
