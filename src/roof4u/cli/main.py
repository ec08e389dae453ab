"""
Roof4U CLI

Command-line interface for inspecting and maintaining the record server.

Commands:
- check: Verify the record server is reachable
- stats: Show dashboard, rent, payment and maintenance numbers
- properties: List properties (with filters)
- tenants: List tenants
- vacancies: List leases ending soon
- delete-property: Delete a property (refused while it has active tenants)
- delete-tenant: Delete a tenant (refused while it has pending payments)
- renew-lease: Extend a tenant's lease
"""

import asyncio
from datetime import date
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from roof4u.core.config import get_active_tenant_policy, get_occupancy_revert_policy
from roof4u.core.logging import setup_logging
from roof4u.contracts.records import Collection
from roof4u.service import projection
from roof4u.service.integrity import (
    ActiveTenantPolicy,
    IntegrityViolation,
    OccupancyRevertPolicy,
)
from roof4u.service.manager import PartialSyncError, PropertyManager
from roof4u.stores import get_store
from roof4u.stores.base import StoreError

app = typer.Typer(
    name="roof4u",
    help="Roof4U property management CLI",
)

console = Console()


def get_manager() -> PropertyManager:
    """Build a PropertyManager from environment configuration."""
    return PropertyManager(
        get_store(),
        revert_policy=OccupancyRevertPolicy(get_occupancy_revert_policy()),
        active_tenant_policy=ActiveTenantPolicy(get_active_tenant_policy()),
    )


async def _loaded_manager() -> PropertyManager:
    manager = get_manager()
    await manager.load_initial_data()
    return manager


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Log level (DEBUG, INFO, ...)"),
):
    """Roof4U property management CLI."""
    setup_logging(log_level)


@app.command()
def check():
    """
    Verify the record server is reachable.
    """
    async def run() -> bool:
        manager = get_manager()
        try:
            return await manager.check_connection()
        finally:
            await manager.close()

    if asyncio.run(run()):
        rprint("[green]Connected to record server[/green]")
    else:
        rprint("[red]Cannot connect to record server[/red]")
        raise typer.Exit(1)


@app.command()
def stats():
    """
    Show dashboard, rent, payment and maintenance numbers.
    """
    async def run():
        manager = await _loaded_manager()
        try:
            cache = manager.cache
            return (
                projection.dashboard_stats(cache),
                projection.rent_stats(cache),
                projection.payment_stats(cache),
                projection.maintenance_stats(cache),
            )
        finally:
            await manager.close()

    dashboard, rent, payments, maintenance = asyncio.run(run())

    table = Table(title="Roof4U")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    table.add_row("Total properties", str(dashboard.total_properties))
    table.add_row("Occupied properties", str(dashboard.occupied_properties))
    table.add_row("Active tenants", str(dashboard.active_tenants))
    table.add_row("Total revenue", f"${dashboard.total_revenue:,}")
    table.add_row("Pending maintenance", str(dashboard.pending_maintenance))
    table.add_row("Expiring leases (30d)", str(rent.expiring_leases))
    table.add_row("Vacancy rate", f"{rent.vacancy_rate}%")
    table.add_row("Collected this month", f"${payments.total_collected:,}")
    table.add_row("Pending payments", f"${payments.pending_payments:,}")
    table.add_row("Late payments", f"${payments.late_payments:,}")
    table.add_row("Collection rate", f"{payments.collection_rate}%")
    table.add_row("Open tickets", str(maintenance.open_tickets))
    table.add_row("Urgent tickets", str(maintenance.urgent_tickets))
    table.add_row("Avg resolution", f"{maintenance.avg_resolution_days}d")
    table.add_row("Maintenance cost (month)", f"${maintenance.maintenance_cost:,}")

    console.print(table)


@app.command()
def properties(
    status: Optional[str] = typer.Option(None, help="Filter by status (available, occupied, ...)"),
    property_type: Optional[str] = typer.Option(None, "--type", help="Filter by type (house, condo, ...)"),
    bedrooms: Optional[int] = typer.Option(None, help="Bedrooms (3 means 3 or more)"),
    city: Optional[str] = typer.Option(None, help="City contains"),
):
    """
    List properties.
    """
    async def run():
        manager = await _loaded_manager()
        try:
            matches = projection.filter_properties(
                manager.cache,
                status=status,
                property_type=property_type,
                bedrooms=bedrooms,
                city=city,
            )
            return [(p, projection.active_tenant_for(manager.cache, p["id"])) for p in matches]
        finally:
            await manager.close()

    rows = asyncio.run(run())

    if not rows:
        rprint("[yellow]No properties found[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Properties")
    table.add_column("ID", style="dim")
    table.add_column("Address")
    table.add_column("City")
    table.add_column("Type")
    table.add_column("Beds", justify="right")
    table.add_column("Rent", justify="right")
    table.add_column("Status")
    table.add_column("Tenant")

    for prop, tenant in rows:
        table.add_row(
            str(prop.get("id")),
            prop.get("address") or "",
            prop.get("city") or "",
            prop.get("type") or "",
            str(prop.get("bedrooms") or ""),
            str(prop.get("rent_amount") or ""),
            prop.get("status") or "vacant",
            tenant.get("name", "") if tenant else "",
        )

    console.print(table)


@app.command()
def tenants(
    status: Optional[str] = typer.Option(None, help="Filter by status (active, prospective, inactive)"),
):
    """
    List tenants.
    """
    async def run():
        manager = await _loaded_manager()
        try:
            records = manager.cache.find(
                Collection.TENANTS.value,
                lambda t: status is None or t.get("status") == status,
            )
            return [(t, projection.property_address(manager.cache, t.get("property_id"))) for t in records]
        finally:
            await manager.close()

    rows = asyncio.run(run())

    if not rows:
        rprint("[yellow]No tenants found[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Tenants")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Property")
    table.add_column("Lease end")
    table.add_column("Status")

    for tenant, address in rows:
        table.add_row(
            str(tenant.get("id")),
            tenant.get("name") or "",
            address,
            tenant.get("lease_end") or "-",
            tenant.get("status") or "",
        )

    console.print(table)


@app.command()
def vacancies(
    days: int = typer.Option(30, help="Look-ahead window in days"),
    limit: int = typer.Option(5, help="Maximum number of leases to show"),
):
    """
    List active leases ending within the window.
    """
    async def run():
        manager = await _loaded_manager()
        try:
            return projection.upcoming_vacancies(manager.cache, days=days, limit=limit)
        finally:
            await manager.close()

    upcoming = asyncio.run(run())

    if not upcoming:
        rprint(f"[green]No upcoming vacancies in the next {days} days.[/green]")
        raise typer.Exit(0)

    table = Table(title=f"Leases ending in the next {days} days")
    table.add_column("Tenant")
    table.add_column("Property")
    table.add_column("Lease end")
    table.add_column("In", justify="right")

    for vacancy in upcoming:
        table.add_row(
            vacancy.tenant_name,
            vacancy.property_address,
            vacancy.lease_end.isoformat(),
            f"{vacancy.days_until}d",
        )

    console.print(table)


def _run_mutation(action) -> None:
    """Run a manager mutation and report the outcome."""
    async def run():
        manager = await _loaded_manager()
        try:
            return await action(manager)
        finally:
            await manager.close()

    try:
        asyncio.run(run())
    except IntegrityViolation as e:
        rprint(f"[red]Refused: {e.reason}[/red]")
        raise typer.Exit(1)
    except PartialSyncError as e:
        rprint(f"[yellow]Saved, but not fully synced: {e}[/yellow]")
        raise typer.Exit(2)
    except StoreError as e:
        rprint(f"[red]Store error: {e}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def delete_property(
    property_id: str = typer.Argument(..., help="Property ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
):
    """
    Delete a property. Refused while an active tenant references it.
    """
    if not force and not typer.confirm(f"Delete property {property_id}?"):
        rprint("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    _run_mutation(lambda manager: manager.delete_property(property_id))
    rprint(f"[green]Property {property_id} deleted[/green]")


@app.command()
def delete_tenant(
    tenant_id: str = typer.Argument(..., help="Tenant ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
):
    """
    Delete a tenant. Refused while a pending payment references it.
    """
    if not force and not typer.confirm(f"Delete tenant {tenant_id}?"):
        rprint("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    _run_mutation(lambda manager: manager.delete_tenant(tenant_id))
    rprint(f"[green]Tenant {tenant_id} deleted[/green]")


@app.command()
def renew_lease(
    tenant_id: str = typer.Argument(..., help="Tenant ID"),
    until: Optional[str] = typer.Option(None, help="New lease end (YYYY-MM-DD), default +1 year"),
):
    """
    Extend a tenant's lease.
    """
    if until:
        try:
            date.fromisoformat(until)
        except ValueError:
            rprint(f"[red]Invalid date: {until}[/red]")
            raise typer.Exit(1)

    _run_mutation(lambda manager: manager.renew_lease(tenant_id, until))
    rprint(f"[green]Lease of tenant {tenant_id} renewed[/green]")


if __name__ == "__main__":
    app()
