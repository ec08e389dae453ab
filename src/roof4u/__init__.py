"""
Roof4U - Property Management Sync Core

Keeps an in-memory cache of a property-management record server consistent
across create/update/delete operations with cross-entity side effects.

It provides:
- Record contracts (properties, tenants, payments, maintenance)
- Record stores (HTTP, in-memory)
- A repository cache mirroring the store
- Integrity rules and the PropertyManager coordinator
- Pure view projections for dashboards

Rendering, authentication and the record server itself live elsewhere.
"""

__version__ = "0.1.0"
