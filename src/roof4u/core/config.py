"""
Configuration for roof4u.

Settings are read lazily from the environment to avoid import-time side effects.
"""

import functools
import os


@functools.lru_cache()
def get_api_url() -> str:
    """Get the record server base URL from environment."""
    return os.getenv("ROOF4U_API_URL", "http://localhost:3000")


@functools.lru_cache()
def get_request_timeout() -> float:
    """Get the per-request timeout (seconds) from environment."""
    return float(os.getenv("ROOF4U_TIMEOUT", "10"))


@functools.lru_cache()
def get_store_type() -> str:
    """Get the store backend ("http" or "memory")."""
    return os.getenv("ROOF4U_STORE", "http").lower()


@functools.lru_cache()
def get_occupancy_revert_policy() -> str:
    """Get what happens to a property when its last active tenant leaves."""
    return os.getenv("ROOF4U_OCCUPANCY_REVERT", "revert_to_vacant").lower()


@functools.lru_cache()
def get_active_tenant_policy() -> str:
    """Get whether a second active tenant per property is rejected."""
    return os.getenv("ROOF4U_ACTIVE_TENANT_POLICY", "allow_multiple").lower()


@functools.lru_cache()
def get_log_level() -> str:
    """Get the log level name."""
    return os.getenv("ROOF4U_LOG_LEVEL", "INFO").upper()


def clear_cache() -> None:
    """Forget cached settings (used when the environment changes, e.g. in tests)."""
    for accessor in (
        get_api_url,
        get_request_timeout,
        get_store_type,
        get_occupancy_revert_policy,
        get_active_tenant_policy,
        get_log_level,
    ):
        accessor.cache_clear()
