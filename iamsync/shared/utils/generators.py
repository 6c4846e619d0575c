"""Identifiers for secret versions and creation event deliveries (CUID2)."""

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()

EVENT_ID_PREFIX = "evt"


def generate_cuid() -> str:
    """Return a new CUID2; used as the version token of a stored secret."""
    return str(_next_cuid())


def generate_event_id() -> str:
    """Return a delivery id for a locally raised creation event."""
    return f"{EVENT_ID_PREFIX}_{_next_cuid()}"
