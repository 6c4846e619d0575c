"""Shared utilities: UTC datetimes and identifiers. Keyed locks live in shared.utils.locks."""

from iamsync.shared.utils.datetime import ensure_utc, parse_iso_utc, utc_now
from iamsync.shared.utils.generators import generate_cuid, generate_event_id

__all__ = [
    "ensure_utc",
    "generate_cuid",
    "generate_event_id",
    "parse_iso_utc",
    "utc_now",
]
