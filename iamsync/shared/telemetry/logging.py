"""Logging configuration for the service and the correlator worker."""

import logging
import sys

from iamsync.core.config import get_settings

# Third-party loggers that are noisy at DEBUG (connection pools, pub/sub pings).
_QUIET_LOGGERS = ("asyncio", "redis", "httpx", "httpcore")


def setup_logging() -> None:
    """Configure process-wide logging.

    Level is LOG_LEVEL when set, else DEBUG when settings.debug is True,
    otherwise INFO. Output goes to stdout. Audit records are logged by
    the 'iamsync.audit' logger so they can be routed separately.
    """
    settings = get_settings()
    if settings.log_level:
        log_level = logging.getLevelName(settings.log_level.upper())
    else:
        log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.INFO, logging.root.level))
