"""Serve the API with uvicorn: ``python -m iamsync`` or the ``iamsync`` script.

Host and port come from SERVER_HOST / SERVER_PORT; the app itself is
imported by uvicorn from iamsync.main:app.
"""

import uvicorn

from iamsync.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "iamsync.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=(settings.log_level or ("debug" if settings.debug else "info")).lower(),
    )


if __name__ == "__main__":
    main()
