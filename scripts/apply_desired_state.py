"""Apply a desired-state file (or the built-in default stack) once and print the result.

The file uses the same shape as POST /api/v1/provisioning/apply:
{"principals": [{principal_name, group_name, contact_email}], "groups": [...]}.

Usage:
    python -m scripts.apply_desired_state [path/to/desired-state.json]

Without a path the default stack is applied (emails from WEB_APP_USER_EMAIL
and STORAGE_USER_EMAIL). With the in-process channel, creation events are
correlated before exit and audit records go to the configured sink.
Exit code is 1 when any entry failed.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from iamsync.application.services import default_stack
from iamsync.core.config import get_settings
from iamsync.core.container import build_container
from iamsync.domain.exceptions import IamSyncException
from iamsync.schemas.provisioning import ApplyRequest, ProvisionResultResponse
from iamsync.shared.telemetry.logging import setup_logging


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _load_env() -> None:
    """Load .env from project root so get_settings() sees it when run as a script."""
    load_dotenv(_project_root() / ".env", override=False)


async def run(path: Path | None) -> int:
    settings = get_settings()
    container = build_container(settings)
    if path is None:
        desired, groups = default_stack(settings)
    else:
        request = ApplyRequest.model_validate_json(path.read_text(encoding="utf-8"))
        desired = [p.to_dto() for p in request.principals]
        groups = [g.to_dto() for g in request.groups]

    if settings.registry_backend == "postgres":
        from iamsync.infrastructure.persistence.database import dispose_engine, init_schema

        await init_schema()
    if container.redis_publisher is not None:
        await container.redis_publisher.connect()
    try:
        result = await container.provisioner.apply(desired, groups)
        if container.event_channel is not None:
            await container.event_channel.drain(settings.correlation_timeout_seconds)
    except IamSyncException as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 2
    finally:
        if container.event_channel is not None:
            await container.event_channel.close()
        if container.redis_publisher is not None:
            await container.redis_publisher.disconnect()
        if settings.registry_backend == "postgres":
            await dispose_engine()

    print(ProvisionResultResponse.from_result(result).model_dump_json(indent=2))
    for failure in container.error_channel.failures:
        print(
            f"correlation failed for {failure.principal_name}: {failure.message}",
            file=sys.stderr,
        )
    return 0 if result.ok else 1


def main() -> None:
    _load_env()
    setup_logging()
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    if path is not None and not path.is_file():
        print(f"Desired-state file not found: {path}", file=sys.stderr)
        sys.exit(2)
    sys.exit(asyncio.run(run(path)))


if __name__ == "__main__":
    main()
