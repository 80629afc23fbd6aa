"""
Manual directory sync - runs one sync operation from the command line.

Usage:
    python scripts/resync.py pull [employees|municipalities|regional_info]
    python scripts/resync.py push [employees|municipalities|regional_info]
    python scripts/resync.py reset
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.database import get_session_factory, init_database
from core.http_client import create_standalone_http_client
from core.logging_config import setup_logging
from modules.directory.core.config import get_directory_settings
from modules.directory.services import EntityKind, ReseedEngine, create_sync_engine, parse_kind


USAGE = "Usage: python scripts/resync.py pull|push [collection] | reset"


async def main() -> int:
    if len(sys.argv) < 2 or sys.argv[1] not in ("pull", "push", "reset"):
        print(USAGE)
        return 2

    action = sys.argv[1]
    kinds = list(EntityKind)
    if len(sys.argv) > 2:
        kind = parse_kind(sys.argv[2])
        if kind is None:
            print(f"Unknown collection: {sys.argv[2]}")
            return 2
        kinds = [kind]

    settings = get_directory_settings()
    if not settings.remote_configured:
        print("Remote store not configured (DIRECTORY_FIRESTORE_PROJECT_ID / DIRECTORY_STORAGE_BUCKET)")
        return 1

    await init_database()

    async with create_standalone_http_client(timeout=settings.http_timeout_seconds) as client:
        engine = create_sync_engine(client, settings, get_session_factory())
        try:
            if action == "reset":
                report = await ReseedEngine(engine, settings).reset_if_development()
                if report is None:
                    print("Reset refused: not a development context")
                    return 1
                for step in report.steps:
                    mark = "✓" if step.succeeded else "✗"
                    print(f"{mark} {step.name}: {step.count} {step.error or ''}")
                return 0 if report.succeeded else 1

            exit_code = 0
            for kind in kinds:
                if action == "pull":
                    result = await engine.pull_all(kind)
                else:
                    result = await engine.push_all(kind)
                mark = "✓" if result.succeeded else "✗"
                print(f"{mark} {action} {result.collection}: {result.count} record(s)")
                if not result.succeeded:
                    print(f"  Error: {result.error}")
                    exit_code = 1
            return exit_code
        finally:
            await engine.store.close()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
