"""Run one WebDAV sync of the local bookmark database.

Example crontab entry (every 30 minutes):
    */30 * * * * cd /srv/marksync && .venv/bin/marksync-sync >> /var/log/marksync.log 2>&1

Usage:
    marksync-sync [--dry-run] [--mechanism {local-first,remote-first,merge}] [--db-path PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

from marksync.config import VALID_MECHANISMS
from marksync.core.time_utils import ms_to_datetime

logger = logging.getLogger("marksync.cli")


def _print_plan(plan: Any) -> None:
    print("\n=== WebDAV Sync Preview (DRY RUN) ===\n")
    print(f"Remote folder initialised: {'yes' if plan.remote_exists else 'no'}")
    print(f"Mechanism: {plan.mechanism.value}")
    for item in plan.categories:
        print(f"\n{item.category}:")
        print(f"  Action: {item.action.value}")
        print(f"  Local changed: {item.local_changed}")
        print(f"  Remote changed: {item.remote_changed}")
        print(f"  Remote differs: {item.remote_different}")
    print("\n=== End of Preview ===")
    print("Run without --dry-run to execute the sync.")


def _print_result(outcome: dict[str, Any]) -> None:
    result = outcome.get("result")
    print("\n=== WebDAV Sync Summary ===")
    if result is None:
        print(f"Not run: {outcome['error']}")
        return
    for name in ("bookmarks", "config"):
        category = getattr(result, name)
        if category is not None:
            print(f"{name}: {category.action.value}")
    synced_at = ms_to_datetime(result.last_sync)
    if synced_at is not None:
        print(f"Synced at: {synced_at.isoformat()}")
    print(f"Changed: {result.changed}")
    print(f"Duration: {result.duration_seconds:.1f}s")
    if result.errors:
        print(f"\nErrors ({len(result.errors)}):")
        for err in result.errors:
            print(f"  - {err}")


async def run_sync(
    *, dry_run: bool = False, mechanism: str | None = None, db_path: str | None = None
) -> int:
    """Run a WebDAV sync.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    from marksync.adapters.webdav import WebDAVClient, WebDAVSyncService
    from marksync.adapters.webdav.sync.status import SyncStatusRecorder
    from marksync.config import load_config
    from marksync.core.logging_utils import setup_json_logging
    from marksync.db.session import DatabaseSessionManager
    from marksync.infrastructure.persistence.sqlite.repositories import (
        SqliteLocalStoreRepositoryAdapter,
    )

    overrides: dict[str, dict[str, Any]] = {}
    if mechanism:
        overrides["strategy"] = {"mechanism": mechanism}
    if db_path:
        overrides["runtime"] = {"db_path": db_path}

    try:
        cfg = load_config(**overrides)
    except RuntimeError as e:
        print(f"\nERROR: {e}")
        return 1

    setup_json_logging(
        cfg.runtime.log_level, use_loguru=not cfg.runtime.log_json, log_file=cfg.runtime.log_file
    )

    problems = cfg.validate_sync_setup()
    if problems:
        for problem in problems:
            logger.error("webdav_config_invalid", extra={"problem": problem})
        print("\nERROR: WebDAV sync is not configured:")
        for problem in problems:
            print(f"  - {problem}")
        return 1

    db = DatabaseSessionManager(cfg.runtime.db_path)
    db.migrate()
    store = SqliteLocalStoreRepositoryAdapter(db)

    try:
        async with WebDAVClient(
            cfg.webdav.url,
            cfg.webdav.username,
            cfg.webdav.password,
            timeout=cfg.webdav.timeout_sec,
            max_retries=cfg.webdav.max_retries,
        ) as client:
            service = WebDAVSyncService(
                transport=client,
                local_store=store,
                status_store=store,
                sync_data=cfg.sync_data,
                folder=cfg.webdav.folder,
                mechanism=cfg.strategy.mechanism,
                device_name=cfg.runtime.device_name,
                app_version=cfg.runtime.app_version,
            )

            if dry_run:
                logger.info("webdav_sync_dry_run")
                _print_plan(await service.preview())
                return 0

            outcome = await SyncStatusRecorder(store).execute(service)
    except Exception as e:
        logger.exception("webdav_sync_crashed")
        print(f"\nERROR: {e}")
        return 1
    finally:
        db.close()

    _print_result(outcome)
    return 0 if outcome["success"] else 1


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Sync bookmarks and settings with a WebDAV folder")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what each category would do without changing anything",
    )
    parser.add_argument(
        "--mechanism",
        choices=VALID_MECHANISMS,
        default=None,
        help="Conflict resolution when both sides changed (overrides SYNC_MECHANISM)",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="Local SQLite database (overrides DB_PATH)",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run_sync(dry_run=args.dry_run, mechanism=args.mechanism, db_path=args.db_path)))


if __name__ == "__main__":
    main()
