"""Command line access to a user's saved jobs.

Usage:
    saved-jobs --user-id 42 list
    saved-jobs --user-id 42 save 1001 --title "Backend Engineer" --company Acme
    saved-jobs --user-id 42 unsave 1001
    saved-jobs --user-id 42 sync
    saved-jobs purge --all
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import TYPE_CHECKING

from savedjobs.adapters.saved_jobs_api import SavedJobsApiClient
from savedjobs.config import load_config
from savedjobs.core.logging_utils import setup_json_logging
from savedjobs.db.kv_store import SqliteKeyValueStore
from savedjobs.db.session import DatabaseSessionManager
from savedjobs.domain.exceptions import LocalStorageError
from savedjobs.domain.models import Bookmark
from savedjobs.services.identity import StaticIdentityResolver
from savedjobs.services.saved_jobs_service import SavedJobsService
from savedjobs.sync.local_store import BookmarkLocalStore
from savedjobs.sync.orchestrator import SyncTrigger

if TYPE_CHECKING:
    from savedjobs.config import AppConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="saved-jobs",
        description="Manage and synchronize saved jobs stored on this device",
    )
    parser.add_argument("--user-id", default=None, help="Signed-in user id (omit for anonymous)")
    parser.add_argument("--db-path", default=None, help="Override DB_PATH")
    parser.add_argument("--token", default=None, help="Override SAVED_JOBS_API_TOKEN")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (defaults to LOG_LEVEL)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="Show saved jobs, newest first")
    list_cmd.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    save_cmd = commands.add_parser("save", help="Save a job")
    save_cmd.add_argument("job_id", type=int)
    save_cmd.add_argument("--title", required=True)
    save_cmd.add_argument("--company", default=None)
    save_cmd.add_argument("--city", default=None)
    save_cmd.add_argument("--country", default=None)
    save_cmd.add_argument("--min-salary", type=float, default=None)
    save_cmd.add_argument("--max-salary", type=float, default=None)
    save_cmd.add_argument("--currency", default=None)
    save_cmd.add_argument("--location-type", default=None)
    save_cmd.add_argument("--employment-type", default=None)

    unsave_cmd = commands.add_parser("unsave", help="Remove a saved job")
    unsave_cmd.add_argument("job_id", type=int)

    commands.add_parser("sync", help="Reconcile with the server")

    purge_cmd = commands.add_parser("purge", help="Delete locally stored saved jobs")
    purge_cmd.add_argument(
        "--all", action="store_true", help="Delete the collections of every user"
    )
    return parser


def build_service(
    cfg: AppConfig, user_id: str | None, token: str | None = None
) -> tuple[SavedJobsService, SavedJobsApiClient, DatabaseSessionManager]:
    db = DatabaseSessionManager(
        cfg.storage.db_path,
        operation_timeout=cfg.storage.operation_timeout,
        max_retries=cfg.storage.max_retries,
    )
    db.migrate()
    local_store = BookmarkLocalStore(SqliteKeyValueStore(db), key_prefix=cfg.storage.key_prefix)
    client = SavedJobsApiClient.from_config(cfg.api, token=token)
    service = SavedJobsService(
        local_store,
        client,
        StaticIdentityResolver(user_id),
        adopt_remote_deletions=cfg.sync.adopt_remote_deletions,
        focus_min_interval_sec=cfg.sync.focus_min_interval_sec,
    )
    return service, client, db


def _bookmark_from_args(args: argparse.Namespace) -> Bookmark:
    return Bookmark(
        job_id=args.job_id,
        title=args.title,
        company_name=args.company,
        city=args.city,
        country=args.country,
        min_salary=args.min_salary,
        max_salary=args.max_salary,
        currency=args.currency,
        location_type=args.location_type,
        employment_type=args.employment_type,
    )


def _print_bookmarks(bookmarks: list[Bookmark], as_json: bool) -> None:
    if as_json:
        payload = [b.model_dump(mode="json", by_alias=True) for b in bookmarks]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return
    if not bookmarks:
        print("No saved jobs.")
        return
    for bookmark in bookmarks:
        company = bookmark.company_name or "-"
        place = ", ".join(p for p in (bookmark.city, bookmark.country) if p) or "-"
        marker = "" if bookmark.synced else " (not synced)"
        print(f"#{bookmark.job_id}  {bookmark.title or '(no title)'}  | {company} | {place}{marker}")


async def run_command(args: argparse.Namespace, cfg: AppConfig) -> int:
    """Execute one CLI command.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    service, client, db = build_service(cfg, args.user_id, token=args.token)
    try:
        if args.command == "list":
            _print_bookmarks(await service.list(), args.json)
            return 0

        if args.command == "save":
            if not await service.save(_bookmark_from_args(args)):
                print("ERROR: could not save the job locally", file=sys.stderr)
                return 1
            print(f"Saved job #{args.job_id}")
            return 0

        if args.command == "unsave":
            if not await service.unsave(args.job_id):
                print("ERROR: could not remove the job locally", file=sys.stderr)
                return 1
            print(f"Removed job #{args.job_id}")
            return 0

        if args.command == "sync":
            ok = await service.sync(SyncTrigger.MANUAL)
            result = service.last_sync_result
            if result is not None:
                print(
                    f"Sync {result.status} ({result.remote_outcome}): "
                    f"{result.items_adopted} adopted, {result.items_merged} merged, "
                    f"{result.items_pushed} pushed, {result.items_push_failed} push failed, "
                    f"{result.items_removed_remote} removed remotely, "
                    f"{result.items_dropped} dropped"
                )
                for err in result.errors[:10]:
                    print(f"  - {err}")
            return 0 if ok else 1

        if args.command == "purge":
            if args.all:
                count = await service.purge_all()
                print(f"Purged {count} collection(s)")
            else:
                deleted = await service.purge_current_user()
                print("Purged" if deleted else "Nothing to purge")
            return 0

        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1
    except LocalStorageError as exc:
        print(f"ERROR: failed to load saved jobs: {exc.message}", file=sys.stderr)
        return 1
    finally:
        await service.aclose()
        await client.aclose()
        db.close()


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    overrides: dict[str, dict[str, str]] = {}
    if args.db_path:
        overrides["storage"] = {"db_path": args.db_path}
    try:
        cfg = load_config(**overrides)
    except RuntimeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(2)

    setup_json_logging(args.log_level or cfg.runtime.log_level, log_file=cfg.runtime.log_file)
    sys.exit(asyncio.run(run_command(args, cfg)))


if __name__ == "__main__":
    main()
