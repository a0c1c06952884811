"""CLI entry point for the cdnsync reconciliation daemon."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from cdnsync.config import load_settings
from cdnsync.context import SyncContext
from cdnsync.exceptions import ConfigurationError, SyncError
from cdnsync.main import configure_logging, run_forever, run_once


async def _run(context: SyncContext) -> None:
    async with context:
        await run_forever(context)


async def _once(context: SyncContext) -> bool:
    async with context:
        try:
            outcomes = await run_once(context)
        except SyncError:
            return False
    return all(outcome.ok for outcome in outcomes)


async def _status(context: SyncContext) -> bool:
    """Print the change set of every eligible repository without transferring anything."""
    reconciler = context.reconciler
    ok = True
    async with context:
        try:
            entities = await reconciler.select_entities()
        except SyncError as exc:
            print(f"Error: {exc}")
            return False
        print("Sync Status:")
        for entity in entities:
            try:
                plan = await reconciler.plan_entity(entity)
            except SyncError as exc:
                print(f"  {entity.name}: error ({exc})")
                ok = False
                continue
            if plan.change_set is None:
                print(f"  {entity.name}: skipped ({plan.skip_reason})")
                continue
            change_set = plan.change_set
            print(
                f"  {entity.name}: {len(change_set.to_upload)} to upload, "
                f"{len(change_set.to_delete)} to delete"
            )
            for entry in change_set.to_upload:
                print(f"    + {entry.file_path}")
            for entry in change_set.to_delete:
                print(f"    - {entry.file_path}")
    return ok


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="cdnsync",
        description="Mirror GitLab repositories into a BunnyCDN storage zone",
    )
    parser.add_argument(
        "--config", "-c", default="config.json", help="JSON config file (default: config.json)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Synchronize now and then on a fixed interval (default)")
    subparsers.add_parser("once", help="Run a single synchronization pass")
    subparsers.add_parser("status", help="Show what would change")

    args = parser.parse_args(argv)
    command = args.command or "run"

    try:
        settings = load_settings(Path(args.config))
        context = SyncContext.create(settings)
    except ConfigurationError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    configure_logging(args.debug or settings.debug)

    if command == "status":
        sys.exit(0 if asyncio.run(_status(context)) else 1)
    elif command == "once":
        sys.exit(0 if asyncio.run(_once(context)) else 1)
    else:
        try:
            asyncio.run(_run(context))
        except KeyboardInterrupt:
            print("Interrupted.")


if __name__ == "__main__":
    main()
