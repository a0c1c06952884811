"""Service entry points: logging setup, a single pass, and the scheduling loop."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from cdnsync.exceptions import SyncError
from cdnsync.services.run_log_service import LOG_FORMAT

if TYPE_CHECKING:
    from cdnsync.context import SyncContext
    from cdnsync.services.reconcile_service import EntityOutcome

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.DEBUG if debug else logging.WARNING)


async def run_once(context: SyncContext) -> list[EntityOutcome]:
    """Run one reconciliation pass into a fresh log file.

    Raises:
        SyncError: If the pass could not start (entity listing failed). A
            failure notification has already been sent.
    """
    context.run_log.start()
    logger.info("Running scheduled synchronization.")
    try:
        outcomes = await context.reconciler.run_pass()
    except SyncError as exc:
        logger.error("Synchronization pass aborted: %s", exc)
        await context.notifier.notify_run_failure(str(exc))
        raise
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    logger.info("Synchronization finished: %d repositories, %d failed", len(outcomes), failed)
    return outcomes


async def run_forever(context: SyncContext, iterations: int | None = None) -> None:
    """Run a pass now, then every ``sync_interval_seconds``.

    ``iterations`` bounds the number of passes; None loops until cancelled.
    """
    interval = context.settings.sync_interval_seconds
    completed = 0
    while iterations is None or completed < iterations:
        if completed:
            await asyncio.sleep(interval)
        try:
            await run_once(context)
        except SyncError:
            logger.info("Next attempt in %d seconds", interval)
        except Exception:
            logger.exception("Unexpected failure during synchronization pass")
        completed += 1
