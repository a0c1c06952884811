"""Transfer service: executes a change set against the remote stores.

Every file runs its own pipeline behind a counting admission gate, so at most
``max_parallel`` pipelines are in flight at once. A failing file is logged and
recorded; it never cancels its siblings. ``execute`` returns only after every
pipeline has finished.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from cdnsync.clients.base import CachePurge, MirrorDelete, MirrorPut, SourceGet
from cdnsync.exceptions import SyncError
from cdnsync.services.diff_service import DEFAULT_MANIFEST_FILE

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from typing import Any

    from cdnsync.clients.base import Entity, RemoteGateway
    from cdnsync.filesystem.staging import StagingArea
    from cdnsync.services.crypto_service import EnvelopeCipher
    from cdnsync.services.diff_service import ChangeSet, FileEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL = 10


class TransferAction(StrEnum):
    UPLOAD = "upload"
    DELETE = "delete"


@dataclass
class FileOutcome:
    """Result of one file's pipeline."""

    file_path: str
    action: TransferAction
    success: bool
    skipped: bool = False
    error: str | None = None


@dataclass
class TransferReport:
    """Per-file outcomes of one change set."""

    outcomes: list[FileOutcome] = field(default_factory=list)

    def _count(self, action: TransferAction) -> int:
        return sum(
            1 for o in self.outcomes if o.action is action and o.success and not o.skipped
        )

    @property
    def uploaded(self) -> int:
        return self._count(TransferAction.UPLOAD)

    @property
    def deleted(self) -> int:
        return self._count(TransferAction.DELETE)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def success(self) -> bool:
        return self.failed == 0


class TransferExecutor:
    """Bounded-concurrency executor for upload and delete pipelines."""

    def __init__(
        self,
        gateway: RemoteGateway,
        cipher: EnvelopeCipher,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
        control_file: str = DEFAULT_MANIFEST_FILE,
    ) -> None:
        if max_parallel < 1:
            msg = f"max_parallel must be >= 1, got {max_parallel}"
            raise ValueError(msg)
        self.gateway = gateway
        self.cipher = cipher
        self.max_parallel = max_parallel
        self.control_file = control_file

    async def execute(
        self, entity: Entity, change_set: ChangeSet, staging: StagingArea
    ) -> TransferReport:
        """Run every upload and delete in the change set and wait for all of them."""
        gate = asyncio.Semaphore(self.max_parallel)
        report = TransferReport()
        admitted: list[tuple[FileEntry, TransferAction]] = []
        jobs: list[Coroutine[Any, Any, FileOutcome]] = []

        for entry in change_set.to_upload:
            if not entry.file_path.strip("/"):
                logger.warning("Received empty filename, skipping upload")
                report.outcomes.append(_skipped(entry, TransferAction.UPLOAD))
                continue
            admitted.append((entry, TransferAction.UPLOAD))
            jobs.append(
                self._admit(gate, entry, TransferAction.UPLOAD, self._upload(entity, entry, staging))
            )

        for entry in change_set.to_delete:
            if not entry.file_path.strip("/") or entry.file_path == self.control_file:
                report.outcomes.append(_skipped(entry, TransferAction.DELETE))
                continue
            admitted.append((entry, TransferAction.DELETE))
            jobs.append(self._admit(gate, entry, TransferAction.DELETE, self._delete(entity, entry)))

        results = await asyncio.gather(*jobs, return_exceptions=True)

        for (entry, action), result in zip(admitted, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "Unexpected error during %s of %s",
                    action,
                    entry.file_path,
                    exc_info=result,
                )
                result = FileOutcome(entry.file_path, action, success=False, error=repr(result))
            report.outcomes.append(result)

        logger.info(
            "%s: %d uploaded, %d deleted, %d failed",
            entity.name,
            report.uploaded,
            report.deleted,
            report.failed,
        )
        return report

    async def _admit(
        self,
        gate: asyncio.Semaphore,
        entry: FileEntry,
        action: TransferAction,
        pipeline: Coroutine[Any, Any, None],
    ) -> FileOutcome:
        async with gate:
            try:
                await pipeline
            except SyncError as exc:
                logger.error("Failed to %s %s: %s", action, entry.file_path, exc)
                return FileOutcome(entry.file_path, action, success=False, error=str(exc))
        return FileOutcome(entry.file_path, action, success=True)

    async def _upload(self, entity: Entity, entry: FileEntry, staging: StagingArea) -> None:
        """Fetch, encrypt, stage, decrypt the staged copy, then publish and purge."""
        content = await self.gateway.execute(SourceGet(entity, entry.file_path)) or b""
        handle = staging.write(entry.file_path, self.cipher.encrypt(content))
        plaintext = self.cipher.decrypt(staging.read(handle))
        await self.gateway.execute(MirrorPut(entity, entry.file_path, plaintext))
        await self.gateway.execute(CachePurge(entity, entry.file_path))
        staging.remove(handle)
        logger.debug("Uploaded %s/%s", entity.name, entry.file_path)

    async def _delete(self, entity: Entity, entry: FileEntry) -> None:
        await self.gateway.execute(MirrorDelete(entity, entry.file_path))
        await self.gateway.execute(CachePurge(entity, entry.file_path))
        logger.debug("Deleted %s/%s", entity.name, entry.file_path)


def _skipped(entry: FileEntry, action: TransferAction) -> FileOutcome:
    return FileOutcome(entry.file_path, action, success=True, skipped=True)
