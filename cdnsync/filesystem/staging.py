"""Entity-scoped temporary storage for encrypted envelopes."""

from __future__ import annotations

import logging
import shutil
from typing import TYPE_CHECKING

from cdnsync.exceptions import StagingIOError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_DIR_MODE = 0o700
_FILE_MODE = 0o600


class StagingArea:
    """Directory ``<root>/<entity name>`` holding envelopes mid-pipeline.

    The directory is created on the first write and removed by remove_scope().
    """

    def __init__(self, root: Path, entity_name: str) -> None:
        if not entity_name or entity_name in {".", ".."} or "/" in entity_name:
            msg = f"Invalid staging scope name: {entity_name!r}"
            raise StagingIOError(msg)
        self.root = root
        self.path = root / entity_name

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def _resolve(self, file_path: str) -> Path:
        """Resolve a manifest path inside the scope, rejecting traversal."""
        target = (self.path / file_path.lstrip("/")).resolve()
        if not target.is_relative_to(self.path.resolve()) or target == self.path.resolve():
            msg = f"Staging path escapes scope: {file_path}"
            raise StagingIOError(msg)
        return target

    def write(self, file_path: str, data: bytes) -> Path:
        """Write an envelope and return its handle."""
        target = self._resolve(file_path)
        try:
            self.path.mkdir(parents=True, exist_ok=True, mode=_DIR_MODE)
            target.parent.mkdir(parents=True, exist_ok=True, mode=_DIR_MODE)
            target.write_bytes(data)
            target.chmod(_FILE_MODE)
        except OSError as exc:
            msg = f"Failed to stage {file_path}: {exc}"
            raise StagingIOError(msg) from exc
        return target

    def read(self, handle: Path) -> bytes:
        try:
            return handle.read_bytes()
        except OSError as exc:
            msg = f"Failed to read staged file {handle}: {exc}"
            raise StagingIOError(msg) from exc

    def remove(self, handle: Path) -> None:
        """Remove one staged envelope. A missing file is not an error."""
        try:
            handle.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Failed to remove staged file {handle}: {exc}"
            raise StagingIOError(msg) from exc

    def remove_scope(self) -> None:
        """Remove the whole scope directory, if it was ever created."""
        if not self.path.exists():
            return
        try:
            shutil.rmtree(self.path)
        except OSError as exc:
            msg = f"Failed to purge staging area {self.path}: {exc}"
            raise StagingIOError(msg) from exc
        logger.debug("Purged staging area %s", self.path)
