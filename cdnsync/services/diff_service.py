"""Diff service: manifest parsing and change-set computation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from cdnsync.exceptions import ManifestUnavailable
from cdnsync.schemas.manifest import MANIFEST_ADAPTER

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_FILE = "kushn_result.json"


@dataclass(frozen=True)
class FileEntry:
    """A file's path and content hash as recorded in a manifest."""

    file_path: str
    content_hash: str


@dataclass
class ChangeSet:
    """Files to push to the mirror and files to remove from it."""

    to_upload: list[FileEntry] = field(default_factory=list)
    to_delete: list[FileEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_upload and not self.to_delete


def parse_manifest(raw: bytes | str) -> dict[str, FileEntry]:
    """Parse a JSON manifest (a list of ``{"path", "hash"}`` objects) keyed by path.

    A path listed twice keeps its last hash.

    Raises:
        ManifestUnavailable: If the payload is not a valid manifest.
    """
    try:
        records = MANIFEST_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        msg = f"Malformed manifest: {exc.error_count()} validation error(s)"
        raise ManifestUnavailable(msg) from exc
    return {
        record.path: FileEntry(file_path=record.path, content_hash=record.hash)
        for record in records
    }


def compute_change_set(
    source: dict[str, FileEntry],
    mirror: dict[str, FileEntry],
    control_file: str = DEFAULT_MANIFEST_FILE,
) -> ChangeSet:
    """Classify every path in the two manifests.

    A source path missing from the mirror or carrying a different hash is
    uploaded. A mirror path missing from the source is deleted, except the
    manifest file itself. Paths with equal hashes on both sides are left alone.
    """
    change_set = ChangeSet()

    for path in sorted(source):
        mirrored = mirror.get(path)
        if mirrored is None or mirrored.content_hash != source[path].content_hash:
            change_set.to_upload.append(source[path])

    for path in sorted(mirror):
        if path in source or path == control_file:
            continue
        change_set.to_delete.append(mirror[path])

    logger.debug(
        "Change set: %d to upload, %d to delete",
        len(change_set.to_upload),
        len(change_set.to_delete),
    )
    return change_set
