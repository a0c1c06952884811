"""Error taxonomy for the reconciliation service.

Convention:
- File-level errors (``TransportError``, ``InvalidCiphertext``,
  ``StagingIOError``) are caught by the transfer executor, logged, and folded
  into the entity's aggregate outcome.
- ``ManifestUnavailable`` is caught by the reconciler and ends that entity's
  pass as a failure; the run continues with the next entity.
- ``ConfigurationError`` is raised at startup only and aborts the process.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all reconciliation errors."""


class ManifestUnavailable(SyncError):
    """A store's manifest could not be fetched or parsed."""


class TransportError(SyncError):
    """A network failure or non-success status from a remote store."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class InvalidCiphertext(SyncError):
    """Envelope too short to contain an IV."""


class StagingIOError(SyncError):
    """Local filesystem failure while writing or removing staged envelopes."""


class ConfigurationError(SyncError):
    """Missing or malformed startup configuration."""
