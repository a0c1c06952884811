"""Entities, store selectors, and the tagged object operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class Entity:
    """One repository mirrored into one destination namespace."""

    id: int
    name: str
    kind: str = ""


@dataclass(frozen=True)
class Eligibility:
    """Parsed eligibility document of an entity."""

    sync: bool
    kind: str = ""


class Store(StrEnum):
    """Which side of the reconciliation a manifest comes from."""

    SOURCE = "source"
    MIRROR = "mirror"


@dataclass(frozen=True)
class SourceGet:
    """Fetch a file from the source repository."""

    entity: Entity
    file_path: str


@dataclass(frozen=True)
class MirrorPut:
    """Store a file in the destination."""

    entity: Entity
    file_path: str
    body: bytes = field(repr=False)


@dataclass(frozen=True)
class MirrorDelete:
    """Remove a file from the destination."""

    entity: Entity
    file_path: str


@dataclass(frozen=True)
class CachePurge:
    """Invalidate the edge cache for a destination file."""

    entity: Entity
    file_path: str


ObjectOperation = SourceGet | MirrorPut | MirrorDelete | CachePurge


@runtime_checkable
class RemoteGateway(Protocol):
    """Everything the reconciler needs from the two remote stores."""

    async def list_entities(self) -> list[Entity]:
        """Return every entity the source store knows about."""
        ...

    async def fetch_eligibility(self, entity: Entity) -> Eligibility | None:
        """Return the entity's eligibility document, or None if it has none."""
        ...

    async def fetch_manifest(self, entity: Entity, store: Store) -> bytes | None:
        """Return the raw manifest from one store, or None if it does not exist."""
        ...

    async def execute(self, operation: ObjectOperation) -> bytes | None:
        """Run one object operation. Get variants return the body, others None."""
        ...
