"""Shared test fixtures for cdnsync."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import pytest

from cdnsync.clients.base import (
    CachePurge,
    Eligibility,
    Entity,
    MirrorDelete,
    MirrorPut,
    ObjectOperation,
    SourceGet,
    Store,
)
from cdnsync.config import Settings
from cdnsync.exceptions import TransportError
from cdnsync.services.crypto_service import EnvelopeCipher

if TYPE_CHECKING:
    from pathlib import Path

TEST_KEY = b"0123456789abcdef0123456789abcdef"
MANIFEST_FILE = "kushn_result.json"


def manifest_bytes(entries: dict[str, str]) -> bytes:
    """Serialize a path -> hash mapping as a manifest file."""
    return json.dumps([{"path": p, "hash": h} for p, h in entries.items()]).encode()


class FakeGateway:
    """In-memory remote stores that record calls and track in-flight operations.

    ``source_files`` and ``mirror_files`` map entity name -> path -> bytes.
    Manifests live in ``manifests[(entity name, store)]``; a missing key means
    "not found". Paths in ``failing`` raise TransportError on any operation;
    ``failing_ops`` holds ``(operation type, path)`` pairs that fail only that step.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.entities: list[Entity] = []
        self.eligibility: dict[str, Eligibility] = {}
        self.manifests: dict[tuple[str, Store], bytes] = {}
        self.manifest_errors: dict[tuple[str, Store], Exception] = {}
        self.source_files: dict[str, dict[str, bytes]] = {}
        self.mirror_files: dict[str, dict[str, bytes]] = {}
        self.purged: list[tuple[str, str]] = []
        self.operations: list[ObjectOperation] = []
        self.failing: set[str] = set()
        self.failing_ops: set[tuple[type, str]] = set()
        self.delay = delay
        self.in_flight = 0
        self.peak_in_flight = 0
        self.list_error: Exception | None = None

    def add_entity(
        self,
        entity: Entity,
        *,
        source: dict[str, str] | None = None,
        mirror: dict[str, str] | None = None,
        eligible: bool = True,
    ) -> None:
        self.entities.append(entity)
        self.eligibility[entity.name] = Eligibility(sync=eligible, kind="docs")
        if source is not None:
            self.manifests[(entity.name, Store.SOURCE)] = manifest_bytes(source)
            self.source_files[entity.name] = {p: f"content of {p}".encode() for p in source}
        if mirror is not None:
            self.manifests[(entity.name, Store.MIRROR)] = manifest_bytes(mirror)
            self.mirror_files[entity.name] = {p: b"old" for p in mirror}

    async def list_entities(self) -> list[Entity]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.entities)

    async def fetch_eligibility(self, entity: Entity) -> Eligibility | None:
        return self.eligibility.get(entity.name)

    async def fetch_manifest(self, entity: Entity, store: Store) -> bytes | None:
        error = self.manifest_errors.get((entity.name, store))
        if error is not None:
            raise error
        return self.manifests.get((entity.name, store))

    async def execute(self, operation: ObjectOperation) -> bytes | None:
        self.operations.append(operation)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if (
                operation.file_path in self.failing
                or (type(operation), operation.file_path) in self.failing_ops
            ):
                msg = f"simulated failure for {operation.file_path}"
                raise TransportError(msg, status_code=500)
            name = operation.entity.name
            if isinstance(operation, SourceGet):
                return self.source_files.get(name, {}).get(operation.file_path, b"")
            if isinstance(operation, MirrorPut):
                self.mirror_files.setdefault(name, {})[operation.file_path] = operation.body
            elif isinstance(operation, MirrorDelete):
                self.mirror_files.get(name, {}).pop(operation.file_path, None)
            elif isinstance(operation, CachePurge):
                self.purged.append((name, operation.file_path))
            return None
        finally:
            self.in_flight -= 1


class RecordingNotifier:
    def __init__(self) -> None:
        self.outcomes: list = []

    async def notify(self, outcome) -> bool:
        self.outcomes.append(outcome)
        return True


@pytest.fixture
def cipher() -> EnvelopeCipher:
    return EnvelopeCipher(TEST_KEY)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        gitlab_instance_url="https://gitlab.example.com",
        gitlab_api_key="glpat-test",
        bunnycdn_api_url="https://api.bunny.example",
        bunnycdn_storage_url="https://storage.bunny.example",
        bunnycdn_storage_pull_zone="zone",
        bunnycdn_api_key="bunny-key",
        encryption_key=TEST_KEY.decode(),
        temp_storage_path=tmp_path / "staging",
        log_dir=tmp_path / "logs",
        discord_webhook_url="https://discord.example/webhook",
    )
