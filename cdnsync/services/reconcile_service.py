"""Reconciliation service: drives one pass over every eligible entity.

Entities are processed one at a time. For each one the reconciler fetches
both manifests, computes the change set, hands it to the transfer executor,
purges the entity's staging area and reports a single outcome. Errors inside
an entity end that entity's pass only; the next entity still runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from cdnsync.clients.base import Store
from cdnsync.exceptions import ManifestUnavailable, StagingIOError, SyncError, TransportError
from cdnsync.filesystem.staging import StagingArea
from cdnsync.services.diff_service import (
    DEFAULT_MANIFEST_FILE,
    ChangeSet,
    compute_change_set,
    parse_manifest,
)

if TYPE_CHECKING:
    from pathlib import Path

    from cdnsync.clients.base import Entity, RemoteGateway
    from cdnsync.services.transfer_service import TransferExecutor

logger = logging.getLogger(__name__)


class PassStatus(StrEnum):
    """Final state of one entity's pass."""

    SUCCESS = "success"
    FAILURE = "failure"
    NO_CHANGES = "no_changes"
    SKIPPED = "skipped"


@dataclass
class EntityPlan:
    """Change set for an entity, or the reason no change set could be computed."""

    entity: Entity
    change_set: ChangeSet | None = None
    skip_reason: str = ""


@dataclass
class EntityOutcome:
    """Aggregate result reported for one entity."""

    entity: Entity
    status: PassStatus
    uploaded: int = 0
    deleted: int = 0
    failed: int = 0
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not PassStatus.FAILURE


class OutcomeNotifier(Protocol):
    async def notify(self, outcome: EntityOutcome) -> bool:
        """Deliver an entity outcome. Returns True if it was delivered."""
        ...


class Reconciler:
    """Per-entity driver: manifests, diff, transfer, cleanup, report."""

    def __init__(
        self,
        gateway: RemoteGateway,
        executor: TransferExecutor,
        staging_root: Path,
        manifest_file_name: str = DEFAULT_MANIFEST_FILE,
        notifier: OutcomeNotifier | None = None,
        bootstrap_missing_mirror: bool = False,
    ) -> None:
        self.gateway = gateway
        self.executor = executor
        self.staging_root = staging_root
        self.manifest_file_name = manifest_file_name
        self.notifier = notifier
        self.bootstrap_missing_mirror = bootstrap_missing_mirror

    async def select_entities(self) -> list[Entity]:
        """List entities and keep the ones whose eligibility document opts in.

        Raises:
            TransportError: If the entity list itself cannot be fetched.
        """
        entities = await self.gateway.list_entities()
        eligible: list[Entity] = []
        for entity in entities:
            try:
                eligibility = await self.gateway.fetch_eligibility(entity)
            except (SyncError, ValueError) as exc:
                logger.warning("Could not read eligibility for %s: %s", entity.name, exc)
                continue
            if eligibility is None or not eligibility.sync:
                continue
            eligible.append(replace(entity, kind=eligibility.kind))
        logger.info("%d of %d repositories opted into sync", len(eligible), len(entities))
        return eligible

    async def plan_entity(self, entity: Entity) -> EntityPlan:
        """Fetch both manifests and compute the change set.

        Raises:
            TransportError: If either manifest fetch fails outright.
            ManifestUnavailable: If either manifest is malformed.
        """
        source_raw = await self.gateway.fetch_manifest(entity, Store.SOURCE)
        mirror_raw = await self.gateway.fetch_manifest(entity, Store.MIRROR)

        if source_raw is None:
            reason = f"{self.manifest_file_name} not found in source"
            logger.info("Skipping %s: %s", entity.name, reason)
            return EntityPlan(entity, skip_reason=reason)

        source = parse_manifest(source_raw)
        if mirror_raw is not None:
            mirror = parse_manifest(mirror_raw)
        elif self.bootstrap_missing_mirror:
            logger.info("No mirror manifest for %s, treating mirror as empty", entity.name)
            mirror = {}
        else:
            reason = f"{self.manifest_file_name} not found in mirror"
            logger.info("Skipping %s: %s", entity.name, reason)
            return EntityPlan(entity, skip_reason=reason)

        return EntityPlan(entity, compute_change_set(source, mirror, self.manifest_file_name))

    async def reconcile_entity(self, entity: Entity) -> EntityOutcome:
        """Run one entity through the whole pipeline and return its outcome."""
        try:
            plan = await self.plan_entity(entity)
        except (ManifestUnavailable, TransportError) as exc:
            logger.error("Manifest fetch failed for %s: %s", entity.name, exc)
            return EntityOutcome(entity, PassStatus.FAILURE, detail=str(exc))

        change_set = plan.change_set
        if change_set is None:
            return EntityOutcome(entity, PassStatus.SKIPPED, detail=plan.skip_reason)

        logger.info("Files to be uploaded: %s", [e.file_path for e in change_set.to_upload])
        logger.info("Files to be deleted: %s", [e.file_path for e in change_set.to_delete])
        if change_set.is_empty:
            return EntityOutcome(entity, PassStatus.NO_CHANGES)

        try:
            staging = StagingArea(self.staging_root, entity.name)
        except StagingIOError as exc:
            logger.error("Cannot stage files for %s: %s", entity.name, exc)
            return EntityOutcome(entity, PassStatus.FAILURE, detail=str(exc))

        try:
            report = await self.executor.execute(entity, change_set, staging)
        finally:
            purged = self._purge(staging)

        success = report.success and purged
        detail = "" if purged else "staging area could not be purged"
        return EntityOutcome(
            entity,
            PassStatus.SUCCESS if success else PassStatus.FAILURE,
            uploaded=report.uploaded,
            deleted=report.deleted,
            failed=report.failed,
            detail=detail,
        )

    def _purge(self, staging: StagingArea) -> bool:
        try:
            staging.remove_scope()
        except StagingIOError as exc:
            logger.error("%s", exc)
            return False
        return True

    async def run_pass(self) -> list[EntityOutcome]:
        """Reconcile every eligible entity in turn, reporting each outcome.

        Raises:
            TransportError: If the entity list cannot be fetched.
        """
        outcomes: list[EntityOutcome] = []
        for entity in await self.select_entities():
            logger.info("Processing repo: %s", entity.name)
            try:
                outcome = await self.reconcile_entity(entity)
            except Exception as exc:
                logger.exception("Unexpected failure while reconciling %s", entity.name)
                outcome = EntityOutcome(
                    entity, PassStatus.FAILURE, detail=f"Unexpected error: {exc}"
                )
            logger.info("Finished %s: %s", entity.name, outcome.status)
            outcomes.append(outcome)
            if self.notifier is not None:
                await self.notifier.notify(outcome)
        return outcomes
