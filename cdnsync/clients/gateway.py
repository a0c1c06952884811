"""Routes entity lookups and object operations to the GitLab and BunnyCDN clients."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

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
from cdnsync.schemas.manifest import SyncConfigDocument

if TYPE_CHECKING:
    from cdnsync.clients.bunny import BunnyStorageClient
    from cdnsync.clients.gitlab import GitLabClient

logger = logging.getLogger(__name__)


class ObjectGateway:
    """GitLab repositories as the source store, a BunnyCDN storage zone as the mirror."""

    def __init__(
        self,
        gitlab: GitLabClient,
        bunny: BunnyStorageClient,
        manifest_file_name: str = "kushn_result.json",
        eligibility_file_name: str = "sync_config.json",
    ) -> None:
        self.gitlab = gitlab
        self.bunny = bunny
        self.manifest_file_name = manifest_file_name
        self.eligibility_file_name = eligibility_file_name

    async def list_entities(self) -> list[Entity]:
        projects = await self.gitlab.list_projects()
        return [Entity(id=project.id, name=project.name) for project in projects]

    async def fetch_eligibility(self, entity: Entity) -> Eligibility | None:
        """Read the entity's eligibility document.

        Raises:
            pydantic.ValidationError: If the document is present but malformed.
        """
        raw = await self.gitlab.get_optional_file(entity.id, self.eligibility_file_name)
        if raw is None:
            logger.info(
                "%s not found for %s, treating as not eligible",
                self.eligibility_file_name,
                entity.name,
            )
            return None
        document = SyncConfigDocument.model_validate_json(raw)
        return Eligibility(sync=document.sync, kind=document.type)

    async def fetch_manifest(self, entity: Entity, store: Store) -> bytes | None:
        if store is Store.SOURCE:
            return await self.gitlab.get_optional_file(entity.id, self.manifest_file_name)
        return await self.bunny.get_optional(entity.name, self.manifest_file_name)

    async def execute(self, operation: ObjectOperation) -> bytes | None:
        if isinstance(operation, SourceGet):
            return await self.gitlab.get_file(operation.entity.id, operation.file_path)
        if isinstance(operation, MirrorPut):
            await self.bunny.put(operation.entity.name, operation.file_path, operation.body)
            return None
        if isinstance(operation, MirrorDelete):
            await self.bunny.delete(operation.entity.name, operation.file_path)
            return None
        if isinstance(operation, CachePurge):
            await self.bunny.purge(operation.entity.name, operation.file_path)
            return None
        msg = f"Unsupported object operation: {type(operation).__name__}"
        raise TypeError(msg)
