"""Manifest and eligibility document schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ManifestEntry(BaseModel):
    """Single ``{"path", "hash"}`` record in a manifest file."""

    model_config = ConfigDict(extra="ignore")

    path: str
    hash: str


class SyncConfigDocument(BaseModel):
    """Per-repository eligibility document (``sync_config.json``)."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    sync: bool = False


class GitLabNotFound(BaseModel):
    """Error-shaped body GitLab returns for a missing file."""

    message: str = Field(default="")


MANIFEST_ADAPTER: TypeAdapter[list[ManifestEntry]] = TypeAdapter(list[ManifestEntry])
