"""GitLab API response schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, TypeAdapter


class GitLabProject(BaseModel):
    """The subset of a GitLab project record the service reads."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


PROJECT_LIST_ADAPTER: TypeAdapter[list[GitLabProject]] = TypeAdapter(list[GitLabProject])
