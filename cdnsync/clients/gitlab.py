"""GitLab source store client using the GitLab REST API."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from cdnsync.exceptions import TransportError
from cdnsync.schemas.gitlab import PROJECT_LIST_ADAPTER, GitLabProject
from cdnsync.schemas.manifest import GitLabNotFound

logger = logging.getLogger(__name__)

_PER_PAGE = 100
_NOT_FOUND_MESSAGES = frozenset({"404 File Not Found", "404 Not Found"})


def _is_embedded_not_found(content: bytes) -> bool:
    """Detect GitLab's ``{"message": "404 File Not Found"}`` body served with a 2xx status."""
    try:
        body = GitLabNotFound.model_validate_json(content)
    except ValidationError:
        return False
    return body.message in _NOT_FOUND_MESSAGES


class GitLabClient:
    """Reads projects and raw repository files from a GitLab instance."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        token: str,
        ref: str = "main",
    ) -> None:
        self._http = http_client
        self.base_url = base_url.rstrip("/")
        self._headers = {"PRIVATE-TOKEN": token}
        self.ref = ref

    async def _get(self, url: str, params: dict[str, str | int] | None = None) -> httpx.Response:
        try:
            resp = await self._http.get(url, headers=self._headers, params=params)
        except httpx.HTTPError as exc:
            msg = f"GitLab request failed: {exc}"
            raise TransportError(msg) from exc
        if not resp.is_success:
            msg = f"GitLab returned {resp.status_code} for {url}"
            raise TransportError(msg, status_code=resp.status_code)
        return resp

    async def list_projects(self) -> list[GitLabProject]:
        """List every visible project, following ``X-Next-Page`` pagination."""
        projects: list[GitLabProject] = []
        page: str | None = "1"
        while page:
            resp = await self._get(
                f"{self.base_url}/api/v4/projects",
                params={"per_page": _PER_PAGE, "page": page},
            )
            try:
                projects.extend(PROJECT_LIST_ADAPTER.validate_json(resp.content))
            except ValidationError as exc:
                msg = "Malformed project list from GitLab"
                raise TransportError(msg, status_code=resp.status_code) from exc
            page = resp.headers.get("X-Next-Page") or None
        logger.debug("Listed %d GitLab projects", len(projects))
        return projects

    def _file_url(self, project_id: int, file_path: str) -> str:
        encoded = quote(file_path, safe="")
        return f"{self.base_url}/api/v4/projects/{project_id}/repository/files/{encoded}/raw"

    async def get_file(self, project_id: int, file_path: str) -> bytes:
        """Fetch a raw file from the configured ref."""
        resp = await self._get(self._file_url(project_id, file_path), params={"ref": self.ref})
        return resp.content

    async def get_optional_file(self, project_id: int, file_path: str) -> bytes | None:
        """Fetch a raw file, returning None when GitLab reports it missing."""
        try:
            content = await self.get_file(project_id, file_path)
        except TransportError as exc:
            if exc.is_not_found:
                return None
            raise
        if _is_embedded_not_found(content):
            return None
        return content
