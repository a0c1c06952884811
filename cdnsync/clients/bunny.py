"""BunnyCDN storage zone and pull-zone cache client."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from cdnsync.exceptions import TransportError

logger = logging.getLogger(__name__)


class BunnyStorageClient:
    """Reads, writes and deletes files in a storage zone and purges its edge cache.

    Files live under ``<storage_url>/<pull_zone>/<entity>/<path>``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        storage_url: str,
        api_url: str,
        pull_zone: str,
        api_key: str,
    ) -> None:
        self._http = http_client
        self.storage_url = storage_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.pull_zone = pull_zone.strip("/")
        self._headers = {"AccessKey": api_key}

    def object_path(self, entity_name: str, file_path: str) -> str:
        return f"{self.pull_zone}/{entity_name}/{file_path.lstrip('/')}"

    def object_url(self, entity_name: str, file_path: str) -> str:
        """Storage URL with the object path percent-encoded, keeping ``/`` separators."""
        encoded = quote(self.object_path(entity_name, file_path), safe="/")
        return f"{self.storage_url}/{encoded}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        content: bytes | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        logger.debug("BunnyCDN %s %s", method, url)
        headers = dict(self._headers)
        if content is not None:
            headers["Content-Type"] = "application/octet-stream"
        try:
            resp = await self._http.request(
                method, url, headers=headers, content=content, params=params
            )
        except httpx.HTTPError as exc:
            msg = f"BunnyCDN {method} request failed: {exc}"
            raise TransportError(msg) from exc
        if not resp.is_success:
            msg = f"BunnyCDN returned {resp.status_code} on {method} {url}"
            raise TransportError(msg, status_code=resp.status_code)
        return resp

    async def get(self, entity_name: str, file_path: str) -> bytes:
        resp = await self._request("GET", self.object_url(entity_name, file_path))
        return resp.content

    async def get_optional(self, entity_name: str, file_path: str) -> bytes | None:
        """Fetch a file, returning None on 404."""
        try:
            return await self.get(entity_name, file_path)
        except TransportError as exc:
            if exc.is_not_found:
                return None
            raise

    async def put(self, entity_name: str, file_path: str, body: bytes) -> None:
        await self._request("PUT", self.object_url(entity_name, file_path), content=body)

    async def delete(self, entity_name: str, file_path: str) -> None:
        await self._request("DELETE", self.object_url(entity_name, file_path))

    async def purge(self, entity_name: str, file_path: str) -> None:
        """Invalidate the pull-zone cache for one file."""
        await self._request(
            "POST",
            f"{self.api_url}/api/purge",
            params={"url": self.object_path(entity_name, file_path)},
        )
