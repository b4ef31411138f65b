"""GitHub contents API access shared by the source provider and the result sink."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from eacchain.domain.shared.error import NotFoundError, TransportError

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


class GitHubRepository:
    """One repository branch reached through the contents API and raw downloads."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        owner: str,
        repo: str,
        branch: str = "main",
        token: str | None = None,
        api_url: str = "https://api.github.com",
        raw_url: str = "https://raw.githubusercontent.com",
    ) -> None:
        self._client = client
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.token = token
        self._api_url = api_url.rstrip("/")
        self._raw_url = raw_url.rstrip("/")

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def contents_url(self, path: str = "") -> str:
        base = f"{self._api_url}/repos/{self.owner}/{self.repo}/contents"
        return f"{base}/{quote(path.strip('/'))}" if path.strip("/") else base

    def raw_file_url(self, path: str) -> str:
        return f"{self._raw_url}/{self.owner}/{self.repo}/{self.branch}/{quote(path.strip('/'))}"

    async def list_contents(self, path: str = "") -> list[dict[str, Any]]:
        """Directory listing entries (`name`, `path`, `type`, `sha`)."""
        response = await self.request("GET", self.contents_url(path), params={"ref": self.branch})
        entries = response.json()
        if not isinstance(entries, list):
            raise TransportError(f"'{path or '/'}' is not a directory")
        return entries

    async def file_sha(self, path: str) -> str | None:
        """Blob sha of an existing file, or None if it does not exist yet."""
        try:
            response = await self.request(
                "GET", self.contents_url(path), params={"ref": self.branch}
            )
        except NotFoundError:
            return None
        return response.json().get("sha")

    async def download(self, url: str) -> httpx.Response:
        return await self.request("GET", url, authorized=url.startswith(self._raw_url))

    async def request(
        self,
        method: str,
        url: str,
        authorized: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and map failures.

        Raises:
            NotFoundError: 404 from GitHub.
            TransportError: Network failure or any other non-success status.
        """
        headers = self.headers if authorized else {}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{method} {url}: not found")
        if response.status_code >= 400:
            raise TransportError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}"
            )
        logger.debug(f"{method} {url} -> {response.status_code}")
        return response
