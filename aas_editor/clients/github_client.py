"""
GitHub API client for the template catalog.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class GitHubClient:
    """
    Async client for the GitHub contents API.

    The httpx client is created on first use; a custom transport can be
    injected to answer requests locally.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        api_version: str = "2022-11-28",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.api_version = api_version
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.api_version,
            "User-Agent": "AAS-Editor/1.0",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                headers=self.headers,
                timeout=30.0,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def get_contents(self, repo: str, path: str) -> list[dict[str, Any]]:
        """
        List a repository directory.

        Args:
            repo: Repository in "owner/name" format
            path: Directory path within the repository

        Returns:
            Directory entries (name, path, type, ...)

        Raises:
            httpx.HTTPStatusError: On HTTP errors
            ValueError: If the path is not a directory
        """
        client = await self._get_client()
        response = await client.get(f"/repos/{repo}/contents/{path}")
        if response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
            logger.warning("GitHub rate limit exhausted for %s", repo)
        response.raise_for_status()

        entries = response.json()
        if not isinstance(entries, list):
            raise ValueError(f"'{path}' in {repo} is not a directory")
        return entries

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
