"""HTTP client for the target code-hosting system.

Only the read calls needed by the incremental remap are implemented.
Repository references are ``space/.../repo`` paths; slashes are encoded
as ``%2F`` so the whole reference is one path segment.
"""

from __future__ import annotations

from typing import Any, Self

import httpx

from scm_migrate.config import get_settings
from scm_migrate.logging import get_logger
from scm_migrate.schemas import RepoSettings, TargetRepository

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class TargetClientError(Exception):
    """Raised when a target-system request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TargetNotFoundError(TargetClientError):
    """Raised when the requested resource does not exist (404)."""

    pass


def encode_repo_ref(repo_ref: str) -> str:
    """Encode a repository reference as a single path segment."""
    return repo_ref.strip("/").replace("/", "%2F")


class TargetClient:
    """Async client for the target system's REST API.

    Usage:
        async with TargetClient() as client:
            settings = await client.find_repo_settings("acme/widgets")
            repo = await client.get_repository("acme/widgets")
    """

    def __init__(
        self,
        endpoint: str | None = None,
        token: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Base URL of the target system (defaults to TARGET_ENDPOINT)
            token: API token (defaults to TARGET_TOKEN)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (used by tests)

        Raises:
            TargetClientError: If no endpoint is configured
        """
        settings = get_settings()
        self._endpoint = (endpoint or settings.target_endpoint).rstrip("/")
        if not self._endpoint:
            raise TargetClientError(
                "Target endpoint required. Set TARGET_ENDPOINT environment variable."
            )
        self._token = token if token is not None else settings.target_token
        self._client = httpx.AsyncClient(
            headers={"Authorization": self._token} if self._token else {},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def find_repo_settings(self, repo_ref: str) -> RepoSettings:
        """Get the general settings of a repository.

        Raises:
            TargetNotFoundError: If the repository does not exist
            TargetClientError: On any other failure
        """
        data = await self._get(f"/api/v1/repos/{encode_repo_ref(repo_ref)}/settings/general")
        return RepoSettings.from_payload(data)

    async def get_repository(self, repo_ref: str) -> TargetRepository:
        """Get repository metadata, including its highest pull request number.

        Raises:
            TargetNotFoundError: If the repository does not exist
            TargetClientError: On any other failure
        """
        data = await self._get(f"/api/v1/repos/{encode_repo_ref(repo_ref)}")
        return TargetRepository.from_payload(data)

    async def _get(self, path: str) -> Any:
        url = f"{self._endpoint}{path}"
        logger.debug("GET {}", url)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise TargetClientError(f"request to {url} failed: {e}") from e

        if response.status_code == 404:
            raise TargetNotFoundError(f"{url} not found", status_code=404)
        if response.is_error:
            raise TargetClientError(
                f"{url} returned {response.status_code}: {response.text.strip()}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TargetClientError(f"{url} returned invalid JSON: {e}") from e
