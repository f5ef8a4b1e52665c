"""Tests for the target-system HTTP client."""

import httpx
import pytest

from scm_migrate.importer import (
    TargetClient,
    TargetClientError,
    TargetNotFoundError,
    encode_repo_ref,
)

ENDPOINT = "https://target.example.com"


def client_with(handler) -> TargetClient:
    return TargetClient(ENDPOINT, "secret-token", transport=httpx.MockTransport(handler))


class TestEncodeRepoRef:
    """Tests for repository reference encoding."""

    def test_slashes_encoded(self):
        assert encode_repo_ref("space/sub/widgets") == "space%2Fsub%2Fwidgets"

    def test_surrounding_slashes_stripped(self):
        assert encode_repo_ref("/acme/widgets/") == "acme%2Fwidgets"


class TestTargetClient:
    """Tests for TargetClient requests and error mapping."""

    def test_endpoint_required(self):
        with pytest.raises(TargetClientError, match="TARGET_ENDPOINT"):
            TargetClient()

    def test_endpoint_from_settings(self, monkeypatch):
        monkeypatch.setenv("TARGET_ENDPOINT", ENDPOINT + "/")
        client = TargetClient()
        assert client._endpoint == ENDPOINT

    async def test_find_repo_settings(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"file_size_limit": 1024, "git_lfs_enabled": True})

        async with client_with(handler) as client:
            settings = await client.find_repo_settings("acme/widgets")

        assert settings.file_size_limit == 1024
        assert settings.git_lfs_enabled is True
        assert seen[0].url.raw_path == b"/api/v1/repos/acme%2Fwidgets/settings/general"
        assert seen[0].headers["Authorization"] == "secret-token"

    async def test_get_repository(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.raw_path == b"/api/v1/repos/acme%2Fwidgets"
            return httpx.Response(
                200,
                json={
                    "identifier": "widgets",
                    "path": "acme/widgets",
                    "default_branch": "main",
                    "num_pulls": 17,
                    "is_public": False,
                },
            )

        async with client_with(handler) as client:
            repo = await client.get_repository("acme/widgets")

        assert repo.pull_request_number == 17
        assert repo.path == "acme/widgets"

    async def test_missing_pull_count_defaults_to_zero(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"identifier": "widgets"})

        async with client_with(handler) as client:
            repo = await client.get_repository("acme/widgets")

        assert repo.pull_request_number == 0

    async def test_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Repository not found"})

        async with client_with(handler) as client:
            with pytest.raises(TargetNotFoundError) as exc_info:
                await client.find_repo_settings("acme/missing")

        assert exc_info.value.status_code == 404

    async def test_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal error")

        async with client_with(handler) as client:
            with pytest.raises(TargetClientError, match="internal error") as exc_info:
                await client.get_repository("acme/widgets")

        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, TargetNotFoundError)

    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        async with client_with(handler) as client:
            with pytest.raises(TargetClientError, match="invalid JSON"):
                await client.get_repository("acme/widgets")

    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with client_with(handler) as client:
            with pytest.raises(TargetClientError, match="connection refused"):
                await client.find_repo_settings("acme/widgets")

    async def test_no_token_no_header(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = TargetClient(ENDPOINT, "", transport=httpx.MockTransport(handler))
        async with client:
            await client.find_repo_settings("acme/widgets")

        assert "Authorization" not in seen[0].headers
