import json

import httpx
import pytest
import respx

from sitecraft.providers.base import ManifestEntry, ProviderRequestError, ReadyState
from sitecraft.providers.vercel import VercelClient

API = "https://api.vercel.com"


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def client(http_client):
    return VercelClient(http_client, "tok_test", team_id="team_1")


@pytest.mark.asyncio
async def test_upload_file_sends_digest_and_team_scope(client):
    async with respx.mock(base_url=API) as respx_mock:
        route = respx_mock.post("/v2/files").mock(return_value=httpx.Response(200, json={}))

        await client.upload_file(b"hello", "aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d")

        request = route.calls.last.request
        assert request.headers["authorization"] == "Bearer tok_test"
        assert request.headers["x-vercel-digest"] == "aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d"
        assert request.headers["content-type"] == "application/octet-stream"
        assert request.url.params["teamId"] == "team_1"
        assert request.content == b"hello"


@pytest.mark.asyncio
async def test_upload_failure_raises_provider_error(client):
    async with respx.mock(base_url=API) as respx_mock:
        respx_mock.post("/v2/files").mock(
            return_value=httpx.Response(
                413, json={"error": {"code": "file_too_large", "message": "File too large"}}
            )
        )

        with pytest.raises(ProviderRequestError) as exc_info:
            await client.upload_file(b"x", "digest")

    assert exc_info.value.status_code == 413
    assert exc_info.value.code == "file_too_large"
    assert "File too large" in str(exc_info.value)


@pytest.mark.asyncio
async def test_create_deployment_posts_manifest(client):
    async with respx.mock(base_url=API) as respx_mock:
        route = respx_mock.post("/v13/deployments").mock(
            return_value=httpx.Response(
                200,
                json={"id": "dpl_123", "url": "sc-acme-abc.vercel.app", "readyState": "QUEUED"},
            )
        )

        result = await client.create_deployment(
            "sc-acme",
            [ManifestEntry(file="package.json", sha="abc", size=16)],
            framework="nextjs",
        )

        payload = json.loads(route.calls.last.request.content)

    assert payload == {
        "name": "sc-acme",
        "files": [{"file": "package.json", "sha": "abc", "size": 16}],
        "projectSettings": {"framework": "nextjs"},
    }
    assert result.deployment_id == "dpl_123"
    assert result.url == "https://sc-acme-abc.vercel.app"
    assert result.ready_state is ReadyState.QUEUED


@pytest.mark.asyncio
async def test_deployment_status_normalizes_ready_state(client):
    async with respx.mock(base_url=API) as respx_mock:
        respx_mock.get("/v13/deployments/dpl_123").mock(
            return_value=httpx.Response(200, json={"url": "sc-acme-abc.vercel.app", "readyState": "INITIALIZING"})
        )

        status = await client.get_deployment("dpl_123")

    assert status.ready_state is ReadyState.BUILDING
    assert status.url == "https://sc-acme-abc.vercel.app"


def test_ready_state_mapping():
    assert ReadyState.from_provider("READY") is ReadyState.READY
    assert ReadyState.from_provider("CANCELLED") is ReadyState.CANCELED
    assert ReadyState.from_provider(None) is ReadyState.QUEUED
    assert ReadyState.from_provider("something-new") is ReadyState.QUEUED


@pytest.mark.asyncio
async def test_add_domain_alias_returns_configuration(client):
    async with respx.mock(base_url=API) as respx_mock:
        route = respx_mock.post("/v10/projects/sc-acme/domains").mock(
            return_value=httpx.Response(200, json={"name": "acme.com", "verified": False})
        )

        config = await client.add_domain_alias("sc-acme", "acme.com")

        assert json.loads(route.calls.last.request.content) == {"name": "acme.com"}

    assert config.configured is False
    assert config.verified is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(409, json={"error": {"code": "conflict", "message": "Conflict"}}),
        httpx.Response(400, json={"error": {"code": "domain_already_in_use", "message": "In use"}}),
        httpx.Response(400, json={"error": {"code": "bad_request", "message": "Domain already assigned"}}),
    ],
)
async def test_already_assigned_alias_counts_as_success(client, response):
    async with respx.mock(base_url=API) as respx_mock:
        respx_mock.post("/v10/projects/sc-acme/domains").mock(return_value=response)

        config = await client.add_domain_alias("sc-acme", "acme.com")

    assert config.configured is True
    assert config.verified is True


@pytest.mark.asyncio
async def test_alias_failure_raises_provider_error(client):
    async with respx.mock(base_url=API) as respx_mock:
        respx_mock.post("/v10/projects/sc-acme/domains").mock(
            return_value=httpx.Response(403, json={"error": {"code": "forbidden", "message": "Not allowed"}})
        )

        with pytest.raises(ProviderRequestError) as exc_info:
            await client.add_domain_alias("sc-acme", "acme.com")

    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_get_project_returns_none_when_missing(client):
    async with respx.mock(base_url=API) as respx_mock:
        respx_mock.get("/v9/projects/sc-missing").mock(return_value=httpx.Response(404))
        respx_mock.get("/v9/projects/sc-acme").mock(
            return_value=httpx.Response(200, json={"id": "prj_1", "name": "sc-acme"})
        )

        assert await client.get_project("sc-missing") is None
        project = await client.get_project("sc-acme")

    assert project.id == "prj_1"


@pytest.mark.asyncio
async def test_domain_config_treats_errors_as_unconfigured(client):
    async with respx.mock(base_url=API) as respx_mock:
        respx_mock.get("/v6/domains/new.example.com/config").mock(return_value=httpx.Response(404))
        respx_mock.get("/v6/domains/acme.com/config").mock(
            return_value=httpx.Response(
                200, json={"configured": True, "verified": True, "cnames": ["cname.vercel-dns.com"]}
            )
        )

        missing = await client.get_domain_config("new.example.com")
        ready = await client.get_domain_config("acme.com")

    assert (missing.configured, missing.verified) == (False, False)
    assert ready.configured is True
    assert ready.cnames == ["cname.vercel-dns.com"]


@pytest.mark.asyncio
async def test_transport_errors_become_provider_errors(client):
    async with respx.mock(base_url=API) as respx_mock:
        respx_mock.get("/v13/deployments/dpl_1").mock(side_effect=httpx.ConnectError("boom"))

        with pytest.raises(ProviderRequestError):
            await client.get_deployment("dpl_1")
