import httpx
import pytest

from sitecraft.config import settings
from sitecraft.database import get_db
from sitecraft.dependencies import (
    get_current_user,
    get_domain_config_provider,
    get_provider_factory,
    get_session_factory,
    get_task_service,
)
from sitecraft.main import create_app
from sitecraft.models.domain import DomainType
from sitecraft.models.project import ProjectStatus
from sitecraft.repositories.domain_repository import DomainRepository
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.task_service import TaskService


@pytest.fixture
def task_service():
    return TaskService()


@pytest.fixture
def app(db_session, user, session_factory, provider_factory, domain_config_provider, task_service, monkeypatch):
    monkeypatch.setattr(settings, "platform_domain", "platform.example")
    monkeypatch.setattr(settings, "alias_retry_wait_seconds", 0)
    monkeypatch.setattr(settings, "upload_retry_wait_seconds", 0)
    monkeypatch.setattr(settings, "admin_secret", "s3cret")

    async def override_get_db():
        yield db_session

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_provider_factory] = lambda: provider_factory
    app.dependency_overrides[get_domain_config_provider] = lambda: domain_config_provider
    app.dependency_overrides[get_task_service] = lambda: task_service
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_create_and_list_projects(client):
    response = await client.post(
        "/api/projects",
        json={
            "name": "Acme Bakery",
            "slug": "acme-bakery",
            "generationConfig": {"siteType": "business", "business": {"name": "Acme Bakery"}},
        },
    )
    assert response.status_code == 201
    assert response.json()["status"] == "draft"

    listing = await client.get("/api/projects")
    assert [p["slug"] for p in listing.json()["projects"]] == ["acme-bakery"]

    duplicate = await client.post(
        "/api/projects",
        json={"name": "Again", "slug": "acme-bakery", "generationConfig": {"business": {"name": "A"}}},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_generate_then_poll_status(client, make_project, task_service):
    project = await make_project("fresh", ProjectStatus.DRAFT)

    response = await client.post("/api/generate", json={"projectId": project.id})
    assert response.status_code == 202
    assert response.json()["version_number"] == 1

    for task in list(task_service._tasks):
        await task

    status = await client.get("/api/generate/status", params={"project_id": project.id})
    body = status.json()
    assert body["project_status"] == "generated"
    assert body["latest_version"]["status"] == "complete"
    assert body["file_count"] > 0


@pytest.mark.asyncio
async def test_publish_route(client, make_project, hosting):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    response = await client.post("/api/publish", json={"projectId": project.id})

    assert response.status_code == 200
    assert response.json()["url"] == "https://p-slug.platform.example"
    assert hosting.aliases == [("sc-p-slug", "p-slug.platform.example")]


@pytest.mark.asyncio
async def test_publish_draft_is_a_validation_error(client, make_project):
    project = await make_project("p-slug", ProjectStatus.DRAFT)

    response = await client.post("/api/publish", json={"projectId": project.id})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unknown_project_is_not_found(client):
    response = await client.get("/api/projects/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": {"message": "Project not found", "code": "NOT_FOUND"}}


@pytest.mark.asyncio
async def test_admin_requires_secret(client, make_project):
    await make_project("p-slug", ProjectStatus.PUBLISHED)

    missing = await client.post("/api/admin/republish-all")
    wrong = await client.post("/api/admin/republish-all", headers={"x-admin-secret": "nope"})
    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert missing.json() == {"error": {"message": "Unauthorized", "code": "UNAUTHORIZED"}}

    response = await client.post("/api/admin/republish-all", headers={"x-admin-secret": "s3cret"})
    assert response.status_code == 200
    body = response.json()
    assert (body["total"], body["succeeded"], body["failed"]) == (1, 1, 0)
    assert body["message"] == "Re-published 1/1 projects (0 failed)"


@pytest.mark.asyncio
async def test_admin_disabled_without_configured_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_secret", None)

    response = await client.post("/api/admin/republish-all", headers={"x-admin-secret": "anything"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_verify_other_users_domain_is_not_found(client, db_session, other_user):
    domain = await DomainRepository(db_session).create_domain(
        other_user.id, "www.someone.com", DomainType.CUSTOM
    )

    response = await client.post("/api/domains/verify", json={"domainId": domain.id})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_connect_domain_requires_published_project(client, make_project):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    response = await client.post(
        "/api/domains/connect", json={"projectId": project.id, "domain": "www.acme.com"}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_export_download(client, make_project):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    response = await client.get("/api/export/download", params={"project_id": project.id})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert 'filename="p-slug.zip"' in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_export_deploy_accepts_legacy_token_field(client, make_project, hosting):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    response = await client.post(
        "/api/export/deploy",
        json={"projectId": project.id, "vercelToken": "user-token", "projectName": "my-bakery"},
    )

    assert response.status_code == 200
    assert response.json()["deployment_id"] == "dpl_1"
    assert hosting.tokens == [("user-token", None)]


@pytest.mark.asyncio
async def test_unexpected_error_returns_generic_500(app, client, monkeypatch):
    async def explode(self, project_id, user_id=None):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(ProjectRepository, "get_project", explode)

    response = await client.get("/api/projects/anything")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "database on fire" not in response.text


@pytest.mark.asyncio
async def test_account_summary_counts_projects(client, make_project):
    await make_project("one-slug", ProjectStatus.DRAFT)
    await make_project("two-slug", ProjectStatus.GENERATED)
    await make_project("six-slug", ProjectStatus.GENERATED)

    response = await client.get("/api/auth/me")

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "owner@example.com"
    assert body["project_counts"] == {"draft": 1, "generated": 2}


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(app, client):
    del app.dependency_overrides[get_current_user]

    response = await client.get("/api/projects")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"
