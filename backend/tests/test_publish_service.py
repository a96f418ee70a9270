import asyncio

import pytest

from sitecraft.errors import DeploymentError, OperationTimeoutError, ProjectNotFoundError, ValidationError
from sitecraft.models.domain import DomainStatus, DomainType
from sitecraft.models.project import ProjectStatus
from sitecraft.providers.base import ProviderProject, ReadyState
from sitecraft.repositories.domain_repository import DomainRepository
from sitecraft.repositories.generation_repository import GenerationRepository
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.deployment_service import DeploymentOrchestrator
from sitecraft.services.generation_ledger import GenerationLedger
from sitecraft.services.publish_service import PlatformAccount, PublishCoordinator, PublishPolicy

ACCOUNT = PlatformAccount(token="platform-token", platform_domain="platform.example", team_id="team_p")


@pytest.fixture
def scheduled():
    return []


@pytest.fixture
def build_coordinator(db_session, provider_factory, scheduled):
    async def record(domains):
        scheduled.append([d.domain for d in domains])

    def factory(**policy):
        policy.setdefault("alias_retry_wait_seconds", 0)
        return PublishCoordinator(
            projects=ProjectRepository(db_session),
            domains=DomainRepository(db_session),
            ledger=GenerationLedger(GenerationRepository(db_session)),
            orchestrator=DeploymentOrchestrator(provider_factory, upload_retry_wait_seconds=0),
            account=ACCOUNT,
            policy=PublishPolicy(**policy),
            schedule_verification=record,
        )

    return factory


@pytest.fixture
def coordinator(build_coordinator):
    return build_coordinator()


@pytest.mark.asyncio
async def test_publish_generated_project(coordinator, make_project, user, hosting, db_session):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    result = await coordinator.publish(project.id, user.id)

    assert result.url == "https://p-slug.platform.example"
    assert result.domain == "p-slug.platform.example"
    assert result.provider_project_name == "sc-p-slug"
    assert result.ready_state is ReadyState.QUEUED

    # Only the two stored files are shipped
    assert len(hosting.uploads) == 2
    name, manifest, _ = hosting.deployments[0]
    assert name == "sc-p-slug"
    assert [entry.file for entry in manifest] == ["package.json", "src/app/layout.tsx"]
    assert hosting.aliases == [("sc-p-slug", "p-slug.platform.example")]
    assert hosting.tokens[0] == ("platform-token", "team_p")

    refreshed = await ProjectRepository(db_session).get_project(project.id)
    assert refreshed.status is ProjectStatus.PUBLISHED
    assert refreshed.published_url == "https://p-slug.platform.example"
    assert refreshed.deployment_url == "https://sc-p-slug-1.vercel.app"
    assert refreshed.provider_project_name == "sc-p-slug"
    # No provider project known: the deployment id stands in
    assert refreshed.provider_project_id == "dpl_1"
    assert refreshed.published_at is not None

    domains = await DomainRepository(db_session).list_project_domains(project.id)
    assert [(d.domain, d.domain_type, d.status) for d in domains] == [
        ("p-slug.platform.example", DomainType.SUBDOMAIN, DomainStatus.ACTIVE)
    ]


@pytest.mark.asyncio
async def test_republishing_reuses_provider_project_and_subdomain_row(
    coordinator, make_project, user, hosting, db_session
):
    project = await make_project("p-slug", ProjectStatus.GENERATED)
    hosting.projects["sc-p-slug"] = ProviderProject(id="prj_42", name="sc-p-slug")

    await coordinator.publish(project.id, user.id)
    await coordinator.publish(project.id, user.id)

    refreshed = await ProjectRepository(db_session).get_project(project.id)
    assert refreshed.provider_project_id == "prj_42"
    assert [d[0] for d in hosting.deployments] == ["sc-p-slug", "sc-p-slug"]
    domains = await DomainRepository(db_session).list_project_domains(project.id)
    assert len(domains) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ProjectStatus.DRAFT, ProjectStatus.ERROR])
async def test_unpublishable_status_is_rejected(coordinator, make_project, user, hosting, status):
    project = await make_project("p-slug", status)

    with pytest.raises(ValidationError):
        await coordinator.publish(project.id, user.id)

    assert hosting.tokens == []


@pytest.mark.asyncio
async def test_generated_project_without_complete_version_is_rejected(
    coordinator, user, db_session, generation_config
):
    projects = ProjectRepository(db_session)
    project = await projects.create_project(
        user_id=user.id,
        name="Bare",
        slug="bare",
        generation_config=generation_config,
    )
    await projects.update_project_status(project.id, ProjectStatus.GENERATING)
    await projects.update_project_status(project.id, ProjectStatus.GENERATED)

    with pytest.raises(ValidationError) as exc_info:
        await coordinator.publish(project.id, user.id)

    assert exc_info.value.message == "No completed generation found. Generate a website first."


@pytest.mark.asyncio
async def test_publish_scoped_to_owner(coordinator, make_project, other_user):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    with pytest.raises(ProjectNotFoundError):
        await coordinator.publish(project.id, other_user.id)


@pytest.mark.asyncio
async def test_deployment_failure_leaves_status_untouched(
    coordinator, make_project, user, hosting, db_session
):
    project = await make_project("p-slug", ProjectStatus.GENERATED)
    hosting.failing_projects.add("sc-p-slug")

    with pytest.raises(DeploymentError):
        await coordinator.publish(project.id, user.id)

    refreshed = await ProjectRepository(db_session).get_project(project.id)
    assert refreshed.status is ProjectStatus.GENERATED
    assert refreshed.published_url is None
    assert hosting.aliases == []


@pytest.mark.asyncio
async def test_alias_binding_is_retried(build_coordinator, make_project, user, hosting):
    project = await make_project("p-slug", ProjectStatus.GENERATED)
    hosting.alias_failures = 2

    result = await build_coordinator(alias_max_attempts=3).publish(project.id, user.id)

    assert result.url == "https://p-slug.platform.example"
    assert hosting.aliases == [("sc-p-slug", "p-slug.platform.example")]


@pytest.mark.asyncio
async def test_alias_failure_after_retries_fails_publish(
    build_coordinator, make_project, user, hosting, db_session
):
    project = await make_project("p-slug", ProjectStatus.GENERATED)
    hosting.alias_failures = 5

    with pytest.raises(DeploymentError) as exc_info:
        await build_coordinator(alias_max_attempts=2).publish(project.id, user.id)

    assert exc_info.value.details["domain"] == "p-slug.platform.example"
    refreshed = await ProjectRepository(db_session).get_project(project.id)
    assert refreshed.status is ProjectStatus.GENERATED


@pytest.mark.asyncio
async def test_active_custom_domain_becomes_public_url(
    coordinator, make_project, user, hosting, db_session
):
    project = await make_project("p-slug", ProjectStatus.PUBLISHED)
    await DomainRepository(db_session).create_domain(
        user.id,
        "www.acme.com",
        DomainType.CUSTOM,
        project_id=project.id,
        status=DomainStatus.ACTIVE,
        dns_configured=True,
    )

    result = await coordinator.publish(project.id, user.id)

    assert result.url == "https://www.acme.com"
    assert hosting.aliases == [
        ("sc-p-slug", "p-slug.platform.example"),
        ("sc-p-slug", "www.acme.com"),
    ]
    refreshed = await ProjectRepository(db_session).get_project(project.id)
    assert refreshed.published_url == "https://www.acme.com"


@pytest.mark.asyncio
async def test_pending_custom_domains_are_scheduled_for_verification(
    coordinator, make_project, user, db_session, scheduled
):
    project = await make_project("p-slug", ProjectStatus.GENERATED)
    await DomainRepository(db_session).create_domain(
        user.id, "shop.acme.com", DomainType.CUSTOM, project_id=project.id
    )

    result = await coordinator.publish(project.id, user.id)

    assert result.url == "https://p-slug.platform.example"
    assert scheduled == [["shop.acme.com"]]


@pytest.mark.asyncio
async def test_publish_times_out(build_coordinator, make_project, user, hosting, db_session):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    async def stalled_upload(content, digest):
        await asyncio.sleep(5)

    hosting.upload_file = stalled_upload

    with pytest.raises(OperationTimeoutError):
        await build_coordinator(timeout_seconds=0.05).publish(project.id, user.id)

    refreshed = await ProjectRepository(db_session).get_project(project.id)
    assert refreshed.status is ProjectStatus.GENERATED


@pytest.mark.asyncio
async def test_republish_all_continues_past_failures(coordinator, make_project, hosting):
    first = await make_project("alpha", ProjectStatus.PUBLISHED)
    second = await make_project("bravo", ProjectStatus.PUBLISHED)
    third = await make_project("charlie", ProjectStatus.PUBLISHED)
    await make_project("draft-only", ProjectStatus.DRAFT)
    hosting.failing_projects.add("sc-bravo")

    report = await coordinator.republish_all()

    assert report.total == 3
    assert report.succeeded == 2
    assert report.failed == 1
    assert report.message == "Re-published 2/3 projects (1 failed)"
    outcomes = {outcome.id: outcome for outcome in report.results}
    assert outcomes[first.id].success
    assert outcomes[first.id].url == "https://alpha.platform.example"
    assert outcomes[third.id].success
    assert not outcomes[second.id].success
    assert "deployment quota" in outcomes[second.id].error


@pytest.mark.asyncio
async def test_republish_all_with_nothing_published(coordinator, make_project):
    await make_project("p-slug", ProjectStatus.GENERATED)

    report = await coordinator.republish_all()

    assert report.message == "No published projects found"
    assert report.total == 0
