import pytest

from sitecraft.errors import DeploymentError, DomainNotFoundError, ValidationError
from sitecraft.models.domain import DomainStatus, DomainType
from sitecraft.models.project import ProjectStatus
from sitecraft.providers.base import DomainConfig, ProviderRequestError
from sitecraft.repositories.domain_repository import DomainRepository
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.domain_service import (
    DomainVerificationChecker,
    normalize_fqdn,
    verify_domains_in_background,
)

CNAME = "cname.platform-dns.example"


@pytest.fixture
def domains(db_session):
    return DomainRepository(db_session)


@pytest.fixture
def build_checker(domains, domain_config_provider):
    def factory(max_attempts=None):
        return DomainVerificationChecker(
            domains,
            domain_config_provider,
            cname_target=CNAME,
            max_attempts=max_attempts,
        )

    return factory


@pytest.fixture
async def pending_domain(domains, make_project, user):
    project = await make_project("p-slug", ProjectStatus.PUBLISHED)
    return await domains.create_domain(user.id, "www.acme.com", DomainType.CUSTOM, project_id=project.id)


@pytest.mark.asyncio
async def test_unconfigured_domain_stays_pending(build_checker, pending_domain, user, domains):
    result = await build_checker().check_domain(pending_domain.id, user.id)

    assert result.verified is False
    assert result.status is DomainStatus.PENDING
    assert result.configured is False
    assert result.message == (
        f"DNS records not yet detected. Please add a CNAME record pointing to {CNAME}"
    )
    stored = await domains.get_domain(pending_domain.id)
    assert stored.status is DomainStatus.PENDING
    # Unbounded checks do not count attempts
    assert stored.verification_attempts == 0


@pytest.mark.asyncio
async def test_configured_but_unverified_domain(build_checker, pending_domain, user, domain_config_provider):
    domain_config_provider.configs["www.acme.com"] = DomainConfig(configured=True, verified=False)

    result = await build_checker().check_domain(pending_domain.id, user.id)

    assert result.status is DomainStatus.PENDING
    assert result.configured is True
    assert result.message == "DNS is configured but not yet verified. This may take a few more minutes."


@pytest.mark.asyncio
async def test_verified_domain_becomes_active(build_checker, pending_domain, user, domains, domain_config_provider):
    domain_config_provider.configs["www.acme.com"] = DomainConfig(configured=True, verified=True)

    result = await build_checker().check_domain(pending_domain.id, user.id)

    assert result.verified is True
    assert result.status is DomainStatus.ACTIVE
    stored = await domains.get_domain(pending_domain.id)
    assert stored.status is DomainStatus.ACTIVE
    assert stored.dns_configured is True


@pytest.mark.asyncio
async def test_active_domain_is_not_rechecked(build_checker, pending_domain, user, domains, domain_config_provider):
    await domains.mark_active(pending_domain.id)

    result = await build_checker().check_domain(pending_domain.id, user.id)

    assert result.verified is True
    assert result.status is DomainStatus.ACTIVE
    assert domain_config_provider.calls == []


@pytest.mark.asyncio
async def test_other_users_domain_is_not_found(build_checker, pending_domain, other_user):
    with pytest.raises(DomainNotFoundError):
        await build_checker().check_domain(pending_domain.id, other_user.id)


@pytest.mark.asyncio
async def test_bounded_verification_gives_up(build_checker, pending_domain, user, domains, domain_config_provider):
    checker = build_checker(max_attempts=2)

    first = await checker.check_domain(pending_domain.id, user.id)
    second = await checker.check_domain(pending_domain.id, user.id)
    third = await checker.check_domain(pending_domain.id, user.id)

    assert first.status is DomainStatus.PENDING
    assert second.status is DomainStatus.FAILED
    assert third.status is DomainStatus.FAILED
    assert len(domain_config_provider.calls) == 2
    stored = await domains.get_domain(pending_domain.id)
    assert stored.verification_attempts == 2


@pytest.mark.asyncio
async def test_provider_error_surfaces_as_deployment_error(build_checker, pending_domain, user, domain_config_provider):
    async def broken(domain):
        raise ProviderRequestError("dns api down", status_code=503)

    domain_config_provider.get_domain_config = broken

    with pytest.raises(DeploymentError):
        await build_checker().check_domain(pending_domain.id, user.id)


@pytest.mark.asyncio
async def test_background_verification_uses_its_own_session(
    session_factory, pending_domain, domains, domain_config_provider
):
    domain_config_provider.configs["www.acme.com"] = DomainConfig(configured=True, verified=True)

    await verify_domains_in_background(
        session_factory,
        domain_config_provider,
        [pending_domain.id],
        cname_target=CNAME,
    )

    assert (await domains.get_domain(pending_domain.id)).status is DomainStatus.ACTIVE


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Acme.COM", "acme.com"),
        ("  shop.acme.co.uk. ", "shop.acme.co.uk"),
        ("my-site.example.org", "my-site.example.org"),
    ],
)
def test_normalize_fqdn(raw, expected):
    assert normalize_fqdn(raw) == expected


@pytest.mark.parametrize("raw", ["localhost", "-bad.example.com", "acme..com", "http://acme.com", "acme.c"])
def test_normalize_fqdn_rejects_invalid(raw):
    with pytest.raises(ValidationError) as exc_info:
        normalize_fqdn(raw)
    assert exc_info.value.message == "Invalid domain format"


async def _published_with_provider(make_project, db_session):
    project = await make_project("p-slug", ProjectStatus.PUBLISHED)
    return await ProjectRepository(db_session).record_deployment(
        project.id,
        status=ProjectStatus.PUBLISHED,
        public_url="https://p-slug.platform.example",
        deployment_url="https://sc-p-slug-1.vercel.app",
        provider_project_name="sc-p-slug",
    )


@pytest.mark.asyncio
async def test_attach_unverified_custom_domain(build_checker, make_project, user, db_session, domains, hosting):
    project = await _published_with_provider(make_project, db_session)
    hosting.alias_config = DomainConfig(configured=False, verified=False)
    projects = ProjectRepository(db_session)

    attachment = await build_checker().attach_custom_domain(
        project.id, user.id, "WWW.Acme.com", projects=projects, hosting=hosting
    )

    assert attachment.verification_needed is True
    assert attachment.domain.domain == "www.acme.com"
    assert attachment.domain.status is DomainStatus.PENDING
    assert any(CNAME in line for line in attachment.instructions)
    assert hosting.aliases == [("sc-p-slug", "www.acme.com")]
    assert (await projects.get_project(project.id)).custom_domain == "www.acme.com"


@pytest.mark.asyncio
async def test_attach_replaces_previous_custom_domain(build_checker, make_project, user, db_session, domains, hosting):
    project = await _published_with_provider(make_project, db_session)
    projects = ProjectRepository(db_session)
    checker = build_checker()

    await checker.attach_custom_domain(project.id, user.id, "old.acme.com", projects=projects, hosting=hosting)
    attachment = await checker.attach_custom_domain(
        project.id, user.id, "new.acme.com", projects=projects, hosting=hosting
    )

    assert attachment.verification_needed is False
    assert attachment.instructions == []
    custom = [d for d in await domains.list_project_domains(project.id) if d.domain_type is DomainType.CUSTOM]
    assert [(d.domain, d.status) for d in custom] == [("new.acme.com", DomainStatus.ACTIVE)]


@pytest.mark.asyncio
async def test_attach_requires_published_project(build_checker, make_project, user, db_session, hosting):
    project = await make_project("p-slug", ProjectStatus.GENERATED)

    with pytest.raises(ValidationError):
        await build_checker().attach_custom_domain(
            project.id, user.id, "www.acme.com", projects=ProjectRepository(db_session), hosting=hosting
        )

    assert hosting.aliases == []
