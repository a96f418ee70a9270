from __future__ import annotations

from collections.abc import Sequence

import pytest

from sitecraft.database import create_engine, create_session_factory, init_db
from sitecraft.models.generation import (
    FileKind,
    GeneratedFileCreate,
    GenerationMetrics,
    TriggerType,
)
from sitecraft.models.project import Project, ProjectStatus
from sitecraft.models.site_config import BusinessInfo, GenerationConfig
from sitecraft.models.user import User
from sitecraft.providers.base import (
    DeploymentResult,
    DeploymentStatus,
    DomainConfig,
    ManifestEntry,
    ProviderProject,
    ProviderRequestError,
    ReadyState,
)
from sitecraft.repositories.generation_repository import GenerationRepository
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.generation_ledger import GenerationLedger

DEFAULT_FILES = (
    ("package.json", '{"name": "acme"}', FileKind.CONFIG),
    ("src/app/layout.tsx", "export default function RootLayout() {}", FileKind.PAGE),
)


class FakeHostingProvider:
    """In-memory hosting provider that records every call."""

    def __init__(self) -> None:
        self.tokens: list[tuple[str, str | None]] = []
        self.uploads: list[tuple[str, bytes]] = []
        self.deployments: list[tuple[str, list[ManifestEntry], str]] = []
        self.aliases: list[tuple[str, str]] = []
        self.upload_failures: dict[str, int] = {}
        self.failing_projects: set[str] = set()
        self.alias_failures = 0
        self.alias_config = DomainConfig(configured=True, verified=True)
        self.projects: dict[str, ProviderProject] = {}
        self.statuses: dict[str, DeploymentStatus] = {}

    async def upload_file(self, content: bytes, digest: str) -> None:
        remaining = self.upload_failures.get(digest, 0)
        if remaining:
            self.upload_failures[digest] = remaining - 1
            raise ProviderRequestError("upload rejected", status_code=500)
        self.uploads.append((digest, content))

    async def create_deployment(
        self,
        name: str,
        files: Sequence[ManifestEntry],
        *,
        framework: str,
    ) -> DeploymentResult:
        if name in self.failing_projects:
            raise ProviderRequestError("Project is over its deployment quota", status_code=402)
        self.deployments.append((name, list(files), framework))
        number = len(self.deployments)
        return DeploymentResult(
            deployment_id=f"dpl_{number}",
            url=f"https://{name}-{number}.vercel.app",
            ready_state=ReadyState.QUEUED,
        )

    async def get_deployment(self, deployment_id: str) -> DeploymentStatus:
        if deployment_id not in self.statuses:
            raise ProviderRequestError("Deployment not found", status_code=404)
        return self.statuses[deployment_id]

    async def add_domain_alias(self, project_name: str, domain: str) -> DomainConfig:
        if self.alias_failures:
            self.alias_failures -= 1
            raise ProviderRequestError("alias service unavailable", status_code=503)
        self.aliases.append((project_name, domain))
        return self.alias_config

    async def get_project(self, project_name: str) -> ProviderProject | None:
        return self.projects.get(project_name)


class FakeDomainConfigProvider:
    def __init__(self, configs: dict[str, DomainConfig] | None = None) -> None:
        self.configs = configs or {}
        self.calls: list[str] = []

    async def get_domain_config(self, domain: str) -> DomainConfig:
        self.calls.append(domain)
        return self.configs.get(domain, DomainConfig(configured=False, verified=False))


@pytest.fixture
async def engine(tmp_path):
    # File-backed so separate sessions see each other's commits
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'sitecraft-test.db'}")
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(db_session):
    user = User(id="user-1", email="owner@example.com", name="Owner")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def other_user(db_session):
    user = User(id="user-2", email="someone@example.com", name="Someone")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def generation_config() -> GenerationConfig:
    return GenerationConfig(
        business=BusinessInfo(
            name="Acme Bakery",
            tagline="Fresh bread daily",
            description="A neighbourhood bakery.",
        )
    )


@pytest.fixture
def hosting() -> FakeHostingProvider:
    return FakeHostingProvider()


@pytest.fixture
def provider_factory(hosting):
    def factory(token: str, team_id: str | None) -> FakeHostingProvider:
        hosting.tokens.append((token, team_id))
        return hosting

    return factory


@pytest.fixture
def domain_config_provider() -> FakeDomainConfigProvider:
    return FakeDomainConfigProvider()


@pytest.fixture
def make_project(db_session, user, generation_config):
    """Create a project and drive it to *status* through real transitions."""

    async def factory(
        slug: str = "p-slug",
        status: ProjectStatus = ProjectStatus.GENERATED,
        *,
        user_id: str | None = None,
        files: Sequence[tuple[str, str, FileKind]] = DEFAULT_FILES,
    ) -> Project:
        projects = ProjectRepository(db_session)
        ledger = GenerationLedger(GenerationRepository(db_session))
        project = await projects.create_project(
            user_id=user_id or user.id,
            name=slug.replace("-", " ").title(),
            slug=slug,
            generation_config=generation_config,
        )
        if status is ProjectStatus.DRAFT:
            return project

        await projects.update_project_status(project.id, ProjectStatus.GENERATING)
        version = await ledger.open_version(project.id, TriggerType.INITIAL)
        await ledger.mark_generating(version.id)
        if status is ProjectStatus.ERROR:
            await ledger.fail_version(version.id, "content producer crashed")
            return await projects.update_project_status(project.id, ProjectStatus.ERROR)

        await ledger.complete_version(
            version.id,
            [GeneratedFileCreate(file_path=p, content=c, file_type=k) for p, c, k in files],
            GenerationMetrics(generation_time_ms=1200, total_tokens_used=321, model_used="test"),
        )
        project = await projects.update_project_status(project.id, ProjectStatus.GENERATED)
        if status is ProjectStatus.PUBLISHED:
            project = await projects.record_deployment(
                project.id,
                status=ProjectStatus.PUBLISHED,
                public_url=f"https://{slug}.platform.example",
                deployment_url=f"https://{slug}-0.vercel.app",
            )
        return project

    return factory
