from __future__ import annotations

import hmac
from http.cookies import CookieError, SimpleCookie
from typing import Annotated

import httpx
from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import HTTPConnection

from sitecraft.config import settings
from sitecraft.database import AsyncSessionLocal, get_db
from sitecraft.errors import AuthenticationError
from sitecraft.models.domain import Domain
from sitecraft.models.user import User
from sitecraft.providers.base import DomainConfigProvider, HostingProvider, HostingProviderFactory
from sitecraft.providers.vercel import VercelClient
from sitecraft.repositories.domain_repository import DomainRepository
from sitecraft.repositories.generation_repository import GenerationRepository
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.auth_service import auth_service
from sitecraft.services.deployment_service import DeploymentOrchestrator
from sitecraft.services.domain_service import DomainVerificationChecker, verify_domains_in_background
from sitecraft.services.export_service import ExportService
from sitecraft.services.fallback_producer import ContentProducer, FallbackContentProducer
from sitecraft.services.generation_ledger import GenerationLedger
from sitecraft.services.generation_service import GenerationService
from sitecraft.services.publish_service import (
    PlatformAccount,
    PublishCoordinator,
    PublishPolicy,
    VerificationScheduler,
)
from sitecraft.services.task_service import TaskService

AsyncDBSession = Annotated[AsyncSession, Depends(get_db)]


TOKEN_COOKIE_KEYS = (
    "better-auth.session_token",
    "better-auth.sessionToken",
    "session_token",
    "sessionToken",
)


def _extract_token_from_request(
    authorization: str | None = None,
    cookie: str | None = None,
    token_param: str | None = None,
) -> str | None:
    """Extract JWT token from Authorization header, cookie, or query parameter."""

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    if token_param:
        return token_param

    if not cookie:
        return None

    try:
        jar = SimpleCookie()
        jar.load(cookie)
        cookies = {name: morsel.value for name, morsel in jar.items()}
    except CookieError:
        return None

    for key in TOKEN_COOKIE_KEYS:
        if key in cookies:
            return cookies[key]

    for name, value in cookies.items():
        normalized = name.lower()
        if "token" in normalized and ("session" in normalized or "better-auth" in normalized):
            return value

    return None


async def get_current_user(
    request: Request,
    db: AsyncDBSession,
    authorization: Annotated[str | None, Header()] = None,
    token: Annotated[str | None, Query()] = None,
) -> User:
    """Resolve the authenticated user from bearer token, cookie, or query parameter."""
    token_value = _extract_token_from_request(
        authorization=authorization,
        cookie=request.headers.get("cookie", ""),
        token_param=token,
    )

    if not token_value:
        raise AuthenticationError(
            "Authentication required. Provide token via Authorization header, "
            "cookie, or query parameter."
        )

    user = await auth_service.get_user_from_token(token_value, db)
    request.state.auth_token = token_value
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_admin_secret(
    x_admin_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Guard for admin batch operations; disabled when no secret is configured."""
    expected = settings.admin_secret
    if not expected or not x_admin_secret:
        raise AuthenticationError("Unauthorized")
    if not hmac.compare_digest(x_admin_secret.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError("Unauthorized")


def get_task_service(connection: HTTPConnection) -> TaskService:
    return connection.app.state.task_service


def get_http_client(connection: HTTPConnection) -> httpx.AsyncClient:
    return connection.app.state.http_client


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return AsyncSessionLocal


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]
SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


def get_provider_factory(http_client: HttpClientDep) -> HostingProviderFactory:
    def factory(token: str, team_id: str | None) -> HostingProvider:
        return VercelClient(http_client, token, team_id=team_id, base_url=settings.hosting_api_url)

    return factory


def get_domain_config_provider(http_client: HttpClientDep) -> DomainConfigProvider:
    return VercelClient(
        http_client,
        settings.platform_token,
        team_id=settings.team_id,
        base_url=settings.hosting_api_url,
    )


ProviderFactoryDep = Annotated[HostingProviderFactory, Depends(get_provider_factory)]
DomainConfigProviderDep = Annotated[DomainConfigProvider, Depends(get_domain_config_provider)]


def get_project_repository(db: AsyncDBSession) -> ProjectRepository:
    return ProjectRepository(db)


def get_domain_repository(db: AsyncDBSession) -> DomainRepository:
    return DomainRepository(db)


def get_generation_ledger(db: AsyncDBSession) -> GenerationLedger:
    return GenerationLedger(GenerationRepository(db))


ProjectRepositoryDep = Annotated[ProjectRepository, Depends(get_project_repository)]
DomainRepositoryDep = Annotated[DomainRepository, Depends(get_domain_repository)]
GenerationLedgerDep = Annotated[GenerationLedger, Depends(get_generation_ledger)]


def get_content_producer() -> ContentProducer:
    return FallbackContentProducer()


def get_generation_service(
    projects: ProjectRepositoryDep,
    ledger: GenerationLedgerDep,
    task_service: TaskServiceDep,
    content_producer: Annotated[ContentProducer, Depends(get_content_producer)],
    session_factory: SessionFactoryDep,
) -> GenerationService:
    return GenerationService(
        project_repository=projects,
        ledger=ledger,
        task_service=task_service,
        content_producer=content_producer,
        session_factory=session_factory,
    )


def get_deployment_orchestrator(provider_factory: ProviderFactoryDep) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        provider_factory,
        upload_max_attempts=settings.upload_max_attempts,
        upload_retry_wait_seconds=settings.upload_retry_wait_seconds,
        framework=settings.deploy_framework,
    )


DeploymentOrchestratorDep = Annotated[DeploymentOrchestrator, Depends(get_deployment_orchestrator)]


def get_verification_scheduler(
    task_service: TaskServiceDep,
    config_provider: DomainConfigProviderDep,
    session_factory: SessionFactoryDep,
) -> VerificationScheduler:
    async def schedule(domains: list[Domain]) -> None:
        await task_service.spawn(
            verify_domains_in_background(
                session_factory,
                config_provider,
                [domain.id for domain in domains],
                cname_target=settings.dns_cname_target,
                max_attempts=settings.domain_max_verification_attempts,
            ),
            name=f"domain-verification:{domains[0].project_id}",
        )

    return schedule


def get_publish_coordinator(
    projects: ProjectRepositoryDep,
    domains: DomainRepositoryDep,
    ledger: GenerationLedgerDep,
    orchestrator: DeploymentOrchestratorDep,
    scheduler: Annotated[VerificationScheduler, Depends(get_verification_scheduler)],
) -> PublishCoordinator:
    return PublishCoordinator(
        projects=projects,
        domains=domains,
        ledger=ledger,
        orchestrator=orchestrator,
        account=PlatformAccount(
            token=settings.platform_token,
            platform_domain=settings.platform_domain,
            team_id=settings.team_id,
            project_prefix=settings.provider_project_prefix,
        ),
        policy=PublishPolicy(
            alias_max_attempts=settings.alias_max_attempts,
            alias_retry_wait_seconds=settings.alias_retry_wait_seconds,
            timeout_seconds=settings.publish_timeout_seconds,
        ),
        schedule_verification=scheduler,
    )


def get_domain_checker(
    domains: DomainRepositoryDep,
    config_provider: DomainConfigProviderDep,
) -> DomainVerificationChecker:
    return DomainVerificationChecker(
        domains,
        config_provider,
        cname_target=settings.dns_cname_target,
        max_attempts=settings.domain_max_verification_attempts,
    )


def get_platform_hosting(provider_factory: ProviderFactoryDep) -> HostingProvider:
    return provider_factory(settings.platform_token, settings.team_id)


def get_export_service(
    projects: ProjectRepositoryDep,
    ledger: GenerationLedgerDep,
    orchestrator: DeploymentOrchestratorDep,
) -> ExportService:
    return ExportService(projects, ledger, orchestrator)


GenerationServiceDep = Annotated[GenerationService, Depends(get_generation_service)]
PublishCoordinatorDep = Annotated[PublishCoordinator, Depends(get_publish_coordinator)]
DomainCheckerDep = Annotated[DomainVerificationChecker, Depends(get_domain_checker)]
PlatformHostingDep = Annotated[HostingProvider, Depends(get_platform_hosting)]
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]
AdminSecret = Depends(require_admin_secret)
