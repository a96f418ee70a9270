"""Takes the latest completed generation of a project live.

Publishing deploys the stored files of the newest ``complete`` version, binds
the deployment to ``{slug}.{platform_domain}`` (and to an active custom domain
when one exists), and only then moves the project to ``published``. A failure
at any step leaves the project status untouched; deployments already created
on the provider side are not cleaned up.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog
from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from sitecraft.errors import AppError, DeploymentError, OperationTimeoutError, ValidationError
from sitecraft.models.domain import Domain
from sitecraft.models.project import Project, ProjectStatus
from sitecraft.providers.base import (
    DeploymentResult,
    HostingProvider,
    ProviderRequestError,
    ReadyState,
)
from sitecraft.repositories.domain_repository import DomainRepository
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.deployment_service import DeploymentOrchestrator, DeployTarget
from sitecraft.services.generation_ledger import GenerationLedger

logger = structlog.get_logger(__name__)

VerificationScheduler = Callable[[list[Domain]], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class PlatformAccount:
    """Platform-owned hosting credentials and naming used for publishing."""

    token: str
    platform_domain: str
    team_id: str | None = None
    project_prefix: str = "sc-"


@dataclass(slots=True)
class PublishPolicy:
    alias_max_attempts: int = 3
    alias_retry_wait_seconds: float = 2.0
    timeout_seconds: float = 300.0


class PublishResult(BaseModel):
    url: str
    domain: str
    deployment_id: str
    provider_project_name: str
    ready_state: ReadyState


class RepublishOutcome(BaseModel):
    id: str
    name: str
    success: bool
    url: str | None = None
    error: str | None = None


class RepublishReport(BaseModel):
    message: str
    total: int
    succeeded: int
    failed: int
    results: list[RepublishOutcome] = Field(default_factory=list)


@dataclass(slots=True)
class PublishCoordinator:
    projects: ProjectRepository
    domains: DomainRepository
    ledger: GenerationLedger
    orchestrator: DeploymentOrchestrator
    account: PlatformAccount
    policy: PublishPolicy = field(default_factory=PublishPolicy)
    schedule_verification: VerificationScheduler | None = None

    def subdomain_for(self, project: Project) -> str:
        return f"{project.slug}.{self.account.platform_domain}"

    async def publish(self, project_id: str, user_id: str | None) -> PublishResult:
        """Publish within the configured wall-clock budget.

        ``user_id`` scopes the project lookup; ``None`` is reserved for the
        admin batch path.
        """
        try:
            async with asyncio.timeout(self.policy.timeout_seconds):
                return await self._publish(project_id, user_id)
        except TimeoutError as exc:
            logger.error(
                "publish_timed_out",
                project_id=project_id,
                timeout_seconds=self.policy.timeout_seconds,
            )
            raise OperationTimeoutError(
                f"Publishing did not finish within {self.policy.timeout_seconds:g} seconds"
            ) from exc

    async def _publish(self, project_id: str, user_id: str | None) -> PublishResult:
        project = await self.projects.get_project(project_id, user_id=user_id)
        log = logger.bind(project_id=project_id, slug=project.slug)

        if not project.status.is_publishable:
            raise ValidationError(
                f"Project cannot be published while in status '{project.status.value}'. "
                "Generate a website first.",
                details={"status": project.status.value},
            )

        version = await self.ledger.latest_complete(project_id)
        if version is None:
            raise ValidationError("No completed generation found. Generate a website first.")

        tree = await self.ledger.load_tree(version.id)
        if not tree.size:
            raise ValidationError("No generated files found for the latest version")

        provider_project_name = (
            project.provider_project_name or f"{self.account.project_prefix}{project.slug}"
        )
        target = DeployTarget(
            provider_token=self.account.token,
            project_name=provider_project_name,
            team_id=self.account.team_id,
        )
        log.info(
            "publish_started",
            version_number=version.version_number,
            file_count=tree.size,
            provider_project=provider_project_name,
        )

        deployment = await self.orchestrator.deploy(tree, target)
        provider = self.orchestrator.provider_for(target)
        provider_project_id = await self._lookup_project_id(
            provider, provider_project_name, deployment
        )

        subdomain = self.subdomain_for(project)
        custom = await self.domains.find_active_custom_domain(project_id)
        hostname = custom.domain if custom else subdomain

        await self._bind_alias(provider, provider_project_name, subdomain)
        if hostname != subdomain:
            await self._bind_alias(provider, provider_project_name, hostname)

        url = f"https://{hostname}"
        await self.projects.record_deployment(
            project_id,
            status=ProjectStatus.PUBLISHED,
            public_url=url,
            deployment_url=deployment.url,
            provider_project_name=provider_project_name,
            provider_project_id=provider_project_id,
        )
        await self.domains.replace_subdomain(project_id, project.user_id, subdomain)

        pending = await self.domains.list_pending_custom_domains(project_id)
        if pending and self.schedule_verification is not None:
            await self.schedule_verification(pending)

        log.info("publish_finished", url=url, deployment_id=deployment.deployment_id)
        return PublishResult(
            url=url,
            domain=hostname,
            deployment_id=deployment.deployment_id,
            provider_project_name=provider_project_name,
            ready_state=deployment.ready_state,
        )

    async def _lookup_project_id(
        self,
        provider: HostingProvider,
        project_name: str,
        deployment: DeploymentResult,
    ) -> str:
        try:
            provider_project = await provider.get_project(project_name)
        except ProviderRequestError as exc:
            logger.warning("provider_project_lookup_failed", project=project_name, error=str(exc))
            provider_project = None
        return provider_project.id if provider_project else deployment.deployment_id

    async def _bind_alias(self, provider: HostingProvider, project_name: str, hostname: str) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ProviderRequestError),
            stop=stop_after_attempt(self.policy.alias_max_attempts),
            wait=wait_fixed(self.policy.alias_retry_wait_seconds),
            reraise=True,
            before_sleep=lambda rs: logger.warning(
                "domain_alias_retrying",
                domain=hostname,
                attempt=rs.attempt_number,
            ),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await provider.add_domain_alias(project_name, hostname)
        except ProviderRequestError as exc:
            raise DeploymentError(
                f"Failed to assign domain {hostname}: {exc}",
                provider_message=str(exc),
                details={"domain": hostname, "status_code": exc.status_code},
            ) from exc

    async def republish_all(self) -> RepublishReport:
        """Re-run publish for every published project, one at a time.

        A failing project is recorded and skipped; it never aborts the batch.
        """
        projects = await self.projects.list_published_projects()
        results: list[RepublishOutcome] = []

        for project in projects:
            try:
                result = await self.publish(project.id, None)
            except AppError as exc:
                await self.projects.session.rollback()
                logger.warning("republish_project_failed", project_id=project.id, error=exc.message)
                results.append(
                    RepublishOutcome(id=project.id, name=project.name, success=False, error=exc.message)
                )
            except Exception as exc:
                await self.projects.session.rollback()
                logger.exception("republish_project_failed", project_id=project.id)
                results.append(
                    RepublishOutcome(id=project.id, name=project.name, success=False, error=str(exc))
                )
            else:
                results.append(
                    RepublishOutcome(id=project.id, name=project.name, success=True, url=result.url)
                )

        succeeded = sum(1 for outcome in results if outcome.success)
        failed = len(results) - succeeded
        if not results:
            message = "No published projects found"
        else:
            message = f"Re-published {succeeded}/{len(results)} projects ({failed} failed)"
        logger.info("republish_all_finished", total=len(results), succeeded=succeeded, failed=failed)
        return RepublishReport(
            message=message,
            total=len(results),
            succeeded=succeeded,
            failed=failed,
            results=results,
        )
