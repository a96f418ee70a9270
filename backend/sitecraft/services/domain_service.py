from __future__ import annotations

import re
from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sitecraft.errors import DeploymentError, ValidationError
from sitecraft.models.domain import (
    CustomDomainAttachment,
    Domain,
    DomainCheckResult,
    DomainStatus,
    DomainType,
)
from sitecraft.models.project import ProjectStatus
from sitecraft.providers.base import DomainConfigProvider, HostingProvider, ProviderRequestError
from sitecraft.repositories.domain_repository import DomainRepository
from sitecraft.repositories.project_repository import ProjectRepository

logger = structlog.get_logger(__name__)

_FQDN = re.compile(r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,}$")


def normalize_fqdn(domain: str) -> str:
    candidate = domain.strip().lower().rstrip(".")
    if not _FQDN.match(candidate):
        raise ValidationError("Invalid domain format", details={"domain": domain})
    return candidate


class DomainVerificationChecker:
    """Reconciles stored domain status with the provider's DNS view.

    ``pending`` domains move to ``active`` once the provider reports them
    configured and verified. Otherwise they stay ``pending`` and the caller
    decides when to check again, unless ``max_attempts`` is set.
    """

    def __init__(
        self,
        domains: DomainRepository,
        config_provider: DomainConfigProvider,
        *,
        cname_target: str,
        max_attempts: int | None = None,
    ):
        self.domains = domains
        self.config_provider = config_provider
        self.cname_target = cname_target
        self.max_attempts = max_attempts

    async def check_domain(self, domain_id: str, user_id: str | None) -> DomainCheckResult:
        domain = await self.domains.get_domain(domain_id, user_id=user_id)
        return await self._check(domain)

    async def _check(self, domain: Domain) -> DomainCheckResult:
        if domain.status is DomainStatus.ACTIVE:
            return DomainCheckResult(verified=True, status=DomainStatus.ACTIVE, domain=domain.domain)
        if domain.status is DomainStatus.FAILED:
            return DomainCheckResult(
                verified=False,
                status=DomainStatus.FAILED,
                domain=domain.domain,
                configured=domain.dns_configured,
                message="Verification gave up for this domain. Connect it again to retry.",
            )

        try:
            config = await self.config_provider.get_domain_config(domain.domain)
        except ProviderRequestError as exc:
            raise DeploymentError(
                f"Could not check DNS for {domain.domain}: {exc}",
                provider_message=str(exc),
            ) from exc

        if config.configured and config.verified:
            domain.status.ensure_transition(DomainStatus.ACTIVE)
            await self.domains.mark_active(domain.id)
            logger.info("domain_verified", domain_id=domain.id, domain=domain.domain)
            return DomainCheckResult(
                verified=True,
                status=DomainStatus.ACTIVE,
                domain=domain.domain,
                configured=True,
            )

        status = DomainStatus.PENDING
        if self.max_attempts is not None:
            updated = await self.domains.record_unverified_check(
                domain.id,
                dns_configured=config.configured,
                max_attempts=self.max_attempts,
            )
            status = updated.status
            if status is DomainStatus.FAILED:
                logger.warning(
                    "domain_verification_failed",
                    domain_id=domain.id,
                    attempts=updated.verification_attempts,
                )

        if config.configured:
            message = "DNS is configured but not yet verified. This may take a few more minutes."
        else:
            message = (
                "DNS records not yet detected. "
                f"Please add a CNAME record pointing to {self.cname_target}"
            )
        return DomainCheckResult(
            verified=False,
            status=status,
            domain=domain.domain,
            configured=config.configured,
            message=message,
        )

    async def verify_pending(self, domains: Sequence[Domain]) -> list[DomainCheckResult]:
        """One check per domain; errors are logged so the rest still run."""
        results = []
        for domain in domains:
            try:
                results.append(await self._check(domain))
            except DeploymentError as exc:
                logger.warning("domain_check_failed", domain_id=domain.id, error=exc.message)
        return results

    async def attach_custom_domain(
        self,
        project_id: str,
        user_id: str,
        fqdn: str,
        *,
        projects: ProjectRepository,
        hosting: HostingProvider,
    ) -> CustomDomainAttachment:
        hostname = normalize_fqdn(fqdn)
        project = await projects.get_project(project_id, user_id=user_id)
        if project.status is not ProjectStatus.PUBLISHED or not project.provider_project_name:
            raise ValidationError("Project must be published first")

        try:
            config = await hosting.add_domain_alias(project.provider_project_name, hostname)
        except ProviderRequestError as exc:
            raise DeploymentError(
                f"Could not add domain: {exc}",
                provider_message=str(exc),
                details={"domain": hostname},
            ) from exc

        verified = config.configured and config.verified
        await self.domains.remove_custom_domains(project_id)
        domain = await self.domains.create_domain(
            user_id,
            hostname,
            DomainType.CUSTOM,
            project_id=project_id,
            status=DomainStatus.ACTIVE if verified else DomainStatus.PENDING,
            dns_configured=config.configured,
        )
        await projects.set_custom_domain(project_id, hostname)
        logger.info("custom_domain_attached", project_id=project_id, domain=hostname, verified=verified)

        instructions = []
        if not verified:
            instructions = [
                f'Add a CNAME record for "{hostname}" pointing to "{self.cname_target}"',
                "DNS propagation typically takes 5-30 minutes",
                "Check the verification status again once the record is in place",
            ]
        return CustomDomainAttachment(
            domain=domain,
            verification_needed=not verified,
            instructions=instructions,
        )


async def verify_domains_in_background(
    session_factory: async_sessionmaker[AsyncSession],
    config_provider: DomainConfigProvider,
    domain_ids: Sequence[str],
    *,
    cname_target: str,
    max_attempts: int | None = None,
) -> None:
    async with session_factory() as session:
        repository = DomainRepository(session)
        checker = DomainVerificationChecker(
            repository,
            config_provider,
            cname_target=cname_target,
            max_attempts=max_attempts,
        )
        domains = [await repository.get_domain(domain_id) for domain_id in domain_ids]
        results = await checker.verify_pending(domains)
        logger.info(
            "background_domain_check_finished",
            checked=len(results),
            verified=sum(1 for r in results if r.verified),
        )
