from __future__ import annotations

from fastapi import APIRouter

from sitecraft.dependencies import (
    CurrentUser,
    DomainCheckerDep,
    PlatformHostingDep,
    ProjectRepositoryDep,
)
from sitecraft.models.api import (
    DomainConnectRequest,
    DomainConnectResponse,
    DomainResponse,
    DomainVerifyRequest,
)
from sitecraft.models.domain import DomainCheckResult

router = APIRouter(prefix="/domains", tags=["domains"])


@router.post("/verify", response_model=DomainCheckResult)
async def verify_domain(
    payload: DomainVerifyRequest,
    checker: DomainCheckerDep,
    current_user: CurrentUser,
) -> DomainCheckResult:
    return await checker.check_domain(payload.domain_id, current_user.id)


@router.post("/connect", response_model=DomainConnectResponse)
async def connect_domain(
    payload: DomainConnectRequest,
    checker: DomainCheckerDep,
    projects: ProjectRepositoryDep,
    hosting: PlatformHostingDep,
    current_user: CurrentUser,
) -> DomainConnectResponse:
    attachment = await checker.attach_custom_domain(
        payload.project_id,
        current_user.id,
        payload.domain,
        projects=projects,
        hosting=hosting,
    )
    domain = attachment.domain
    return DomainConnectResponse(
        domain=DomainResponse(
            id=domain.id,
            domain=domain.domain,
            status=domain.status,
            dns_configured=domain.dns_configured,
        ),
        verified=not attachment.verification_needed,
        instructions=attachment.instructions,
    )
