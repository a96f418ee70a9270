from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Header, Response

from sitecraft.dependencies import CurrentUser, ExportServiceDep
from sitecraft.models.api import DeploymentResponse, DeploymentStatusResponse, ExportDeployRequest

router = APIRouter(prefix="/export", tags=["export"])


@router.get("/download")
async def download_project(
    project_id: str,
    service: ExportServiceDep,
    current_user: CurrentUser,
) -> Response:
    filename, data = await service.build_archive(project_id, current_user.id)
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/deploy", response_model=DeploymentResponse)
async def deploy_to_account(
    payload: ExportDeployRequest,
    service: ExportServiceDep,
    current_user: CurrentUser,
) -> DeploymentResponse:
    deployment = await service.deploy_to_account(
        payload.project_id,
        current_user.id,
        provider_token=payload.provider_token,
        project_name=payload.project_name,
        team_id=payload.team_id,
    )
    return DeploymentResponse(
        deployment_id=deployment.deployment_id,
        url=deployment.url,
        ready_state=deployment.ready_state,
    )


@router.get("/deployments/{deployment_id}", response_model=DeploymentStatusResponse)
async def get_deployment_status(
    deployment_id: str,
    service: ExportServiceDep,
    current_user: CurrentUser,
    x_provider_token: Annotated[str, Header()],
    team_id: str | None = None,
) -> DeploymentStatusResponse:
    """Poll a deployment created with the caller's own credentials."""
    deployment = await service.get_deployment_status(
        deployment_id,
        provider_token=x_provider_token,
        team_id=team_id,
    )
    return DeploymentStatusResponse(
        deployment_id=deployment_id,
        url=deployment.url,
        ready_state=deployment.ready_state,
        is_terminal=deployment.ready_state.is_terminal,
    )
