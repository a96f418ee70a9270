from __future__ import annotations

from fastapi import APIRouter, status

from sitecraft.dependencies import CurrentUser, GenerationServiceDep
from sitecraft.models.api import GenerateRequest, GenerateResponse
from sitecraft.models.generation import GenerationStatusReport

router = APIRouter(prefix="/generate", tags=["generation"])


@router.post("", response_model=GenerateResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_generation(
    payload: GenerateRequest,
    service: GenerationServiceDep,
    current_user: CurrentUser,
) -> GenerateResponse:
    started = await service.start_generation(
        payload.project_id,
        current_user.id,
        trigger_type=payload.trigger_type,
        trigger_details=payload.trigger_details,
    )
    version = started.version
    return GenerateResponse(
        project_id=version.project_id,
        version_id=version.id,
        version_number=version.version_number,
        status=version.status,
    )


@router.get("/status", response_model=GenerationStatusReport)
async def get_generation_status(
    project_id: str,
    service: GenerationServiceDep,
    current_user: CurrentUser,
) -> GenerationStatusReport:
    """Read-only; safe to poll at any cadence."""
    return await service.get_generation_status(project_id, current_user.id)
