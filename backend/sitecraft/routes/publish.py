from __future__ import annotations

from fastapi import APIRouter

from sitecraft.dependencies import CurrentUser, PublishCoordinatorDep
from sitecraft.models.api import PublishRequest
from sitecraft.services.publish_service import PublishResult

router = APIRouter(prefix="/publish", tags=["publish"])


@router.post("", response_model=PublishResult)
async def publish_project(
    payload: PublishRequest,
    coordinator: PublishCoordinatorDep,
    current_user: CurrentUser,
) -> PublishResult:
    return await coordinator.publish(payload.project_id, current_user.id)
