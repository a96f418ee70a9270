from __future__ import annotations

from fastapi import APIRouter

from sitecraft.dependencies import CurrentUser, ProjectRepositoryDep
from sitecraft.models.api import AccountResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=AccountResponse)
async def get_account(current_user: CurrentUser, projects: ProjectRepositoryDep) -> AccountResponse:
    return AccountResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        image=current_user.image,
        project_counts=await projects.count_projects_by_status(current_user.id),
    )
