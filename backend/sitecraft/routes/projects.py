from __future__ import annotations

from fastapi import APIRouter, status

from sitecraft.dependencies import CurrentUser, ProjectRepositoryDep
from sitecraft.models.api import ProjectCreateRequest, ProjectListResponse, ProjectResponse
from sitecraft.models.project import Project

router = APIRouter(prefix="/projects", tags=["projects"])


def _to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        slug=project.slug,
        status=project.status,
        published_url=project.published_url,
        deployment_url=project.deployment_url,
        custom_domain=project.custom_domain,
        last_generated_at=project.last_generated_at,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreateRequest,
    repository: ProjectRepositoryDep,
    current_user: CurrentUser,
) -> ProjectResponse:
    project = await repository.create_project(
        user_id=current_user.id,
        name=payload.name,
        slug=payload.slug,
        generation_config=payload.generation_config,
        design_system=payload.design_system,
    )
    return _to_response(project)


@router.get("", response_model=ProjectListResponse)
async def list_user_projects(
    repository: ProjectRepositoryDep,
    current_user: CurrentUser,
    limit: int = 50,
    offset: int = 0,
) -> ProjectListResponse:
    """List all projects for the current user."""
    projects = await repository.list_user_projects(current_user.id, limit=limit, offset=offset)
    return ProjectListResponse(projects=[_to_response(p) for p in projects])


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    repository: ProjectRepositoryDep,
    current_user: CurrentUser,
) -> ProjectResponse:
    return _to_response(await repository.get_project(project_id, user_id=current_user.id))
