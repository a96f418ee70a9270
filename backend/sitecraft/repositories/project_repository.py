from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sitecraft.errors import ConflictError, ProjectNotFoundError
from sitecraft.models.project import Project, ProjectStatus
from sitecraft.models.project_db import ProjectDB
from sitecraft.models.site_config import DesignSystem, GenerationConfig, SiteType


class ProjectRepository:
    """Repository for Project database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _project_db_to_model(self, project_db: ProjectDB) -> Project:
        """Convert database model to domain model."""
        return Project(
            id=project_db.id,
            user_id=project_db.user_id,
            name=project_db.name,
            slug=project_db.slug,
            site_type=SiteType(project_db.site_type),
            status=ProjectStatus(project_db.status),
            generation_config=GenerationConfig.model_validate(project_db.generation_config),
            design_system=(
                DesignSystem.model_validate(project_db.design_system)
                if project_db.design_system
                else None
            ),
            provider_project_name=project_db.provider_project_name,
            provider_project_id=project_db.provider_project_id,
            deployment_url=project_db.deployment_url,
            custom_domain=project_db.custom_domain,
            published_url=project_db.published_url,
            published_at=project_db.published_at,
            last_generated_at=project_db.last_generated_at,
            created_at=project_db.created_at,
            updated_at=project_db.updated_at,
        )

    async def _load(self, project_id: str, user_id: str | None = None) -> ProjectDB:
        query = select(ProjectDB).where(ProjectDB.id == project_id)
        if user_id:
            query = query.where(ProjectDB.user_id == user_id)

        result = await self.session.execute(query.execution_options(populate_existing=True))
        project_db = result.scalar_one_or_none()
        if not project_db:
            raise ProjectNotFoundError(project_id)
        return project_db

    async def create_project(
        self,
        user_id: str,
        name: str,
        slug: str,
        generation_config: GenerationConfig,
        design_system: DesignSystem | None = None,
        project_id: str | None = None,
    ) -> Project:
        if project_id is None:
            project_id = uuid4().hex
        project_db = ProjectDB(
            id=project_id,
            user_id=user_id,
            name=name,
            slug=slug,
            site_type=generation_config.site_type.value,
            status=ProjectStatus.DRAFT.value,
            generation_config=generation_config.model_dump(mode="json", by_alias=True),
            design_system=(
                design_system.model_dump(mode="json", by_alias=True) if design_system else None
            ),
        )
        self.session.add(project_db)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(f"Slug '{slug}' is already taken") from exc
        await self.session.refresh(project_db)
        return self._project_db_to_model(project_db)

    async def get_project(self, project_id: str, user_id: str | None = None) -> Project:
        return self._project_db_to_model(await self._load(project_id, user_id))

    async def list_user_projects(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[Project]:
        result = await self.session.execute(
            select(ProjectDB)
            .where(ProjectDB.user_id == user_id)
            .order_by(ProjectDB.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [self._project_db_to_model(p) for p in result.scalars().all()]

    async def list_published_projects(self) -> list[Project]:
        result = await self.session.execute(
            select(ProjectDB)
            .where(ProjectDB.status == ProjectStatus.PUBLISHED.value)
            .where(ProjectDB.published_url.is_not(None))
            .order_by(ProjectDB.created_at.asc())
        )
        return [self._project_db_to_model(p) for p in result.scalars().all()]

    async def count_projects_by_status(self, user_id: str) -> dict[ProjectStatus, int]:
        result = await self.session.execute(
            select(ProjectDB.status, func.count())
            .where(ProjectDB.user_id == user_id)
            .group_by(ProjectDB.status)
        )
        return {ProjectStatus(status): count for status, count in result.all()}

    async def update_project_status(
        self,
        project_id: str,
        status: ProjectStatus,
        *,
        last_generated_at: datetime | None = None,
    ) -> Project:
        project_db = await self._load(project_id)
        project_db.status = ProjectStatus(project_db.status).ensure_transition(status).value
        if not status.has_public_url:
            # Only deployed/published projects expose a public URL
            project_db.published_url = None
        if last_generated_at is not None:
            project_db.last_generated_at = last_generated_at
        project_db.updated_at = datetime.now(UTC)
        await self.session.commit()
        await self.session.refresh(project_db)
        return self._project_db_to_model(project_db)

    async def record_deployment(
        self,
        project_id: str,
        *,
        status: ProjectStatus,
        public_url: str,
        deployment_url: str,
        provider_project_name: str | None = None,
        provider_project_id: str | None = None,
    ) -> Project:
        """Store the outcome of a deployment and move the project to *status*.

        ``public_url`` becomes ``published_url``; the status is expected to be
        ``deployed`` or ``published``.
        """
        project_db = await self._load(project_id)
        ProjectStatus(project_db.status).ensure_transition(status)
        now = datetime.now(UTC)
        values: dict[str, Any] = {
            "status": status.value,
            "published_url": public_url,
            "deployment_url": deployment_url,
            "updated_at": now,
        }
        if status is ProjectStatus.PUBLISHED:
            values["published_at"] = now
        if provider_project_name is not None:
            values["provider_project_name"] = provider_project_name
        if provider_project_id is not None:
            values["provider_project_id"] = provider_project_id
        for key, value in values.items():
            setattr(project_db, key, value)
        await self.session.commit()
        await self.session.refresh(project_db)
        return self._project_db_to_model(project_db)

    async def set_custom_domain(self, project_id: str, domain: str) -> Project:
        project_db = await self._load(project_id)
        project_db.custom_domain = domain
        project_db.updated_at = datetime.now(UTC)
        await self.session.commit()
        await self.session.refresh(project_db)
        return self._project_db_to_model(project_db)

    async def set_deployment_url(self, project_id: str, deployment_url: str) -> Project:
        project_db = await self._load(project_id)
        project_db.deployment_url = deployment_url
        project_db.updated_at = datetime.now(UTC)
        await self.session.commit()
        await self.session.refresh(project_db)
        return self._project_db_to_model(project_db)
