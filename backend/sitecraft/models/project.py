from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from .site_config import DesignSystem, GenerationConfig, SiteType
from .transitions import check_transition


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ProjectStatus(str, Enum):
    """Lifecycle states for a generated website project."""

    DRAFT = "draft"
    GENERATING = "generating"
    GENERATED = "generated"
    DEPLOYED = "deployed"
    PUBLISHED = "published"
    ERROR = "error"

    @property
    def is_publishable(self) -> bool:
        return self in PUBLISHABLE_STATUSES

    @property
    def has_public_url(self) -> bool:
        return self in (ProjectStatus.DEPLOYED, ProjectStatus.PUBLISHED)

    def ensure_transition(self, target: ProjectStatus) -> ProjectStatus:
        return check_transition("project", PROJECT_TRANSITIONS, self, target)


PROJECT_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.DRAFT: frozenset({ProjectStatus.GENERATING}),
    ProjectStatus.GENERATING: frozenset({ProjectStatus.GENERATED, ProjectStatus.ERROR}),
    ProjectStatus.GENERATED: frozenset(
        {ProjectStatus.GENERATING, ProjectStatus.DEPLOYED, ProjectStatus.PUBLISHED}
    ),
    ProjectStatus.DEPLOYED: frozenset(
        {ProjectStatus.GENERATING, ProjectStatus.DEPLOYED, ProjectStatus.PUBLISHED}
    ),
    ProjectStatus.PUBLISHED: frozenset({ProjectStatus.GENERATING, ProjectStatus.PUBLISHED}),
    ProjectStatus.ERROR: frozenset({ProjectStatus.GENERATING}),
}

PUBLISHABLE_STATUSES = frozenset(
    {ProjectStatus.GENERATED, ProjectStatus.DEPLOYED, ProjectStatus.PUBLISHED}
)


class Project(BaseModel):
    """Domain representation of a website project."""

    id: str
    user_id: str
    name: str
    slug: str
    site_type: SiteType = SiteType.BUSINESS
    status: ProjectStatus = ProjectStatus.DRAFT
    generation_config: GenerationConfig
    design_system: DesignSystem | None = None
    provider_project_name: str | None = None
    provider_project_id: str | None = None
    deployment_url: str | None = None
    custom_domain: str | None = None
    published_url: str | None = None
    published_at: datetime | None = None
    last_generated_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
