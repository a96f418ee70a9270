from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sitecraft.providers.base import ReadyState

from .domain import DomainStatus
from .generation import GenerationStatus, TriggerType
from .project import ProjectStatus
from .site_config import DesignSystem, GenerationConfig


class _Request(BaseModel):
    """Request bodies accept both ``projectId`` and ``project_id``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectCreateRequest(_Request):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=3, max_length=63, pattern=r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")
    generation_config: GenerationConfig
    design_system: DesignSystem | None = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    slug: str
    status: ProjectStatus
    published_url: str | None = None
    deployment_url: str | None = None
    custom_domain: str | None = None
    last_generated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    """Response for listing user projects."""

    projects: list[ProjectResponse] = Field(default_factory=list)


class AccountResponse(BaseModel):
    """The signed-in user with a per-status tally of their projects."""

    id: str
    email: str
    name: str | None = None
    image: str | None = None
    project_counts: dict[ProjectStatus, int] = Field(default_factory=dict)


class GenerateRequest(_Request):
    project_id: str
    trigger_type: TriggerType = TriggerType.INITIAL
    trigger_details: dict[str, Any] | None = None


class GenerateResponse(BaseModel):
    project_id: str
    version_id: str
    version_number: int
    status: GenerationStatus


class PublishRequest(_Request):
    project_id: str


class DomainVerifyRequest(_Request):
    domain_id: str


class DomainConnectRequest(_Request):
    project_id: str
    domain: str = Field(..., min_length=3, max_length=253)


class DomainResponse(BaseModel):
    id: str
    domain: str
    status: DomainStatus
    dns_configured: bool


class DomainConnectResponse(BaseModel):
    domain: DomainResponse
    verified: bool
    instructions: list[str] = Field(default_factory=list)


class ExportDeployRequest(_Request):
    project_id: str
    provider_token: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("providerToken", "vercelToken", "provider_token"),
    )
    project_name: str = Field(..., min_length=1, max_length=100)
    team_id: str | None = None


class DeploymentResponse(BaseModel):
    deployment_id: str
    url: str
    ready_state: ReadyState


class DeploymentStatusResponse(BaseModel):
    deployment_id: str
    url: str
    ready_state: ReadyState
    is_terminal: bool
