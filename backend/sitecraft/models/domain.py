from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .transitions import check_transition


class DomainType(str, Enum):
    SUBDOMAIN = "subdomain"
    CUSTOM = "custom"


class DomainStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"

    def ensure_transition(self, target: DomainStatus) -> DomainStatus:
        return check_transition("domain", DOMAIN_TRANSITIONS, self, target)


DOMAIN_TRANSITIONS: dict[DomainStatus, frozenset[DomainStatus]] = {
    DomainStatus.PENDING: frozenset({DomainStatus.ACTIVE, DomainStatus.FAILED}),
    DomainStatus.ACTIVE: frozenset(),
    DomainStatus.FAILED: frozenset(),
}


class Domain(BaseModel):
    id: str
    project_id: str | None = None
    user_id: str
    domain: str
    domain_type: DomainType
    status: DomainStatus = DomainStatus.PENDING
    dns_configured: bool = False
    verification_attempts: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DomainCheckResult(BaseModel):
    verified: bool
    status: DomainStatus
    domain: str
    configured: bool | None = None
    message: str | None = None


class CustomDomainAttachment(BaseModel):
    domain: Domain
    verification_needed: bool
    instructions: list[str] = Field(default_factory=list)
