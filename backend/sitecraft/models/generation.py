from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .transitions import check_transition, sources_for


class GenerationStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return not GENERATION_TRANSITIONS[self]

    def ensure_transition(self, target: GenerationStatus) -> GenerationStatus:
        return check_transition("generation version", GENERATION_TRANSITIONS, self, target)

    @classmethod
    def sources_for(cls, target: GenerationStatus) -> frozenset[GenerationStatus]:
        return sources_for(GENERATION_TRANSITIONS, target)

    @classmethod
    def in_flight(cls) -> frozenset[GenerationStatus]:
        return frozenset(status for status in cls if not status.is_terminal)


GENERATION_TRANSITIONS: dict[GenerationStatus, frozenset[GenerationStatus]] = {
    GenerationStatus.PENDING: frozenset({GenerationStatus.GENERATING, GenerationStatus.ERROR}),
    GenerationStatus.GENERATING: frozenset({GenerationStatus.COMPLETE, GenerationStatus.ERROR}),
    GenerationStatus.COMPLETE: frozenset(),
    GenerationStatus.ERROR: frozenset(),
}


class TriggerType(str, Enum):
    INITIAL = "initial"
    FULL_REGENERATE = "full-regenerate"
    SECTION_EDIT = "section-edit"
    STYLE_CHANGE = "style-change"


class FileKind(str, Enum):
    COMPONENT = "component"
    PAGE = "page"
    CONFIG = "config"
    STYLE = "style"
    DATA = "data"


class GenerationMetrics(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    total_tokens_used: int = 0
    generation_time_ms: int
    model_used: str | None = None


class GenerationVersion(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: str
    project_id: str
    version_number: int
    status: GenerationStatus
    trigger_type: TriggerType
    trigger_details: dict[str, Any] | None = None
    total_tokens_used: int = 0
    generation_time_ms: int | None = None
    model_used: str | None = None
    error_message: str | None = None
    error_details: dict[str, Any] | None = None
    created_at: datetime
    completed_at: datetime | None = None


class GeneratedFileCreate(BaseModel):
    """File row to be written when a version completes."""

    file_path: str
    content: str
    file_type: FileKind = FileKind.COMPONENT
    section_type: str | None = None
    tokens_used: int | None = None


class GeneratedFile(GeneratedFileCreate):
    id: str
    version_id: str
    created_at: datetime | None = None


class VersionSummary(BaseModel):
    id: str
    version_number: int
    status: GenerationStatus
    generation_time_ms: int | None = None
    completed_at: datetime | None = None
    created_at: datetime


class GenerationStatusReport(BaseModel):
    project_status: str
    last_generated_at: datetime | None = None
    latest_version: VersionSummary | None = None
    file_count: int = Field(default=0, ge=0)
