"""Append-only history of generation attempts per project.

Every generation request opens a new version; a version ends as ``complete``
with its full file set, or as ``error`` with no files. At most one version per
project is ``pending``/``generating`` at any time, and that rule is enforced by
the store rather than by in-process locks.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Any

import structlog

from sitecraft.errors import ValidationError
from sitecraft.models.generation import (
    GeneratedFile,
    GeneratedFileCreate,
    GenerationMetrics,
    GenerationStatus,
    GenerationVersion,
    TriggerType,
)
from sitecraft.repositories.generation_repository import GenerationRepository
from sitecraft.tools.file_tree import VirtualFileTree

logger = structlog.get_logger(__name__)


class GenerationLedger:
    def __init__(self, repository: GenerationRepository):
        self.repository = repository

    async def open_version(
        self,
        project_id: str,
        trigger_type: TriggerType,
        trigger_details: dict[str, Any] | None = None,
    ) -> GenerationVersion:
        """Insert the next ``pending`` version.

        Raises ``ConflictError`` when another version of the project is still
        in flight, including when a concurrent open wins the race.
        """
        version = await self.repository.create_version(project_id, trigger_type, trigger_details)
        logger.info(
            "generation_version_opened",
            project_id=project_id,
            version_id=version.id,
            version_number=version.version_number,
            trigger_type=version.trigger_type.value,
        )
        return version

    async def get_version(self, version_id: str) -> GenerationVersion:
        return await self.repository.get_version(version_id)

    async def mark_generating(self, version_id: str) -> GenerationVersion:
        version = await self.repository.transition_status(version_id, GenerationStatus.GENERATING)
        logger.info("generation_version_generating", version_id=version_id)
        return version

    async def complete_version(
        self,
        version_id: str,
        files: VirtualFileTree | Sequence[GeneratedFileCreate],
        metrics: GenerationMetrics,
    ) -> GenerationVersion:
        if isinstance(files, VirtualFileTree):
            files = files.to_generated_files()
        if not files:
            raise ValidationError("A generation version cannot complete without files")
        duplicates = sorted(
            path for path, count in Counter(file.file_path for file in files).items() if count > 1
        )
        if duplicates:
            raise ValidationError(
                "A generation version cannot contain the same path twice",
                details={"duplicate_paths": duplicates},
            )

        version = await self.repository.complete_version(version_id, files, metrics)
        logger.info(
            "generation_version_completed",
            version_id=version_id,
            file_count=len(files),
            total_tokens_used=metrics.total_tokens_used,
            generation_time_ms=metrics.generation_time_ms,
        )
        return version

    async def fail_version(
        self,
        version_id: str,
        error_message: str,
        error_details: dict[str, Any] | None = None,
    ) -> GenerationVersion:
        version = await self.repository.fail_version(version_id, error_message, error_details)
        logger.warning(
            "generation_version_failed",
            version_id=version_id,
            error_message=error_message,
        )
        return version

    async def latest_complete(self, project_id: str) -> GenerationVersion | None:
        return await self.repository.latest_complete(project_id)

    async def latest_version(self, project_id: str) -> GenerationVersion | None:
        return await self.repository.latest_version(project_id)

    async def list_files(self, version_id: str) -> list[GeneratedFile]:
        return await self.repository.list_files(version_id)

    async def count_files(self, version_id: str) -> int:
        return await self.repository.count_files(version_id)

    async def load_tree(self, version_id: str) -> VirtualFileTree:
        """Rebuild the file tree of a version from its stored rows."""
        return VirtualFileTree.from_files(await self.list_files(version_id))
