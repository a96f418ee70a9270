from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sitecraft.errors import ConflictError, ValidationError
from sitecraft.models.generation import (
    GeneratedFileCreate,
    GenerationMetrics,
    GenerationStatusReport,
    GenerationVersion,
    TriggerType,
    VersionSummary,
)
from sitecraft.models.project import Project, ProjectStatus
from sitecraft.models.site_config import DesignSystem
from sitecraft.repositories.generation_repository import GenerationRepository
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.fallback_producer import EDIT_TRIGGERS, ContentProducer
from sitecraft.services.generation_ledger import GenerationLedger
from sitecraft.services.scaffold_builder import build_scaffold_tree
from sitecraft.services.task_service import TaskService
from sitecraft.tools.file_tree import VirtualFileTree
from sitecraft.tools.path_utils import ensure_relative
from sitecraft.tools.sanitizer import sanitize_tree

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class GenerationStart:
    version: GenerationVersion
    task: asyncio.Task[None]


class GenerationService:
    """Opens ledger versions and produces their file sets in the background."""

    def __init__(
        self,
        project_repository: ProjectRepository,
        ledger: GenerationLedger,
        task_service: TaskService,
        content_producer: ContentProducer,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.project_repository = project_repository
        self.ledger = ledger
        self.task_service = task_service
        self.content_producer = content_producer
        self.session_factory = session_factory

    async def start_generation(
        self,
        project_id: str,
        user_id: str,
        trigger_type: TriggerType = TriggerType.INITIAL,
        trigger_details: dict[str, Any] | None = None,
    ) -> GenerationStart:
        project = await self.project_repository.get_project(project_id, user_id=user_id)
        if project.status is ProjectStatus.GENERATING:
            raise ConflictError("A generation is already in progress for this project")
        project.status.ensure_transition(ProjectStatus.GENERATING)

        base_version_id = None
        if trigger_type in EDIT_TRIGGERS:
            base = await self.ledger.latest_complete(project_id)
            if base is None:
                raise ValidationError("No existing website to edit. Generate one first.")
            base_version_id = base.id

        version = await self.ledger.open_version(project_id, trigger_type, trigger_details)
        await self.project_repository.update_project_status(project_id, ProjectStatus.GENERATING)

        task = await self.task_service.spawn(
            self._run(project, version, base_version_id),
            name=f"generation:{project_id}:{version.version_number}",
        )
        return GenerationStart(version=version, task=task)

    async def _run(
        self, project: Project, version: GenerationVersion, base_version_id: str | None
    ) -> None:
        version_id = version.id
        # Background work gets its own session; the request session is gone by now
        async with self.session_factory() as session:
            ledger = GenerationLedger(GenerationRepository(session))
            projects = ProjectRepository(session)
            log = logger.bind(project_id=project.id, version_id=version_id)
            started = time.perf_counter()

            try:
                await ledger.mark_generating(version_id)
                files, metrics = await self._produce(ledger, project, version, base_version_id, started)
                await ledger.complete_version(version_id, files, metrics)
            except asyncio.CancelledError:
                log.warning("generation_cancelled")
                await self._record_failure(ledger, projects, project.id, version_id, "Generation cancelled")
                raise
            except Exception as exc:
                log.exception("generation_failed", error=str(exc))
                await self._record_failure(
                    ledger,
                    projects,
                    project.id,
                    version_id,
                    str(exc) or type(exc).__name__,
                    {"type": type(exc).__name__},
                )
                return

            await projects.update_project_status(
                project.id,
                ProjectStatus.GENERATED,
                last_generated_at=datetime.now(UTC),
            )
            log.info("generation_finished", file_count=len(files))

    async def _produce(
        self,
        ledger: GenerationLedger,
        project: Project,
        version: GenerationVersion,
        base_version_id: str | None,
        started: float,
    ) -> tuple[list[GeneratedFileCreate], GenerationMetrics]:
        config = project.generation_config
        design_system = project.design_system or DesignSystem()
        trigger_type = version.trigger_type

        # section metadata by path; produced files override carried ones
        metadata: dict[str, GeneratedFileCreate] = {}
        base_tree = None
        if base_version_id is None:
            tree = build_scaffold_tree(config, design_system)
        else:
            base_files = await ledger.list_files(base_version_id)
            metadata.update((file.file_path, file) for file in base_files)
            base_tree = VirtualFileTree.from_files(base_files)
            tree = VirtualFileTree.from_files(base_files)
            if trigger_type is TriggerType.STYLE_CHANGE:
                # Design-system files are re-rendered; pages and sections carry over
                for path, file in build_scaffold_tree(config, design_system).entries():
                    tree.add_file(path, file.content, file.kind)
                    metadata.pop(path, None)

        produced = await self.content_producer.produce(
            config,
            design_system,
            trigger_type=trigger_type,
            trigger_details=version.trigger_details,
            base_tree=base_tree,
        )
        for file in produced.files:
            path = ensure_relative(file.file_path)
            tree.add_file(path, file.content, file.file_type)
            metadata[path] = file
        sanitize_tree(tree, config)

        files = []
        for path, file in tree.entries():
            source = metadata.get(path)
            files.append(
                GeneratedFileCreate(
                    file_path=path,
                    content=file.content,
                    file_type=file.kind,
                    section_type=source.section_type if source else None,
                    tokens_used=source.tokens_used if source else None,
                )
            )

        metrics = GenerationMetrics(
            total_tokens_used=produced.total_tokens_used,
            generation_time_ms=int((time.perf_counter() - started) * 1000),
            model_used=produced.model_used,
        )
        return files, metrics

    async def _record_failure(
        self,
        ledger: GenerationLedger,
        projects: ProjectRepository,
        project_id: str,
        version_id: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        await ledger.fail_version(version_id, message, details)
        await projects.update_project_status(project_id, ProjectStatus.ERROR)

    async def get_generation_status(self, project_id: str, user_id: str) -> GenerationStatusReport:
        project = await self.project_repository.get_project(project_id, user_id=user_id)
        latest = await self.ledger.latest_version(project_id)

        summary = None
        file_count = 0
        if latest is not None:
            summary = VersionSummary(
                id=latest.id,
                version_number=latest.version_number,
                status=latest.status,
                generation_time_ms=latest.generation_time_ms,
                completed_at=latest.completed_at,
                created_at=latest.created_at,
            )
            file_count = await self.ledger.count_files(latest.id)

        return GenerationStatusReport(
            project_status=project.status.value,
            last_generated_at=project.last_generated_at,
            latest_version=summary,
            file_count=file_count,
        )
