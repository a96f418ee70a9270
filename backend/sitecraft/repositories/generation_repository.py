from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sitecraft.errors import ConflictError, InvalidTransitionError, VersionNotFoundError
from sitecraft.models.generation import (
    FileKind,
    GeneratedFile,
    GeneratedFileCreate,
    GenerationMetrics,
    GenerationStatus,
    GenerationVersion,
    TriggerType,
)
from sitecraft.models.generation_db import GeneratedFileDB, GenerationVersionDB


class GenerationRepository:
    """Row access for generation versions and their files.

    Status changes are conditional updates keyed on the allowed source
    states, so a writer that lost a race sees zero affected rows instead of
    overwriting a newer state.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _version_db_to_model(self, version_db: GenerationVersionDB) -> GenerationVersion:
        return GenerationVersion(
            id=version_db.id,
            project_id=version_db.project_id,
            version_number=version_db.version_number,
            status=GenerationStatus(version_db.status),
            trigger_type=TriggerType(version_db.trigger_type),
            trigger_details=version_db.trigger_details,
            total_tokens_used=version_db.total_tokens_used or 0,
            generation_time_ms=version_db.generation_time_ms,
            model_used=version_db.model_used,
            error_message=version_db.error_message,
            error_details=version_db.error_details,
            created_at=version_db.created_at,
            completed_at=version_db.completed_at,
        )

    def _file_db_to_model(self, file_db: GeneratedFileDB) -> GeneratedFile:
        return GeneratedFile(
            id=file_db.id,
            version_id=file_db.version_id,
            file_path=file_db.file_path,
            content=file_db.content,
            file_type=FileKind(file_db.file_type),
            section_type=file_db.section_type,
            tokens_used=file_db.tokens_used,
            created_at=file_db.created_at,
        )

    async def create_version(
        self,
        project_id: str,
        trigger_type: TriggerType,
        trigger_details: dict[str, Any] | None = None,
    ) -> GenerationVersion:
        """Insert the next ``pending`` version for *project_id*.

        The in-flight check below is only a fast path; the partial unique
        index and the ``(project_id, version_number)`` constraint decide
        concurrent opens.
        """
        in_flight = await self.session.scalar(
            select(func.count())
            .select_from(GenerationVersionDB)
            .where(GenerationVersionDB.project_id == project_id)
            .where(
                GenerationVersionDB.status.in_(
                    [status.value for status in GenerationStatus.in_flight()]
                )
            )
        )
        if in_flight:
            raise ConflictError("A generation is already in progress for this project")

        current_max = await self.session.scalar(
            select(func.max(GenerationVersionDB.version_number)).where(
                GenerationVersionDB.project_id == project_id
            )
        )

        version_db = GenerationVersionDB(
            id=uuid4().hex,
            project_id=project_id,
            version_number=(current_max or 0) + 1,
            status=GenerationStatus.PENDING.value,
            trigger_type=TriggerType(trigger_type).value,
            trigger_details=trigger_details,
            total_tokens_used=0,
        )
        self.session.add(version_db)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                "A generation is already in progress for this project"
            ) from exc
        await self.session.refresh(version_db)
        return self._version_db_to_model(version_db)

    async def _load(self, version_id: str) -> GenerationVersionDB:
        result = await self.session.execute(
            select(GenerationVersionDB)
            .where(GenerationVersionDB.id == version_id)
            .execution_options(populate_existing=True)
        )
        version_db = result.scalar_one_or_none()
        if not version_db:
            raise VersionNotFoundError(version_id)
        return version_db

    async def get_version(self, version_id: str) -> GenerationVersion:
        return self._version_db_to_model(await self._load(version_id))

    async def _conditional_update(
        self, version_id: str, target: GenerationStatus, **values: Any
    ) -> int:
        sources = [status.value for status in GenerationStatus.sources_for(target)]
        result = await self.session.execute(
            update(GenerationVersionDB)
            .where(GenerationVersionDB.id == version_id)
            .where(GenerationVersionDB.status.in_(sources))
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def _transition_failure(
        self, version_id: str, target: GenerationStatus
    ) -> InvalidTransitionError:
        # Raises VersionNotFoundError when the row is gone
        current = (await self._load(version_id)).status
        return InvalidTransitionError("generation version", current, target.value)

    async def transition_status(
        self, version_id: str, target: GenerationStatus, **values: Any
    ) -> GenerationVersion:
        updated = await self._conditional_update(version_id, target, **values)
        if not updated:
            await self.session.rollback()
            raise await self._transition_failure(version_id, target)
        await self.session.commit()
        return await self.get_version(version_id)

    async def complete_version(
        self,
        version_id: str,
        files: Sequence[GeneratedFileCreate],
        metrics: GenerationMetrics,
    ) -> GenerationVersion:
        """Move a ``generating`` version to ``complete`` and write its files.

        Both happen in one transaction: either the version is complete with
        every file, or nothing is written.
        """
        try:
            updated = await self._conditional_update(
                version_id,
                GenerationStatus.COMPLETE,
                total_tokens_used=metrics.total_tokens_used,
                generation_time_ms=metrics.generation_time_ms,
                model_used=metrics.model_used,
                completed_at=datetime.now(UTC),
            )
            if not updated:
                await self.session.rollback()
                raise await self._transition_failure(version_id, GenerationStatus.COMPLETE)

            self.session.add_all(
                [
                    GeneratedFileDB(
                        id=uuid4().hex,
                        version_id=version_id,
                        position=position,
                        file_path=file.file_path,
                        content=file.content,
                        file_type=FileKind(file.file_type).value,
                        section_type=file.section_type,
                        tokens_used=file.tokens_used,
                    )
                    for position, file in enumerate(files)
                ]
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return await self.get_version(version_id)

    async def fail_version(
        self,
        version_id: str,
        error_message: str,
        error_details: dict[str, Any] | None = None,
    ) -> GenerationVersion:
        try:
            updated = await self._conditional_update(
                version_id,
                GenerationStatus.ERROR,
                error_message=error_message,
                error_details=error_details,
                completed_at=datetime.now(UTC),
            )
            if not updated:
                await self.session.rollback()
                raise await self._transition_failure(version_id, GenerationStatus.ERROR)

            await self.session.execute(
                delete(GeneratedFileDB).where(GeneratedFileDB.version_id == version_id)
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return await self.get_version(version_id)

    async def latest_version(self, project_id: str) -> GenerationVersion | None:
        result = await self.session.execute(
            select(GenerationVersionDB)
            .where(GenerationVersionDB.project_id == project_id)
            .order_by(GenerationVersionDB.version_number.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        version_db = result.scalar_one_or_none()
        return self._version_db_to_model(version_db) if version_db else None

    async def latest_complete(self, project_id: str) -> GenerationVersion | None:
        result = await self.session.execute(
            select(GenerationVersionDB)
            .where(GenerationVersionDB.project_id == project_id)
            .where(GenerationVersionDB.status == GenerationStatus.COMPLETE.value)
            .order_by(GenerationVersionDB.version_number.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        version_db = result.scalar_one_or_none()
        return self._version_db_to_model(version_db) if version_db else None

    async def list_versions(self, project_id: str) -> list[GenerationVersion]:
        result = await self.session.execute(
            select(GenerationVersionDB)
            .where(GenerationVersionDB.project_id == project_id)
            .order_by(GenerationVersionDB.version_number.asc())
            .execution_options(populate_existing=True)
        )
        return [self._version_db_to_model(v) for v in result.scalars().all()]

    async def list_files(self, version_id: str) -> list[GeneratedFile]:
        result = await self.session.execute(
            select(GeneratedFileDB)
            .where(GeneratedFileDB.version_id == version_id)
            .order_by(GeneratedFileDB.position.asc())
        )
        return [self._file_db_to_model(f) for f in result.scalars().all()]

    async def count_files(self, version_id: str) -> int:
        count = await self.session.scalar(
            select(func.count())
            .select_from(GeneratedFileDB)
            .where(GeneratedFileDB.version_id == version_id)
        )
        return int(count or 0)
