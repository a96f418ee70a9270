from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitecraft.errors import DomainNotFoundError, InvalidTransitionError
from sitecraft.models.domain import Domain, DomainStatus, DomainType
from sitecraft.models.domain_db import DomainDB


class DomainRepository:
    """Repository for Domain database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _domain_db_to_model(self, domain_db: DomainDB) -> Domain:
        return Domain(
            id=domain_db.id,
            project_id=domain_db.project_id,
            user_id=domain_db.user_id,
            domain=domain_db.domain,
            domain_type=DomainType(domain_db.domain_type),
            status=DomainStatus(domain_db.status),
            dns_configured=bool(domain_db.dns_configured),
            verification_attempts=domain_db.verification_attempts or 0,
            created_at=domain_db.created_at,
            updated_at=domain_db.updated_at,
        )

    async def get_domain(self, domain_id: str, user_id: str | None = None) -> Domain:
        """Load a domain, scoped to *user_id* when given.

        A domain owned by someone else is reported exactly like a missing one.
        """
        query = select(DomainDB).where(DomainDB.id == domain_id)
        if user_id:
            query = query.where(DomainDB.user_id == user_id)

        result = await self.session.execute(query.execution_options(populate_existing=True))
        domain_db = result.scalar_one_or_none()
        if not domain_db:
            raise DomainNotFoundError(domain_id)
        return self._domain_db_to_model(domain_db)

    async def create_domain(
        self,
        user_id: str,
        domain: str,
        domain_type: DomainType,
        *,
        project_id: str | None = None,
        status: DomainStatus = DomainStatus.PENDING,
        dns_configured: bool = False,
    ) -> Domain:
        domain_db = DomainDB(
            id=uuid4().hex,
            project_id=project_id,
            user_id=user_id,
            domain=domain,
            domain_type=domain_type.value,
            status=status.value,
            dns_configured=dns_configured,
            verification_attempts=0,
        )
        self.session.add(domain_db)
        await self.session.commit()
        await self.session.refresh(domain_db)
        return self._domain_db_to_model(domain_db)

    async def mark_active(self, domain_id: str) -> Domain:
        """``pending -> active``; also sets ``dns_configured``."""
        result = await self.session.execute(
            update(DomainDB)
            .where(DomainDB.id == domain_id)
            .where(DomainDB.status == DomainStatus.PENDING.value)
            .values(
                status=DomainStatus.ACTIVE.value,
                dns_configured=True,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            await self.session.rollback()
            current = await self.get_domain(domain_id)
            if current.status is DomainStatus.ACTIVE:
                return current
            raise InvalidTransitionError("domain", current.status.value, DomainStatus.ACTIVE.value)
        await self.session.commit()
        return await self.get_domain(domain_id)

    async def record_unverified_check(
        self,
        domain_id: str,
        *,
        dns_configured: bool,
        max_attempts: int | None = None,
    ) -> Domain:
        """Count a failed verification and, when *max_attempts* is reached, fail it.

        Only pending domains are touched; without *max_attempts* the domain
        stays pending indefinitely.
        """
        domain_db = (
            await self.session.execute(
                select(DomainDB)
                .where(DomainDB.id == domain_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        if not domain_db:
            raise DomainNotFoundError(domain_id)
        if domain_db.status != DomainStatus.PENDING.value:
            return self._domain_db_to_model(domain_db)

        attempts = (domain_db.verification_attempts or 0) + 1
        domain_db.verification_attempts = attempts
        domain_db.dns_configured = dns_configured
        if max_attempts is not None and attempts >= max_attempts:
            domain_db.status = DomainStatus.PENDING.ensure_transition(DomainStatus.FAILED).value
        domain_db.updated_at = datetime.now(UTC)
        await self.session.commit()
        await self.session.refresh(domain_db)
        return self._domain_db_to_model(domain_db)

    async def find_active_custom_domain(self, project_id: str) -> Domain | None:
        result = await self.session.execute(
            select(DomainDB)
            .where(DomainDB.project_id == project_id)
            .where(DomainDB.domain_type == DomainType.CUSTOM.value)
            .where(DomainDB.status == DomainStatus.ACTIVE.value)
            .order_by(DomainDB.created_at.desc())
            .limit(1)
        )
        domain_db = result.scalar_one_or_none()
        return self._domain_db_to_model(domain_db) if domain_db else None

    async def list_pending_custom_domains(self, project_id: str) -> list[Domain]:
        result = await self.session.execute(
            select(DomainDB)
            .where(DomainDB.project_id == project_id)
            .where(DomainDB.domain_type == DomainType.CUSTOM.value)
            .where(DomainDB.status == DomainStatus.PENDING.value)
            .order_by(DomainDB.created_at.asc())
        )
        return [self._domain_db_to_model(d) for d in result.scalars().all()]

    async def list_project_domains(self, project_id: str) -> list[Domain]:
        result = await self.session.execute(
            select(DomainDB)
            .where(DomainDB.project_id == project_id)
            .order_by(DomainDB.created_at.asc())
        )
        return [self._domain_db_to_model(d) for d in result.scalars().all()]

    async def replace_subdomain(self, project_id: str, user_id: str, hostname: str) -> Domain:
        """Swap the project's subdomain row for an active one pointing at *hostname*."""
        await self.session.execute(
            delete(DomainDB)
            .where(DomainDB.project_id == project_id)
            .where(DomainDB.domain_type == DomainType.SUBDOMAIN.value)
        )
        domain_db = DomainDB(
            id=uuid4().hex,
            project_id=project_id,
            user_id=user_id,
            domain=hostname,
            domain_type=DomainType.SUBDOMAIN.value,
            status=DomainStatus.ACTIVE.value,
            dns_configured=True,
            verification_attempts=0,
        )
        self.session.add(domain_db)
        await self.session.commit()
        await self.session.refresh(domain_db)
        return self._domain_db_to_model(domain_db)

    async def remove_custom_domains(self, project_id: str) -> int:
        result = await self.session.execute(
            delete(DomainDB)
            .where(DomainDB.project_id == project_id)
            .where(DomainDB.domain_type == DomainType.CUSTOM.value)
        )
        await self.session.commit()
        return result.rowcount
