from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from sitecraft.database import Base

# At most one pending/generating version per project, enforced by the store.
_IN_FLIGHT_PREDICATE = text("status IN ('pending', 'generating')")


class GenerationVersionDB(Base):
    """One generation attempt for a project (append-only ledger row)."""

    __tablename__ = "generation_versions"
    __table_args__ = (
        UniqueConstraint("project_id", "version_number", name="uq_generation_versions_number"),
        Index(
            "uq_generation_versions_in_flight",
            "project_id",
            unique=True,
            sqlite_where=_IN_FLIGHT_PREDICATE,
            postgresql_where=_IN_FLIGHT_PREDICATE,
        ),
    )

    id = Column(String, primary_key=True, index=True)
    project_id = Column(
        String,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pending")
    trigger_type = Column(String, nullable=False)
    trigger_details = Column(JSON, nullable=True)
    total_tokens_used = Column(Integer, nullable=False, default=0)
    generation_time_ms = Column(Integer, nullable=True)
    model_used = Column(String, nullable=True)
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("ProjectDB", back_populates="versions")
    files = relationship(
        "GeneratedFileDB",
        back_populates="version",
        cascade="all, delete-orphan",
    )


class GeneratedFileDB(Base):
    """Immutable file produced by a completed generation version."""

    __tablename__ = "generated_files"
    __table_args__ = (
        UniqueConstraint("version_id", "file_path", name="uq_generated_files_path"),
    )

    id = Column(String, primary_key=True, index=True)
    version_id = Column(
        String,
        ForeignKey("generation_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Insertion position inside the version, keeps deploy ordering stable
    position = Column(Integer, nullable=False, default=0)
    file_path = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    file_type = Column(String, nullable=False, default="component")
    section_type = Column(String, nullable=True)
    tokens_used = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    version = relationship("GenerationVersionDB", back_populates="files")
