from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from sitecraft.database import Base


class ProjectDB(Base):
    """Database model for website projects linked to users."""

    __tablename__ = "projects"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    site_type = Column(String, nullable=False, default="business")
    status = Column(String, nullable=False, default="draft", index=True)
    generation_config = Column(JSON, nullable=False, default=dict)
    design_system = Column(JSON, nullable=True)
    provider_project_name = Column(String, nullable=True)
    provider_project_id = Column(String, nullable=True)
    deployment_url = Column(String, nullable=True)
    custom_domain = Column(String, nullable=True)
    published_url = Column(String, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    last_generated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    user = relationship("User", back_populates="projects")
    versions = relationship(
        "GenerationVersionDB",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="GenerationVersionDB.version_number",
    )
