from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from sitecraft.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(Base):
    """Local mirror of an auth-server account.

    Rows are created and refreshed from verified token claims; projects and
    domains are deleted with their owner.
    """

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    image = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    projects = relationship("ProjectDB", back_populates="user", cascade="all, delete-orphan")
    domains = relationship("DomainDB", cascade="all, delete-orphan", passive_deletes=True)
