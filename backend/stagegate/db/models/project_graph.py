"""ProjectGraph model: one row per project holding the stage graph version."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, String

from stagegate.db.base import Base


class ProjectGraph(Base):
    __tablename__ = "project_graphs"

    project_id = Column(String(64), primary_key=True)
    # Bumped on every write to the project's stages; backs optimistic commit checks
    version = Column(Integer, nullable=False, default=0)
    template_key = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )
