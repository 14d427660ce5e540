"""StageRecord model: one ordered stage of a project."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from stagegate.db.base import Base


class StageRecord(Base):
    __tablename__ = "stages"
    __table_args__ = (UniqueConstraint("project_id", "order", name="uq_project_stage_order"),)

    id = Column(String(64), primary_key=True)
    project_id = Column(String(64), ForeignKey("project_graphs.project_id"), nullable=False, index=True)
    order = Column(Integer, nullable=False)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="not_started")
    estimated_duration = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    # ["stage id", ...]
    prerequisites = Column(JSON, nullable=False, default=list)
    # ["deliverable name", ...]
    deliverables = Column(JSON, nullable=False, default=list)
