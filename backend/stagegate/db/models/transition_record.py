"""TransitionHistory model: append-only transition history."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text

from stagegate.db.base import Base


class TransitionHistory(Base):
    __tablename__ = "transition_history"

    id = Column(String(64), primary_key=True)
    project_id = Column(String(64), ForeignKey("project_graphs.project_id"), nullable=False, index=True)

    kind = Column(String(20), nullable=False)  # transition, start, block, unblock
    from_stage_id = Column(String(64), nullable=True)  # null for start/block/unblock
    to_stage_id = Column(String(64), nullable=False)
    notes = Column(Text, nullable=False, default="")
    decision_id = Column(String(64), nullable=True)
    # [{"condition_id", "status", "message", "evaluated_at", "error_code"}, ...]
    results = Column(JSON, nullable=False, default=list)

    timestamp = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), index=True)
    # NO updated_at -- history is immutable (append-only)
