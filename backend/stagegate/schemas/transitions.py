"""Transition Pydantic schemas for API requests, responses and stored decisions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from stagegate.domain.conditions import ConditionResult, ConditionStatus
from stagegate.domain.transitions import GateDecision, RecordKind, TransitionRecord, TransitionRequest


class ConditionResultSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    condition_id: str
    status: ConditionStatus
    message: str = ""
    evaluated_at: datetime
    error_code: str | None = None

    def to_domain(self) -> ConditionResult:
        return ConditionResult(
            condition_id=self.condition_id,
            status=self.status,
            message=self.message,
            evaluated_at=self.evaluated_at,
            error_code=self.error_code,
        )


class EvaluateTransitionRequest(BaseModel):
    from_stage_id: str
    to_stage_id: str
    # Accept a stored decision younger than this many seconds instead of re-running checks
    cache_ttl: float | None = Field(default=None, gt=0)


class GateDecisionSchema(BaseModel):
    """Gate decision as returned to callers and as kept in the decision store."""

    decision_id: str
    project_id: str
    from_stage_id: str
    to_stage_id: str
    admissible: bool
    graph_version: int
    evaluated_at: datetime
    required_ids: list[str] = []
    results: list[ConditionResultSchema] = []
    blocking: list[str] = []
    warnings: list[str] = []
    indeterminate: list[str] = []

    @classmethod
    def from_decision(cls, decision: GateDecision) -> "GateDecisionSchema":
        return cls(
            decision_id=decision.decision_id,
            project_id=decision.request.project_id,
            from_stage_id=decision.request.from_stage_id,
            to_stage_id=decision.request.to_stage_id,
            admissible=decision.admissible,
            graph_version=decision.graph_version,
            evaluated_at=decision.evaluated_at,
            required_ids=sorted(decision.required_ids),
            results=[ConditionResultSchema.model_validate(r) for r in decision.results],
            blocking=decision.blocking,
            warnings=decision.warnings,
            indeterminate=decision.indeterminate,
        )

    def to_domain(self) -> GateDecision:
        return GateDecision(
            request=TransitionRequest(self.project_id, self.from_stage_id, self.to_stage_id),
            admissible=self.admissible,
            results=tuple(r.to_domain() for r in self.results),
            graph_version=self.graph_version,
            required_ids=frozenset(self.required_ids),
            decision_id=self.decision_id,
            evaluated_at=self.evaluated_at,
        )


class CommitTransitionRequest(BaseModel):
    from_stage_id: str
    to_stage_id: str
    decision_id: str
    notes: str = ""


class BlockStageRequest(BaseModel):
    reason: str = Field(min_length=1)


class TransitionRecordSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    kind: RecordKind
    from_stage_id: str | None
    to_stage_id: str
    notes: str
    decision_id: str | None
    timestamp: datetime
    results: list[ConditionResultSchema] = []

    def to_domain(self) -> TransitionRecord:
        return TransitionRecord(
            project_id=self.project_id,
            from_stage_id=self.from_stage_id,
            to_stage_id=self.to_stage_id,
            kind=self.kind,
            notes=self.notes,
            results=tuple(r.to_domain() for r in self.results),
            decision_id=self.decision_id,
            id=self.id,
            timestamp=self.timestamp,
        )


class HistoryResponse(BaseModel):
    project_id: str
    records: list[TransitionRecordSchema]
