"""Transition requests, gate decisions and history records.

Pure domain functions for aggregating condition results into an admissibility
verdict. No I/O, fully deterministic.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from stagegate.domain.conditions import ConditionResult, TransitionCondition


class RecordKind(StrEnum):
    """History record kinds."""

    TRANSITION = "transition"
    START = "start"
    BLOCK = "block"
    UNBLOCK = "unblock"


@dataclass(frozen=True)
class TransitionRequest:
    """A caller's intent to move a project from one stage to the next."""

    project_id: str
    from_stage_id: str
    to_stage_id: str

    @property
    def key(self) -> str:
        return f"{self.project_id}:{self.from_stage_id}:{self.to_stage_id}"


@dataclass(frozen=True)
class GateDecision:
    """Aggregated admissibility verdict plus per-condition diagnostics."""

    request: TransitionRequest
    admissible: bool
    results: tuple[ConditionResult, ...]
    graph_version: int
    required_ids: frozenset[str] = frozenset()
    decision_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def blocking(self) -> list[str]:
        """Required conditions that failed with a genuine verdict."""
        return [
            r.condition_id
            for r in self.results
            if r.condition_id in self.required_ids and not r.passed and not r.indeterminate
        ]

    @property
    def indeterminate(self) -> list[str]:
        """Conditions whose check could not run."""
        return [r.condition_id for r in self.results if r.indeterminate]

    @property
    def warnings(self) -> list[str]:
        """Advisory (non-required) conditions that did not pass."""
        return [r.condition_id for r in self.results if r.condition_id not in self.required_ids and not r.passed]

    def age(self, now: datetime | None = None) -> timedelta:
        now = now or datetime.now(UTC)
        return now - self.evaluated_at

    def is_fresh(self, window_seconds: float, now: datetime | None = None) -> bool:
        age = self.age(now)
        return timedelta(0) <= age <= timedelta(seconds=window_seconds)


@dataclass(frozen=True)
class TransitionRecord:
    """Immutable, append-only history entry."""

    project_id: str
    from_stage_id: str | None
    to_stage_id: str
    kind: RecordKind = RecordKind.TRANSITION
    notes: str = ""
    results: tuple[ConditionResult, ...] = ()
    decision_id: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def references(self, stage_id: str) -> bool:
        return stage_id in (self.from_stage_id, self.to_stage_id)


def is_admissible(conditions: list[TransitionCondition], results: list[ConditionResult]) -> bool:
    """Decide admissibility from condition results.

    Pure function -- same inputs give the same verdict regardless of the order
    in which evaluations finished.

    Rules:
        - Every required condition must be PASSED
        - A required condition with no result blocks
        - Any indeterminate result blocks, advisory or not
        - Advisory (required=False) failures never block
        - An empty condition set is trivially admissible
    """
    if any(r.indeterminate for r in results):
        return False

    by_id = {r.condition_id: r for r in results}
    for condition in conditions:
        if not condition.required:
            continue
        result = by_id.get(condition.id)
        if result is None or not result.passed:
            return False
    return True


def build_decision(
    request: TransitionRequest,
    conditions: list[TransitionCondition],
    results: list[ConditionResult],
    graph_version: int,
) -> GateDecision:
    """Aggregate results into a GateDecision, ordered as the conditions are declared."""
    order = {c.id: i for i, c in enumerate(conditions)}
    ordered = sorted(results, key=lambda r: order.get(r.condition_id, len(order)))
    return GateDecision(
        request=request,
        admissible=is_admissible(conditions, ordered),
        results=tuple(ordered),
        graph_version=graph_version,
        required_ids=frozenset(c.id for c in conditions if c.required),
    )
