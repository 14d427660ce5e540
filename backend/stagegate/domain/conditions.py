"""Transition conditions and their evaluation results.

Pure domain types. No I/O.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class ConditionType(StrEnum):
    """Condition kinds. The type selects the evaluator implementation."""

    TASK_COMPLETION = "task_completion"
    DATA_QUALITY = "data_quality"
    APPROVAL = "approval"
    DOCUMENT = "document"
    CUSTOM = "custom"


class ConditionStatus(StrEnum):
    PENDING = "pending"
    CHECKING = "checking"
    PASSED = "passed"
    FAILED = "failed"


# error_code values for checks that could not produce a verdict
EVALUATION_TIMEOUT = "condition_evaluation_timeout"
EVALUATION_UNAVAILABLE = "condition_evaluation_unavailable"


@dataclass(frozen=True)
class TransitionCondition:
    """A named, typed check attached to a (from_stage, to_stage) edge.

    ``approver`` is used by approval conditions, ``documents`` by document
    conditions (empty = the source stage's deliverables) and ``predicate`` names
    the plugin a custom condition delegates to.
    """

    id: str
    name: str
    type: ConditionType
    description: str = ""
    required: bool = True
    approver: str | None = None
    documents: tuple[str, ...] = ()
    predicate: str | None = None


@dataclass(frozen=True)
class ConditionResult:
    """Outcome of evaluating one condition at one point in time."""

    condition_id: str
    status: ConditionStatus
    message: str = ""
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    error_code: str | None = None

    @property
    def passed(self) -> bool:
        return self.status == ConditionStatus.PASSED

    @property
    def indeterminate(self) -> bool:
        """True when the check could not run (timeout or unavailable dependency)."""
        return self.error_code is not None

    @classmethod
    def passed_result(cls, condition_id: str, message: str = "Check passed") -> "ConditionResult":
        return cls(condition_id=condition_id, status=ConditionStatus.PASSED, message=message)

    @classmethod
    def failed_result(cls, condition_id: str, message: str) -> "ConditionResult":
        return cls(condition_id=condition_id, status=ConditionStatus.FAILED, message=message)

    @classmethod
    def could_not_run(cls, condition_id: str, error_code: str, message: str) -> "ConditionResult":
        return cls(
            condition_id=condition_id,
            status=ConditionStatus.FAILED,
            message=message,
            error_code=error_code,
        )
