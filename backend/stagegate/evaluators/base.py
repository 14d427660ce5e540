"""ConditionEvaluator protocol -- the seam between the gate and the checks.

Each TransitionCondition type is handled by one evaluator. An evaluator reads
current project state through its provider and returns a ConditionResult:

    PASSED   -- the condition holds
    FAILED   -- the condition does not hold (message names what is missing)

An evaluator that cannot reach its backing subsystem raises
ConditionEvaluationUnavailable (or lets the provider's exception escape). The
gate turns such failures, and timeouts, into "could not run" results; an
evaluator never decides on its own that a check passed because it failed to
run.

Evaluators must not write project state. They may be invoked concurrently for
different conditions of the same request.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from stagegate.domain.conditions import ConditionResult, TransitionCondition
from stagegate.domain.stages import Stage, StageGraph


@dataclass(frozen=True)
class ProjectContext:
    """Read-only view of the project handed to every evaluator."""

    project_id: str
    graph: StageGraph
    from_stage: Stage
    to_stage: Stage


@runtime_checkable
class ConditionEvaluator(Protocol):
    """Protocol for condition evaluators."""

    async def evaluate(self, condition: TransitionCondition, context: ProjectContext) -> ConditionResult:
        """Evaluate one condition against the current project state.

        Args:
            condition: The condition to check
            context: Project, graph snapshot and the edge being crossed

        Returns:
            ConditionResult with status PASSED or FAILED

        Raises:
            ConditionEvaluationUnavailable: The backing subsystem cannot answer
        """
        ...
