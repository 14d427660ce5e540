"""Custom conditions delegate to named predicate plugins.

A predicate is a callable ``(condition, context) -> bool | ConditionResult``,
sync or async. A bool is wrapped into a PASSED/FAILED result. Sync predicates
run in a worker thread so a slow one cannot stall the event loop or escape
the gate's timeout.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import replace

from stagegate.core.exceptions import ConditionEvaluationUnavailable
from stagegate.domain.conditions import ConditionResult, TransitionCondition
from stagegate.evaluators.base import ProjectContext

Predicate = Callable[[TransitionCondition, ProjectContext], bool | ConditionResult | Awaitable[bool | ConditionResult]]


class CustomEvaluator:
    def __init__(self, predicates: dict[str, Predicate] | None = None):
        self._predicates: dict[str, Predicate] = dict(predicates or {})

    def register(self, name: str, predicate: Predicate) -> None:
        self._predicates[name] = predicate

    async def evaluate(self, condition: TransitionCondition, context: ProjectContext) -> ConditionResult:
        predicate = self._predicates.get(condition.predicate or condition.id)
        if predicate is None:
            raise ConditionEvaluationUnavailable(
                f"No predicate registered for custom condition '{condition.id}'"
            )

        if inspect.iscoroutinefunction(predicate):
            outcome = await predicate(condition, context)
        else:
            outcome = await asyncio.to_thread(predicate, condition, context)
            if inspect.isawaitable(outcome):
                outcome = await outcome

        if isinstance(outcome, ConditionResult):
            # Results are always filed under the condition that was evaluated
            if outcome.condition_id != condition.id:
                outcome = replace(outcome, condition_id=condition.id)
            return outcome
        if outcome:
            return ConditionResult.passed_result(condition.id)
        return ConditionResult.failed_result(condition.id, f"Custom check '{condition.name}' not satisfied")
