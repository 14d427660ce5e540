"""Task completion check: every required task of the source stage is done."""

from stagegate.domain.conditions import ConditionResult, TransitionCondition
from stagegate.evaluators.base import ProjectContext
from stagegate.evaluators.ports import TaskStatusProvider


class TaskCompletionEvaluator:
    def __init__(self, provider: TaskStatusProvider):
        self.provider = provider

    async def evaluate(self, condition: TransitionCondition, context: ProjectContext) -> ConditionResult:
        tasks = await self.provider.get_tasks(context.project_id, context.from_stage.id)
        pending = [t for t in tasks if t.required and not t.completed]

        if pending:
            names = ", ".join(t.name for t in pending)
            return ConditionResult.failed_result(
                condition.id, f"{len(pending)} required task(s) not completed: {names}"
            )
        return ConditionResult.passed_result(condition.id, f"All {len(tasks)} task(s) completed")
