"""Data quality check: no open quality issues on the source stage's samples."""

from stagegate.domain.conditions import ConditionResult, TransitionCondition
from stagegate.evaluators.base import ProjectContext
from stagegate.evaluators.ports import QualityIssueProvider


class DataQualityEvaluator:
    def __init__(self, provider: QualityIssueProvider):
        self.provider = provider

    async def evaluate(self, condition: TransitionCondition, context: ProjectContext) -> ConditionResult:
        issues = await self.provider.get_open_issues(context.project_id, context.from_stage.id)

        if issues:
            samples = sorted({i.sample_id for i in issues})
            return ConditionResult.failed_result(
                condition.id,
                f"{len(issues)} open quality issue(s) on sample(s): {', '.join(samples)}",
            )
        return ConditionResult.passed_result(condition.id, "No open quality issues")
