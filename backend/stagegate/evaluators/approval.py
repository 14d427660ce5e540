"""Approval check: the designated approver has signed off the source stage."""

from stagegate.domain.conditions import ConditionResult, TransitionCondition
from stagegate.evaluators.base import ProjectContext
from stagegate.evaluators.ports import ApprovalRecordProvider


class ApprovalEvaluator:
    def __init__(self, provider: ApprovalRecordProvider, default_approver: str = "stage_owner"):
        self.provider = provider
        self.default_approver = default_approver

    async def evaluate(self, condition: TransitionCondition, context: ProjectContext) -> ConditionResult:
        approver = condition.approver or self.default_approver
        approvals = await self.provider.get_approvals(context.project_id, context.from_stage.id)

        record = next((a for a in approvals if a.approver == approver), None)
        if record is None:
            return ConditionResult.failed_result(condition.id, f"Awaiting approval from {approver}")
        if not record.approved:
            reason = f": {record.comment}" if record.comment else ""
            return ConditionResult.failed_result(condition.id, f"Approval rejected by {approver}{reason}")
        return ConditionResult.passed_result(condition.id, f"Approved by {approver}")
