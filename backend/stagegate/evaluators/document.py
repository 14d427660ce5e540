"""Document check: required documents exist and have been reviewed.

The required set is the condition's ``documents`` or, when empty, the source
stage's deliverables.
"""

from stagegate.domain.conditions import ConditionResult, TransitionCondition
from stagegate.evaluators.base import ProjectContext
from stagegate.evaluators.ports import DocumentStatusProvider


class DocumentEvaluator:
    def __init__(self, provider: DocumentStatusProvider):
        self.provider = provider

    async def evaluate(self, condition: TransitionCondition, context: ProjectContext) -> ConditionResult:
        required = condition.documents or context.from_stage.deliverables
        documents = {d.name: d for d in await self.provider.get_documents(context.project_id, context.from_stage.id)}

        missing = [name for name in required if name not in documents]
        unreviewed = [name for name in required if name in documents and not documents[name].reviewed]

        problems = []
        if missing:
            problems.append(f"missing: {', '.join(missing)}")
        if unreviewed:
            problems.append(f"not reviewed: {', '.join(unreviewed)}")
        if problems:
            return ConditionResult.failed_result(condition.id, "Documents incomplete (" + "; ".join(problems) + ")")
        return ConditionResult.passed_result(condition.id, f"{len(required)} document(s) present and reviewed")
