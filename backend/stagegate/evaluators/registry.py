"""Maps condition types to evaluator instances."""

from stagegate.core.exceptions import ConditionEvaluationUnavailable
from stagegate.domain.conditions import ConditionType, TransitionCondition
from stagegate.evaluators.approval import ApprovalEvaluator
from stagegate.evaluators.base import ConditionEvaluator
from stagegate.evaluators.custom import CustomEvaluator, Predicate
from stagegate.evaluators.data_quality import DataQualityEvaluator
from stagegate.evaluators.document import DocumentEvaluator
from stagegate.evaluators.ports import (
    ApprovalRecordProvider,
    DocumentStatusProvider,
    QualityIssueProvider,
    TaskStatusProvider,
)
from stagegate.evaluators.providers import (
    InMemoryApprovalProvider,
    InMemoryDocumentProvider,
    InMemoryQualityIssueProvider,
    InMemoryTaskProvider,
)
from stagegate.evaluators.task_completion import TaskCompletionEvaluator


class EvaluatorRegistry:
    def __init__(self, evaluators: dict[ConditionType, ConditionEvaluator] | None = None):
        self._evaluators: dict[ConditionType, ConditionEvaluator] = dict(evaluators or {})

    def register(self, condition_type: ConditionType, evaluator: ConditionEvaluator) -> None:
        self._evaluators[condition_type] = evaluator

    def for_condition(self, condition: TransitionCondition) -> ConditionEvaluator:
        """Return the evaluator for a condition's type.

        Raises:
            ConditionEvaluationUnavailable: No evaluator is registered for the type
        """
        evaluator = self._evaluators.get(condition.type)
        if evaluator is None:
            raise ConditionEvaluationUnavailable(f"No evaluator registered for condition type '{condition.type}'")
        return evaluator


def build_registry(
    tasks: TaskStatusProvider | None = None,
    quality: QualityIssueProvider | None = None,
    approvals: ApprovalRecordProvider | None = None,
    documents: DocumentStatusProvider | None = None,
    predicates: dict[str, Predicate] | None = None,
) -> EvaluatorRegistry:
    """Build a registry with the built-in evaluators.

    Providers left as None fall back to empty in-memory providers.
    """
    return EvaluatorRegistry(
        {
            ConditionType.TASK_COMPLETION: TaskCompletionEvaluator(tasks or InMemoryTaskProvider()),
            ConditionType.DATA_QUALITY: DataQualityEvaluator(quality or InMemoryQualityIssueProvider()),
            ConditionType.APPROVAL: ApprovalEvaluator(approvals or InMemoryApprovalProvider()),
            ConditionType.DOCUMENT: DocumentEvaluator(documents or InMemoryDocumentProvider()),
            ConditionType.CUSTOM: CustomEvaluator(predicates),
        }
    )
