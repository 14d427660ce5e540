"""Tests for the built-in condition evaluators and the registry."""

import pytest

from stagegate.core.exceptions import ConditionEvaluationUnavailable
from stagegate.domain.conditions import ConditionResult, ConditionStatus, ConditionType, TransitionCondition
from stagegate.domain.stages import StageGraph
from stagegate.evaluators.approval import ApprovalEvaluator
from stagegate.evaluators.base import ConditionEvaluator, ProjectContext
from stagegate.evaluators.custom import CustomEvaluator
from stagegate.evaluators.data_quality import DataQualityEvaluator
from stagegate.evaluators.document import DocumentEvaluator
from stagegate.evaluators.ports import (
    ApprovalRecord,
    DocumentState,
    QualityIssue,
    TaskState,
    TaskStatusProvider,
)
from stagegate.evaluators.providers import InMemoryTaskProvider
from stagegate.evaluators.registry import EvaluatorRegistry, build_registry
from stagegate.evaluators.task_completion import TaskCompletionEvaluator

pytestmark = pytest.mark.unit


@pytest.fixture
def context(stage_factory):
    graph = StageGraph(project_id="proj-1", stages=stage_factory())
    return ProjectContext("proj-1", graph, graph.get("A"), graph.get("B"))


def _condition(ctype: ConditionType, **kwargs) -> TransitionCondition:
    return TransitionCondition(id=f"{ctype.value}_check", name=ctype.value, type=ctype, **kwargs)


class TestTaskCompletion:
    async def test_passes_when_required_tasks_done(self, tasks, context):
        tasks.set_task("proj-1", "A", TaskState("t1", "Collect docs", completed=True))
        tasks.set_task("proj-1", "A", TaskState("t2", "Optional", completed=False, required=False))

        result = await TaskCompletionEvaluator(tasks).evaluate(_condition(ConditionType.TASK_COMPLETION), context)
        assert result.passed

    async def test_failure_counts_outstanding(self, tasks, context):
        for i in range(3):
            tasks.set_task("proj-1", "A", TaskState(f"t{i}", f"Task {i}", completed=False))

        result = await TaskCompletionEvaluator(tasks).evaluate(_condition(ConditionType.TASK_COMPLETION), context)
        assert result.status == ConditionStatus.FAILED
        assert "3 required task(s) not completed" in result.message
        assert not result.indeterminate

    async def test_reads_source_stage_only(self, tasks, context):
        tasks.set_task("proj-1", "B", TaskState("t1", "Next stage work", completed=False))
        result = await TaskCompletionEvaluator(tasks).evaluate(_condition(ConditionType.TASK_COMPLETION), context)
        assert result.passed


class TestDataQuality:
    async def test_no_issues(self, quality, context):
        result = await DataQualityEvaluator(quality).evaluate(_condition(ConditionType.DATA_QUALITY), context)
        assert result.passed

    async def test_open_issues(self, quality, context):
        quality.open_issue("proj-1", "A", QualityIssue("q1", "S001"))
        quality.open_issue("proj-1", "A", QualityIssue("q2", "S002"))

        result = await DataQualityEvaluator(quality).evaluate(_condition(ConditionType.DATA_QUALITY), context)
        assert not result.passed
        assert "2 open quality issue(s)" in result.message
        assert "S001" in result.message

    async def test_closed_issue_passes(self, quality, context):
        quality.open_issue("proj-1", "A", QualityIssue("q1", "S001"))
        quality.close_issue("proj-1", "A", "q1")
        result = await DataQualityEvaluator(quality).evaluate(_condition(ConditionType.DATA_QUALITY), context)
        assert result.passed


class TestApproval:
    async def test_pending_approver_named(self, approvals, context):
        condition = _condition(ConditionType.APPROVAL, approver="quality_manager")
        result = await ApprovalEvaluator(approvals).evaluate(condition, context)
        assert not result.passed
        assert "quality_manager" in result.message

    async def test_signed_off(self, approvals, context):
        approvals.record("proj-1", "A", ApprovalRecord("quality_manager", approved=True))
        condition = _condition(ConditionType.APPROVAL, approver="quality_manager")
        assert (await ApprovalEvaluator(approvals).evaluate(condition, context)).passed

    async def test_other_approver_does_not_count(self, approvals, context):
        approvals.record("proj-1", "A", ApprovalRecord("lab_lead", approved=True))
        condition = _condition(ConditionType.APPROVAL, approver="quality_manager")
        assert not (await ApprovalEvaluator(approvals).evaluate(condition, context)).passed

    async def test_rejection(self, approvals, context):
        approvals.record("proj-1", "A", ApprovalRecord("stage_owner", approved=False, comment="redo QC"))
        result = await ApprovalEvaluator(approvals).evaluate(_condition(ConditionType.APPROVAL), context)
        assert not result.passed
        assert "redo QC" in result.message


class TestDocument:
    async def test_defaults_to_stage_deliverables(self, documents, context):
        result = await DocumentEvaluator(documents).evaluate(_condition(ConditionType.DOCUMENT), context)
        assert not result.passed
        assert "missing: Report A" in result.message

        documents.put("proj-1", "A", DocumentState("Report A", reviewed=True))
        assert (await DocumentEvaluator(documents).evaluate(_condition(ConditionType.DOCUMENT), context)).passed

    async def test_lists_missing_and_unreviewed(self, documents, context):
        documents.put("proj-1", "A", DocumentState("Protocol", reviewed=False))
        condition = _condition(ConditionType.DOCUMENT, documents=("Protocol", "Raw data"))

        result = await DocumentEvaluator(documents).evaluate(condition, context)
        assert not result.passed
        assert "missing: Raw data" in result.message
        assert "not reviewed: Protocol" in result.message


class TestCustom:
    async def test_sync_predicate(self, context):
        evaluator = CustomEvaluator({"always": lambda condition, ctx: True})
        condition = _condition(ConditionType.CUSTOM, predicate="always")
        assert (await evaluator.evaluate(condition, context)).passed

    async def test_async_predicate_returning_result(self, context):
        async def budget_ok(condition, ctx):
            return ConditionResult.failed_result(condition.id, "over budget")

        evaluator = CustomEvaluator()
        evaluator.register("budget", budget_ok)
        result = await evaluator.evaluate(_condition(ConditionType.CUSTOM, predicate="budget"), context)
        assert result.message == "over budget"

    async def test_result_is_filed_under_evaluated_condition(self, context):
        evaluator = CustomEvaluator({"other": lambda condition, ctx: ConditionResult.failed_result("elsewhere", "no")})
        condition = _condition(ConditionType.CUSTOM, predicate="other")

        result = await evaluator.evaluate(condition, context)
        assert result.condition_id == condition.id
        assert result.message == "no"

    async def test_falsy_predicate_fails(self, context):
        evaluator = CustomEvaluator({"never": lambda condition, ctx: False})
        result = await evaluator.evaluate(_condition(ConditionType.CUSTOM, predicate="never"), context)
        assert result.status == ConditionStatus.FAILED

    async def test_unregistered_predicate_is_unavailable(self, context):
        with pytest.raises(ConditionEvaluationUnavailable):
            await CustomEvaluator().evaluate(_condition(ConditionType.CUSTOM, predicate="ghost"), context)


class TestRegistry:
    def test_builtin_evaluators_satisfy_protocol(self):
        registry = build_registry()
        for ctype in ConditionType:
            assert isinstance(registry.for_condition(_condition(ctype)), ConditionEvaluator)

    def test_unknown_type_is_unavailable(self):
        with pytest.raises(ConditionEvaluationUnavailable):
            EvaluatorRegistry().for_condition(_condition(ConditionType.APPROVAL))

    def test_in_memory_provider_satisfies_protocol(self):
        assert isinstance(InMemoryTaskProvider(), TaskStatusProvider)
