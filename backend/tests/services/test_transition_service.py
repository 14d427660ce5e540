"""Tests for the TransitionService facade."""

import pytest

from stagegate.core.exceptions import StaleDecisionError
from stagegate.domain.stages import StageStatus
from stagegate.evaluators.ports import TaskState
from stagegate.services.transition_service import TransitionService

pytestmark = pytest.mark.unit


@pytest.fixture
def service(repository, gate, executor, decision_store):
    return TransitionService(repository, gate, executor, decision_store)


async def test_evaluate_and_commit_by_decision_id(service, project, tasks):
    tasks.set_task("proj-1", "A", TaskState("t1", "Prepare samples", completed=True))

    decision = await service.evaluate_transition("proj-1", "A", "B")
    record = await service.commit_transition("proj-1", "A", "B", decision.decision_id, notes="ok")

    graph = await service.get_stage_graph("proj-1")
    assert graph.get("B").status == StageStatus.IN_PROGRESS
    assert await service.get_history("proj-1") == [record]


async def test_unknown_decision_is_stale(service, project):
    with pytest.raises(StaleDecisionError):
        await service.commit_transition("proj-1", "A", "B", "does-not-exist")


async def test_decision_for_other_edge_is_stale(service, project):
    decision = await service.evaluate_transition("proj-1", "A", "B")
    with pytest.raises(StaleDecisionError):
        await service.commit_transition("proj-1", "B", "C", decision.decision_id)


async def test_single_condition_passthrough(service, project):
    result = await service.evaluate_condition("proj-1", "A", "B", "tasks_done")
    assert result.passed


async def test_status_actions_passthrough(service, repository, project):
    await service.block_stage("proj-1", "A", "instrument down")
    await service.unblock_stage("proj-1", "A")
    assert len(await service.get_history("proj-1")) == 2
