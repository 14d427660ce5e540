"""Shared test fixtures for all test groups."""

import pytest

from stagegate.core.locking import LocalProjectLock
from stagegate.domain.conditions import ConditionType, TransitionCondition
from stagegate.domain.stages import Stage, StageGraph, StageStatus
from stagegate.domain.templates import ConditionCatalog
from stagegate.evaluators.providers import (
    InMemoryApprovalProvider,
    InMemoryDocumentProvider,
    InMemoryQualityIssueProvider,
    InMemoryTaskProvider,
)
from stagegate.evaluators.registry import build_registry
from stagegate.repositories.memory import InMemoryStageRepository
from stagegate.services.decision_store import InMemoryDecisionStore
from stagegate.services.executor import TransitionExecutor
from stagegate.services.gate_service import TransitionGate

PROJECT_ID = "proj-1"

TASKS_DONE = TransitionCondition(
    id="tasks_done",
    name="Task completion",
    type=ConditionType.TASK_COMPLETION,
)


def make_stages(
    statuses: tuple[StageStatus, ...] = (StageStatus.IN_PROGRESS, StageStatus.NOT_STARTED, StageStatus.NOT_STARTED),
    project_id: str = PROJECT_ID,
) -> tuple[Stage, ...]:
    """Stages "A", "B", "C"... with orders 1..n and the given statuses."""
    return tuple(
        Stage(
            id=chr(ord("A") + i),
            project_id=project_id,
            order=i + 1,
            name=f"Stage {chr(ord('A') + i)}",
            status=status,
            deliverables=(f"Report {chr(ord('A') + i)}",),
        )
        for i, status in enumerate(statuses)
    )


@pytest.fixture
def repository():
    return InMemoryStageRepository()


@pytest.fixture
async def project(repository) -> StageGraph:
    """Project with A (in progress), B and C (not started) stored at version 1."""
    return await repository.save(StageGraph(project_id=PROJECT_ID, stages=make_stages()), expected_version=0)


@pytest.fixture
def tasks():
    return InMemoryTaskProvider()


@pytest.fixture
def quality():
    return InMemoryQualityIssueProvider()


@pytest.fixture
def approvals():
    return InMemoryApprovalProvider()


@pytest.fixture
def documents():
    return InMemoryDocumentProvider()


@pytest.fixture
def registry(tasks, quality, approvals, documents):
    return build_registry(tasks=tasks, quality=quality, approvals=approvals, documents=documents)


@pytest.fixture
def catalog():
    """A -> B gated by one required task-completion check; other edges ungated."""
    catalog = ConditionCatalog(default=())
    catalog.bind_edge("Stage A", "Stage B", (TASKS_DONE,))
    return catalog


@pytest.fixture
def decision_store():
    return InMemoryDecisionStore()


@pytest.fixture
def gate(repository, catalog, registry, decision_store):
    return TransitionGate(repository, catalog, registry, decision_store, timeout_seconds=1.0)


@pytest.fixture
def lock():
    return LocalProjectLock()


@pytest.fixture
def executor(repository, lock):
    return TransitionExecutor(repository, lock, freshness_seconds=300)


@pytest.fixture
def stage_factory():
    return make_stages
