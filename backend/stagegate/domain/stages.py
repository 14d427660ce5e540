"""Stage model, stage status state machine and stage graph queries.

Pure domain logic with no external dependencies.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from stagegate.core.exceptions import (
    DuplicateStageOrderError,
    InvalidEdgeError,
    InvalidStatusChangeError,
    NoStagesDefinedError,
    StageNotFoundError,
)


class StageStatus(StrEnum):
    """Lifecycle status of a single stage."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class ProjectStatus(StrEnum):
    """Project-level status, derived from stage statuses."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"


# Allowed status changes. COMPLETED is terminal.
STATUS_TRANSITIONS: dict[StageStatus, frozenset[StageStatus]] = {
    StageStatus.NOT_STARTED: frozenset({StageStatus.IN_PROGRESS}),
    StageStatus.IN_PROGRESS: frozenset({StageStatus.COMPLETED, StageStatus.BLOCKED}),
    StageStatus.BLOCKED: frozenset({StageStatus.IN_PROGRESS}),
    StageStatus.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class Stage:
    """One ordered step in a project's lifecycle."""

    id: str
    project_id: str
    order: int
    name: str
    description: str = ""
    status: StageStatus = StageStatus.NOT_STARTED
    estimated_duration: int = 0  # days
    start_date: datetime | None = None
    end_date: datetime | None = None
    prerequisites: frozenset[str] = field(default_factory=frozenset)
    deliverables: tuple[str, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.status == StageStatus.COMPLETED


@dataclass(frozen=True)
class StageGraph:
    """Consistent snapshot of a project's stages.

    ``version`` increases on every write and backs optimistic commit checks.
    """

    project_id: str
    stages: tuple[Stage, ...]
    version: int = 0
    template_key: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "stages", tuple(sorted(self.stages, key=lambda s: s.order)))

    def get(self, stage_id: str) -> Stage:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise StageNotFoundError(f"Stage '{stage_id}' not found in project '{self.project_id}'")

    def by_order(self, order: int) -> Stage | None:
        for stage in self.stages:
            if stage.order == order:
                return stage
        return None


def validate_status_change(stage: Stage, target: StageStatus) -> None:
    """Raise InvalidStatusChangeError unless ``stage.status -> target`` is allowed."""
    if target not in STATUS_TRANSITIONS[stage.status]:
        raise InvalidStatusChangeError(
            f"Stage '{stage.name}' cannot change status {stage.status.value} -> {target.value}"
        )


def validate_unique_orders(stages: list[Stage] | tuple[Stage, ...]) -> None:
    """Refuse stage sets with duplicate or non-positive ``order`` values."""
    for stage in stages:
        if stage.order < 1:
            raise DuplicateStageOrderError(f"Stage '{stage.name}' has non-positive order {stage.order}")

    counts = Counter(stage.order for stage in stages)
    duplicates = sorted(order for order, count in counts.items() if count > 1)
    if duplicates:
        raise DuplicateStageOrderError(f"Duplicate stage order(s): {duplicates}")


def current_stage(graph: StageGraph) -> Stage:
    """Return the stage the project is currently in.

    Rules:
        - The unique IN_PROGRESS stage, if any
        - Otherwise a BLOCKED stage (the project is stalled there)
        - Otherwise the lowest-order NOT_STARTED stage
        - Otherwise (all stages completed) the terminal stage

    Raises:
        NoStagesDefinedError: the project has no stages
    """
    if not graph.stages:
        raise NoStagesDefinedError(graph.project_id)

    for status in (StageStatus.IN_PROGRESS, StageStatus.BLOCKED, StageStatus.NOT_STARTED):
        for stage in graph.stages:
            if stage.status == status:
                return stage

    return graph.stages[-1]


def next_stage(graph: StageGraph, stage: Stage) -> Stage:
    """Return the stage with ``order == stage.order + 1``.

    Raises:
        StageNotFoundError: ``stage`` is the terminal stage
    """
    following = graph.by_order(stage.order + 1)
    if following is None:
        raise StageNotFoundError(f"Stage '{stage.name}' is the terminal stage")
    return following


def is_valid_edge(from_stage: Stage, to_stage: Stage) -> bool:
    """Sequential-only policy: same project and ``to.order == from.order + 1``."""
    return from_stage.project_id == to_stage.project_id and to_stage.order == from_stage.order + 1


def validate_edge(from_stage: Stage, to_stage: Stage) -> None:
    """Raise InvalidEdgeError for any edge other than the immediate successor."""
    if from_stage.project_id != to_stage.project_id:
        raise InvalidEdgeError(from_stage.id, to_stage.id, "stages belong to different projects")
    if to_stage.order != from_stage.order + 1:
        raise InvalidEdgeError(
            from_stage.id,
            to_stage.id,
            f"target order {to_stage.order} is not the successor of {from_stage.order}",
        )


def derive_project_status(graph: StageGraph) -> ProjectStatus:
    """Project status derived from stage statuses."""
    if not graph.stages:
        return ProjectStatus.NOT_STARTED
    if any(s.status == StageStatus.IN_PROGRESS for s in graph.stages):
        return ProjectStatus.IN_PROGRESS
    if any(s.status == StageStatus.BLOCKED for s in graph.stages):
        return ProjectStatus.BLOCKED
    if graph.stages[-1].status == StageStatus.COMPLETED:
        return ProjectStatus.COMPLETED
    if all(s.status == StageStatus.NOT_STARTED for s in graph.stages):
        return ProjectStatus.NOT_STARTED
    return ProjectStatus.IN_PROGRESS


def stage_statistics(graph: StageGraph) -> dict[str, int]:
    """Stage counts per status, as shown on the project dashboard."""
    counts = Counter(stage.status for stage in graph.stages)
    return {
        "total": len(graph.stages),
        "not_started": counts[StageStatus.NOT_STARTED],
        "in_progress": counts[StageStatus.IN_PROGRESS],
        "completed": counts[StageStatus.COMPLETED],
        "blocked": counts[StageStatus.BLOCKED],
    }
