"""TransitionExecutor -- applies stage status changes atomically.

Commits are serialized per project twice over: a non-blocking project lock
turns overlapping commits into an immediate conflict, and the repository's
version check rejects any write against a graph that changed since the gate
decision was made.
"""

from dataclasses import replace
from datetime import UTC, datetime

import structlog

from stagegate.core.exceptions import (
    ConcurrentTransitionConflictError,
    InvalidStatusChangeError,
    NoStagesDefinedError,
    StaleDecisionError,
    TransitionNotAdmissibleError,
)
from stagegate.core.locking import ProjectLock
from stagegate.domain.stages import Stage, StageGraph, StageStatus, validate_status_change
from stagegate.domain.transitions import GateDecision, RecordKind, TransitionRecord, TransitionRequest
from stagegate.repositories.base import StageRepository

logger = structlog.get_logger(__name__)


def _with_stages(graph: StageGraph, *updated: Stage) -> StageGraph:
    by_id = {stage.id: stage for stage in updated}
    return replace(graph, stages=tuple(by_id.get(stage.id, stage) for stage in graph.stages))


class TransitionExecutor:
    def __init__(self, repository: StageRepository, lock: ProjectLock, freshness_seconds: float = 300):
        """Initialize with dependency injection.

        Args:
            repository: Stage graph storage
            lock: Per-project commit lock
            freshness_seconds: Maximum age of a gate decision that may be committed
        """
        self.repository = repository
        self.lock = lock
        self.freshness_seconds = freshness_seconds

    async def commit(self, request: TransitionRequest, decision: GateDecision, notes: str = "") -> TransitionRecord:
        """Commit an admissible transition.

        Marks the source stage completed and the target stage in progress and
        appends a TransitionRecord carrying the decision's condition results.
        Either all three effects are stored or none is.

        Args:
            request: The transition being committed
            decision: Gate decision produced for this same request
            notes: Free-form notes kept on the history record

        Returns:
            The appended TransitionRecord

        Raises:
            StaleDecisionError: Decision was made for another request or is too old
            TransitionNotAdmissibleError: Decision is not admissible
            ConcurrentTransitionConflictError: Another commit holds the project or
                the stage graph changed since the decision
            InvalidStatusChangeError: Stage statuses no longer allow the move
        """
        if decision.request != request:
            raise StaleDecisionError(
                f"Decision {decision.decision_id} was made for {decision.request.key}, not {request.key}"
            )
        if not decision.is_fresh(self.freshness_seconds):
            raise StaleDecisionError(
                f"Decision {decision.decision_id} is older than {self.freshness_seconds:g}s; evaluate again"
            )
        if not decision.admissible:
            raise TransitionNotAdmissibleError(
                f"Transition {request.key} is not admissible "
                f"(blocking={decision.blocking}, indeterminate={decision.indeterminate})"
            )

        async with self.lock.hold(request.project_id) as acquired:
            if not acquired:
                logger.warning("transition_conflict", project_id=request.project_id, reason="lock_held")
                raise ConcurrentTransitionConflictError(request.project_id)

            graph = await self.repository.get_graph(request.project_id)
            if graph.version != decision.graph_version:
                logger.warning(
                    "transition_conflict",
                    project_id=request.project_id,
                    reason="version_changed",
                    decision_version=decision.graph_version,
                    current_version=graph.version,
                )
                raise ConcurrentTransitionConflictError(
                    request.project_id,
                    f"stage graph changed since evaluation (version {decision.graph_version} -> {graph.version})",
                )

            from_stage = graph.get(request.from_stage_id)
            to_stage = graph.get(request.to_stage_id)
            validate_status_change(from_stage, StageStatus.COMPLETED)
            validate_status_change(to_stage, StageStatus.IN_PROGRESS)

            now = datetime.now(UTC)
            record = TransitionRecord(
                project_id=request.project_id,
                from_stage_id=from_stage.id,
                to_stage_id=to_stage.id,
                kind=RecordKind.TRANSITION,
                notes=notes,
                results=decision.results,
                decision_id=decision.decision_id,
                timestamp=now,
            )
            await self.repository.save(
                _with_stages(
                    graph,
                    replace(from_stage, status=StageStatus.COMPLETED, end_date=from_stage.end_date or now),
                    replace(to_stage, status=StageStatus.IN_PROGRESS, start_date=to_stage.start_date or now),
                ),
                expected_version=graph.version,
                record=record,
            )

        logger.info(
            "transition_committed",
            project_id=request.project_id,
            from_stage_id=request.from_stage_id,
            to_stage_id=request.to_stage_id,
            decision_id=decision.decision_id,
            record_id=record.id,
        )
        return record

    async def _change_status(
        self,
        project_id: str,
        stage_id: str,
        target: StageStatus,
        kind: RecordKind,
        notes: str = "",
    ) -> TransitionRecord:
        async with self.lock.hold(project_id) as acquired:
            if not acquired:
                logger.warning("transition_conflict", project_id=project_id, reason="lock_held", kind=kind.value)
                raise ConcurrentTransitionConflictError(project_id)

            graph = await self.repository.get_graph(project_id)
            if not graph.stages:
                raise NoStagesDefinedError(project_id)

            stage = graph.get(stage_id)
            validate_status_change(stage, target)

            now = datetime.now(UTC)
            changed = replace(stage, status=target)
            if target == StageStatus.IN_PROGRESS and stage.start_date is None:
                changed = replace(changed, start_date=now)

            record = TransitionRecord(
                project_id=project_id,
                from_stage_id=None,
                to_stage_id=stage.id,
                kind=kind,
                notes=notes,
                timestamp=now,
            )
            await self.repository.save(_with_stages(graph, changed), expected_version=graph.version, record=record)

        logger.info("stage_status_changed", project_id=project_id, stage_id=stage_id, kind=kind.value, status=target.value)
        return record

    async def start_project(self, project_id: str, notes: str = "") -> TransitionRecord:
        """Put the first stage in progress.

        Raises:
            NoStagesDefinedError: Project has no stages
            InvalidStatusChangeError: The project has already started
        """
        graph = await self.repository.get_graph(project_id)
        if not graph.stages:
            raise NoStagesDefinedError(project_id)
        if any(stage.status != StageStatus.NOT_STARTED for stage in graph.stages):
            raise InvalidStatusChangeError(f"Project '{project_id}' has already started")

        return await self._change_status(
            project_id, graph.stages[0].id, StageStatus.IN_PROGRESS, RecordKind.START, notes
        )

    async def block_stage(self, project_id: str, stage_id: str, reason: str) -> TransitionRecord:
        """Mark an in-progress stage as stalled."""
        return await self._change_status(project_id, stage_id, StageStatus.BLOCKED, RecordKind.BLOCK, reason)

    async def unblock_stage(self, project_id: str, stage_id: str, notes: str = "") -> TransitionRecord:
        """Resume a blocked stage."""
        return await self._change_status(project_id, stage_id, StageStatus.IN_PROGRESS, RecordKind.UNBLOCK, notes)
