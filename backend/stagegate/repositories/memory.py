"""In-process stage repository.

Writes build the new snapshot and history list first and swap them in with
no await in between, so a failing write leaves the previous state intact and
readers never observe a half-applied commit.
"""

from dataclasses import replace

import structlog

from stagegate.core.exceptions import ConcurrentTransitionConflictError
from stagegate.domain.stages import StageGraph
from stagegate.domain.transitions import TransitionRecord

logger = structlog.get_logger(__name__)


class InMemoryStageRepository:
    def __init__(self) -> None:
        self._graphs: dict[str, StageGraph] = {}
        self._history: dict[str, tuple[TransitionRecord, ...]] = {}

    async def get_graph(self, project_id: str) -> StageGraph:
        return self._graphs.get(project_id) or StageGraph(project_id=project_id, stages=())

    async def save(
        self,
        graph: StageGraph,
        expected_version: int,
        record: TransitionRecord | None = None,
    ) -> StageGraph:
        current = await self.get_graph(graph.project_id)
        if current.version != expected_version:
            raise ConcurrentTransitionConflictError(
                graph.project_id,
                f"stage graph is at version {current.version}, expected {expected_version}",
            )

        updated = replace(graph, version=current.version + 1)
        history = self._history.get(graph.project_id, ())
        if record is not None:
            history = self._append_record(history, record)

        self._graphs[graph.project_id] = updated
        self._history[graph.project_id] = history
        logger.debug("stage_graph_saved", project_id=graph.project_id, version=updated.version)
        return updated

    def _append_record(
        self, history: tuple[TransitionRecord, ...], record: TransitionRecord
    ) -> tuple[TransitionRecord, ...]:
        return (*history, record)

    async def list_history(self, project_id: str) -> list[TransitionRecord]:
        return list(self._history.get(project_id, ()))
