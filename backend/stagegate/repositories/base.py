"""StageRepository protocol: versioned storage of stage graphs and history.

Reads return immutable StageGraph snapshots. Every write goes through
``save``, which checks the caller's expected version, bumps it, and stores
the new stage set together with an optional history record in one step.
"""

from typing import Protocol, runtime_checkable

from stagegate.domain.stages import StageGraph
from stagegate.domain.transitions import TransitionRecord


@runtime_checkable
class StageRepository(Protocol):
    async def get_graph(self, project_id: str) -> StageGraph:
        """Return the current snapshot; an unknown project yields an empty graph at version 0."""
        ...

    async def save(
        self,
        graph: StageGraph,
        expected_version: int,
        record: TransitionRecord | None = None,
    ) -> StageGraph:
        """Atomically replace the project's stages and append ``record``.

        Args:
            graph: New stage set (its ``version`` is ignored)
            expected_version: Version the caller read; the write is refused if
                the stored version differs
            record: History record to append in the same write

        Returns:
            The stored snapshot with the bumped version

        Raises:
            ConcurrentTransitionConflictError: Stored version != expected_version
        """
        ...

    async def list_history(self, project_id: str) -> list[TransitionRecord]:
        """Return history records oldest first."""
        ...
