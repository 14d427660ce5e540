"""TransitionService -- inbound facade used by the API layer."""

import structlog

from stagegate.core.exceptions import StaleDecisionError
from stagegate.domain.conditions import ConditionResult
from stagegate.domain.stages import StageGraph
from stagegate.domain.transitions import GateDecision, TransitionRecord, TransitionRequest
from stagegate.repositories.base import StageRepository
from stagegate.services.decision_store import DecisionStore
from stagegate.services.executor import TransitionExecutor
from stagegate.services.gate_service import TransitionGate

logger = structlog.get_logger(__name__)


class TransitionService:
    """Evaluate and commit stage transitions by project and stage ids.

    Decisions are handed out by id; a commit looks its decision up in the
    decision store so callers never send condition results back to the server.
    """

    def __init__(
        self,
        repository: StageRepository,
        gate: TransitionGate,
        executor: TransitionExecutor,
        decision_store: DecisionStore,
    ):
        self.repository = repository
        self.gate = gate
        self.executor = executor
        self.decision_store = decision_store

    async def get_stage_graph(self, project_id: str) -> StageGraph:
        return await self.repository.get_graph(project_id)

    async def evaluate_transition(
        self,
        project_id: str,
        from_stage_id: str,
        to_stage_id: str,
        cache_ttl: float | None = None,
    ) -> GateDecision:
        request = TransitionRequest(project_id, from_stage_id, to_stage_id)
        return await self.gate.evaluate(request, cache_ttl=cache_ttl)

    async def evaluate_condition(
        self,
        project_id: str,
        from_stage_id: str,
        to_stage_id: str,
        condition_id: str,
    ) -> ConditionResult:
        request = TransitionRequest(project_id, from_stage_id, to_stage_id)
        return await self.gate.evaluate_condition(request, condition_id)

    async def commit_transition(
        self,
        project_id: str,
        from_stage_id: str,
        to_stage_id: str,
        decision_id: str,
        notes: str = "",
    ) -> TransitionRecord:
        """Commit using a previously issued decision.

        Raises:
            StaleDecisionError: The decision is unknown or has expired
        """
        decision = await self.decision_store.get(decision_id)
        if decision is None:
            logger.info("decision_not_found", project_id=project_id, decision_id=decision_id)
            raise StaleDecisionError(f"Decision '{decision_id}' is unknown or expired; evaluate again")

        request = TransitionRequest(project_id, from_stage_id, to_stage_id)
        return await self.executor.commit(request, decision, notes)

    async def start_project(self, project_id: str, notes: str = "") -> TransitionRecord:
        return await self.executor.start_project(project_id, notes)

    async def block_stage(self, project_id: str, stage_id: str, reason: str) -> TransitionRecord:
        return await self.executor.block_stage(project_id, stage_id, reason)

    async def unblock_stage(self, project_id: str, stage_id: str, notes: str = "") -> TransitionRecord:
        return await self.executor.unblock_stage(project_id, stage_id, notes)

    async def get_history(self, project_id: str) -> list[TransitionRecord]:
        return await self.repository.list_history(project_id)
