"""TransitionGate -- decides whether a stage transition is admissible."""

import asyncio

import structlog

from stagegate.core.exceptions import ConditionNotFoundError, NoStagesDefinedError
from stagegate.domain.conditions import (
    EVALUATION_TIMEOUT,
    EVALUATION_UNAVAILABLE,
    ConditionResult,
    ConditionStatus,
    TransitionCondition,
)
from stagegate.domain.stages import Stage, StageGraph, validate_edge
from stagegate.domain.templates import ConditionCatalog
from stagegate.domain.transitions import GateDecision, TransitionRequest, build_decision
from stagegate.evaluators.base import ProjectContext
from stagegate.evaluators.registry import EvaluatorRegistry
from stagegate.repositories.base import StageRepository
from stagegate.services.decision_store import DecisionStore

logger = structlog.get_logger(__name__)

_TERMINAL = (ConditionStatus.PASSED, ConditionStatus.FAILED)


class TransitionGate:
    """Evaluates every condition bound to an edge and aggregates the verdict.

    Conditions run concurrently, each under its own timeout. A check that
    times out or raises is reported as "could not run" on its own result and
    never aborts the evaluation. Only structural errors (unknown project or
    stage, invalid edge) escape.
    """

    def __init__(
        self,
        repository: StageRepository,
        catalog: ConditionCatalog,
        registry: EvaluatorRegistry,
        decision_store: DecisionStore,
        timeout_seconds: float = 5.0,
        max_parallel: int = 8,
    ):
        """Initialize with dependency injection.

        Args:
            repository: Stage graph storage
            catalog: Edge -> condition set bindings
            registry: Condition type -> evaluator
            decision_store: Where decisions are kept for commit and reuse
            timeout_seconds: Per-evaluator time budget
            max_parallel: Upper bound on evaluators running at once
        """
        self.repository = repository
        self.catalog = catalog
        self.registry = registry
        self.decision_store = decision_store
        self.timeout_seconds = timeout_seconds
        self.max_parallel = max_parallel

    async def _load_edge(self, request: TransitionRequest) -> tuple[StageGraph, Stage, Stage]:
        graph = await self.repository.get_graph(request.project_id)
        if not graph.stages:
            raise NoStagesDefinedError(request.project_id)

        from_stage = graph.get(request.from_stage_id)
        to_stage = graph.get(request.to_stage_id)
        validate_edge(from_stage, to_stage)
        return graph, from_stage, to_stage

    async def evaluate(self, request: TransitionRequest, cache_ttl: float | None = None) -> GateDecision:
        """Evaluate all conditions of the request's edge.

        Args:
            request: The transition to check
            cache_ttl: When given, reuse the latest stored decision for the same
                request if it was made against the current graph version and is
                younger than this many seconds

        Returns:
            GateDecision with per-condition results in declaration order

        Raises:
            NoStagesDefinedError: Project has no stages
            StageNotFoundError: A stage id is not part of the project
            InvalidEdgeError: The target is not the immediate successor
        """
        graph, from_stage, to_stage = await self._load_edge(request)

        if cache_ttl is not None:
            cached = await self.decision_store.latest(request.key)
            if cached is not None and cached.graph_version == graph.version and cached.is_fresh(cache_ttl):
                logger.info("gate_decision_reused", project_id=request.project_id, decision_id=cached.decision_id)
                return cached

        conditions = self.catalog.conditions_for(graph, from_stage, to_stage)
        context = ProjectContext(
            project_id=request.project_id,
            graph=graph,
            from_stage=from_stage,
            to_stage=to_stage,
        )

        semaphore = asyncio.Semaphore(self.max_parallel)
        results = await asyncio.gather(*(self._run(condition, context, semaphore) for condition in conditions))

        decision = build_decision(request, conditions, list(results), graph.version)
        await self.decision_store.save(decision)

        logger.info(
            "gate_evaluated",
            project_id=request.project_id,
            from_stage_id=request.from_stage_id,
            to_stage_id=request.to_stage_id,
            decision_id=decision.decision_id,
            admissible=decision.admissible,
            conditions=len(conditions),
            blocking=decision.blocking,
            indeterminate=decision.indeterminate,
            warnings=decision.warnings,
        )
        return decision

    async def evaluate_condition(self, request: TransitionRequest, condition_id: str) -> ConditionResult:
        """Re-run a single condition of the request's edge.

        The result is not stored; commits always need a full decision.

        Raises:
            ConditionNotFoundError: The edge has no condition with this id
        """
        graph, from_stage, to_stage = await self._load_edge(request)
        conditions = self.catalog.conditions_for(graph, from_stage, to_stage)

        condition = next((c for c in conditions if c.id == condition_id), None)
        if condition is None:
            raise ConditionNotFoundError(
                f"Condition '{condition_id}' is not bound to {request.from_stage_id} -> {request.to_stage_id}"
            )

        context = ProjectContext(request.project_id, graph, from_stage, to_stage)
        result = await self._run(condition, context, asyncio.Semaphore(1))
        logger.info(
            "condition_evaluated",
            project_id=request.project_id,
            condition_id=condition_id,
            status=result.status.value,
            error_code=result.error_code,
        )
        return result

    async def _run(
        self,
        condition: TransitionCondition,
        context: ProjectContext,
        semaphore: asyncio.Semaphore,
    ) -> ConditionResult:
        async with semaphore:
            try:
                evaluator = self.registry.for_condition(condition)
                result = await asyncio.wait_for(evaluator.evaluate(condition, context), timeout=self.timeout_seconds)
            except TimeoutError:
                logger.warning(
                    "condition_evaluation_timeout",
                    project_id=context.project_id,
                    condition_id=condition.id,
                    timeout_seconds=self.timeout_seconds,
                )
                return ConditionResult.could_not_run(
                    condition.id,
                    EVALUATION_TIMEOUT,
                    f"Check could not run: no verdict within {self.timeout_seconds:g}s",
                )
            except Exception as exc:
                # Any evaluator or provider failure is this condition's problem only
                logger.warning(
                    "condition_evaluation_unavailable",
                    project_id=context.project_id,
                    condition_id=condition.id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return ConditionResult.could_not_run(
                    condition.id,
                    EVALUATION_UNAVAILABLE,
                    f"Check could not run: {exc}",
                )

        if result.status not in _TERMINAL:
            return ConditionResult.could_not_run(
                condition.id,
                EVALUATION_UNAVAILABLE,
                f"Check could not run: evaluator returned non-terminal status {result.status.value}",
            )
        return result
