"""FastAPI dependencies wiring services from settings.

Every provider here can be replaced in tests via app.dependency_overrides.
Without a database or Redis URL the service runs on process-local stores.
"""

from functools import lru_cache

from fastapi import Depends

from stagegate.core.config import get_settings
from stagegate.core.locking import LocalProjectLock, ProjectLock, RedisProjectLock
from stagegate.db.base import get_session_factory
from stagegate.db.redis import get_redis
from stagegate.domain.templates import ConditionCatalog
from stagegate.evaluators.registry import EvaluatorRegistry, build_registry
from stagegate.repositories.base import StageRepository
from stagegate.repositories.memory import InMemoryStageRepository
from stagegate.repositories.sql import SqlStageRepository
from stagegate.services.decision_store import DecisionStore, InMemoryDecisionStore, RedisDecisionStore
from stagegate.services.executor import TransitionExecutor
from stagegate.services.gate_service import TransitionGate
from stagegate.services.stage_graph_service import StageGraphService
from stagegate.services.transition_service import TransitionService


@lru_cache
def _local_repository() -> InMemoryStageRepository:
    return InMemoryStageRepository()


@lru_cache
def _local_decision_store() -> InMemoryDecisionStore:
    return InMemoryDecisionStore(ttl_seconds=get_settings().decision_freshness_seconds)


@lru_cache
def _local_lock() -> LocalProjectLock:
    return LocalProjectLock()


def get_repository() -> StageRepository:
    if get_settings().database_url:
        return SqlStageRepository(get_session_factory())
    return _local_repository()


def get_decision_store() -> DecisionStore:
    settings = get_settings()
    if settings.redis_url:
        return RedisDecisionStore(get_redis(), ttl_seconds=settings.decision_freshness_seconds)
    return _local_decision_store()


def get_project_lock() -> ProjectLock:
    settings = get_settings()
    if settings.lock_backend == "redis":
        return RedisProjectLock(get_redis(), ttl=settings.lock_ttl_seconds)
    return _local_lock()


@lru_cache
def get_evaluator_registry() -> EvaluatorRegistry:
    """Built-in evaluators over in-memory providers.

    Deployments with real task, QC, approval or document systems override this.
    """
    return build_registry()


@lru_cache
def get_condition_catalog() -> ConditionCatalog:
    return ConditionCatalog.from_templates()


def get_stage_graph_service(repository: StageRepository = Depends(get_repository)) -> StageGraphService:
    return StageGraphService(repository)


def get_transition_service(
    repository: StageRepository = Depends(get_repository),
    decision_store: DecisionStore = Depends(get_decision_store),
    lock: ProjectLock = Depends(get_project_lock),
    registry: EvaluatorRegistry = Depends(get_evaluator_registry),
    catalog: ConditionCatalog = Depends(get_condition_catalog),
) -> TransitionService:
    settings = get_settings()
    gate = TransitionGate(
        repository,
        catalog,
        registry,
        decision_store,
        timeout_seconds=settings.condition_timeout_seconds,
        max_parallel=settings.max_parallel_evaluations,
    )
    executor = TransitionExecutor(repository, lock, freshness_seconds=settings.decision_freshness_seconds)
    return TransitionService(repository, gate, executor, decision_store)
