"""Transition API routes: evaluate, commit and state-machine actions."""

from fastapi import APIRouter, Depends

from stagegate.api.deps import get_transition_service
from stagegate.schemas.transitions import (
    BlockStageRequest,
    CommitTransitionRequest,
    ConditionResultSchema,
    EvaluateTransitionRequest,
    GateDecisionSchema,
    HistoryResponse,
    TransitionRecordSchema,
)
from stagegate.services.transition_service import TransitionService

router = APIRouter()


@router.post("/projects/{project_id}/transitions/evaluate", response_model=GateDecisionSchema)
async def evaluate_transition(
    project_id: str,
    request: EvaluateTransitionRequest,
    service: TransitionService = Depends(get_transition_service),
):
    """Evaluate every condition of an edge.

    An inadmissible transition is a normal 200 response: ``blocking`` lists
    unmet required conditions, ``indeterminate`` lists checks that could not run.

    Raises:
        InvalidEdgeError(422): Target is not the immediate successor
        NoStagesDefinedError(404): Project has no stages
    """
    decision = await service.evaluate_transition(
        project_id, request.from_stage_id, request.to_stage_id, cache_ttl=request.cache_ttl
    )
    return GateDecisionSchema.from_decision(decision)


@router.post(
    "/projects/{project_id}/transitions/evaluate/{condition_id}",
    response_model=ConditionResultSchema,
)
async def evaluate_condition(
    project_id: str,
    condition_id: str,
    request: EvaluateTransitionRequest,
    service: TransitionService = Depends(get_transition_service),
):
    """Re-run a single condition of an edge."""
    result = await service.evaluate_condition(project_id, request.from_stage_id, request.to_stage_id, condition_id)
    return ConditionResultSchema.model_validate(result)


@router.post(
    "/projects/{project_id}/transitions/commit",
    response_model=TransitionRecordSchema,
    status_code=201,
)
async def commit_transition(
    project_id: str,
    request: CommitTransitionRequest,
    service: TransitionService = Depends(get_transition_service),
):
    """Commit a transition using a decision id returned by evaluate.

    Raises:
        StaleDecisionError(409): Decision unknown, expired or for another edge
        TransitionNotAdmissibleError(409): Decision is not admissible
        ConcurrentTransitionConflictError(409): Another commit won; refresh and retry
    """
    record = await service.commit_transition(
        project_id, request.from_stage_id, request.to_stage_id, request.decision_id, request.notes
    )
    return TransitionRecordSchema.model_validate(record)


@router.post("/projects/{project_id}/start", response_model=TransitionRecordSchema, status_code=201)
async def start_project(project_id: str, service: TransitionService = Depends(get_transition_service)):
    return TransitionRecordSchema.model_validate(await service.start_project(project_id))


@router.post(
    "/projects/{project_id}/stages/{stage_id}/block",
    response_model=TransitionRecordSchema,
    status_code=201,
)
async def block_stage(
    project_id: str,
    stage_id: str,
    request: BlockStageRequest,
    service: TransitionService = Depends(get_transition_service),
):
    record = await service.block_stage(project_id, stage_id, request.reason)
    return TransitionRecordSchema.model_validate(record)


@router.post(
    "/projects/{project_id}/stages/{stage_id}/unblock",
    response_model=TransitionRecordSchema,
    status_code=201,
)
async def unblock_stage(
    project_id: str,
    stage_id: str,
    service: TransitionService = Depends(get_transition_service),
):
    record = await service.unblock_stage(project_id, stage_id)
    return TransitionRecordSchema.model_validate(record)


@router.get("/projects/{project_id}/history", response_model=HistoryResponse)
async def get_history(project_id: str, service: TransitionService = Depends(get_transition_service)):
    records = await service.get_history(project_id)
    return HistoryResponse(
        project_id=project_id,
        records=[TransitionRecordSchema.model_validate(r) for r in records],
    )
