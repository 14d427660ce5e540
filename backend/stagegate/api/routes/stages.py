"""Stage graph API routes: provisioning, queries and metadata edits."""

from fastapi import APIRouter, Depends, HTTPException

from stagegate.api.deps import get_stage_graph_service
from stagegate.schemas.stages import (
    CreateStageRequest,
    ProjectTemplateResponse,
    ProvisionStagesRequest,
    ReorderStagesRequest,
    StageGraphResponse,
    StageResponse,
    UpdateStageRequest,
)
from stagegate.services.stage_graph_service import StageGraphService

router = APIRouter()


@router.get("/templates", response_model=list[ProjectTemplateResponse])
async def list_templates(service: StageGraphService = Depends(get_stage_graph_service)):
    """List the built-in project templates."""
    return [ProjectTemplateResponse.from_template(t) for t in service.list_templates()]


@router.post("/projects/{project_id}/stages/provision", response_model=StageGraphResponse, status_code=201)
async def provision_stages(
    project_id: str,
    request: ProvisionStagesRequest,
    service: StageGraphService = Depends(get_stage_graph_service),
):
    """Create a project's stages from a template.

    Raises:
        HTTPException(404): Unknown template
        StagesAlreadyDefinedError(409): Project already has stages
    """
    try:
        graph = await service.provision(project_id, request.template_key)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return StageGraphResponse.from_graph(graph)


@router.get("/projects/{project_id}/stages", response_model=StageGraphResponse)
async def get_stage_graph(project_id: str, service: StageGraphService = Depends(get_stage_graph_service)):
    """Return the project's stage graph with derived status and statistics.

    A project without stages returns an empty graph.
    """
    return StageGraphResponse.from_graph(await service.get_graph(project_id))


@router.get("/projects/{project_id}/stages/current", response_model=StageResponse)
async def get_current_stage(project_id: str, service: StageGraphService = Depends(get_stage_graph_service)):
    return StageResponse.from_stage(await service.current_stage(project_id))


@router.get("/projects/{project_id}/stages/{stage_id}/next", response_model=StageResponse)
async def get_next_stage(
    project_id: str,
    stage_id: str,
    service: StageGraphService = Depends(get_stage_graph_service),
):
    """Return the successor stage; 404 stage_not_found for the terminal stage."""
    return StageResponse.from_stage(await service.next_stage(project_id, stage_id))


@router.post("/projects/{project_id}/stages", response_model=StageResponse, status_code=201)
async def add_stage(
    project_id: str,
    request: CreateStageRequest,
    service: StageGraphService = Depends(get_stage_graph_service),
):
    stage = await service.add_stage(project_id, **request.model_dump())
    return StageResponse.from_stage(stage)


@router.patch("/projects/{project_id}/stages/{stage_id}", response_model=StageResponse)
async def update_stage(
    project_id: str,
    stage_id: str,
    request: UpdateStageRequest,
    service: StageGraphService = Depends(get_stage_graph_service),
):
    """Edit stage metadata. Unknown fields, including status, are rejected with 422."""
    stage = await service.update_stage(project_id, stage_id, **request.model_dump(exclude_unset=True))
    return StageResponse.from_stage(stage)


@router.delete("/projects/{project_id}/stages/{stage_id}", status_code=204)
async def delete_stage(
    project_id: str,
    stage_id: str,
    service: StageGraphService = Depends(get_stage_graph_service),
):
    await service.delete_stage(project_id, stage_id)


@router.post("/projects/{project_id}/stages/reorder", response_model=StageGraphResponse)
async def reorder_stages(
    project_id: str,
    request: ReorderStagesRequest,
    service: StageGraphService = Depends(get_stage_graph_service),
):
    graph = await service.reorder(project_id, request.orders)
    return StageGraphResponse.from_graph(graph)
