"""Stage graph Pydantic schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from stagegate.domain.stages import (
    ProjectStatus,
    Stage,
    StageGraph,
    StageStatus,
    current_stage,
    derive_project_status,
    stage_statistics,
)
from stagegate.domain.templates import ProjectTemplate


class StageResponse(BaseModel):
    id: str
    project_id: str
    order: int
    name: str
    description: str
    status: StageStatus
    estimated_duration: int
    start_date: datetime | None
    end_date: datetime | None
    prerequisites: list[str]
    deliverables: list[str]

    @classmethod
    def from_stage(cls, stage: Stage) -> "StageResponse":
        return cls(
            id=stage.id,
            project_id=stage.project_id,
            order=stage.order,
            name=stage.name,
            description=stage.description,
            status=stage.status,
            estimated_duration=stage.estimated_duration,
            start_date=stage.start_date,
            end_date=stage.end_date,
            prerequisites=sorted(stage.prerequisites),
            deliverables=list(stage.deliverables),
        )


class StageGraphResponse(BaseModel):
    project_id: str
    version: int
    template_key: str | None
    project_status: ProjectStatus
    current_stage_id: str | None
    statistics: dict[str, int]
    stages: list[StageResponse]

    @classmethod
    def from_graph(cls, graph: StageGraph) -> "StageGraphResponse":
        return cls(
            project_id=graph.project_id,
            version=graph.version,
            template_key=graph.template_key,
            project_status=derive_project_status(graph),
            current_stage_id=current_stage(graph).id if graph.stages else None,
            statistics=stage_statistics(graph),
            stages=[StageResponse.from_stage(s) for s in graph.stages],
        )


class ProvisionStagesRequest(BaseModel):
    template_key: str


class CreateStageRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    # None appends after the last stage
    order: int | None = Field(default=None, ge=1)
    estimated_duration: int = Field(default=0, ge=0)
    deliverables: list[str] = []
    prerequisites: list[str] = []


class UpdateStageRequest(BaseModel):
    """Metadata edit. Status is not editable here; it changes only through transitions."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    estimated_duration: int | None = Field(default=None, ge=0)
    deliverables: list[str] | None = None
    prerequisites: list[str] | None = None


class ReorderStagesRequest(BaseModel):
    # stage id -> new order
    orders: dict[str, int]


class StageTemplateResponse(BaseModel):
    name: str
    description: str
    order: int
    estimated_duration: int
    deliverables: list[str]


class ProjectTemplateResponse(BaseModel):
    key: str
    name: str
    description: str
    estimated_duration: int
    stages: list[StageTemplateResponse]

    @classmethod
    def from_template(cls, template: ProjectTemplate) -> "ProjectTemplateResponse":
        return cls(
            key=template.key,
            name=template.name,
            description=template.description,
            estimated_duration=template.estimated_duration,
            stages=[
                StageTemplateResponse(
                    name=s.name,
                    description=s.description,
                    order=s.order,
                    estimated_duration=s.estimated_duration,
                    deliverables=list(s.deliverables),
                )
                for s in template.stages
            ],
        )
