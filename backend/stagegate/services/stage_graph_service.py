"""StageGraphService -- provisioning, structural queries and metadata edits.

None of the operations here change a stage's status; that is the executor's
job. Every write is an optimistic save against the version that was read.
"""

import uuid
from dataclasses import replace

import structlog

from stagegate.core.exceptions import (
    InvalidStatusChangeError,
    NoStagesDefinedError,
    StageInUseError,
    StagesAlreadyDefinedError,
)
from stagegate.domain.stages import (
    Stage,
    StageGraph,
    StageStatus,
    current_stage,
    next_stage,
    validate_unique_orders,
)
from stagegate.domain.templates import TEMPLATES, ProjectTemplate, get_template, stages_from_template
from stagegate.repositories.base import StageRepository

logger = structlog.get_logger(__name__)

# Fields an edit may touch; status, order and project are excluded
EDITABLE_FIELDS = frozenset({"name", "description", "estimated_duration", "deliverables", "prerequisites"})


class StageGraphService:
    def __init__(self, repository: StageRepository):
        self.repository = repository

    async def get_graph(self, project_id: str) -> StageGraph:
        return await self.repository.get_graph(project_id)

    async def current_stage(self, project_id: str) -> Stage:
        return current_stage(await self.repository.get_graph(project_id))

    async def next_stage(self, project_id: str, stage_id: str) -> Stage:
        graph = await self.repository.get_graph(project_id)
        return next_stage(graph, graph.get(stage_id))

    def list_templates(self) -> list[ProjectTemplate]:
        return list(TEMPLATES.values())

    async def provision(self, project_id: str, template_key: str) -> StageGraph:
        """Create a project's stages from a built-in template.

        Raises:
            ValueError: Unknown template key
            StagesAlreadyDefinedError: The project already has stages
        """
        template = get_template(template_key)
        graph = await self.repository.get_graph(project_id)
        if graph.stages:
            raise StagesAlreadyDefinedError(f"Project '{project_id}' already has {len(graph.stages)} stage(s)")

        stages = stages_from_template(project_id, template)
        saved = await self.repository.save(
            StageGraph(project_id=project_id, stages=tuple(stages), template_key=template.key),
            expected_version=graph.version,
        )
        logger.info("stages_provisioned", project_id=project_id, template_key=template.key, stages=len(stages))
        return saved

    async def add_stage(
        self,
        project_id: str,
        name: str,
        description: str = "",
        order: int | None = None,
        estimated_duration: int = 0,
        deliverables: list[str] | tuple[str, ...] = (),
        prerequisites: list[str] | tuple[str, ...] = (),
    ) -> Stage:
        """Add a NOT_STARTED stage.

        ``order`` None appends after the last stage. An explicit order must not
        collide with an existing stage.

        Raises:
            DuplicateStageOrderError: The order is taken or not positive
        """
        graph = await self.repository.get_graph(project_id)
        if order is None:
            order = graph.stages[-1].order + 1 if graph.stages else 1

        stage = Stage(
            id=uuid.uuid4().hex,
            project_id=project_id,
            order=order,
            name=name,
            description=description,
            estimated_duration=estimated_duration,
            deliverables=tuple(deliverables),
            prerequisites=frozenset(prerequisites),
        )
        stages = (*graph.stages, stage)
        validate_unique_orders(stages)

        await self.repository.save(replace(graph, stages=stages), expected_version=graph.version)
        logger.info("stage_added", project_id=project_id, stage_id=stage.id, order=order)
        return stage

    async def update_stage(self, project_id: str, stage_id: str, **changes) -> Stage:
        """Edit stage metadata.

        Raises:
            InvalidStatusChangeError: ``changes`` names status or another
                non-editable field
            StageNotFoundError: Unknown stage
        """
        forbidden = set(changes) - EDITABLE_FIELDS
        if forbidden:
            raise InvalidStatusChangeError(
                f"Fields {sorted(forbidden)} cannot be edited; status changes only through transitions"
            )

        graph = await self.repository.get_graph(project_id)
        stage = graph.get(stage_id)

        if "deliverables" in changes:
            changes["deliverables"] = tuple(changes["deliverables"])
        if "prerequisites" in changes:
            changes["prerequisites"] = frozenset(changes["prerequisites"])
        updated = replace(stage, **changes)

        stages = tuple(updated if s.id == stage_id else s for s in graph.stages)
        await self.repository.save(replace(graph, stages=stages), expected_version=graph.version)
        logger.info("stage_updated", project_id=project_id, stage_id=stage_id, fields=sorted(changes))
        return updated

    async def delete_stage(self, project_id: str, stage_id: str) -> None:
        """Delete a stage that no history references and that is not active.

        Raises:
            StageInUseError: History references the stage, or it is in progress
                or blocked
        """
        graph = await self.repository.get_graph(project_id)
        stage = graph.get(stage_id)

        if stage.status in (StageStatus.IN_PROGRESS, StageStatus.BLOCKED):
            raise StageInUseError(f"Stage '{stage.name}' is {stage.status.value} and cannot be deleted")

        history = await self.repository.list_history(project_id)
        if any(record.references(stage_id) for record in history):
            raise StageInUseError(f"Stage '{stage.name}' is referenced by transition history")

        stages = tuple(s for s in graph.stages if s.id != stage_id)
        await self.repository.save(replace(graph, stages=stages), expected_version=graph.version)
        logger.info("stage_deleted", project_id=project_id, stage_id=stage_id)

    async def reorder(self, project_id: str, orders: dict[str, int]) -> StageGraph:
        """Assign new ``order`` values.

        Stages not named keep their order. The resulting set must still be
        unique and positive.

        Raises:
            NoStagesDefinedError: Project has no stages
            StageNotFoundError: An id is not part of the project
            DuplicateStageOrderError: Two stages would share an order
        """
        graph = await self.repository.get_graph(project_id)
        if not graph.stages:
            raise NoStagesDefinedError(project_id)
        for stage_id in orders:
            graph.get(stage_id)

        stages = tuple(replace(s, order=orders[s.id]) if s.id in orders else s for s in graph.stages)
        validate_unique_orders(stages)

        saved = await self.repository.save(replace(graph, stages=stages), expected_version=graph.version)
        logger.info("stages_reordered", project_id=project_id, version=saved.version)
        return saved
