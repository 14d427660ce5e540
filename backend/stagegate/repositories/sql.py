"""SQLAlchemy-backed stage repository.

Each save runs in a single transaction: a conditional version bump on the
project row, a full rewrite of the project's stages and the history insert
either all commit or all roll back.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stagegate.core.exceptions import ConcurrentTransitionConflictError
from stagegate.db.models import ProjectGraph, StageRecord, TransitionHistory
from stagegate.domain.stages import Stage, StageGraph, StageStatus
from stagegate.domain.transitions import TransitionRecord
from stagegate.schemas.transitions import ConditionResultSchema, TransitionRecordSchema

logger = structlog.get_logger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _stage_from_row(row: StageRecord) -> Stage:
    return Stage(
        id=row.id,
        project_id=row.project_id,
        order=row.order,
        name=row.name,
        description=row.description,
        status=StageStatus(row.status),
        estimated_duration=row.estimated_duration,
        start_date=_aware(row.start_date),
        end_date=_aware(row.end_date),
        prerequisites=frozenset(row.prerequisites or ()),
        deliverables=tuple(row.deliverables or ()),
    )


def _row_from_stage(stage: Stage) -> StageRecord:
    return StageRecord(
        id=stage.id,
        project_id=stage.project_id,
        order=stage.order,
        name=stage.name,
        description=stage.description,
        status=stage.status.value,
        estimated_duration=stage.estimated_duration,
        start_date=stage.start_date,
        end_date=stage.end_date,
        prerequisites=sorted(stage.prerequisites),
        deliverables=list(stage.deliverables),
    )


def _record_from_row(row: TransitionHistory) -> TransitionRecord:
    return TransitionRecordSchema(
        id=row.id,
        project_id=row.project_id,
        kind=row.kind,
        from_stage_id=row.from_stage_id,
        to_stage_id=row.to_stage_id,
        notes=row.notes,
        decision_id=row.decision_id,
        timestamp=_aware(row.timestamp),
        results=row.results or [],
    ).to_domain()


class SqlStageRepository:
    """Stage repository persisting to the stage-gate tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize with dependency injection.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self.session_factory = session_factory

    async def get_graph(self, project_id: str) -> StageGraph:
        async with self.session_factory() as session, session.begin():
            project = await session.get(ProjectGraph, project_id)
            if project is None:
                return StageGraph(project_id=project_id, stages=())

            result = await session.execute(
                select(StageRecord).where(StageRecord.project_id == project_id).order_by(StageRecord.order)
            )
            stages = tuple(_stage_from_row(row) for row in result.scalars().all())
            return StageGraph(
                project_id=project_id,
                stages=stages,
                version=project.version,
                template_key=project.template_key,
            )

    async def save(
        self,
        graph: StageGraph,
        expected_version: int,
        record: TransitionRecord | None = None,
    ) -> StageGraph:
        project_id = graph.project_id
        new_version = expected_version + 1

        try:
            async with self.session_factory() as session, session.begin():
                if expected_version == 0:
                    exists = await session.get(ProjectGraph, project_id)
                    if exists is not None:
                        raise ConcurrentTransitionConflictError(
                            project_id, f"stage graph is at version {exists.version}, expected 0"
                        )
                    session.add(ProjectGraph(project_id=project_id, version=new_version, template_key=graph.template_key))
                    await session.flush()
                else:
                    # Optimistic check: only the writer that read expected_version wins
                    result = await session.execute(
                        update(ProjectGraph)
                        .where(ProjectGraph.project_id == project_id, ProjectGraph.version == expected_version)
                        .values(version=new_version, template_key=graph.template_key)
                    )
                    if result.rowcount != 1:
                        raise ConcurrentTransitionConflictError(
                            project_id, f"stage graph changed since version {expected_version}"
                        )

                await session.execute(delete(StageRecord).where(StageRecord.project_id == project_id))
                session.add_all([_row_from_stage(stage) for stage in graph.stages])

                if record is not None:
                    session.add(
                        TransitionHistory(
                            id=record.id,
                            project_id=record.project_id,
                            kind=record.kind.value,
                            from_stage_id=record.from_stage_id,
                            to_stage_id=record.to_stage_id,
                            notes=record.notes,
                            decision_id=record.decision_id,
                            results=[
                                ConditionResultSchema.model_validate(r).model_dump(mode="json") for r in record.results
                            ],
                            timestamp=record.timestamp,
                        )
                    )
        except IntegrityError as exc:
            # Lost an insert race on the project row
            raise ConcurrentTransitionConflictError(project_id, "stage graph was created concurrently") from exc

        logger.debug("stage_graph_saved", project_id=project_id, version=new_version)
        return StageGraph(
            project_id=project_id,
            stages=graph.stages,
            version=new_version,
            template_key=graph.template_key,
        )

    async def list_history(self, project_id: str) -> list[TransitionRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TransitionHistory)
                .where(TransitionHistory.project_id == project_id)
                .order_by(TransitionHistory.timestamp, TransitionHistory.id)
            )
            return [_record_from_row(row) for row in result.scalars().all()]
