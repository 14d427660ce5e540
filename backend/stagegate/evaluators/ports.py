"""Outbound collaborator protocols for condition evaluators.

Each provider exposes a single read query keyed by (project_id, stage_id).
Providers may raise ConditionEvaluationUnavailable (or any exception) when the
backing subsystem cannot answer; the gate reports that as "could not run".
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class TaskState:
    task_id: str
    name: str
    completed: bool
    required: bool = True


@dataclass(frozen=True)
class QualityIssue:
    issue_id: str
    sample_id: str
    description: str = ""


@dataclass(frozen=True)
class ApprovalRecord:
    approver: str
    approved: bool
    signed_at: datetime | None = None
    comment: str = ""


@dataclass(frozen=True)
class DocumentState:
    name: str
    reviewed: bool


@runtime_checkable
class TaskStatusProvider(Protocol):
    async def get_tasks(self, project_id: str, stage_id: str) -> list[TaskState]:
        ...


@runtime_checkable
class QualityIssueProvider(Protocol):
    async def get_open_issues(self, project_id: str, stage_id: str) -> list[QualityIssue]:
        ...


@runtime_checkable
class ApprovalRecordProvider(Protocol):
    async def get_approvals(self, project_id: str, stage_id: str) -> list[ApprovalRecord]:
        ...


@runtime_checkable
class DocumentStatusProvider(Protocol):
    async def get_documents(self, project_id: str, stage_id: str) -> list[DocumentState]:
        ...
