"""In-memory collaborator providers.

Back the default wiring when no task tracker, QC subsystem, approval workflow
or document store is connected, and serve as deterministic test doubles.
"""

from collections import defaultdict

from stagegate.evaluators.ports import ApprovalRecord, DocumentState, QualityIssue, TaskState

_Key = tuple[str, str]


class InMemoryTaskProvider:
    def __init__(self) -> None:
        self._tasks: dict[_Key, dict[str, TaskState]] = defaultdict(dict)

    def set_task(self, project_id: str, stage_id: str, task: TaskState) -> None:
        self._tasks[(project_id, stage_id)][task.task_id] = task

    def complete_task(self, project_id: str, stage_id: str, task_id: str) -> None:
        task = self._tasks[(project_id, stage_id)][task_id]
        self._tasks[(project_id, stage_id)][task_id] = TaskState(
            task_id=task.task_id, name=task.name, completed=True, required=task.required
        )

    async def get_tasks(self, project_id: str, stage_id: str) -> list[TaskState]:
        return list(self._tasks.get((project_id, stage_id), {}).values())


class InMemoryQualityIssueProvider:
    def __init__(self) -> None:
        self._issues: dict[_Key, dict[str, QualityIssue]] = defaultdict(dict)

    def open_issue(self, project_id: str, stage_id: str, issue: QualityIssue) -> None:
        self._issues[(project_id, stage_id)][issue.issue_id] = issue

    def close_issue(self, project_id: str, stage_id: str, issue_id: str) -> None:
        self._issues[(project_id, stage_id)].pop(issue_id, None)

    async def get_open_issues(self, project_id: str, stage_id: str) -> list[QualityIssue]:
        return list(self._issues.get((project_id, stage_id), {}).values())


class InMemoryApprovalProvider:
    def __init__(self) -> None:
        self._approvals: dict[_Key, dict[str, ApprovalRecord]] = defaultdict(dict)

    def record(self, project_id: str, stage_id: str, approval: ApprovalRecord) -> None:
        self._approvals[(project_id, stage_id)][approval.approver] = approval

    async def get_approvals(self, project_id: str, stage_id: str) -> list[ApprovalRecord]:
        return list(self._approvals.get((project_id, stage_id), {}).values())


class InMemoryDocumentProvider:
    def __init__(self) -> None:
        self._documents: dict[_Key, dict[str, DocumentState]] = defaultdict(dict)

    def put(self, project_id: str, stage_id: str, document: DocumentState) -> None:
        self._documents[(project_id, stage_id)][document.name] = document

    async def get_documents(self, project_id: str, stage_id: str) -> list[DocumentState]:
        return list(self._documents.get((project_id, stage_id), {}).values())
