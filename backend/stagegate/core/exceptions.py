"""Error taxonomy for the stage-gate engine.

Every error carries a stable ``code`` so API callers can tell "blocked by
unmet conditions" apart from "cannot evaluate right now" and from
"conflicting commit".
"""


class StageGateError(Exception):
    """Base exception for the stage-gate service."""

    code = "stage_gate_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidEdgeError(StageGateError):
    """Raised when a requested transition does not respect stage ordering."""

    code = "invalid_edge"
    status_code = 422

    def __init__(self, from_stage_id: str, to_stage_id: str, reason: str):
        self.from_stage_id = from_stage_id
        self.to_stage_id = to_stage_id
        super().__init__(f"Invalid transition {from_stage_id} -> {to_stage_id}: {reason}")


class NoStagesDefinedError(StageGateError):
    """Raised when a project has no stage graph."""

    code = "no_stages_defined"
    status_code = 404

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' has no stages defined")


class StageNotFoundError(StageGateError):
    code = "stage_not_found"
    status_code = 404


class ConditionNotFoundError(StageGateError):
    code = "condition_not_found"
    status_code = 404


class ConditionEvaluationTimeout(StageGateError):
    """Raised inside the gate when an evaluator exceeds its time budget.

    Captured per condition; never propagates past the gate.
    """

    code = "condition_evaluation_timeout"
    status_code = 503


class ConditionEvaluationUnavailable(StageGateError):
    """Raised by evaluators or providers when a check cannot run.

    Captured per condition; never propagates past the gate.
    """

    code = "condition_evaluation_unavailable"
    status_code = 503


class StaleDecisionError(StageGateError):
    """Raised when a commit references an outdated or mismatched gate decision."""

    code = "stale_decision"
    status_code = 409


class TransitionNotAdmissibleError(StageGateError):
    code = "transition_not_admissible"
    status_code = 409


class ConcurrentTransitionConflictError(StageGateError):
    """Raised when another commit for the same project won the race."""

    code = "concurrent_transition_conflict"
    status_code = 409

    def __init__(self, project_id: str, reason: str = "another transition is in progress"):
        self.project_id = project_id
        super().__init__(f"Concurrent transition conflict for project '{project_id}': {reason}")


class InvalidStatusChangeError(StageGateError):
    code = "invalid_status_change"
    status_code = 409


class DuplicateStageOrderError(StageGateError):
    code = "duplicate_stage_order"
    status_code = 409


class StageInUseError(StageGateError):
    """Raised when deleting a stage that transition history still references."""

    code = "stage_in_use"
    status_code = 409


class StagesAlreadyDefinedError(StageGateError):
    """Raised when provisioning a project that already has stages."""

    code = "stages_already_defined"
    status_code = 409
