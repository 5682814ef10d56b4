"""
Exceptions raised by the priority engine.

Unknown priority labels are not errors; they degrade to medium in the codec.
"""

from .scoring import ErrorCode


class PriorityEngineError(Exception):
    """Base class for engine failures surfaced to callers."""

    error_code = ErrorCode.ERR_PROPAGATION_FAILED


class NotFound(PriorityEngineError):
    """A referenced goal, task or project does not exist."""

    error_code = ErrorCode.ERR_NOT_FOUND

    def __init__(self, kind: str, object_id):
        self.kind = kind
        self.object_id = object_id
        super().__init__(f"{kind.capitalize()} not found: {object_id}")


class PropagationFailure(PriorityEngineError):
    """
    Recomputing one task of a batch failed.

    The whole batch is rolled back; no partial progress is reported.
    """

    error_code = ErrorCode.ERR_PROPAGATION_FAILED

    def __init__(self, scope: str, task_id):
        self.scope = scope
        self.task_id = task_id
        super().__init__(f"Priority propagation for {scope} failed at task {task_id}")
