"""
Error taxonomy shared by the services.

Every error is raised synchronously to the caller and never retried here.
The HTTP layer maps ``status_code`` and ``code`` onto the response.
"""
from typing import Any, Dict, Optional


class TaskflowError(Exception):
    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": self.code}


class NotFoundError(TaskflowError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any = None) -> None:
        if entity_id is None:
            message = f"{entity} not found"
        else:
            message = f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class InvalidStateError(TaskflowError):
    status_code = 422
    code = "invalid_state"


class UnauthorizedError(TaskflowError):
    status_code = 403
    code = "unauthorized"


class RateLimitedError(TaskflowError):
    status_code = 429
    code = "rate_limited"

    def __init__(self, key: str) -> None:
        super().__init__("Rate limit exceeded. Please try again later.")
        self.key = key


class ConflictError(TaskflowError):
    status_code = 409
    code = "conflict"


class SprintValidationError(InvalidStateError):
    """A sprint's date range breaks a scheduling rule."""

    DATES_MISSING = "SPRINT_DATES_MISSING"
    END_BEFORE_START = "SPRINT_END_BEFORE_START"
    BEFORE_PROJECT_START = "SPRINT_BEFORE_PROJECT_START"
    OVERLAP = "SPRINT_OVERLAP"

    def __init__(
        self,
        rule: str,
        message: str,
        conflicting_sprint: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.rule = rule
        self.conflicting_sprint = conflicting_sprint

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["rule"] = self.rule
        if self.conflicting_sprint is not None:
            payload["conflicting_sprint"] = self.conflicting_sprint
        return payload
