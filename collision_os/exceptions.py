"""
Error taxonomy for the loaner and parts workflows.

Every error carries a machine-readable `kind` and a structured payload so the
HTTP layer can translate it to a response body without parsing messages.
"""

from typing import Iterable, List, Optional


class WorkflowError(Exception):
    """Base class for all workflow errors surfaced to callers."""

    kind = "WorkflowError"
    status_code = 400

    def __init__(self, message: str = "Error: workflow operation failed") -> None:
        self.message = message
        super().__init__(self.message)

    def payload(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        body = {"kind": self.kind, "message": self.message}
        body.update(self.payload())
        return body

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class InvalidTransition(WorkflowError):
    """Raised when the requested status change is not an edge of the category's graph."""

    kind = "InvalidTransition"

    def __init__(self, unit_id, from_status: str, to_status: str, category: str,
                 message: Optional[str] = None) -> None:
        self.unit_id = unit_id
        self.from_status = from_status
        self.to_status = to_status
        self.category = category
        super().__init__(
            message or f"Error: {category} {unit_id} cannot move {from_status}→{to_status}"
        )

    def payload(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "from": self.from_status,
            "to": self.to_status,
            "category": self.category,
        }


class PreconditionError(WorkflowError):
    """Raised when a legal transition is blocked by unmet business conditions."""

    kind = "PreconditionError"

    def __init__(self, missing: Iterable[str], message: Optional[str] = None) -> None:
        self.missing: List[str] = list(missing)
        super().__init__(
            message or f"Error: requirements not met: {', '.join(self.missing)}"
        )

    def payload(self) -> dict:
        return {"missing": self.missing}


class ConflictError(WorkflowError):
    """Raised when no unit satisfies the requested interval and preferences."""

    kind = "ConflictError"
    status_code = 409

    def __init__(self, message: str = "Error: no vehicles available for requested dates",
                 suggestions: Optional[dict] = None) -> None:
        self.suggestions = suggestions or {}
        super().__init__(message)

    def payload(self) -> dict:
        return {"suggestions": self.suggestions}


class BulkPartialRejection(WorkflowError):
    """Raised when any unit of a bulk transition is illegal; nothing was applied."""

    kind = "BulkPartialRejection"

    def __init__(self, rejected: List[dict], message: Optional[str] = None) -> None:
        self.rejected = rejected
        super().__init__(
            message or f"Error: {len(rejected)} unit(s) cannot make the requested transition"
        )

    def payload(self) -> dict:
        return {"rejected": self.rejected}


class InvalidRequestError(WorkflowError):
    """Raised when a request is well-formed but its values contradict each other."""

    kind = "InvalidRequest"

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message or f"Error: invalid value for {field}")

    def payload(self) -> dict:
        return {"field": self.field}


class NotFoundError(WorkflowError):
    """Raised when a referenced record does not exist."""

    kind = "NotFound"
    status_code = 404

    def __init__(self, entity: str, entity_id) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Error: {entity} '{entity_id}' not found")

    def payload(self) -> dict:
        return {"entity": self.entity, "id": self.entity_id}


class DuplicateError(WorkflowError):
    """Raised when a unique business key is already taken."""

    kind = "Duplicate"
    status_code = 409

    def __init__(self, field: str, value) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Error: {field} '{value}' already exists")

    def payload(self) -> dict:
        return {"field": self.field, "value": self.value}


class UnknownError(WorkflowError):
    """Fallback wrapper for anything outside the taxonomy. Always surfaced."""

    kind = "UnknownError"
    status_code = 500

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__("Error: internal server error")

    def payload(self) -> dict:
        return {"cause": type(self.cause).__name__} if self.cause is not None else {}
