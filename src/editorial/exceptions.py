"""Workflow exceptions for the editorial engine."""


class WorkflowError(Exception):
    """Base workflow error."""

    error_type = "workflow"

    def __init__(self, message: str = "Workflow operation failed"):
        self.message = message
        super().__init__(self.message)


class ValidationError(WorkflowError):
    """Raised when caller-supplied data fails validation."""

    error_type = "validation"

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message)


class NotFoundError(WorkflowError):
    """Raised when a referenced record does not exist."""

    error_type = "not_found"

    def __init__(self, entity: str, message: str | None = None):
        self.entity = entity
        super().__init__(message or f"{entity} not found")


class PermissionDeniedError(WorkflowError):
    """Raised when the acting user may not perform the operation."""

    error_type = "permission"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class InvalidTransitionError(WorkflowError):
    """Raised when a status change is not in the transition table."""

    error_type = "invalid_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition from {current} to {target}")
