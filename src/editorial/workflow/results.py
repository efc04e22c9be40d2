"""Structured results returned by the workflow services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from editorial.exceptions import WorkflowError


@dataclass
class ServiceResult:
    """Outcome of a workflow operation.

    Failures never raise to the caller; ``error_type`` tells expected
    failures ("validation", "not_found", "permission", "invalid_transition")
    apart from unexpected ones ("internal").
    """

    success: bool
    message: str
    error_type: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **data: Any) -> ServiceResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def from_error(cls, error: WorkflowError) -> ServiceResult:
        return cls(success=False, message=error.message, error_type=error.error_type)

    @classmethod
    def internal(cls, message: str) -> ServiceResult:
        return cls(success=False, message=message, error_type="internal")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "message": self.message,
            "error_type": self.error_type,
            **self.data,
        }


@dataclass
class AssignmentResult:
    """Outcome of assigning reviewers to an article."""

    success: bool
    assigned_reviewers: list[str] = field(default_factory=list)
    contacted_reviewers: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    error_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "assigned_reviewers": self.assigned_reviewers,
            "contacted_reviewers": self.contacted_reviewers,
            "errors": self.errors,
            "error_type": self.error_type,
        }
