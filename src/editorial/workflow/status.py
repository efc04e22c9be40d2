"""Workflow status model: states, transition table and review vocabularies."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional

from editorial.exceptions import InvalidTransitionError
from editorial.utils import utc_now


class WorkflowStatus(str, Enum):
    """Article / submission workflow states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    TECHNICAL_CHECK = "technical_check"
    UNDER_REVIEW = "under_review"
    REVISION_REQUESTED = "revision_requested"
    REVISION_SUBMITTED = "revision_submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PUBLISHED = "published"
    WITHDRAWN = "withdrawn"


class ReviewStatus(str, Enum):
    """Status of a single review assignment."""

    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    DECLINED = "declined"


class ReviewRecommendation(str, Enum):
    """Reviewer verdict."""

    ACCEPT = "accept"
    MINOR_REVISION = "minor_revision"
    MAJOR_REVISION = "major_revision"
    REJECT = "reject"


S = WorkflowStatus

WORKFLOW_TRANSITIONS: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {
    S.DRAFT: frozenset({S.SUBMITTED, S.WITHDRAWN}),
    S.SUBMITTED: frozenset({S.TECHNICAL_CHECK, S.REJECTED, S.WITHDRAWN}),
    S.TECHNICAL_CHECK: frozenset({S.UNDER_REVIEW, S.REJECTED, S.REVISION_REQUESTED}),
    S.UNDER_REVIEW: frozenset({S.REVISION_REQUESTED, S.ACCEPTED, S.REJECTED}),
    S.REVISION_REQUESTED: frozenset({S.REVISION_SUBMITTED, S.WITHDRAWN}),
    S.REVISION_SUBMITTED: frozenset({S.TECHNICAL_CHECK, S.ACCEPTED, S.REJECTED}),
    S.ACCEPTED: frozenset({S.PUBLISHED}),
    S.REJECTED: frozenset(),
    S.PUBLISHED: frozenset(),
    S.WITHDRAWN: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in WORKFLOW_TRANSITIONS.items() if not targets)

# Shown to authors polling their submission
ESTIMATED_COMPLETION: dict[WorkflowStatus, str] = {
    S.DRAFT: "Not submitted",
    S.SUBMITTED: "3-5 business days",
    S.TECHNICAL_CHECK: "1-2 business days",
    S.UNDER_REVIEW: "4-6 weeks",
    S.REVISION_REQUESTED: "Author dependent",
    S.REVISION_SUBMITTED: "2-3 weeks",
    S.ACCEPTED: "2-4 weeks",
    S.REJECTED: "Completed",
    S.PUBLISHED: "Completed",
    S.WITHDRAWN: "Completed",
}

NEXT_STEPS: dict[WorkflowStatus, list[str]] = {
    S.DRAFT: ["Complete submission"],
    S.SUBMITTED: ["Technical check", "Editor assignment"],
    S.TECHNICAL_CHECK: ["Editor assignment", "Reviewer selection"],
    S.UNDER_REVIEW: ["Review completion", "Editorial decision"],
    S.REVISION_REQUESTED: ["Author revision", "Resubmission"],
    S.REVISION_SUBMITTED: ["Review of revision", "Final decision"],
    S.ACCEPTED: ["Production", "Publication"],
    S.REJECTED: ["Process completed"],
    S.PUBLISHED: ["Archive", "Citation tracking"],
    S.WITHDRAWN: ["Process completed"],
}


def parse_status(value: WorkflowStatus | str) -> WorkflowStatus:
    """Normalize a status string.

    Raises:
        ValueError: If the value is not a workflow status
    """
    if isinstance(value, WorkflowStatus):
        return value
    try:
        return WorkflowStatus(str(value).strip().lower())
    except ValueError:
        valid = [s.value for s in WorkflowStatus]
        raise ValueError(f"Invalid workflow status '{value}'. Must be one of: {', '.join(valid)}")


def allowed_transitions(status: WorkflowStatus | str) -> frozenset[WorkflowStatus]:
    return WORKFLOW_TRANSITIONS[parse_status(status)]


def can_transition(current: WorkflowStatus | str, target: WorkflowStatus | str) -> bool:
    """Check whether ``current -> target`` is in the transition table."""
    try:
        return parse_status(target) in allowed_transitions(current)
    except ValueError:
        return False


def validate_transition(current: WorkflowStatus | str, target: WorkflowStatus | str) -> WorkflowStatus:
    """Return the parsed target status or raise InvalidTransitionError."""
    if not can_transition(current, target):
        raise InvalidTransitionError(str(getattr(current, "value", current)), str(getattr(target, "value", target)))
    return parse_status(target)


def is_terminal(status: WorkflowStatus | str) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def aggregate_recommendations(
    recommendations: Iterable[Optional[str]],
) -> WorkflowStatus:
    """Collapse completed review verdicts into one article status.

    Precedence: any reject wins, then any revision request, then unanimous
    accept. Anything else leaves the article under review.
    """
    verdicts = [r for r in recommendations if r]

    if ReviewRecommendation.REJECT.value in verdicts:
        return S.REJECTED
    if (
        ReviewRecommendation.MAJOR_REVISION.value in verdicts
        or ReviewRecommendation.MINOR_REVISION.value in verdicts
    ):
        return S.REVISION_REQUESTED
    if verdicts and all(v == ReviewRecommendation.ACCEPT.value for v in verdicts):
        return S.ACCEPTED
    return S.UNDER_REVIEW


@dataclass
class StatusHistoryEntry:
    """One entry of a submission's status history."""

    status: WorkflowStatus
    user_id: str
    timestamp: datetime
    notes: Optional[str] = None
    system_generated: bool = False

    @classmethod
    def create(cls, status: WorkflowStatus, user_id: str, notes: Optional[str] = None) -> StatusHistoryEntry:
        return cls(
            status=status,
            user_id=user_id,
            timestamp=utc_now(),
            notes=notes,
            system_generated=user_id == "system",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON column storage."""
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "notes": self.notes,
            "system_generated": self.system_generated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusHistoryEntry:
        """Create from dictionary."""
        return cls(
            status=parse_status(data["status"]),
            user_id=data.get("user_id", "system"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            notes=data.get("notes"),
            system_generated=data.get("system_generated", False),
        )
