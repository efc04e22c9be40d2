"""Pydantic schemas for API request/response validation."""

from editorial.api.schemas.workflow import (
    AssignEditorRequest,
    AssignmentResponse,
    AssignReviewersRequest,
    AutoAssignReviewersRequest,
    DecisionRequest,
    EditorAssignmentResponseRequest,
    InvitationResponseRequest,
    OperationResponse,
    RevisionRequest,
    ReviewSubmitRequest,
    SubmissionRequest,
    SubmissionResponse,
    WorkflowStatusResponse,
)

__all__ = [
    "SubmissionRequest",
    "SubmissionResponse",
    "WorkflowStatusResponse",
    "AssignEditorRequest",
    "AssignReviewersRequest",
    "AutoAssignReviewersRequest",
    "AssignmentResponse",
    "DecisionRequest",
    "RevisionRequest",
    "ReviewSubmitRequest",
    "InvitationResponseRequest",
    "EditorAssignmentResponseRequest",
    "OperationResponse",
]
