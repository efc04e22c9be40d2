"""Pydantic schemas for editorial workflow endpoints.

Authentication is handled upstream; the acting user's id is passed
explicitly in each request.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from editorial.workflow.status import ReviewRecommendation, WorkflowStatus
from editorial.workflow.submission import ArticleSubmission, AuthorInfo, RecommendedReviewerInfo


class AuthorRequest(BaseModel):
    """One manuscript author."""

    first_name: str
    last_name: str
    email: str
    institution: str = ""
    department: str = ""
    country: str = ""
    affiliation: str = ""
    orcid: Optional[str] = None
    is_corresponding_author: bool = False


class RecommendedReviewerRequest(BaseModel):
    """Reviewer suggested by the author."""

    name: str
    email: str
    affiliation: str
    expertise: str = ""


class SubmissionRequest(BaseModel):
    """Schema for submitting a new article."""

    author_id: str = Field(..., description="Id of the submitting user")
    title: str = Field(..., min_length=10, max_length=500)
    abstract: str = Field(..., min_length=100)
    category: str = Field(..., min_length=1)
    keywords: list[str] = Field(default_factory=list)
    content: str = ""
    authors: list[AuthorRequest] = Field(default_factory=list)
    recommended_reviewers: list[RecommendedReviewerRequest] = Field(default_factory=list)

    def to_submission(self) -> ArticleSubmission:
        return ArticleSubmission(
            title=self.title,
            abstract=self.abstract,
            category=self.category,
            keywords=list(self.keywords),
            content=self.content,
            authors=[AuthorInfo(**a.model_dump()) for a in self.authors],
            recommended_reviewers=[RecommendedReviewerInfo(**r.model_dump()) for r in self.recommended_reviewers],
        )


class SubmissionResponse(BaseModel):
    """Schema for a successful submission."""

    success: bool = True
    message: str
    article_id: str
    submission_id: str
    workflow_status: str
    editor_id: Optional[str] = None
    next_steps: list[str] = []


class WorkflowStatusResponse(BaseModel):
    """Schema for the workflow status of a submission."""

    success: bool = True
    submission_id: str
    article_id: str
    workflow_status: str
    status_history: list[dict[str, Any]] = []
    submitted_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    estimated_completion: str
    next_steps: list[str] = []


class AssignReviewersRequest(BaseModel):
    """Schema for assigning specific reviewers."""

    editor_id: str
    reviewer_ids: list[str] = Field(..., min_length=1)
    deadline: Optional[datetime] = None


class AutoAssignReviewersRequest(BaseModel):
    """Schema for orchestrated reviewer assignment."""

    editor_id: str
    count: int = Field(default=3, ge=1, le=10)
    conflicts: list[str] = Field(default_factory=list)


class AssignEditorRequest(BaseModel):
    """Schema for manually assigning a handling editor."""

    editor_id: str
    assigned_by: str
    deadline_days: Optional[int] = Field(default=None, ge=1, le=60)


class AssignmentResponse(BaseModel):
    success: bool
    assigned_reviewers: list[str] = []
    contacted_reviewers: list[str] = []
    errors: list[str] = []


class Decision(str, Enum):
    """Editorial decisions and the status each one leads to."""

    ACCEPT = "accept"
    REJECT = "reject"
    REVISION = "revision"
    SEND_TO_REVIEW = "send_to_review"
    RETURN_TO_CHECK = "return_to_check"
    PUBLISH = "publish"

    @property
    def target_status(self) -> WorkflowStatus:
        return {
            Decision.ACCEPT: WorkflowStatus.ACCEPTED,
            Decision.REJECT: WorkflowStatus.REJECTED,
            Decision.REVISION: WorkflowStatus.REVISION_REQUESTED,
            Decision.SEND_TO_REVIEW: WorkflowStatus.UNDER_REVIEW,
            Decision.RETURN_TO_CHECK: WorkflowStatus.TECHNICAL_CHECK,
            Decision.PUBLISH: WorkflowStatus.PUBLISHED,
        }[self]


class DecisionRequest(BaseModel):
    """Schema for an editorial decision on a manuscript."""

    editor_id: str
    decision: Decision
    comments: Optional[str] = None


class RevisionRequest(BaseModel):
    author_id: str
    notes: Optional[str] = None


class ReviewSubmitRequest(BaseModel):
    """Schema for submitting a completed review."""

    reviewer_id: str
    recommendation: ReviewRecommendation
    comments: str = Field(..., min_length=1)
    confidential_comments: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)


class InvitationResponseRequest(BaseModel):
    reviewer_id: str
    accept: bool
    decline_reason: Optional[str] = None


class EditorAssignmentResponseRequest(BaseModel):
    editor_id: str
    accept: bool
    conflict_declared: bool = False
    conflict_details: Optional[str] = None
    decline_reason: Optional[str] = None


class OperationResponse(BaseModel):
    """Generic response for workflow operations."""

    success: bool
    message: str
    data: dict[str, Any] = {}
