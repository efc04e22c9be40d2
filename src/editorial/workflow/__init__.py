"""Editorial workflow: status model, reviewer scoring and the workflow services."""

from editorial.workflow.assignment import ReviewerAssignmentService, ReviewerCriteria
from editorial.workflow.editors import EditorAssignmentService
from editorial.workflow.results import AssignmentResult, ServiceResult
from editorial.workflow.review import ReviewManagementService
from editorial.workflow.scoring import ReviewerCandidate, ReviewerScorer, ScoredReviewer
from editorial.workflow.status import (
    WORKFLOW_TRANSITIONS,
    ReviewRecommendation,
    ReviewStatus,
    WorkflowStatus,
    aggregate_recommendations,
    can_transition,
)
from editorial.workflow.submission import (
    ArticleSubmission,
    ArticleSubmissionService,
    AuthorInfo,
    RecommendedReviewerInfo,
)

__all__ = [
    "WorkflowStatus",
    "ReviewStatus",
    "ReviewRecommendation",
    "WORKFLOW_TRANSITIONS",
    "can_transition",
    "aggregate_recommendations",
    "ReviewerCandidate",
    "ReviewerScorer",
    "ScoredReviewer",
    "ServiceResult",
    "AssignmentResult",
    "ReviewerCriteria",
    "ReviewerAssignmentService",
    "EditorAssignmentService",
    "ArticleSubmission",
    "AuthorInfo",
    "RecommendedReviewerInfo",
    "ArticleSubmissionService",
    "ReviewManagementService",
]
