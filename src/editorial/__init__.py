"""Editorial - workflow engine for an academic journal."""

from editorial.workflow import (
    ArticleSubmissionService,
    ReviewerAssignmentService,
    ReviewManagementService,
    WorkflowStatus,
)

__version__ = "0.1.0"
__all__ = [
    "ArticleSubmissionService",
    "ReviewerAssignmentService",
    "ReviewManagementService",
    "WorkflowStatus",
]
