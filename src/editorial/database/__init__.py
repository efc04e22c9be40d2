"""Database layer for the editorial workflow."""

from editorial.database.models import (
    Article,
    Base,
    EditorAssignment,
    EditorProfile,
    Notification,
    RecommendedReviewer,
    Review,
    ReviewerProfile,
    ReviewInvitation,
    Submission,
    User,
)

__all__ = [
    "Base",
    "User",
    "Article",
    "Submission",
    "Review",
    "ReviewerProfile",
    "EditorProfile",
    "EditorAssignment",
    "RecommendedReviewer",
    "ReviewInvitation",
    "Notification",
]
