"""In-app notifications stored in the notifications table."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from editorial.database.models import Notification

SUBMISSION_RECEIVED = "SUBMISSION_RECEIVED"
SUBMISSION_ASSIGNED = "SUBMISSION_ASSIGNED"
STATUS_CHANGED = "STATUS_CHANGED"
REVIEW_ASSIGNED = "REVIEW_ASSIGNED"
REVIEW_SUBMITTED = "REVIEW_SUBMITTED"
REVIEW_DECLINED = "REVIEW_DECLINED"
REVIEWS_COMPLETE = "REVIEWS_COMPLETE"
REVIEW_OVERDUE = "REVIEW_OVERDUE"
ASSIGNMENT_RESPONSE = "ASSIGNMENT_RESPONSE"
ASSIGNMENT_EXPIRED = "ASSIGNMENT_EXPIRED"


def create_system_notification(
    db: AsyncSession,
    user_id: str,
    type: str,
    title: str,
    message: str,
    related_id: Optional[str] = None,
) -> Notification:
    """Queue a notification row in the caller's unit of work."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_id=related_id,
        is_read=False,
    )
    db.add(notification)
    return notification
