"""Reviewer-facing endpoints: review submission and invitation responses."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.api.dependencies import get_db, get_mailer_dependency, raise_for_result
from editorial.api.schemas.workflow import InvitationResponseRequest, OperationResponse, ReviewSubmitRequest
from editorial.notifications.email import Mailer
from editorial.workflow.review import ReviewManagementService

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.post("/{review_id}", response_model=OperationResponse)
async def submit_review(
    review_id: str,
    request: ReviewSubmitRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """
    Submit a completed review.

    When this completes the current review round, the article status is
    updated from the combined recommendations.
    """
    service = ReviewManagementService(db, mailer)
    result = raise_for_result(
        await service.submit_review(
            review_id,
            request.reviewer_id,
            request.recommendation,
            request.comments,
            confidential_comments=request.confidential_comments,
            rating=request.rating,
        )
    )
    return OperationResponse(success=True, message=result.message, data=result.data)


@router.post("/invitations/{invitation_id}/respond", response_model=OperationResponse)
async def respond_to_invitation(
    invitation_id: str,
    request: InvitationResponseRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """Accept or decline a review invitation."""
    service = ReviewManagementService(db, mailer)
    result = raise_for_result(
        await service.respond_to_invitation(invitation_id, request.reviewer_id, request.accept, request.decline_reason)
    )
    return OperationResponse(success=True, message=result.message, data=result.data)
