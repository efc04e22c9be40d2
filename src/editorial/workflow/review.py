"""Review verdicts, decision aggregation and review deadline monitoring."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select

from editorial.database.models import Article, ReviewerProfile, Review, ReviewInvitation
from editorial.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from editorial.logging import log_warning
from editorial.notifications import inbox
from editorial.notifications.inbox import create_system_notification
from editorial.utils import as_utc, utc_now
from editorial.workflow.base import SYSTEM_USER, WorkflowService
from editorial.workflow.results import ServiceResult
from editorial.workflow.status import (
    ReviewRecommendation,
    ReviewStatus,
    WorkflowStatus,
    aggregate_recommendations,
    can_transition,
)

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewManagementService(WorkflowService):
    """Records reviews and turns completed rounds into decisions."""

    async def submit_review(
        self,
        review_id: str,
        reviewer_id: str,
        recommendation: ReviewRecommendation | str,
        comments: str,
        confidential_comments: Optional[str] = None,
        rating: Optional[int] = None,
    ) -> ServiceResult:
        """Complete a pending review.

        Once every non-declined review of the article's current round is
        complete, the verdicts are aggregated into an article status.
        """
        try:
            review = await self.db.get(Review, review_id) if review_id else None
            if review is None or review.reviewer_id != reviewer_id:
                raise NotFoundError("Review", "Review not found or access denied")
            if review.status == ReviewStatus.COMPLETED.value:
                raise ValidationError("Review already completed")
            if review.status == ReviewStatus.DECLINED.value:
                raise ValidationError("Review was declined")

            try:
                verdict = ReviewRecommendation(str(getattr(recommendation, "value", recommendation)))
            except ValueError:
                valid = ", ".join(r.value for r in ReviewRecommendation)
                raise ValidationError(f"Invalid recommendation '{recommendation}'. Must be one of: {valid}")
            if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
                raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

            now = utc_now()
            review.status = ReviewStatus.COMPLETED.value
            review.recommendation = verdict.value
            review.comments = comments
            review.confidential_comments = confidential_comments
            review.rating = rating
            review.submitted_at = now

            profile = await self._reviewer_profile(reviewer_id)
            if profile is not None:
                profile.current_review_load = max(0, (profile.current_review_load or 0) - 1)
                profile.completed_reviews = (profile.completed_reviews or 0) + 1
                profile.last_review_date = now

            article = await self.db.get(Article, review.article_id)
            decision = None
            if article is not None:
                if article.editor_id:
                    create_system_notification(
                        self.db,
                        article.editor_id,
                        inbox.REVIEW_SUBMITTED,
                        "Review Submitted",
                        f'A review has been submitted for: "{article.title}"',
                        article.id,
                    )
                decision = await self._aggregate_round(article)

            await self.commit()
            data = {"review_id": review.id}
            if decision is not None:
                data["article_status"] = decision.value
            return ServiceResult.ok("Review submitted successfully", **data)
        except Exception as e:
            return await self.handle_failure("submit_review", e, "Failed to submit review", {"review_id": review_id})

    async def check_overdue_reviews(self, now: Optional[datetime] = None) -> ServiceResult:
        """Mark stale pending reviews overdue and count them against the reviewer."""
        now = now or utc_now()
        cutoff = now - timedelta(days=self.settings.overdue_review_days)
        try:
            result = await self.db.execute(select(Review).where(Review.status == ReviewStatus.PENDING.value))
            overdue = [r for r in result.scalars().all() if r.created_at is not None and as_utc(r.created_at) < cutoff]

            for review in overdue:
                review.status = ReviewStatus.OVERDUE.value
                profile = await self._reviewer_profile(review.reviewer_id)
                if profile is not None:
                    profile.late_reviews = (profile.late_reviews or 0) + 1

                reviewer = await self.get_user(review.reviewer_id)
                if reviewer is not None:
                    create_system_notification(
                        self.db,
                        reviewer.id,
                        inbox.REVIEW_OVERDUE,
                        "Review Overdue",
                        "You have an overdue review. Please submit it as soon as possible.",
                        review.article_id,
                    )

            await self.commit()
            if overdue:
                logger.info(f"[reviews] Marked {len(overdue)} review(s) overdue")
            return ServiceResult.ok(f"Marked {len(overdue)} review(s) overdue", overdue=len(overdue))
        except Exception as e:
            return await self.handle_failure("check_overdue_reviews", e, "Failed to check overdue reviews")

    async def respond_to_invitation(
        self,
        invitation_id: str,
        reviewer_id: str,
        accept: bool,
        decline_reason: Optional[str] = None,
    ) -> ServiceResult:
        """Accept or decline a review invitation.

        Declining frees the reviewer's workload slot and may complete the
        round if everyone else has already reported.
        """
        try:
            invitation = await self.get_or_raise(ReviewInvitation, invitation_id, "Invitation")
            if invitation.reviewer_id is None or invitation.reviewer_id != reviewer_id:
                raise PermissionDeniedError("Invitation belongs to another reviewer")
            if invitation.status != "pending":
                raise ValidationError(f"Invitation already {invitation.status}")

            invitation.status = "accepted" if accept else "declined"
            invitation.response_at = utc_now()
            article = await self.db.get(Article, invitation.article_id)

            if not accept:
                invitation.decline_reason = decline_reason
                await self._release_review(invitation, article)
                if article is not None and article.editor_id:
                    create_system_notification(
                        self.db,
                        article.editor_id,
                        inbox.REVIEW_DECLINED,
                        "Review Invitation Declined",
                        f'A reviewer declined to review: "{article.title}"',
                        article.id,
                    )
                if article is not None:
                    await self._aggregate_round(article)

            await self.commit()
            return ServiceResult.ok(f"Invitation {invitation.status}", status=invitation.status)
        except Exception as e:
            return await self.handle_failure(
                "respond_to_invitation", e, "Failed to record invitation response", {"invitation_id": invitation_id}
            )

    async def _release_review(self, invitation: ReviewInvitation, article: Optional[Article]) -> None:
        review = await self.db.get(Review, invitation.review_id) if invitation.review_id else None
        # Overdue reviews still hold a workload slot
        if review is not None and review.status in (ReviewStatus.PENDING.value, ReviewStatus.OVERDUE.value):
            review.status = ReviewStatus.DECLINED.value
            profile = await self._reviewer_profile(review.reviewer_id)
            if profile is not None:
                profile.current_review_load = max(0, (profile.current_review_load or 0) - 1)

        if article is not None and invitation.reviewer_id in (article.reviewer_ids or []):
            article.reviewer_ids = [r for r in article.reviewer_ids if r != invitation.reviewer_id]

    async def _aggregate_round(self, article: Article) -> Optional[WorkflowStatus]:
        """Apply the aggregated decision once the current round is complete.

        Returns the new status, or None if the round is still open or the
        status does not change.
        """
        await self.db.flush()
        result = await self.db.execute(
            select(Review).where(
                Review.article_id == article.id,
                Review.round == (article.revision_round or 1),
                Review.status != ReviewStatus.DECLINED.value,
            )
        )
        reviews = list(result.scalars().all())
        if not reviews or any(r.status != ReviewStatus.COMPLETED.value for r in reviews):
            return None

        decision = aggregate_recommendations(r.recommendation for r in reviews)
        if decision.value == article.status:
            return None
        if not can_transition(article.status, decision):
            log_warning(
                logger,
                "aggregate_reviews",
                f"Cannot move article from {article.status} to {decision.value}; status kept",
                {"article_id": article.id},
            )
            return None

        submission = await self.get_submission_for_article(article.id)
        self.apply_status_change(
            submission, article, decision, SYSTEM_USER, f"Decision from {len(reviews)} completed review(s)"
        )

        if article.editor_id:
            create_system_notification(
                self.db,
                article.editor_id,
                inbox.REVIEWS_COMPLETE,
                "All Reviews Completed",
                f'All reviews completed for: "{article.title}"',
                article.id,
            )
        create_system_notification(
            self.db,
            article.author_id,
            inbox.REVIEWS_COMPLETE,
            "Reviews Completed",
            f'Reviews have been completed for your submission: "{article.title}"',
            article.id,
        )
        return decision

    async def _reviewer_profile(self, user_id: str) -> Optional[ReviewerProfile]:
        result = await self.db.execute(select(ReviewerProfile).where(ReviewerProfile.user_id == user_id))
        return result.scalar_one_or_none()
