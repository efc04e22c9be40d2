"""Tests for review submission, round aggregation and deadline monitoring."""

import pytest
from conftest import days_ago, make_article, make_editor, make_reviewer, make_user
from sqlalchemy import select

from editorial.database.models import Notification, Review, ReviewerProfile, ReviewInvitation
from editorial.workflow.assignment import ReviewerAssignmentService
from editorial.workflow.review import ReviewManagementService


async def _profile(db, user_id):
    result = await db.execute(select(ReviewerProfile).where(ReviewerProfile.user_id == user_id))
    return result.scalar_one()


async def _review_for(db, reviewer_id):
    result = await db.execute(select(Review).where(Review.reviewer_id == reviewer_id))
    return result.scalar_one()


async def _under_review(db, mailer, settings, reviewer_count=2):
    """Article in peer review with ``reviewer_count`` pending reviews."""
    author = await make_user(db, "ada@uni.example")
    editor = await make_editor(db, "editor@journal.example")
    reviewers = [await make_reviewer(db, f"rev{i}@x.example") for i in range(reviewer_count)]
    article, submission = await make_article(db, author, status="technical_check", editor=editor)

    result = await ReviewerAssignmentService(db, mailer, settings).assign_reviewers(
        article.id, [r.id for r in reviewers], editor.id
    )
    assert result.success is True
    return article, submission, editor, reviewers


# ==============================================================================
# submit_review
# ==============================================================================


class TestSubmitReview:
    """Tests for submit_review and round aggregation."""

    @pytest.mark.asyncio
    async def test_first_review_keeps_round_open(self, db_session, mailer, settings):
        article, _, editor, reviewers = await _under_review(db_session, mailer, settings)
        review = await _review_for(db_session, reviewers[0].id)

        service = ReviewManagementService(db_session, mailer, settings)
        result = await service.submit_review(review.id, reviewers[0].id, "accept", "Solid work", rating=4)

        assert result.success is True
        assert result.data == {"review_id": review.id}
        assert review.status == "completed"
        assert review.recommendation == "accept"
        assert review.rating == 4
        assert review.submitted_at is not None
        assert article.status == "under_review"

        profile = await _profile(db_session, reviewers[0].id)
        assert profile.current_review_load == 0
        assert profile.completed_reviews == 1
        assert profile.last_review_date is not None

        submitted = (
            await db_session.execute(select(Notification).where(Notification.type == "REVIEW_SUBMITTED"))
        ).scalars().all()
        assert [n.user_id for n in submitted] == [editor.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "verdicts,expected",
        [
            (["accept", "accept"], "accepted"),
            (["accept", "reject"], "rejected"),
            (["accept", "minor_revision"], "revision_requested"),
            (["major_revision", "accept"], "revision_requested"),
        ],
    )
    async def test_completed_round_is_aggregated(self, db_session, mailer, settings, verdicts, expected):
        article, submission, editor, reviewers = await _under_review(db_session, mailer, settings)
        service = ReviewManagementService(db_session, mailer, settings)

        results = []
        for reviewer, verdict in zip(reviewers, verdicts):
            review = await _review_for(db_session, reviewer.id)
            results.append(await service.submit_review(review.id, reviewer.id, verdict, "Comments"))

        assert all(r.success for r in results)
        assert "article_status" not in results[0].data
        assert results[-1].data["article_status"] == expected
        assert article.status == expected
        assert submission.status == expected

        last = submission.status_history[-1]
        assert last["user_id"] == "system"
        assert last["system_generated"] is True
        assert last["notes"] == "Decision from 2 completed review(s)"

        complete = (
            await db_session.execute(select(Notification).where(Notification.type == "REVIEWS_COMPLETE"))
        ).scalars().all()
        assert {n.user_id for n in complete} == {editor.id, article.author_id}

    @pytest.mark.asyncio
    async def test_previous_round_reviews_are_ignored(self, db_session, mailer, settings):
        author = await make_user(db_session, "ada@uni.example")
        old = await make_reviewer(db_session, "old@x.example")
        new = await make_reviewer(db_session, "new@x.example", current_review_load=1)
        article, _ = await make_article(db_session, author, status="under_review")
        article.revision_round = 2
        db_session.add_all(
            [
                Review(article_id=article.id, reviewer_id=old.id, round=1, status="completed", recommendation="reject"),
                Review(article_id=article.id, reviewer_id=new.id, round=2, status="pending"),
            ]
        )
        await db_session.commit()
        review = await _review_for(db_session, new.id)

        result = await ReviewManagementService(db_session, mailer, settings).submit_review(
            review.id, new.id, "accept", "All issues addressed"
        )

        assert result.success is True
        assert result.data["article_status"] == "accepted"

    @pytest.mark.asyncio
    async def test_other_reviewer_cannot_submit(self, db_session, mailer, settings):
        _, _, _, reviewers = await _under_review(db_session, mailer, settings)
        review = await _review_for(db_session, reviewers[0].id)

        result = await ReviewManagementService(db_session, mailer, settings).submit_review(
            review.id, reviewers[1].id, "accept", "Looks fine"
        )

        assert result.success is False
        assert result.error_type == "not_found"
        assert result.message == "Review not found or access denied"

    @pytest.mark.asyncio
    async def test_cannot_submit_twice(self, db_session, mailer, settings):
        _, _, _, reviewers = await _under_review(db_session, mailer, settings)
        review = await _review_for(db_session, reviewers[0].id)
        service = ReviewManagementService(db_session, mailer, settings)
        await service.submit_review(review.id, reviewers[0].id, "accept", "Fine")

        result = await service.submit_review(review.id, reviewers[0].id, "reject", "Changed my mind")

        assert result.success is False
        assert result.message == "Review already completed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_out_of_range(self, db_session, mailer, settings, rating):
        _, _, _, reviewers = await _under_review(db_session, mailer, settings)
        review = await _review_for(db_session, reviewers[0].id)

        result = await ReviewManagementService(db_session, mailer, settings).submit_review(
            review.id, reviewers[0].id, "accept", "Fine", rating=rating
        )

        assert result.success is False
        assert result.error_type == "validation"
        assert result.message == "Rating must be between 1 and 5"
        await db_session.refresh(review)
        assert review.status == "pending"

    @pytest.mark.asyncio
    async def test_invalid_recommendation(self, db_session, mailer, settings):
        _, _, _, reviewers = await _under_review(db_session, mailer, settings)
        review = await _review_for(db_session, reviewers[0].id)

        result = await ReviewManagementService(db_session, mailer, settings).submit_review(
            review.id, reviewers[0].id, "maybe", "Unsure"
        )

        assert result.success is False
        assert result.error_type == "validation"
        assert "Must be one of" in result.message


# ==============================================================================
# Overdue sweep
# ==============================================================================


class TestCheckOverdueReviews:
    """Tests for check_overdue_reviews."""

    @pytest.mark.asyncio
    async def test_marks_stale_pending_reviews(self, db_session, mailer, settings):
        author = await make_user(db_session, "ada@uni.example")
        slow = await make_reviewer(db_session, "slow@x.example")
        quick = await make_reviewer(db_session, "quick@x.example")
        done = await make_reviewer(db_session, "done@x.example")
        article, _ = await make_article(db_session, author, status="under_review")
        db_session.add_all(
            [
                Review(article_id=article.id, reviewer_id=slow.id, status="pending", created_at=days_ago(22)),
                Review(article_id=article.id, reviewer_id=quick.id, status="pending", created_at=days_ago(5)),
                Review(
                    article_id=article.id,
                    reviewer_id=done.id,
                    status="completed",
                    recommendation="accept",
                    created_at=days_ago(40),
                ),
            ]
        )
        await db_session.commit()

        result = await ReviewManagementService(db_session, mailer, settings).check_overdue_reviews()

        assert result.success is True
        assert result.data["overdue"] == 1
        assert (await _review_for(db_session, slow.id)).status == "overdue"
        assert (await _review_for(db_session, quick.id)).status == "pending"
        assert (await _review_for(db_session, done.id)).status == "completed"
        assert (await _profile(db_session, slow.id)).late_reviews == 1

        overdue_notices = (
            await db_session.execute(select(Notification).where(Notification.type == "REVIEW_OVERDUE"))
        ).scalars().all()
        assert [n.user_id for n in overdue_notices] == [slow.id]

    @pytest.mark.asyncio
    async def test_nothing_overdue(self, db_session, mailer, settings):
        result = await ReviewManagementService(db_session, mailer, settings).check_overdue_reviews()

        assert result.success is True
        assert result.data["overdue"] == 0


# ==============================================================================
# Invitations
# ==============================================================================


class TestRespondToInvitation:
    """Tests for respond_to_invitation."""

    async def _invitation(self, db, reviewer_id):
        result = await db.execute(select(ReviewInvitation).where(ReviewInvitation.reviewer_id == reviewer_id))
        return result.scalar_one()

    @pytest.mark.asyncio
    async def test_accept(self, db_session, mailer, settings):
        _, _, _, reviewers = await _under_review(db_session, mailer, settings)
        invitation = await self._invitation(db_session, reviewers[0].id)

        result = await ReviewManagementService(db_session, mailer, settings).respond_to_invitation(
            invitation.id, reviewers[0].id, accept=True
        )

        assert result.success is True
        assert result.message == "Invitation accepted"
        assert invitation.status == "accepted"
        assert invitation.response_at is not None

    @pytest.mark.asyncio
    async def test_decline_releases_slot_and_completes_round(self, db_session, mailer, settings):
        article, _, editor, reviewers = await _under_review(db_session, mailer, settings)
        service = ReviewManagementService(db_session, mailer, settings)
        first_review = await _review_for(db_session, reviewers[0].id)
        await service.submit_review(first_review.id, reviewers[0].id, "accept", "Good")
        invitation = await self._invitation(db_session, reviewers[1].id)

        result = await service.respond_to_invitation(
            invitation.id, reviewers[1].id, accept=False, decline_reason="On leave"
        )

        assert result.success is True
        assert result.message == "Invitation declined"
        assert invitation.decline_reason == "On leave"
        assert (await _review_for(db_session, reviewers[1].id)).status == "declined"
        assert (await _profile(db_session, reviewers[1].id)).current_review_load == 0
        assert article.reviewer_ids == [reviewers[0].id]
        assert article.status == "accepted"

        declined = (
            await db_session.execute(select(Notification).where(Notification.type == "REVIEW_DECLINED"))
        ).scalars().all()
        assert [n.user_id for n in declined] == [editor.id]

    @pytest.mark.asyncio
    async def test_decline_after_overdue_sweep(self, db_session, mailer, settings):
        article, _, _, reviewers = await _under_review(db_session, mailer, settings)
        service = ReviewManagementService(db_session, mailer, settings)
        late_review = await _review_for(db_session, reviewers[0].id)
        late_review.created_at = days_ago(30)
        await db_session.commit()
        await service.check_overdue_reviews()
        assert late_review.status == "overdue"
        invitation = await self._invitation(db_session, reviewers[0].id)

        result = await service.respond_to_invitation(invitation.id, reviewers[0].id, accept=False)

        assert result.success is True
        assert late_review.status == "declined"
        assert (await _profile(db_session, reviewers[0].id)).current_review_load == 0
        assert article.reviewer_ids == [reviewers[1].id]

        other_review = await _review_for(db_session, reviewers[1].id)
        result = await service.submit_review(other_review.id, reviewers[1].id, "accept", "Good")

        assert result.success is True
        assert article.status == "accepted"

    @pytest.mark.asyncio
    async def test_other_reviewer_cannot_respond(self, db_session, mailer, settings):
        _, _, _, reviewers = await _under_review(db_session, mailer, settings)
        invitation = await self._invitation(db_session, reviewers[0].id)

        result = await ReviewManagementService(db_session, mailer, settings).respond_to_invitation(
            invitation.id, reviewers[1].id, accept=True
        )

        assert result.success is False
        assert result.error_type == "permission"

    @pytest.mark.asyncio
    async def test_respond_twice(self, db_session, mailer, settings):
        _, _, _, reviewers = await _under_review(db_session, mailer, settings)
        invitation = await self._invitation(db_session, reviewers[0].id)
        service = ReviewManagementService(db_session, mailer, settings)
        await service.respond_to_invitation(invitation.id, reviewers[0].id, accept=True)

        result = await service.respond_to_invitation(invitation.id, reviewers[0].id, accept=False)

        assert result.success is False
        assert result.error_type == "validation"
        assert result.message == "Invitation already accepted"
