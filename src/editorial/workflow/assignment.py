"""Reviewer selection and assignment.

The orchestrated path (``auto_assign_reviewers``) runs five steps:

1. fetch the reviewers the author recommended for the article
2. score them: registered reviewers from their profile, unknown people
   heuristically from their self-reported expertise and affiliation
3. fetch further system candidates, excluding conflicts
4. merge both lists, boosting recommended candidates, and rank by score
5. select up to N, preferring 1-2 well-scored recommended reviewers

Registered reviewers get a review row, an invitation and a workload
increment; unknown recommended reviewers are only marked as contacted.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select

from editorial.database.models import (
    Article,
    RecommendedReviewer,
    Review,
    ReviewerProfile,
    ReviewInvitation,
    User,
)
from editorial.exceptions import ValidationError
from editorial.notifications import inbox
from editorial.notifications.inbox import create_system_notification
from editorial.utils import normalize_email, split_terms, utc_now
from editorial.workflow.base import WorkflowService
from editorial.workflow.editors import EDITOR_ROLES
from editorial.workflow.results import AssignmentResult
from editorial.workflow.scoring import ReviewerCandidate, ReviewerScorer, ScoredReviewer
from editorial.workflow.status import ReviewStatus, WorkflowStatus, can_transition

logger = logging.getLogger(__name__)


@dataclass
class ReviewerCriteria:
    """Filters for system reviewer candidates."""

    expertise: list[str] = field(default_factory=list)
    exclude_conflicts: list[str] = field(default_factory=list)
    min_quality_score: float = 0.0
    limit: int = 10


@dataclass
class _AuthorContext:
    """Who counts as an author of the article, for conflict checks."""

    user_ids: set[str]
    emails: set[str]
    affiliations: list[str]


class ReviewerAssignmentService(WorkflowService):
    """Finds, ranks and assigns reviewers."""

    def _scorer(self, now: Optional[datetime] = None) -> ReviewerScorer:
        return ReviewerScorer(recommended_boost=self.settings.recommended_reviewer_boost, now=now)

    # ------------------------------------------------------------------
    # Candidate discovery
    # ------------------------------------------------------------------

    async def find_suitable_reviewers(
        self,
        article_id: str,
        criteria: Optional[ReviewerCriteria] = None,
        exclude_users: Optional[list[str]] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredReviewer]:
        """Rank available reviewers for an article.

        Only active reviewers with an active, available profile below their
        maximum load and at or above the minimum quality are considered.
        The author, co-authors, explicit conflicts and ``exclude_users`` are
        never returned.

        Raises:
            NotFoundError: If the article does not exist
        """
        article = await self.get_or_raise(Article, article_id, "Article")
        criteria = criteria or ReviewerCriteria(
            expertise=list(article.keywords or []),
            min_quality_score=self.settings.min_reviewer_quality,
            limit=self.settings.max_reviewer_candidates,
        )
        authors = await self._author_context(article)

        excluded = set(exclude_users or []) | set(criteria.exclude_conflicts) | authors.user_ids
        candidates = [c for c in await self._available_reviewers(criteria.min_quality_score) if c.user_id not in excluded]

        ranked = self._scorer(now).rank(
            candidates,
            keywords=criteria.expertise or list(article.keywords or []),
            author_id=article.author_id,
            conflicts=criteria.exclude_conflicts,
            author_emails=authors.emails,
        )
        return ranked[: criteria.limit]

    async def _available_reviewers(self, min_quality_score: float) -> list[ReviewerCandidate]:
        result = await self.db.execute(
            select(User, ReviewerProfile)
            .join(ReviewerProfile, ReviewerProfile.user_id == User.id)
            .where(
                User.role == "reviewer",
                User.is_active.is_(True),
                ReviewerProfile.is_active.is_(True),
                ReviewerProfile.availability_status == "available",
                ReviewerProfile.current_review_load < ReviewerProfile.max_reviews_per_month,
                ReviewerProfile.quality_score >= min_quality_score,
            )
        )
        return [self._candidate_from_profile(user, profile) for user, profile in result.all()]

    @staticmethod
    def _accepts_reviews(user: User, profile: ReviewerProfile, min_quality_score: float) -> bool:
        """Same filters as _available_reviewers, for an already loaded reviewer."""
        return (
            bool(user.is_active)
            and bool(profile.is_active)
            and profile.availability_status == "available"
            and (profile.current_review_load or 0) < (profile.max_reviews_per_month or 0)
            and (profile.quality_score or 0.0) >= min_quality_score
        )

    @staticmethod
    def _candidate_from_profile(
        user: User,
        profile: ReviewerProfile,
        recommendation: Optional[RecommendedReviewer] = None,
    ) -> ReviewerCandidate:
        return ReviewerCandidate(
            user_id=user.id,
            email=user.email,
            name=user.name,
            expertise=list(user.expertise or []),
            current_load=profile.current_review_load or 0,
            max_load=profile.max_reviews_per_month or 3,
            quality_score=profile.quality_score or 0.0,
            completed_reviews=profile.completed_reviews or 0,
            late_reviews=profile.late_reviews or 0,
            last_review_date=profile.last_review_date,
            affiliation=user.affiliation,
            recommended=recommendation is not None,
            recommendation_id=recommendation.id if recommendation else None,
        )

    async def _author_context(self, article: Article) -> _AuthorContext:
        co_authors = article.co_authors or []
        emails = {normalize_email(a.get("email")) for a in co_authors if a.get("email")}
        affiliations = [a.get("affiliation") or a.get("institution") or "" for a in co_authors]

        user_ids = {article.author_id}
        author = await self.get_user(article.author_id)
        if author is not None:
            emails.add(normalize_email(author.email))
            if author.affiliation:
                affiliations.append(author.affiliation)
        if emails:
            result = await self.db.execute(select(User.id).where(func.lower(User.email).in_(sorted(emails))))
            user_ids.update(result.scalars().all())

        return _AuthorContext(
            user_ids=user_ids,
            emails=emails,
            affiliations=[a for a in affiliations if a],
        )

    # ------------------------------------------------------------------
    # Direct assignment
    # ------------------------------------------------------------------

    async def assign_reviewers(
        self,
        article_id: str,
        reviewer_ids: list[str],
        editor_id: str,
        deadline: Optional[datetime] = None,
    ) -> AssignmentResult:
        """Assign specific reviewers to an article.

        Individual reviewer failures are collected in ``errors``; the call
        succeeds if at least one reviewer was assigned.
        """
        try:
            article, editor = await self._load_for_assignment(article_id, editor_id)
            assigned, errors = await self._assign_registered(article, reviewer_ids, editor, deadline)
            await self.commit()
            return AssignmentResult(
                success=bool(assigned),
                assigned_reviewers=assigned,
                errors=errors,
                error_type=None if assigned else "validation",
            )
        except Exception as e:
            result = await self.handle_failure(
                "assign_reviewers", e, "Failed to assign reviewers", {"article_id": article_id}
            )
            return AssignmentResult(success=False, errors=[result.message], error_type=result.error_type)

    async def _load_for_assignment(self, article_id: str, editor_id: str) -> tuple[Article, User]:
        article = await self.get_or_raise(Article, article_id, "Article")
        editor = await self.get_user(editor_id)
        if editor is None or editor.role not in EDITOR_ROLES:
            raise ValidationError("Invalid editor or insufficient permissions")

        if article.status != WorkflowStatus.UNDER_REVIEW.value and not can_transition(
            article.status, WorkflowStatus.UNDER_REVIEW
        ):
            raise ValidationError(f"Article in status {article.status} cannot be sent to peer review")
        return article, editor

    async def _assign_registered(
        self,
        article: Article,
        reviewer_ids: list[str],
        editor: User,
        deadline: Optional[datetime],
    ) -> tuple[list[str], list[str]]:
        """Create reviews for registered reviewers inside the current unit of work."""
        deadline = deadline or utc_now() + timedelta(days=self.settings.review_deadline_days)
        authors = await self._author_context(article)
        already_assigned = await self._current_round_reviewer_ids(article)

        assigned: list[str] = []
        errors: list[str] = []

        for reviewer_id in reviewer_ids:
            reviewer = await self.get_user(reviewer_id)
            if reviewer is None or reviewer.role != "reviewer":
                errors.append(f"Invalid reviewer: {reviewer_id}")
                continue
            if reviewer.id == article.author_id or reviewer.id in authors.user_ids:
                errors.append(f"Cannot assign author as reviewer: {reviewer.name}")
                continue
            if reviewer.id in already_assigned:
                errors.append(f"Reviewer {reviewer.name} is already assigned to this article")
                continue

            profile = await self._reviewer_profile(reviewer.id)
            if profile is not None and (profile.current_review_load or 0) >= (profile.max_reviews_per_month or 0):
                errors.append(f"Reviewer {reviewer.name} has reached maximum workload")
                continue

            review = Review(
                article_id=article.id,
                reviewer_id=reviewer.id,
                round=article.revision_round or 1,
                status=ReviewStatus.PENDING.value,
                due_date=deadline,
                created_at=utc_now(),
            )
            self.db.add(review)
            await self.db.flush()

            self.db.add(self._invitation(article, editor.id, reviewer.email, reviewer.name, deadline, reviewer.id, review.id))
            if profile is not None:
                profile.current_review_load = (profile.current_review_load or 0) + 1

            create_system_notification(
                self.db,
                reviewer.id,
                inbox.REVIEW_ASSIGNED,
                "New Review Assignment",
                f'You have been assigned to review: "{article.title}"',
                article.id,
            )
            self._queue_invitation_email(reviewer.email, reviewer.name, article, deadline, review.id)

            already_assigned.add(reviewer.id)
            assigned.append(reviewer.id)

        if assigned:
            article.reviewer_ids = list(dict.fromkeys([*(article.reviewer_ids or []), *assigned]))
            if article.status != WorkflowStatus.UNDER_REVIEW.value:
                submission = await self.get_submission_for_article(article.id)
                self.apply_status_change(
                    submission, article, WorkflowStatus.UNDER_REVIEW, editor.id, f"{len(assigned)} reviewer(s) assigned"
                )
            logger.info(f"[assignment] Article {article.id}: assigned {len(assigned)} reviewer(s)")

        return assigned, errors

    async def _current_round_reviewer_ids(self, article: Article) -> set[str]:
        result = await self.db.execute(
            select(Review.reviewer_id).where(
                Review.article_id == article.id,
                Review.round == (article.revision_round or 1),
                Review.status != ReviewStatus.DECLINED.value,
            )
        )
        return set(result.scalars().all())

    async def _reviewer_profile(self, user_id: str) -> Optional[ReviewerProfile]:
        result = await self.db.execute(select(ReviewerProfile).where(ReviewerProfile.user_id == user_id))
        return result.scalar_one_or_none()

    def _invitation(
        self,
        article: Article,
        invited_by: str,
        email: str,
        name: str,
        deadline: datetime,
        reviewer_id: Optional[str] = None,
        review_id: Optional[str] = None,
        recommended_reviewer_id: Optional[str] = None,
    ) -> ReviewInvitation:
        now = utc_now()
        return ReviewInvitation(
            article_id=article.id,
            reviewer_id=reviewer_id,
            reviewer_email=email,
            reviewer_name=name,
            review_id=review_id,
            recommended_reviewer_id=recommended_reviewer_id,
            invited_by=invited_by,
            invited_at=now,
            response_deadline=now + timedelta(days=self.settings.invitation_response_days),
            review_deadline=deadline,
            status="pending",
            invitation_token=secrets.token_urlsafe(32),
        )

    def _queue_invitation_email(
        self, email: str, name: str, article: Article, deadline: datetime, review_id: Optional[str]
    ) -> None:
        title, abstract = article.title, article.abstract
        self.queue_email(
            f"review invitation to {email}",
            lambda: self.mailer.send_review_invitation(email, name, title, abstract, deadline, review_id),
        )

    # ------------------------------------------------------------------
    # Orchestrated assignment
    # ------------------------------------------------------------------

    async def rank_candidates(
        self,
        article: Article,
        conflicts: Optional[list[str]] = None,
        now: Optional[datetime] = None,
    ) -> tuple[list[ScoredReviewer], dict[str, RecommendedReviewer]]:
        """Steps 1-4: merged, ranked list of recommended and system candidates."""
        conflicts = list(conflicts or [])
        scorer = self._scorer(now)
        authors = await self._author_context(article)
        keywords = list(article.keywords or [])

        # 1. Author-recommended reviewers
        result = await self.db.execute(
            select(RecommendedReviewer).where(
                RecommendedReviewer.article_id == article.id,
                RecommendedReviewer.status == "suggested",
            )
        )
        recommendations = list(result.scalars().all())

        # 2. Validate against existing users
        recommended_candidates: list[ReviewerCandidate] = []
        recommendation_by_key: dict[str, RecommendedReviewer] = {}
        for rec in recommendations:
            user_result = await self.db.execute(
                select(User, ReviewerProfile)
                .outerjoin(ReviewerProfile, ReviewerProfile.user_id == User.id)
                .where(func.lower(User.email) == normalize_email(rec.email))
            )
            row = user_result.first()

            if row is not None and row[0].role == "reviewer" and row[1] is not None:
                user, profile = row
                if not self._accepts_reviews(user, profile, self.settings.min_reviewer_quality):
                    continue
                candidate = self._candidate_from_profile(user, profile, rec)
            elif row is not None:
                # Registered, but not as a reviewer: cannot be assigned a review
                continue
            else:
                candidate = ReviewerCandidate(
                    user_id=None,
                    email=rec.email,
                    name=rec.name,
                    expertise=split_terms(rec.expertise),
                    affiliation=rec.affiliation,
                    recommended=True,
                    recommendation_id=rec.id,
                )
            recommended_candidates.append(candidate)
            recommendation_by_key[candidate.user_id or normalize_email(candidate.email)] = rec

        recommended_ranked = scorer.rank(
            recommended_candidates,
            keywords,
            author_id=article.author_id,
            conflicts=conflicts + sorted(authors.user_ids),
            author_emails=authors.emails,
            author_affiliations=authors.affiliations,
        )

        # 3. Additional system candidates
        considered = {s.candidate.user_id for s in recommended_ranked if s.candidate.user_id}
        system_ranked = await self.find_suitable_reviewers(
            article.id,
            ReviewerCriteria(
                expertise=keywords,
                exclude_conflicts=conflicts,
                min_quality_score=self.settings.min_reviewer_quality,
                limit=self.settings.max_reviewer_candidates,
            ),
            exclude_users=sorted(considered),
            now=now,
        )

        # 4. Merge and rank
        merged = sorted(recommended_ranked + system_ranked, key=lambda s: s.score, reverse=True)
        return merged, recommendation_by_key

    def select_reviewers(self, ranked: list[ScoredReviewer], count: int) -> list[ScoredReviewer]:
        """Step 5: prefer well-scored recommended reviewers, then fill by rank."""
        preferred_limit = min(self.settings.max_preferred_recommended, count)
        selected: list[ScoredReviewer] = []
        seen: set[str] = set()

        for scored in ranked:
            if len(selected) >= preferred_limit:
                break
            if scored.candidate.recommended and scored.base_score >= self.settings.recommended_min_score:
                selected.append(scored)
                seen.add(scored.key)

        for scored in ranked:
            if len(selected) >= count:
                break
            if scored.key not in seen:
                selected.append(scored)
                seen.add(scored.key)

        return selected

    async def auto_assign_reviewers(
        self,
        article_id: str,
        editor_id: str,
        count: Optional[int] = None,
        conflicts: Optional[list[str]] = None,
        deadline: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> AssignmentResult:
        """Rank recommended and system candidates and assign the best N."""
        if count is None:
            count = self.settings.reviewers_per_article
        try:
            article, editor = await self._load_for_assignment(article_id, editor_id)
            ranked, recommendations = await self.rank_candidates(article, conflicts, now)
            selected = [s for s in self.select_reviewers(ranked, count) if s.candidate.user_id != article.author_id]

            if not selected:
                await self.rollback()
                return AssignmentResult(success=False, errors=["No suitable reviewers found"], error_type="validation")

            registered = [s.candidate.user_id for s in selected if s.candidate.is_registered]
            assigned, errors = await self._assign_registered(article, registered, editor, deadline)

            contacted: list[str] = []
            review_deadline = deadline or utc_now() + timedelta(days=self.settings.review_deadline_days)
            for scored in selected:
                if scored.candidate.is_registered:
                    if scored.key in recommendations and scored.candidate.user_id in assigned:
                        rec = recommendations[scored.key]
                        rec.status = "contacted"
                        rec.contact_attempts = (rec.contact_attempts or 0) + 1
                    continue
                rec = recommendations.get(scored.key)
                if rec is None:
                    errors.append(f"Unknown recommended reviewer: {scored.candidate.email}")
                    continue
                self._contact_recommended(article, editor, rec, review_deadline)
                contacted.append(rec.email)

            await self.commit()
            logger.info(
                f"[assignment] Auto-assigned article {article_id}: "
                f"{len(assigned)} assigned, {len(contacted)} contacted, {len(errors)} error(s)"
            )
            return AssignmentResult(
                success=bool(assigned or contacted),
                assigned_reviewers=assigned,
                contacted_reviewers=contacted,
                errors=errors,
                error_type=None if assigned or contacted else "validation",
            )
        except Exception as e:
            result = await self.handle_failure(
                "auto_assign_reviewers", e, "Failed to assign reviewers", {"article_id": article_id}
            )
            return AssignmentResult(success=False, errors=[result.message], error_type=result.error_type)

    def _contact_recommended(
        self, article: Article, editor: User, rec: RecommendedReviewer, deadline: datetime
    ) -> None:
        """Invite a recommended reviewer who has no account. No user is created."""
        rec.status = "contacted"
        rec.contact_attempts = (rec.contact_attempts or 0) + 1
        self.db.add(self._invitation(article, editor.id, rec.email, rec.name, deadline, recommended_reviewer_id=rec.id))
        self._queue_invitation_email(rec.email, rec.name, article, deadline, None)
