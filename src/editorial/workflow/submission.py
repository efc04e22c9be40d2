"""Article submission intake and editorial status updates."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import select

from editorial.database.models import Article, RecommendedReviewer, Submission
from editorial.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from editorial.notifications import inbox
from editorial.notifications.inbox import create_system_notification
from editorial.utils import normalize_email, utc_now
from editorial.workflow.base import SYSTEM_USER, WorkflowService
from editorial.workflow.editors import EDITOR_ROLES, EditorAssignmentService
from editorial.workflow.results import ServiceResult
from editorial.workflow.status import (
    ESTIMATED_COMPLETION,
    NEXT_STEPS,
    StatusHistoryEntry,
    WorkflowStatus,
    parse_status,
)

logger = logging.getLogger(__name__)

# Fields every listed author must fill in
REQUIRED_AUTHOR_FIELDS = {
    "first_name": "first name",
    "last_name": "last name",
    "email": "email",
    "institution": "institution",
    "department": "department",
    "country": "country",
    "affiliation": "affiliation",
}


@dataclass
class AuthorInfo:
    """One author of a submitted manuscript."""

    first_name: str
    last_name: str
    email: str
    institution: str = ""
    department: str = ""
    country: str = ""
    affiliation: str = ""
    orcid: Optional[str] = None
    is_corresponding_author: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "institution": self.institution,
            "department": self.department,
            "country": self.country,
            "affiliation": self.affiliation,
            "orcid": self.orcid,
            "is_corresponding_author": self.is_corresponding_author,
        }


@dataclass
class RecommendedReviewerInfo:
    """Reviewer suggested by the submitting author."""

    name: str
    email: str
    affiliation: str
    expertise: str = ""


@dataclass
class ArticleSubmission:
    """Everything an author provides when submitting a manuscript."""

    title: str
    abstract: str
    category: str
    authors: list[AuthorInfo] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    content: str = ""
    recommended_reviewers: list[RecommendedReviewerInfo] = field(default_factory=list)


def validate_submission(data: ArticleSubmission) -> None:
    """Check a submission before anything is written.

    Only emptiness is checked for title and abstract; length limits are
    left to the request schema.

    Raises:
        ValidationError: On the first problem found
    """
    if not (data.title or "").strip():
        raise ValidationError("Title is required")
    if not (data.abstract or "").strip():
        raise ValidationError("Abstract is required")
    if not (data.category or "").strip():
        raise ValidationError("Category is required")

    if not data.authors:
        raise ValidationError("At least one author is required")

    corresponding = [a for a in data.authors if a.is_corresponding_author]
    if len(corresponding) != 1:
        raise ValidationError("Exactly one corresponding author must be designated")

    for index, author in enumerate(data.authors, start=1):
        for attr, label in REQUIRED_AUTHOR_FIELDS.items():
            if not (getattr(author, attr) or "").strip():
                raise ValidationError(f"Author {index}: {label} is required")


class ArticleSubmissionService(WorkflowService):
    """Submission intake, status updates and status queries."""

    async def submit_article(self, data: ArticleSubmission, author_id: str) -> ServiceResult:
        """Validate and persist a new article with its submission record.

        On success the article is assigned to the least-loaded eligible
        editor (if any) and moved to technical check. Author and editor are
        notified in-app and by email once the transaction commits.
        """
        try:
            validate_submission(data)
            author = await self.get_user(author_id)
            if author is None:
                raise NotFoundError("Author")

            now = utc_now()
            submitter_email = normalize_email(author.email)
            article = Article(
                title=data.title.strip(),
                abstract=data.abstract.strip(),
                content=(data.content or "").strip(),
                keywords=[k.strip() for k in data.keywords if k and k.strip()],
                category=data.category.strip(),
                status=WorkflowStatus.SUBMITTED.value,
                author_id=author_id,
                co_authors=[a.to_dict() for a in data.authors if normalize_email(a.email) != submitter_email],
                reviewer_ids=[],
                revision_round=1,
                submitted_date=now,
                created_at=now,
                updated_at=now,
            )
            self.db.add(article)
            await self.db.flush()

            entry = StatusHistoryEntry.create(WorkflowStatus.SUBMITTED, author_id)
            submission = Submission(
                article_id=article.id,
                author_id=author_id,
                status=WorkflowStatus.SUBMITTED.value,
                status_history=[entry.to_dict()],
                submitted_at=now,
                created_at=now,
                updated_at=now,
            )
            self.db.add(submission)

            for rec in data.recommended_reviewers:
                self.db.add(
                    RecommendedReviewer(
                        article_id=article.id,
                        name=rec.name.strip(),
                        email=normalize_email(rec.email),
                        affiliation=rec.affiliation.strip(),
                        expertise=rec.expertise,
                        suggested_by=author_id,
                        status="suggested",
                        contact_attempts=0,
                    )
                )
            await self.db.flush()

            editors = EditorAssignmentService(self.db, self.mailer, self.settings, outbox=self._outbox)
            editor = await editors.find_suitable_editor(article.category)
            if editor is not None:
                await editors.assign_editor_to_article(article, editor)
                self.apply_status_change(
                    submission, article, WorkflowStatus.TECHNICAL_CHECK, SYSTEM_USER, "Automatically assigned to editor"
                )
            else:
                logger.warning(f"[submission] No eligible editor for category '{article.category}'")

            create_system_notification(
                self.db,
                author_id,
                inbox.SUBMISSION_RECEIVED,
                "Submission Received",
                f'Your article "{article.title}" has been successfully submitted',
                article.id,
            )
            title = article.title
            context = {"article_id": article.id, "submission_id": submission.id}
            self.queue_email(
                f"submission receipt to {author.email}",
                lambda: self.mailer.send_workflow_notification(
                    author.email,
                    author.name,
                    "Submission Received",
                    f'Your article "{title}" has been successfully submitted and is now under review.',
                    context,
                ),
            )

            await self.commit()
            logger.info(f"[submission] Article {article.id} submitted by {author_id}")
            return ServiceResult.ok(
                "Article submitted successfully",
                article_id=article.id,
                submission_id=submission.id,
                status=submission.status,
                editor_id=article.editor_id,
            )
        except Exception as e:
            return await self.handle_failure(
                "submit_article", e, "Failed to submit article. Please try again.", {"author_id": author_id}
            )

    async def update_submission_status(
        self,
        submission_id: str,
        new_status: WorkflowStatus | str,
        user_id: str,
        notes: Optional[str] = None,
    ) -> ServiceResult:
        """Move a submission (and its article) to a new status.

        Transitions outside the table fail and leave everything unchanged.
        """
        try:
            submission = await self.get_or_raise(Submission, submission_id, "Submission")
            article = await self.db.get(Article, submission.article_id)
            self.apply_status_change(submission, article, new_status, user_id, notes)
            await self.commit()
            return ServiceResult.ok("Status updated successfully", status=submission.status)
        except Exception as e:
            return await self.handle_failure(
                "update_submission_status", e, "Failed to update status", {"submission_id": submission_id}
            )

    async def update_article_status(
        self,
        article_id: str,
        new_status: WorkflowStatus | str,
        user_id: str,
        notes: Optional[str] = None,
    ) -> ServiceResult:
        """Record an editorial decision on an article and notify its author."""
        try:
            article = await self.get_or_raise(Article, article_id, "Article")
            user = await self.get_user(user_id)
            if user is None or user.role not in EDITOR_ROLES:
                raise PermissionDeniedError("Only editors can change an article's status")

            submission = await self.get_submission_for_article(article.id)
            entry = self.apply_status_change(submission, article, new_status, user_id, notes)

            message = f'The status of your article "{article.title}" changed to {entry.status.value.replace("_", " ")}.'
            create_system_notification(
                self.db, article.author_id, inbox.STATUS_CHANGED, "Submission Status Updated", message, article.id
            )
            author = await self.get_user(article.author_id)
            if author is not None:
                context = {"article_id": article.id, "status": entry.status.value}
                if notes:
                    context["notes"] = notes
                self.queue_email(
                    f"status update to {author.email}",
                    lambda: self.mailer.send_workflow_notification(
                        author.email, author.name, "Submission Status Updated", message, context
                    ),
                )

            await self.commit()
            return ServiceResult.ok("Status updated successfully", status=article.status)
        except Exception as e:
            return await self.handle_failure(
                "update_article_status", e, "Failed to update status", {"article_id": article_id}
            )

    async def submit_revision(self, article_id: str, author_id: str, notes: Optional[str] = None) -> ServiceResult:
        """Resubmit a manuscript after a revision request.

        Starts a new review round, so earlier verdicts no longer count.
        """
        try:
            article = await self.get_or_raise(Article, article_id, "Article")
            if article.author_id != author_id:
                raise PermissionDeniedError("Only the submitting author can submit a revision")

            submission = await self.get_submission_for_article(article.id)
            self.apply_status_change(submission, article, WorkflowStatus.REVISION_SUBMITTED, author_id, notes)
            article.revision_round = (article.revision_round or 1) + 1
            article.reviewer_ids = []

            if article.editor_id:
                create_system_notification(
                    self.db,
                    article.editor_id,
                    inbox.STATUS_CHANGED,
                    "Revision Submitted",
                    f'A revised version of "{article.title}" has been submitted.',
                    article.id,
                )

            await self.commit()
            return ServiceResult.ok(
                "Revision submitted successfully", status=article.status, revision_round=article.revision_round
            )
        except Exception as e:
            return await self.handle_failure("submit_revision", e, "Failed to submit revision", {"article_id": article_id})

    async def get_workflow_status(self, submission_id: str, user_id: Optional[str] = None) -> ServiceResult:
        """Current status, history and expectations for a submission.

        When ``user_id`` is given, only the author or an editor may look.
        """
        try:
            submission = await self.get_or_raise(Submission, submission_id, "Submission")
            if user_id is not None and user_id != submission.author_id:
                user = await self.get_user(user_id)
                if user is None or user.role not in EDITOR_ROLES:
                    raise PermissionDeniedError("Access denied")

            status = parse_status(submission.status)
            return ServiceResult.ok(
                "Workflow status retrieved",
                submission_id=submission.id,
                article_id=submission.article_id,
                workflow_status=status.value,
                status_history=list(submission.status_history or []),
                submitted_at=submission.submitted_at.isoformat() if submission.submitted_at else None,
                last_updated=submission.updated_at.isoformat() if submission.updated_at else None,
                estimated_completion=ESTIMATED_COMPLETION[status],
                next_steps=NEXT_STEPS[status],
            )
        except Exception as e:
            return await self.handle_failure(
                "get_workflow_status", e, "Failed to retrieve workflow status", {"submission_id": submission_id}
            )

    async def find_submission_id(self, article_id: str) -> Optional[str]:
        result = await self.db.execute(select(Submission.id).where(Submission.article_id == article_id))
        return result.scalar_one_or_none()
