"""Shared plumbing for the workflow services.

Each public service operation is one unit of work on the session: it
commits once at the end or rolls back on failure. Emails are queued while
the operation runs and only sent after a successful commit.
"""

import logging
from collections.abc import Awaitable
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.config import Settings, get_settings
from editorial.database.models import Article, Submission, User
from editorial.exceptions import NotFoundError, WorkflowError
from editorial.logging import log_failure
from editorial.notifications.email import Mailer, get_mailer
from editorial.workflow.results import ServiceResult
from editorial.workflow.status import StatusHistoryEntry, WorkflowStatus, validate_transition

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

SYSTEM_USER = "system"


class WorkflowService:
    """Base class for services operating on one database session."""

    def __init__(
        self,
        db: AsyncSession,
        mailer: Optional[Mailer] = None,
        settings: Optional[Settings] = None,
        outbox: Optional[list] = None,
    ):
        """Initialize the service.

        Args:
            db: Async database session
            mailer: Email sender (defaults to the SMTP mailer)
            settings: Application settings
            outbox: Shared email queue when composed inside another service
        """
        self.db = db
        self.mailer = mailer or get_mailer()
        self.settings = settings or get_settings()
        self._outbox: list[tuple[str, Callable[[], Awaitable[bool]]]] = outbox if outbox is not None else []

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def queue_email(self, description: str, send: Callable[[], Awaitable[bool]]) -> None:
        """Defer an email until the current unit of work commits."""
        self._outbox.append((description, send))

    async def dispatch_emails(self) -> int:
        """Send queued emails. Failures are logged and never retried."""
        pending = list(self._outbox)
        self._outbox.clear()
        sent = 0
        for description, send in pending:
            try:
                if await send():
                    sent += 1
            except Exception as e:
                log_failure(logger, "send_email", e, {"email": description}, level=logging.WARNING)
        return sent

    async def commit(self) -> None:
        await self.db.commit()
        await self.dispatch_emails()

    async def rollback(self) -> None:
        self._outbox.clear()
        await self.db.rollback()

    async def handle_failure(
        self,
        operation: str,
        error: Exception,
        generic_message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> ServiceResult:
        """Roll back and turn an exception into a failed ServiceResult."""
        await self.rollback()
        if isinstance(error, WorkflowError):
            logger.info(f"[{operation}] {error.message}")
            return ServiceResult.from_error(error)
        log_failure(logger, operation, error, context)
        return ServiceResult.internal(generic_message)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_or_raise(self, model: type[ModelT], record_id: Optional[str], entity: str) -> ModelT:
        record = await self.db.get(model, record_id) if record_id else None
        if record is None:
            raise NotFoundError(entity)
        return record

    async def get_user(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        return await self.db.get(User, user_id)

    async def get_submission_for_article(self, article_id: str) -> Submission:
        result = await self.db.execute(select(Submission).where(Submission.article_id == article_id))
        submission = result.scalar_one_or_none()
        if submission is None:
            raise NotFoundError("Submission")
        return submission

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def apply_status_change(
        self,
        submission: Submission,
        article: Optional[Article],
        new_status: WorkflowStatus | str,
        user_id: str,
        notes: Optional[str] = None,
    ) -> StatusHistoryEntry:
        """Validate a transition and record it on submission and article.

        The history list is replaced rather than mutated so the JSON column
        is flagged dirty; existing entries are never touched.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        target = validate_transition(submission.status, new_status)
        entry = StatusHistoryEntry.create(target, user_id, notes)

        submission.status_history = [*(submission.status_history or []), entry.to_dict()]
        submission.status = target.value
        submission.updated_at = entry.timestamp

        if article is not None:
            article.status = target.value
            article.updated_at = entry.timestamp

        logger.info(
            f"[workflow] Submission {submission.id}: -> {target.value} by {user_id}"
            + (f" ({notes})" if notes else "")
        )
        return entry
