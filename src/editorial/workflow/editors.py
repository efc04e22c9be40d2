"""Handling-editor selection and assignment lifecycle."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select

from editorial.database.models import Article, EditorAssignment, EditorProfile, User
from editorial.exceptions import PermissionDeniedError, ValidationError
from editorial.notifications import inbox
from editorial.notifications.inbox import create_system_notification
from editorial.utils import as_utc, utc_now
from editorial.workflow.base import SYSTEM_USER, WorkflowService
from editorial.workflow.results import ServiceResult
from editorial.workflow.status import WorkflowStatus

logger = logging.getLogger(__name__)

EDITOR_ROLES = ("editor", "admin")
GENERAL_SECTION = "general"


class EditorAssignmentService(WorkflowService):
    """Finds, assigns and tracks handling editors."""

    async def find_suitable_editor(self, category: str) -> Optional[User]:
        """Pick the least-loaded eligible editor for a category.

        Eligible editors are active, accepting submissions and below their
        maximum workload. Editors whose sections include the category (or
        "general") are preferred; if none match, any eligible editor is used.
        """
        result = await self.db.execute(
            select(User, EditorProfile)
            .join(EditorProfile, EditorProfile.user_id == User.id)
            .where(
                User.role.in_(EDITOR_ROLES),
                User.is_active.is_(True),
                EditorProfile.is_active.is_(True),
                EditorProfile.is_accepting_submissions.is_(True),
                EditorProfile.current_workload < EditorProfile.max_workload,
            )
        )
        editors = result.all()
        if not editors:
            return None

        matching = [
            (user, profile)
            for user, profile in editors
            if category in (profile.assigned_sections or []) or GENERAL_SECTION in (profile.assigned_sections or [])
        ]
        candidates = matching or editors
        candidates = sorted(candidates, key=lambda pair: pair[1].current_workload or 0)
        return candidates[0][0]

    async def assign_editor_to_article(
        self,
        article: Article,
        editor: User,
        assigned_by: str = SYSTEM_USER,
        deadline_days: Optional[int] = None,
    ) -> EditorAssignment:
        """Create a pending assignment within the caller's unit of work."""
        profile = await self._get_profile(editor.id)
        if profile is not None:
            profile.current_workload = (profile.current_workload or 0) + 1

        days = deadline_days if deadline_days is not None else self.settings.editor_assignment_deadline_days
        assignment = EditorAssignment(
            article_id=article.id,
            editor_id=editor.id,
            assigned_by=assigned_by,
            status="pending",
            assigned_at=utc_now(),
            deadline=utc_now() + timedelta(days=days),
        )
        self.db.add(assignment)
        article.editor_id = editor.id

        create_system_notification(
            self.db,
            editor.id,
            inbox.SUBMISSION_ASSIGNED,
            "New Editorial Assignment",
            f'New submission assigned: "{article.title}"',
            article.id,
        )
        self.queue_email(
            f"editor assignment to {editor.email}",
            lambda: self.mailer.send_workflow_notification(
                editor.email,
                editor.name,
                "New Submission Assigned",
                f'A new article "{article.title}" has been assigned to you for editorial review.',
                {"article_id": article.id, "respond_by": f"{assignment.deadline:%Y-%m-%d}"},
            ),
        )
        return assignment

    async def assign_editor(
        self,
        article_id: str,
        editor_id: str,
        assigned_by: str,
        deadline_days: Optional[int] = None,
    ) -> ServiceResult:
        """Manually assign a handling editor to an article.

        A submitted article moves on to technical check, as it does when an
        editor is assigned automatically at submission.
        """
        try:
            article = await self.get_or_raise(Article, article_id, "Article")
            editor = await self.get_or_raise(User, editor_id, "Editor")
            if editor.role not in EDITOR_ROLES or not editor.is_active:
                raise ValidationError("Invalid editor or insufficient permissions")

            assignment = await self.assign_editor_to_article(article, editor, assigned_by, deadline_days)
            if article.status == WorkflowStatus.SUBMITTED.value:
                submission = await self.get_submission_for_article(article.id)
                self.apply_status_change(
                    submission, article, WorkflowStatus.TECHNICAL_CHECK, assigned_by, f"Editor {editor.name} assigned"
                )
            await self.db.flush()
            await self.commit()
            return ServiceResult.ok("Editor assigned", assignment_id=assignment.id, status=article.status)
        except Exception as e:
            return await self.handle_failure(
                "assign_editor", e, "Failed to assign editor", {"article_id": article_id, "editor_id": editor_id}
            )

    async def respond_to_assignment(
        self,
        assignment_id: str,
        editor_id: str,
        accept: bool,
        conflict_declared: bool = False,
        conflict_details: Optional[str] = None,
        decline_reason: Optional[str] = None,
    ) -> ServiceResult:
        """Accept or decline a pending editor assignment.

        Declaring a conflict of interest always declines the assignment.
        """
        try:
            assignment = await self.get_or_raise(EditorAssignment, assignment_id, "Editor assignment")
            if assignment.editor_id != editor_id:
                raise PermissionDeniedError("Assignment belongs to another editor")
            if assignment.status != "pending":
                raise ValidationError(f"Assignment already {assignment.status}")

            now = utc_now()
            assignment.responded_at = now
            assignment.conflict_declared = conflict_declared
            assignment.conflict_details = conflict_details

            if accept and not conflict_declared:
                assignment.status = "accepted"
                message = "Assignment accepted"
            else:
                assignment.status = "declined"
                assignment.decline_reason = decline_reason or ("Conflict of interest" if conflict_declared else None)
                await self._release(assignment)
                message = "Assignment declined"

            if assignment.assigned_by and assignment.assigned_by != SYSTEM_USER:
                create_system_notification(
                    self.db,
                    assignment.assigned_by,
                    inbox.ASSIGNMENT_RESPONSE,
                    "Editor Assignment Response",
                    f"Editor assignment {assignment.status}",
                    assignment.article_id,
                )

            await self.commit()
            return ServiceResult.ok(message, status=assignment.status)
        except Exception as e:
            return await self.handle_failure(
                "respond_to_assignment", e, "Failed to record assignment response", {"assignment_id": assignment_id}
            )

    async def expire_assignments(self, now: Optional[datetime] = None) -> ServiceResult:
        """Expire pending assignments whose deadline has passed. Invoked on demand."""
        now = now or utc_now()
        try:
            result = await self.db.execute(select(EditorAssignment).where(EditorAssignment.status == "pending"))
            expired = [a for a in result.scalars().all() if as_utc(a.deadline) < now]

            for assignment in expired:
                assignment.status = "expired"
                await self._release(assignment)
                create_system_notification(
                    self.db,
                    assignment.editor_id,
                    inbox.ASSIGNMENT_EXPIRED,
                    "Editor Assignment Expired",
                    "An editorial assignment expired without a response.",
                    assignment.article_id,
                )

            await self.commit()
            if expired:
                logger.info(f"[editors] Expired {len(expired)} editor assignment(s)")
            return ServiceResult.ok(f"Expired {len(expired)} assignment(s)", expired=len(expired))
        except Exception as e:
            return await self.handle_failure("expire_assignments", e, "Failed to expire assignments")

    async def _get_profile(self, user_id: str) -> Optional[EditorProfile]:
        result = await self.db.execute(select(EditorProfile).where(EditorProfile.user_id == user_id))
        return result.scalar_one_or_none()

    async def _release(self, assignment: EditorAssignment) -> None:
        """Give back the workload slot and detach the editor from the article."""
        profile = await self._get_profile(assignment.editor_id)
        if profile is not None:
            profile.current_workload = max(0, (profile.current_workload or 0) - 1)

        article = await self.db.get(Article, assignment.article_id)
        if article is not None and article.editor_id == assignment.editor_id:
            article.editor_id = None
