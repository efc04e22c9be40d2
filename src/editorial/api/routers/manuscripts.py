"""Editorial actions on a manuscript: editor and reviewer assignment, decisions, revisions."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.api.dependencies import ERROR_STATUS_CODES, get_db, get_mailer_dependency, raise_for_result
from editorial.api.schemas.workflow import (
    AssignEditorRequest,
    AssignmentResponse,
    AssignReviewersRequest,
    AutoAssignReviewersRequest,
    DecisionRequest,
    OperationResponse,
    RevisionRequest,
)
from editorial.notifications.email import Mailer
from editorial.workflow.assignment import ReviewerAssignmentService
from editorial.workflow.editors import EditorAssignmentService
from editorial.workflow.results import AssignmentResult
from editorial.workflow.submission import ArticleSubmissionService

router = APIRouter(prefix="/api/manuscripts", tags=["manuscripts"])


def _assignment_response(result: AssignmentResult):
    """Failed assignments keep their per-reviewer errors in the response body."""
    if result.success:
        return AssignmentResponse(**result.to_dict())
    status_code = ERROR_STATUS_CODES.get(result.error_type, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=status_code, content=result.to_dict())


@router.post("/{article_id}/assign-editor", response_model=OperationResponse)
async def assign_editor(
    article_id: str,
    request: AssignEditorRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """
    Assign a handling editor by hand.

    Used when no editor was eligible at submission time; a submitted
    manuscript moves on to technical check.
    """
    service = EditorAssignmentService(db, mailer)
    result = raise_for_result(
        await service.assign_editor(article_id, request.editor_id, request.assigned_by, request.deadline_days)
    )
    return OperationResponse(success=True, message=result.message, data=result.data)


@router.post("/{article_id}/assign-reviewer", response_model=AssignmentResponse)
async def assign_reviewers(
    article_id: str,
    request: AssignReviewersRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """
    Assign specific reviewers to a manuscript.

    Per-reviewer problems are reported in `errors`; the request succeeds
    when at least one reviewer was assigned.
    """
    service = ReviewerAssignmentService(db, mailer)
    result = await service.assign_reviewers(article_id, request.reviewer_ids, request.editor_id, request.deadline)
    return _assignment_response(result)


@router.post("/{article_id}/auto-assign-reviewers", response_model=AssignmentResponse)
async def auto_assign_reviewers(
    article_id: str,
    request: AutoAssignReviewersRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """Rank recommended and system reviewers and assign the best candidates."""
    service = ReviewerAssignmentService(db, mailer)
    result = await service.auto_assign_reviewers(article_id, request.editor_id, request.count, request.conflicts)
    return _assignment_response(result)


@router.post("/{article_id}/decision", response_model=OperationResponse)
async def record_decision(
    article_id: str,
    request: DecisionRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """Record an editorial decision (accept, reject, revision, ...)."""
    service = ArticleSubmissionService(db, mailer)
    result = raise_for_result(
        await service.update_article_status(
            article_id, request.decision.target_status, request.editor_id, request.comments
        )
    )
    return OperationResponse(
        success=True,
        message=f"Editorial decision '{request.decision.value}' recorded successfully",
        data=result.data,
    )


@router.post("/{article_id}/revision", response_model=OperationResponse)
async def submit_revision(
    article_id: str,
    request: RevisionRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """Resubmit a manuscript after revisions were requested."""
    service = ArticleSubmissionService(db, mailer)
    result = raise_for_result(await service.submit_revision(article_id, request.author_id, request.notes))
    return OperationResponse(success=True, message=result.message, data=result.data)
