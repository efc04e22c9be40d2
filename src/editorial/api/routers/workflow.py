"""Submission intake, workflow status and on-demand sweep endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.api.dependencies import get_db, get_mailer_dependency, raise_for_result
from editorial.api.schemas.workflow import (
    OperationResponse,
    SubmissionRequest,
    SubmissionResponse,
    WorkflowStatusResponse,
)
from editorial.notifications.email import Mailer
from editorial.workflow.editors import EditorAssignmentService
from editorial.workflow.review import ReviewManagementService
from editorial.workflow.status import NEXT_STEPS, parse_status
from editorial.workflow.submission import ArticleSubmissionService

router = APIRouter(prefix="/api/workflow", tags=["workflow"])


@router.post("/submit", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_article(
    request: SubmissionRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """
    Submit a new article to the editorial workflow.

    Creates the article and its submission record, stores recommended
    reviewers and assigns a handling editor when one is available.
    """
    service = ArticleSubmissionService(db, mailer)
    result = raise_for_result(await service.submit_article(request.to_submission(), request.author_id))

    workflow_status = result.data["status"]
    return SubmissionResponse(
        message=result.message,
        article_id=result.data["article_id"],
        submission_id=result.data["submission_id"],
        workflow_status=workflow_status,
        editor_id=result.data.get("editor_id"),
        next_steps=NEXT_STEPS[parse_status(workflow_status)],
    )


@router.get("/submit", response_model=WorkflowStatusResponse)
async def get_workflow_status(
    submission_id: str = Query(..., description="Submission to look up"),
    user_id: Optional[str] = Query(default=None, description="Acting user; authors only see their own"),
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """Get the current status, history and expected next steps of a submission."""
    service = ArticleSubmissionService(db, mailer)
    result = raise_for_result(await service.get_workflow_status(submission_id, user_id))
    return WorkflowStatusResponse(**result.data)


@router.post("/sweeps/overdue-reviews", response_model=OperationResponse)
async def sweep_overdue_reviews(
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """Mark pending reviews past the review window as overdue."""
    result = raise_for_result(await ReviewManagementService(db, mailer).check_overdue_reviews())
    return OperationResponse(success=True, message=result.message, data=result.data)


@router.post("/sweeps/expired-assignments", response_model=OperationResponse)
async def sweep_expired_assignments(
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """Expire editor assignments that were not answered before their deadline."""
    result = raise_for_result(await EditorAssignmentService(db, mailer).expire_assignments())
    return OperationResponse(success=True, message=result.message, data=result.data)
