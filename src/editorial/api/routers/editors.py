"""Editor assignment endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.api.dependencies import get_db, get_mailer_dependency, raise_for_result
from editorial.api.schemas.workflow import EditorAssignmentResponseRequest, OperationResponse
from editorial.notifications.email import Mailer
from editorial.workflow.editors import EditorAssignmentService

router = APIRouter(prefix="/api/editor-assignments", tags=["editors"])


@router.post("/{assignment_id}/respond", response_model=OperationResponse)
async def respond_to_assignment(
    assignment_id: str,
    request: EditorAssignmentResponseRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer_dependency),
):
    """
    Accept or decline an editorial assignment.

    Declaring a conflict of interest declines the assignment and frees the
    editor's workload slot.
    """
    service = EditorAssignmentService(db, mailer)
    result = raise_for_result(
        await service.respond_to_assignment(
            assignment_id,
            request.editor_id,
            request.accept,
            conflict_declared=request.conflict_declared,
            conflict_details=request.conflict_details,
            decline_reason=request.decline_reason,
        )
    )
    return OperationResponse(success=True, message=result.message, data=result.data)
