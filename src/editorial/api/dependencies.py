"""FastAPI dependencies for database sessions, mail and result handling."""

from collections.abc import AsyncGenerator

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.database.connection import get_session_factory
from editorial.notifications.email import Mailer, get_mailer
from editorial.workflow.results import ServiceResult

# error_type -> HTTP status for failed service results
ERROR_STATUS_CODES = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "permission": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database session.

    Usage:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_mailer_dependency() -> Mailer:
    return get_mailer()


def raise_for_result(result: ServiceResult) -> ServiceResult:
    """Turn a failed service result into an HTTPException."""
    if result.success:
        return result
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(result.error_type, status.HTTP_400_BAD_REQUEST),
        detail=result.message,
    )
