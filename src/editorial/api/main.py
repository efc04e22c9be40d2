"""FastAPI application for the editorial workflow engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from editorial import __version__
from editorial.api.routers import editors, manuscripts, reviews, workflow
from editorial.config import get_settings
from editorial.database.connection import close_db, get_engine
from editorial.logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown events.
    """
    setup_logging(
        level=logging.DEBUG if settings.debug else logging.INFO,
        log_file=settings.log_file or None,
        format_style=settings.log_format,
    )
    database = settings.database_url.split("@")[1] if "@" in settings.database_url else "configured"
    logger.info(f"Starting editorial API (database: {database}, debug: {settings.debug})")

    yield

    await close_db()
    logger.info("Database connections closed")


# Create FastAPI app
app = FastAPI(
    title=f"{settings.journal_name} Editorial Workflow API",
    description="""
    REST API for the editorial workflow of an academic journal.

    ## Workflow

    1. **Submit**: POST /api/workflow/submit, an editor is assigned automatically
    2. **Assign reviewers**: POST /api/manuscripts/{id}/auto-assign-reviewers
       (articles left without an editor go through /assign-editor first)
    3. **Review**: POST /api/reviews/{id}, the decision follows once all reviews are in
    4. **Decide**: POST /api/manuscripts/{id}/decision
       (`return_to_check` sends a revised manuscript back for another round)

    Sweeps for overdue reviews and expired editor assignments run on demand
    under /api/workflow/sweeps.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(workflow.router)
app.include_router(manuscripts.router)
app.include_router(reviews.router)
app.include_router(editors.router)


@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": f"{settings.journal_name} Editorial Workflow API",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "workflow": "/api/workflow",
            "manuscripts": "/api/manuscripts",
            "reviews": "/api/reviews",
            "editor_assignments": "/api/editor-assignments",
        },
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns 200 OK if the API is running and can connect to the database.
    """
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "database": "connected",
        }
    except (SQLAlchemyError, OSError) as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(e),
            },
        )


# Development server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "editorial.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
