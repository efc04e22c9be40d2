"""Shared fixtures: in-memory database, mocked mailer and record factories."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from editorial.config import Settings
from editorial.database.connection import init_db
from editorial.database.models import (
    Article,
    EditorProfile,
    ReviewerProfile,
    Submission,
    User,
)
from editorial.notifications.email import Mailer
from editorial.workflow.submission import ArticleSubmission, AuthorInfo, RecommendedReviewerInfo

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ==============================================================================
# Infrastructure
# ==============================================================================


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Async session configured like the application's session factory."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest.fixture
def settings():
    """Settings with SMTP disabled and defaults for every workflow knob."""
    return Settings(_env_file=None, smtp_host="", database_url=TEST_DATABASE_URL)


@pytest.fixture
def mailer():
    """Mailer whose sends always succeed."""
    mock = AsyncMock(spec=Mailer)
    mock.send_email.return_value = True
    mock.send_review_invitation.return_value = True
    mock.send_workflow_notification.return_value = True
    return mock


# ==============================================================================
# Factories
# ==============================================================================


def days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


async def make_user(
    db: AsyncSession,
    email: str,
    name: Optional[str] = None,
    role: str = "author",
    expertise: Optional[list[str]] = None,
    affiliation: Optional[str] = None,
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        name=name or email.split("@")[0].title(),
        role=role,
        expertise=expertise or [],
        affiliation=affiliation,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    return user


async def make_reviewer(
    db: AsyncSession,
    email: str,
    expertise: Optional[list[str]] = None,
    affiliation: Optional[str] = "Independent Institute",
    **profile_fields,
) -> User:
    """Reviewer user plus an available profile (override any profile column)."""
    user = await make_user(db, email, role="reviewer", expertise=expertise, affiliation=affiliation)
    profile = {
        "current_review_load": 0,
        "max_reviews_per_month": 3,
        "quality_score": 80.0,
        "completed_reviews": 0,
        "late_reviews": 0,
        "availability_status": "available",
        "is_active": True,
    }
    profile.update(profile_fields)
    db.add(ReviewerProfile(user_id=user.id, **profile))
    await db.flush()
    return user


async def make_editor(
    db: AsyncSession,
    email: str,
    sections: Optional[list[str]] = None,
    workload: int = 0,
    max_workload: int = 10,
    accepting: bool = True,
    role: str = "editor",
) -> User:
    user = await make_user(db, email, role=role)
    db.add(
        EditorProfile(
            user_id=user.id,
            current_workload=workload,
            max_workload=max_workload,
            assigned_sections=sections if sections is not None else ["general"],
            is_accepting_submissions=accepting,
            is_active=True,
        )
    )
    await db.flush()
    return user


async def make_article(
    db: AsyncSession,
    author: User,
    status: str = "technical_check",
    keywords: Optional[list[str]] = None,
    co_authors: Optional[list[dict]] = None,
    editor: Optional[User] = None,
) -> tuple[Article, Submission]:
    """Article and submission placed directly in a given status."""
    article = Article(
        title="Graph neural networks for protein folding",
        abstract="We study graph neural networks. " * 5,
        keywords=keywords if keywords is not None else ["machine learning", "proteins"],
        category="computational biology",
        status=status,
        author_id=author.id,
        co_authors=co_authors or [],
        reviewer_ids=[],
        editor_id=editor.id if editor else None,
        revision_round=1,
    )
    db.add(article)
    await db.flush()
    submission = Submission(
        article_id=article.id,
        author_id=author.id,
        status=status,
        status_history=[
            {
                "status": status,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "user_id": author.id,
                "notes": None,
                "system_generated": False,
            }
        ],
    )
    db.add(submission)
    await db.commit()
    return article, submission


def make_author(email: str = "ada@uni.example", corresponding: bool = True, **overrides) -> AuthorInfo:
    fields = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": email,
        "institution": "University of Examples",
        "department": "Computer Science",
        "country": "UK",
        "affiliation": "University of Examples",
        "is_corresponding_author": corresponding,
    }
    fields.update(overrides)
    return AuthorInfo(**fields)


def make_submission_data(
    authors: Optional[list[AuthorInfo]] = None,
    recommended: Optional[list[RecommendedReviewerInfo]] = None,
    **overrides,
) -> ArticleSubmission:
    fields = {
        "title": "Graph neural networks for protein folding",
        "abstract": "We study graph neural networks applied to protein structure prediction. " * 3,
        "category": "computational biology",
        "keywords": ["machine learning", "proteins", "graph neural networks"],
        "authors": authors if authors is not None else [make_author()],
        "recommended_reviewers": recommended or [],
    }
    fields.update(overrides)
    return ArticleSubmission(**fields)
