"""Database models for the editorial workflow."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class User(Base):
    """Journal user (author, reviewer, editor or admin)."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(20), default="author", nullable=False)  # "author", "reviewer", "editor", "admin"
    affiliation = Column(String(500))
    expertise = Column(JSON)  # List of strings
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), default=_utc_now)


class Article(Base):
    """Submitted manuscript. Never hard-deleted."""

    __tablename__ = "articles"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(Text, nullable=False)
    abstract = Column(Text, nullable=False)
    content = Column(Text, default="")
    keywords = Column(JSON)  # List of strings
    category = Column(String(100), nullable=False, index=True)
    status = Column(String(30), default="submitted", nullable=False, index=True)

    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    co_authors = Column(JSON)  # List of {first_name, last_name, email, institution, ...}
    reviewer_ids = Column(JSON)  # List of user ids
    editor_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    # Incremented on each resubmission so review aggregation only sees the current round
    revision_round = Column(Integer, default=1, nullable=False)

    submitted_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now)
    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)


class Submission(Base):
    """Workflow record wrapping an article, with append-only status history."""

    __tablename__ = "submissions"

    id = Column(String(36), primary_key=True, default=_uuid)
    article_id = Column(String(36), ForeignKey("articles.id"), nullable=False, unique=True)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(30), default="submitted", nullable=False)

    # List of {status, timestamp, user_id, notes, system_generated}
    status_history = Column(JSON, nullable=False, default=list)

    submitted_at = Column(DateTime(timezone=True), default=_utc_now)
    created_at = Column(DateTime(timezone=True), default=_utc_now)
    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)


class Review(Base):
    """A single reviewer's assignment and verdict for an article."""

    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=_uuid)
    article_id = Column(String(36), ForeignKey("articles.id"), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    round = Column(Integer, default=1, nullable=False)

    status = Column(String(20), default="pending", nullable=False)  # "pending", "completed", "overdue", "declined"
    recommendation = Column(String(20), nullable=True)  # "accept", "minor_revision", "major_revision", "reject"
    comments = Column(Text)
    confidential_comments = Column(Text)
    rating = Column(Integer, nullable=True)  # 1-5

    due_date = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now)


class ReviewerProfile(Base):
    """Per-reviewer workload counters and track record."""

    __tablename__ = "reviewer_profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True)

    current_review_load = Column(Integer, default=0, nullable=False)
    max_reviews_per_month = Column(Integer, default=3, nullable=False)
    quality_score = Column(Float, default=0.0)  # 0-100
    completed_reviews = Column(Integer, default=0, nullable=False)
    late_reviews = Column(Integer, default=0, nullable=False)
    last_review_date = Column(DateTime(timezone=True), nullable=True)

    availability_status = Column(String(20), default="available")  # "available", "busy", "unavailable"
    is_active = Column(Boolean, default=True)

    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)


class EditorProfile(Base):
    """Per-editor workload and section coverage."""

    __tablename__ = "editor_profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True)

    current_workload = Column(Integer, default=0, nullable=False)
    max_workload = Column(Integer, default=10, nullable=False)
    assigned_sections = Column(JSON)  # List of categories, "general" matches everything

    is_accepting_submissions = Column(Boolean, default=True)
    is_active = Column(Boolean, default=True)

    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)


class EditorAssignment(Base):
    """Assignment of a handling editor to an article."""

    __tablename__ = "editor_assignments"

    id = Column(String(36), primary_key=True, default=_uuid)
    article_id = Column(String(36), ForeignKey("articles.id"), nullable=False, index=True)
    editor_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    assigned_by = Column(String(36), nullable=True)  # user id or "system"

    status = Column(String(20), default="pending", nullable=False)  # "pending", "accepted", "declined", "expired"
    assigned_at = Column(DateTime(timezone=True), default=_utc_now)
    deadline = Column(DateTime(timezone=True), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    conflict_declared = Column(Boolean, default=False)
    conflict_details = Column(Text, nullable=True)
    decline_reason = Column(Text, nullable=True)


class RecommendedReviewer(Base):
    """Reviewer suggested by the submitting author. May not be a user."""

    __tablename__ = "recommended_reviewers"

    id = Column(String(36), primary_key=True, default=_uuid)
    article_id = Column(String(36), ForeignKey("articles.id"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    email = Column(String(255), nullable=False, index=True)
    affiliation = Column(Text, nullable=False)
    expertise = Column(Text, nullable=True)  # Free text, comma or semicolon separated
    suggested_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    status = Column(String(20), default="suggested")  # "suggested", "contacted", "accepted", "declined", "unavailable"
    contact_attempts = Column(Integer, default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utc_now)
    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)


class ReviewInvitation(Base):
    """Invitation sent to a reviewer, with or without a system account."""

    __tablename__ = "review_invitations"

    id = Column(String(36), primary_key=True, default=_uuid)
    article_id = Column(String(36), ForeignKey("articles.id"), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    reviewer_email = Column(String(255), nullable=False)
    reviewer_name = Column(Text, nullable=False)
    review_id = Column(String(36), ForeignKey("reviews.id"), nullable=True)
    recommended_reviewer_id = Column(String(36), ForeignKey("recommended_reviewers.id"), nullable=True)

    invited_by = Column(String(36), nullable=True)
    invited_at = Column(DateTime(timezone=True), default=_utc_now)
    response_deadline = Column(DateTime(timezone=True), nullable=False)
    review_deadline = Column(DateTime(timezone=True), nullable=True)

    status = Column(String(20), default="pending", nullable=False)  # "pending", "accepted", "declined"
    response_at = Column(DateTime(timezone=True), nullable=True)
    invitation_token = Column(String(64), unique=True, nullable=True)
    decline_reason = Column(Text, nullable=True)


class Notification(Base):
    """In-app notification."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)  # "SUBMISSION_RECEIVED", "REVIEW_ASSIGNED", ...
    related_id = Column(String(36), nullable=True)
    is_read = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), default=_utc_now)
