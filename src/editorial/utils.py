"""Utility functions for the editorial workflow."""

import re
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed between two datetimes (floored)."""
    return (as_utc(later) - as_utc(earlier)).days


def split_terms(text: Optional[str]) -> list[str]:
    """Split free-text expertise ("NLP; machine learning, ethics") into terms."""
    if not text:
        return []
    return [term.strip() for term in re.split(r"[,;\n]", text) if term.strip()]


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()
