"""Reviewer ranking heuristic.

Scores a candidate reviewer for an article as a weighted sum of five
factors, each in [0, 1]:

- expertise match: overlap between reviewer expertise and article keywords
- workload: spare capacity (1 - load / max)
- quality: editor-assigned quality score (0-100) normalized
- reliability: completed reviews vs late reviews, late ones counting double
- recency: reviewers idle between 30 and 180 days are preferred

Recommended reviewers without a system account are scored from their
self-reported expertise and affiliation instead of a profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from editorial.config import DEFAULT_WEIGHTS, ScoringWeights
from editorial.utils import days_between, normalize_email, utc_now

NEUTRAL_RELIABILITY = 0.5
RECENT_REVIEW_DAYS = 30
STALE_REVIEW_DAYS = 180


@dataclass
class ReviewerCandidate:
    """A potential reviewer with the profile data the scorer needs."""

    user_id: Optional[str]
    email: str
    name: str
    expertise: list[str] = field(default_factory=list)
    current_load: int = 0
    max_load: int = 3
    quality_score: float = 0.0
    completed_reviews: int = 0
    late_reviews: int = 0
    last_review_date: Optional[datetime] = None
    affiliation: Optional[str] = None
    recommended: bool = False
    recommendation_id: Optional[str] = None

    @property
    def is_registered(self) -> bool:
        return self.user_id is not None


@dataclass
class ScoreBreakdown:
    """Individual factor values behind a total score."""

    expertise: float
    workload: float
    quality: float
    reliability: float
    recency: float

    def weighted_total(self, weights: ScoringWeights) -> float:
        return (
            self.expertise * weights.expertise
            + self.workload * weights.workload
            + self.quality * weights.quality
            + self.reliability * weights.reliability
            + self.recency * weights.recency
        )


@dataclass
class ScoredReviewer:
    """Candidate together with its ranking score."""

    candidate: ReviewerCandidate
    base_score: float
    score: float
    breakdown: ScoreBreakdown

    @property
    def key(self) -> str:
        """Identity used for de-duplication (user id, else email)."""
        return self.candidate.user_id or normalize_email(self.candidate.email)

    def to_dict(self) -> dict:
        return {
            "user_id": self.candidate.user_id,
            "email": self.candidate.email,
            "name": self.candidate.name,
            "recommended": self.candidate.recommended,
            "base_score": self.base_score,
            "score": self.score,
        }


def calculate_expertise_match(reviewer_expertise: Iterable[str], article_keywords: Iterable[str]) -> float:
    """Fraction of expertise terms that match some keyword (substring, either way)."""
    expertise = [e.lower().strip() for e in reviewer_expertise if e and e.strip()]
    keywords = [k.lower().strip() for k in article_keywords if k and k.strip()]
    if not expertise or not keywords:
        return 0.0

    matches = [e for e in expertise if any(k in e or e in k for k in keywords)]
    return len(matches) / max(len(expertise), len(keywords))


def calculate_workload_score(current_load: int, max_load: int) -> float:
    if max_load <= 0:
        return 0.0
    return max(0.0, 1 - (current_load / max_load))


def calculate_reliability_score(completed: int, late: int) -> float:
    if completed <= 0:
        return NEUTRAL_RELIABILITY
    return completed / (completed + late * 2)


def calculate_recency_score(last_review_date: Optional[datetime], now: Optional[datetime] = None) -> float:
    if last_review_date is None:
        return 1.0

    days_idle = days_between(last_review_date, now or utc_now())
    if days_idle < RECENT_REVIEW_DAYS:
        return 0.7
    if days_idle > STALE_REVIEW_DAYS:
        return 0.3
    return 1.0


def has_conflict(
    candidate: ReviewerCandidate,
    author_id: Optional[str],
    conflicts: Iterable[str] = (),
    author_emails: Iterable[str] = (),
) -> bool:
    """True if the candidate is an author or on the explicit conflict list."""
    conflict_ids = set(conflicts)
    if candidate.user_id is not None:
        if candidate.user_id == author_id or candidate.user_id in conflict_ids:
            return True
    email = normalize_email(candidate.email)
    return bool(email) and email in {normalize_email(e) for e in author_emails}


class ReviewerScorer:
    """Weighted multi-factor reviewer scorer."""

    def __init__(
        self,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        recommended_boost: float = 1.2,
        now: Optional[datetime] = None,
    ):
        self.weights = weights
        self.recommended_boost = recommended_boost
        self.now = now

    def breakdown(self, candidate: ReviewerCandidate, keywords: list[str]) -> ScoreBreakdown:
        """Profile-based factors for a registered reviewer."""
        return ScoreBreakdown(
            expertise=calculate_expertise_match(candidate.expertise, keywords),
            workload=calculate_workload_score(candidate.current_load, candidate.max_load),
            quality=(candidate.quality_score or 0) / 100,
            reliability=calculate_reliability_score(candidate.completed_reviews, candidate.late_reviews),
            recency=calculate_recency_score(candidate.last_review_date, self.now),
        )

    def heuristic_breakdown(
        self,
        candidate: ReviewerCandidate,
        keywords: list[str],
        author_affiliations: Iterable[str] = (),
    ) -> ScoreBreakdown:
        """Factors for a recommended reviewer with no account or profile.

        Workload and recency are unknown and treated as fully available;
        reliability is neutral. The affiliation stands in for quality, and
        sharing an institution with an author counts against it.
        """
        affiliation = (candidate.affiliation or "").strip().lower()
        shared = {a.strip().lower() for a in author_affiliations if a}
        if not affiliation:
            quality = 0.4
        elif affiliation in shared:
            quality = 0.2
        else:
            quality = 0.6

        return ScoreBreakdown(
            expertise=calculate_expertise_match(candidate.expertise, keywords),
            workload=1.0,
            quality=quality,
            reliability=NEUTRAL_RELIABILITY,
            recency=1.0,
        )

    def score(
        self,
        candidate: ReviewerCandidate,
        keywords: list[str],
        author_affiliations: Iterable[str] = (),
    ) -> ScoredReviewer:
        """Score a candidate; recommended candidates get the boost on top."""
        if candidate.is_registered:
            breakdown = self.breakdown(candidate, keywords)
        else:
            breakdown = self.heuristic_breakdown(candidate, keywords, author_affiliations)

        base = round(breakdown.weighted_total(self.weights), 2)
        boosted = round(base * self.recommended_boost, 2) if candidate.recommended else base
        return ScoredReviewer(candidate=candidate, base_score=base, score=boosted, breakdown=breakdown)

    def rank(
        self,
        candidates: Iterable[ReviewerCandidate],
        keywords: list[str],
        author_id: Optional[str] = None,
        conflicts: Iterable[str] = (),
        author_emails: Iterable[str] = (),
        author_affiliations: Iterable[str] = (),
    ) -> list[ScoredReviewer]:
        """Drop conflicted candidates, score the rest, highest first."""
        conflicts = list(conflicts)
        author_emails = list(author_emails)
        author_affiliations = list(author_affiliations)

        scored = [
            self.score(c, keywords, author_affiliations)
            for c in candidates
            if not has_conflict(c, author_id, conflicts, author_emails)
        ]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored
