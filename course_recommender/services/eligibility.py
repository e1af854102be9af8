"""Eligibility gates for personalized recommendations"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from course_recommender.exceptions import NotEligibleError
from course_recommender.models.domain import Learner
from course_recommender.services.course_store import CourseStore

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class ReviewShare:
    eligible: bool
    full_reviews: int
    total_reviews: int
    required_reviews: int
    percentage_required: int


def has_recent_contribution(
    last_contribution_at: Optional[datetime],
    months: int = 4,
    now: Optional[datetime] = None,
) -> bool:
    """Whether the learner contributed data (a grade report) within ``months``"""
    if last_contribution_at is None:
        return False
    if last_contribution_at.tzinfo is None:
        last_contribution_at = last_contribution_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now - last_contribution_at < timedelta(days=months * DAYS_PER_MONTH)


async def has_minimum_review_share(
    store: CourseStore, learner_id: str, percentage_required: int = 20
) -> ReviewShare:
    """At least ``percentage_required`` percent of the learner's reviews must be full reviews"""
    counts = await store.count_reviews(learner_id)
    if counts.total > 0:
        required = max(1, math.ceil(counts.total * percentage_required / 100))
    else:
        required = 1
    return ReviewShare(
        eligible=counts.full >= required,
        full_reviews=counts.full,
        total_reviews=counts.total,
        required_reviews=required,
        percentage_required=percentage_required,
    )


class EligibilityChecker:
    def __init__(self, store: CourseStore, window_months: int = 4, review_percent: int = 20):
        self.store = store
        self.window_months = window_months
        self.review_percent = review_percent

    def ensure_eligible(self, learner: Learner, now: Optional[datetime] = None) -> None:
        """Raise NotEligibleError unless the learner contributed recently"""
        if not has_recent_contribution(learner.last_contribution_at, self.window_months, now):
            logger.info(f"Learner {learner.learner_id} has no contribution in {self.window_months} months")
            raise NotEligibleError(
                criterion="recent_contribution",
                message=(
                    "Access to recommendations requires a grade report upload "
                    f"within the last {self.window_months} months"
                ),
                current=learner.last_contribution_at.isoformat() if learner.last_contribution_at else None,
                required=f"{self.window_months} months",
            )

    async def review_share(self, learner_id: str) -> ReviewShare:
        return await has_minimum_review_share(self.store, learner_id, self.review_percent)
