"""Department affinity: highly rated courses in the learner's declared programs"""
from __future__ import annotations

from typing import Iterable, List

from course_recommender.models.domain import Recommendation, RequestContext, ReviewStats
from course_recommender.services.course_store import CourseStore
from course_recommender.services.identity import (
    deduplicate_recommendations,
    filter_candidates,
    latest_offering_per_subject,
)
from course_recommender.services.signals.base import SignalSource


def qualifying_stats(
    stats: Iterable[ReviewStats], min_rating: float = 5.5, min_reviews: int = 3
) -> List[ReviewStats]:
    return [s for s in stats if s.average_rating >= min_rating and s.review_count >= min_reviews]


def rank_by_rating(stats: Iterable[ReviewStats]) -> List[ReviewStats]:
    return sorted(stats, key=lambda s: s.average_rating, reverse=True)


class DepartmentAffinitySource(SignalSource):
    strategy = "department"

    def __init__(self, store: CourseStore, min_rating: float = 5.5, min_reviews: int = 3):
        self.store = store
        self.min_rating = min_rating
        self.min_reviews = min_reviews

    async def _score(self, ctx: RequestContext, limit: int) -> List[Recommendation]:
        if not ctx.learner.departments:
            return []

        stats = await self.store.get_department_review_stats(ctx.learner.departments)
        ranked = rank_by_rating(qualifying_stats(stats, self.min_rating, self.min_reviews))[: limit * 3]
        ranked = [s for s in ranked if s.subject_number not in ctx.taken_subjects]

        offered = await self.store.find_offered_by_subjects([s.subject_number for s in ranked])
        eligible = {
            course.subject_number: course
            for course in filter_candidates(
                latest_offering_per_subject(offered), ctx.taken_subjects, ctx.exclusions
            )
        }

        recs = []
        for stat in ranked:
            course = eligible.get(stat.subject_number)
            if course is None:
                continue
            recs.append(
                Recommendation(
                    course=course,
                    score=stat.average_rating,
                    reason=f"Highly rated in your major ({course.department})",
                )
            )
        return deduplicate_recommendations(recs)[:limit]
