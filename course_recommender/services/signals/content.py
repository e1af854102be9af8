"""Content-based filtering on department and title vocabulary"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List

from course_recommender.models.domain import Course, Recommendation, RequestContext
from course_recommender.services.course_store import CourseStore
from course_recommender.services.identity import (
    deduplicate_with_aliases,
    filter_candidates,
    latest_offering_per_subject,
)
from course_recommender.services.signals.base import SignalSource


@dataclass
class LearnerProfile:
    departments: Counter
    keywords: Counter

    def top_departments(self, count: int = 3) -> List[str]:
        return [dept for dept, _ in self.departments.most_common(count)]


def title_words(title: str) -> List[str]:
    return (title or "").lower().split()


def build_profile(taken: Iterable[Course], min_keyword_length: int = 5) -> LearnerProfile:
    """Department frequencies and title keywords (short words skipped as stopwords)"""
    departments: Counter = Counter()
    keywords: Counter = Counter()
    for course in taken:
        departments[course.department] += 1
        keywords.update(word for word in title_words(course.title) if len(word) >= min_keyword_length)
    return LearnerProfile(departments=departments, keywords=keywords)


def content_score(course: Course, profile: LearnerProfile) -> float:
    keyword_score = sum(profile.keywords.get(word, 0) for word in title_words(course.title))
    return float(keyword_score + profile.departments.get(course.department, 0))


class ContentBasedSource(SignalSource):
    strategy = "content"

    def __init__(self, store: CourseStore, top_departments: int = 3, min_keyword_length: int = 5):
        self.store = store
        self.top_departments = top_departments
        self.min_keyword_length = min_keyword_length

    async def _score(self, ctx: RequestContext, limit: int) -> List[Recommendation]:
        if not ctx.has_history:
            return []

        profile = build_profile(ctx.learner.taken, self.min_keyword_length)
        candidates = await self.store.find_offered_in_departments(
            profile.top_departments(self.top_departments),
            exclude_ids=[course.course_id for course in ctx.learner.taken],
        )
        eligible = deduplicate_with_aliases(
            filter_candidates(latest_offering_per_subject(candidates), ctx.taken_subjects, ctx.exclusions)
        )

        return [
            Recommendation(
                course=course,
                score=content_score(course, profile),
                reason=f"Similar to classes you've taken in {course.department}",
            )
            for course in eligible
        ]
