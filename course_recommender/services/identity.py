"""Course identity normalization.

A logical course is stored once per offering and may be cross-listed under
several subject numbers. Everything in this module works on those identities
so the same course is never recommended twice, nor recommended to a learner
who already took it under another number.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Sequence

import yaml

from course_recommender.models.domain import Course, Recommendation


@dataclass(frozen=True)
class ExclusionPolicy:
    """Structural categories that are never recommended"""
    foundational_prefixes: Sequence[str] = ()
    independent_study_suffixes: Sequence[str] = (".UR", ".URG")

    @classmethod
    def load(cls, path: Path | str) -> "ExclusionPolicy":
        with Path(path).open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        return cls(
            foundational_prefixes=tuple(raw.get("foundational_prefixes") or ()),
            independent_study_suffixes=tuple(raw.get("independent_study_suffixes") or ()),
        )

    def is_independent_study(self, course: Course) -> bool:
        subject_number = course.subject_number or ""
        return any(subject_number.endswith(suffix) for suffix in self.independent_study_suffixes)

    def is_foundational(self, course: Course) -> bool:
        subject_number = course.subject_number or ""
        return any(subject_number.startswith(prefix) for prefix in self.foundational_prefixes)

    def is_excluded(self, course: Course) -> bool:
        return self.is_independent_study(course) or self.is_foundational(course)


def taken_subject_numbers(courses: Iterable[Course]) -> FrozenSet[str]:
    """Subject numbers and aliases of every course the learner has taken"""
    numbers = set()
    for course in courses:
        numbers.update(course.identities())
    return frozenset(numbers)


def is_already_taken(course: Course, taken: FrozenSet[str]) -> bool:
    return any(identity in taken for identity in course.identities())


def latest_offering_per_subject(courses: Iterable[Course]) -> List[Course]:
    """Keep one record per subject number: the most recently offered one.

    Ties on academic year keep the record seen first. Records without a
    subject number are dropped.
    """
    latest: Dict[str, Course] = {}
    for course in courses:
        if not course.subject_number:
            continue
        current = latest.get(course.subject_number)
        if current is None or course.academic_year > current.academic_year:
            latest[course.subject_number] = course
    return list(latest.values())


def deduplicate_with_aliases(courses: Iterable[Course]) -> List[Course]:
    """Drop records whose subject number or alias was already emitted (e.g. 6.100A vs 6.0001)"""
    seen: set = set()
    result: List[Course] = []
    for course in courses:
        if not course.subject_number:
            continue
        identities = course.identities()
        if any(identity in seen for identity in identities):
            continue
        result.append(course)
        seen.update(identities)
    return result


def deduplicate_recommendations(recs: Iterable[Recommendation]) -> List[Recommendation]:
    """Keep the first recommendation per logical course; callers pass them best first"""
    seen: set = set()
    result: List[Recommendation] = []
    for rec in recs:
        identities = rec.course.identities()
        if not identities or any(identity in seen for identity in identities):
            continue
        result.append(rec)
        seen.update(identities)
    return result


def filter_candidates(
    courses: Iterable[Course],
    taken: FrozenSet[str],
    exclusions: ExclusionPolicy,
) -> List[Course]:
    """Remove excluded categories and anything the learner already took"""
    return [
        course
        for course in courses
        if course.subject_number
        and not exclusions.is_excluded(course)
        and not is_already_taken(course, taken)
    ]
