"""Prerequisite-aware score boosting"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet, List

from course_recommender.models.domain import Course, Recommendation
from course_recommender.services.prerequisites import extract_course_numbers


@dataclass(frozen=True)
class RequirementStatus:
    has_prerequisites: bool
    has_corequisites: bool
    missing_prerequisites: List[str]
    missing_corequisites: List[str]


class BoostTier(Enum):
    """Multiplier and explanation for each prerequisite/corequisite outcome"""
    BOTH = ("both", 1.3, "✓ You have the prerequisites and corequisites")
    PREREQUISITES = ("prerequisites", 1.2, "✓ You have the prerequisites")
    COREQUISITES = ("corequisites", 1.1, "✓ You have the corequisites")
    NONE = ("none", 1.0, "")

    def __init__(self, key: str, multiplier: float, explanation: str):
        self.key = key
        self.multiplier = multiplier
        self.explanation = explanation


def check_requirements(course: Course, taken_subjects: FrozenSet[str]) -> RequirementStatus:
    """Prerequisites need all listed courses; corequisites need any one of them.

    An empty list is satisfied.
    """
    prereqs = extract_course_numbers(course.prerequisites)
    coreqs = extract_course_numbers(course.corequisites)
    return RequirementStatus(
        has_prerequisites=all(num in taken_subjects for num in prereqs),
        has_corequisites=not coreqs or any(num in taken_subjects for num in coreqs),
        missing_prerequisites=[num for num in prereqs if num not in taken_subjects],
        missing_corequisites=[num for num in coreqs if num not in taken_subjects],
    )


def boost_tier(status: RequirementStatus) -> BoostTier:
    if status.has_prerequisites and status.has_corequisites:
        return BoostTier.BOTH
    if status.has_prerequisites:
        return BoostTier.PREREQUISITES
    if status.has_corequisites:
        return BoostTier.COREQUISITES
    return BoostTier.NONE


def apply_prerequisite_boost(rec: Recommendation, taken_subjects: FrozenSet[str]) -> Recommendation:
    """Return ``rec`` with its score multiplied by the earned tier.

    A recommendation that already carries a tier is returned unchanged.
    """
    if rec.prerequisite_boost is not None:
        return rec

    tier = boost_tier(check_requirements(rec.course, taken_subjects))
    reason = rec.reason
    if tier.explanation:
        reason = f"{reason}\n{tier.explanation}"
    return replace(rec, score=rec.score * tier.multiplier, reason=reason, prerequisite_boost=tier.key)


def boost_all(recs: List[Recommendation], taken_subjects: FrozenSet[str]) -> List[Recommendation]:
    return [apply_prerequisite_boost(rec, taken_subjects) for rec in recs]
