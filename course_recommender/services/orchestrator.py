"""Recommendation orchestration: eligibility, fan-out to signal sources, grouping"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence

from course_recommender.exceptions import NotFoundError, SignalSourceDegraded
from course_recommender.models.domain import Learner, Recommendation, RequestContext, SignalResult
from course_recommender.services.course_store import CourseStore
from course_recommender.services.eligibility import EligibilityChecker
from course_recommender.services.identity import ExclusionPolicy, taken_subject_numbers
from course_recommender.services.signals import (
    CollaborativeSource,
    ContentBasedSource,
    DepartmentAffinitySource,
    SignalSource,
)
from course_recommender.services.signals.hybrid import HybridSource, department_boosts

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    COLLABORATIVE = "collaborative"
    DEPARTMENT = "department"
    CONTENT = "content"
    EMBEDDINGS = "embeddings"

    @property
    def title(self) -> str:
        return STRATEGY_DESCRIPTIONS[self][0]

    @property
    def description(self) -> str:
        return STRATEGY_DESCRIPTIONS[self][1]


STRATEGY_DESCRIPTIONS = {
    Strategy.COLLABORATIVE: (
        "Based on Similar Students",
        "Classes taken by students with similar course history",
    ),
    Strategy.DEPARTMENT: (
        "Popular in Your Major",
        "Highly-rated classes in your field of study",
    ),
    Strategy.CONTENT: (
        "Similar to Classes You've Taken",
        "Classes with similar topics and content",
    ),
    Strategy.EMBEDDINGS: (
        "AI-Powered Recommendations",
        "Intelligent suggestions based on course content and structure",
    ),
}


@dataclass
class RecommendationGroup:
    strategy: Strategy
    title: str
    description: str
    items: List[Recommendation] = field(default_factory=list)


@dataclass
class SimilarCourses:
    seed_course_id: str
    seed_course_label: str
    recommendations: List[Recommendation]
    semantic_weight: float
    method: str = "hybrid"

    @property
    def structural_weight(self) -> float:
        return 1 - self.semantic_weight


class RecommendationOrchestrator:
    def __init__(
        self,
        store: CourseStore,
        sources: Mapping[Strategy, SignalSource],
        eligibility: EligibilityChecker,
        exclusions: ExclusionPolicy,
        max_department_boost: float = 0.5,
    ):
        self.store = store
        self.sources = dict(sources)
        self.eligibility = eligibility
        self.exclusions = exclusions
        self.max_department_boost = max_department_boost

    def build_context(self, learner: Learner) -> RequestContext:
        return RequestContext(
            learner=learner,
            taken_subjects=taken_subject_numbers(learner.taken),
            department_boosts=MappingProxyType(department_boosts(learner.taken, self.max_department_boost)),
            exclusions=self.exclusions,
        )

    async def _eligible_learner(self, learner_id: str) -> Learner:
        learner = await self.store.get_learner(learner_id)
        if learner is None:
            raise NotFoundError("Learner", learner_id)
        self.eligibility.ensure_eligible(learner)
        return learner

    async def get_recommendations_for_learner(
        self,
        learner_id: str,
        strategies: Optional[Sequence[Strategy]] = None,
        limit: int = 5,
    ) -> List[RecommendationGroup]:
        """Run the requested strategies concurrently and return the non-empty groups.

        Raises:
            NotFoundError: the learner does not exist
            NotEligibleError: the learner fails the eligibility gate
        """
        learner = await self._eligible_learner(learner_id)
        ctx = self.build_context(learner)

        requested = list(dict.fromkeys(strategies or list(Strategy)))
        results = await asyncio.gather(
            *(self.sources[strategy].recommend(ctx, limit) for strategy in requested),
            return_exceptions=True,
        )

        groups = []
        for strategy, result in zip(requested, results):
            if isinstance(result, BaseException):
                result = SignalResult(strategy=strategy.value, error=result)
            if not result.ok:
                logger.warning(str(SignalSourceDegraded(strategy.value, result.error)))
                continue
            if not result.items:
                logger.info(f"No {strategy.value} recommendations for learner {learner_id}")
                continue
            groups.append(
                RecommendationGroup(
                    strategy=strategy,
                    title=strategy.title,
                    description=strategy.description,
                    items=result.items,
                )
            )
        return groups

    async def get_similar_courses(
        self,
        seed_course_id: str,
        limit: int = 10,
        semantic_weight: float = 0.6,
        learner_id: Optional[str] = None,
    ) -> SimilarCourses:
        """Courses similar to one seed course.

        Raises:
            ValueError: ``semantic_weight`` outside [0, 1]
            NotFoundError: unknown seed course or learner
        """
        if not 0.0 <= semantic_weight <= 1.0:
            raise ValueError("semantic_weight must be between 0 and 1")

        seed = await self.store.get_course(seed_course_id)
        if seed is None:
            raise NotFoundError("Course", seed_course_id)

        ctx = None
        if learner_id is not None:
            ctx = self.build_context(await self._eligible_learner(learner_id))

        hybrid = self.sources[Strategy.EMBEDDINGS]
        recommendations: List[Recommendation] = []
        if isinstance(hybrid, HybridSource):
            result = await hybrid.similar_to(seed, limit, semantic_weight, ctx)
            if result.ok:
                recommendations = result.items
            else:
                logger.warning(str(SignalSourceDegraded(Strategy.EMBEDDINGS.value, result.error)))

        return SimilarCourses(
            seed_course_id=seed_course_id,
            seed_course_label=seed.label,
            recommendations=recommendations,
            semantic_weight=semantic_weight,
        )


def build_sources(
    store: CourseStore,
    hybrid: HybridSource,
    settings_obj,
) -> Dict[Strategy, SignalSource]:
    """Default source wiring from application settings"""
    return {
        Strategy.COLLABORATIVE: CollaborativeSource(
            store, settings_obj.MIN_PEER_OVERLAP, settings_obj.MAX_SIMILAR_PEERS
        ),
        Strategy.DEPARTMENT: DepartmentAffinitySource(
            store, settings_obj.MIN_AVERAGE_RATING, settings_obj.MIN_REVIEW_COUNT
        ),
        Strategy.CONTENT: ContentBasedSource(
            store, settings_obj.TOP_DEPARTMENTS, settings_obj.KEYWORD_MIN_LENGTH
        ),
        Strategy.EMBEDDINGS: hybrid,
    }
