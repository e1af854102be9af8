"""Semantic/lexical similarity from precomputed course embeddings"""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from course_recommender.models.domain import (
    Course,
    Recommendation,
    RequestContext,
    SignalResult,
)
from course_recommender.services.booster import boost_all
from course_recommender.services.course_store import CourseStore
from course_recommender.services.fusion import HybridSearchEngine
from course_recommender.services.identity import deduplicate_recommendations, is_already_taken
from course_recommender.services.signals.base import SignalSource, rank

logger = logging.getLogger(__name__)

DESCRIPTION = "description"


def department_boosts(taken: Iterable[Course], max_boost: float = 0.5) -> Dict[str, float]:
    """Boost per department prefix, proportional to how often the learner took it"""
    counts = Counter(course.department_prefix for course in taken if course.department_prefix)
    if not counts:
        return {}
    max_count = max(counts.values())
    return {dept: min(max_boost, (count / max_count) * max_boost) for dept, count in counts.items()}


def seed_query_text(seed: Course) -> str:
    return f"{seed.subject_number} {seed.title} {(seed.description or '')[:200]}"


class HybridSource(SignalSource):
    """Courses similar to the ones a learner took, via rank-fused k-NN + BM25 search.

    Embeddings are never generated here: a seed without a usable stored
    embedding simply contributes nothing.
    """

    strategy = "embeddings"

    def __init__(
        self,
        store: CourseStore,
        engine: HybridSearchEngine,
        model_id: Optional[str] = None,
        seed_courses: int = 15,
        per_seed_limit: int = 25,
        semantic_weight: float = 0.8,
    ):
        self.store = store
        self.engine = engine
        self.model_id = model_id
        self.seed_courses = seed_courses
        self.per_seed_limit = per_seed_limit
        self.semantic_weight = semantic_weight

    async def similar_to(
        self,
        seed: Course,
        limit: int = 10,
        semantic_weight: float = 0.6,
        ctx: Optional[RequestContext] = None,
    ) -> SignalResult:
        """Courses similar to ``seed``, excluding other offerings of the seed itself"""
        offerings = await self.store.find_offered_by_subjects([seed.subject_number])
        course_ids = [course.course_id for course in offerings] or [seed.course_id]

        embedding = await self.store.get_embedding(course_ids, DESCRIPTION)
        if embedding is None or embedding.is_empty:
            logger.warning(f"No embedding found for class {seed.subject_number} ({seed.course_id})")
            return SignalResult(strategy=self.strategy)
        if self.model_id and embedding.is_stale(self.model_id):
            logger.warning(
                f"Embedding for {seed.subject_number} was produced by {embedding.model_id}, "
                f"expected {self.model_id}; skipping"
            )
            return SignalResult(strategy=self.strategy)

        boosts = dict(ctx.department_boosts) if ctx else {}
        result = await self.engine.search(
            embedding.vector,
            seed_query_text(seed),
            limit * 2,
            DESCRIPTION,
            boosts or None,
        )
        if result.error is not None:
            return SignalResult(strategy=self.strategy, error=result.error)

        seed_identities = set(seed.identities())
        recs = []
        for candidate in result.candidates:
            course = candidate.course
            if course.course_id == seed.course_id or seed_identities.intersection(course.identities()):
                continue

            reason = "Similar content based on course description"
            if boosts.get(course.department_prefix, 0) > 0:
                reason += f"\nMatches your interests in department {course.department_prefix}"
            recs.append(Recommendation(course=course, score=candidate.score * semantic_weight, reason=reason))

        if ctx is not None:
            recs = filter_recommendations(recs, ctx)
            if ctx.has_history:
                recs = boost_all(recs, ctx.taken_subjects)
        return SignalResult(strategy=self.strategy, items=deduplicate_recommendations(rank(recs))[:limit])

    async def recommend(self, ctx: RequestContext, limit: int = 10) -> SignalResult:
        """Fan out over the learner's most recent courses and keep the best score per logical course"""
        seeds = [course for course in ctx.learner.taken if course.course_id][-self.seed_courses:]
        if not seeds:
            return SignalResult(strategy=self.strategy)

        results = await asyncio.gather(
            *(self.similar_to(seed, self.per_seed_limit, self.semantic_weight, ctx) for seed in seeds),
            return_exceptions=True,
        )

        errors = [r if isinstance(r, BaseException) else r.error for r in results]
        errors = [e for e in errors if e is not None]
        succeeded = [r for r in results if isinstance(r, SignalResult) and r.ok]
        if not succeeded and errors:
            return SignalResult(strategy=self.strategy, error=errors[0])
        if errors:
            logger.warning(f"{len(errors)} of {len(seeds)} seed courses failed for learner {ctx.learner.learner_id}")

        merged = [rec for result in succeeded for rec in result.items]
        return SignalResult(strategy=self.strategy, items=deduplicate_recommendations(rank(merged))[:limit])


def filter_recommendations(recs: List[Recommendation], ctx: RequestContext) -> List[Recommendation]:
    """Drop excluded categories and courses the learner already took under any number"""
    return [
        rec
        for rec in recs
        if not ctx.exclusions.is_excluded(rec.course)
        and not is_already_taken(rec.course, ctx.taken_subjects)
    ]
