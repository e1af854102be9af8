from __future__ import annotations

import logging
from typing import List

from course_recommender.models.domain import Recommendation, RequestContext, SignalResult
from course_recommender.services.booster import boost_all
from course_recommender.services.identity import deduplicate_recommendations

logger = logging.getLogger(__name__)


def rank(recs: List[Recommendation]) -> List[Recommendation]:
    """Stable sort by score, best first"""
    return sorted(recs, key=lambda rec: rec.score, reverse=True)


class SignalSource:
    """One independent relevance signal.

    Subclasses implement ``_score``; ``recommend`` turns failures into an empty
    SignalResult carrying the error so one broken source never aborts a
    request, and applies the prerequisite booster exactly once.
    """

    strategy: str = ""

    async def recommend(self, ctx: RequestContext, limit: int = 10) -> SignalResult:
        try:
            recs = await self._score(ctx, limit)
        except Exception as e:
            return SignalResult(strategy=self.strategy, error=e)

        if ctx.has_history:
            recs = boost_all(recs, ctx.taken_subjects)
        return SignalResult(strategy=self.strategy, items=deduplicate_recommendations(rank(recs))[:limit])

    async def _score(self, ctx: RequestContext, limit: int) -> List[Recommendation]:
        raise NotImplementedError
