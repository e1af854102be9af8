"""Hybrid semantic + lexical search with weighted Reciprocal Rank Fusion.

Vector (k-NN) and keyword (BM25) result lists have incomparable raw scores,
so each hit contributes ``weight / (k + rank + 1)`` instead. Vector results
are the primary signal: a keyword hit only adds to a document that the vector
search already returned, and BM25-only documents never enter the ranking.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from course_recommender.models.domain import FusedCandidate, FusionResult, SearchHit
from course_recommender.services.course_store import CourseStore
from course_recommender.services.search_backend import SearchBackend

logger = logging.getLogger(__name__)

RRF_K = 60
KNN_WEIGHT = 3.0
BM25_WEIGHT = 0.25
SNIPPET_LENGTH = 200


def reciprocal_rank_fusion(
    vector_hits: Sequence[SearchHit],
    keyword_hits: Sequence[SearchHit],
    k: int = RRF_K,
    vector_weight: float = KNN_WEIGHT,
    keyword_weight: float = BM25_WEIGHT,
) -> List[Tuple[SearchHit, float]]:
    """Fuse two ranked hit lists into (hit, score) pairs, best first.

    Ties keep the order in which documents were first seen in the vector list.
    """
    fused: Dict[str, float] = {}
    first_hit: Dict[str, SearchHit] = {}

    for rank, hit in enumerate(vector_hits):
        if hit.doc_id not in fused:
            fused[hit.doc_id] = 0.0
            first_hit[hit.doc_id] = hit
        fused[hit.doc_id] += vector_weight / (k + rank + 1)

    for rank, hit in enumerate(keyword_hits):
        if hit.doc_id in fused:
            fused[hit.doc_id] += keyword_weight / (k + rank + 1)

    ranked = [(first_hit[doc_id], score) for doc_id, score in fused.items()]
    ranked.sort(key=lambda pair: pair[1], reverse=True)
    return ranked


def department_prefix(subject_number: Optional[str]) -> str:
    return (subject_number or "").split(".")[0]


def apply_department_boosts(
    candidates: Sequence[FusedCandidate],
    boosts: Optional[Mapping[str, float]],
) -> List[FusedCandidate]:
    """Scale each score by ``1 + boost`` for its department prefix and re-sort"""
    if not boosts:
        return list(candidates)
    boosted = [
        FusedCandidate(
            course=candidate.course,
            score=candidate.score * (1 + boosts.get(department_prefix(candidate.course.subject_number), 0.0)),
            snippet=candidate.snippet,
            embedding_type=candidate.embedding_type,
        )
        for candidate in candidates
    ]
    boosted.sort(key=lambda candidate: candidate.score, reverse=True)
    return boosted


def make_snippet(text: str) -> str:
    return (text or "")[:SNIPPET_LENGTH] + "..."


class HybridSearchEngine:
    """Runs k-NN and BM25 searches and fuses them into one ranked course list"""

    def __init__(
        self,
        backend: SearchBackend,
        store: CourseStore,
        rrf_k: int = RRF_K,
        knn_weight: float = KNN_WEIGHT,
        bm25_weight: float = BM25_WEIGHT,
        candidate_multiplier: int = 3,
    ):
        self.backend = backend
        self.store = store
        self.rrf_k = rrf_k
        self.knn_weight = knn_weight
        self.bm25_weight = bm25_weight
        self.candidate_multiplier = candidate_multiplier

    async def search(
        self,
        query_vector: Sequence[float],
        query_text: str,
        limit: int = 10,
        embedding_type: Optional[str] = None,
        department_boosts: Optional[Mapping[str, float]] = None,
    ) -> FusionResult:
        """Hybrid search, falling back once to vector-only search on failure.

        Args:
            query_vector: Dense embedding of the query
            query_text: Text for the BM25 match
            limit: Maximum number of results
            embedding_type: Restrict to one embedding type ('description', 'reviews', 'content')
            department_boosts: Department prefix -> boost fraction (0-0.5)

        Returns:
            FusionResult with candidates best first; ``error`` is set only when
            the fallback failed as well.
        """
        try:
            candidates = await self._hybrid_search(
                query_vector, query_text, limit, embedding_type, department_boosts
            )
            return FusionResult(candidates=candidates)
        except Exception as e:
            logger.warning(f"Hybrid search failed, falling back to vector-only search: {e}")

        try:
            candidates = await self.vector_search(query_vector, limit, embedding_type, department_boosts)
            return FusionResult(candidates=candidates, used_fallback=True)
        except Exception as fallback_error:
            logger.error(f"Fallback vector search also failed: {fallback_error}")
            return FusionResult(error=fallback_error, used_fallback=True)

    async def vector_search(
        self,
        query_vector: Sequence[float],
        limit: int = 10,
        embedding_type: Optional[str] = None,
        department_boosts: Optional[Mapping[str, float]] = None,
    ) -> List[FusedCandidate]:
        """k-NN only, ranked by the backend's similarity score"""
        hits = await self.backend.knn_search(query_vector, limit * 2, embedding_type)
        ranked = [(hit, hit.score) for hit in hits]
        candidates = await self._resolve(ranked)
        return apply_department_boosts(candidates, department_boosts)[:limit]

    async def _hybrid_search(
        self,
        query_vector: Sequence[float],
        query_text: str,
        limit: int,
        embedding_type: Optional[str],
        department_boosts: Optional[Mapping[str, float]],
    ) -> List[FusedCandidate]:
        # Over-fetch so fusion has room to re-rank
        size = limit * self.candidate_multiplier
        vector_hits = await self.backend.knn_search(query_vector, size, embedding_type)
        keyword_hits = await self.backend.text_search(query_text, size, embedding_type)

        fused = reciprocal_rank_fusion(
            vector_hits,
            keyword_hits,
            k=self.rrf_k,
            vector_weight=self.knn_weight,
            keyword_weight=self.bm25_weight,
        )[: limit * 2]

        candidates = await self._resolve(fused)
        return apply_department_boosts(candidates, department_boosts)[:limit]

    async def _resolve(self, ranked: Sequence[Tuple[SearchHit, float]]) -> List[FusedCandidate]:
        """Attach live, offered course records; hits for stale or unoffered courses are dropped"""
        course_ids = list(dict.fromkeys(hit.course_id for hit, _ in ranked))
        courses = {course.course_id: course for course in await self.store.find_offered_by_ids(course_ids)}

        candidates: List[FusedCandidate] = []
        emitted = set()
        for hit, score in ranked:
            course = courses.get(hit.course_id)
            if course is None or hit.course_id in emitted:
                continue
            emitted.add(hit.course_id)
            candidates.append(
                FusedCandidate(
                    course=course,
                    score=score,
                    snippet=make_snippet(hit.text),
                    embedding_type=hit.embedding_type,
                )
            )
        return candidates
