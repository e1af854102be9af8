"""Vector and keyword search over the course embeddings index"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError, TransportError

from course_recommender.exceptions import SearchBackendUnavailable
from course_recommender.models.domain import SearchHit

logger = logging.getLogger(__name__)

SOURCE_FIELDS = ["course_id", "embedding_type", "text", "source_text"]
TEXT_FIELDS = ["source_text^3", "text^2"]


class SearchBackend(Protocol):
    async def knn_search(
        self, vector: Sequence[float], k: int, embedding_type: Optional[str] = None
    ) -> List[SearchHit]: ...

    async def text_search(
        self, text: str, size: int, embedding_type: Optional[str] = None
    ) -> List[SearchHit]: ...


def _type_filter(embedding_type: Optional[str]) -> List[Dict[str, Any]]:
    return [{"term": {"embedding_type": embedding_type}}] if embedding_type else []


def _to_hits(response: Dict[str, Any]) -> List[SearchHit]:
    hits = []
    for hit in response["hits"]["hits"]:
        source = hit.get("_source") or {}
        course_id = source.get("course_id")
        if not course_id:
            continue
        hits.append(
            SearchHit(
                doc_id=hit["_id"],
                course_id=str(course_id),
                embedding_type=source.get("embedding_type") or "description",
                text=source.get("text") or source.get("source_text") or "",
                score=float(hit.get("_score") or 0.0),
            )
        )
    return hits


def classify_error(error: Exception) -> str:
    """Map a client error to a SearchBackendUnavailable kind"""
    if isinstance(error, NotFoundError):
        return SearchBackendUnavailable.MISSING_INDEX
    if isinstance(error, ApiError):
        message = str(error)
        if "index_not_found" in message or "no such index" in message:
            return SearchBackendUnavailable.MISSING_INDEX
        return SearchBackendUnavailable.QUERY
    if isinstance(error, (TransportError, ConnectionError, OSError)):
        return SearchBackendUnavailable.CONNECTION
    return SearchBackendUnavailable.QUERY


class ElasticsearchSearchBackend:
    """SearchBackend implementation on an Elasticsearch dense_vector index"""

    def __init__(self, client: AsyncElasticsearch, index: str):
        self.es = client
        self.index = index

    async def knn_search(
        self, vector: Sequence[float], k: int, embedding_type: Optional[str] = None
    ) -> List[SearchHit]:
        # num_candidates must be >= k
        num_candidates = max(100, k)
        return await self._search(
            size=k,
            knn={
                "field": "embedding",
                "query_vector": list(vector),
                "k": k,
                "num_candidates": num_candidates,
                "filter": _type_filter(embedding_type),
            },
        )

    async def text_search(
        self, text: str, size: int, embedding_type: Optional[str] = None
    ) -> List[SearchHit]:
        return await self._search(
            size=size,
            query={
                "bool": {
                    "must": [
                        {
                            "multi_match": {
                                "query": text,
                                "fields": TEXT_FIELDS,
                                "fuzziness": "AUTO",
                                "type": "best_fields",
                            }
                        }
                    ],
                    "filter": _type_filter(embedding_type),
                }
            },
        )

    async def _search(self, **body: Any) -> List[SearchHit]:
        try:
            response = await self.es.search(index=self.index, source=SOURCE_FIELDS, **body)
        except Exception as e:
            kind = classify_error(e)
            if kind == SearchBackendUnavailable.CONNECTION:
                logger.error(f"Elasticsearch connection failed. Is Elasticsearch running? {e}")
            elif kind == SearchBackendUnavailable.MISSING_INDEX:
                logger.error(f"Elasticsearch index '{self.index}' not found. Have embeddings been indexed?")
            else:
                logger.error(f"Elasticsearch query error: {e}")
            raise SearchBackendUnavailable(kind, e) from e
        return _to_hits(response)
