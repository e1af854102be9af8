from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, Optional, Tuple

import numpy as np
from elasticsearch import Elasticsearch, helpers

from course_recommender.models.domain import VersionedEmbedding

LOGGER = logging.getLogger("course_recommender.indexer")


@dataclass
class IndexStats:
    prepared: int = 0
    skipped_stale: int = 0
    skipped_opt_out: int = 0
    skipped_invalid: int = 0


class EmbeddingIndexService:
    """Mirrors stored course embeddings into the Elasticsearch k-NN index"""

    def __init__(
        self,
        client: Elasticsearch,
        index: str,
        dims: int,
        model_id: str,
        recreate_index: bool = False,
    ) -> None:
        self._client = client
        self._index = index
        self._dims = dims
        self._model_id = model_id
        self._recreate_index = recreate_index
        self.stats = IndexStats()

    def ensure_index(self) -> None:
        index = self._index
        exists = self._client.indices.exists(index=index)
        if exists and self._recreate_index:
            LOGGER.info("Recreating index %s", index)
            self._client.indices.delete(index=index)
            exists = False

        if not exists:
            LOGGER.info("Creating index %s", index)
            self._client.indices.create(
                index=index,
                mappings=self._build_mappings(),
                settings={
                    "index": {
                        "number_of_shards": 1,
                        "number_of_replicas": 0,
                    }
                },
            )
        else:
            LOGGER.info("Index %s already exists", index)

    def build_documents(
        self,
        embeddings: Iterable[Tuple[VersionedEmbedding, str]],
        opted_out: FrozenSet[str] = frozenset(),
    ) -> Iterator[dict]:
        """Index documents for current-model embeddings; stale, invalid or opted-out ones are skipped"""
        for embedding, text in embeddings:
            if embedding.is_stale(self._model_id):
                self.stats.skipped_stale += 1
                continue
            if embedding.contributor_ids & opted_out:
                self.stats.skipped_opt_out += 1
                continue
            vector = self._validated_vector(embedding)
            if vector is None:
                self.stats.skipped_invalid += 1
                continue

            self.stats.prepared += 1
            yield {
                "doc_id": f"{embedding.course_id}:{embedding.embedding_type}",
                "course_id": embedding.course_id,
                "embedding_type": embedding.embedding_type,
                "text": text,
                "source_text": embedding.source_text,
                "model_id": embedding.model_id,
                "embedding": vector,
            }

    def bulk_index(self, documents: Iterable[dict]) -> int:
        LOGGER.info("Indexing documents into %s", self._index)
        success, errors = helpers.bulk(
            client=self._client,
            actions=self._prepare_actions(documents),
            stats_only=False,
            raise_on_error=False,
        )
        LOGGER.info("Indexed %s documents", success)
        if errors:
            LOGGER.error("Encountered %s errors during bulk indexing", len(errors))
            for error in errors[:5]:
                LOGGER.error("Error detail: %s", error)
            raise RuntimeError("Bulk indexing completed with errors")
        return success

    def _validated_vector(self, embedding: VersionedEmbedding) -> Optional[list]:
        if embedding.is_empty:
            return None
        vector = np.asarray(embedding.vector, dtype=np.float32)
        if vector.shape != (self._dims,):
            LOGGER.warning(
                "Embedding %s/%s has dimension %s, expected %s",
                embedding.course_id,
                embedding.embedding_type,
                vector.shape[0] if vector.ndim == 1 else vector.shape,
                self._dims,
            )
            return None
        if not np.isfinite(vector).all():
            LOGGER.warning("Embedding %s/%s contains non-finite values", embedding.course_id, embedding.embedding_type)
            return None
        return vector.tolist()

    def _prepare_actions(self, documents: Iterable[dict]) -> Iterable[dict]:
        for doc in documents:
            doc = dict(doc)
            doc_id = doc.pop("doc_id")
            yield {
                "_op_type": "index",
                "_index": self._index,
                "_id": doc_id,
                "_source": doc,
            }

    def _build_mappings(self) -> dict:
        return {
            "dynamic": "strict",
            "properties": {
                "course_id": {"type": "keyword"},
                "embedding_type": {"type": "keyword"},
                "model_id": {"type": "keyword"},
                "text": {"type": "text"},
                "source_text": {"type": "text"},
                "embedding": {
                    "type": "dense_vector",
                    "dims": self._dims,
                    "index": True,
                    "similarity": "cosine",
                },
            },
        }
