import pytest

from course_recommender.models.domain import VersionedEmbedding
from course_recommender.services import embedding_indexer
from course_recommender.services.embedding_indexer import EmbeddingIndexService

DIMS = 4
MODEL = "qwen3-embedding:4b"


class FakeIndices:
    def __init__(self, exists):
        self._exists = exists
        self.created = []
        self.deleted = []

    def exists(self, index):
        return self._exists

    def create(self, index, mappings, settings):
        self.created.append((index, mappings))

    def delete(self, index):
        self.deleted.append(index)


class FakeElasticsearch:
    def __init__(self, exists=False):
        self.indices = FakeIndices(exists)


def embedding(course_id, vector=(0.1, 0.2, 0.3, 0.4), model_id=MODEL, contributors=()):
    return VersionedEmbedding(
        course_id=course_id,
        embedding_type="reviews",
        vector=list(vector),
        model_id=model_id,
        source_text="Great lectures",
        contributor_ids=frozenset(contributors),
    )


def service(client=None, recreate=False):
    return EmbeddingIndexService(client or FakeElasticsearch(), "course_embeddings", DIMS, MODEL, recreate)


def test_ensure_index_creates_dense_vector_mapping():
    client = FakeElasticsearch(exists=False)
    service(client).ensure_index()
    index, mappings = client.indices.created[0]
    assert index == "course_embeddings"
    assert mappings["properties"]["embedding"]["dims"] == DIMS
    assert mappings["properties"]["embedding"]["similarity"] == "cosine"


def test_ensure_index_keeps_existing_index():
    client = FakeElasticsearch(exists=True)
    service(client).ensure_index()
    assert client.indices.created == [] and client.indices.deleted == []


def test_ensure_index_recreates_on_request():
    client = FakeElasticsearch(exists=True)
    service(client, recreate=True).ensure_index()
    assert client.indices.deleted == ["course_embeddings"]
    assert len(client.indices.created) == 1


def test_build_documents_skips_unusable_embeddings():
    indexer = service()
    rows = [
        (embedding("1"), "6.1210 Introduction to Algorithms"),
        (embedding("2", model_id="old-model"), "6.1800 Computer Systems Engineering"),
        (embedding("3", contributors=["u-9"]), "6.3900 Introduction to Machine Learning"),
        (embedding("4", vector=(0.1, 0.2)), "18.06 Linear Algebra"),
        (embedding("5", vector=(0.1, float("nan"), 0.3, 0.4)), "6.1910 Computation Structures"),
        (embedding("6", vector=()), "6.1010 Fundamentals of Programming"),
    ]
    documents = list(indexer.build_documents(rows, opted_out=frozenset({"u-9"})))
    assert [doc["course_id"] for doc in documents] == ["1"]
    assert documents[0]["doc_id"] == "1:reviews"
    assert documents[0]["text"] == "6.1210 Introduction to Algorithms"
    assert documents[0]["embedding"] == pytest.approx([0.1, 0.2, 0.3, 0.4])
    assert indexer.stats.prepared == 1
    assert indexer.stats.skipped_stale == 1
    assert indexer.stats.skipped_opt_out == 1
    assert indexer.stats.skipped_invalid == 3


def test_bulk_index_prepares_actions(monkeypatch):
    captured = {}

    def fake_bulk(client, actions, stats_only, raise_on_error):
        captured["actions"] = list(actions)
        return len(captured["actions"]), []

    monkeypatch.setattr(embedding_indexer.helpers, "bulk", fake_bulk)
    indexer = service()
    documents = indexer.build_documents([(embedding("1"), "6.1210 Introduction to Algorithms")])
    assert indexer.bulk_index(documents) == 1
    action = captured["actions"][0]
    assert action["_id"] == "1:reviews"
    assert action["_index"] == "course_embeddings"
    assert "doc_id" not in action["_source"]


def test_bulk_index_raises_on_errors(monkeypatch):
    monkeypatch.setattr(embedding_indexer.helpers, "bulk", lambda **kwargs: (0, [{"index": {"error": "boom"}}]))
    with pytest.raises(RuntimeError):
        service().bulk_index([])
