import asyncio

import pytest

from course_recommender.exceptions import SearchBackendUnavailable
from course_recommender.services.search_backend import ElasticsearchSearchBackend, classify_error


class FakeAsyncElasticsearch:
    def __init__(self, response=None, error=None):
        self.response = response or {"hits": {"hits": []}}
        self.error = error
        self.requests = []

    async def search(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


RESPONSE = {
    "hits": {
        "hits": [
            {"_id": "c1:description", "_score": 0.9, "_source": {"course_id": "c1", "embedding_type": "description", "text": "Algorithms"}},
            {"_id": "orphan", "_score": 0.8, "_source": {}},
            {"_id": "c2:reviews", "_score": 0.5, "_source": {"course_id": 2, "embedding_type": "reviews", "source_text": "Fun"}},
        ]
    }
}


def test_knn_query_shape():
    es = FakeAsyncElasticsearch(RESPONSE)
    hits = asyncio.run(ElasticsearchSearchBackend(es, "course_embeddings").knn_search([0.1, 0.2], 30, "description"))
    request = es.requests[0]
    assert request["index"] == "course_embeddings"
    assert request["knn"]["k"] == 30
    assert request["knn"]["num_candidates"] == 100
    assert request["knn"]["filter"] == [{"term": {"embedding_type": "description"}}]
    assert [hit.course_id for hit in hits] == ["c1", "2"]
    assert hits[1].text == "Fun"


def test_num_candidates_never_below_k():
    es = FakeAsyncElasticsearch()
    asyncio.run(ElasticsearchSearchBackend(es, "idx").knn_search([0.1], 150))
    assert es.requests[0]["knn"]["num_candidates"] == 150


def test_text_query_shape():
    es = FakeAsyncElasticsearch(RESPONSE)
    asyncio.run(ElasticsearchSearchBackend(es, "idx").text_search("algorithms", 12))
    match = es.requests[0]["query"]["bool"]["must"][0]["multi_match"]
    assert match["fields"] == ["source_text^3", "text^2"]
    assert match["fuzziness"] == "AUTO"
    assert es.requests[0]["query"]["bool"]["filter"] == []


@pytest.mark.parametrize("error", [ConnectionError("refused"), OSError("unreachable")])
def test_connection_failures_are_classified(error):
    assert classify_error(error) == SearchBackendUnavailable.CONNECTION


def test_backend_failure_raises_unavailable():
    es = FakeAsyncElasticsearch(error=ConnectionError("refused"))
    with pytest.raises(SearchBackendUnavailable) as excinfo:
        asyncio.run(ElasticsearchSearchBackend(es, "idx").knn_search([0.1], 5))
    assert excinfo.value.kind == SearchBackendUnavailable.CONNECTION
