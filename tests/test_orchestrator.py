import asyncio

import pytest

from course_recommender.dependencies import build_orchestrator
from course_recommender.exceptions import NotEligibleError, NotFoundError
from course_recommender.services.orchestrator import Strategy
from tests.fakes import FakeSearchBackend


@pytest.fixture
def orchestrator(store, backend, exclusions):
    return build_orchestrator(store, backend, exclusions)


def test_groups_carry_titles(orchestrator):
    groups = asyncio.run(orchestrator.get_recommendations_for_learner("alice"))
    assert [group.strategy for group in groups] == list(Strategy)
    assert groups[0].title == "Based on Similar Students"
    assert groups[3].description == "Intelligent suggestions based on course content and structure"


def test_nothing_taken_or_excluded_is_recommended(orchestrator, alice, exclusions):
    groups = asyncio.run(orchestrator.get_recommendations_for_learner("alice", limit=10))
    taken = {"6.100A", "6.0001", "6.1010", "6.1200"}
    for group in groups:
        for rec in group.items:
            assert not taken.intersection(rec.course.identities())
            assert not exclusions.is_excluded(rec.course)


def test_requested_order_is_preserved(orchestrator):
    groups = asyncio.run(
        orchestrator.get_recommendations_for_learner("alice", [Strategy.CONTENT, Strategy.COLLABORATIVE])
    )
    assert [group.strategy for group in groups] == [Strategy.CONTENT, Strategy.COLLABORATIVE]


def test_limit_applies_per_group(orchestrator):
    groups = asyncio.run(orchestrator.get_recommendations_for_learner("alice", limit=1))
    assert all(len(group.items) == 1 for group in groups)


def test_empty_groups_are_dropped(orchestrator):
    groups = asyncio.run(orchestrator.get_recommendations_for_learner("newcomer"))
    assert groups == []


def test_unknown_learner(orchestrator):
    with pytest.raises(NotFoundError):
        asyncio.run(orchestrator.get_recommendations_for_learner("nobody"))


def test_ineligible_learner(orchestrator, store):
    with pytest.raises(NotEligibleError) as excinfo:
        asyncio.run(orchestrator.get_recommendations_for_learner("lapsed"))
    assert excinfo.value.criterion == "recent_contribution"


def test_search_outage_degrades_only_embeddings(store, exclusions):
    orchestrator = build_orchestrator(store, FakeSearchBackend(fail_knn=True, fail_text=True), exclusions)

    groups = asyncio.run(orchestrator.get_recommendations_for_learner("alice", [Strategy.EMBEDDINGS]))
    assert groups == []

    groups = asyncio.run(orchestrator.get_recommendations_for_learner("alice"))
    assert [group.strategy for group in groups] == [Strategy.COLLABORATIVE, Strategy.DEPARTMENT, Strategy.CONTENT]


def test_degraded_source_is_logged(store, exclusions, caplog):
    orchestrator = build_orchestrator(store, FakeSearchBackend(fail_knn=True, fail_text=True), exclusions)
    asyncio.run(orchestrator.get_recommendations_for_learner("alice", [Strategy.EMBEDDINGS]))
    assert "Signal source 'embeddings' degraded" in caplog.text


def test_similar_courses(orchestrator, course):
    result = asyncio.run(orchestrator.get_similar_courses(course("6.100A").course_id, limit=3, semantic_weight=0.7))
    assert result.seed_course_label == "6.100A: Introduction to Computer Science Programming in Python"
    assert result.method == "hybrid"
    assert result.structural_weight == pytest.approx(0.3)
    assert [rec.course.subject_number for rec in result.recommendations] == ["6.1210", "6.3900", "18.06"]


def test_similar_courses_for_learner_excludes_taken(orchestrator, course):
    result = asyncio.run(orchestrator.get_similar_courses(course("6.1210").course_id, limit=10, learner_id="alice"))
    found = {rec.course.subject_number for rec in result.recommendations}
    assert found == {"6.3900", "18.06", "6.1800"}


def test_similar_courses_unknown_seed(orchestrator):
    with pytest.raises(NotFoundError):
        asyncio.run(orchestrator.get_similar_courses("missing"))


@pytest.mark.parametrize("weight", [-0.1, 1.5])
def test_similar_courses_rejects_bad_weight(orchestrator, course, weight):
    with pytest.raises(ValueError):
        asyncio.run(orchestrator.get_similar_courses(course("6.100A").course_id, semantic_weight=weight))


def test_search_outage_leaves_collaborative_untouched(store, backend, exclusions):
    healthy = build_orchestrator(store, backend, exclusions)
    outage = build_orchestrator(store, FakeSearchBackend(fail_knn=True, fail_text=True), exclusions)
    expected = asyncio.run(healthy.get_recommendations_for_learner("alice", [Strategy.COLLABORATIVE]))
    actual = asyncio.run(outage.get_recommendations_for_learner("alice", [Strategy.COLLABORATIVE]))
    assert [rec.course.course_id for rec in actual[0].items] == [rec.course.course_id for rec in expected[0].items]
