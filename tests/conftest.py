import pytest

from course_recommender.models.domain import PeerHistory, ReviewCounts, ReviewStats
from course_recommender.services.identity import ExclusionPolicy
from tests.fakes import (
    FakeCourseStore,
    FakeSearchBackend,
    hit_for,
    make_course,
    make_embedding,
    make_learner,
)


@pytest.fixture
def exclusions():
    return ExclusionPolicy(foundational_prefixes=("18.01",))


@pytest.fixture
def courses():
    catalog = [
        make_course(
            "6.100A",
            "Introduction to Computer Science Programming in Python",
            aliases=["6.0001"],
        ),
        make_course("6.1010", "Fundamentals of Programming", prerequisites="Prereq: 6.100A"),
        make_course("6.1200", "Mathematics for Computer Science"),
        make_course("6.1210", "Introduction to Algorithms", prerequisites="6.1200, 6.100A"),
        make_course("6.1210", "Introduction to Algorithms", academic_year=2023, prerequisites="6.1200, 6.100A"),
        make_course(
            "6.3900",
            "Introduction to Machine Learning",
            prerequisites="6.1010 and 18.06",
        ),
        make_course("6.1910", "Computation Structures", prerequisites="6.100A", corequisites="8.02"),
        make_course("6.1800", "Computer Systems Engineering", prerequisites="6.1910"),
        make_course("18.06", "Linear Algebra", gir_attributes=["REST"]),
        make_course("18.01", "Calculus", gir_attributes=["CAL1"]),
        make_course("6.UR", "Undergraduate Research Opportunities"),
    ]
    return {(course.subject_number, course.academic_year): course for course in catalog}


@pytest.fixture
def course(courses):
    """Look up the 2025 offering of a subject"""

    def lookup(subject_number, academic_year=2025):
        return courses[(subject_number, academic_year)]

    return lookup


@pytest.fixture
def alice(course):
    return make_learner(
        "alice",
        taken=[course("6.100A"), course("6.1010"), course("6.1200")],
        departments=["6"],
    )


@pytest.fixture
def lapsed(course):
    return make_learner("lapsed", taken=[course("6.100A")], departments=["6"], days_since_upload=200)


@pytest.fixture
def newcomer():
    return make_learner("newcomer")


@pytest.fixture
def peers():
    return [
        PeerHistory("p1", frozenset({"6.100A", "6.1010", "6.1200", "6.1210", "6.3900"})),
        PeerHistory("p2", frozenset({"6.100A", "6.1010", "6.1200", "6.1210", "6.UR"})),
        PeerHistory("p3", frozenset({"6.100A", "6.1800"})),
    ]


@pytest.fixture
def review_stats():
    return [
        ReviewStats("6.1210", "6", average_rating=6.5, review_count=10),
        ReviewStats("6.1910", "6", average_rating=6.1, review_count=4),
        ReviewStats("6.3900", "6", average_rating=6.9, review_count=2),
        ReviewStats("6.1800", "6", average_rating=5.0, review_count=12),
        ReviewStats("6.1010", "6", average_rating=6.8, review_count=30),
    ]


@pytest.fixture
def store(courses, alice, lapsed, newcomer, peers, review_stats):
    return FakeCourseStore(
        courses=courses.values(),
        learners=[alice, lapsed, newcomer],
        peers=peers,
        review_stats=review_stats,
        embeddings=[make_embedding(c) for c in courses.values()],
        review_counts={"alice": ReviewCounts(total=10, full=2)},
    )


@pytest.fixture
def search_hits(course):
    ranked = ["6.1210", "6.3900", "6.100A", "18.06", "18.01", "6.UR", "6.1010", "6.1800"]
    return [hit_for(course(subject), score=1.0 - i * 0.05) for i, subject in enumerate(ranked)]


@pytest.fixture
def backend(search_hits):
    return FakeSearchBackend(knn_hits=search_hits, text_hits=list(reversed(search_hits)))
