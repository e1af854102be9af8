import pytest

from course_recommender.models.domain import Recommendation
from course_recommender.services.booster import (
    BoostTier,
    apply_prerequisite_boost,
    boost_all,
    boost_tier,
    check_requirements,
)
from tests.fakes import make_course


def recommendation(prerequisites=None, corequisites=None, score=1.0):
    course = make_course("6.3900", prerequisites=prerequisites, corequisites=corequisites)
    return Recommendation(course=course, score=score, reason="Because")


def test_prerequisites_require_all():
    course = make_course("6.3900", prerequisites="6.1010 and 18.06")
    status = check_requirements(course, frozenset({"6.1010"}))
    assert not status.has_prerequisites
    assert status.missing_prerequisites == ["18.06"]


def test_corequisites_require_any():
    course = make_course("6.1910", corequisites="8.02 or 8.021")
    status = check_requirements(course, frozenset({"8.021"}))
    assert status.has_corequisites
    assert status.missing_corequisites == ["8.02"]


def test_empty_requirements_are_satisfied():
    status = check_requirements(make_course("6.1200"), frozenset())
    assert status.has_prerequisites and status.has_corequisites
    assert boost_tier(status) is BoostTier.BOTH


@pytest.mark.parametrize(
    "taken, expected_tier",
    [
        ({"6.1010", "6.1200", "8.02"}, BoostTier.BOTH),
        ({"6.1010", "6.1200"}, BoostTier.PREREQUISITES),
        ({"6.1010", "8.02"}, BoostTier.COREQUISITES),
        ({"6.1010"}, BoostTier.NONE),
    ],
)
def test_boost_tiers(taken, expected_tier):
    rec = recommendation(prerequisites="6.1010, 6.1200", corequisites="8.02")
    boosted = apply_prerequisite_boost(rec, frozenset(taken))
    assert boosted.score == pytest.approx(expected_tier.multiplier)
    assert boosted.prerequisite_boost == expected_tier.key


def test_boost_explains_itself():
    rec = recommendation(prerequisites="6.1010")
    boosted = apply_prerequisite_boost(rec, frozenset({"6.1010"}))
    assert boosted.reason == "Because\n✓ You have the prerequisites and corequisites"


def test_no_boost_keeps_reason():
    rec = recommendation(prerequisites="6.1010", corequisites="8.02")
    boosted = apply_prerequisite_boost(rec, frozenset())
    assert boosted.reason == "Because"
    assert boosted.score == 1.0


def test_boost_is_idempotent():
    rec = recommendation(prerequisites="6.1010", score=2.0)
    taken = frozenset({"6.1010"})
    once = apply_prerequisite_boost(rec, taken)
    twice = apply_prerequisite_boost(once, taken)
    assert twice == once
    assert twice.score == pytest.approx(2.6)


def test_boost_does_not_mutate_input():
    rec = recommendation(prerequisites="6.1010")
    boost_all([rec], frozenset({"6.1010"}))
    assert rec.score == 1.0 and rec.prerequisite_boost is None


def test_any_corequisite_with_all_prerequisites():
    rec = recommendation(prerequisites="6.1010, 6.1200", corequisites="6.1800 or 6.1910")
    assert apply_prerequisite_boost(rec, frozenset({"6.1010", "6.1200", "6.1800"})).score == pytest.approx(1.3)
    missing = apply_prerequisite_boost(rec, frozenset({"6.1010", "6.1800"}))
    assert missing.prerequisite_boost == "corequisites"
