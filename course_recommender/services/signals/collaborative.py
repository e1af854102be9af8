"""Collaborative filtering over learners' course histories.

Offerings of one course have different IDs in every term, so overlap and
tallies are computed on subject numbers rather than offering IDs.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Sequence

from course_recommender.models.domain import PeerHistory, Recommendation, RequestContext
from course_recommender.services.course_store import CourseStore
from course_recommender.services.identity import (
    deduplicate_recommendations,
    filter_candidates,
    latest_offering_per_subject,
)
from course_recommender.services.signals.base import SignalSource


@dataclass(frozen=True)
class SimilarPeer:
    learner_id: str
    subject_numbers: FrozenSet[str]
    overlap: int


@dataclass
class CourseTally:
    subject_number: str
    count: int
    max_overlap: int

    @property
    def score(self) -> float:
        return self.count * (self.max_overlap / 10)


def find_similar_peers(
    taken: FrozenSet[str],
    peers: Iterable[PeerHistory],
    min_overlap: int = 3,
    max_peers: int = 50,
) -> List[SimilarPeer]:
    """Peers sharing at least ``min_overlap`` subjects, largest overlap first"""
    similar = []
    for peer in peers:
        overlap = len(peer.subject_numbers & taken)
        if overlap >= min_overlap:
            similar.append(SimilarPeer(peer.learner_id, peer.subject_numbers, overlap))
    similar.sort(key=lambda peer: peer.overlap, reverse=True)
    return similar[:max_peers]


def tally_peer_courses(peers: Sequence[SimilarPeer], taken: FrozenSet[str]) -> List[CourseTally]:
    """Count how many similar peers took each subject the learner has not taken.

    Returned best first; equal scores keep discovery order.
    """
    tallies: Dict[str, CourseTally] = {}
    for peer in peers:
        for subject_number in sorted(peer.subject_numbers):
            if subject_number in taken:
                continue
            tally = tallies.get(subject_number)
            if tally is None:
                tallies[subject_number] = CourseTally(subject_number, 1, peer.overlap)
            else:
                tally.count += 1
                tally.max_overlap = max(tally.max_overlap, peer.overlap)
    return sorted(tallies.values(), key=lambda tally: tally.score, reverse=True)


class CollaborativeSource(SignalSource):
    strategy = "collaborative"

    def __init__(self, store: CourseStore, min_overlap: int = 3, max_peers: int = 50):
        self.store = store
        self.min_overlap = min_overlap
        self.max_peers = max_peers

    async def _score(self, ctx: RequestContext, limit: int) -> List[Recommendation]:
        if not ctx.has_history:
            return []

        peers = await self.store.get_peer_histories(ctx.learner.learner_id, sorted(ctx.taken_subjects))
        similar = find_similar_peers(ctx.taken_subjects, peers, self.min_overlap, self.max_peers)
        if not similar:
            return []

        ranked = tally_peer_courses(similar, ctx.taken_subjects)[: limit * 2]
        offered = await self.store.find_offered_by_subjects([tally.subject_number for tally in ranked])
        eligible = {
            course.subject_number: course
            for course in filter_candidates(
                latest_offering_per_subject(offered), ctx.taken_subjects, ctx.exclusions
            )
        }

        recs = []
        for tally in ranked:
            course = eligible.get(tally.subject_number)
            if course is None:
                continue
            recs.append(
                Recommendation(
                    course=course,
                    score=tally.score,
                    reason=f"{tally.count} students with similar course history took this class",
                )
            )
        return deduplicate_recommendations(recs)[:limit]
