"""Domain models"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, List, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from course_recommender.services.identity import ExclusionPolicy


@dataclass
class Course:
    """One stored offering of a course (a course in a specific term)"""
    course_id: str
    subject_number: str
    title: str
    department: str = ""
    description: Optional[str] = None
    prerequisites: Optional[str] = None
    corequisites: Optional[str] = None
    aliases: List[str] = field(default_factory=list)
    academic_year: int = 0
    term: Optional[str] = None
    offered: bool = True
    gir_attributes: List[str] = field(default_factory=list)

    def identities(self) -> List[str]:
        """Subject number followed by every cross-listing alias"""
        numbers = [self.subject_number] if self.subject_number else []
        return numbers + [alias for alias in self.aliases if alias]

    @property
    def department_prefix(self) -> str:
        return (self.subject_number or "").split(".")[0]

    @property
    def label(self) -> str:
        return f"{self.subject_number}: {self.title}"


@dataclass
class Learner:
    learner_id: str
    taken: List[Course] = field(default_factory=list)
    departments: List[str] = field(default_factory=list)
    last_contribution_at: Optional[datetime] = None


@dataclass(frozen=True)
class VersionedEmbedding:
    """A stored embedding together with the model that produced it"""
    course_id: str
    embedding_type: str  # 'description', 'reviews' or 'content'
    vector: List[float]
    model_id: str
    generated_at: Optional[datetime] = None
    source_text: str = ""
    contributor_ids: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.vector

    def is_stale(self, current_model_id: str) -> bool:
        return self.model_id != current_model_id


@dataclass(frozen=True)
class Recommendation:
    """A scored course with a human-readable explanation"""
    course: Course
    score: float
    reason: str
    prerequisite_boost: Optional[str] = None


@dataclass(frozen=True)
class SearchHit:
    """One raw hit from the vector or keyword index"""
    doc_id: str
    course_id: str
    embedding_type: str = "description"
    text: str = ""
    score: float = 0.0


@dataclass
class FusedCandidate:
    course: Course
    score: float
    snippet: str
    embedding_type: str = "description"


@dataclass
class FusionResult:
    candidates: List[FusedCandidate] = field(default_factory=list)
    error: Optional[Exception] = None
    used_fallback: bool = False


@dataclass
class SignalResult:
    """Outcome of one signal source: its items, or the error that emptied it"""
    strategy: str
    items: List[Recommendation] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PeerHistory:
    learner_id: str
    subject_numbers: FrozenSet[str]


@dataclass(frozen=True)
class ReviewStats:
    """Review ratings aggregated per subject number"""
    subject_number: str
    department: str
    average_rating: float
    review_count: int


@dataclass(frozen=True)
class ReviewCounts:
    total: int
    full: int


@dataclass(frozen=True)
class RequestContext:
    """Request-scoped state shared by the signal sources and the booster"""
    learner: Learner
    taken_subjects: FrozenSet[str]
    department_boosts: Mapping[str, float]
    exclusions: "ExclusionPolicy"

    @property
    def has_history(self) -> bool:
        return bool(self.learner.taken)


@dataclass
class RequirementGraph:
    root: Course
    prerequisites: List[Course] = field(default_factory=list)
    corequisites: List[Course] = field(default_factory=list)
    required_by: List[Course] = field(default_factory=list)


@dataclass
class ChainEntry:
    course: Course
    depth: int
    path: List[str]


@dataclass
class GraphNode:
    id: str
    label: str
    subject_number: str
    title: str
    department: str
    type: str  # 'root', 'prerequisite', 'corequisite', 'requiredBy' or 'course'
    is_gir: Optional[bool] = None
    gir_attributes: Optional[List[str]] = None


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    type: str  # 'prerequisite' or 'corequisite'
    label: Optional[str] = None


@dataclass
class GraphData:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
