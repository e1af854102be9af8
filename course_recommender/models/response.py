"""Response schemas"""
from pydantic import BaseModel, Field
from typing import List, Optional


class CourseSummary(BaseModel):
    """Course information response"""
    course_id: str
    subject_number: str
    title: str
    department: Optional[str] = None
    description: Optional[str] = None
    prerequisites: Optional[str] = None
    corequisites: Optional[str] = None
    aliases: List[str] = []
    academic_year: Optional[int] = None
    term: Optional[str] = None


class RecommendationItem(BaseModel):
    """One recommended course"""
    course: CourseSummary
    score: float
    reason: str
    prerequisite_boost: Optional[str] = Field(None, description="Boost tier applied: both, prerequisites, corequisites")


class StrategyGroup(BaseModel):
    """Recommendations produced by one strategy"""
    strategy: str
    title: str
    description: str
    items: List[RecommendationItem]


class LearnerRecommendationsResponse(BaseModel):
    learner_id: str
    recommendations: List[StrategyGroup]


class SimilarCoursesResponse(BaseModel):
    """Courses similar to one seed course"""
    seed_course_id: str
    seed_course_label: str
    recommendations: List[RecommendationItem]
    method: str = "hybrid"
    semantic_weight: float
    structural_weight: float


class EligibilityResponse(BaseModel):
    """Both eligibility gates for a learner"""
    learner_id: str
    recent_contribution: bool
    last_contribution_at: Optional[str] = None
    window_months: int
    review_share: bool
    full_reviews: int
    total_reviews: int
    required_reviews: int
    percentage_required: int


class RequirementGraphResponse(BaseModel):
    """Direct prerequisites, corequisites and dependents of a course"""
    course: CourseSummary
    prerequisites: List[CourseSummary]
    corequisites: List[CourseSummary]
    required_by: List[CourseSummary] = Field(alias="requiredBy")

    model_config = {"populate_by_name": True}


class ChainEntryResponse(BaseModel):
    course: CourseSummary
    depth: int
    path: List[str]


class PrerequisiteChainResponse(BaseModel):
    course_id: str
    max_depth: int
    chain: List[ChainEntryResponse]


class GraphNodeResponse(BaseModel):
    id: str
    label: str
    subject_number: str
    title: str
    department: str
    type: str
    is_gir: Optional[bool] = None
    gir_attributes: Optional[List[str]] = None


class GraphEdgeResponse(BaseModel):
    id: str
    source: str
    target: str
    type: str
    label: Optional[str] = None


class GraphDataResponse(BaseModel):
    """Nodes and edges for the graph view"""
    nodes: List[GraphNodeResponse]
    edges: List[GraphEdgeResponse]


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str
    databases: dict = Field(default_factory=dict)


def to_course_summary(course) -> CourseSummary:
    """Convert a domain Course into its response schema"""
    return CourseSummary(
        course_id=course.course_id,
        subject_number=course.subject_number,
        title=course.title,
        department=course.department or None,
        description=course.description,
        prerequisites=course.prerequisites,
        corequisites=course.corequisites,
        aliases=list(course.aliases),
        academic_year=course.academic_year or None,
        term=course.term,
    )


def to_recommendation_item(rec) -> RecommendationItem:
    return RecommendationItem(
        course=to_course_summary(rec.course),
        score=rec.score,
        reason=rec.reason,
        prerequisite_boost=rec.prerequisite_boost,
    )
