"""Course recommendation endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
import logging

from course_recommender.core.config import settings
from course_recommender.dependencies import get_orchestrator
from course_recommender.exceptions import NotEligibleError, NotFoundError
from course_recommender.models.response import (
    EligibilityResponse,
    LearnerRecommendationsResponse,
    SimilarCoursesResponse,
    StrategyGroup,
    to_recommendation_item,
)
from course_recommender.services.eligibility import has_recent_contribution
from course_recommender.services.orchestrator import RecommendationOrchestrator, Strategy

logger = logging.getLogger(__name__)

router = APIRouter()

ALL_STRATEGIES = "all"


def parse_strategies(types: List[str]) -> Optional[List[Strategy]]:
    """Map ``type`` query values to strategies; ``all`` (or nothing) means every strategy"""
    if not types or ALL_STRATEGIES in types:
        return None
    try:
        return [Strategy(value) for value in types]
    except ValueError:
        valid = ", ".join([ALL_STRATEGIES] + [s.value for s in Strategy])
        raise HTTPException(status_code=400, detail=f"Invalid recommendation type. Use one of: {valid}")


@router.get("/learners/{learner_id}", response_model=LearnerRecommendationsResponse)
async def recommend_for_learner(
    learner_id: str,
    type: List[str] = Query([ALL_STRATEGIES], description="Strategies to run; repeat for several"),
    limit: int = Query(5, ge=1, le=50, description="Maximum courses per strategy"),
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
):
    """
    Personalized recommendations grouped by strategy.

    - **learner_id**: Learner ID
    - **type**: all, collaborative, department, content or embeddings
    - **limit**: Maximum number of courses per strategy
    """
    try:
        strategies = parse_strategies(type)
        groups = await orchestrator.get_recommendations_for_learner(learner_id, strategies, limit)

        return LearnerRecommendationsResponse(
            learner_id=learner_id,
            recommendations=[
                StrategyGroup(
                    strategy=group.strategy.value,
                    title=group.title,
                    description=group.description,
                    items=[to_recommendation_item(rec) for rec in group.items],
                )
                for group in groups
            ],
        )

    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotEligibleError as e:
        raise HTTPException(status_code=403, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Recommendation error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Recommendation failed: {str(e)}")


@router.get("/learners/{learner_id}/eligibility", response_model=EligibilityResponse)
async def learner_eligibility(
    learner_id: str,
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
):
    """
    Report both eligibility gates for a learner without enforcing them.
    """
    try:
        learner = await orchestrator.store.get_learner(learner_id)
        if learner is None:
            raise HTTPException(status_code=404, detail=f"Learner {learner_id} not found")

        checker = orchestrator.eligibility
        share = await checker.review_share(learner_id)
        return EligibilityResponse(
            learner_id=learner_id,
            recent_contribution=has_recent_contribution(learner.last_contribution_at, checker.window_months),
            last_contribution_at=learner.last_contribution_at.isoformat() if learner.last_contribution_at else None,
            window_months=checker.window_months,
            review_share=share.eligible,
            full_reviews=share.full_reviews,
            total_reviews=share.total_reviews,
            required_reviews=share.required_reviews,
            percentage_required=share.percentage_required,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Eligibility check error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Eligibility check failed: {str(e)}")


@router.get("/similar/{course_id}", response_model=SimilarCoursesResponse)
async def similar_courses(
    course_id: str,
    limit: int = Query(10, ge=1, le=50, description="Maximum number of courses"),
    semantic_weight: float = Query(settings.DEFAULT_SEMANTIC_WEIGHT, description="Weight of semantic similarity (0-1)"),
    learner_id: Optional[str] = Query(None, description="Exclude and boost for this learner"),
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
):
    """
    Courses similar to one course, by rank-fused semantic and keyword search.

    - **course_id**: Seed course ID
    - **semantic_weight**: 0-1; the structural weight is the remainder
    """
    try:
        result = await orchestrator.get_similar_courses(course_id, limit, semantic_weight, learner_id)

        return SimilarCoursesResponse(
            seed_course_id=result.seed_course_id,
            seed_course_label=result.seed_course_label,
            recommendations=[to_recommendation_item(rec) for rec in result.recommendations],
            method=result.method,
            semantic_weight=result.semantic_weight,
            structural_weight=result.structural_weight,
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotEligibleError as e:
        raise HTTPException(status_code=403, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Similar courses error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Similar courses failed: {str(e)}")
