"""Prerequisite graph endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from course_recommender.dependencies import get_course_store
from course_recommender.exceptions import NotFoundError
from course_recommender.models.domain import GraphData
from course_recommender.models.response import (
    ChainEntryResponse,
    GraphDataResponse,
    GraphEdgeResponse,
    GraphNodeResponse,
    PrerequisiteChainResponse,
    RequirementGraphResponse,
    to_course_summary,
)
from course_recommender.services.course_store import CourseStore
from course_recommender.services.identity import latest_offering_per_subject
from course_recommender.services.prerequisites import (
    build_graph_data,
    build_network_graph,
    get_prerequisite_chain,
    get_requirement_graph,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_GRAPH_DEPTH = 1
MAX_GRAPH_DEPTH = 4


def clamp_depth(depth: int) -> int:
    return max(MIN_GRAPH_DEPTH, min(MAX_GRAPH_DEPTH, depth))


def to_graph_response(graph: GraphData) -> GraphDataResponse:
    return GraphDataResponse(
        nodes=[
            GraphNodeResponse(
                id=node.id,
                label=node.label,
                subject_number=node.subject_number,
                title=node.title,
                department=node.department,
                type=node.type,
                is_gir=node.is_gir,
                gir_attributes=node.gir_attributes,
            )
            for node in graph.nodes
        ],
        edges=[
            GraphEdgeResponse(
                id=edge.id,
                source=edge.source,
                target=edge.target,
                type=edge.type,
                label=edge.label,
            )
            for edge in graph.edges
        ],
    )


@router.get("/graph", response_model=GraphDataResponse)
async def prerequisite_graph(
    subject_number: str = Query(..., description="Subject number or cross-listed alias"),
    depth: int = Query(2, description="Prerequisite depth, clamped to 1-4"),
    store: CourseStore = Depends(get_course_store),
):
    """
    Graph around one course: prerequisites up to ``depth``, its corequisites,
    and the courses that require it.
    """
    try:
        graph = await build_graph_data(store, subject_number, clamp_depth(depth))
        if not graph.nodes:
            raise HTTPException(status_code=404, detail=f"Course {subject_number} not found")
        return to_graph_response(graph)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Prerequisite graph error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to build graph: {str(e)}")


@router.get("/network", response_model=GraphDataResponse)
async def prerequisite_network(
    year: int = Query(..., description="Academic year"),
    department: Optional[str] = Query(None, description="Restrict to one department"),
    include_isolated: bool = Query(False, description="Include courses without requirement edges"),
    store: CourseStore = Depends(get_course_store),
):
    """
    Prerequisite and corequisite network over every course offered in one year.
    """
    try:
        courses = latest_offering_per_subject(await store.find_offered_in_year(year, department))
        graph = build_network_graph(courses, include_isolated=include_isolated)
        logger.info(f"Network for {year}: {len(graph.nodes)} nodes, {len(graph.edges)} edges")
        return to_graph_response(graph)

    except Exception as e:
        logger.error(f"Prerequisite network error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to build network: {str(e)}")


@router.get("/courses/{course_id}", response_model=RequirementGraphResponse)
async def course_requirements(
    course_id: str,
    store: CourseStore = Depends(get_course_store),
):
    """
    Direct prerequisites, corequisites and dependents of a course.
    """
    try:
        graph = await get_requirement_graph(store, course_id)

        return RequirementGraphResponse(
            course=to_course_summary(graph.root),
            prerequisites=[to_course_summary(c) for c in graph.prerequisites],
            corequisites=[to_course_summary(c) for c in graph.corequisites],
            required_by=[to_course_summary(c) for c in graph.required_by],
        )

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Course requirements error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get requirements: {str(e)}")


@router.get("/courses/{course_id}/chain", response_model=PrerequisiteChainResponse)
async def course_prerequisite_chain(
    course_id: str,
    max_depth: int = Query(3, ge=1, le=6, description="Maximum chain depth"),
    store: CourseStore = Depends(get_course_store),
):
    """
    Transitive prerequisite chain, shortest path to each course.
    """
    try:
        chain = await get_prerequisite_chain(store, course_id, max_depth)
        if course_id not in chain:
            raise HTTPException(status_code=404, detail=f"Course {course_id} not found")

        return PrerequisiteChainResponse(
            course_id=course_id,
            max_depth=max_depth,
            chain=[
                ChainEntryResponse(course=to_course_summary(entry.course), depth=entry.depth, path=entry.path)
                for entry in sorted(chain.values(), key=lambda e: e.depth)
            ],
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Prerequisite chain error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get prerequisite chain: {str(e)}")
