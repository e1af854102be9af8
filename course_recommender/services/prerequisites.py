"""Prerequisite/corequisite parsing and requirement graph traversal.

Requirement strings are free text ("Prereq: 6.100A or 18.06; Coreq: 8.02"),
so the graph is recovered by pattern matching course numbers. Parsing is
best-effort: anything that does not look like a course number is ignored.
"""
from __future__ import annotations

import logging
import re
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from course_recommender.exceptions import NotFoundError
from course_recommender.models.domain import (
    ChainEntry,
    Course,
    GraphData,
    GraphEdge,
    GraphNode,
    RequirementGraph,
)
from course_recommender.services.course_store import CourseStore
from course_recommender.services.identity import latest_offering_per_subject

logger = logging.getLogger(__name__)

# "6.100A", "18.06", "CC.801", "ES.8012"
COURSE_NUMBER_PATTERN = re.compile(
    r"\b([A-Z]{1,4}\d*\.\d{1,4}[A-Z]?|\d{1,2}[A-Z]?\.\d{1,4}[A-Z]?)\b",
    re.IGNORECASE,
)

CORE_GIR_ATTRIBUTES = {"BIOL", "CAL1", "CAL2", "CHEM", "PHY1", "PHY2"}
CORE_MATH_SUBJECTS = {"18.03", "18.06"}


def extract_course_numbers(text: Optional[str]) -> List[str]:
    """Unique, upper-cased course numbers in order of first appearance"""
    if not text:
        return []
    seen: Dict[str, None] = {}
    for match in COURSE_NUMBER_PATTERN.findall(text):
        seen.setdefault(match.upper(), None)
    return list(seen)


def mentions_course(course: Course, subject_number: str) -> bool:
    """Whether ``course`` lists ``subject_number`` as a prerequisite or corequisite token"""
    target = subject_number.upper()
    return target in extract_course_numbers(course.prerequisites) or target in extract_course_numbers(
        course.corequisites
    )


async def get_requirement_graph(store: CourseStore, course_id: str) -> RequirementGraph:
    """Direct prerequisites, corequisites and dependents of one course"""
    root = await store.get_course(course_id)
    if root is None:
        raise NotFoundError("Course", course_id)

    prereq_numbers = extract_course_numbers(root.prerequisites)
    coreq_numbers = extract_course_numbers(root.corequisites)

    prerequisites = latest_offering_per_subject(await store.find_offered_by_subjects(prereq_numbers))
    corequisites = latest_offering_per_subject(await store.find_offered_by_subjects(coreq_numbers))
    required_by = await find_required_by(store, root.subject_number)

    return RequirementGraph(
        root=root,
        prerequisites=prerequisites,
        corequisites=corequisites,
        required_by=required_by,
    )


async def find_required_by(store: CourseStore, subject_number: str) -> List[Course]:
    """Latest offered record of each course whose requirement text names ``subject_number``.

    The store narrows by substring; the token check drops prefix collisions
    such as "6.100" inside "6.1000".
    """
    if not subject_number:
        return []
    candidates = await store.find_offered_mentioning(subject_number)
    return latest_offering_per_subject(course for course in candidates if mentions_course(course, subject_number))


async def get_prerequisite_chain(
    store: CourseStore, course_id: str, max_depth: int = 3
) -> Dict[str, ChainEntry]:
    """Breadth-first walk of prerequisite edges up to ``max_depth``.

    Free-text parsing can produce cycles, so each course is expanded once; BFS
    guarantees the recorded path is a shortest one.
    """
    visited: Dict[str, ChainEntry] = {}
    queue = deque([(course_id, 0, [])])

    while queue:
        current_id, depth, path = queue.popleft()
        if depth >= max_depth or current_id in visited:
            continue

        current = await store.get_course(current_id)
        if current is None:
            continue

        new_path = path + [current.subject_number]
        visited[current_id] = ChainEntry(course=current, depth=depth, path=new_path)

        prerequisites = latest_offering_per_subject(
            await store.find_offered_by_subjects(extract_course_numbers(current.prerequisites))
        )
        for prereq in prerequisites:
            queue.append((prereq.course_id, depth + 1, new_path))

    return visited


def _node(course: Course, node_type: str) -> GraphNode:
    return GraphNode(
        id=course.subject_number,
        label=course.subject_number,
        subject_number=course.subject_number,
        title=course.title or "",
        department=course.department or "",
        type=node_type,
    )


async def _find_offered(store: CourseStore, subject_number: str) -> Optional[Course]:
    matches = await store.find_offered_by_subjects([subject_number])
    return matches[0] if matches else None


async def build_graph_data(store: CourseStore, subject_number: str, max_depth: int = 2) -> GraphData:
    """Graph around one course: prerequisites to ``max_depth``, root corequisites, dependents"""
    root = await store.find_by_subject_or_alias(subject_number)
    if root is None:
        return GraphData()

    root_id = root.subject_number
    nodes: Dict[str, GraphNode] = {root_id: _node(root, "root")}
    edges: List[GraphEdge] = []

    queue = deque([(root_id, 0)])
    visited: Set[str] = {root_id}

    while queue:
        current_subject, depth = queue.popleft()
        if depth >= max_depth:
            continue

        current = await _find_offered(store, current_subject)
        if current is None:
            continue

        for prereq_number in extract_course_numbers(current.prerequisites):
            prereq = await _find_offered(store, prereq_number)
            if prereq is None:
                continue
            nodes.setdefault(prereq_number, _node(prereq, "prerequisite"))
            edges.append(
                GraphEdge(
                    id=f"{prereq_number}->{current_subject}",
                    source=prereq_number,
                    target=current_subject,
                    type="prerequisite",
                    label="prereq",
                )
            )
            if prereq_number not in visited:
                visited.add(prereq_number)
                queue.append((prereq_number, depth + 1))

        # Corequisites only for the root
        if current_subject == root_id:
            for coreq_number in extract_course_numbers(current.corequisites):
                coreq = await _find_offered(store, coreq_number)
                if coreq is None or coreq_number in nodes:
                    continue
                nodes[coreq_number] = _node(coreq, "corequisite")
                edges.append(
                    GraphEdge(
                        id=f"{root_id}<->{coreq_number}",
                        source=root_id,
                        target=coreq_number,
                        type="corequisite",
                        label="coreq",
                    )
                )

    for dependent in await find_required_by(store, root_id):
        nodes.setdefault(dependent.subject_number, _node(dependent, "requiredBy"))
        if root_id in extract_course_numbers(dependent.prerequisites):
            edges.append(
                GraphEdge(
                    id=f"{root_id}->{dependent.subject_number}",
                    source=root_id,
                    target=dependent.subject_number,
                    type="prerequisite",
                    label="prereq for",
                )
            )
        else:
            edges.append(
                GraphEdge(
                    id=f"{root_id}<->{dependent.subject_number}",
                    source=root_id,
                    target=dependent.subject_number,
                    type="corequisite",
                    label="coreq",
                )
            )

    return GraphData(nodes=list(nodes.values()), edges=edges)


def build_network_graph(courses: Iterable[Course], include_isolated: bool = False) -> GraphData:
    """Prerequisite/corequisite network over a whole set of courses (one academic year)"""
    courses = list(courses)
    known = {course.subject_number for course in courses}
    degrees: Dict[str, int] = {course.subject_number: 0 for course in courses}
    edges: List[GraphEdge] = []

    for course in courses:
        for prereq in extract_course_numbers(course.prerequisites):
            if prereq in known:
                edges.append(
                    GraphEdge(
                        id=f"{prereq}->{course.subject_number}",
                        source=prereq,
                        target=course.subject_number,
                        type="prerequisite",
                    )
                )
                degrees[prereq] += 1
                degrees[course.subject_number] += 1

        for coreq in extract_course_numbers(course.corequisites):
            if coreq in known:
                edges.append(
                    GraphEdge(
                        id=f"{course.subject_number}<->{coreq}",
                        source=course.subject_number,
                        target=coreq,
                        type="corequisite",
                    )
                )
                degrees[coreq] += 1
                degrees[course.subject_number] += 1

    nodes: Dict[str, GraphNode] = {}
    for course in courses:
        if not include_isolated and degrees.get(course.subject_number, 0) == 0:
            continue
        node = _node(course, "course")
        node.gir_attributes = list(course.gir_attributes)
        node.is_gir = (
            bool(CORE_GIR_ATTRIBUTES.intersection(course.gir_attributes))
            or course.subject_number in CORE_MATH_SUBJECTS
        )
        nodes[course.subject_number] = node

    return GraphData(nodes=list(nodes.values()), edges=edges)
