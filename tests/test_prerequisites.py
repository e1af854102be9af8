import asyncio

import pytest

from course_recommender.exceptions import NotFoundError
from course_recommender.services.prerequisites import (
    build_graph_data,
    build_network_graph,
    extract_course_numbers,
    find_required_by,
    get_prerequisite_chain,
    get_requirement_graph,
    mentions_course,
)
from tests.fakes import FakeCourseStore, make_course


def test_extract_course_numbers_in_order():
    text = "Prereq: 6.100A and 18.06; Coreq: 8.02 or cc.801"
    assert extract_course_numbers(text) == ["6.100A", "18.06", "8.02", "CC.801"]


def test_extract_course_numbers_unique():
    assert extract_course_numbers("6.1010, 6.1010 or 6.1010") == ["6.1010"]


@pytest.mark.parametrize("text", [None, "", "Permission of instructor"])
def test_extract_course_numbers_empty(text):
    assert extract_course_numbers(text) == []


def test_prefix_number_is_not_a_mention():
    dependent = make_course("6.2000", prerequisites="6.1000")
    assert not mentions_course(dependent, "6.100")
    assert mentions_course(dependent, "6.1000")


def test_required_by_ignores_prefix_collisions():
    real = make_course("6.2000", prerequisites="6.100")
    collision = make_course("6.2100", prerequisites="6.1000")
    via_coreq = make_course("6.2200", corequisites="6.100 or 6.1010")
    store = FakeCourseStore([real, collision, via_coreq])
    required_by = asyncio.run(find_required_by(store, "6.100"))
    assert [c.subject_number for c in required_by] == ["6.2000", "6.2200"]


def test_requirement_graph(store, course):
    graph = asyncio.run(get_requirement_graph(store, course("6.1910").course_id))
    assert [c.subject_number for c in graph.prerequisites] == ["6.100A"]
    assert graph.corequisites == []  # 8.02 is not in the catalog
    assert [c.subject_number for c in graph.required_by] == ["6.1800"]


def test_requirement_graph_unknown_course(store):
    with pytest.raises(NotFoundError):
        asyncio.run(get_requirement_graph(store, "missing"))


def test_prerequisite_chain_depths_and_paths(store, course):
    chain = asyncio.run(get_prerequisite_chain(store, course("6.1800").course_id, max_depth=3))
    entries = {entry.course.subject_number: entry for entry in chain.values()}
    assert entries["6.1800"].depth == 0
    assert entries["6.1910"].depth == 1
    assert entries["6.100A"].depth == 2
    assert entries["6.100A"].path == ["6.1800", "6.1910", "6.100A"]


def test_prerequisite_chain_respects_max_depth(store, course):
    chain = asyncio.run(get_prerequisite_chain(store, course("6.1800").course_id, max_depth=1))
    assert [entry.course.subject_number for entry in chain.values()] == ["6.1800"]


def test_prerequisite_chain_terminates_on_cycles():
    a = make_course("6.1001", prerequisites="6.1002")
    b = make_course("6.1002", prerequisites="6.1003")
    c = make_course("6.1003", prerequisites="6.1001")
    store = FakeCourseStore([a, b, c])
    chain = asyncio.run(get_prerequisite_chain(store, a.course_id, max_depth=10))
    assert len(chain) == 3


def test_graph_data_node_types_and_edges(store):
    graph = asyncio.run(build_graph_data(store, "6.1910", max_depth=2))
    types = {node.id: node.type for node in graph.nodes}
    assert types == {"6.1910": "root", "6.100A": "prerequisite", "6.1800": "requiredBy"}
    edge_ids = {edge.id for edge in graph.edges}
    assert edge_ids == {"6.100A->6.1910", "6.1910->6.1800"}


def test_graph_data_resolves_alias(store):
    graph = asyncio.run(build_graph_data(store, "6.0001", max_depth=1))
    root = [node for node in graph.nodes if node.type == "root"]
    assert root[0].subject_number == "6.100A"


def test_graph_data_unknown_subject(store):
    graph = asyncio.run(build_graph_data(store, "99.999"))
    assert graph.nodes == [] and graph.edges == []


def test_graph_data_corequisite_edge():
    root = make_course("6.2000", corequisites="6.1010")
    coreq = make_course("6.1010")
    graph = asyncio.run(build_graph_data(FakeCourseStore([root, coreq]), "6.2000"))
    assert {node.id: node.type for node in graph.nodes}["6.1010"] == "corequisite"
    assert graph.edges[0].id == "6.2000<->6.1010"


def test_network_graph(courses):
    graph = build_network_graph(courses.values())
    node_ids = {node.id for node in graph.nodes}
    assert "6.3900" in node_ids and "18.06" in node_ids
    assert "6.UR" not in node_ids  # isolated
    linear_algebra = next(node for node in graph.nodes if node.id == "18.06")
    assert linear_algebra.is_gir
    assert any(edge.id == "18.06->6.3900" for edge in graph.edges)


def test_network_graph_with_isolated(courses):
    graph = build_network_graph(courses.values(), include_isolated=True)
    assert "6.UR" in {node.id for node in graph.nodes}


def test_required_by_keeps_latest_offering_per_subject(store, course):
    required_by = asyncio.run(find_required_by(store, "6.100A"))
    subjects = [c.subject_number for c in required_by]
    assert sorted(subjects) == ["6.1010", "6.1210", "6.1910"]
    algorithms = next(c for c in required_by if c.subject_number == "6.1210")
    assert algorithms.course_id == course("6.1210").course_id


def test_graph_edge_ids_unique_with_multi_year_dependents(store):
    graph = asyncio.run(build_graph_data(store, "6.100A", max_depth=1))
    edge_ids = [edge.id for edge in graph.edges]
    assert len(edge_ids) == len(set(edge_ids))
    assert "6.100A->6.1210" in edge_ids


def test_prerequisite_chain_expands_one_offering_per_subject():
    old = make_course("6.1200", academic_year=2023)
    new = make_course("6.1200", academic_year=2025)
    root = make_course("6.1210", prerequisites="6.1200")
    chain = asyncio.run(get_prerequisite_chain(FakeCourseStore([old, new, root]), root.course_id))
    assert [entry.course.course_id for entry in chain.values()] == [root.course_id, new.course_id]
