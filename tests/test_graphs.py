import math

import pytest
from hypothesis import given, settings, strategies as st

from rigweights.graphs import AllShortestPather, PtGraph, ShortestPather


def make_graph(verts, pairs):
    edges = [[] for _ in verts]
    for a, b in pairs:
        edges[a].append(b)
        edges[b].append(a)
    return PtGraph(verts=verts, edges=edges)


@st.composite
def graphs(draw):
    n = draw(st.integers(min_value=1, max_value=7))
    coord = st.integers(min_value=-5, max_value=5)
    verts = [
        (float(draw(coord)), float(draw(coord)), float(draw(coord))) for _ in range(n)
    ]
    pairs = set()
    for i in range(n):
        for j in range(i):
            if draw(st.booleans()):
                pairs.add((i, j))
    return make_graph(verts, sorted(pairs))


def path_length(graph, path):
    return sum(
        math.dist(graph.verts[a], graph.verts[b]) for a, b in zip(path, path[1:])
    )


def test_integrity_valid_graph():
    g = make_graph([(0, 0, 0), (1, 0, 0), (0, 1, 0)], [(0, 1), (1, 2)])
    assert g.integrity_check() is True


def test_integrity_size_mismatch():
    g = PtGraph(verts=[(0, 0, 0)], edges=[[], []])
    assert g.integrity_check() is False


@pytest.mark.parametrize(
    "edges",
    [
        [[0], []],  # self edge
        [[1], []],  # missing reverse
        [[1, 1], [0]],  # duplicate
        [[2], [0]],  # out of range
        [[-1], []],  # negative
    ],
)
def test_integrity_bad_edges(edges):
    g = PtGraph(verts=[(0, 0, 0), (1, 0, 0)], edges=edges)
    assert g.integrity_check() is False


def test_root_has_zero_distance_and_trivial_path():
    g = make_graph([(0, 0, 0), (1, 0, 0)], [(0, 1)])
    sp = ShortestPather(g, 1)
    assert sp.dist_from(1) == 0.0
    assert sp.path_from(1) == [1]


def test_shortcut_is_preferred():
    verts = [(0, 0, 0), (3, 0, 0), (3, 4, 0)]
    g = make_graph(verts, [(0, 1), (1, 2), (0, 2)])
    sp = ShortestPather(g, 2)
    assert sp.path_from(0) == [0, 2]
    assert sp.dist_from(0) == pytest.approx(math.dist(verts[0], verts[2]))


def test_detour_when_no_shortcut():
    verts = [(0, 0, 0), (3, 0, 0), (3, 4, 0)]
    g = make_graph(verts, [(0, 1), (1, 2)])
    sp = ShortestPather(g, 2)
    assert sp.path_from(0) == [0, 1, 2]
    assert sp.dist_from(0) == pytest.approx(
        math.dist(verts[0], verts[1]) + math.dist(verts[1], verts[2])
    )


def test_unreachable_vertex():
    g = make_graph([(0, 0, 0), (1, 0, 0), (5, 5, 5)], [(0, 1)])
    sp = ShortestPather(g, 0)
    assert sp.dist_from(2) == -1
    assert sp.path_from(2) == [2]


def test_all_pather_direction():
    verts = [(0, 0, 0), (1, 0, 0), (2, 0, 0)]
    paths = AllShortestPather(make_graph(verts, [(0, 1), (1, 2)]))
    assert paths.path(0, 2) == [0, 1, 2]
    assert paths.path(2, 0) == [2, 1, 0]
    assert paths.dist(0, 2) == pytest.approx(paths.dist(2, 0))


@settings(max_examples=80, deadline=None)
@given(graphs())
def test_paths_are_consistent(g):
    paths = AllShortestPather(g)
    n = len(g.verts)
    for a in range(n):
        for b in range(n):
            d = paths.dist(a, b)
            p = paths.path(a, b)
            assert p[0] == a
            if d < 0:
                assert p == [a]
                assert paths.dist(b, a) < 0
                continue
            assert p[-1] == b
            for u, v in zip(p, p[1:]):
                assert v in g.edges[u]
            assert path_length(g, p) == pytest.approx(d)
            assert paths.dist(b, a) == pytest.approx(d)


@settings(max_examples=80, deadline=None)
@given(graphs())
def test_distances_satisfy_edge_relaxation(g):
    sp = ShortestPather(g, 0)
    for u, adjacent in enumerate(g.edges):
        for v in adjacent:
            du, dv = sp.dist_from(u), sp.dist_from(v)
            assert (du < 0) == (dv < 0)
            if du >= 0:
                assert du <= dv + math.dist(g.verts[u], g.verts[v]) + 1e-9