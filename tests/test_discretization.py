import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from rigweights.discretization import (
    Sphere,
    connect_samples,
    get_max_dist,
    pack_spheres,
)


def deep_inside(_point):
    return -10.0


def on_surface(_point):
    return 0.0


def test_sphere_normalizes_fields():
    s = Sphere([1, 2, 3], 2)
    assert s.center == (1.0, 2.0, 3.0)
    assert s.radius == 2.0


def test_pack_spheres_skips_centers_inside_kept_spheres():
    big = Sphere((0, 0, 0), 1.0)
    inner = Sphere((0.5, 0, 0), 0.5)
    far = Sphere((3, 0, 0), 0.4)
    assert pack_spheres([big, inner, far], 10) == [big, far]


def test_pack_spheres_stops_after_exceeding_limit():
    samples = [Sphere((10.0 * i, 0, 0), 1.0) for i in range(10)]
    out = pack_spheres(samples, 3)
    assert len(out) == 4
    assert out == samples[:4]


@given(
    st.lists(
        st.tuples(
            st.floats(-5, 5), st.floats(-5, 5), st.floats(-5, 5), st.floats(0.01, 3)
        ),
        max_size=30,
    )
)
def test_packed_centers_lie_outside_earlier_spheres(raw):
    samples = sorted((Sphere(c[:3], c[3]) for c in raw), key=lambda s: -s.radius)
    out = pack_spheres(samples, 1000)
    assert all(s in samples for s in out)
    for i, s in enumerate(out):
        for kept in out[:i]:
            d2 = sum((a - b) ** 2 for a, b in zip(s.center, kept.center))
            assert d2 >= kept.radius**2


def test_get_max_dist_over_whole_segment():
    result = get_max_dist(lambda p: p[0], (0, 0, 0), (1, 0, 0), 10.0)
    assert result == pytest.approx(1.0)


def test_get_max_dist_stops_early():
    calls = []

    def dist(p):
        calls.append(p[0])
        return p[0]

    result = get_max_dist(dist, (0, 0, 0), (1, 0, 0), 0.5)
    assert result > 0.5
    assert result == max(calls)
    assert len(calls) < 101
    assert all(c <= 0.5 for c in calls[:-1])


def test_overlapping_spheres_are_joined_regardless_of_distance():
    spheres = [Sphere((0, 0, 0), 1.0), Sphere((1.5, 0, 0), 1.0)]
    graph = connect_samples(lambda p: 1.0, spheres)
    assert graph.edges == [[1], [0]]


def test_separate_spheres_joined_only_when_segment_is_inside():
    spheres = [Sphere((0, 0, 0), 0.5), Sphere((3, 0, 0), 0.5)]
    assert connect_samples(deep_inside, spheres).edges == [[1], [0]]
    assert connect_samples(on_surface, spheres).edges == [[], []]


def test_gabriel_condition_blocks_edge():
    a = Sphere((0, 0, 0), 0.5)
    b = Sphere((4, 0, 0), 0.5)
    c = Sphere((2, 0.5, 0), 0.1)
    graph = connect_samples(deep_inside, [a, b, c])
    assert 1 not in graph.edges[0]
    assert sorted(graph.edges[2]) == [0, 1]
    assert graph.integrity_check()
    assert graph.verts == [a.center, b.center, c.center]


@settings(max_examples=30)
@given(
    st.lists(
        st.tuples(
            st.floats(-3, 3), st.floats(-3, 3), st.floats(-3, 3), st.floats(0.05, 1)
        ),
        max_size=8,
    ),
    st.sampled_from([deep_inside, on_surface]),
)
def test_connected_graph_is_consistent(raw, distance):
    spheres = [Sphere(c[:3], c[3]) for c in raw]
    graph = connect_samples(distance, spheres)
    assert len(graph.verts) == len(spheres)
    assert graph.integrity_check()