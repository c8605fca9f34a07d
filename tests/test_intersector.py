import numpy as np
import pytest

from rigweights.intersector import Intersector


def cube():
    verts = [(i & 1, (i >> 1) & 1, (i >> 2) & 1) for i in range(8)]
    tris = [
        (0, 1, 5), (0, 5, 4),
        (2, 3, 7), (2, 7, 6),
        (0, 2, 6), (0, 6, 4),
        (1, 3, 7), (1, 7, 5),
        (0, 1, 3), (0, 3, 2),
        (4, 5, 7), (4, 7, 6),
    ]
    return verts, tris


FLAT = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)]
TILTED = [(0.0, 0.0, 0.0), (1.0, 0.0, 1.0), (0.0, 1.0, 2.0)]


def test_vertical_line_hits_flat_triangle():
    s = Intersector(FLAT, [(0, 1, 2)], (0, 0, 1))
    hits = s.intersect((0.2, 0.2, 5.0))
    assert len(hits) == 1
    assert np.allclose(hits[0], (0.2, 0.2, 0.0))


def test_line_outside_mesh_has_no_hits():
    s = Intersector(FLAT, [(0, 1, 2)], (0, 0, 1))
    assert s.intersect((2.0, 2.0, 5.0)) == []
    assert s.intersect((0.8, 0.8, 0.0)) == []


def test_direction_is_normalized():
    s = Intersector(FLAT, [(0, 1, 2)], (0, 0, 7))
    assert np.allclose(s.direction, (0, 0, 1))


def test_zero_direction_is_rejected():
    with pytest.raises(ValueError):
        Intersector(FLAT, [(0, 1, 2)], (0, 0, 0))


def test_missing_vertex_is_rejected():
    with pytest.raises(ValueError):
        Intersector(FLAT, [(0, 1, 3)], (0, 0, 1))


def test_empty_mesh_has_no_hits():
    s = Intersector([], [], (0, 1, 0))
    assert s.intersect((0.0, 0.0, 0.0)) == []


def test_line_through_cube_crosses_top_and_bottom():
    verts, tris = cube()
    s = Intersector(verts, tris, (0, 1, 0))
    hits, indices = s.intersect_with_indices((0.3, 5.0, 0.6))
    assert len(hits) == 2
    ys = sorted(float(h[1]) for h in hits)
    assert ys == pytest.approx([0.0, 1.0])
    for h in hits:
        assert h[0] == pytest.approx(0.3)
        assert h[2] == pytest.approx(0.6)
    crossed = {tuple(tris[i]) for i in indices}
    assert all(
        all(verts[v][1] == verts[tri[0]][1] for v in tri) for tri in crossed
    )


def test_hit_on_tilted_triangle_lies_on_its_plane():
    s = Intersector(TILTED, [(0, 1, 2)], (0, 0, 1))
    (hit,) = s.intersect((0.25, 0.25, 10.0))
    assert hit[0] == pytest.approx(0.25)
    assert hit[1] == pytest.approx(0.25)
    assert hit[2] == pytest.approx(hit[0] + 2 * hit[1])


@pytest.mark.parametrize("weights", [(0.2, 0.3, 0.5), (0.6, 0.2, 0.2), (1 / 3, 1 / 3, 1 / 3)])
@pytest.mark.parametrize("direction", [(1.0, 2.0, 3.0), (0.0, 0.0, -1.0), (-0.5, 0.1, 1.0)])
def test_oblique_line_recovers_barycentric_point(weights, direction):
    s = Intersector(TILTED, [(0, 1, 2)], direction)
    target = sum(w * np.array(v) for w, v in zip(weights, TILTED))
    start = target + 4.0 * np.asarray(direction)
    hits, indices = s.intersect_with_indices(start)
    assert indices == [0]
    assert np.allclose(hits[0], target)


def test_line_in_triangle_plane_projects_centroid():
    verts = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0)]
    s = Intersector(verts, [(0, 1, 2)], (1, 0, 0))
    hits = s.intersect((5.0, 0.0, 0.5))
    assert len(hits) == 1
    assert np.allclose(hits[0], (1 / 3, 0.0, 0.5))