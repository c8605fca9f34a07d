"""Intersecting a triangle mesh with lines of a fixed direction."""

from __future__ import annotations

from typing import Sequence

import numpy as np

_CELLS = 200


def _basis(direction: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return two unit vectors orthogonal to ``direction`` and to each other."""
    axis = np.zeros(3)
    axis[int(np.argmin(np.abs(direction)))] = 1.0
    v1 = np.cross(direction, axis)
    v1 /= np.linalg.norm(v1)
    v2 = np.cross(direction, v1)
    return v1, v2


class Intersector:
    """Finds where lines parallel to a fixed direction cross a triangle mesh.

    The mesh is projected onto the plane orthogonal to the direction and its
    triangles are binned on a grid, so each query only tests nearby triangles.
    """

    def __init__(
        self,
        vertices: Sequence[Sequence[float]],
        triangles: Sequence[Sequence[int]],
        direction: Sequence[float],
    ) -> None:
        verts = np.asarray(vertices, dtype=float).reshape(-1, 3)
        tris = np.asarray(triangles, dtype=int).reshape(-1, 3)
        if tris.size and (tris.min() < 0 or tris.max() >= len(verts)):
            raise ValueError("triangle refers to a missing vertex")
        d = np.asarray(direction, dtype=float).reshape(3)
        length = float(np.linalg.norm(d))
        if not length > 0.0:
            raise ValueError("direction must be a non-zero vector")

        self._dir = d / length
        self._v1, self._v2 = _basis(self._dir)
        self._vertices = verts
        self._triangles = tris
        self._points = np.column_stack((verts @ self._v1, verts @ self._v2))
        if len(verts):
            self._lo = self._points.min(axis=0)
            self._hi = self._points.max(axis=0)
        else:
            self._lo = self._hi = None

        self._cells: dict[tuple[int, int], list[int]] = {}
        normals = []
        for t, (a, b, c) in enumerate(tris):
            tri_pts = self._points[[a, b, c]]
            from_x, from_y = self._cell(tri_pts.min(axis=0))
            to_x, to_y = self._cell(tri_pts.max(axis=0))
            for y in range(from_y, to_y + 1):
                for x in range(from_x, to_x + 1):
                    self._cells.setdefault((x, y), []).append(t)

            cross = np.cross(verts[b] - verts[a], verts[c] - verts[a])
            norm = float(np.linalg.norm(cross))
            normal = cross / norm if norm > 0.0 else np.zeros(3)
            along = float(normal @ self._dir)
            # Zero when the triangle is parallel to the direction; otherwise
            # prescaled so that a dot product gives the distance along the line.
            normals.append(np.zeros(3) if abs(along) <= 1e-8 else normal / along)
        self._normals = np.array(normals).reshape(-1, 3)

    @property
    def direction(self) -> np.ndarray:
        """The unit direction of the intersecting lines."""
        return self._dir.copy()

    def _cell(self, pt: np.ndarray) -> tuple[int, int]:
        size = self._hi - self._lo
        rel = np.divide(pt - self._lo, size, out=np.zeros(2), where=size > 0)
        x, y = (min(max(int(v * _CELLS), 0), _CELLS - 1) for v in rel)
        return x, y

    def intersect_with_indices(
        self, point: Sequence[float]
    ) -> tuple[list[np.ndarray], list[int]]:
        """Return the crossings of the line through ``point`` and the triangles crossed."""
        pt = np.asarray(point, dtype=float).reshape(3)
        hits: list[np.ndarray] = []
        indices: list[int] = []
        if self._lo is None:
            return hits, indices
        pt2 = np.array([pt @ self._v1, pt @ self._v2])
        if np.any(pt2 < self._lo) or np.any(pt2 > self._hi):
            return hits, indices

        for t in self._cells.get(self._cell(pt2), ()):
            idx = self._triangles[t]
            signs = set()
            for a, b in ((idx[0], idx[1]), (idx[1], idx[2]), (idx[2], idx[0])):
                d1 = self._points[b] - self._points[a]
                d2 = pt2 - self._points[a]
                signs.add(d1[0] * d2[1] - d1[1] * d2[0] >= 0.0)
            if len(signs) != 1:
                continue
            indices.append(t)

            normal = self._normals[t]
            if not normal.any():
                # Line lies in the triangle's plane: use the centroid's projection.
                center = self._vertices[idx].mean(axis=0)
                hits.append(pt + self._dir * float((center - pt) @ self._dir))
                continue
            hits.append(pt + self._dir * float(normal @ (self._vertices[idx[0]] - pt)))
        return hits, indices

    def intersect(self, point: Sequence[float]) -> list[np.ndarray]:
        """Return the points where the line through ``point`` crosses the mesh."""
        return self.intersect_with_indices(point)[0]