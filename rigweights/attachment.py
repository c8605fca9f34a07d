"""Skinning weights for a skeleton embedded in a mesh, computed by heat diffusion."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, Sequence

import numpy as np

from rigweights.sparse import SPDMatrix

logger = logging.getLogger(__name__)

DistanceFunction = Callable[[np.ndarray], float]


class VisibilityTester(Protocol):
    """Anything that can tell whether one point inside the shape sees another."""

    def can_see(self, v1: Sequence[float], v2: Sequence[float]) -> bool: ...


def _normalized(v: np.ndarray) -> np.ndarray | None:
    length = float(np.linalg.norm(v))
    if not length > 0.0:
        return None
    return v / length


def vector_in_cone(v: Sequence[float], normals: Sequence[Sequence[float]]) -> bool:
    """Return whether ``v`` is within 60 degrees of the average of ``normals``."""
    if len(normals) == 0:
        return False
    vec = _normalized(np.asarray(v, dtype=float))
    avg = _normalized(np.sum(np.asarray(normals, dtype=float), axis=0))
    if vec is None or avg is None:
        return False
    return float(vec @ avg) > 0.5


def _proj_to_seg(p: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    seg = b - a
    lensq = float(seg @ seg)
    if lensq == 0.0:
        return a.copy()
    t = min(1.0, max(0.0, float((p - a) @ seg) / lensq))
    return a + t * seg


class DistanceVisibilityTester:
    """Tests visibility by marching along a segment through a signed distance field.

    ``distance`` maps a point to its signed distance from the surface,
    negative inside the shape.
    """

    MAX_VALUE = 0.002

    def __init__(self, distance: DistanceFunction) -> None:
        self.distance = distance

    def _at(self, p: np.ndarray) -> float:
        return float(self.distance(p))

    def can_see(self, v1: Sequence[float], v2: Sequence[float]) -> bool:
        """Return whether the segment from ``v1`` to ``v2`` stays inside the shape.

        Fastest when ``v2`` lies deeper inside than ``v1``.
        """
        a = np.asarray(v1, dtype=float)
        b = np.asarray(v2, dtype=float)
        at_v2 = self._at(b)
        left = float(np.linalg.norm(b - a))
        left_inc = left / 100.0
        diff = (b - a) / 100.0
        cur = a + diff
        while left >= 0.0:
            cur_dist = self._at(cur)
            if cur_dist > self.MAX_VALUE:
                return False
            # The remaining stretch cannot climb back above the threshold.
            if cur_dist + at_v2 + left <= self.MAX_VALUE:
                return True
            cur = cur + diff
            left -= left_inc
        return True


def _apply_transform(transform: Any, point: np.ndarray) -> np.ndarray:
    if callable(transform):
        return np.asarray(transform(point), dtype=float).reshape(3)
    matrix = np.asarray(transform, dtype=float)
    if matrix.shape not in ((4, 4), (3, 4)):
        raise ValueError(f"transform must be callable or a 3x4/4x4 matrix, got {matrix.shape}")
    return matrix[:3, :3] @ point + matrix[:3, 3]


class Attachment:
    """Per-vertex bone weights for a mesh, and linear blend skinning with them.

    ``positions`` are the mesh vertices, ``rings[i]`` the neighbours of vertex
    ``i`` in cyclic order (counter-clockwise seen from outside), ``joints``
    the embedded skeleton joints and ``parents[j]`` the parent of joint ``j``
    (the root's entry is ignored). Bone ``b`` joins joint ``b + 1`` to its
    parent.
    """

    def __init__(
        self,
        positions: Sequence[Sequence[float]],
        rings: Sequence[Sequence[int]],
        joints: Sequence[Sequence[float]],
        parents: Sequence[int],
        tester: VisibilityTester,
        initial_heat_weight: float = 1.0,
    ) -> None:
        pos = np.asarray(positions, dtype=float).reshape(-1, 3)
        match = np.asarray(joints, dtype=float).reshape(-1, 3)
        nv = len(pos)
        bones = len(match) - 1
        if bones < 1:
            raise ValueError("the skeleton needs at least two joints")
        if len(parents) != len(match):
            raise ValueError("there must be one parent entry per joint")
        if len(rings) != nv:
            raise ValueError("there must be one neighbour ring per vertex")
        for i, ring in enumerate(rings):
            if not ring:
                raise ValueError(f"vertex {i} has no neighbours")
            if any(not 0 <= v < nv for v in ring):
                raise ValueError(f"vertex {i} has a neighbour out of range")
        for j in range(1, len(match)):
            if not 0 <= parents[j] < len(match):
                raise ValueError(f"joint {j} has an invalid parent")

        rings = [list(ring) for ring in rings]
        bone_ends = [(match[j], match[parents[j]]) for j in range(1, bones + 1)]

        bone_dists = np.empty((nv, bones))
        bone_vis = np.zeros((nv, bones), dtype=bool)
        for i in range(nv):
            c_pos = pos[i]
            ring = rings[i]
            normals = []
            for j, v in enumerate(ring):
                nxt = ring[(j + 1) % len(ring)]
                n = _normalized(np.cross(pos[v] - c_pos, pos[nxt] - c_pos))
                normals.append(n if n is not None else np.full(3, np.nan))

            projections = [_proj_to_seg(c_pos, a, b) for a, b in bone_ends]
            bone_dists[i] = [np.linalg.norm(c_pos - p) for p in projections]
            min_dist = bone_dists[i].min()
            for b, p in enumerate(projections):
                # Ties are all kept so that equally close bones share the vertex.
                if bone_dists[i, b] > min_dist * 1.0001:
                    continue
                bone_vis[i, b] = bool(tester.can_see(c_pos, p)) and vector_in_cone(
                    c_pos - p, normals
                )

        # -L w + H w = H I, i.e. (H - L) w = H I with (H - L) = D A, D = diag(1 / area).
        closest = np.argmin(bone_dists, axis=1)
        rows: list[list[tuple[int, float]]] = []
        d = np.zeros(nv)
        h = np.zeros(nv)
        for i in range(nv):
            ring = rings[i]
            k = len(ring)
            p_i = pos[i]
            area = sum(
                float(np.linalg.norm(np.cross(pos[ring[j]] - p_i, pos[ring[(j + 1) % k]] - p_i)))
                for j in range(k)
            )
            d[i] = 1.0 / (1e-10 + area)

            min_dist = bone_dists[i, closest[i]]
            visible = bone_vis[i] & (bone_dists[i] <= min_dist * 1.00001)
            h[i] = int(visible.sum()) * initial_heat_weight / (1e-8 + min_dist) ** 2

            total = 0.0
            row: list[tuple[int, float]] = []
            for j, v in enumerate(ring):
                p_prev = pos[ring[(j - 1) % k]]
                p_next = pos[ring[(j + 1) % k]]
                v1, v2 = p_i - p_prev, pos[v] - p_prev
                v3, v4 = p_i - p_next, pos[v] - p_next
                cot1 = float(v1 @ v2) / (1e-6 + float(np.linalg.norm(np.cross(v1, v2))))
                cot2 = float(v3 @ v4) / (1e-6 + float(np.linalg.norm(np.cross(v3, v4))))
                total += cot1 + cot2
                if v < i:
                    row.append((v, -cot1 - cot2))
            row.append((i, total + h[i] / d[i]))
            rows.append(row)

        factored = SPDMatrix(rows).factor()

        nzweights: list[list[tuple[int, float]]] = [[] for _ in range(nv)]
        for b in range(bones):
            rhs = [
                h[i] / d[i]
                if bone_vis[i, b] and bone_dists[i, b] <= bone_dists[i, closest[i]] * 1.00001
                else 0.0
                for i in range(nv)
            ]
            for i, value in enumerate(factored.solve(rhs)):
                value = min(value, 1.0)
                if value > 1e-8:
                    nzweights[i].append((b, value))

        weights = np.zeros((nv, bones))
        for i, entries in enumerate(nzweights):
            total = sum(w for _, w in entries)
            nzweights[i] = [(b, w / total) for b, w in entries]
            for b, w in nzweights[i]:
                weights[i, b] = w

        self._weights = weights
        self._nzweights = nzweights

    @property
    def bone_count(self) -> int:
        """The number of bones weights are given for."""
        return self._weights.shape[1]

    def __len__(self) -> int:
        return len(self._weights)

    def weights(self, i: int) -> np.ndarray:
        """Return the weight of every bone at vertex ``i``."""
        if not -len(self._weights) <= i < len(self._weights):
            raise IndexError(f"vertex {i} out of range")
        return self._weights[i].copy()

    def deform(
        self, positions: Sequence[Sequence[float]], transforms: Sequence[Any]
    ) -> np.ndarray:
        """Return vertex positions moved by the weighted blend of bone transforms.

        Each transform is a callable on points or a 3x4/4x4 affine matrix.
        """
        pos = np.asarray(positions, dtype=float).reshape(-1, 3)
        if len(pos) != len(self._weights):
            raise ValueError(
                f"mesh has {len(pos)} vertices, weights are for {len(self._weights)}"
            )
        if len(transforms) < self.bone_count:
            raise ValueError("there must be one transform per bone")
        out = np.zeros_like(pos)
        for i, entries in enumerate(self._nzweights):
            for b, w in entries:
                out[i] += _apply_transform(transforms[b], pos[i]) * w
        return out