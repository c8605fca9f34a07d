"""Sparsifying medial-surface samples and connecting them into a graph."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Sequence

from rigweights.graphs import PtGraph

DistanceFunction = Callable[[tuple[float, ...]], float]


@dataclass(frozen=True)
class Sphere:
    """A sphere inside the shape: a medial sample and its distance to the surface."""

    center: tuple[float, ...]
    radius: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", tuple(float(c) for c in self.center))
        object.__setattr__(self, "radius", float(self.radius))


def _distsq(a: Sequence[float], b: Sequence[float]) -> float:
    return sum((x - y) ** 2 for x, y in zip(a, b))


def pack_spheres(samples: Sequence[Sphere], max_spheres: int) -> list[Sphere]:
    """Keep the samples whose centers lie outside every sphere kept before them.

    ``samples`` should be sorted by decreasing radius. Selection stops once
    more than ``max_spheres`` spheres have been kept.
    """
    out: list[Sphere] = []
    for sample in samples:
        if any(_distsq(kept.center, sample.center) < kept.radius**2 for kept in out):
            continue
        out.append(sample)
        if len(out) > max_spheres:
            break
    return out


def get_max_dist(
    distance: DistanceFunction,
    v1: Sequence[float],
    v2: Sequence[float],
    max_allowed: float,
) -> float:
    """Return the largest signed distance at 101 points along the segment.

    Sampling stops as soon as the running maximum exceeds ``max_allowed``.
    """
    start = tuple(float(c) for c in v1)
    diff = tuple((float(b) - a) / 100.0 for a, b in zip(start, v2))
    max_dist = -1e37
    for k in range(101):
        pt = tuple(a + d * k for a, d in zip(start, diff))
        max_dist = max(max_dist, distance(pt))
        if max_dist > max_allowed:
            break
    return max_dist


def connect_samples(distance: DistanceFunction, spheres: Sequence[Sphere]) -> PtGraph:
    """Build a graph on the sphere centers.

    Two spheres are joined if they overlap, or if no other center lies in the
    ball having their centers as diameter and the segment between them stays
    well inside the shape.
    """
    graph = PtGraph(
        verts=[s.center for s in spheres], edges=[[] for _ in spheres]
    )

    def join(i: int, j: int) -> None:
        graph.edges[i].append(j)
        graph.edges[j].append(i)

    for i, si in enumerate(spheres):
        for j in range(i):
            sj = spheres[j]
            ctr = tuple((a + b) * 0.5 for a, b in zip(si.center, sj.center))
            radsq = _distsq(si.center, sj.center) * 0.25
            if radsq < (si.radius + sj.radius) ** 2 * 0.25:
                join(i, j)
                continue
            if any(
                k not in (i, j) and _distsq(sk.center, ctr) < radsq
                for k, sk in enumerate(spheres)
            ):
                continue  # Gabriel condition violated
            max_allowed = -0.5 * min(si.radius, sj.radius)
            if get_max_dist(distance, si.center, sj.center, max_allowed) < max_allowed:
                join(i, j)
    return graph