"""Point graphs and shortest paths on them."""

from __future__ import annotations

import heapq
import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

logger = logging.getLogger(__name__)


@dataclass
class PtGraph:
    """An undirected graph whose vertices are points in space."""

    verts: list[Sequence[float]] = field(default_factory=list)
    edges: list[list[int]] = field(default_factory=list)

    def integrity_check(self) -> bool:
        """Return whether the adjacency lists are consistent and symmetric."""

        def fail(reason: str) -> bool:
            logger.warning("Graph integrity error: %s", reason)
            return False

        if len(self.verts) != len(self.edges):
            return fail("vertex and edge list sizes differ")
        n = len(self.edges)
        for i, adjacent in enumerate(self.edges):
            seen: set[int] = set()
            for cur in adjacent:
                if cur < 0 or cur >= n:
                    return fail(f"edge {i}-{cur} out of range")
                if cur == i:
                    return fail(f"self edge at {i}")
                if i not in self.edges[cur]:
                    return fail(f"edge {i}-{cur} has no reverse")
                if cur in seen:
                    return fail(f"duplicate edge {i}-{cur}")
                seen.add(cur)
        return True


class ShortestPather:
    """Shortest paths from every vertex of a graph to a fixed root."""

    def __init__(self, graph: PtGraph, root: int) -> None:
        size = len(graph.verts)
        self._prev = [-1] * size
        self._dist = [-1.0] * size
        done = [False] * size

        todo: list[tuple[float, int, int]] = [(0.0, root, -1)]
        while todo:
            dist, node, prev = heapq.heappop(todo)
            if done[node]:
                continue
            done[node] = True
            self._prev[node] = prev
            self._dist[node] = dist
            for other in graph.edges[node]:
                if not done[other]:
                    step = math.dist(graph.verts[node], graph.verts[other])
                    heapq.heappush(todo, (dist + step, other, node))

    def path_from(self, vtx: int) -> list[int]:
        """Return the vertices on the shortest path from ``vtx`` to the root."""
        out = [vtx]
        while self._prev[vtx] >= 0:
            vtx = self._prev[vtx]
            out.append(vtx)
        return out

    def dist_from(self, vtx: int) -> float:
        """Return the path length from ``vtx`` to the root, or -1 if unreachable."""
        return self._dist[vtx]


class AllShortestPather:
    """Shortest paths between every pair of vertices of a graph."""

    def __init__(self, graph: PtGraph | None = None) -> None:
        self._paths = (
            [ShortestPather(graph, i) for i in range(len(graph.verts))]
            if graph is not None
            else []
        )

    def path(self, start: int, end: int) -> list[int]:
        """Return the vertices on the shortest path from ``start`` to ``end``."""
        return self._paths[end].path_from(start)

    def dist(self, start: int, end: int) -> float:
        """Return the shortest path length between two vertices, or -1 if none."""
        return self._paths[end].dist_from(start)