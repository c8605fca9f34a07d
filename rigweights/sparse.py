"""Sparse symmetric positive definite matrices and their Cholesky factors."""

from __future__ import annotations

import heapq
import logging
import math
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)

Row = list[tuple[int, float]]


class NotPositiveDefiniteError(ValueError):
    """Raised when a matrix is not positive definite or too ill-conditioned to factor."""


class LLTMatrix:
    """A sparse Cholesky factor ``L`` of a permuted SPD matrix, ready for solving."""

    def __init__(
        self,
        rows: Iterable[Iterable[tuple[int, float]]] = (),
        diag: Iterable[float] = (),
        perm: Iterable[int] = (),
    ) -> None:
        self._rows: list[Row] = [list(row) for row in rows]
        self._diag: list[float] = list(diag)
        self._perm: list[int] = list(perm)
        self._transposed: list[Row] = [[] for _ in self._rows]
        for i, row in enumerate(self._rows):
            for j, value in row:
                self._transposed[j].append((i, value))

    def size(self) -> int:
        """Return the dimension of the factored matrix."""
        return len(self._rows)

    def __len__(self) -> int:
        return self.size()

    def solve(self, b: Sequence[float]) -> list[float]:
        """Return ``x`` with ``A x = b`` for the matrix ``A`` this factor came from."""
        n = self.size()
        if len(b) != n:
            raise ValueError(f"right-hand side has length {len(b)}, expected {n}")

        bp = [0.0] * n
        for i, value in enumerate(b):
            bp[self._perm[i]] = float(value)

        # L y = b
        for i, (row, d) in enumerate(zip(self._rows, self._diag)):
            acc = bp[i]
            for j, value in row:
                acc -= bp[j] * value
            bp[i] = acc / d

        # L^T x = y
        for i in reversed(range(n)):
            acc = bp[i]
            for j, value in self._transposed[i]:
                acc -= bp[j] * value
            bp[i] = acc / self._diag[i]

        return [bp[p] for p in self._perm]


class SPDMatrix:
    """A sparse symmetric positive definite matrix stored as its lower triangle by rows.

    Row ``i`` lists ``(column, value)`` pairs with ``column <= i``; the diagonal
    entry must be present.
    """

    def __init__(self, rows: Iterable[Iterable[tuple[int, float]]]) -> None:
        self._rows: list[Row] = [
            sorted((int(col), float(value)) for col, value in row) for row in rows
        ]

    def __len__(self) -> int:
        return len(self._rows)

    def compute_perm(self) -> list[int]:
        """Return a minimum-degree fill-reducing permutation: ``perm[vertex] = position``."""
        n = len(self._rows)
        neighbors: list[set[int]] = [set() for _ in range(n)]
        for i, row in enumerate(self._rows):
            for j, _ in row[:-1]:
                neighbors[i].add(j)
                neighbors[j].add(i)

        heap = [(len(nb), i) for i, nb in enumerate(neighbors)]
        heapq.heapify(heap)
        eliminated = [False] * n
        order: list[int] = []

        while heap:
            degree, cur = heapq.heappop(heap)
            if eliminated[cur] or degree != len(neighbors[cur]):
                continue  # stale entry
            eliminated[cur] = True
            order.append(cur)

            nb = list(neighbors[cur])
            for v in nb:
                neighbors[v].discard(cur)
            for idx, a in enumerate(nb):
                for b in nb[:idx]:
                    neighbors[a].add(b)
                    neighbors[b].add(a)
            for v in nb:
                heapq.heappush(heap, (len(neighbors[v]), v))

        perm = [0] * n
        for position, vertex in enumerate(order):
            perm[vertex] = position
        return perm

    def factor(self) -> LLTMatrix:
        """Return the sparse Cholesky factorization of this matrix."""
        n = len(self._rows)
        logger.debug("Factoring size = %d", n)
        perm = self.compute_perm()

        pm: list[Row] = [[] for _ in range(n)]
        for i, row in enumerate(self._rows):
            for col, value in row:
                ni, nidx = perm[i], perm[col]
                if ni >= nidx:
                    pm[ni].append((nidx, value))
                else:
                    pm[nidx].append((ni, value))
        for row in pm:
            row.sort()

        cols: list[list[list[float]]] = [[] for _ in range(n)]
        dinv = [0.0] * n
        diag = [0.0] * n
        out_rows: list[Row] = [[] for _ in range(n)]
        added = [False] * n

        for i in range(n):
            off_diag = pm[i][:-1]
            columns_added = []
            for col, _ in off_diag:
                added[col] = True
                columns_added.append(col)
            for idx in columns_added:  # grows while iterating: fill-in closure
                for entry in cols[idx]:
                    cur_col = int(entry[0])
                    if not added[cur_col]:
                        added[cur_col] = True
                        columns_added.append(cur_col)
            columns_added.sort()

            for col in columns_added:
                added[col] = False
                cols[col].append([i, 0.0])

            for col, value in off_diag:
                cols[col][-1][1] = value * dinv[col]

            for idx in columns_added:
                column = cols[idx]
                current = column[-1][1]
                for row_idx, value in column[:-1]:
                    tidx = int(row_idx)
                    cols[tidx][-1][1] -= value * current * dinv[tidx]

            d = pm[i][-1][1] if pm[i] else 0.0
            for col in columns_added:
                val = cols[col][-1][1]
                d -= val * val
                out_rows[i].append((col, val))
            if d <= 0.0:
                raise NotPositiveDefiniteError(
                    "matrix is not positive definite (or is ill-conditioned)"
                )
            diag[i] = math.sqrt(d)
            dinv[i] = 1.0 / diag[i]

        return LLTMatrix(out_rows, diag, perm)