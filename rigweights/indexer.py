"""Locating the leaf of a quadtree or octree that contains a point.

Points are given in the unit square or cube. A node is any object with a
``children`` attribute: an empty sequence (or ``None``) for a leaf, otherwise
``2 ** dim`` children. Child ``i`` covers the upper half along axis ``a``
exactly when bit ``a`` of ``i`` is set.
"""

from __future__ import annotations

from typing import Any, Sequence

_BITS_2D = 15
_BITS_3D = 10
_SCALE_2D = 32767.999
_SCALE_3D = 1023.999


def interleave2(value: int) -> int:
    """Spread a 15-bit value so that its top bit lands at bit 0, every other bit."""
    if not 0 <= value < 1 << _BITS_2D:
        raise ValueError(f"value {value} does not fit in {_BITS_2D} bits")
    return sum(1 << (28 - 2 * k) for k in range(_BITS_2D) if value >> k & 1)


def interleave3(value: int) -> int:
    """Spread a 10-bit value so that its top bit lands at bit 0, every third bit."""
    if not 0 <= value < 1 << _BITS_3D:
        raise ValueError(f"value {value} does not fit in {_BITS_3D} bits")
    return sum(1 << (27 - 3 * k) for k in range(_BITS_3D) if value >> k & 1)


def morton_index(point: Sequence[float]) -> int:
    """Return the bit-interleaved index of a 2D or 3D point in the unit box.

    The lowest ``dim`` bits select the child of the root, the next ``dim``
    bits the grandchild, and so on.
    """
    coords = [float(c) for c in point]
    try:
        if len(coords) == 2:
            x, y = (int(c * _SCALE_2D) for c in coords)
            return interleave2(x) + (interleave2(y) << 1)
        if len(coords) == 3:
            x, y, z = (int(c * _SCALE_3D) for c in coords)
            return interleave3(x) + (interleave3(y) << 1) + (interleave3(z) << 2)
    except ValueError as exc:
        raise ValueError(f"point {tuple(coords)} lies outside the unit box") from exc
    raise ValueError(f"points must have 2 or 3 coordinates, got {len(coords)}")


def _children(node: Any) -> Sequence[Any]:
    return node.children or ()


def _check_dim(dim: int) -> int:
    if dim not in (2, 3):
        raise ValueError(f"dimension must be 2 or 3, got {dim}")
    return dim


def _index(point: Sequence[float], dim: int) -> int:
    if len(point) != dim:
        raise ValueError(f"expected a point with {dim} coordinates, got {len(point)}")
    return morton_index(point)


class Indexer:
    """Finds leaves by walking down from the root along the point's Morton index."""

    def __init__(self, root: Any, dim: int) -> None:
        self.root = root
        self.dim = _check_dim(dim)
        self._mask = (1 << dim) - 1

    def locate(self, point: Sequence[float]) -> Any:
        """Return the leaf whose cell contains ``point``."""
        node = self.root
        idx = _index(point, self.dim)
        while children := _children(node):
            node = children[idx & self._mask]
            idx >>= self.dim
        return node


class ArrayIndexer:
    """Finds leaves with a table covering the top levels of the tree.

    The table is built when the indexer is created; build a new indexer if the
    tree changes.
    """

    def __init__(self, root: Any, dim: int) -> None:
        self.root = root
        self.dim = _check_dim(dim)
        self._mask = (1 << dim) - 1
        self._bits = 16 - (16 % dim)
        self._table: list[Any] = [None] * (1 << self._bits)
        self._fill(root, 0, 0)

    def _fill(self, node: Any, depth: int, prefix: int) -> None:
        shift = depth * self.dim
        children = _children(node)
        if not children or shift >= self._bits:
            step = 1 << shift
            self._table[prefix::step] = [node] * (len(self._table) // step)
            return
        for i, child in enumerate(children):
            self._fill(child, depth + 1, prefix | (i << shift))

    def locate(self, point: Sequence[float]) -> Any:
        """Return the leaf whose cell contains ``point``."""
        idx = _index(point, self.dim)
        node = self._table[idx & ((1 << self._bits) - 1)]
        idx >>= self._bits
        while children := _children(node):
            node = children[idx & self._mask]
            idx >>= self.dim
        return node