# rigweights

Building blocks for automatic rigging of triangle meshes: computing how strongly
each mesh vertex follows each bone of an embedded skeleton, deforming the mesh
once the bones move, and the sparse solvers and graph tools this rests on.

Everything is a library; the package installs no command.

## Modules

### `rigweights.sparse`

`SPDMatrix(rows)` holds the lower triangle of a sparse symmetric positive
definite matrix, row by row, as `(column, value)` pairs with the diagonal entry
present. `compute_perm()` returns a minimum-degree fill-reducing permutation
(`perm[vertex] = position`). `factor()` returns an `LLTMatrix`, a sparse
Cholesky factor; its `solve(b)` returns a new list `x` with `A x = b`, and
`size()` (or `len()`) gives its dimension. A matrix that is not positive
definite, or too ill-conditioned, raises `NotPositiveDefiniteError` (a
`ValueError`). A right-hand side of the wrong length raises `ValueError`.

### `rigweights.lsq`

`LSQSystem` is a sparse linear least-squares solver with soft constraints
(satisfied in the least-squares sense) and hard constraints (satisfied
exactly). A constraint's left-hand side is a mapping from variable to
coefficient; variables and identifiers can be any hashable values.

- `add_constraint(hard, lhs, ident)` adds a constraint whose right-hand side
  is set later with `set_rhs(ident, rhs)` (an unknown `ident` raises
  `KeyError`).
- `add_fixed_constraint(hard, lhs, rhs)` adds a constraint with a fixed
  right-hand side.
- `factor()` eliminates the hard constraints and factors the normal
  equations. A singular system, or one that leaves a variable undetermined,
  raises `SingularSystemError`.
- `solve()` solves with the current right-hand sides and returns a dict of all
  variable values; it may be called again after changing right-hand sides.
  Calling it before `factor()` raises `RuntimeError`.
- `result(var)` returns one solved value (`KeyError` if unknown).

Adding a constraint after factoring means `factor()` must be called again.

```python
from rigweights.lsq import LSQSystem

system = LSQSystem()
system.add_fixed_constraint(False, {"x": 1.0}, 2.0)
system.add_fixed_constraint(False, {"x": 1.0, "y": 1.0}, 5.0)
system.add_fixed_constraint(True, {"y": 1.0, "z": -1.0}, 0.0)
system.factor()
system.solve()
print(system.result("x"), system.result("y"), system.result("z"))  # 2.0 3.0 3.0
```

### `rigweights.graphs`

`PtGraph` is a dataclass of `verts` (points) and `edges` (adjacency lists);
`integrity_check()` returns whether the lists are consistent, in range,
symmetric and free of self-edges and duplicates, logging the first problem
found. `ShortestPather(graph, root)` runs Dijkstra from `root` with Euclidean
edge lengths; `path_from(vtx)` lists the vertices from `vtx` to the root and
`dist_from(vtx)` gives the distance, or `-1` when unreachable.
`AllShortestPather(graph)` does this for every vertex and offers
`path(start, end)` and `dist(start, end)`.

### `rigweights.indexer`

`interleave2` and `interleave3` spread the bits of a 15-bit or 10-bit value;
`morton_index(point)` combines them into the bit-interleaved index of a 2D or
3D point in the unit square or cube (`ValueError` outside it). `Indexer(root,
dim)` and `ArrayIndexer(root, dim)` locate the leaf of a quadtree (`dim=2`) or
octree (`dim=3`) containing a point. A node is any object with a `children`
attribute: empty or `None` for a leaf, otherwise `2 ** dim` children, child
`i` covering the upper half along axis `a` exactly when bit `a` of `i` is set.
`ArrayIndexer` builds a lookup table over the top levels when created, so it
must be rebuilt if the tree changes.

### `rigweights.intersector`

`Intersector(vertices, triangles, direction)` prepares a triangle mesh for
queries along lines parallel to `direction`. `intersect(point)` returns the
points where the line through `point` crosses the mesh;
`intersect_with_indices(point)` also returns the indices of the triangles
crossed. `direction` is available as a unit-vector property.

### `rigweights.discretization`

`Sphere(center, radius)` is a frozen record of a sample inside the shape.
`pack_spheres(samples, max_spheres)` keeps, from samples sorted by decreasing
radius, those whose centers lie outside every sphere kept before.
`get_max_dist(distance, v1, v2, max_allowed)` samples a signed distance
function at 101 points along a segment and returns the largest value, stopping
early once it exceeds `max_allowed`. `connect_samples(distance, spheres)`
returns a `PtGraph` joining overlapping spheres, and pairs that satisfy the
Gabriel condition and whose connecting segment stays well inside the shape.

### `rigweights.attachment`

`Attachment(positions, rings, joints, parents, tester, initial_heat_weight=1.0)`
computes per-vertex bone weights by heat diffusion over the mesh. `rings[i]`
lists the neighbours of vertex `i` in cyclic order, `parents[j]` is the parent
joint of joint `j`, and bone `b` joins joint `b + 1` to its parent. `tester`
is any object with `can_see(v1, v2)`. `weights(i)` returns the weight of every
bone at vertex `i`; `bone_count` and `len()` give the sizes.
`deform(positions, transforms)` applies linear blend skinning, where each
transform is a callable on points or a 3x4/4x4 affine matrix.

`DistanceVisibilityTester(distance)` implements `can_see` by marching along a
segment through a signed distance function (negative inside).
`vector_in_cone(v, normals)` tells whether `v` lies within 60 degrees of the
average of `normals`.

## What the package does not do

It does not read or write mesh files, build a mesh's half-edge structure or
neighbour rings, construct a distance field, sample the medial surface, or
search for the embedding of a skeleton in a mesh; the caller supplies the
mesh arrays, a signed distance function and the joint positions. There is no
command-line tool and no viewer.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```