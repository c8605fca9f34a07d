"""Heat-diffusion skinning weights, sparse solvers and skeleton-graph utilities for mesh rigging."""

__version__ = "0.1.0"

__all__ = [
    "attachment",
    "discretization",
    "graphs",
    "indexer",
    "intersector",
    "lsq",
    "sparse",
]