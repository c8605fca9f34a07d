[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "rigweights"
version = "0.1.0"
description = "Heat-diffusion skinning weights, sparse Cholesky and least-squares solvers, and skeleton-graph utilities for mesh rigging"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = [
    "rigging",
    "skinning",
    "mesh",
    "skeleton",
    "cholesky",
    "least-squares",
    "octree",
    "geometry",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Graphics :: 3D Modeling",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.setuptools.packages.find]
include = ["rigweights*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
