[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "distsim"
version = "0.1.0"
description = "In-process simulations of classic distributed algorithms: logical clocks, ring leader election, spanning trees, Maekawa mutual exclusion and Paxos consensus."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "distributed-systems",
    "lamport-clock",
    "vector-clock",
    "matrix-clock",
    "leader-election",
    "spanning-tree",
    "bfs",
    "maekawa",
    "paxos",
    "simulation",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
distsim = "distsim.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["distsim"]

[tool.pytest.ini_options]
addopts = "-ra"
