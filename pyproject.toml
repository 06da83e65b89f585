[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "parallelzone"
version = "0.1.0"
description = "Building blocks for parallel programs: severity-aware loggers, binary buffers and views, and gather collectives over a thread-backed process group"
requires-python = ">=3.10"
dependencies = []
keywords = ["parallel", "distributed", "gather", "logging", "serialization", "buffer"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["parallelzone"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
