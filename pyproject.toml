[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hnswvec"
version = "0.1.0"
description = "Vector values, SQLite shadow-table storage and SQL vector functions for HNSW-indexed vector search"
requires-python = ">=3.10"
dependencies = []
keywords = ["sqlite", "vector", "hnsw", "embeddings", "quantization"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hnswvec"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
