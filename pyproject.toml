[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mahjongpool"
version = "0.1.0"
description = "A three-tier (thread, central, page) size-class memory pool over a simulated address space"
requires-python = ">=3.10"
dependencies = []
keywords = ["memory pool", "allocator", "free list", "thread cache", "page cache", "size class"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mahjongpool = "mahjongpool.pool:main"

[tool.hatch.build.targets.wheel]
packages = ["mahjongpool"]

[tool.pytest.ini_options]
addopts = "-ra"
