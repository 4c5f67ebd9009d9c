[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pimsim"
version = "2.0.0"
description = "Building blocks for cycle-level DRAM and processing-in-memory simulation"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["dram", "hbm", "pim", "memory", "simulator", "cache", "trace"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["pimsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
