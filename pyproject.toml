[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fphtc"
version = "26.1.0"
description = "Differential charge density workflow for first-principles interface tribology calculations"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "vasp",
    "chgcar",
    "poscar",
    "differential charge",
    "tribology",
    "interface",
    "high-throughput",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
fphtc-diffchg = "fphtc.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["fphtc"]

[tool.pytest.ini_options]
addopts = "-ra"
