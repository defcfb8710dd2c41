[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "contractdesk"
version = "0.1.0"
description = "SQLite storage layer for contracts, their stages, counterparties, users and deadline notifications"
requires-python = ">=3.10"
dependencies = [
    "bcrypt",
]
keywords = [
    "contracts",
    "contract-management",
    "stages",
    "notifications",
    "repository",
    "sqlite",
]
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
    "Topic :: Office/Business",
    "Topic :: Database",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["contractdesk"]

[tool.hatch.build.targets.sdist]
include = [
    "contractdesk",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
