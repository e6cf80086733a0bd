[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgproto"
version = "0.6.0"
description = "Low-level PostgreSQL wire protocol: frontend message serialization, binary value encoding, MD5 authentication and SQL escaping"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "postgres",
    "postgresql",
    "protocol",
    "wire-protocol",
    "binary-format",
    "escaping",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pgproto"]

[tool.hatch.build.targets.sdist]
include = ["pgproto", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
strict = true
