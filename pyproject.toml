[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "klausctl"
version = "0.1.0"
description = "Configuration, instance layout and tool results for locally run klaus agent instances"
requires-python = ">=3.10"
keywords = ["klaus", "claude", "agent", "mcp", "configuration", "yaml"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
klausctl = "klausctl.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["klausctl"]

[tool.hatch.build.targets.sdist]
include = ["klausctl", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
