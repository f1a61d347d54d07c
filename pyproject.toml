[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pahlawan"
version = "0.1.0"
description = "Services for rescuing surplus food: NGO matching, pricing, escrow, outbox events, trust and impact tracking"
requires-python = ">=3.10"
keywords = [
    "food-rescue",
    "surplus",
    "matching",
    "pricing",
    "escrow",
    "outbox",
    "s2",
    "geospatial",
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
    "Topic :: Scientific/Engineering :: GIS",
]
dependencies = [
    "redis>=4.5",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "pytest-asyncio>=0.21",
]

[project.scripts]
pahlawan-seed-regions = "pahlawan.geo:main"

[tool.hatch.build.targets.wheel]
packages = ["pahlawan"]

[tool.hatch.build.targets.sdist]
include = ["pahlawan", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
