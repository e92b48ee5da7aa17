[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "s5storage"
version = "0.1.0"
description = "Building blocks for an S3 and local filesystem transfer tool: URLs with wildcard matching, storage types, and S3 endpoint, retry and session handling."
requires-python = ">=3.10"
keywords = ["s3", "storage", "object-storage", "wildcard", "url", "mirroring"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Mirroring",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["s5storage"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
