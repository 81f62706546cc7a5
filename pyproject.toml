[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cachex"
version = "1"
description = "Scanner that detects web cache poisoning through unkeyed request headers"
requires-python = ">=3.10"
keywords = ["web-cache", "cache-poisoning", "security", "scanner", "http"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Information Technology",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
]
dependencies = [
    "requests",
    "urllib3",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
cachex = "cachex.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["cachex"]

[tool.pytest.ini_options]
addopts = "-ra"
