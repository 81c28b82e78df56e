[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chaosblade-operator"
version = "1.5.0"
description = "Chaos experiment operator pieces: pod sidecar mutation, pod fault helpers and file-system fault injection over HTTP"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "chaos-engineering",
    "fault-injection",
    "kubernetes",
    "admission-webhook",
    "filesystem",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["chaosblade_operator"]

[tool.hatch.build.targets.sdist]
include = ["chaosblade_operator", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
