[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "taskio"
version = "0.1.0"
description = "Non-blocking file, pipe and socket I/O helpers that hand control to a caller-supplied yielder, plus a linked list and a circular buffer"
requires-python = ">=3.10"
dependencies = []
keywords = ["non-blocking", "io", "sockets", "cooperative", "circular buffer", "splice"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["taskio"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
