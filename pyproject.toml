[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "testsupport"
version = "0.1.0"
description = "Helpers for tests: call-recording stubs, result mockers, environment isolation, TCP proxies, queued-response HTTP servers, file stubs and JSON request checks."
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["testing", "stubs", "mocking", "fixtures", "http", "tcp proxy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["testsupport"]

[tool.pytest.ini_options]
addopts = "-ra"
