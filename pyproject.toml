[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "faasflow"
version = "0.1.0"
description = "Event-driven function framework built around CloudEvents, middleware chains and pluggable triggers and publishers."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "cloudevents",
    "faas",
    "serverless",
    "lambda",
    "nats",
    "kafka",
    "kinesis",
    "sns",
    "sqs",
    "middleware",
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
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["faasflow"]

[tool.hatch.build.targets.sdist]
include = ["faasflow", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
