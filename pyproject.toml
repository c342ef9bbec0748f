[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "packagelint"
version = "0.1.0"
description = "Semantic validation rules for integration, input and content packages"
requires-python = ">=3.10"
keywords = ["validation", "linting", "packages", "integrations", "changelog", "kibana"]
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
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "pyyaml",
    "semver",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["packagelint"]

[tool.pytest.ini_options]
addopts = "-ra"
