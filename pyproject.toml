[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sqlmeta"
version = "0.1.0"
description = "Structured database metadata readers for information_schema, MySQL, Oracle and PostgreSQL"
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "metadata", "information_schema", "postgresql", "mysql", "oracle", "dbapi"]
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
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sqlmeta"]

[tool.pytest.ini_options]
addopts = "-ra"
