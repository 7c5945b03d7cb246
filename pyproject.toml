[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "codecontext"
version = "1.0.0"
description = "Scan a source tree and write its files and structure as a JSON, XML, TOML or Markdown context document"
requires-python = ">=3.10"
keywords = ["code", "context", "documentation", "project-structure", "markdown", "xml", "toml", "json"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Documentation",
    "Topic :: Utilities",
]
dependencies = [
    "pyyaml>=6.0",
    "python-dotenv>=1.0",
    "tomli-w>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
codecontext = "codecontext.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["codecontext"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
