[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "awesomelint"
version = "0.1.0"
description = "Lint and link-check a curated awesome-list README: template, sorting, popularity and dead links"
requires-python = ">=3.10"
keywords = ["awesome-list", "markdown", "link-checker", "lint", "github", "crates"]
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
    "Topic :: Internet :: WWW/HTTP :: Site Management :: Link Checking",
    "Topic :: Text Processing :: Markup :: Markdown",
]
dependencies = [
    "httpx",
    "markdown-it-py",
    "pyyaml",
    "humanize",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[project.scripts]
awesomelint = "awesomelint.cli:main"
awesomelint-cleanup = "awesomelint.cleanup:main"
awesomelint-hacktoberfest = "awesomelint.hacktoberfest:main"

[tool.hatch.build.targets.wheel]
packages = ["awesomelint"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
