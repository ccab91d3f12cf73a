[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "backlogctl"
version = "0.5.0"
description = "Building blocks for Backlog spaces: configuration, file-based credentials, OAuth 2.0 login and user/wiki commands"
requires-python = ">=3.11"
keywords = ["backlog", "issue-tracker", "wiki", "oauth", "credentials"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Bug Tracking",
]
dependencies = [
    "requests>=2.28",
    "tomli-w>=1.0",
    "platformdirs>=3.0",
    "termcolor>=2.1",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["backlogctl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
