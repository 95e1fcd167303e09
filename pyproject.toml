[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "drillrunner"
version = "5.5.1"
description = "Run, verify and watch a collection of small Rust exercises from the command line"
requires-python = ">=3.11"
keywords = ["exercises", "learning", "rust", "rustc", "education", "watch"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education :: Computer Aided Instruction (CAI)",
]
dependencies = [
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
drillrunner = "drillrunner.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["drillrunner"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
