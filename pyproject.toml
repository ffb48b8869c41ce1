[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "novelreader"
version = "0.1.0"
description = "Manage a library of plain-text novels and read them aloud segment by segment with text-to-speech."
requires-python = ">=3.10"
dependencies = [
    "platformdirs",
]
keywords = ["novel", "reader", "tts", "text-to-speech", "ebook", "cli"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Speech",
    "Topic :: Text Processing :: General",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
novelreader = "novelreader.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["novelreader"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
