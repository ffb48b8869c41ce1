"""Chapter-title format detection and splitting of novel text files into chapters."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from os import PathLike

CHAPTER_REGEXES: dict[str, re.Pattern[str]] = {
    "chinese": re.compile(
        r"^\s*第\s*[一二三四五六七八九十百千万零〇\d]+\s*[章卷节回].*$", re.ASCII
    ),
    "english": re.compile(r"^\s*Chapter\s+\d+.*$", re.ASCII),
    "markdown": re.compile(r"^\s*#{1,6}\s+.*$", re.ASCII),
}

DEFAULT_FORMAT = "markdown"
DETECT_SAMPLE_SIZE = 1024 * 1024
MAX_LINE_BYTES = 64 * 1024


class FormatDetectionError(ValueError):
    """Raised when no chapter-title format can be recognised in a file."""


class NoChaptersError(ValueError):
    """Raised when a file holds no line matching the chapter-title pattern."""


@dataclass(frozen=True)
class Chapter:
    """A single chapter of a novel."""

    title: str
    content: str


def detect_format(file_path: str | PathLike[str]) -> re.Pattern[str]:
    """Guess the chapter-title pattern used by a file from its first megabyte.

    Returns one of the patterns in ``CHAPTER_REGEXES``.
    """
    with open(file_path, "rb") as handle:
        sample = handle.read(DETECT_SAMPLE_SIZE).decode("utf-8", errors="replace")

    scores = dict.fromkeys(CHAPTER_REGEXES, 0)
    for line in sample.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        for name, pattern in CHAPTER_REGEXES.items():
            if pattern.search(trimmed):
                scores[name] += 1

    best_format = None
    max_score = 1  # at least two matching lines are needed for confidence
    for name, score in scores.items():
        if score > max_score:
            max_score = score
            best_format = name

    if best_format is not None:
        return CHAPTER_REGEXES[best_format]

    if scores[DEFAULT_FORMAT] >= 1:
        print("Warning: Low confidence in format detection, defaulting to markdown.")
        return CHAPTER_REGEXES[DEFAULT_FORMAT]
    raise FormatDetectionError(
        "could not reliably detect chapter format, few or no chapter titles found in sample"
    )


def _read_lines(file_path: str | PathLike[str]) -> Iterator[str]:
    with open(file_path, "rb") as handle:
        for raw in handle:
            body = raw[:-1] if raw.endswith(b"\n") else raw
            if len(body) >= MAX_LINE_BYTES:
                raise ValueError("line too long")
            if body.endswith(b"\r"):
                body = body[:-1]
            yield body.decode("utf-8", errors="replace")


def parse_novel(
    file_path: str | PathLike[str], chapter_regex: re.Pattern[str]
) -> list[Chapter]:
    """Split a novel file into chapters at every line matching ``chapter_regex``.

    Text before the first chapter title is discarded.
    """
    chapters: list[Chapter] = []
    title: str | None = None
    content: list[str] = []

    for line in _read_lines(file_path):
        if chapter_regex.search(line):
            if title is not None:
                chapters.append(Chapter(title.strip(), "".join(content).strip()))
            title = line
            content = []
        elif title is not None:
            content.append(line + "\n")

    if title is not None:
        chapters.append(Chapter(title.strip(), "".join(content).strip()))

    if not chapters:
        raise NoChaptersError("no chapters found using the detected format")
    return chapters