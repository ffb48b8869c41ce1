"""Persistent library configuration and reading progress stored as JSON."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from .parser import Chapter

APP_NAME = "novel-reader"
CONFIG_FILE = "config.json"
PROGRESS_FILE = "progress.json"


def _get(data: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) and kind is not bool:
        raise ValueError(f"field {key!r} has the wrong type")
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} has the wrong type")
    return value


def _require_dict(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object")
    return data


@dataclass
class NovelInfo:
    """Metadata for one novel; chapter contents are held only in memory."""

    file_path: str = ""
    chapters: list[Chapter] = field(default_factory=list)
    chapter_titles: list[str] = field(default_factory=list)
    detected_regex: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "file_path": self.file_path,
            "chapter_titles": list(self.chapter_titles),
        }
        if self.detected_regex:
            data["detected_regex"] = self.detected_regex
        return data

    @classmethod
    def from_dict(cls, data: Any) -> NovelInfo:
        data = _require_dict(data, "novel entry")
        titles = _get(data, "chapter_titles", list, [])
        if not all(isinstance(title, str) for title in titles):
            raise ValueError("field 'chapter_titles' must hold strings")
        return cls(
            file_path=_get(data, "file_path", str, ""),
            chapter_titles=list(titles),
            detected_regex=_get(data, "detected_regex", str, ""),
        )


@dataclass
class AppConfig:
    """The library of novels, the active one, and reader settings."""

    novels: dict[str, NovelInfo] = field(default_factory=dict)
    active_novel_path: str = ""
    auto_read_next: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "novels": {path: self.novels[path].to_dict() for path in sorted(self.novels)},
            "active_novel_path": self.active_novel_path,
        }
        if self.auto_read_next:
            data["auto_read_next"] = True
        return data

    @classmethod
    def from_dict(cls, data: Any) -> AppConfig:
        data = _require_dict(data, "configuration")
        novels = _get(data, "novels", dict, {})
        return cls(
            novels={path: NovelInfo.from_dict(info) for path, info in novels.items()},
            active_novel_path=_get(data, "active_novel_path", str, ""),
            auto_read_next=_get(data, "auto_read_next", bool, False),
        )


@dataclass
class ProgressInfo:
    """Where reading of one novel last stopped."""

    last_read_chapter_index: int = 0
    last_read_segment_index: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "last_read_chapter_index": self.last_read_chapter_index,
            "last_read_segment_index": self.last_read_segment_index,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ProgressInfo:
        data = _require_dict(data, "progress entry")
        return cls(
            last_read_chapter_index=_get(data, "last_read_chapter_index", int, 0),
            last_read_segment_index=_get(data, "last_read_segment_index", int, 0),
        )


def _app_dir() -> Path:
    return Path(user_config_dir(APP_NAME, appauthor=False, roaming=True))


def _write_json(path: str | PathLike[str], data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(mode=0o750, parents=True, exist_ok=True)
    text = json.dumps(data, indent=2, ensure_ascii=False)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o640)
    with open(fd, "w", encoding="utf-8") as handle:
        handle.write(text)


def default_config_path() -> Path:
    """Return the default location of the configuration file."""
    return _app_dir() / CONFIG_FILE


def load_config(config_path: str | PathLike[str]) -> AppConfig:
    """Load the configuration; a missing file gives an empty configuration.

    Raises ValueError if the file is not valid configuration JSON.
    """
    try:
        text = Path(config_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return AppConfig()
    data = json.loads(text)
    if data is None:
        return AppConfig()
    return AppConfig.from_dict(data)


def save_config(config_path: str | PathLike[str], cfg: AppConfig) -> None:
    """Write the configuration, creating its directory if needed."""
    _write_json(config_path, cfg.to_dict())


def default_progress_path() -> Path:
    """Return the default location of the progress file."""
    return _app_dir() / PROGRESS_FILE


def load_progress(progress_path: str | PathLike[str]) -> dict[str, ProgressInfo]:
    """Load reading progress keyed by file path.

    A missing or unreadable-as-JSON file gives an empty mapping.
    """
    try:
        text = Path(progress_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    try:
        data = json.loads(text)
        if data is None:
            return {}
        data = _require_dict(data, "progress data")
        return {path: ProgressInfo.from_dict(info) for path, info in data.items()}
    except ValueError:
        return {}


def save_progress(
    progress_path: str | PathLike[str], progress: dict[str, ProgressInfo]
) -> None:
    """Write reading progress, creating its directory if needed."""
    _write_json(progress_path, {path: progress[path].to_dict() for path in sorted(progress)})