"""The novel library: its configuration, reading progress and active novel."""

from __future__ import annotations

import logging
import os
import re
import sys
from os import PathLike
from pathlib import Path

from .config import (
    AppConfig,
    NovelInfo,
    ProgressInfo,
    load_config,
    load_progress,
    save_config,
    save_progress,
)
from .parser import CHAPTER_REGEXES, DEFAULT_FORMAT, detect_format, parse_novel

log = logging.getLogger(__name__)

_INDEX_PATTERN = re.compile(r"[+-]?\d+")
AUTO_NEXT_SETTING = "auto_next"


class LibraryError(Exception):
    """A library command could not be carried out; the message explains why."""


def _pattern_name(pattern: re.Pattern[str]) -> str | None:
    return next(
        (name for name, known in CHAPTER_REGEXES.items() if known is pattern), None
    )


class Library:
    """Novels known to the reader, where reading stopped, and which one is active.

    Changes are tracked with dirty flags and written out by ``save_on_exit``
    unless a command saves them at once.
    """

    def __init__(
        self, config_path: str | PathLike[str], progress_path: str | PathLike[str]
    ) -> None:
        self.config_path = Path(config_path)
        self.progress_path = Path(progress_path)
        try:
            self.cfg: AppConfig = load_config(self.config_path)
        except (OSError, ValueError) as exc:
            raise LibraryError(f"Error loading config: {exc}") from exc
        try:
            self.progress: dict[str, ProgressInfo] = load_progress(self.progress_path)
        except OSError as exc:
            raise LibraryError(f"Error loading progress data: {exc}") from exc
        self.config_dirty = False
        self.progress_dirty = False
        self.active_novel: NovelInfo | None = None
        if self.cfg.active_novel_path:
            self.load_active_metadata()

    # --- helpers -------------------------------------------------------

    def sorted_novels(self) -> list[NovelInfo]:
        """Return the novels ordered by file path, as numbered by ``list``."""
        return [self.cfg.novels[path] for path in sorted(self.cfg.novels)]

    def _select(self, index: int | str) -> NovelInfo:
        if isinstance(index, int) and not isinstance(index, bool):
            number = index
        elif isinstance(index, str) and _INDEX_PATTERN.fullmatch(index):
            number = int(index)
        else:
            raise LibraryError(
                f"Invalid index '{index}'. Please provide the number shown by 'list'."
            )
        novels = self.sorted_novels()
        if not 1 <= number <= len(novels):
            raise LibraryError(
                f"Index {number} is out of range. Valid range is 1 to {len(novels)}."
            )
        return novels[number - 1]

    def load_active_metadata(self) -> None:
        """Point ``active_novel`` at the configured active novel, if it exists."""
        info = self.cfg.novels.get(self.cfg.active_novel_path)
        if info is None:
            print(
                f"Warning: Active novel path '{self.cfg.active_novel_path}' not found "
                "in library. Clearing active novel.",
                file=sys.stderr,
            )
            self.cfg.active_novel_path = ""
            self.active_novel = None
            self.config_dirty = True
            return
        self.active_novel = info

    def load_active_chapters(self) -> None:
        """Make sure the chapter contents of the active novel are in memory."""
        novel = self.active_novel
        if novel is None or not novel.file_path:
            return
        if novel.chapters and len(novel.chapters) == len(novel.chapter_titles):
            return

        print(f"Loading chapters for: {novel.file_path}")
        if not os.path.exists(novel.file_path):
            log.error("Error: File for active novel not found: %s", novel.file_path)
            novel.chapters = []
            return

        pattern = CHAPTER_REGEXES.get(novel.detected_regex)
        if pattern is None:
            log.warning(
                "Warning: Unknown regex name '%s' stored for novel. "
                "Falling back to markdown.",
                novel.detected_regex,
            )
            pattern = CHAPTER_REGEXES[DEFAULT_FORMAT]

        try:
            chapters = parse_novel(novel.file_path, pattern)
        except (OSError, ValueError) as exc:
            log.error("Error parsing novel %s: %s", novel.file_path, exc)
            novel.chapters = []
            return

        novel.chapters = chapters
        if len(novel.chapter_titles) != len(chapters):
            log.warning(
                "Warning: Chapter title count mismatch after loading for %s. "
                "Rebuilding titles.",
                novel.file_path,
            )
            novel.chapter_titles = [chapter.title for chapter in chapters]
            self.config_dirty = True

        print(f"Loaded {len(chapters)} chapters.")

    def progress_for(self, file_path: str) -> ProgressInfo:
        """Return the progress of a novel, starting a fresh entry if it has none."""
        info = self.progress.get(file_path)
        if info is None:
            info = ProgressInfo()
            self.progress[file_path] = info
            self.progress_dirty = True
        return info

    def save_config(self) -> None:
        """Write the configuration; a failure is logged and leaves it dirty."""
        try:
            save_config(self.config_path, self.cfg)
        except OSError as exc:
            log.error("Error saving config to %s: %s", self.config_path, exc)
            return
        print("Configuration saved.")
        self.config_dirty = False

    def save_progress(self) -> None:
        """Write reading progress; a failure is logged and leaves it dirty."""
        try:
            save_progress(self.progress_path, self.progress)
        except OSError as exc:
            log.error("Error saving progress to %s: %s", self.progress_path, exc)
            return
        print("Progress saved.")
        self.progress_dirty = False

    def save_on_exit(self) -> None:
        """Write whatever has changed since it was last saved."""
        if self.progress_dirty:
            print("Progress changed, saving before exit...")
            self.save_progress()
        if self.config_dirty:
            print("Configuration changed, saving before exit...")
            self.save_config()

    # --- commands ------------------------------------------------------

    def add(self, file_path: str | PathLike[str]) -> NovelInfo:
        """Add a novel file, parse its chapters and make it the active novel.

        A novel already in the library is returned unchanged.
        """
        path = os.path.abspath(os.fspath(file_path))
        existing = self.cfg.novels.get(path)
        if existing is not None:
            log.warning("Novel '%s' already exists in the library.", path)
            return existing
        if not os.path.exists(path):
            raise LibraryError(f"File not found: {path}")

        print(f"Adding novel: {path}")
        try:
            pattern = detect_format(path)
        except (OSError, ValueError) as exc:
            raise LibraryError(f"Error detecting format: {exc}") from exc
        name = _pattern_name(pattern)
        if name is None:
            log.warning(
                "Warning: Could not map detected regex back to a known name. Using default."
            )
            name = DEFAULT_FORMAT
            pattern = CHAPTER_REGEXES[name]
        print(f"Detected format: {name}")

        try:
            chapters = parse_novel(path, pattern)
        except (OSError, ValueError) as exc:
            raise LibraryError(f"Error parsing novel: {exc}") from exc

        info = NovelInfo(
            file_path=path,
            chapters=chapters,
            chapter_titles=[chapter.title for chapter in chapters],
            detected_regex=name,
        )
        self.cfg.novels[path] = info
        self.cfg.active_novel_path = path
        self.active_novel = info
        self.config_dirty = True

        if path not in self.progress:
            self.progress[path] = ProgressInfo()
            self.progress_dirty = True

        print(
            f"Successfully added '{path}' with {len(chapters)} chapters and set as active."
        )
        return info

    def list_novels(self) -> list[str]:
        """Print the numbered library and return its lines, one per novel."""
        if not self.cfg.novels:
            print("Library is empty. Use 'add <filepath>' to add a novel.")
            return []
        print("Novels in library:")
        lines = []
        for number, info in enumerate(self.sorted_novels(), start=1):
            marker = "*" if info.file_path == self.cfg.active_novel_path else " "
            progress = self.progress.get(info.file_path) or ProgressInfo()
            line = (
                f" {marker} {number}: {os.path.basename(info.file_path)} "
                f"({len(info.chapter_titles)} chapters, last read: "
                f"Ch {progress.last_read_chapter_index + 1}, "
                f"Seg {progress.last_read_segment_index})"
            )
            print(line)
            lines.append(line)
        return lines

    def remove(self, index: int | str) -> NovelInfo:
        """Remove the novel with the given 1-based ``list`` number and return it."""
        info = self._select(index)
        path = info.file_path
        number = self.sorted_novels().index(info) + 1

        del self.cfg.novels[path]
        self.config_dirty = True
        print(f"Removed novel metadata {number}: {os.path.basename(path)}")

        if path in self.progress:
            del self.progress[path]
            self.progress_dirty = True
            print(f"Removed novel progress data for: {os.path.basename(path)}")

        if self.cfg.active_novel_path == path:
            self.cfg.active_novel_path = ""
            self.active_novel = None
            print("The active novel was removed.")
        return info

    def switch(self, index: int | str) -> NovelInfo:
        """Make the novel with the given 1-based ``list`` number active."""
        info = self._select(index)
        path = info.file_path
        if self.cfg.active_novel_path == path:
            print(f"Novel '{path}' is already active.")
            return info

        if self.progress_dirty:
            print("Saving progress for previous novel before switching...")
            self.save_progress()
        if self.config_dirty:
            print("Saving config for previous state before switching...")
            self.save_config()

        self.cfg.active_novel_path = path
        self.active_novel = info
        self.load_active_chapters()
        self.config_dirty = True
        self.save_config()
        print(f"Switched active novel to: {path}")
        return info

    def chapters(self) -> list[str]:
        """Print and return the chapter titles of the active novel."""
        novel = self.active_novel
        if novel is None:
            print("No active novel selected. Use 'switch <index>' first.")
            return []
        self.load_active_chapters()
        if not novel.chapter_titles:
            print(f"No chapters found or loaded for '{novel.file_path}'.")
            return []
        print(f"Chapters for '{os.path.basename(novel.file_path)}':")
        for number, title in enumerate(novel.chapter_titles, start=1):
            print(f"  {number}: {title}")
        return list(novel.chapter_titles)

    def where(self) -> str:
        """Print and return the active novel and where reading last stopped."""
        novel = self.active_novel
        if not self.cfg.active_novel_path or novel is None:
            text = "No novel is currently active."
            print(text)
            return text
        progress = self.progress.get(novel.file_path)
        if progress is None:
            text = f"Active novel: {novel.file_path}\nProgress data not found."
            print(text)
            return text
        chapter = progress.last_read_chapter_index
        if 0 <= chapter < len(novel.chapter_titles):
            title = novel.chapter_titles[chapter]
        else:
            title = "(chapter index out of bounds)"
        text = (
            f"Active novel: {novel.file_path}\n"
            f"Last read: Chapter {chapter + 1} ({title}), "
            f"Segment {progress.last_read_segment_index}"
        )
        print(text)
        return text

    def show_config(self) -> dict[str, bool]:
        """Print and return the user-facing settings."""
        settings = {AUTO_NEXT_SETTING: self.cfg.auto_read_next}
        print("Current Configuration:")
        for name, value in settings.items():
            print(f"  {name}: {str(value).lower()}")
        return settings

    def toggle_setting(self, setting: str) -> bool:
        """Flip a boolean setting and return its new value."""
        if setting != AUTO_NEXT_SETTING:
            raise LibraryError(
                f"Unknown config setting '{setting}'. Available: {AUTO_NEXT_SETTING}"
            )
        self.cfg.auto_read_next = not self.cfg.auto_read_next
        self.config_dirty = True
        print(f"Set {AUTO_NEXT_SETTING} to: {str(self.cfg.auto_read_next).lower()}")
        return self.cfg.auto_read_next