"""Command line interface: manage the novel library and read novels aloud."""

from __future__ import annotations

import logging
import os
import re
import signal
import sys
import threading
from collections.abc import Callable, Sequence
from typing import Protocol

from .config import default_config_path, default_progress_path
from .library import Library, LibraryError
from .speaker import SpeechError, speak_async

log = logging.getLogger(__name__)

_SEGMENT_SEPARATOR = re.compile(r"\n+")
_INT_PATTERN = re.compile(r"[+-]?\d+")
_AUTO_SAVE_EVERY = 20
_HELP_FLAGS = {"-h", "--h", "-help", "--help"}


class _SpeechLike(Protocol):
    def wait(self) -> None: ...


Speaker = Callable[[str], _SpeechLike]


class _Terminated(Exception):
    """Raised from the SIGTERM handler to unwind to ``main``."""


def split_segments(content: str) -> list[str]:
    """Split chapter text into segments at runs of newlines."""
    return _SEGMENT_SEPARATOR.split(content)


def _to_int(value: int | str) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_PATTERN.fullmatch(value):
        return int(value)
    return None


def _read_once(
    library: Library, chapter_arg: int | str | None, speaker: Speaker
) -> int | None:
    """Read one chapter; return the 1-based number of the next chapter to read, if any."""
    novel = library.active_novel
    if novel is None:
        print("No active novel selected. Use 'switch <index>' first.")
        return None
    library.load_active_chapters()
    chapters = novel.chapters
    if not chapters:
        print(f"Chapters not loaded for '{novel.file_path}'.")
        return None

    progress = library.progress_for(novel.file_path)
    target = progress.last_read_chapter_index
    start = progress.last_read_segment_index
    changed = False

    if chapter_arg is not None:
        number = _to_int(chapter_arg)
        if number is None or not 1 <= number <= len(chapters):
            raise LibraryError(
                f"Invalid chapter index '{chapter_arg}'. "
                f"Please provide a number between 1 and {len(chapters)}."
            )
        if number - 1 != target:
            target = number - 1
            start = 0
            changed = True

    if changed:
        print(f"Switching to Chapter {target + 1}, saving progress...")
        progress.last_read_chapter_index = target
        progress.last_read_segment_index = start
        library.progress_dirty = True
        library.save_progress()

    if not 0 <= target < len(chapters):
        print(f"Last read chapter index ({target + 1}) is invalid. Reading first chapter.")
        target = 0
        start = 0
        if progress.last_read_chapter_index != 0 or progress.last_read_segment_index != 0:
            progress.last_read_chapter_index = 0
            progress.last_read_segment_index = 0
            library.progress_dirty = True
            library.save_progress()

    chapter = chapters[target]
    print(f"--- Reading Chapter {target + 1}: {chapter.title} ---")

    segments = split_segments(chapter.content)
    if not segments:
        print("Chapter content appears empty or has no segments.")
        return None

    if not 0 <= start < len(segments):
        print(
            f"Warning: Last read segment index ({start}) is invalid for this chapter. "
            "Starting from segment 0."
        )
        start = 0
        if progress.last_read_segment_index != 0:
            progress.last_read_segment_index = 0
            library.progress_dirty = True
            library.save_progress()

    spoken = 0
    for seg_index, segment in enumerate(segments[start:], start=start):
        text = segment.strip()
        if not text:
            continue

        print(f"\n[Segment {seg_index + 1}/{len(segments)}]\n{text}")
        try:
            speech = speaker(text)
        except SpeechError as exc:
            log.error("Error starting TTS for Ch %d, Seg %d: %s", target + 1, seg_index, exc)
            return None

        if (
            progress.last_read_chapter_index != target
            or progress.last_read_segment_index != seg_index
        ):
            progress.last_read_chapter_index = target
            progress.last_read_segment_index = seg_index
            library.progress_dirty = True

        print("(Speaking...)")
        try:
            speech.wait()
        except SpeechError as exc:
            log.error("Error during TTS for Ch %d, Seg %d: %s", target + 1, seg_index, exc)
            return None
        print("(Segment finished)")
        spoken += 1

        if spoken % _AUTO_SAVE_EVERY == 0 and library.progress_dirty:
            print(f"(Auto-saving progress after {spoken} segments...)")
            library.save_progress()

        if not library.cfg.auto_read_next:
            print("Auto-next disabled. Stopping.")
            return None

    if library.cfg.auto_read_next:
        print("Chapter finished. Auto-reading next chapter...")
        if target + 1 < len(chapters):
            return target + 2
        print("Reached the end of the novel.")
    return None


def read_chapter(
    library: Library,
    chapter_arg: int | str | None = None,
    speaker: Speaker = speak_async,
) -> None:
    """Read the active novel aloud segment by segment.

    Starts at the 1-based chapter ``chapter_arg`` or, when it is None, where
    reading last stopped. With auto-next on, reading runs on into later chapters.
    """
    while chapter_arg is not None or True:
        next_number = _read_once(library, chapter_arg, speaker)
        if next_number is None:
            return
        chapter_arg = next_number


def _step(library: Library, speaker: Speaker, offset: int) -> None:
    novel = library.active_novel
    if novel is None:
        print("No active novel.")
        return
    library.load_active_chapters()
    if not novel.chapters:
        print("Failed to load chapters for the active novel.")
        return
    progress = library.progress.get(novel.file_path)
    if progress is None:
        log.error("Error: Progress data not found for active novel %s", novel.file_path)
        return
    index = progress.last_read_chapter_index + offset
    if index >= len(novel.chapters):
        print("Already at the last chapter.")
        return
    if index < 0:
        print("Already at the first chapter.")
        return
    read_chapter(library, index + 1, speaker)


def read_next(library: Library, speaker: Speaker = speak_async) -> None:
    """Read the chapter after the last one read, from its first segment."""
    _step(library, speaker, 1)


def read_prev(library: Library, speaker: Speaker = speak_async) -> None:
    """Read the chapter before the last one read, from its first segment."""
    _step(library, speaker, -1)


def usage(prog: str) -> str:
    """Return the help text for the command line."""
    return (
        f"Usage: {prog} <command> [arguments]\n\n"
        "Manages and reads novels using macOS TTS.\n\n"
        "Commands:\n"
        "  add <filepath>      Add a new novel, parse chapters, and set as active.\n"
        "  list                List novels in the library with index and last read chapter/segment.\n"
        "  remove <index>      Remove the novel at the specified index (from 'list').\n"
        "  switch <index>      Set the novel at the specified index (from 'list') as active.\n"
        "  chapters            List chapters of the active novel.\n"
        "  read [chap_index]   Read active novel segment by segment. Starts from specified chapter (1-based index)\n"
        "                      or continues from the last read chapter/segment if index is omitted.\n"
        "  next                Read the next chapter of the active novel (starts from segment 0).\n"
        "  prev                Read the previous chapter of the active novel (starts from segment 0).\n"
        "  where               Show the active novel and the last read chapter/segment index.\n"
        "  config [setting]    View or toggle configuration settings.\n"
        "                      Available settings: auto_next (toggle auto-read next segment/chapter)\n"
        "\n"
    )


def _require_arg(args: Sequence[str], message: str) -> str:
    if not args:
        raise LibraryError(message)
    return args[0]


def _cmd_add(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    library.add(_require_arg(args, "add command requires a filepath argument."))


def _cmd_list(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    library.list_novels()


def _cmd_remove(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    library.remove(_require_arg(args, "remove command requires an index argument."))


def _cmd_switch(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    library.switch(_require_arg(args, "switch command requires an index argument."))


def _cmd_chapters(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    library.chapters()


def _cmd_read(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    read_chapter(library, args[0] if args else None, speaker)


def _cmd_next(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    read_next(library, speaker)


def _cmd_prev(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    read_prev(library, speaker)


def _cmd_where(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    library.where()


def _cmd_config(library: Library, args: Sequence[str], speaker: Speaker) -> None:
    if args:
        library.toggle_setting(args[0])
    else:
        library.show_config()


_COMMANDS: dict[str, Callable[[Library, Sequence[str], Speaker], None]] = {
    "add": _cmd_add,
    "list": _cmd_list,
    "remove": _cmd_remove,
    "switch": _cmd_switch,
    "chapters": _cmd_chapters,
    "read": _cmd_read,
    "continue": _cmd_read,
    "next": _cmd_next,
    "prev": _cmd_prev,
    "where": _cmd_where,
    "config": _cmd_config,
}


def _split_flags(args: list[str], prog: str) -> tuple[list[str], int | None]:
    """Consume leading flags; return the remaining arguments or an exit code."""
    for position, arg in enumerate(args):
        if arg == "--":
            return args[position + 1 :], None
        if not arg.startswith("-") or arg == "-":
            return args[position:], None
        if arg in _HELP_FLAGS:
            sys.stderr.write(usage(prog))
            return [], 0
        name = arg.split("=", 1)[0]
        print(f"flag provided but not defined: {name}", file=sys.stderr)
        sys.stderr.write(usage(prog))
        return [], 2
    return [], None


def _on_sigterm(signum: int, frame: object) -> None:
    raise _Terminated()


def _error_text(exc: Exception) -> str:
    message = str(exc)
    return message if message.startswith("Error") else f"Error: {message}"


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "novelreader"
    logging.basicConfig(format="%(message)s")

    try:
        library = Library(default_config_path(), default_progress_path())
    except LibraryError as exc:
        print(exc, file=sys.stderr)
        return 1

    rest, code = _split_flags(args, prog)
    if code is not None:
        return code
    if not rest:
        sys.stderr.write(usage(prog))
        return 1

    command, *command_args = rest
    handler = _COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}", file=sys.stderr)
        sys.stderr.write(usage(prog))
        return 1

    previous = None
    in_main_thread = threading.current_thread() is threading.main_thread()
    if in_main_thread:
        previous = signal.signal(signal.SIGTERM, _on_sigterm)
    try:
        handler(library, command_args, speak_async)
    except LibraryError as exc:
        print(_error_text(exc), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nReceived signal: interrupt. Exiting...")
    except _Terminated:
        print("\nReceived signal: terminated. Exiting...")
    finally:
        if in_main_thread:
            signal.signal(signal.SIGTERM, previous)
    library.save_on_exit()
    return 0


if __name__ == "__main__":
    sys.exit(main())