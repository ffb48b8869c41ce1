# novelreader

A small command-line tool that keeps a library of plain-text novels, splits
them into chapters, and reads them aloud segment by segment using the macOS
`say` text-to-speech command. Your place in every novel is remembered.

## Installation

```
pip install .
```

Reading aloud needs macOS, because speech is produced by the system `say`
command. Managing the library works on any platform.

## Usage

```
novelreader <command> [arguments]
```

| Command | What it does |
| --- | --- |
| `add <filepath>` | Add a novel, detect its chapter format, parse chapters and make it active. |
| `list` | List the library with index and last-read chapter/segment. The active novel is marked `*`. |
| `remove <index>` | Remove the novel at the index shown by `list`. |
| `switch <index>` | Make the novel at that index the active one. |
| `chapters` | List the chapters of the active novel. |
| `read [chap_index]` | Read the active novel aloud from the given chapter (1-based), or continue where you left off. `continue` is an alias. |
| `next` | Read the next chapter from its start. |
| `prev` | Read the previous chapter from its start. |
| `where` | Show the active novel and the last-read chapter and segment. |
| `config [setting]` | Show settings, or toggle one. The only setting is `auto_next`. |

`-h` or `--help` prints the help text. Running without a command, or with an
unknown command, prints the help text and exits with status 1. Errors such as
an out-of-range index are reported on standard error with status 1.

### Chapter formats

When a novel is added, the first megabyte of the file is scanned for chapter
headings and the format with the most matches wins:

- **chinese**: lines such as `第十二章 ...`, `第3卷 ...`
- **english**: lines such as `Chapter 12 ...`
- **markdown**: headings `#` to `######`

At least two matching headings are needed for a confident choice. With a
single markdown heading the markdown format is used as a fallback; otherwise
the file is rejected. Text before the first heading is ignored.

### Segments and auto-next

A chapter is split into segments at line breaks, and each non-empty segment is
spoken in turn. With `auto_next` off (the default), reading stops after one
segment. Turn it on with

```
novelreader config auto_next
```

to keep reading through the rest of the chapter and on into the following
ones. Progress is saved on chapter changes, every 20 spoken segments, and on
exit, including after Ctrl-C or a termination signal.

### Where data is kept

The library (`config.json`) and reading progress (`progress.json`) are stored
in a `novel-reader` folder in your user configuration directory, as found by
`platformdirs`.

## Using it from Python

- `novelreader.parser`: `detect_format(path)` returns one of the patterns in
  `CHAPTER_REGEXES`; `parse_novel(path, pattern)` returns a list of `Chapter`
  (`title`, `content`). They raise `FormatDetectionError` and `NoChaptersError`.
- `novelreader.speaker`: `speak(text)` speaks and waits; `speak_async(text)`
  returns a `Speech` whose `wait()` blocks until speaking ends. Failures raise
  `SpeechError`.
- `novelreader.config`: `AppConfig`, `NovelInfo`, `ProgressInfo`, and
  `load_config`/`save_config`, `load_progress`/`save_progress`,
  `default_config_path`/`default_progress_path`.
- `novelreader.library`: `Library(config_path, progress_path)` with `add`,
  `list_novels`, `remove`, `switch`, `chapters`, `where`, `show_config`,
  `toggle_setting` and `save_on_exit`; failures raise `LibraryError`.
- `novelreader.cli`: `read_chapter`, `read_next` and `read_prev` take an
  optional `speaker` callable, so reading can be driven without `say`;
  `main(argv=None)` runs the command line.

## Limitations

- Speech works only on macOS; elsewhere `read`, `next` and `prev` stop with a
  speech error after printing the first segment.
- There is no voice, rate or volume setting, and no way to pause a segment
  other than interrupting the program.
- Files are read as UTF-8; other encodings are not detected.