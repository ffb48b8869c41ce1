import json
import os

import pytest

from novelreader.config import load_config, load_progress
from novelreader.library import Library, LibraryError

MARKDOWN_NOVEL = "# One\nfirst line\n\nsecond line\n# Two\nthird line\n"
CHINESE_NOVEL = "第一章 开始\n内容一\n第二章 继续\n内容二\n第三章 结束\n内容三\n"


@pytest.fixture
def paths(tmp_path):
    return tmp_path / "cfg" / "config.json", tmp_path / "cfg" / "progress.json"


@pytest.fixture
def library(paths):
    return Library(*paths)


def write_novel(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_empty_library_lists_nothing(library, capsys):
    assert library.list_novels() == []
    assert "Library is empty. Use 'add <filepath>' to add a novel." in capsys.readouterr().out
    assert library.active_novel is None


def test_add_sets_active_and_progress(library, tmp_path):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    info = library.add(path)
    abs_path = os.path.abspath(path)
    assert info.file_path == abs_path
    assert info.chapter_titles == ["# One", "# Two"]
    assert info.detected_regex == "markdown"
    assert library.cfg.active_novel_path == abs_path
    assert library.active_novel is info
    assert library.progress[abs_path].last_read_chapter_index == 0
    assert library.config_dirty and library.progress_dirty


def test_add_detects_chinese(library, tmp_path):
    path = write_novel(tmp_path, "book.txt", CHINESE_NOVEL)
    info = library.add(path)
    assert info.detected_regex == "chinese"
    assert info.chapter_titles == ["第一章 开始", "第二章 继续", "第三章 结束"]


def test_add_twice_keeps_one_entry(library, tmp_path):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    first = library.add(path)
    second = library.add(path)
    assert second is first
    assert len(library.cfg.novels) == 1


def test_add_missing_file_raises(library, tmp_path):
    with pytest.raises(LibraryError, match="File not found"):
        library.add(tmp_path / "missing.md")


def test_add_file_without_chapters_raises(library, tmp_path):
    path = write_novel(tmp_path, "plain.txt", "just some text\nand more\n")
    with pytest.raises(LibraryError):
        library.add(path)
    assert library.cfg.novels == {}


def test_save_on_exit_persists(library, paths, tmp_path):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    library.add(path)
    library.save_on_exit()
    assert not library.config_dirty and not library.progress_dirty
    cfg = load_config(paths[0])
    abs_path = os.path.abspath(path)
    assert cfg.active_novel_path == abs_path
    assert cfg.novels[abs_path].chapter_titles == ["# One", "# Two"]
    progress = load_progress(paths[1])
    assert progress[abs_path].last_read_segment_index == 0


def test_sorted_novels_and_list_lines(library, tmp_path):
    b = write_novel(tmp_path, "b.md", MARKDOWN_NOVEL)
    a = write_novel(tmp_path, "a.md", MARKDOWN_NOVEL)
    library.add(b)
    library.add(a)
    ordered = [info.file_path for info in library.sorted_novels()]
    assert ordered == sorted(ordered)
    lines = library.list_novels()
    assert lines[0] == " * 1: a.md (2 chapters, last read: Ch 1, Seg 0)"
    assert lines[1].startswith("   2: b.md")


def test_remove_active_clears_it(library, tmp_path):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    library.add(path)
    removed = library.remove("1")
    assert removed.file_path == os.path.abspath(path)
    assert library.cfg.novels == {}
    assert library.progress == {}
    assert library.cfg.active_novel_path == ""
    assert library.active_novel is None


@pytest.mark.parametrize("index", ["abc", "0", "2", 5, "1.5"])
def test_remove_bad_index_raises(library, tmp_path, index):
    library.add(write_novel(tmp_path, "book.md", MARKDOWN_NOVEL))
    with pytest.raises(LibraryError):
        library.remove(index)
    assert len(library.cfg.novels) == 1


def test_switch_changes_active_and_saves(library, paths, tmp_path):
    a = write_novel(tmp_path, "a.md", MARKDOWN_NOVEL)
    b = write_novel(tmp_path, "b.md", MARKDOWN_NOVEL)
    library.add(a)
    library.add(b)
    assert library.cfg.active_novel_path == os.path.abspath(b)
    library.switch(1)
    assert library.cfg.active_novel_path == os.path.abspath(a)
    assert not library.config_dirty
    assert load_config(paths[0]).active_novel_path == os.path.abspath(a)
    assert load_progress(paths[1]).keys() == {os.path.abspath(a), os.path.abspath(b)}


def test_switch_to_active_is_noop(library, tmp_path, capsys):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    library.add(path)
    library.switch("1")
    assert "is already active." in capsys.readouterr().out
    assert library.config_dirty


def test_chapters_without_active(library, capsys):
    assert library.chapters() == []
    assert "No active novel selected." in capsys.readouterr().out


def test_chapters_reloaded_in_new_session(library, paths, tmp_path):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    library.add(path)
    library.save_on_exit()
    reopened = Library(*paths)
    assert reopened.active_novel is not None
    assert reopened.active_novel.chapters == []
    assert reopened.chapters() == ["# One", "# Two"]
    chapters = reopened.active_novel.chapters
    assert chapters[0].content == "first line\n\nsecond line"
    assert chapters[1].content == "third line"
    assert not reopened.config_dirty


def test_load_chapters_rebuilds_mismatched_titles(library, paths, tmp_path):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    library.add(path)
    library.save_on_exit()
    path.write_text(MARKDOWN_NOVEL + "# Three\nmore\n", encoding="utf-8")
    reopened = Library(*paths)
    reopened.load_active_chapters()
    assert reopened.active_novel.chapter_titles == ["# One", "# Two", "# Three"]
    assert reopened.config_dirty


def test_load_chapters_missing_file(library, paths, tmp_path):
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    library.add(path)
    library.save_on_exit()
    path.unlink()
    reopened = Library(*paths)
    assert reopened.chapters() == ["# One", "# Two"]
    assert reopened.active_novel.chapters == []


def test_unknown_active_path_is_cleared(paths):
    config_path, progress_path = paths
    config_path.parent.mkdir(parents=True)
    config_path.write_text(
        json.dumps({"novels": {}, "active_novel_path": "/nowhere/book.md"}),
        encoding="utf-8",
    )
    library = Library(config_path, progress_path)
    assert library.active_novel is None
    assert library.cfg.active_novel_path == ""
    assert library.config_dirty


def test_corrupt_config_raises(paths):
    config_path, progress_path = paths
    config_path.parent.mkdir(parents=True)
    config_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(LibraryError):
        Library(config_path, progress_path)


def test_where_reports_progress(library, tmp_path):
    assert library.where() == "No novel is currently active."
    path = write_novel(tmp_path, "book.md", MARKDOWN_NOVEL)
    library.add(path)
    progress = library.progress_for(os.path.abspath(path))
    progress.last_read_chapter_index = 1
    progress.last_read_segment_index = 3
    assert library.where() == (
        f"Active novel: {os.path.abspath(path)}\n"
        "Last read: Chapter 2 (# Two), Segment 3"
    )
    progress.last_read_chapter_index = 7
    assert "(chapter index out of bounds)" in library.where()


def test_progress_for_creates_entry(library):
    library.progress_dirty = False
    info = library.progress_for("/some/book.md")
    assert (info.last_read_chapter_index, info.last_read_segment_index) == (0, 0)
    assert library.progress["/some/book.md"] is info
    assert library.progress_dirty


def test_toggle_setting(library, capsys):
    assert library.show_config() == {"auto_next": False}
    assert library.toggle_setting("auto_next") is True
    assert "Set auto_next to: true" in capsys.readouterr().out
    assert library.config_dirty
    assert library.toggle_setting("auto_next") is False


def test_toggle_unknown_setting_raises(library):
    with pytest.raises(LibraryError, match="Unknown config setting"):
        library.toggle_setting("volume")
    assert library.cfg.auto_read_next is False