"""Tests for the YAML document store."""

from __future__ import annotations

import fcntl
from pathlib import Path

import pytest
import yaml

from evospec.errors import FormatError
from evospec.versioning.document import (
    document_lock,
    find_spec_files,
    get_current_version,
    lock_path_for,
    parse_document,
    read_document,
    write_document_atomically,
)
from evospec.versioning.models import HistoryEntry
from evospec.versioning.semver import SemanticVersion


def test_read_version_and_history(spec_file: Path) -> None:
    doc = read_document(spec_file)
    assert doc.version == SemanticVersion(1, 0, 0)
    history = doc.history()
    assert [str(h.version) for h in history] == ["1.0.0"]


def test_missing_version_is_format_error(tmp_path: Path) -> None:
    doc = parse_document(tmp_path / "x.evospec.yaml", "project: {id: x}\n")
    assert doc.raw_version is None
    with pytest.raises(FormatError):
        _ = doc.version


def test_non_mapping_document(tmp_path: Path) -> None:
    with pytest.raises(FormatError):
        parse_document(tmp_path / "x.evospec.yaml", "- a\n- b\n")


def test_history_not_a_list(tmp_path: Path) -> None:
    doc = parse_document(tmp_path / "x.evospec.yaml", "history: {a: 1}\n")
    with pytest.raises(FormatError):
        doc.history()


def test_bad_history_entry_reports_index(write_spec) -> None:
    path = write_spec("1.1.0", [{"version": "1.0.0"}, {"version": "bogus"}])
    with pytest.raises(FormatError, match=r"history\[1\]"):
        read_document(path).history()


def test_get_current_version_unreadable(tmp_path: Path) -> None:
    assert get_current_version(tmp_path / "missing.evospec.yaml") is None


def test_with_new_version_appends_and_preserves(spec_file: Path) -> None:
    doc = read_document(spec_file)
    doc.data["entities"] = {"user": {"fields": {"id": "uuid"}}}
    entry = HistoryEntry(SemanticVersion(1, 1, 0), SemanticVersion(1, 0, 0), "add email")

    updated = doc.with_new_version(entry)

    assert updated.version == SemanticVersion(1, 1, 0)
    assert [str(h.version) for h in updated.history()] == ["1.0.0", "1.1.0"]
    assert updated.data["entities"] == doc.data["entities"]
    # original untouched
    assert doc.version == SemanticVersion(1, 0, 0)
    assert len(doc.history()) == 1


def test_atomic_write_keeps_key_order(spec_file: Path) -> None:
    doc = read_document(spec_file)
    entry = HistoryEntry(SemanticVersion(1, 0, 1), SemanticVersion(1, 0, 0), "fix")
    write_document_atomically(spec_file, doc.with_new_version(entry))

    data = yaml.safe_load(spec_file.read_text(encoding="utf-8"))
    assert list(data) == ["spec", "project", "history"]
    assert data["project"]["versioning"]["current"] == "1.0.1"
    leftovers = [p for p in spec_file.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_document_lock_is_exclusive(spec_file: Path) -> None:
    with document_lock(spec_file) as lock_path:
        assert lock_path == lock_path_for(spec_file)
        assert lock_path.parent.name == ".evospec"
        with lock_path.open("a+") as other:
            with pytest.raises(BlockingIOError):
                fcntl.flock(other.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

    with lock_path_for(spec_file).open("a+") as other:
        fcntl.flock(other.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        fcntl.flock(other.fileno(), fcntl.LOCK_UN)


def test_find_spec_files_sorted(tmp_path: Path) -> None:
    (tmp_path / "b.evospec.yaml").write_text("{}")
    (tmp_path / "a.evospec.yaml").write_text("{}")
    (tmp_path / "notes.yaml").write_text("{}")
    assert [p.name for p in find_spec_files(tmp_path)] == ["a.evospec.yaml", "b.evospec.yaml"]
