"""Tests for ledger value types and version references."""

from __future__ import annotations

import pytest

from evospec.errors import FormatError
from evospec.versioning.models import (
    WORKING_COPY,
    ChangeEntry,
    HistoryEntry,
    SemanticRef,
    VcsRef,
    WorkingCopyRef,
    parse_reference,
)
from evospec.versioning.semver import SemanticVersion


# -----------------------------------------------------------------------------
# ChangeEntry
# -----------------------------------------------------------------------------


def test_change_parse_full() -> None:
    change = ChangeEntry.parse("add:entity.user:email:string")
    assert change == ChangeEntry("add", "entity.user", "email", "string")
    assert change.describe() == "add: entity.user.email (string)"


def test_change_parse_target_only() -> None:
    change = ChangeEntry.parse("deprecate:api.v1")
    assert change.field is None
    assert change.type is None
    assert change.describe() == "deprecate: api.v1"
    assert change.to_dict() == {"op": "deprecate", "target": "api.v1"}


def test_change_parse_empty_field_kept_absent() -> None:
    change = ChangeEntry.parse("modify:entity.order::decimal")
    assert change.field is None
    assert change.type == "decimal"


@pytest.mark.parametrize("spec", ["add", "add:a:b:c:d", "explode:entity.user", "add:", "add:  "])
def test_change_parse_invalid(spec: str) -> None:
    with pytest.raises(FormatError):
        ChangeEntry.parse(spec)


def test_change_from_dict_requires_mapping() -> None:
    with pytest.raises(FormatError):
        ChangeEntry.from_dict(["add", "x"])


# -----------------------------------------------------------------------------
# HistoryEntry
# -----------------------------------------------------------------------------


def test_history_entry_dict_keys() -> None:
    entry = HistoryEntry(
        version=SemanticVersion(1, 1, 0),
        based_on=SemanticVersion(1, 0, 0),
        notes="add email",
        changes=(ChangeEntry("add", "entity.user", "email", "string"),),
    )
    data = entry.to_dict()
    assert data == {
        "version": "1.1.0",
        "basedOn": "1.0.0",
        "notes": "add email",
        "changes": [{"op": "add", "target": "entity.user", "field": "email", "type": "string"}],
    }
    assert HistoryEntry.from_dict(data) == entry


def test_history_entry_first_has_no_based_on() -> None:
    entry = HistoryEntry.from_dict({"version": "1.0.0", "notes": "Initial"})
    assert entry.based_on is None
    assert entry.changes == ()
    assert "basedOn" not in entry.to_dict()


def test_history_entry_bad_change_reports_index() -> None:
    data = {"version": "1.1.0", "changes": [{"op": "add", "target": "a"}, {"op": "zap", "target": "b"}]}
    with pytest.raises(FormatError, match=r"change\[1\]"):
        HistoryEntry.from_dict(data)


def test_history_entry_bad_version() -> None:
    with pytest.raises(FormatError):
        HistoryEntry.from_dict({"version": "one"})


# -----------------------------------------------------------------------------
# References
# -----------------------------------------------------------------------------


def test_parse_reference_semantic() -> None:
    assert parse_reference("1.2.0") == SemanticRef(SemanticVersion(1, 2, 0))
    assert parse_reference("v1.2.0") == SemanticRef(SemanticVersion(1, 2, 0))
    assert parse_reference("v1.2.0").kind == "semantic"


def test_parse_reference_custom_prefix() -> None:
    assert parse_reference("rel-2.0.0", "rel-") == SemanticRef(SemanticVersion(2, 0, 0))


def test_parse_reference_vcs() -> None:
    ref = parse_reference("HEAD~1")
    assert ref == VcsRef("HEAD~1")
    assert ref.kind == "vcsRef"
    assert parse_reference("main") == VcsRef("main")


@pytest.mark.parametrize("text", [None, "", "working", "WORKING", "worktree"])
def test_parse_reference_working_copy(text: str | None) -> None:
    ref = parse_reference(text)
    assert isinstance(ref, WorkingCopyRef)
    assert ref == WORKING_COPY
