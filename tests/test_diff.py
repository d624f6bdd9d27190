"""Tests for reference resolution and the two diff modes."""

from __future__ import annotations

import pytest

from evospec.errors import GIT_UNAVAILABLE, TAG_NOT_FOUND, GitError
from evospec.versioning.bump import BumpRequest, bump_version
from evospec.versioning.diff import changes_between, diff_lines, diff_versions, resolve_content
from evospec.versioning.history import get_history
from evospec.versioning.models import WORKING_COPY, parse_reference
from evospec.versioning.semver import SemanticVersion


@pytest.fixture
def three_releases(released):
    """1.0.0 -> 1.1.0 (add email) -> 1.2.0 (rename user), all tagged."""
    spec_file, git = released
    for message, change in [
        ("add email", "add:entity.user:email:string"),
        ("rename user", "rename:entity.user::account"),
    ]:
        result = bump_version(
            git,
            BumpRequest(spec_file=spec_file, bump_type="minor", message=message, changes=[change]),
        )
        assert result.success, result.errors
    return spec_file, git


# -----------------------------------------------------------------------------
# Line diff
# -----------------------------------------------------------------------------


def test_identical_texts_have_no_changes() -> None:
    lines = diff_lines("a\nb\n", "a\nb\n")
    assert [line.kind for line in lines] == ["unchanged", "unchanged"]


def test_inserted_line_does_not_shift_the_rest() -> None:
    old = "alpha\nbeta\ngamma\ndelta\n"
    new = "alpha\nNEW\nbeta\ngamma\ndelta\n"
    changed = [line for line in diff_lines(old, new) if line.kind != "unchanged"]
    assert len(changed) == 1
    assert changed[0].kind == "added"
    assert changed[0].new_text == "NEW"
    assert changed[0].new_lineno == 2


def test_removed_line() -> None:
    changed = [line for line in diff_lines("a\nb\nc\n", "a\nc\n") if line.kind != "unchanged"]
    assert [(c.kind, c.old_text, c.old_lineno) for c in changed] == [("removed", "b", 2)]


def test_replaced_lines_pair_positionally() -> None:
    changed = [line for line in diff_lines("a\nb\nc\n", "a\nB\nC\nD\n") if line.kind != "unchanged"]
    assert [c.kind for c in changed] == ["replaced", "replaced", "added"]
    assert (changed[0].old_text, changed[0].new_text) == ("b", "B")
    assert changed[2].new_text == "D"


# -----------------------------------------------------------------------------
# Resolution
# -----------------------------------------------------------------------------


def test_resolve_working_copy(spec_file) -> None:
    assert resolve_content(WORKING_COPY, spec_file, None) == spec_file.read_text(encoding="utf-8")


def test_resolve_semantic_requires_tag(released) -> None:
    spec_file, git = released
    with pytest.raises(GitError) as excinfo:
        resolve_content(parse_reference("9.9.9"), spec_file, git)
    assert excinfo.value.code == TAG_NOT_FOUND


def test_resolve_needs_git_for_refs(spec_file) -> None:
    with pytest.raises(GitError) as excinfo:
        resolve_content(parse_reference("HEAD"), spec_file, None)
    assert excinfo.value.code == GIT_UNAVAILABLE


def test_resolve_vcs_ref(three_releases) -> None:
    spec_file, git = three_releases
    text = resolve_content(parse_reference("HEAD~1"), spec_file, git)
    assert "current: 1.1.0" in text


# -----------------------------------------------------------------------------
# diff_versions
# -----------------------------------------------------------------------------


def test_full_diff_between_tags(three_releases) -> None:
    spec_file, git = three_releases
    result = diff_versions(parse_reference("1.0.0"), parse_reference("v1.1.0"), spec_file=spec_file, git=git)
    assert result.has_differences
    added = [line.new_text for line in result.changed_lines if line.new_text]
    assert any("email" in text for text in added)
    assert result.from_version == SemanticVersion(1, 0, 0)
    assert result.to_version == SemanticVersion(1, 1, 0)


def test_full_diff_against_working_copy(three_releases) -> None:
    spec_file, git = three_releases
    result = diff_versions(parse_reference("1.2.0"), spec_file=spec_file, git=git)
    assert not result.has_differences

    spec_file.write_text(spec_file.read_text(encoding="utf-8") + "extra: true\n", encoding="utf-8")
    result = diff_versions(parse_reference("1.2.0"), spec_file=spec_file, git=git)
    assert [(line.kind, line.new_text) for line in result.changed_lines] == [("added", "extra: true")]


def test_changes_only_interval_excludes_lower_bound(three_releases) -> None:
    spec_file, git = three_releases
    result = diff_versions(
        parse_reference("1.0.0"),
        parse_reference("1.2.0"),
        spec_file=spec_file,
        git=git,
        mode="changes_only",
    )
    assert [str(c.version) for c in result.changes] == ["1.1.0", "1.2.0"]
    assert result.changes[0].change.describe() == "add: entity.user.email (string)"
    assert result.changes[1].change.op == "rename"
    assert result.to_dict()["changes"][0]["version"] == "1.1.0"


def test_changes_only_with_working_copy_bound(three_releases) -> None:
    spec_file, git = three_releases
    result = diff_versions(parse_reference("1.1.0"), spec_file=spec_file, git=git, mode="changes_only")
    assert result.to_version == SemanticVersion(1, 2, 0)
    assert [str(c.version) for c in result.changes] == ["1.2.0"]


def test_missing_tag_aborts_without_result(three_releases) -> None:
    spec_file, git = three_releases
    with pytest.raises(GitError) as excinfo:
        diff_versions(parse_reference("1.1.0"), parse_reference("3.0.0"), spec_file=spec_file, git=git)
    assert excinfo.value.code == TAG_NOT_FOUND


def test_changes_between_sorts_ascending(three_releases) -> None:
    spec_file, _ = three_releases
    history = list(reversed(get_history(spec_file)))
    changes = changes_between(history, SemanticVersion(0, 0, 0), SemanticVersion(9, 0, 0))
    assert [str(c.version) for c in changes] == ["1.1.0", "1.2.0"]
