"""
History ledger queries and version consistency checks.

Three stores must agree: the version declared by the document, the last
entry of its history ledger, and the Git tag for that version. The checker
reports drift as data; it never repairs anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

from ..errors import ConsistencyError, FormatError, GitError
from .document import read_document
from .git import VersionControl
from .models import GitAnchor, HistoryEntry, HistoryEntryWithGit
from .semver import SemanticVersion

logger = logging.getLogger(__name__)

CHECK_VERSION_FORMAT = "Version format"
CHECK_HISTORY_MATCH = "History entry"
CHECK_GIT_TAG = "Git tag"
CHECK_UNIQUE_VERSIONS = "Unique versions"
CHECK_VERSION_ORDER = "Version order"


def get_history(spec_file: Path) -> list[HistoryEntry]:
    """Ledger entries as stored (append order)."""
    return read_document(spec_file).history()


def _vcs_usable(git: VersionControl | None) -> bool:
    if git is None:
        return False
    try:
        return git.is_repository()
    except GitError:
        return False


def resolve_anchor(git: VersionControl, tag_name: str) -> GitAnchor | None:
    """Look up the commit behind ``tag_name``; None when the tag is absent."""
    commit = git.resolve_tag(tag_name)
    if commit is None:
        return None
    log = git.recent_commits(1, ref=tag_name)
    if log:
        return GitAnchor(
            tag_name=tag_name,
            commit_hash=log[0].hash,
            commit_date=log[0].date,
            commit_message=log[0].message,
        )
    return GitAnchor(tag_name=tag_name, commit_hash=commit, commit_date="", commit_message="")


def get_history_with_git(
    spec_file: Path,
    git: VersionControl | None,
    tag_prefix: str = "v",
) -> list[HistoryEntryWithGit]:
    """
    Ledger entries augmented with their Git anchors.

    A missing tag or an unusable VCS leaves ``git`` empty; it is never fatal.
    """
    entries = get_history(spec_file)
    if not _vcs_usable(git):
        return [HistoryEntryWithGit(entry) for entry in entries]

    augmented = []
    for entry in entries:
        anchor = None
        try:
            anchor = resolve_anchor(git, f"{tag_prefix}{entry.version}")  # type: ignore[arg-type]
        except GitError as e:
            logger.debug("No anchor for %s: %s", entry.version, e.message)
        augmented.append(HistoryEntryWithGit(entry, anchor))
    return augmented


def sort_history(entries: Iterable[Any], *, descending: bool = True, limit: int | None = None) -> list[Any]:
    """
    Sort entries by SemanticVersion (numeric, never lexical).

    Works for HistoryEntry and HistoryEntryWithGit alike.
    """
    ordered = sorted(entries, key=lambda e: e.version, reverse=descending)
    if limit is not None:
        ordered = ordered[: max(limit, 0)]
    return ordered


# -----------------------------------------------------------------------------
# Consistency checks
# -----------------------------------------------------------------------------


@dataclass
class ConsistencyCheck:
    name: str
    passed: bool
    message: str
    suggestion: str | None = None
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.skipped:
            result["skipped"] = True
        return result


@dataclass
class ConsistencyReport:
    checks: list[ConsistencyCheck] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed(self) -> list[ConsistencyCheck]:
        return [c for c in self.checks if not c.passed]

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "checks": [c.to_dict() for c in self.checks]}


def _check_format(raw_version: str | None) -> tuple[ConsistencyCheck, SemanticVersion | None]:
    if raw_version is None:
        return (
            ConsistencyCheck(
                CHECK_VERSION_FORMAT,
                False,
                "No version declared (project.versioning.current)",
                suggestion="Set project.versioning.current to MAJOR.MINOR.PATCH",
            ),
            None,
        )
    version = SemanticVersion.try_parse(raw_version)
    if version is None:
        return (
            ConsistencyCheck(
                CHECK_VERSION_FORMAT,
                False,
                f"Invalid version {raw_version!r}",
                suggestion="Use MAJOR.MINOR.PATCH, e.g. 1.0.0",
            ),
            None,
        )
    return ConsistencyCheck(CHECK_VERSION_FORMAT, True, f"Valid semver {version}"), version


def _check_history_match(
    version: SemanticVersion | None,
    history: Sequence[HistoryEntry] | None,
    history_error: str | None,
) -> ConsistencyCheck:
    if history is None:
        return ConsistencyCheck(
            CHECK_HISTORY_MATCH, False, f"History unreadable: {history_error}",
            suggestion="Fix the history section of the spec file",
        )
    if not history:
        return ConsistencyCheck(
            CHECK_HISTORY_MATCH, False, "History is empty",
            suggestion="evospec version bump patch -m \"Initial version\"",
        )
    last = history[-1].version
    if version is None:
        return ConsistencyCheck(
            CHECK_HISTORY_MATCH, False, f"Cannot compare with last history entry {last}",
        )
    if last != version:
        return ConsistencyCheck(
            CHECK_HISTORY_MATCH,
            False,
            f"Spec version {version} does not match last history entry {last}",
            suggestion=f"Set project.versioning.current to {last}, or record {version} with a bump",
        )
    return ConsistencyCheck(CHECK_HISTORY_MATCH, True, f"Latest history entry is {version}")


def _check_git_tag(
    version: SemanticVersion | None,
    git: VersionControl | None,
    tag_prefix: str,
) -> ConsistencyCheck:
    if git is None:
        return ConsistencyCheck(CHECK_GIT_TAG, True, "Git not available, tag not checked", skipped=True)
    if not _vcs_usable(git):
        return ConsistencyCheck(CHECK_GIT_TAG, True, "Not a Git repository, tag not checked", skipped=True)
    if version is None:
        return ConsistencyCheck(CHECK_GIT_TAG, False, "No valid version to look up a tag for")
    tag_name = f"{tag_prefix}{version}"
    try:
        commit = git.resolve_tag(tag_name)
    except GitError as e:
        return ConsistencyCheck(CHECK_GIT_TAG, False, f"Cannot look up {tag_name}: {e.message}")
    if commit is None:
        return ConsistencyCheck(
            CHECK_GIT_TAG, False, f"Tag {tag_name} not found",
            suggestion="evospec version tag",
        )
    return ConsistencyCheck(CHECK_GIT_TAG, True, f"Tag {tag_name} exists ({commit[:7]})")


def _check_unique(history: Sequence[HistoryEntry] | None) -> ConsistencyCheck:
    if history is None:
        return ConsistencyCheck(CHECK_UNIQUE_VERSIONS, False, "History unreadable")
    seen: set[SemanticVersion] = set()
    duplicates: list[str] = []
    for entry in history:
        if entry.version in seen and str(entry.version) not in duplicates:
            duplicates.append(str(entry.version))
        seen.add(entry.version)
    if duplicates:
        return ConsistencyCheck(
            CHECK_UNIQUE_VERSIONS,
            False,
            f"Duplicate versions in history: {', '.join(duplicates)}",
            suggestion="Remove or renumber the duplicated history entries",
        )
    return ConsistencyCheck(CHECK_UNIQUE_VERSIONS, True, f"{len(history)} unique versions")


def _check_order(history: Sequence[HistoryEntry] | None) -> ConsistencyCheck:
    if history is None:
        return ConsistencyCheck(CHECK_VERSION_ORDER, False, "History unreadable")
    for prev, cur in zip(history, history[1:]):
        if cur.version < prev.version:
            return ConsistencyCheck(
                CHECK_VERSION_ORDER,
                False,
                f"Version decreases from {prev.version} to {cur.version}",
                suggestion="History looks hand-edited; restore it from Git (git log -p <spec file>)",
            )
    return ConsistencyCheck(CHECK_VERSION_ORDER, True, "History versions never decrease")


def check_version_consistency(
    spec_file: Path,
    git: VersionControl | None,
    tag_prefix: str = "v",
) -> ConsistencyReport:
    """
    Run the five drift checks, in order:

    1. version format, 2. version == last history entry, 3. tag exists,
    4. unique history versions, 5. non-decreasing history versions.
    """
    document = read_document(spec_file)

    history: list[HistoryEntry] | None
    history_error = None
    try:
        history = document.history()
    except FormatError as e:
        history = None
        history_error = e.message

    report = ConsistencyReport()
    format_check, version = _check_format(document.raw_version)
    report.checks.append(format_check)
    report.checks.append(_check_history_match(version, history, history_error))
    report.checks.append(_check_git_tag(version, git, tag_prefix))
    report.checks.append(_check_unique(history))
    report.checks.append(_check_order(history))
    return report


def require_consistent(report: ConsistencyReport) -> None:
    """Raise ConsistencyError when any check failed."""
    if report.ok:
        return
    names = [c.name for c in report.failed]
    raise ConsistencyError(f"{len(names)} consistency check(s) failed: {', '.join(names)}", names)
