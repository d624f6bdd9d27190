"""
Resolve version references to document content and compare them.

Two modes:
- full: line diff of the two document texts (difflib opcodes, so inserted
  or deleted lines do not shift every following line into a "replaced" pair)
- changes_only: the structured change entries recorded in the ledger for
  versions in the half-open interval (from, to]
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from ..errors import GIT_UNAVAILABLE, REF_NOT_FOUND, TAG_NOT_FOUND, FormatError, GitError
from .document import parse_document
from .git import VersionControl
from .models import (
    WORKING_COPY,
    ChangeEntry,
    SemanticRef,
    VcsRef,
    VersionReference,
    WorkingCopyRef,
)
from .semver import SemanticVersion

logger = logging.getLogger(__name__)

DiffMode = Literal["full", "changes_only"]

LineKind = Literal["unchanged", "added", "removed", "replaced"]


@dataclass(frozen=True)
class DiffLine:
    kind: LineKind
    old_lineno: int | None = None  # 1-based
    new_lineno: int | None = None
    old_text: str | None = None
    new_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind}
        if self.old_lineno is not None:
            result["old_lineno"] = self.old_lineno
            result["old_text"] = self.old_text
        if self.new_lineno is not None:
            result["new_lineno"] = self.new_lineno
            result["new_text"] = self.new_text
        return result


@dataclass(frozen=True)
class VersionedChange:
    """A ChangeEntry annotated with the version that recorded it."""

    version: SemanticVersion
    change: ChangeEntry

    def to_dict(self) -> dict[str, Any]:
        return {"version": str(self.version), **self.change.to_dict()}


@dataclass
class DiffResult:
    from_ref: VersionReference
    to_ref: VersionReference
    mode: DiffMode
    from_version: SemanticVersion | None = None
    to_version: SemanticVersion | None = None
    lines: list[DiffLine] = field(default_factory=list)
    changes: list[VersionedChange] = field(default_factory=list)

    @property
    def changed_lines(self) -> list[DiffLine]:
        return [line for line in self.lines if line.kind != "unchanged"]

    @property
    def has_differences(self) -> bool:
        if self.mode == "changes_only":
            return bool(self.changes)
        return bool(self.changed_lines)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "from": str(self.from_ref),
            "to": str(self.to_ref),
            "mode": self.mode,
            "from_version": str(self.from_version) if self.from_version else None,
            "to_version": str(self.to_version) if self.to_version else None,
        }
        if self.mode == "changes_only":
            result["changes"] = [c.to_dict() for c in self.changes]
        else:
            result["lines"] = [line.to_dict() for line in self.changed_lines]
        return result


# -----------------------------------------------------------------------------
# Reference resolution
# -----------------------------------------------------------------------------


def _require_git(git: VersionControl | None, ref: VersionReference) -> VersionControl:
    if git is None:
        raise GitError(f"Git is required to resolve {ref}", GIT_UNAVAILABLE)
    return git


def resolve_content(
    ref: VersionReference,
    spec_file: Path,
    git: VersionControl | None,
    tag_prefix: str = "v",
) -> str:
    """
    Document text at ``ref``.

    Raises:
        GitError: TAG_NOT_FOUND for a semantic version without a tag,
            REF_NOT_FOUND when Git cannot show the file at the ref.
    """
    if isinstance(ref, WorkingCopyRef):
        try:
            return spec_file.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise GitError(f"Spec file not found: {spec_file}", REF_NOT_FOUND) from e

    vcs = _require_git(git, ref)
    if isinstance(ref, SemanticRef):
        tag_name = f"{tag_prefix}{ref.value}"
        commit = vcs.resolve_tag(tag_name)
        if commit is None:
            raise GitError(
                f"Cannot find spec at version {ref.value}: tag {tag_name} not found",
                TAG_NOT_FOUND,
                suggestion="evospec history --git",
            )
        logger.debug("Resolved %s to %s", tag_name, commit)
        return vcs.content_at_ref(commit, spec_file)

    if isinstance(ref, VcsRef):
        return vcs.content_at_ref(ref.value, spec_file)

    raise TypeError(f"Unknown reference: {ref!r}")


def _declared_version(spec_file: Path, content: str, ref: VersionReference) -> SemanticVersion:
    if isinstance(ref, SemanticRef):
        return ref.value
    try:
        return parse_document(spec_file, content).version
    except FormatError as e:
        raise FormatError(f"Cannot determine version at {ref}: {e.message}") from e


# -----------------------------------------------------------------------------
# Diffing
# -----------------------------------------------------------------------------


def diff_lines(old: str, new: str) -> list[DiffLine]:
    """
    Line diff of two texts.

    A ``replace`` block pairs lines by position; surplus lines on either
    side become plain removals or additions.
    """
    a = old.splitlines()
    b = new.splitlines()
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)
    lines: list[DiffLine] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            for offset in range(i2 - i1):
                lines.append(DiffLine(
                    "unchanged", i1 + offset + 1, j1 + offset + 1, a[i1 + offset], b[j1 + offset],
                ))
        elif tag == "delete":
            for i in range(i1, i2):
                lines.append(DiffLine("removed", old_lineno=i + 1, old_text=a[i]))
        elif tag == "insert":
            for j in range(j1, j2):
                lines.append(DiffLine("added", new_lineno=j + 1, new_text=b[j]))
        else:
            span = max(i2 - i1, j2 - j1)
            for offset in range(span):
                i = i1 + offset
                j = j1 + offset
                if i < i2 and j < j2:
                    lines.append(DiffLine("replaced", i + 1, j + 1, a[i], b[j]))
                elif i < i2:
                    lines.append(DiffLine("removed", old_lineno=i + 1, old_text=a[i]))
                else:
                    lines.append(DiffLine("added", new_lineno=j + 1, new_text=b[j]))
    return lines


def changes_between(
    history: list[Any],
    lower: SemanticVersion,
    upper: SemanticVersion,
) -> list[VersionedChange]:
    """
    Flatten change entries of history entries with lower < version <= upper.

    Versions are visited in ascending order; entries keep ledger order
    within a version.
    """
    selected = [h for h in history if lower < h.version <= upper]
    selected.sort(key=lambda h: h.version)
    return [VersionedChange(h.version, change) for h in selected for change in h.changes]


def diff_versions(
    ref1: VersionReference,
    ref2: VersionReference = WORKING_COPY,
    *,
    spec_file: Path,
    git: VersionControl | None,
    tag_prefix: str = "v",
    mode: DiffMode = "full",
) -> DiffResult:
    """
    Compare the document at two references.

    Both references are resolved before anything is computed, so a
    failing reference never yields a partial result.
    """
    content1 = resolve_content(ref1, spec_file, git, tag_prefix)
    content2 = resolve_content(ref2, spec_file, git, tag_prefix)

    result = DiffResult(from_ref=ref1, to_ref=ref2, mode=mode)

    if mode == "changes_only":
        result.from_version = _declared_version(spec_file, content1, ref1)
        result.to_version = _declared_version(spec_file, content2, ref2)
        # The upper document carries every ledger entry up to its own version.
        history = parse_document(spec_file, content2).history()
        result.changes = changes_between(history, result.from_version, result.to_version)
        return result

    result.from_version = _try_version(spec_file, content1, ref1)
    result.to_version = _try_version(spec_file, content2, ref2)
    result.lines = diff_lines(content1, content2)
    return result


def _try_version(spec_file: Path, content: str, ref: VersionReference) -> SemanticVersion | None:
    try:
        return _declared_version(spec_file, content, ref)
    except FormatError:
        return None
