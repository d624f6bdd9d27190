"""
Version bumping.

A bump is a short transaction against three stores:

    document write → git commit → git tag

Preconditions for every step are verified before the document is touched.
If the commit fails, the previous document bytes are restored. If the tag
fails after a successful commit, the commit stays and the result reports a
partial failure; ``evospec version tag`` repairs it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence, Union

from ..errors import (
    GIT_UNAVAILABLE,
    NOT_GIT_REPO,
    TAG_EXISTS,
    EvospecError,
    FormatError,
    GitError,
    PartialFailureError,
    StateError,
)
from .document import (
    SpecDocument,
    document_lock,
    read_document,
    restore_bytes,
    write_document_atomically,
)
from .git import VersionControl
from .models import ChangeEntry, HistoryEntry
from .semver import BUMP_TYPES, SemanticVersion

logger = logging.getLogger(__name__)

ChangeInput = Union[ChangeEntry, Mapping[str, Any], str]


@dataclass
class BumpRequest:
    spec_file: Path
    bump_type: str
    message: str
    changes: Sequence[ChangeInput] = ()
    skip_commit: bool = False
    skip_tag: bool = False
    dry_run: bool = False


@dataclass
class BumpResult:
    success: bool
    previous_version: str | None = None
    new_version: str | None = None
    commit_hash: str | None = None
    tag_name: str | None = None
    errors: list[str] = field(default_factory=list)
    error_code: str | None = None
    suggestions: list[str] = field(default_factory=list)
    dry_run: bool = False
    document_written: bool = False
    rolled_back: bool = False
    partial_failure: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "previous_version": self.previous_version,
            "new_version": self.new_version,
            "commit_hash": self.commit_hash,
            "tag_name": self.tag_name,
            "errors": self.errors,
            "error_code": self.error_code,
            "dry_run": self.dry_run,
            "rolled_back": self.rolled_back,
            "partial_failure": self.partial_failure,
        }


def normalize_changes(changes: Sequence[ChangeInput]) -> tuple[list[ChangeEntry], list[str]]:
    """
    Convert change inputs to ChangeEntry values.

    Every entry is checked; errors carry the index of the offending entry.
    """
    entries: list[ChangeEntry] = []
    errors: list[str] = []
    for idx, raw in enumerate(changes):
        try:
            if isinstance(raw, ChangeEntry):
                entries.append(raw)
            elif isinstance(raw, str):
                entries.append(ChangeEntry.parse(raw))
            else:
                entries.append(ChangeEntry.from_dict(dict(raw)))
        except (FormatError, TypeError, ValueError) as e:
            detail = e.message if isinstance(e, FormatError) else str(e)
            errors.append(f"change[{idx}]: {detail}")
    return entries, errors


def compute_next_version(current: SemanticVersion, bump_type: str) -> SemanticVersion:
    return current.bump(bump_type)


def _validate_request(request: BumpRequest) -> list[str]:
    errors = []
    if request.bump_type not in BUMP_TYPES:
        errors.append(f"Invalid bump type: {request.bump_type!r} (expected major, minor or patch)")
    if not request.message or not request.message.strip():
        errors.append("A non-empty message is required for bump (-m \"message\")")
    if request.skip_commit and not request.skip_tag:
        errors.append("--no-commit requires --no-tag: a tag must point at the commit that records the version")
    return errors


def _check_git_preconditions(
    git: VersionControl | None,
    request: BumpRequest,
    tag_name: str,
) -> None:
    if request.skip_commit and request.skip_tag:
        return
    if git is None:
        raise GitError(
            "Git not available",
            GIT_UNAVAILABLE,
            suggestion="evospec version bump ... --no-commit --no-tag",
        )
    if not git.is_repository():
        raise GitError(
            "Not a Git repository",
            NOT_GIT_REPO,
            suggestion="git init, or pass --no-commit --no-tag",
        )
    if not request.skip_tag and git.resolve_tag(tag_name) is not None:
        raise GitError(
            f"Tag {tag_name} already exists",
            TAG_EXISTS,
            suggestion=f"git tag -d {tag_name}",
        )


def _fail(result: BumpResult, error: EvospecError) -> BumpResult:
    result.success = False
    result.errors.append(error.message)
    if result.error_code is None:
        result.error_code = getattr(error, "code", None)
    if error.suggestion:
        result.suggestions.append(error.suggestion)
    return result


def bump_version(
    git: VersionControl | None,
    request: BumpRequest,
    tag_prefix: str = "v",
) -> BumpResult:
    """
    Bump the document version and record a history entry.

    Returns a BumpResult; errors never escape as exceptions. A dry run
    computes the same versions as the real run without touching anything.
    """
    result = BumpResult(success=False, dry_run=request.dry_run)

    result.errors.extend(_validate_request(request))
    changes, change_errors = normalize_changes(request.changes)
    result.errors.extend(change_errors)
    if result.errors:
        return result

    if request.dry_run:
        planned = _plan(request, changes, result)
        if planned is not None:
            result.success = True
        return result

    with document_lock(request.spec_file):
        planned = _plan(request, changes, result)
        if planned is None:
            return result
        document, history, entry = planned

        if any(h.version == entry.version for h in history):
            return _fail(
                result,
                StateError(
                    f"Version {entry.version} is already recorded in history",
                    "DUPLICATE_VERSION",
                    suggestion="evospec version check",
                ),
            )

        tag_name = f"{tag_prefix}{entry.version}"
        try:
            _check_git_preconditions(git, request, tag_name)
        except GitError as e:
            return _fail(result, e)

        return _apply_bump(git, request, document, entry, tag_name, result)


def _plan(
    request: BumpRequest,
    changes: list[ChangeEntry],
    result: BumpResult,
) -> tuple[SpecDocument, list[HistoryEntry], HistoryEntry] | None:
    """Read the document and build the entry the bump would append."""
    try:
        document = read_document(request.spec_file)
        current = document.version
        history = document.history()
    except OSError as e:
        _fail(result, FormatError(f"Cannot read {request.spec_file}: {e}"))
        return None
    except FormatError as e:
        _fail(result, e)
        return None

    new_version = compute_next_version(current, request.bump_type)
    result.previous_version = str(current)
    result.new_version = str(new_version)
    entry = HistoryEntry(
        version=new_version,
        based_on=current,
        notes=request.message.strip(),
        changes=tuple(changes),
    )
    return document, history, entry


def _apply_bump(
    git: VersionControl | None,
    request: BumpRequest,
    document: SpecDocument,
    entry: HistoryEntry,
    tag_name: str,
    result: BumpResult,
) -> BumpResult:
    spec_file = request.spec_file
    if git is None and not request.skip_commit:
        return _fail(result, GitError("Git not available", GIT_UNAVAILABLE))
    previous_bytes = spec_file.read_bytes()

    try:
        write_document_atomically(spec_file, document.with_new_version(entry))
    except OSError as e:
        return _fail(result, StateError(f"Cannot write {spec_file.name}: {e}", "WRITE_FAILED"))
    result.document_written = True
    logger.debug("Document %s bumped to %s", spec_file.name, entry.version)

    # skip_commit implies skip_tag (see _validate_request)
    if git is None or request.skip_commit:
        result.success = True
        return result

    try:
        result.commit_hash = git.stage_and_commit(spec_file, request.message.strip())
    except GitError as e:
        _rollback(git, spec_file, previous_bytes, result)
        return _fail(result, e)

    if not request.skip_tag:
        try:
            git.create_annotated_tag(
                tag_name,
                f"Version {entry.version}: {request.message.strip()}",
                target=result.commit_hash,
            )
        except GitError as e:
            result.partial_failure = True
            partial = PartialFailureError(
                f"Version {entry.version} was written and committed"
                f" but tag {tag_name} could not be created: {e.message}",
                step="tag",
                suggestion="evospec version tag",
            )
            logger.warning(partial.message)
            return _fail(result, partial)
        result.tag_name = tag_name

    result.success = True
    return result


def _rollback(git: VersionControl, spec_file: Path, previous_bytes: bytes, result: BumpResult) -> None:
    logger.warning("Commit failed, restoring previous %s", spec_file.name)
    try:
        git.unstage(spec_file)
    except GitError as e:
        result.errors.append(f"Could not unstage {spec_file.name}: {e.message}")
    try:
        restore_bytes(spec_file, previous_bytes)
    except OSError as e:
        logger.error("Could not restore %s: %s", spec_file.name, e)
        result.errors.append(f"Could not restore {spec_file.name}: {e}")
        return
    result.rolled_back = True
    result.document_written = False


def tag_current_version(git: VersionControl | None, spec_file: Path, tag_prefix: str = "v") -> str:
    """
    Create the annotated tag for the document's current version.

    Repairs a bump whose tag step failed. Raises on a missing Git, an
    unreadable version, or a tag that already exists.
    """
    if git is None:
        raise GitError("Git not available", GIT_UNAVAILABLE)
    if not git.is_repository():
        raise GitError("Not a Git repository", NOT_GIT_REPO)
    version = read_document(spec_file).version
    tag_name = f"{tag_prefix}{version}"
    git.create_annotated_tag(tag_name, f"Version {version}")
    return tag_name
