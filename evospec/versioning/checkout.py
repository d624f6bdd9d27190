"""
Move the working tree to a released version.

Versions map to tags (``tag_prefix + version``). Without a branch the
working tree ends up detached at the tag; that state is reported
explicitly because commits made there belong to no branch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import (
    GIT_UNAVAILABLE,
    NOT_GIT_REPO,
    TAG_NOT_FOUND,
    UNCOMMITTED_CHANGES,
    EvospecError,
    GitError,
    StateError,
)
from .document import document_lock, get_current_version
from .git import VersionControl
from .semver import SemanticVersion, strip_tag_prefix

logger = logging.getLogger(__name__)

MAX_TAG_HINTS = 10


class CheckoutState(str, Enum):
    BRANCH = "branch"  # New branch created at the tag
    DETACHED = "detached"  # Detached HEAD at the tag
    FAILED = "failed"


@dataclass
class CheckoutResult:
    state: CheckoutState
    requested: str
    tag_name: str | None = None
    branch: str | None = None
    discarded_changes: bool = False
    document_version: str | None = None
    error: str | None = None
    error_code: str | None = None
    suggestion: str | None = None
    available_tags: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state != CheckoutState.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "requested": self.requested,
            "tag_name": self.tag_name,
            "branch": self.branch,
            "discarded_changes": self.discarded_changes,
            "document_version": self.document_version,
            "error": self.error,
            "error_code": self.error_code,
            "available_tags": self.available_tags,
            "warnings": self.warnings,
        }


def normalize_version(text: str, tag_prefix: str = "v") -> str:
    """Strip a leading tag prefix ("v2.0.0" -> "2.0.0")."""
    return strip_tag_prefix(text, tag_prefix)


def relevant_tags(tags: list[str], tag_prefix: str, limit: int = MAX_TAG_HINTS) -> list[str]:
    """
    Tags sharing ``tag_prefix``, newest version first.

    Tags whose suffix is not a version keep their listing order after the
    versioned ones.
    """
    candidates = [t for t in tags if t.startswith(tag_prefix)]
    versioned = []
    other = []
    for tag in candidates:
        version = SemanticVersion.try_parse(tag[len(tag_prefix):])
        if version is None:
            other.append(tag)
        else:
            versioned.append((version, tag))
    versioned.sort(reverse=True)
    return ([tag for _, tag in versioned] + other)[:limit]


def _fail(result: CheckoutResult, error: EvospecError) -> CheckoutResult:
    result.state = CheckoutState.FAILED
    result.error = error.message
    result.error_code = getattr(error, "code", None)
    result.suggestion = error.suggestion
    return result


def checkout_version(
    git: VersionControl | None,
    version: str,
    *,
    branch: str | None = None,
    force: bool = False,
    tag_prefix: str = "v",
    spec_file: Path | None = None,
) -> CheckoutResult:
    """
    Check out the tag for ``version``.

    Preconditions, in order: Git usable, inside a repository, clean working
    tree (unless ``force``), tag exists. Nothing is changed when any fails.
    """
    result = CheckoutResult(state=CheckoutState.FAILED, requested=version)

    if git is None:
        return _fail(result, GitError("Git required for checkout", GIT_UNAVAILABLE))
    try:
        is_repo = git.is_repository()
    except GitError as e:
        return _fail(result, e)
    if not is_repo:
        return _fail(result, GitError("Not a Git repository", NOT_GIT_REPO))

    try:
        clean = git.is_working_tree_clean()
    except GitError as e:
        return _fail(result, e)
    if not clean and not force:
        return _fail(
            result,
            GitError(
                "Uncommitted changes in working directory",
                UNCOMMITTED_CHANGES,
                suggestion="Use --force to discard changes, or commit/stash first",
            ),
        )

    normalized = normalize_version(version, tag_prefix)
    tag_name = f"{tag_prefix}{normalized}"
    result.tag_name = tag_name

    try:
        tags = git.list_tags()
    except GitError as e:
        return _fail(result, e)
    if tag_name not in tags:
        result.available_tags = relevant_tags(tags, tag_prefix)
        return _fail(
            result,
            GitError(
                f"Tag {tag_name} not found",
                TAG_NOT_FOUND,
                suggestion="evospec history --git",
            ),
        )

    try:
        if spec_file is not None:
            with document_lock(spec_file):
                git.checkout_ref(tag_name, new_branch=branch, force=force)
        else:
            git.checkout_ref(tag_name, new_branch=branch, force=force)
    except StateError as e:
        return _fail(result, e)

    result.discarded_changes = not clean
    if branch:
        result.state = CheckoutState.BRANCH
        result.branch = branch
    else:
        result.state = CheckoutState.DETACHED
    logger.debug("Checked out %s (%s)", tag_name, result.state.value)

    if spec_file is not None:
        result.document_version = get_current_version(spec_file)
        if result.document_version is None:
            result.warnings.append(f"{spec_file.name} has no readable version at {tag_name}")
        elif result.document_version != normalized:
            result.warnings.append(
                f"{spec_file.name} declares {result.document_version} at {tag_name}; "
                "run evospec version check"
            )
    return result
