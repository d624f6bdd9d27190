"""
Error taxonomy for evospec.

FormatError is raised before any mutation. StateError covers repository and
working-tree preconditions. Nothing here is retried automatically: commit
and tag are not safe to replay blindly.
"""

from __future__ import annotations


class EvospecError(Exception):
    """Base class for all evospec errors."""

    def __init__(self, message: str, *, suggestion: str | None = None):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion


class FormatError(EvospecError):
    """Unparseable version string, change spec, or document structure."""


class StateError(EvospecError):
    """Repository or working-tree state forbids the operation."""

    def __init__(self, message: str, code: str = "STATE_ERROR", *, suggestion: str | None = None):
        super().__init__(message, suggestion=suggestion)
        self.code = code


# Git error codes
GIT_UNAVAILABLE = "GIT_UNAVAILABLE"
NOT_GIT_REPO = "NOT_GIT_REPO"
UNCOMMITTED_CHANGES = "UNCOMMITTED_CHANGES"
TAG_EXISTS = "TAG_EXISTS"
TAG_NOT_FOUND = "TAG_NOT_FOUND"
REF_NOT_FOUND = "REF_NOT_FOUND"
GIT_ERROR = "GIT_ERROR"


class GitError(StateError):
    """A Git operation failed or its preconditions do not hold."""

    def __init__(
        self,
        message: str,
        code: str = GIT_ERROR,
        *,
        suggestion: str | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message, code, suggestion=suggestion)
        self.stderr = stderr


class ConsistencyError(EvospecError):
    """Drift between document version, ledger and tags, when enforced."""

    def __init__(self, message: str, failed_checks: list[str] | None = None):
        super().__init__(message)
        self.failed_checks = failed_checks or []


class PartialFailureError(EvospecError):
    """The document was written but a later commit or tag step failed."""

    def __init__(self, message: str, *, step: str, suggestion: str | None = None):
        super().__init__(message, suggestion=suggestion)
        self.step = step


__all__ = [
    "EvospecError",
    "FormatError",
    "StateError",
    "GitError",
    "ConsistencyError",
    "PartialFailureError",
    "GIT_UNAVAILABLE",
    "NOT_GIT_REPO",
    "UNCOMMITTED_CHANGES",
    "TAG_EXISTS",
    "TAG_NOT_FOUND",
    "REF_NOT_FOUND",
    "GIT_ERROR",
]
