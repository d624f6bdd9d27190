"""
Git operations used by the version lifecycle.

Every call shells out to the ``git`` binary with an explicit ``cwd``. The
``VersionControl`` protocol lists the capabilities the engines consume, so
tests can substitute an in-memory implementation.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..errors import (
    GIT_ERROR,
    GIT_UNAVAILABLE,
    NOT_GIT_REPO,
    REF_NOT_FOUND,
    TAG_EXISTS,
    GitError,
)

logger = logging.getLogger(__name__)

# Unit separator keeps commit subjects with spaces or pipes intact
_LOG_FORMAT = "%H%x1f%aI%x1f%s%x1f%an"
_FIELD_SEP = "\x1f"


@dataclass(frozen=True)
class GitLogEntry:
    hash: str
    date: str
    message: str
    author: str


class VersionControl(Protocol):
    """Capabilities the version engines need from a VCS."""

    def is_repository(self) -> bool: ...

    def is_working_tree_clean(self) -> bool: ...

    def list_tags(self) -> list[str]: ...

    def resolve_tag(self, name: str) -> str | None: ...

    def stage_and_commit(self, path: Path, message: str) -> str: ...

    def unstage(self, path: Path) -> None: ...

    def create_annotated_tag(self, name: str, message: str, target: str | None = None) -> None: ...

    def content_at_ref(self, ref: str, path: Path) -> str: ...

    def checkout_ref(self, ref: str, new_branch: str | None = None, force: bool = False) -> None: ...

    def recent_commits(self, limit: int = 10, ref: str | None = None) -> list[GitLogEntry]: ...


def _clean_git_env() -> dict[str, str]:
    """Environment without GIT_DIR/GIT_WORK_TREE, so ``cwd`` decides the repository."""
    env = os.environ.copy()
    env.pop("GIT_DIR", None)
    env.pop("GIT_WORK_TREE", None)
    return env


def is_git_available() -> bool:
    """Check whether a git binary is on PATH."""
    return shutil.which("git") is not None


class Git:
    """VersionControl implementation backed by the git CLI."""

    def __init__(self, cwd: Path):
        self.cwd = Path(cwd).resolve()
        self._root: Path | None = None

    def _run(
        self, *args: str, check: bool = True, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        cmd = ["git", *args]
        run_dir = cwd or self.cwd
        logger.debug("Running %s (cwd=%s)", cmd, run_dir)
        try:
            return subprocess.run(
                cmd,
                cwd=run_dir,
                env=_clean_git_env(),
                capture_output=True,
                text=True,
                check=check,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found", GIT_UNAVAILABLE) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise GitError(
                f"git {args[0]} failed: {stderr or f'exit status {e.returncode}'}",
                GIT_ERROR,
                stderr=stderr,
            ) from e

    @property
    def root(self) -> Path:
        """Repository top-level directory."""
        if self._root is None:
            try:
                result = self._run("rev-parse", "--show-toplevel")
            except GitError as e:
                if e.code == GIT_UNAVAILABLE:
                    raise
                raise GitError(f"Not a Git repository: {self.cwd}", NOT_GIT_REPO) from e
            self._root = Path(result.stdout.strip()).resolve()
        return self._root

    def _repo_relative(self, path: Path) -> str:
        absolute = path if path.is_absolute() else (self.cwd / path)
        try:
            return absolute.resolve().relative_to(self.root).as_posix()
        except ValueError as e:
            raise GitError(f"{path} is outside the repository {self.root}", GIT_ERROR) from e

    def is_repository(self) -> bool:
        result = self._run("rev-parse", "--is-inside-work-tree", check=False)
        return result.returncode == 0 and result.stdout.strip() == "true"

    def is_working_tree_clean(self) -> bool:
        # Untracked files are ignored: checkout leaves them in place either way.
        result = self._run("status", "--porcelain", "--untracked-files=no")
        return not result.stdout.strip()

    def current_commit(self) -> str:
        return self._run("rev-parse", "HEAD").stdout.strip()

    def list_tags(self) -> list[str]:
        result = self._run("tag", "--list")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def resolve_tag(self, name: str) -> str | None:
        """Commit a tag points to, or None when the tag does not exist."""
        result = self._run("rev-parse", "-q", "--verify", f"refs/tags/{name}^{{commit}}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def stage_and_commit(self, path: Path, message: str) -> str:
        # Pathspecs are repository-relative, so run from the top level.
        rel = self._repo_relative(path)
        self._run("add", "--", rel, cwd=self.root)
        self._run("commit", "-m", message, "--", rel, cwd=self.root)
        return self.current_commit()

    def unstage(self, path: Path) -> None:
        self._run("reset", "-q", "--", self._repo_relative(path), cwd=self.root)

    def create_annotated_tag(self, name: str, message: str, target: str | None = None) -> None:
        if self.resolve_tag(name) is not None:
            raise GitError(
                f"Tag {name} already exists",
                TAG_EXISTS,
                suggestion=f"git tag -d {name}",
            )
        args = ["tag", "-a", name, "-m", message]
        if target:
            args.append(target)
        self._run(*args)

    def content_at_ref(self, ref: str, path: Path) -> str:
        rel = self._repo_relative(path)
        try:
            return self._run("show", f"{ref}:{rel}").stdout
        except GitError as e:
            if e.code == GIT_UNAVAILABLE:
                raise
            raise GitError(f"Cannot show {rel} at {ref}", REF_NOT_FOUND, stderr=e.stderr) from e

    def checkout_ref(self, ref: str, new_branch: str | None = None, force: bool = False) -> None:
        args = ["checkout"]
        if force:
            args.append("--force")
        if new_branch:
            args += ["-b", new_branch, ref]
        else:
            args += ["--detach", ref]
        self._run(*args)

    def recent_commits(self, limit: int = 10, ref: str | None = None) -> list[GitLogEntry]:
        args = ["log", f"--max-count={limit}", f"--format={_LOG_FORMAT}"]
        if ref:
            args.append(ref)
        result = self._run(*args, check=False)
        if result.returncode != 0:
            # No commits yet, or unknown ref
            return []
        entries = []
        for line in result.stdout.splitlines():
            parts = line.split(_FIELD_SEP)
            if len(parts) != 4:
                continue
            entries.append(GitLogEntry(hash=parts[0], date=parts[1], message=parts[2], author=parts[3]))
        return entries


def create_git(cwd: Path | None = None) -> Git | None:
    """Git instance for ``cwd``, or None when git is not installed."""
    if not is_git_available():
        return None
    return Git(cwd or Path.cwd())


__all__ = [
    "GitLogEntry",
    "VersionControl",
    "Git",
    "is_git_available",
    "create_git",
]
