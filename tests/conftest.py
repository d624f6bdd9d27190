"""Pytest configuration and fixtures."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from evospec.errors import GIT_ERROR, REF_NOT_FOUND, TAG_EXISTS, GitError
from evospec.versioning.git import GitLogEntry


class FakeGit:
    """
    In-memory VersionControl.

    Commits snapshot the text of committed files; tags map to commit hashes.
    ``fail_commit`` / ``fail_tag`` make the next commit or tag raise.
    """

    def __init__(self, root: Path):
        self.root = root.resolve()
        self.repository = True
        self.dirty = False
        self.fail_commit = False
        self.fail_tag = False
        self.commits: list[dict[str, Any]] = []
        self.tags: dict[str, str] = {}
        self.tag_messages: dict[str, str] = {}
        self.staged: set[str] = set()
        self.unstaged: list[str] = []
        self.checkouts: list[tuple[str, str | None, bool]] = []

    # helpers -------------------------------------------------------------

    def _rel(self, path: Path) -> str:
        return path.resolve().relative_to(self.root).as_posix()

    @property
    def head(self) -> dict[str, Any] | None:
        return self.commits[-1] if self.commits else None

    def _resolve(self, ref: str) -> dict[str, Any]:
        if ref in self.tags:
            ref = self.tags[ref]
        if ref == "HEAD" or ref.startswith("HEAD~"):
            back = int(ref[5:] or 0) if ref.startswith("HEAD~") else 0
            idx = len(self.commits) - 1 - back
            if 0 <= idx < len(self.commits):
                return self.commits[idx]
        for commit in self.commits:
            if len(ref) >= 4 and commit["hash"].startswith(ref):
                return commit
        raise GitError(f"Unknown ref {ref}", REF_NOT_FOUND)

    # VersionControl ------------------------------------------------------

    def is_repository(self) -> bool:
        return self.repository

    def is_working_tree_clean(self) -> bool:
        return not self.dirty

    def list_tags(self) -> list[str]:
        return sorted(self.tags)

    def resolve_tag(self, name: str) -> str | None:
        return self.tags.get(name)

    def stage_and_commit(self, path: Path, message: str) -> str:
        rel = self._rel(path)
        self.staged.add(rel)
        if self.fail_commit:
            raise GitError("git commit failed: hook rejected", GIT_ERROR)
        files = dict(self.head["files"]) if self.head else {}
        files[rel] = path.read_text(encoding="utf-8")
        digest = hashlib.sha1(f"{len(self.commits)}:{message}".encode()).hexdigest()
        self.commits.append({
            "hash": digest,
            "message": message,
            "date": f"2024-01-{len(self.commits) + 1:02d}T12:00:00+00:00",
            "files": files,
        })
        self.staged.discard(rel)
        return digest

    def unstage(self, path: Path) -> None:
        rel = self._rel(path)
        self.staged.discard(rel)
        self.unstaged.append(rel)

    def create_annotated_tag(self, name: str, message: str, target: str | None = None) -> None:
        if self.fail_tag:
            raise GitError("git tag failed: cannot lock ref", GIT_ERROR)
        if name in self.tags:
            raise GitError(f"Tag {name} already exists", TAG_EXISTS, suggestion=f"git tag -d {name}")
        commit = self._resolve(target) if target else self.head
        if commit is None:
            raise GitError("No commit to tag", GIT_ERROR)
        self.tags[name] = commit["hash"]
        self.tag_messages[name] = message

    def content_at_ref(self, ref: str, path: Path) -> str:
        commit = self._resolve(ref)
        rel = self._rel(path)
        if rel not in commit["files"]:
            raise GitError(f"Cannot show {rel} at {ref}", REF_NOT_FOUND)
        return commit["files"][rel]

    def checkout_ref(self, ref: str, new_branch: str | None = None, force: bool = False) -> None:
        commit = self._resolve(ref)
        for rel, text in commit["files"].items():
            (self.root / rel).write_text(text, encoding="utf-8")
        self.dirty = False
        self.checkouts.append((ref, new_branch, force))

    def recent_commits(self, limit: int = 10, ref: str | None = None) -> list[GitLogEntry]:
        if ref is None:
            commits = self.commits
        else:
            try:
                target = self._resolve(ref)
            except GitError:
                return []
            commits = self.commits[: self.commits.index(target) + 1]
        return [
            GitLogEntry(hash=c["hash"], date=c["date"], message=c["message"], author="Test")
            for c in reversed(commits[-limit:])
        ]


def spec_data(version: str, history: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "spec": "sysconst/v1",
        "project": {
            "id": "demo",
            "versioning": {"strategy": "semver", "current": version},
        },
        "history": history,
    }


@pytest.fixture
def write_spec(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a spec document; returns its path."""

    def _write(version: str = "1.0.0", history: list[dict[str, Any]] | None = None, name: str = "demo") -> Path:
        if history is None:
            history = [{"version": version, "notes": "Initial specification", "changes": []}]
        path = tmp_path / f"{name}.evospec.yaml"
        path.write_text(yaml.safe_dump(spec_data(version, history), sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def spec_file(write_spec: Callable[..., Path]) -> Path:
    """Spec document at 1.0.0 with a single history entry."""
    return write_spec()


@pytest.fixture
def fake_git(tmp_path: Path) -> FakeGit:
    return FakeGit(tmp_path)


@pytest.fixture
def released(spec_file: Path, fake_git: FakeGit) -> tuple[Path, FakeGit]:
    """Spec at 1.0.0, committed and tagged v1.0.0."""
    commit = fake_git.stage_and_commit(spec_file, "Initial specification")
    fake_git.create_annotated_tag("v1.0.0", "Version 1.0.0", target=commit)
    return spec_file, fake_git
