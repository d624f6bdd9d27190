"""
Document store for evospec specification files.

The spec document is YAML. It carries the current version at
``project.versioning.current`` and the full history ledger inline under
``history``. Writes go to a temp file in the same directory and are then
renamed over the original, so the document is never observed half-written.
"""

from __future__ import annotations

import copy
import fcntl
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml

from ..errors import FormatError
from .models import HistoryEntry
from .semver import SemanticVersion

logger = logging.getLogger(__name__)

SPEC_FILE_SUFFIX = ".evospec.yaml"
LOCK_DIR_NAME = ".evospec"
_LOCK_SUFFIX = ".lock"


@dataclass
class SpecDocument:
    """
    Parsed specification document.

    ``data`` holds the full YAML mapping so that fields this module does not
    own survive a rewrite untouched.
    """

    path: Path
    data: dict[str, Any]

    @property
    def raw_version(self) -> str | None:
        project = self.data.get("project")
        if not isinstance(project, dict):
            return None
        versioning = project.get("versioning")
        if not isinstance(versioning, dict):
            return None
        current = versioning.get("current")
        return str(current) if current is not None else None

    @property
    def version(self) -> SemanticVersion:
        """
        Current document version.

        Raises:
            FormatError: if the field is missing or not a dotted triple.
        """
        raw = self.raw_version
        if raw is None:
            raise FormatError(
                f"No version in {self.path.name} (expected project.versioning.current)"
            )
        return SemanticVersion.parse(raw)

    @property
    def raw_history(self) -> list[Any]:
        history = self.data.get("history")
        if history is None:
            return []
        if not isinstance(history, list):
            raise FormatError(f"history in {self.path.name} must be a list")
        return history

    def history(self) -> list[HistoryEntry]:
        """Parse the ledger in stored (append) order."""
        entries: list[HistoryEntry] = []
        for idx, raw in enumerate(self.raw_history):
            try:
                entries.append(HistoryEntry.from_dict(raw))
            except FormatError as e:
                raise FormatError(f"history[{idx}]: {e.message}") from e
        return entries

    def with_new_version(self, entry: HistoryEntry) -> SpecDocument:
        """Return a copy whose version is ``entry.version`` and whose ledger ends with ``entry``."""
        data = copy.deepcopy(self.data)
        project = data.setdefault("project", {})
        versioning = project.setdefault("versioning", {})
        versioning["current"] = str(entry.version)
        history = data.get("history")
        if not isinstance(history, list):
            history = []
        history.append(entry.to_dict())
        data["history"] = history
        return SpecDocument(path=self.path, data=data)

    def dump(self) -> str:
        return yaml.safe_dump(self.data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def parse_document(path: Path, content: str) -> SpecDocument:
    """Parse document text (from disk or from a Git ref)."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise FormatError(f"Cannot parse {path.name}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FormatError(f"{path.name} must contain a YAML mapping at the top level")
    return SpecDocument(path=path, data=data)


def read_document(path: Path) -> SpecDocument:
    """Read and parse the spec document at ``path``."""
    return parse_document(path, path.read_text(encoding="utf-8"))


def get_current_version(path: Path) -> str | None:
    """Return the raw version string of the document, or None if unreadable."""
    try:
        return read_document(path).raw_version
    except (OSError, FormatError):
        return None


def _atomic_write_bytes(path: Path, content: bytes) -> None:
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def write_document_atomically(path: Path, document: SpecDocument) -> None:
    """Serialize ``document`` to ``path`` (write temp, then replace)."""
    _atomic_write_bytes(path, document.dump().encode("utf-8"))
    logger.debug("Wrote %s", path)


def restore_bytes(path: Path, content: bytes) -> None:
    """Put back previously captured document bytes."""
    _atomic_write_bytes(path, content)
    logger.debug("Restored %s", path)


def lock_path_for(path: Path) -> Path:
    return path.parent / LOCK_DIR_NAME / f"{path.name}{_LOCK_SUFFIX}"


@contextmanager
def document_lock(path: Path) -> Iterator[Path]:
    """
    Hold an exclusive advisory lock on the document for the context.

    The lock lives in a sidecar file under ``.evospec/`` so that the document
    itself can be replaced with ``os.replace`` while the lock is held.
    """
    lock_path = lock_path_for(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a+", encoding="utf-8") as handle:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            logger.warning("Waiting for lock on %s", path.name)
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield lock_path
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def find_spec_files(directory: Path) -> list[Path]:
    """All ``*.evospec.yaml`` files directly inside ``directory``, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(SPEC_FILE_SUFFIX))
