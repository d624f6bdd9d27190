"""
Immutable value types for the version ledger.

History entries are written once per bump and never modified. GitAnchor and
VersionReference are derived per call and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from ..errors import FormatError
from .semver import SemanticVersion, strip_tag_prefix

# Change operations
OP_ADD = "add"
OP_REMOVE = "remove"
OP_MODIFY = "modify"
OP_RENAME = "rename"
OP_DEPRECATE = "deprecate"

CHANGE_OPS = frozenset({
    OP_ADD,
    OP_REMOVE,
    OP_MODIFY,
    OP_RENAME,
    OP_DEPRECATE,
})


@dataclass(frozen=True)
class ChangeEntry:
    """One structured change recorded against a version."""

    op: str  # One of CHANGE_OPS
    target: str
    field: str | None = None
    type: str | None = None

    def __post_init__(self) -> None:
        if self.op not in CHANGE_OPS:
            allowed = ", ".join(sorted(CHANGE_OPS))
            raise FormatError(f"Invalid change operation: {self.op!r} (expected one of: {allowed})")
        if not isinstance(self.target, str) or not self.target.strip():
            raise FormatError("Change target must be a non-empty string")
        for name in ("field", "type"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise FormatError(f"Change {name} must be a string, got {type(value).__name__}")

    def describe(self) -> str:
        """Human-readable form: "op: target.field (type)"."""
        text = f"{self.op}: {self.target}"
        if self.field:
            text += f".{self.field}"
        if self.type:
            text += f" ({self.type})"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk mapping (optional keys omitted)."""
        result: dict[str, Any] = {"op": self.op, "target": self.target}
        if self.field:
            result["field"] = self.field
        if self.type:
            result["type"] = self.type
        return result

    @classmethod
    def from_dict(cls, data: Any) -> ChangeEntry:
        if not isinstance(data, dict):
            raise FormatError(f"Change entry must be a mapping, got {type(data).__name__}")
        return cls(
            op=data.get("op", ""),
            target=data.get("target", ""),
            field=data.get("field") or None,
            type=data.get("type") or None,
        )

    @classmethod
    def parse(cls, spec: str) -> ChangeEntry:
        """
        Parse a CLI change spec "op:target[:field[:type]]".

        Empty field or type segments are treated as absent.
        """
        parts = spec.split(":")
        if len(parts) < 2 or len(parts) > 4:
            raise FormatError(
                f"Invalid change spec: {spec!r} (expected op:target:field:type)"
            )
        parts += [""] * (4 - len(parts))
        op, target, field_name, type_name = (p.strip() for p in parts)
        return cls(op=op, target=target, field=field_name or None, type=type_name or None)


@dataclass(frozen=True)
class HistoryEntry:
    """One ledger entry, appended by exactly one bump."""

    version: SemanticVersion
    based_on: SemanticVersion | None = None
    notes: str | None = None
    changes: tuple[ChangeEntry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"version": str(self.version)}
        if self.based_on is not None:
            result["basedOn"] = str(self.based_on)
        if self.notes:
            result["notes"] = self.notes
        result["changes"] = [c.to_dict() for c in self.changes]
        return result

    @classmethod
    def from_dict(cls, data: Any) -> HistoryEntry:
        if not isinstance(data, dict):
            raise FormatError(f"History entry must be a mapping, got {type(data).__name__}")
        version = SemanticVersion.parse(str(data.get("version", "")))
        based_on_raw = data.get("basedOn")
        based_on = SemanticVersion.parse(str(based_on_raw)) if based_on_raw else None
        raw_changes = data.get("changes") or []
        if not isinstance(raw_changes, list):
            raise FormatError(f"changes of {version} must be a list")
        changes = []
        for idx, raw in enumerate(raw_changes):
            try:
                changes.append(ChangeEntry.from_dict(raw))
            except FormatError as e:
                raise FormatError(f"{version} change[{idx}]: {e.message}") from e
        notes = data.get("notes")
        return cls(
            version=version,
            based_on=based_on,
            notes=str(notes) if notes else None,
            changes=tuple(changes),
        )


@dataclass(frozen=True)
class GitAnchor:
    """Tag and commit that anchor a released version in Git."""

    tag_name: str
    commit_hash: str
    commit_date: str
    commit_message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag_name": self.tag_name,
            "commit_hash": self.commit_hash,
            "commit_date": self.commit_date,
            "commit_message": self.commit_message,
        }


@dataclass(frozen=True)
class HistoryEntryWithGit:
    """History entry augmented with its Git anchor, if one was found."""

    entry: HistoryEntry
    git: GitAnchor | None = None

    @property
    def version(self) -> SemanticVersion:
        return self.entry.version

    def to_dict(self) -> dict[str, Any]:
        result = self.entry.to_dict()
        if self.git is not None:
            result["git"] = self.git.to_dict()
        return result


# -----------------------------------------------------------------------------
# Version references
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SemanticRef:
    value: SemanticVersion
    kind: Literal["semantic"] = field(default="semantic", init=False)

    def __str__(self) -> str:
        return f"v{self.value}"


@dataclass(frozen=True)
class VcsRef:
    value: str
    kind: Literal["vcsRef"] = field(default="vcsRef", init=False)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class WorkingCopyRef:
    kind: Literal["workingCopy"] = field(default="workingCopy", init=False)

    def __str__(self) -> str:
        return "working copy"


VersionReference = Union[SemanticRef, VcsRef, WorkingCopyRef]

WORKING_COPY = WorkingCopyRef()
WORKING_COPY_ALIASES = frozenset({"working", "worktree", "working-copy"})


def parse_reference(text: str | None, tag_prefix: str = "v") -> VersionReference:
    """
    Build a VersionReference from user input.

    None or "working" select the live document. Anything that parses as a
    version once the tag prefix is stripped is semantic; the rest is handed
    to Git untouched (HEAD~1, a commit hash, a branch).
    """
    if text is None:
        return WORKING_COPY
    stripped = text.strip()
    if not stripped or stripped.lower() in WORKING_COPY_ALIASES:
        return WORKING_COPY
    version = SemanticVersion.try_parse(strip_tag_prefix(stripped, tag_prefix))
    if version is not None:
        return SemanticRef(version)
    return VcsRef(stripped)
