"""
Version lifecycle engine for evospec documents.

Components:
- semver: SemanticVersion with numeric ordering
- models: ChangeEntry, HistoryEntry, GitAnchor, VersionReference
- document: YAML document store (atomic writes, advisory lock)
- git: VersionControl protocol and its git CLI implementation
- bump: version bump transaction (write → commit → tag)
- history: ledger queries and the five consistency checks
- diff: reference resolution, line diff, change-log diff
- checkout: move the working tree to a version tag

Invariants:
- The document version equals the last ledger entry after every bump
- Ledger entries are appended, never rewritten
- Ordering is numeric per component ("2.10.0" > "2.9.0")
"""

from .semver import BUMP_TYPES, BumpType, SemanticVersion
from .models import (
    CHANGE_OPS,
    WORKING_COPY,
    ChangeEntry,
    GitAnchor,
    HistoryEntry,
    HistoryEntryWithGit,
    SemanticRef,
    VcsRef,
    VersionReference,
    WorkingCopyRef,
    parse_reference,
)
from .document import SpecDocument, read_document, write_document_atomically
from .git import Git, GitLogEntry, VersionControl, create_git, is_git_available
from .bump import BumpRequest, BumpResult, bump_version, tag_current_version
from .history import (
    ConsistencyCheck,
    ConsistencyReport,
    check_version_consistency,
    get_history,
    get_history_with_git,
    sort_history,
)
from .diff import DiffLine, DiffResult, VersionedChange, diff_versions, resolve_content
from .checkout import CheckoutResult, CheckoutState, checkout_version

__all__ = [
    # Versions
    "BUMP_TYPES",
    "BumpType",
    "SemanticVersion",
    # Ledger types
    "CHANGE_OPS",
    "ChangeEntry",
    "HistoryEntry",
    "HistoryEntryWithGit",
    "GitAnchor",
    # References
    "VersionReference",
    "SemanticRef",
    "VcsRef",
    "WorkingCopyRef",
    "WORKING_COPY",
    "parse_reference",
    # Stores
    "SpecDocument",
    "read_document",
    "write_document_atomically",
    "Git",
    "GitLogEntry",
    "VersionControl",
    "create_git",
    "is_git_available",
    # Engines
    "BumpRequest",
    "BumpResult",
    "bump_version",
    "tag_current_version",
    "ConsistencyCheck",
    "ConsistencyReport",
    "check_version_consistency",
    "get_history",
    "get_history_with_git",
    "sort_history",
    "DiffLine",
    "DiffResult",
    "VersionedChange",
    "diff_versions",
    "resolve_content",
    "CheckoutResult",
    "CheckoutState",
    "checkout_version",
]
