"""
Semantic versions with numeric ordering.

"2.10.0" sorts after "2.9.0": components compare as integers, never as text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from ..errors import FormatError

BumpType = Literal["major", "minor", "patch"]
BUMP_TYPES: tuple[str, ...] = ("major", "minor", "patch")

_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, order=True)
class SemanticVersion:
    """Ordered (major, minor, patch) triple of non-negative integers."""

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise FormatError(f"Invalid {name} component: {value!r}")

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        """
        Parse a strict dotted triple ("1.2.3").

        Raises:
            FormatError: on any other shape, including prefixes and suffixes.
        """
        if not isinstance(text, str):
            raise FormatError(f"Invalid version: {text!r} (expected MAJOR.MINOR.PATCH)")
        match = _VERSION_RE.match(text.strip())
        if match is None:
            raise FormatError(f"Invalid version: {text!r} (expected MAJOR.MINOR.PATCH)")
        return cls(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    @classmethod
    def try_parse(cls, text: object) -> SemanticVersion | None:
        if not isinstance(text, str):
            return None
        try:
            return cls.parse(text)
        except FormatError:
            return None

    def bump(self, bump_type: str) -> SemanticVersion:
        if bump_type == "major":
            return SemanticVersion(self.major + 1, 0, 0)
        if bump_type == "minor":
            return SemanticVersion(self.major, self.minor + 1, 0)
        if bump_type == "patch":
            return SemanticVersion(self.major, self.minor, self.patch + 1)
        raise FormatError(f"Invalid bump type: {bump_type!r} (expected major, minor or patch)")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def strip_tag_prefix(text: str, tag_prefix: str = "v") -> str:
    """Remove a leading tag prefix ("v1.2.3" -> "1.2.3")."""
    text = text.strip()
    if tag_prefix and text.startswith(tag_prefix):
        return text[len(tag_prefix):]
    if text.startswith("v"):
        return text[1:]
    return text
