"""Diff CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from ..errors import EvospecError
from ..versioning.diff import DiffLine, DiffResult, diff_versions
from ..versioning.git import VersionControl
from ..versioning.models import parse_reference


def _label(result: DiffResult, which: str) -> str:
    ref = result.from_ref if which == "from" else result.to_ref
    version = result.from_version if which == "from" else result.to_version
    if version is not None:
        return f"v{version}"
    return str(ref)


def _print_changes(console: Console, result: DiffResult) -> None:
    title = f"Changes from {_label(result, 'from')} to {_label(result, 'to')}"
    console.print()
    console.print(escape(title), style="bold")
    console.print("=" * 30, style="dim")
    console.print()
    if not result.changes:
        console.print("No changes recorded", style="dim")
        return
    for item in result.changes:
        console.print(escape(f"[v{item.version}] {item.change.describe()}"))


def _render_line(line: DiffLine) -> str:
    if line.kind == "removed":
        return f"- {line.old_text}"
    if line.kind == "added":
        return f"+ {line.new_text}"
    return f"- {line.old_text}\n+ {line.new_text}"


def _print_lines(console: Console, result: DiffResult) -> None:
    console.print()
    console.print(escape(f"Diff: {_label(result, 'from')} → {_label(result, 'to')}"), style="bold")
    console.print("=" * 30, style="dim")
    console.print()
    if not result.has_differences:
        console.print("No differences found", style="dim")
        return
    diff_text = "\n".join(_render_line(line) for line in result.changed_lines)
    console.print(Syntax(diff_text, "diff", theme="monokai"))


def run_diff(
    spec_file: Path,
    git: VersionControl | None,
    version1: str,
    version2: str | None = None,
    *,
    changes_only: bool = False,
    output_format: str = "text",
    tag_prefix: str = "v",
) -> int:
    console = Console()
    err = Console(stderr=True)

    ref1 = parse_reference(version1, tag_prefix)
    ref2 = parse_reference(version2, tag_prefix)
    try:
        result = diff_versions(
            ref1,
            ref2,
            spec_file=spec_file,
            git=git,
            tag_prefix=tag_prefix,
            mode="changes_only" if changes_only else "full",
        )
    except (OSError, EvospecError) as e:
        err.print(f"Error: {escape(str(e))}", style="bold red")
        suggestion = getattr(e, "suggestion", None)
        if suggestion:
            err.print(f"  Run: {escape(suggestion)}", style="cyan")
        return 1

    if output_format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    elif output_format == "yaml":
        print(yaml.safe_dump(result.to_dict(), sort_keys=False, allow_unicode=True), end="")
    elif changes_only:
        _print_changes(console, result)
    else:
        _print_lines(console, result)
    return 0
