"""Version CLI commands: show, bump, check, tag."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.markup import escape

from ..errors import EvospecError
from ..versioning.bump import BumpRequest, bump_version, tag_current_version
from ..versioning.document import get_current_version
from ..versioning.git import VersionControl
from ..versioning.history import check_version_consistency


def run_version_show(spec_file: Path) -> int:
    err = Console(stderr=True)
    version = get_current_version(spec_file)
    if version is None:
        err.print("Cannot read version from spec", style="bold red")
        return 1
    print(version)
    return 0


def run_version_bump(
    spec_file: Path,
    git: VersionControl | None,
    *,
    bump_type: str,
    message: str | None,
    changes: Sequence[str] = (),
    no_commit: bool = False,
    no_tag: bool = False,
    dry_run: bool = False,
    tag_prefix: str = "v",
    output_json: bool = False,
) -> int:
    console = Console()
    err = Console(stderr=True)

    request = BumpRequest(
        spec_file=spec_file,
        bump_type=bump_type,
        message=message or "",
        changes=list(changes),
        skip_commit=no_commit,
        skip_tag=no_tag,
        dry_run=dry_run,
    )
    result = bump_version(git, request, tag_prefix=tag_prefix)

    if output_json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.success else 1

    if not result.success:
        err.print("Version bump failed:", style="bold red")
        for error in result.errors:
            err.print(f"  • {escape(error)}", style="red")
        for suggestion in result.suggestions:
            err.print(f"  Run: {escape(suggestion)}", style="cyan")
        if result.rolled_back:
            err.print("  Spec file restored to its previous content", style="dim")
        return 1

    if result.dry_run:
        console.print("Dry run - no changes made", style="yellow")
    console.print(
        f"✓ Version bumped: {result.previous_version} → {result.new_version}", style="green"
    )
    if result.commit_hash:
        console.print(f"  Commit: {result.commit_hash[:7]}", style="dim")
    if result.tag_name:
        console.print(f"  Tag: {escape(result.tag_name)}", style="dim")
    return 0


def run_version_check(
    spec_file: Path,
    git: VersionControl | None,
    *,
    tag_prefix: str = "v",
    output_json: bool = False,
) -> int:
    console = Console()
    err = Console(stderr=True)

    try:
        report = check_version_consistency(spec_file, git, tag_prefix)
    except (OSError, EvospecError) as e:
        err.print(f"Error: {escape(str(e))}", style="bold red")
        return 1

    if output_json:
        print(json.dumps(report.to_dict(), indent=2))
        return 0 if report.ok else 1

    console.print()
    console.print("Version Consistency Check", style="bold")
    console.print("=========================", style="dim")
    console.print()

    for check in report.checks:
        icon = "[green]✓[/green]" if check.passed else "[red]✗[/red]"
        console.print(f"{icon} {escape(check.name)}: {escape(check.message)}")
        if check.suggestion:
            console.print(f"  Run: {escape(check.suggestion)}", style="cyan")

    console.print()
    if report.ok:
        console.print("All checks passed!", style="green")
        return 0
    console.print(f"{len(report.failed)} check(s) failed", style="red")
    return 1


def run_version_tag(spec_file: Path, git: VersionControl | None, *, tag_prefix: str = "v") -> int:
    console = Console()
    err = Console(stderr=True)
    try:
        tag_name = tag_current_version(git, spec_file, tag_prefix)
    except (OSError, EvospecError) as e:
        err.print(f"Error: {escape(str(e))}", style="bold red")
        suggestion = getattr(e, "suggestion", None)
        if suggestion:
            err.print(f"  Run: {escape(suggestion)}", style="cyan")
        return 1
    console.print(f"✓ Created tag: {escape(tag_name)}", style="green")
    return 0
