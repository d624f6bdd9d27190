"""History CLI command."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..errors import EvospecError
from ..versioning.document import get_current_version
from ..versioning.git import VersionControl
from ..versioning.history import get_history, get_history_with_git, sort_history
from ..versioning.models import HistoryEntryWithGit


def run_history(
    spec_file: Path,
    git: VersionControl | None,
    *,
    limit: int = 10,
    show_git: bool = False,
    show_changes: bool = False,
    output_json: bool = False,
    tag_prefix: str = "v",
) -> int:
    console = Console()
    err = Console(stderr=True)

    try:
        if show_git:
            entries = get_history_with_git(spec_file, git, tag_prefix)
        else:
            entries = [HistoryEntryWithGit(e) for e in get_history(spec_file)]
    except (OSError, EvospecError) as e:
        err.print(f"Error: {escape(str(e))}", style="bold red")
        return 1

    entries = sort_history(entries, descending=True, limit=limit)

    if output_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0

    current = get_current_version(spec_file)

    console.print()
    console.print("Version History", style="bold")
    console.print("===============", style="dim")
    console.print()

    if not entries:
        console.print("No history entries found", style="dim")
        return 0

    for item in entries:
        entry = item.entry
        marker = " [cyan](current)[/cyan]" if str(entry.version) == current else ""
        console.print(f"[bold]v{entry.version}[/bold]{marker}")
        if entry.based_on is not None:
            console.print(f"  Based on: v{entry.based_on}", style="dim")
        if entry.notes:
            console.print(f"  Notes: {escape(entry.notes)}", style="dim")
        if show_git and item.git is not None:
            console.print(
                f"  Git: {item.git.commit_hash[:7]} - {escape(item.git.commit_message)}", style="dim"
            )
            if item.git.commit_date:
                console.print(f"  Date: {item.git.commit_date}", style="dim")
        if show_changes and entry.changes:
            console.print("  Changes:", style="dim")
            for change in entry.changes:
                console.print(f"    - {escape(change.describe())}", style="dim")
        console.print()
    return 0
