"""Checkout CLI command."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..versioning.checkout import CheckoutState, checkout_version
from ..versioning.git import VersionControl


def run_checkout(
    git: VersionControl | None,
    version: str,
    *,
    branch: str | None = None,
    force: bool = False,
    tag_prefix: str = "v",
    spec_file: Path | None = None,
) -> int:
    console = Console()
    err = Console(stderr=True)

    result = checkout_version(
        git,
        version,
        branch=branch,
        force=force,
        tag_prefix=tag_prefix,
        spec_file=spec_file,
    )

    if not result.success:
        err.print(f"Error: {escape(result.error or 'Checkout failed')}", style="bold red")
        if result.available_tags:
            err.print("Available tags:", style="dim")
            for tag in result.available_tags:
                err.print(f"  {escape(tag)}", style="dim")
        if result.suggestion:
            err.print(escape(result.suggestion), style="dim")
        return 1

    if result.discarded_changes:
        console.print("Discarded uncommitted changes", style="yellow")
    if result.state == CheckoutState.BRANCH:
        console.print(f"✓ Created branch '{escape(result.branch or '')}' at {result.tag_name}", style="green")
    else:
        console.print(f"✓ Checked out {result.tag_name}", style="green")
        console.print("Note: You are in detached HEAD state", style="yellow")
        console.print("To make changes, create a branch: git checkout -b <branch-name>", style="dim")
    for warning in result.warnings:
        console.print(f"⚠ {escape(warning)}", style="yellow")
    return 0
