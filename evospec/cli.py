"""CLI entrypoint for evospec."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import EvospecConfig, find_spec_file, load_config
from .versioning.git import create_git


def _setup_logging(verbose: bool) -> None:
    logger = logging.getLogger("evospec")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(console=Console(stderr=True), show_path=False, show_time=verbose)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _file_option(f):
    return click.option(
        "--file",
        "-f",
        "spec_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Spec document (default: project.specFile, else first *.evospec.yaml)",
    )(f)


def _config(ctx: click.Context) -> EvospecConfig:
    return ctx.obj["config"]


def _spec_file(ctx: click.Context, spec_path: Path | None) -> Path:
    # A -f given on the version group applies to its subcommands.
    explicit = spec_path or ctx.obj.get("spec_path")
    spec_file = find_spec_file(ctx.obj["cwd"], explicit=explicit, config=_config(ctx))
    if spec_file is None:
        raise click.ClickException("No spec file found. Pass --file or run from the project directory.")
    return spec_file


@click.group()
@click.version_option(__version__, prog_name="evospec")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output (including git calls) to stderr")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """evospec - Version lifecycle for evolving specifications.

    Bump, check, diff, and check out versions of a spec document kept in Git.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    cwd = Path.cwd()
    ctx.obj["cwd"] = cwd
    ctx.obj["config"] = load_config(cwd)


# -----------------------------------------------------------------------------
# version
# -----------------------------------------------------------------------------


@cli.group(invoke_without_command=True)
@_file_option
@click.pass_context
def version(ctx: click.Context, spec_path: Path | None) -> None:
    """Show, bump, check, or tag the spec version."""
    ctx.obj["spec_path"] = spec_path
    if ctx.invoked_subcommand is not None:
        return
    from .commands.version_cmd import run_version_show

    sys.exit(run_version_show(_spec_file(ctx, spec_path)))


@version.command("bump")
@click.argument("bump_type", metavar="TYPE")
@click.option("--message", "-m", type=str, default=None, help="Change summary (required)")
@click.option(
    "--change",
    "-c",
    "changes",
    multiple=True,
    metavar="OP:TARGET[:FIELD[:TYPE]]",
    help="Structured change entry (repeatable), e.g. add:entity.user:email:string",
)
@click.option("--no-commit", is_flag=True, help="Do not commit the spec file")
@click.option("--no-tag", is_flag=True, help="Do not create a version tag")
@click.option("--dry-run", is_flag=True, help="Show the new version without writing anything")
@click.option("--json", "output_json", is_flag=True, help="Output result as JSON")
@_file_option
@click.pass_context
def version_bump(
    ctx: click.Context,
    bump_type: str,
    message: str | None,
    changes: tuple[str, ...],
    no_commit: bool,
    no_tag: bool,
    dry_run: bool,
    output_json: bool,
    spec_path: Path | None,
) -> None:
    """Bump the version: TYPE is major, minor, or patch."""
    from .commands.version_cmd import run_version_bump

    spec_file = _spec_file(ctx, spec_path)
    settings = _config(ctx).versioning
    exit_code = run_version_bump(
        spec_file,
        create_git(spec_file.parent),
        bump_type=bump_type,
        message=message,
        changes=changes,
        no_commit=no_commit or not settings.auto_commit,
        # Without the commit there is nothing for the tag to point at.
        no_tag=no_tag or not settings.auto_tag or not settings.auto_commit,
        dry_run=dry_run,
        tag_prefix=settings.tag_prefix,
        output_json=output_json,
    )
    sys.exit(exit_code)


@version.command("check")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@_file_option
@click.pass_context
def version_check(ctx: click.Context, output_json: bool, spec_path: Path | None) -> None:
    """Check that version, history, and tags agree."""
    from .commands.version_cmd import run_version_check

    spec_file = _spec_file(ctx, spec_path)
    exit_code = run_version_check(
        spec_file,
        create_git(spec_file.parent),
        tag_prefix=_config(ctx).versioning.tag_prefix,
        output_json=output_json,
    )
    sys.exit(exit_code)


@version.command("tag")
@_file_option
@click.pass_context
def version_tag(ctx: click.Context, spec_path: Path | None) -> None:
    """Create the Git tag for the current version."""
    from .commands.version_cmd import run_version_tag

    spec_file = _spec_file(ctx, spec_path)
    exit_code = run_version_tag(
        spec_file,
        create_git(spec_file.parent),
        tag_prefix=_config(ctx).versioning.tag_prefix,
    )
    sys.exit(exit_code)


# -----------------------------------------------------------------------------
# history / diff / checkout
# -----------------------------------------------------------------------------


@cli.command()
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Number of entries to show")
@click.option("--git", "show_git", is_flag=True, help="Show tag commit information")
@click.option("--changes", "show_changes", is_flag=True, help="Show change entries")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@_file_option
@click.pass_context
def history(
    ctx: click.Context,
    limit: int,
    show_git: bool,
    show_changes: bool,
    output_json: bool,
    spec_path: Path | None,
) -> None:
    """Show version history, newest first."""
    from .commands.history_cmd import run_history

    spec_file = _spec_file(ctx, spec_path)
    exit_code = run_history(
        spec_file,
        create_git(spec_file.parent) if show_git else None,
        limit=limit,
        show_git=show_git,
        show_changes=show_changes,
        output_json=output_json,
        tag_prefix=_config(ctx).versioning.tag_prefix,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("ref1")
@click.argument("ref2", required=False)
@click.option("--changes-only", is_flag=True, help="Show recorded change entries instead of a line diff")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "yaml"]),
    default="text",
    show_default=True,
    help="Output format",
)
@_file_option
@click.pass_context
def diff(
    ctx: click.Context,
    ref1: str,
    ref2: str | None,
    changes_only: bool,
    output_format: str,
    spec_path: Path | None,
) -> None:
    """Compare the spec at REF1 with REF2 (default: working copy).

    A reference is a version (1.2.0 or v1.2.0), any Git ref (HEAD~1, a
    commit hash, a branch), or "working".
    """
    from .commands.diff_cmd import run_diff

    spec_file = _spec_file(ctx, spec_path)
    exit_code = run_diff(
        spec_file,
        create_git(spec_file.parent),
        ref1,
        ref2,
        changes_only=changes_only,
        output_format=output_format,
        tag_prefix=_config(ctx).versioning.tag_prefix,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("version_arg", metavar="VERSION")
@click.option("--branch", "-b", type=str, default=None, help="Create a branch at the version tag")
@click.option("--force", is_flag=True, help="Discard uncommitted changes")
@_file_option
@click.pass_context
def checkout(
    ctx: click.Context,
    version_arg: str,
    branch: str | None,
    force: bool,
    spec_path: Path | None,
) -> None:
    """Check out the tag of a released VERSION."""
    from .commands.checkout_cmd import run_checkout

    cwd = ctx.obj["cwd"]
    spec_file = find_spec_file(cwd, explicit=spec_path, config=_config(ctx))
    exit_code = run_checkout(
        create_git(spec_file.parent if spec_file else cwd),
        version_arg,
        branch=branch,
        force=force,
        tag_prefix=_config(ctx).versioning.tag_prefix,
        spec_file=spec_file,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
