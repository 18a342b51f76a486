"""
Scratchspaces CLI: inspect and manage a depot's scratch spaces.

Entry point: scratchspaces.cli:main
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import DEPOT_PATH, __version__
from .errors import SpaceError
from .spaces import ScratchSpaces

console = Console()


def _open(ctx: click.Context) -> ScratchSpaces:
    return ctx.obj["spaces"]


def _scoped(ctx: click.Context):
    """Context manager installing --root for the duration of a command."""
    root: Optional[str] = ctx.obj["root"]
    if root is None:
        return nullcontext()
    return _open(ctx).spaces_directory(Path(root))


@click.group()
@click.version_option(version=__version__, prog_name="scratchspaces")
@click.option("--depot", default=DEPOT_PATH, type=click.Path(), help="Depot directory.")
@click.option("--root", default=None, type=click.Path(), help="Use this directory as the only spaces root.")
@click.option("--verbose", "-v", is_flag=True, help="Log attribution decisions.")
@click.pass_context
def main(ctx: click.Context, depot: str, root: Optional[str], verbose: bool):
    """Ephemeral per-owner cache directories.

    Spaces live under <depot>/scratchspaces/<owner>/<key>/ and may be
    garbage collected at any time.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["spaces"] = ScratchSpaces(depot=Path(depot).expanduser())
    ctx.obj["root"] = root


@main.command("path")
@click.argument("key")
@click.option("--owner", default=None, help="Owner UUID. Omit for a global space.")
@click.pass_context
def path_cmd(ctx: click.Context, key: str, owner: Optional[str]):
    """Print where a space lives, without creating it."""
    try:
        with _scoped(ctx):
            click.echo(str(_open(ctx).space_path(key, owner)))
    except SpaceError as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)


@main.command("get")
@click.argument("key")
@click.option("--owner", default=None, help="Owner UUID. Omit for a global space.")
@click.pass_context
def get_cmd(ctx: click.Context, key: str, owner: Optional[str]):
    """Create a space if needed, record the access and print its path.

    Examples:

        scratchspaces get downloads

        scratchspaces get index --owner 7876af07-990d-54b4-ab0e-23690620f79a
    """
    try:
        with _scoped(ctx):
            click.echo(str(_open(ctx).get_space(key, owner)))
    except (SpaceError, OSError) as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)


@main.command("delete")
@click.argument("key")
@click.option("--owner", default=None, help="Owner UUID. Omit for a global space.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def delete_cmd(ctx: click.Context, key: str, owner: Optional[str], yes: bool):
    """Delete a space and everything inside it."""
    spaces = _open(ctx)
    try:
        with _scoped(ctx):
            target = spaces.space_path(key, owner)
            if not yes and not click.confirm(f"Delete {target}?"):
                console.print("[yellow]Aborted.[/]")
                return
            spaces.delete_space(key, owner)
    except (SpaceError, OSError) as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)
    console.print(f"[green]Deleted[/] {target}")


@main.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def clear_cmd(ctx: click.Context, yes: bool):
    """Delete every space under the active root."""
    spaces = _open(ctx)
    try:
        with _scoped(ctx):
            root = spaces.spaces_dir()
            if not yes and not click.confirm(f"Delete all scratch spaces under {root}?"):
                console.print("[yellow]Aborted.[/]")
                return
            spaces.clear_spaces()
    except OSError as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)
    console.print(f"[green]Cleared[/] {root}")


@main.command("list")
@click.pass_context
def list_cmd(ctx: click.Context):
    """List spaces and when they were last attributed."""
    spaces = _open(ctx)
    with _scoped(ctx):
        root = spaces.spaces_dir()
        found = spaces.list_spaces()

    if not found:
        console.print(f"[dim]No scratch spaces under {root}[/]")
        return

    table = Table(title=f"Scratch spaces in {root}")
    table.add_column("Owner", style="cyan")
    table.add_column("Key", style="bold")
    table.add_column("Last used")
    table.add_column("Project")
    for info in found:
        table.add_row(
            "global" if info.is_global else str(info.owner),
            info.key,
            info.last_used.strftime("%Y-%m-%d %H:%M") if info.last_used else "[dim]never[/]",
            ", ".join(info.parent_projects) or "[dim]-[/]",
        )
    console.print(table)
