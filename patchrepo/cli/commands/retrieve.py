"""Retrieval commands — ``update``, ``patch`` and ``bundle``.

Each writes a freshly synthesized archive; the stored repository tree is
never modified.
"""

from __future__ import annotations

from pathlib import Path

import typer

from patchrepo.cli.commands._options import (
    ADDON_OPTION,
    ROOT_OPTION,
    console,
    fail,
    open_repository,
    parse_identity,
)
from patchrepo.core.errors import ChainIncompleteError, PatchRepositoryError


def update_cmd(
    name: str = typer.Argument(..., help="Identity name."),
    version: str = typer.Argument(..., help="Identity version to update from."),
    output: Path = typer.Option(..., "--output", "-o", help="Bundle file to write."),
    to_version: str | None = typer.Option(
        None, "--to", help="Target version (default: latest available)."
    ),
    next_only: bool = typer.Option(False, "--next", help="Only the next update."),
    include_patches: bool = typer.Option(
        False,
        "--include-patches/--no-include-patches",
        help="Also bundle the one-off patches of the version reached.",
    ),
    addons: list[str] | None = ADDON_OPTION,
    root: Path | None = ROOT_OPTION,
) -> None:
    """Write the updates leading from VERSION to --to (or the latest)."""
    repo = open_repository(root)
    identity = parse_identity(name, version, addons)
    try:
        if next_only:
            written = repo.get_update_to_next(identity, include_patches, output)
        else:
            written = repo.get_update(identity, to_version, include_patches, output)
    except ChainIncompleteError as exc:
        console.print(
            f"[bold red]No update path to {exc.target_version}[/bold red], "
            f"latest available is [cyan]{exc.latest_version}[/cyan]"
        )
        raise typer.Exit(code=1) from exc
    except PatchRepositoryError as exc:
        raise fail(exc) from exc
    if written is None:
        console.print(f"[dim]No update available for {identity.key}[/dim]")
        return
    console.print(f"[green]Wrote[/green] {written}")


def patch_cmd(
    name: str = typer.Argument(..., help="Identity name."),
    version: str = typer.Argument(..., help="Identity version."),
    patch_id: str = typer.Argument(..., help="Patch or update id."),
    output: Path = typer.Option(..., "--output", "-o", help="Archive file to write."),
    update: bool = typer.Option(False, "--update", help="PATCH_ID names an update."),
    addons: list[str] | None = ADDON_OPTION,
    root: Path | None = ROOT_OPTION,
) -> None:
    """Write one stored patch or update as a stand-alone archive."""
    repo = open_repository(root)
    identity = parse_identity(name, version, addons)
    try:
        written = repo.get_patch(identity, patch_id, update, output)
    except PatchRepositoryError as exc:
        raise fail(exc) from exc
    console.print(f"[green]Wrote[/green] {written}")


def bundle_cmd(
    name: str = typer.Argument(..., help="Identity name."),
    version: str = typer.Argument(..., help="Identity version."),
    target_dir: Path = typer.Argument(..., help="Directory to write the bundle into."),
    addons: list[str] | None = ADDON_OPTION,
    root: Path | None = ROOT_OPTION,
) -> None:
    """Bundle every one-off patch for an identity."""
    repo = open_repository(root)
    identity = parse_identity(name, version, addons)
    try:
        written = repo.bundle_patches(identity, target_dir)
    except PatchRepositoryError as exc:
        raise fail(exc) from exc
    if written is None:
        console.print(f"[dim]No patches stored for {identity.key}[/dim]")
        return
    console.print(f"[green]Wrote[/green] {written}")
