"""``patchrepo status NAME VERSION`` — show what the repository holds for an identity."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from patchrepo.cli.commands._options import (
    ADDON_OPTION,
    ROOT_OPTION,
    console,
    fail,
    open_repository,
    parse_identity,
)
from patchrepo.core.errors import NotFoundError, PatchRepositoryError


def _yes_no(value: bool) -> str:
    return "[green]Yes[/green]" if value else "[dim]No[/dim]"


def status_cmd(
    name: str = typer.Argument(..., help="Identity name."),
    version: str = typer.Argument(..., help="Identity version."),
    addons: list[str] | None = ADDON_OPTION,
    root: Path | None = ROOT_OPTION,
) -> None:
    """Show pending updates and one-off patches for an identity."""
    repo = open_repository(root)
    identity = parse_identity(name, version, addons)
    try:
        summary = Table(title=f"Repository status for {identity}")
        summary.add_column("Query", style="cyan")
        summary.add_column("Result", justify="center")
        summary.add_row("One-off patches", _yes_no(repo.has_patches(name, version)))
        summary.add_row("Pending update", _yes_no(repo.has_update(name, version)))
        summary.add_row("Add-on patches", _yes_no(repo.has_addon_patches(identity)))
        summary.add_row("Add-on updates", _yes_no(repo.has_addon_updates(identity)))
        console.print(summary)

        patches = Table(title="Patches")
        patches.add_column("Patch", style="cyan")
        patches.add_column("Kind")
        patches.add_column("Elements")
        try:
            update = repo.get_update_info(identity)
        except NotFoundError:
            # A declared add-on has no update accepted for this identity.
            update = None
            patches.add_row("-", "[yellow]add-on update not accepted[/yellow]", "")
        if update is not None:
            patches.add_row(
                update.patch_id,
                f"update -> {update.identity.resulting_version}",
                ", ".join(f"{e.provider.name}:{e.id}" for e in update.elements),
            )
        for patch in repo.get_patches_info(identity):
            patches.add_row(
                patch.patch_id,
                "one-off",
                ", ".join(f"{e.provider.name}:{e.id}" for e in patch.elements),
            )
        console.print(patches)
    except PatchRepositoryError as exc:
        raise fail(exc) from exc
