"""``patchrepo accept-addon`` — allow an identity to consume an add-on update."""

from __future__ import annotations

from pathlib import Path

import typer

from patchrepo.cli.commands._options import ROOT_OPTION, console, fail, open_repository
from patchrepo.core.errors import PatchRepositoryError


def accept_addon_cmd(
    addon: str = typer.Argument(..., help="Add-on name."),
    update_id: str = typer.Argument(..., help="Add-on version the update applies to."),
    name: str = typer.Argument(..., help="Identity name."),
    version: str = typer.Argument(..., help="Identity version."),
    create: bool = typer.Option(
        False,
        "--create/--no-create",
        help="Create the update directory if it does not exist yet.",
    ),
    root: Path | None = ROOT_OPTION,
) -> None:
    """Append NAME-VERSION to the allow-list of an add-on update."""
    repo = open_repository(root)
    try:
        added = repo.accept_addon_for_identity(addon, update_id, name, version, create)
    except PatchRepositoryError as exc:
        raise fail(exc) from exc
    if added:
        console.print(f"[green]Accepted[/green] {addon} update {update_id} for {name}-{version}")
    else:
        console.print(f"[dim]{name}-{version} was already accepted for {addon} update {update_id}[/dim]")
