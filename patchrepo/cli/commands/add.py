"""``patchrepo add ARCHIVE...`` — ingest patch archives into the repository."""

from __future__ import annotations

from pathlib import Path

import typer

from patchrepo.cli.commands._options import ROOT_OPTION, console, fail, open_repository
from patchrepo.core.errors import PatchRepositoryError


def add_cmd(
    archives: list[Path] = typer.Argument(..., help="Patch archives to add."),
    root: Path | None = ROOT_OPTION,
) -> None:
    """Add one or more patch archives.

    Archives are ingested in the order given; the first failure stops the
    run and may leave that archive partially stored.
    """
    repo = open_repository(root)
    for archive in archives:
        try:
            patch = repo.add_patch(archive)
        except PatchRepositoryError as exc:
            raise fail(exc) from exc
        kind = "update" if patch.is_update else "patch"
        target = (
            f" -> {patch.identity.resulting_version}" if patch.is_update else ""
        )
        console.print(
            f"[green]Added[/green] {kind} [cyan]{patch.patch_id}[/cyan] "
            f"for {patch.identity.key}{target} ({len(patch.elements)} element(s))"
        )
