"""Shared option parsing and error reporting for CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from patchrepo.config import config
from patchrepo.core.errors import PatchRepositoryError
from patchrepo.core.repository import PatchRepository
from patchrepo.models.identity import AddOnInfo, IdentityInfo

console = Console()

ROOT_OPTION = typer.Option(
    None,
    "--root",
    "-r",
    help="Repository root directory (defaults to PATCHREPO_ROOT or .patchrepo).",
)

ADDON_OPTION = typer.Option(
    None,
    "--addon",
    "-a",
    help="Installed add-on as NAME=VERSION; repeat for several.",
)


def open_repository(root: Path | None) -> PatchRepository:
    return PatchRepository(root or config.root)


def parse_identity(name: str, version: str, addons: list[str] | None) -> IdentityInfo:
    """Build an IdentityInfo from CLI arguments, exiting on a malformed add-on."""
    parsed: list[AddOnInfo] = []
    for spec in addons or []:
        addon_name, sep, addon_version = spec.partition("=")
        if not sep or not addon_name or not addon_version:
            console.print(f"[bold red]Malformed add-on:[/bold red] {spec} (expected NAME=VERSION)")
            raise typer.Exit(code=2)
        parsed.append(AddOnInfo(name=addon_name, version=addon_version))
    try:
        return IdentityInfo(name=name, version=version, add_ons=tuple(parsed))
    except ValueError as exc:
        console.print(f"[bold red]Invalid identity:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def fail(exc: PatchRepositoryError) -> typer.Exit:
    """Print a repository error and return the exit to raise."""
    console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
    return typer.Exit(code=1)
