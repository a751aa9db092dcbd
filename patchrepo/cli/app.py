"""Main Typer application — imports and registers all CLI commands.

Entry point: ``patchrepo`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from patchrepo.cli.commands.accept import accept_addon_cmd
from patchrepo.cli.commands.add import add_cmd
from patchrepo.cli.commands.retrieve import bundle_cmd, patch_cmd, update_cmd
from patchrepo.cli.commands.status import status_cmd
from patchrepo.config import config

app = typer.Typer(
    name="patchrepo",
    help="patchrepo: store patch archives and re-synthesize updates and bundles.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    level = logging.DEBUG if verbose or config.debug else config.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="add", help="Add patch archives to the repository.")(add_cmd)
app.command(name="status", help="Show stored patches and updates for an identity.")(status_cmd)
app.command(name="accept-addon", help="Allow an identity to consume an add-on update.")(accept_addon_cmd)
app.command(name="update", help="Write an update chain bundle.")(update_cmd)
app.command(name="patch", help="Write one stored patch or update.")(patch_cmd)
app.command(name="bundle", help="Bundle all one-off patches for an identity.")(bundle_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
