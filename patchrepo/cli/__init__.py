"""patchrepo CLI — Typer-based command-line interface.

Provides the ``patchrepo`` command with subcommands for adding patch
archives, inspecting stored patches, accepting add-on updates, and
writing update chains, single patches and bundles.

All output uses Rich for formatted terminal display.
"""
