"""Repository configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support. Reads from .env file and PATCHREPO_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class RepoConfig(BaseSettings):
    """Patch repository configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PATCHREPO_ROOT=/srv/patches
        export PATCHREPO_LOG_LEVEL=DEBUG

    Or via .env file::

        PATCHREPO_ROOT=/srv/patches
        PATCHREPO_TEMP_DIR=/var/tmp/patchrepo
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PATCHREPO_",
        env_file_encoding="utf-8",
    )

    # Runtime
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    root: Path = Path(".patchrepo")
    temp_dir: Path | None = None  # None -> system temp directory

    # Output naming
    archive_suffix: str = ".zip"


# Module-level singleton — import as `from patchrepo.config import config`
config = RepoConfig()
