"""Tests for repository config — env-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from patchrepo.config import RepoConfig


class TestRepoConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        for name in ("PATCHREPO_ROOT", "PATCHREPO_TEMP_DIR", "PATCHREPO_LOG_LEVEL", "PATCHREPO_DEBUG"):
            monkeypatch.delenv(name, raising=False)
        config = RepoConfig(_env_file=None)
        assert config.log_level == "INFO"
        assert config.debug is False
        assert config.root == Path(".patchrepo")
        assert config.temp_dir is None
        assert config.archive_suffix == ".zip"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setenv("PATCHREPO_ROOT", str(tmp_path / "repo"))
        monkeypatch.setenv("PATCHREPO_DEBUG", "true")
        config = RepoConfig(_env_file=None)
        assert config.root == tmp_path / "repo"
        assert config.debug is True

    def test_explicit_values(self, tmp_path: Path):
        config = RepoConfig(_env_file=None, temp_dir=tmp_path, log_level="DEBUG")
        assert config.temp_dir == tmp_path
        assert config.log_level == "DEBUG"
