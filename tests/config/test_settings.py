"""Tests for McpSettings: CLI flags, env vars and TOML in one object."""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from strata_mcp.config.discovery import CONFIG_FILENAME
from strata_mcp.config.settings import McpSettings


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = McpSettings.from_cli(start=tmp_path)
        assert settings.config_path is None
        assert settings.verbose is False
        assert settings.log_json is False
        assert settings.server.name == "strata-mcp"
        assert settings.database.path is None
        assert settings.database.cache is False

    def test_frozen(self, tmp_path: Path) -> None:
        settings = McpSettings.from_cli(start=tmp_path)
        with pytest.raises(Exception):
            settings.verbose = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        toml = tmp_path / CONFIG_FILENAME
        toml.write_text('[database]\npath = "/srv/strata"\nread_only = true\n')
        settings = McpSettings.from_cli(start=tmp_path)
        assert settings.config_path == toml
        assert settings.database.path == "/srv/strata"
        assert settings.database.read_only is True
        assert settings.database.cache is False  # default preserved

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text('[server]\nname = "custom"\n')
        settings = McpSettings.from_cli(config_path=str(custom), start=tmp_path)
        assert settings.server.name == "custom"
        assert settings.config_path == custom

    def test_missing_explicit_path(self, tmp_path: Path) -> None:
        with pytest.raises(click.ClickException, match="Config file not found"):
            McpSettings.from_cli(config_path=str(tmp_path / "nope.toml"))

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("[database\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            McpSettings.from_cli(start=tmp_path)

    def test_unknown_sections_are_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_path / CONFIG_FILENAME).write_text('[vault]\nname = "x"\n\n[database]\ncache = true\n')
        with caplog.at_level("WARNING", logger="strata_mcp.config.settings"):
            settings = McpSettings.from_cli(start=tmp_path)
        assert settings.database.cache is True
        assert "vault" in caplog.text


class TestPriority:
    def test_cli_flags_override_toml(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text('[database]\npath = "from-toml"\n')
        settings = McpSettings.from_cli(start=tmp_path, database={"read_only": True})
        assert settings.database.path == "from-toml"
        assert settings.database.read_only is True

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("verbose = false\n")
        monkeypatch.setenv("STRATA_MCP_VERBOSE", "true")
        assert McpSettings.from_cli(start=tmp_path).verbose is True

    def test_nested_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STRATA_MCP_DATABASE__CACHE", "true")
        monkeypatch.setenv("STRATA_MCP_DATABASE__RETENTION_MAX_VERSIONS", "4")
        settings = McpSettings.from_cli(start=tmp_path)
        assert settings.database.cache is True
        assert settings.database.retention_max_versions == 4

    def test_cli_flag_overrides_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STRATA_MCP_LOG_JSON", "false")
        assert McpSettings.from_cli(start=tmp_path, log_json=True).log_json is True
