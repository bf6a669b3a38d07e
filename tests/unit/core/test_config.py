"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from rpg_combat.core.config import (
    EngineSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from rpg_combat.core.exceptions import ConfigurationError


class TestEngineSettings:
    """Tests for EngineSettings configuration."""

    def test_default_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default engine settings."""
        monkeypatch.chdir(tmp_path)

        settings = EngineSettings()

        assert settings.default_rng_seed == 1
        assert settings.strict_content is True
        assert settings.max_log_lines is None

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test engine settings read their own prefix."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("RPG_COMBAT_ENGINE_DEFAULT_RNG_SEED", "42")

        settings = EngineSettings()

        assert settings.default_rng_seed == 42

    def test_seed_must_fit_lcg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that seeds outside the 32-bit range are rejected."""
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ValueError):
            EngineSettings(default_rng_seed=2**32)


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.app_name == "RPG Combat Core"
        assert settings.app_version == "0.1.0"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.content_path is None
        assert settings.effective_log_level == "INFO"

    def test_env_vars(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        mock_env_vars: dict[str, str],
    ) -> None:
        """Test settings pick up flat and nested environment variables."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.debug is True
        assert settings.log_level == "WARNING"
        assert settings.effective_log_level == "DEBUG"
        assert settings.engine.default_rng_seed == 777
        assert settings.engine.strict_content is False

    def test_content_path_directory_rejected(self, tmp_path: Path) -> None:
        """Test that a directory is not accepted as a content document."""
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(content_path=tmp_path)

        assert "content_path" in str(exc_info.value)

    def test_content_path_file(self, tmp_path: Path) -> None:
        """Test that a file path is kept as a Path."""
        document = tmp_path / "game.json"

        settings = Settings(content_path=str(document))

        assert settings.content_path == document


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_returns_settings_instance(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that get_settings returns a Settings instance."""
        monkeypatch.chdir(tmp_path)

        settings = get_settings()

        assert isinstance(settings, Settings)

    def test_caching(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that settings are cached."""
        monkeypatch.chdir(tmp_path)

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

    def test_cache_clear(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that cache can be cleared."""
        monkeypatch.chdir(tmp_path)

        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2

    def test_invalid_env_wrapped(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that invalid settings surface as ConfigurationError."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("RPG_COMBAT_LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "original_error" in exc_info.value.details
