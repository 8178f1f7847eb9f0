"""Tests for settings loading."""

from pathlib import Path

import pytest

from lumenwatch.config import DEFAULT_DB_PATH, load_settings
from lumenwatch.exceptions import ConfigurationError


class TestLoadSettings:
    def test_defaults(self) -> None:
        settings = load_settings({})
        assert settings.supabase_url is None
        assert settings.table == "inference_table"
        assert settings.refresh_interval == 30.0
        assert settings.db_path == DEFAULT_DB_PATH
        assert settings.demo_mode is True

    def test_environment_values(self) -> None:
        settings = load_settings(
            {
                "LUMENWATCH_SUPABASE_URL": "https://example.supabase.co",
                "LUMENWATCH_SUPABASE_KEY": "anon-key",
                "LUMENWATCH_REFRESH_INTERVAL": "5",
                "LUMENWATCH_DB_PATH": "/tmp/lights.duckdb",
            }
        )
        assert settings.supabase_url == "https://example.supabase.co"
        assert settings.supabase_key == "anon-key"
        assert settings.refresh_interval == 5.0
        assert settings.db_path == Path("/tmp/lights.duckdb")
        assert settings.demo_mode is False

    def test_empty_values_are_ignored(self) -> None:
        settings = load_settings({"LUMENWATCH_TABLE": ""})
        assert settings.table == "inference_table"

    def test_invalid_interval(self) -> None:
        with pytest.raises(ConfigurationError):
            load_settings({"LUMENWATCH_REFRESH_INTERVAL": "0"})

    def test_non_numeric_timeout(self) -> None:
        with pytest.raises(ConfigurationError):
            load_settings({"LUMENWATCH_HTTP_TIMEOUT": "soon"})
