"""Unit tests for the command-line entry point."""

import pytest

from mallard.config import LLMConfig, Settings, get_settings
from mallard.config_constants import LogLevel
from mallard.domain.errors import ConfigurationError
from mallard.main import apply_overrides, build_parser, load_settings, main


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LLM__OPENROUTER_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(llm=LLMConfig(openrouter_api_key="sk-test"))


class TestArguments:
    """Flag parsing and settings overrides."""

    def test_defaults_leave_settings_unchanged(self, settings):
        args = build_parser().parse_args([])
        assert apply_overrides(settings, args) is settings

    def test_overrides(self, settings):
        args = build_parser().parse_args([
            "-s", "/data/schemas",
            "-d", "sales.duckdb",
            "--duckdb-exe", "/opt/duckdb",
            "--timeout", "5",
            "--log-level", "debug",
        ])

        updated = apply_overrides(settings, args)

        assert updated.schema_discovery.schema_path == "/data/schemas"
        assert updated.duckdb.database_path == "sales.duckdb"
        assert updated.duckdb.executable_path == "/opt/duckdb"
        assert updated.duckdb.query_timeout_seconds == 5
        assert updated.app.log_level == LogLevel.DEBUG
        # Input settings are not modified
        assert settings.duckdb.database_path == "./data.duckdb"

    def test_non_positive_timeout_rejected(self, settings):
        args = build_parser().parse_args(["--timeout", "0"])
        with pytest.raises(ConfigurationError):
            apply_overrides(settings, args)

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "LOUD"])


class TestStartup:
    """Fatal start-up failures."""

    def test_missing_api_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            load_settings(build_parser().parse_args([]))

    def test_main_exits_nonzero_without_api_key(self, capsys):
        assert main([]) == 1
        assert "LLM__OPENROUTER_API_KEY" in capsys.readouterr().err

    def test_main_exits_nonzero_without_duckdb(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("LLM__OPENROUTER_API_KEY", "sk-test")

        assert main(["--duckdb-exe", str(tmp_path / "no-such-duckdb")]) == 1

        assert "Could not connect to DuckDB" in capsys.readouterr().err
