"""Tests for configuration loading."""

from pathlib import Path

import pytest

from booklify.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Clear booklify variables and reset the global config."""
    for name in (
        "BOOKLIFY_CFI_WEIGHT",
        "BOOKLIFY_COMPLETION_WEIGHT",
        "BOOKLIFY_STEP_CEILING",
        "BOOKLIFY_MAX_CFI_LENGTH",
        "BOOKLIFY_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BOOKLIFY_DB_PATH", str(tmp_path / "data" / "booklify.db"))
    reset_config()
    yield
    reset_config()


class TestConfig:
    """Tests for Config."""

    def test_defaults(self, tmp_path):
        config = Config.from_env()

        assert config.db_path == tmp_path / "data" / "booklify.db"
        assert config.cfi_weight == 0.3
        assert config.completion_weight == 0.7
        assert config.step_ceiling == 200
        assert config.max_cfi_length == 1000
        assert config.log_level == "WARNING"
        assert config.validate() == []

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BOOKLIFY_CFI_WEIGHT", "0.5")
        monkeypatch.setenv("BOOKLIFY_COMPLETION_WEIGHT", "0.5")
        monkeypatch.setenv("BOOKLIFY_STEP_CEILING", "50")
        monkeypatch.setenv("BOOKLIFY_LOG_LEVEL", "debug")

        config = Config.from_env()

        assert config.cfi_weight == 0.5
        assert config.step_ceiling == 50
        assert config.log_level == "DEBUG"
        assert config.validate() == []

    def test_user_path_expanded(self, monkeypatch):
        monkeypatch.setenv("BOOKLIFY_DB_PATH", "~/books.db")
        assert Config.from_env().db_path == Path.home() / "books.db"

    def test_validate_errors(self, monkeypatch):
        """Test each invalid setting is reported."""
        monkeypatch.setenv("BOOKLIFY_CFI_WEIGHT", "0.6")
        monkeypatch.setenv("BOOKLIFY_STEP_CEILING", "1")
        monkeypatch.setenv("BOOKLIFY_MAX_CFI_LENGTH", "0")
        monkeypatch.setenv("BOOKLIFY_LOG_LEVEL", "loud")

        errors = Config.from_env().validate()

        assert len(errors) == 4
        assert any("sum to 1" in e for e in errors)
        assert any("BOOKLIFY_STEP_CEILING" in e for e in errors)

    def test_validate_creates_directory(self, tmp_path):
        config = Config.from_env()
        config.validate()
        assert (tmp_path / "data").is_dir()

    def test_global_instance(self):
        assert get_config() is get_config()
        first = get_config()
        reset_config()
        assert get_config() is not first

    def test_unparsable_numbers(self, monkeypatch):
        """Test malformed numbers are reported by validate, not raised."""
        monkeypatch.setenv("BOOKLIFY_CFI_WEIGHT", "lots")
        monkeypatch.setenv("BOOKLIFY_STEP_CEILING", "2.5")

        config = Config.from_env()

        assert config.cfi_weight == 0.3
        assert config.step_ceiling == 200
        errors = config.validate()
        assert errors == [
            "BOOKLIFY_CFI_WEIGHT must be a number (got 'lots')",
            "BOOKLIFY_STEP_CEILING must be a number (got '2.5')",
        ]
