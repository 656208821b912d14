"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from proma.config import DEFAULT_DATABASE_URL, PromaConfig, load_config_from_env

ENV_VARS = [
    "PROMA_DATABASE_URL",
    "PROMA_CREDENTIAL_KEY",
    "PROMA_ATTACHMENTS_DIR",
    "PROMA_REQUEST_TIMEOUT_MS",
    "PROMA_TITLE_MAX_LENGTH",
    "PROMA_LOG_LEVEL",
    "PROMA_JSON_LOGS",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Unset every PROMA_* variable."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestPromaConfig:
    """Tests for PromaConfig."""

    def test_defaults(self) -> None:
        config = PromaConfig()

        assert config.database_url == DEFAULT_DATABASE_URL
        assert config.credential_key is None
        assert config.request_timeout_seconds == 120.0
        assert config.title_max_length == 20

    def test_log_level_normalized(self) -> None:
        assert PromaConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            PromaConfig(log_level="LOUD")

    def test_timeout_bounds(self) -> None:
        with pytest.raises(ValidationError):
            PromaConfig(request_timeout_ms=10)

    def test_credential_key_hidden_from_repr(self) -> None:
        assert "secret-key" not in repr(PromaConfig(credential_key="secret-key"))

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            PromaConfig().title_max_length = 5


class TestLoadConfigFromEnv:
    """Tests for load_config_from_env."""

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        config = load_config_from_env()

        assert config == PromaConfig()

    def test_reads_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("PROMA_DATABASE_URL", "sqlite+aiosqlite:///./other.db")
        clean_env.setenv("PROMA_CREDENTIAL_KEY", "key")
        clean_env.setenv("PROMA_REQUEST_TIMEOUT_MS", "5000")
        clean_env.setenv("PROMA_TITLE_MAX_LENGTH", "30")
        clean_env.setenv("PROMA_LOG_LEVEL", "warning")
        clean_env.setenv("PROMA_JSON_LOGS", "false")

        config = load_config_from_env()

        assert config.database_url == "sqlite+aiosqlite:///./other.db"
        assert config.credential_key == "key"
        assert config.request_timeout_seconds == 5.0
        assert config.title_max_length == 30
        assert config.log_level == "WARNING"
        assert config.json_logs is False

