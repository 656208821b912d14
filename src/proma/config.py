"""Application configuration models and utilities.

Configuration is read from environment variables (optionally via a ``.env``
file) into an immutable pydantic model shared by the API, the CLI and the
chat service.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./proma.db"


class PromaConfig(BaseModel):
    """Global Proma configuration.

    Attributes:
        database_url: Async SQLAlchemy URL for conversations and channels
        credential_key: Fernet key used to encrypt channel API keys (sensitive)
        attachments_dir: Root directory that attachment ``local_path`` values
            are resolved against
        request_timeout_ms: Timeout applied to provider HTTP requests
        title_max_length: Maximum length of a generated conversation title
        log_level: Logging level name
        json_logs: Whether to render logs as JSON
    """

    model_config = ConfigDict(frozen=True)

    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    credential_key: Optional[str] = Field(default=None, repr=False)
    attachments_dir: str = Field(default="./attachments")
    request_timeout_ms: int = Field(default=120000, ge=1000, le=600000)
    title_max_length: int = Field(default=20, ge=1, le=200)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the log level name.

        Raises:
            ValueError: If the level is not a standard logging level
        """
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def request_timeout_seconds(self) -> float:
        """Provider request timeout in seconds."""
        return self.request_timeout_ms / 1000


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def load_config_from_env() -> PromaConfig:
    """Load configuration from environment variables.

    Automatically loads variables from a ``.env`` file if present.

    Reads:
    - PROMA_DATABASE_URL: Async database URL
    - PROMA_CREDENTIAL_KEY: Fernet key for channel API keys
    - PROMA_ATTACHMENTS_DIR: Attachment root directory
    - PROMA_REQUEST_TIMEOUT_MS: Provider request timeout in milliseconds
    - PROMA_TITLE_MAX_LENGTH: Maximum generated title length
    - PROMA_LOG_LEVEL: Logging level
    - PROMA_JSON_LOGS: Render logs as JSON (true/false)

    Returns:
        PromaConfig loaded from environment

    Example:
        >>> import os
        >>> os.environ["PROMA_TITLE_MAX_LENGTH"] = "30"
        >>> load_config_from_env().title_max_length
        30
    """
    load_dotenv()

    return PromaConfig(
        database_url=os.getenv("PROMA_DATABASE_URL", DEFAULT_DATABASE_URL),
        credential_key=os.getenv("PROMA_CREDENTIAL_KEY") or None,
        attachments_dir=os.getenv("PROMA_ATTACHMENTS_DIR", "./attachments"),
        request_timeout_ms=int(os.getenv("PROMA_REQUEST_TIMEOUT_MS", "120000")),
        title_max_length=int(os.getenv("PROMA_TITLE_MAX_LENGTH", "20")),
        log_level=os.getenv("PROMA_LOG_LEVEL", "INFO"),
        json_logs=_env_flag("PROMA_JSON_LOGS", "true"),
    )
