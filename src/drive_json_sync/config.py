"""Configuration management for the Drive JSON Sync CLI.

Loads settings from environment variables, an optional .env file and
an optional JSON/YAML configuration file. The library operations never
read this; they take every input explicitly.
"""

from __future__ import annotations

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "DRIVE_SYNC_"

DEFAULT_SCOPE = "https://www.googleapis.com/auth/drive.file"
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8765/oauth/callback"
DEFAULT_FILE_NAME = "lifecycle-insights.json"


class ConfigError(Exception):
    """Raised when configuration validation fails."""


class LogLevel(str, Enum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Config(BaseModel):
    """Settings for the command-line client.

    Configuration can be loaded from:
    - Environment variables with DRIVE_SYNC_ prefix
    - Optional .env file in the working directory
    - Optional configuration file passed via CLI
    """

    log_level: LogLevel = Field(default=LogLevel.WARNING, description="Logging level")
    client_id: str | None = Field(default=None, description="Google OAuth client identifier")
    redirect_uri: str = Field(
        default=DEFAULT_REDIRECT_URI, description="Registered OAuth redirect URI"
    )
    scope: str = Field(default=DEFAULT_SCOPE, description="OAuth scopes (space-separated)")
    file_name: str = Field(
        default=DEFAULT_FILE_NAME, min_length=1, description="Name of the synced Drive file"
    )
    http_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    model_config = {
        "validate_assignment": True,
    }

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    def require_client_id(self) -> str:
        """Return the client ID or raise ConfigError if it is not set."""
        if not self.client_id:
            msg = f"client_id is required (set {ENV_PREFIX}CLIENT_ID or pass --client-id)"
            raise ConfigError(msg)
        return self.client_id


ENV_MAPPING = {
    "log_level": "LOG_LEVEL",
    "client_id": "CLIENT_ID",
    "redirect_uri": "REDIRECT_URI",
    "scope": "SCOPE",
    "file_name": "FILE_NAME",
    "http_timeout": "HTTP_TIMEOUT",
}


def _load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}
    for field_name, env_suffix in ENV_MAPPING.items():
        value = os.environ.get(f"{ENV_PREFIX}{env_suffix}")
        if value is not None:
            config[field_name] = value
    return config


def _load_file_config(path: str | Path) -> dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    path = Path(path)
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise ConfigError(msg)

    suffix = path.suffix.lower()
    content = path.read_text()

    if suffix == ".json":
        try:
            data = json.loads(content)
        except ValueError as e:
            msg = f"Invalid configuration file {path}: {e}"
            raise ConfigError(msg) from e
    elif suffix in (".yaml", ".yml"):
        import yaml

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            msg = f"Invalid configuration file {path}: {e}"
            raise ConfigError(msg) from e
    else:
        msg = f"Unsupported configuration file format: {suffix}"
        raise ConfigError(msg)

    if not isinstance(data, dict):
        msg = f"Invalid configuration file {path}: top level must be a mapping"
        raise ConfigError(msg)
    return data


def load_config(
    path: str | Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> Config:
    """Load and validate configuration.

    Precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Configuration file
    4. Model defaults

    Args:
        path: Optional path to configuration file
        cli_args: Optional CLI argument overrides

    Returns:
        Validated Config instance

    Raises:
        ConfigError: If configuration is invalid
    """
    load_dotenv(find_dotenv(usecwd=True))

    config_dict: dict[str, Any] = {}
    if path:
        logger.debug("Loading configuration from file: %s", path)
        config_dict.update(_load_file_config(path))

    for key, value in _load_env_config().items():
        config_dict[key] = value
        logger.debug("Config %s from environment", key)

    if cli_args:
        for key, value in cli_args.items():
            if value is not None:
                config_dict[key] = value

    try:
        return Config(**config_dict)
    except ValidationError as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e
