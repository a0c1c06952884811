"""Service configuration loaded from environment variables and config.json."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cdnsync.exceptions import ConfigurationError

ENCRYPTION_KEY_BYTES = 32
DEFAULT_CONFIG_FILE = Path("config.json")

# Older config.json files spell some keys differently.
_LEGACY_KEYS = {"bunny_cdn_api_key": "bunnycdn_api_key"}


class Settings(BaseSettings):
    """cdnsync settings."""

    model_config = SettingsConfigDict(
        env_prefix="CDNSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Source store (GitLab)
    gitlab_instance_url: str = ""
    gitlab_api_key: str = ""
    gitlab_ref: str = "main"

    # Destination store (BunnyCDN)
    bunnycdn_api_url: str = "https://api.bunny.net"
    bunnycdn_storage_url: str = ""
    bunnycdn_storage_pull_zone: str = ""
    bunnycdn_api_key: str = ""

    # Staging
    encryption_key: str = ""
    temp_storage_path: Path = Path("./tmp")

    # Notifications
    discord_webhook_url: str = ""

    # Logging
    log_dir: Path = Path(".")
    log_excerpt_limit: int = Field(default=1024, ge=16)

    # Reconciliation
    max_parallel: int = Field(default=10, ge=1)
    sync_interval_seconds: int = Field(default=3600, ge=1)
    http_timeout_seconds: float = Field(default=60.0, gt=0)
    manifest_file_name: str = Field(default="kushn_result.json", min_length=1)
    eligibility_file_name: str = Field(default="sync_config.json", min_length=1)
    bootstrap_missing_mirror: bool = False

    @field_validator("encryption_key")
    @classmethod
    def _check_key_length(cls, value: str) -> str:
        if value and len(value.encode("utf-8")) != ENCRYPTION_KEY_BYTES:
            msg = f"encryption_key must be exactly {ENCRYPTION_KEY_BYTES} bytes"
            raise ValueError(msg)
        return value

    @property
    def key_bytes(self) -> bytes:
        return self.encryption_key.encode("utf-8")

    def validate_runtime(self) -> None:
        """Validate that every setting needed for a sync pass is present."""
        required = {
            "gitlab_instance_url": self.gitlab_instance_url,
            "gitlab_api_key": self.gitlab_api_key,
            "bunnycdn_storage_url": self.bunnycdn_storage_url,
            "bunnycdn_storage_pull_zone": self.bunnycdn_storage_pull_zone,
            "bunnycdn_api_key": self.bunnycdn_api_key,
            "encryption_key": self.encryption_key,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            joined = ", ".join(missing)
            msg = f"Missing required configuration: {joined}"
            raise ConfigurationError(msg)


def load_settings(config_path: Path | None = DEFAULT_CONFIG_FILE) -> Settings:
    """Build settings from the environment, overlaid with a JSON config file if present.

    Raises:
        ConfigurationError: If the file is unreadable, not a JSON object, or fails validation.
    """
    overrides: dict[str, Any] = {}
    if config_path is not None and config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Failed to read {config_path}: {exc}"
            raise ConfigurationError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{config_path} must contain a JSON object"
            raise ConfigurationError(msg)
        overrides = {_LEGACY_KEYS.get(key, key): value for key, value in data.items()}

    try:
        return Settings(**overrides)
    except ValidationError as exc:
        msg = f"Invalid configuration: {exc}"
        raise ConfigurationError(msg) from exc
