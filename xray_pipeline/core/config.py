"""
Configuration management for xray-pipeline.

Loads the JSON config file shared with the rest of the xray tooling, applies
defaults and environment variable overrides, and validates the configured
directories once at startup.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from .exceptions import ConfigurationError

# Load .env file if it exists (looks in cwd and parent directories)
load_dotenv()

DEFAULT_CONFIG_PATH = Path("/etc/xray/config.json")


def _clean(path: Path) -> Path:
    return Path(os.path.normpath(str(path)))


class DbConfig(BaseModel):
    """Database connection parameters."""

    database: str = Field(default="", description="Database name")
    user: str = Field(default="", description="Database user")
    password: SecretStr = Field(default=SecretStr(""), description="Database password")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")


class AnalyzerConfig(BaseModel):
    """Analyzer-specific configuration."""

    db: DbConfig = Field(default_factory=DbConfig)


class AttributionConfig(BaseModel):
    """Company attribution service configuration."""

    endpoint: str = Field(default="http://localhost:8080", description="Attribution API base URL")
    timeout_seconds: float = Field(default=10.0, gt=0, description="Per-request timeout")
    max_attempts: int = Field(default=1, ge=1, description="Attempts per request, 1 disables retry")
    backoff_seconds: float = Field(default=1.0, ge=0, description="Base delay between retries")


class ToolsConfig(BaseModel):
    """External tools configuration."""

    apktool_path: Path | None = Field(default=None, description="Custom apktool path")


class Config(BaseModel):
    """Root configuration for xray-pipeline."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    data_dir: Path = Field(default=Path("/usr/local/var/xray"), alias="datadir")
    unpack_dir: Path = Field(default=Path("/tmp/unpacked_apks"), alias="unpackdir")
    sock_path: Path = Field(default=Path("/var/run/apkScraper"), alias="sockpath")
    geoip_host: str = Field(default="http://freegeoip.net/json", alias="geoiphost")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    attribution: AttributionConfig = Field(default_factory=AttributionConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    @field_validator("data_dir", "unpack_dir", "sock_path")
    @classmethod
    def _normalize(cls, value: Path) -> Path:
        return _clean(value)

    @property
    def app_dir(self) -> Path:
        """Directory holding downloaded packages, derived from the data dir."""
        return self.data_dir / "apps"

    @property
    def db(self) -> DbConfig:
        """Database parameters used by the analyzer."""
        return self.analyzer.db

    @classmethod
    def from_dict(cls, raw: dict) -> Config:
        """Build a configuration from a parsed config document.

        Empty strings are treated like absent keys so that the defaults apply.

        Raises:
            ConfigurationError: If the document does not validate.
        """
        cleaned = {k: v for k, v in raw.items() if v != ""}
        try:
            return cls.model_validate(cleaned)
        except ValidationError as e:
            raise ConfigurationError(message=f"Invalid configuration: {e}", cause=e)

    def with_env_overrides(self) -> Config:
        """Return a copy with environment variable overrides applied.

        The merged settings are validated again, so an override is held to
        the same rules as the config file.

        Raises:
            ConfigurationError: If an override does not validate.
        """
        updates: dict = {}
        if level := os.environ.get("XRAY_LOG_LEVEL"):
            updates["log_level"] = level.upper()
        if geoip := os.environ.get("XRAY_GEOIP_HOST"):
            updates["geoip_host"] = geoip
        if unpack := os.environ.get("XRAY_UNPACK_DIR"):
            updates["unpack_dir"] = unpack
        if endpoint := os.environ.get("XRAY_ATTRIBUTION_ENDPOINT"):
            updates["attribution"] = {**self.attribution.model_dump(), "endpoint": endpoint}
        if not updates:
            return self
        try:
            return type(self).model_validate({**self.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigurationError(
                message=f"Invalid environment override: {e}",
                context={"overrides": sorted(updates)},
                cause=e,
            )


def load_config(cfg_file: Path | str = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration from a JSON file.

    Args:
        cfg_file: Path to the JSON config file.

    Returns:
        Validated configuration with defaults and env overrides applied.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed.
    """
    cfg_path = Path(cfg_file)
    try:
        raw = json.loads(cfg_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(
            message=f"Couldn't read config file {cfg_path}",
            context={"path": str(cfg_path)},
            cause=e,
        )
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            message=f"Error reading JSON in {cfg_path}",
            context={"path": str(cfg_path)},
            cause=e,
        )

    if not isinstance(raw, dict):
        raise ConfigurationError(
            message=f"Config file {cfg_path} must contain a JSON object",
            context={"path": str(cfg_path)},
        )

    return Config.from_dict(raw).with_env_overrides()


def check_dir(directory: Path, name: str) -> None:
    """Verify that a directory exists, creating it when missing.

    Raises:
        ConfigurationError: If the path is not a directory or cannot be created.
    """
    if directory.exists():
        if not directory.is_dir():
            raise ConfigurationError(
                message=f"{name} isn't a directory",
                context={"path": str(directory)},
            )
        return

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(
            message=f"Couldn't create {name}",
            context={"path": str(directory)},
            cause=e,
        )


def validate_directories(config: Config) -> None:
    """Check every configured directory once, at startup."""
    check_dir(config.data_dir, "data directory")
    check_dir(config.app_dir, "app directory")
    check_dir(config.unpack_dir, "unpack directory")
