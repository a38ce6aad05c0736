"""
Unified configuration state management inspired by SharedState pattern.

This module provides a single source of truth for all application configuration,
combining hierarchical YAML files with environment overrides, type validation,
and sensible defaults.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlparse

import yaml
from pydantic import BaseModel, Field, field_validator

from twap_ledger.common.exceptions import ConfigurationError
from twap_ledger.shared.models.enums import (
    IncompleteTradePolicy,
    LeaderboardStrategy,
    SourceFormat,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection and tuning configuration."""

    url: str | None = Field(default=None)
    supabase_url: str | None = Field(default=None)
    password: str | None = Field(default=None)
    pooler_host: str = Field(default="aws-0-us-east-1.pooler.supabase.com")
    min_pool_size: int = Field(default=1, ge=1, le=50)
    max_pool_size: int = Field(default=4, ge=1, le=100)
    connect_timeout: float = Field(default=30.0, gt=0)
    # pgbouncer in transaction mode does not support prepared statements
    statement_cache_size: int = Field(default=0, ge=0)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Allow environment variable override."""
        if not v or v.startswith(("postgresql://", "postgres://")):
            return v
        raise ValueError("Database URL must start with postgresql://")

    @property
    def project_ref(self) -> str | None:
        """Supabase project ref parsed from https://<ref>.supabase.co."""
        if not self.supabase_url:
            return None
        host = urlparse(self.supabase_url).hostname or ""
        ref = host.split(".")[0]
        return ref or None

    def candidate_dsns(self) -> list[str]:
        """
        Connection strings to try, in order.

        An explicit url wins. Otherwise the Supabase pooler variants are
        derived from supabase_url and password.

        Raises:
            ConfigurationError: If no usable credentials are configured
        """
        if self.url:
            return [self.url]

        ref = self.project_ref
        if not ref or not self.password:
            raise ConfigurationError(
                "No database credentials configured",
                remediation="set DATABASE_URL, or SUPABASE_URL and POSTGRES_PASSWORD",
            )

        user = f"postgres.{ref}"
        password = quote(self.password, safe="")
        return [
            f"postgresql://{user}:{password}@{self.pooler_host}:6543/postgres",
            f"postgresql://{user}:{password}@{self.pooler_host}:6543/postgres?pgbouncer=true",
            f"postgresql://{user}:{password}@{self.pooler_host}:5432/postgres",
        ]

    class Config:
        extra = "allow"


class IngestionConfig(BaseModel):
    """Raw node data and CSV generation settings."""

    base_dir: str = Field(default="./hl-data")
    tracking_file: str = Field(default=".last_trade_id")
    sources: list[SourceFormat] = Field(
        default_factory=lambda: [SourceFormat.NODE_TRADES, SourceFormat.NODE_FILLS_BY_BLOCK]
    )
    incomplete_trade_policy: IncompleteTradePolicy = Field(
        default=IncompleteTradePolicy.ACCEPT
    )
    progress_every_files: int = Field(default=5, ge=1)
    preview_path: str = Field(default="./twap_preview.jsonl")

    class Config:
        extra = "allow"


class ImportConfig(BaseModel):
    """Staged bulk import settings."""

    max_retries: int = Field(default=5, ge=0, le=20)
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_max_delay: float = Field(default=30.0, ge=0)
    progress_every_days: int = Field(default=10, ge=1)
    confirm_delay_seconds: float = Field(default=5.0, ge=0)
    advisory_lock_key: int = Field(default=7_246_173)

    class Config:
        extra = "allow"


class S3Config(BaseModel):
    """Hyperliquid node data bucket (requester pays)."""

    bucket: str = Field(default="hl-mainnet-node-data")
    region: str = Field(default="ap-northeast-1")
    access_key_id: str | None = Field(default=None)
    secret_access_key: str | None = Field(default=None)
    sync_prefix: str = Field(default="twap-data/")
    decompress_workers: int = Field(default=8, ge=1, le=64)

    class Config:
        extra = "allow"


class LeaderboardConfig(BaseModel):
    """Leaderboard aggregation settings."""

    strategy: LeaderboardStrategy = Field(default=LeaderboardStrategy.FULL)
    limit: int | None = Field(default=None, ge=1)
    view_name: str = Field(default="user_strategy_stats_mv")

    @field_validator("view_name")
    @classmethod
    def validate_view_name(cls, v: str) -> str:
        """The view name is interpolated into DDL, so keep it a plain identifier."""
        if not re.fullmatch(r"[a-z_][a-z0-9_]{0,62}", v):
            raise ValueError(f"Invalid view name: {v!r}")
        return v

    class Config:
        extra = "allow"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)

    class Config:
        extra = "allow"


class ConfigState(BaseModel):
    """
    Root configuration state - single source of truth for all app config.

    Provides unified access to all settings with type safety, validation,
    and sensible defaults.
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    importer: ImportConfig = Field(default_factory=ImportConfig)
    s3: S3Config = Field(default_factory=S3Config)
    leaderboard: LeaderboardConfig = Field(default_factory=LeaderboardConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Environment metadata
    env: str = Field(default="dev")
    config_dir: str = Field(default="./config")

    class Config:
        extra = "allow"  # Allow additional fields from YAML


# =============================================================================
# CONFIG LOADER - Clean, Validated Loading
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration from hierarchical YAML files.

    Merges:
      1. Global defaults (hardcoded)
      2. YAML files from config_dir
      3. Environment-specific YAML (env/<env>.yaml)
      4. Environment variable overrides
    """

    CONFIG_FILES = ("database.yaml", "ingestion.yaml", "s3.yaml", "leaderboard.yaml")

    def __init__(self, config_dir: str = "./config"):
        self.config_dir = Path(config_dir)
        self._yaml_cache: dict[Path, Any] = {}
        self.env = os.getenv("TWAP_ENV", "dev")

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file with caching."""
        if path in self._yaml_cache:
            return self._yaml_cache[path]

        if not path.exists():
            logger.debug(f"Config file not found (using defaults): {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load {path}: {e}")
            raise ConfigurationError(f"Unreadable config file {path}: {e}") from e

        self._yaml_cache[path] = data
        logger.debug(f"Loaded config: {path.relative_to(self.config_dir)}")
        return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        # Database credentials
        if db_url := os.getenv("DATABASE_URL"):
            config.setdefault("database", {})["url"] = db_url
        if supabase_url := os.getenv("SUPABASE_URL"):
            config.setdefault("database", {})["supabase_url"] = supabase_url
        if password := os.getenv("POSTGRES_PASSWORD"):
            config.setdefault("database", {})["password"] = password

        # S3 credentials and sync prefix
        if access_key := os.getenv("AWS_ACCESS_KEY_ID"):
            config.setdefault("s3", {})["access_key_id"] = access_key
        if secret_key := os.getenv("AWS_SECRET_ACCESS_KEY"):
            config.setdefault("s3", {})["secret_access_key"] = secret_key
        if prefix := os.getenv("S3_DATA_PREFIX"):
            config.setdefault("s3", {})["sync_prefix"] = prefix

        # Ingestion paths
        if base_dir := os.getenv("TWAP_BASE_DIR"):
            config.setdefault("ingestion", {})["base_dir"] = base_dir
        if tracking_file := os.getenv("TWAP_TRACKING_FILE"):
            config.setdefault("ingestion", {})["tracking_file"] = tracking_file

        # Logging
        if log_level := os.getenv("LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level
        if log_json := os.getenv("LOG_JSON"):
            config.setdefault("logging", {})["json_logs"] = log_json.lower() in (
                "1",
                "true",
                "yes",
            )

        return config

    def _merge_dicts(self, base: dict, override: dict) -> dict:
        """Deep merge override into base dict."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def load(self) -> ConfigState:
        """
        Load complete configuration state.

        Returns:
            ConfigState: Validated configuration object

        Raises:
            ValidationError: If configuration is invalid
        """
        logger.info(f"Loading configuration from {self.config_dir} (env: {self.env})")

        config: dict[str, Any] = {}

        # 1. Load top-level YAML files
        for config_file in self.CONFIG_FILES:
            file_config = self._load_yaml(self.config_dir / config_file)
            config = self._merge_dicts(config, file_config)

        # 2. Load environment-specific overrides
        env_config = self._load_yaml(self.config_dir / "env" / f"{self.env}.yaml")
        config = self._merge_dicts(config, env_config)

        # 3. Apply environment variable overrides
        config = self._apply_env_overrides(config)

        # 4. Create ConfigState with validation
        try:
            state = ConfigState(env=self.env, config_dir=str(self.config_dir), **config)
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        logger.info(
            f"✅ Configuration loaded: base_dir={state.ingestion.base_dir}, "
            f"sources={len(state.ingestion.sources)}, "
            f"leaderboard={state.leaderboard.strategy.value}"
        )
        return state


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================


def get_config(config_dir: str | None = None) -> ConfigState:
    """
    Load and return the configuration state.

    Args:
        config_dir: Override config directory. Defaults to $TWAP_CONFIG_DIR or ./config

    Returns:
        ConfigState: Validated configuration object
    """
    if config_dir is None:
        config_dir = os.getenv("TWAP_CONFIG_DIR", "./config")
        if not Path(config_dir).exists():
            logger.warning(f"Config directory not found at {config_dir}, using defaults")

    loader = ConfigLoader(config_dir=config_dir)
    return loader.load()


__all__ = [
    "ConfigLoader",
    "ConfigState",
    "DatabaseConfig",
    "ImportConfig",
    "IngestionConfig",
    "LeaderboardConfig",
    "LoggingConfig",
    "S3Config",
    "get_config",
]
