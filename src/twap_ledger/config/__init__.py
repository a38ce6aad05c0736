"""Configuration package for twap_ledger."""

from .state import ConfigLoader, ConfigState, DatabaseConfig, get_config

__all__ = [
    "ConfigLoader",
    "ConfigState",
    "DatabaseConfig",
    "get_config",
]
