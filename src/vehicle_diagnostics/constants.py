"""Stable constants shared across the diagnostics package."""

from __future__ import annotations

from typing import Final

# Schema version for the vehdiag.toml contract.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Config file discovery and environment overrides.
DEFAULT_CONFIG_FILE: Final[str] = "vehdiag.toml"
ENV_PREFIX: Final[str] = "VEHDIAG_"

# Default runtime paths (relative to the config file unless absolute).
DEFAULT_RECORDS_DIR: Final[str] = "records"
DEFAULT_LOG_DIR: Final[str] = "logs"

LOGGER_NAME: Final[str] = "vehicle_diagnostics"
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
RECORD_FORMATS: Final[tuple[str, ...]] = ("xml", "json", "yaml")

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_LOG_DIR",
    "DEFAULT_RECORDS_DIR",
    "ENV_PREFIX",
    "LOGGER_NAME",
    "LOG_LEVELS",
    "RECORD_FORMATS",
]
