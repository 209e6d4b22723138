"""
vehicle-diagnostics config package public API.

Supports loading from ``vehdiag.toml`` + ``VEHDIAG_`` env overrides and fails
fast with structured validation/load errors.
"""

from vehicle_diagnostics.config.loader import (
    ConfigLoadError,
    load_config,
    normalize_paths,
)
from vehicle_diagnostics.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    DiagnosticsConfig,
    ProfileOverlay,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)
from vehicle_diagnostics.constants import DEFAULT_CONFIG_FILE, ENV_PREFIX

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PATH_FIELDS",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DiagnosticsConfig",
    "ProfileOverlay",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "load_config",
    "merge_config",
    "migration_guidance",
    "normalize_paths",
    "validate_config",
]
