"""
vehicle-diagnostics — configuration schema and validation.

Purpose
- Define the built-in defaults for ``vehdiag.toml`` and validate payloads strictly.

What is covered here
- One rule per known field; unknown fields and missing fields are issues.
- Issues carry dotted paths (``records.search_dirs[1]``) and never stop at the first.
- Profile overlays are validated as partial sections.
- Deterministic deep merge for layering defaults, file, env and CLI values.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from vehicle_diagnostics.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_LOG_DIR,
    DEFAULT_RECORDS_DIR,
    LOG_LEVELS,
    RECORD_FORMATS,
)

# Config paths resolved relative to the config file location.
PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("records", "search_dirs"),
    ("observability", "log_dir"),
)

_PROFILE_NAME = re.compile(r"^[a-z][a-z0-9_-]*$")


class RecordsConfig(TypedDict):
    search_dirs: list[str]
    default_format: Literal["xml", "json", "yaml"]


class OutputConfig(TypedDict):
    color: bool
    json: bool
    strict: bool


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_to_file: bool
    log_dir: str


class ProfileOverlay(TypedDict, total=False):
    records: dict[str, object]
    output: dict[str, object]
    observability: dict[str, object]


class DiagnosticsConfig(TypedDict):
    meta: dict[str, int]
    records: RecordsConfig
    output: OutputConfig
    observability: ObservabilityConfig
    profiles: dict[str, ProfileOverlay]


DEFAULT_CONFIG: Final[DiagnosticsConfig] = {
    "meta": {"schema_version": CONFIG_SCHEMA_VERSION},
    "records": {
        "search_dirs": [DEFAULT_RECORDS_DIR],
        "default_format": "xml",
    },
    "output": {
        "color": True,
        "json": False,
        "strict": False,
    },
    "observability": {
        "log_level": "WARNING",
        "log_to_file": False,
        "log_dir": DEFAULT_LOG_DIR,
    },
    "profiles": {
        "ci": {"output": {"color": False, "strict": True}},
        "verbose": {"observability": {"log_level": "DEBUG"}},
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Normalized config when valid, otherwise every issue found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered or '- unknown validation failure'}")


# A rule returns the normalized value, or None after recording an issue.
_Rule = Callable[[object, str, list[ConfigValidationIssue]], Any]


def _issue(issues: list[ConfigValidationIssue], path: str, message: str) -> None:
    issues.append(ConfigValidationIssue(path=path, message=message))


def _boolean(value: object, path: str, issues: list[ConfigValidationIssue]) -> bool | None:
    if isinstance(value, bool):
        return value
    _issue(issues, path, f"expected boolean, got {type(value).__name__}")
    return None


def _path_text(value: object, path: str, issues: list[ConfigValidationIssue]) -> str | None:
    if not isinstance(value, str):
        _issue(issues, path, f"expected string, got {type(value).__name__}")
        return None
    text = value.strip()
    if not text:
        _issue(issues, path, "must not be empty")
        return None
    if "\x00" in text:
        _issue(issues, path, "must not contain NUL bytes")
        return None
    return text


def _path_list(value: object, path: str, issues: list[ConfigValidationIssue]) -> list[str] | None:
    if isinstance(value, str) or not isinstance(value, Sequence):
        _issue(issues, path, f"expected array of paths, got {type(value).__name__}")
        return None
    before = len(issues)
    items = [_path_text(item, f"{path}[{index}]", issues) for index, item in enumerate(value)]
    if len(issues) != before:
        return None
    return [item for item in items if item is not None]


def _choice(allowed: Sequence[str], *, fold_case: bool = False) -> _Rule:
    def rule(value: object, path: str, issues: list[ConfigValidationIssue]) -> str | None:
        if not isinstance(value, str):
            _issue(issues, path, f"expected string, got {type(value).__name__}")
            return None
        text = value.strip().upper() if fold_case else value.strip()
        if text not in allowed:
            expected = ", ".join(sorted(allowed))
            _issue(issues, path, f"invalid value {text!r}; expected one of: {expected}")
            return None
        return text

    return rule


def _schema_version(value: object, path: str, issues: list[ConfigValidationIssue]) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        _issue(issues, path, f"expected integer, got {type(value).__name__}")
        return None
    if value != CONFIG_SCHEMA_VERSION:
        _issue(issues, path, migration_guidance(value))
        return None
    return value


_SECTION_RULES: Final[dict[str, dict[str, _Rule]]] = {
    "meta": {"schema_version": _schema_version},
    "records": {
        "search_dirs": _path_list,
        "default_format": _choice(RECORD_FORMATS),
    },
    "output": {"color": _boolean, "json": _boolean, "strict": _boolean},
    "observability": {
        "log_level": _choice(LOG_LEVELS, fold_case=True),
        "log_to_file": _boolean,
        "log_dir": _path_text,
    },
}
_OVERLAY_SECTIONS: Final[tuple[str, ...]] = ("records", "output", "observability")


def default_config() -> DiagnosticsConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade vehdiag.toml to the current schema"
        )
    if found_version > CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is newer than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade the vehicle-diagnostics runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; tables merge, other values replace."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key in sorted(overlay):
        value = overlay[key]
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        elif isinstance(value, Mapping):
            merged[key] = merge_config({}, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_profile_overlay(config: Mapping[str, object], profile: str | None) -> dict[str, Any]:
    """Merge the named profile over ``config`` and re-validate the result."""

    selected = (profile or "").strip()
    if not selected:
        return merge_config({}, config)

    profiles = config.get("profiles")
    overlay = profiles.get(selected) if isinstance(profiles, Mapping) else None
    if overlay is None:
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", f"profile {selected!r} is not defined"),)
        )
    if not isinstance(overlay, Mapping):
        raise ConfigValidationError(
            (ConfigValidationIssue(f"profiles.{selected}", "profile overlay must be an object"),)
        )
    return assert_valid_config(merge_config(config, overlay), active_profile=selected)


def validate_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> ConfigValidationResult:
    """Validate a full config payload and collect every issue with its dotted path."""

    issues: list[ConfigValidationIssue] = []
    if not isinstance(config, Mapping):
        _issue(issues, "<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=tuple(issues))

    _unknown_keys(config, {*_SECTION_RULES, "profiles"}, "", issues)
    normalized: dict[str, Any] = {}
    for section, rules in _SECTION_RULES.items():
        if section not in config:
            _issue(issues, section, "missing required field")
            continue
        normalized[section] = _validate_section(
            config[section], section, rules, issues, partial=False
        )

    normalized["profiles"] = _validate_profiles(config.get("profiles", {}), issues)

    selected = (active_profile or "").strip()
    if selected and selected not in normalized["profiles"]:
        _issue(issues, "profiles", f"profile {selected!r} is not defined")

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config, active_profile=active_profile)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_section(
    raw: object,
    path: str,
    rules: Mapping[str, _Rule],
    issues: list[ConfigValidationIssue],
    *,
    partial: bool,
) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        _issue(issues, path, f"expected object, got {type(raw).__name__}")
        return {}
    _unknown_keys(raw, set(rules), path, issues)

    out: dict[str, Any] = {}
    for key, rule in rules.items():
        field_path = f"{path}.{key}"
        if key not in raw:
            if not partial:
                _issue(issues, field_path, "missing required field")
            continue
        value = rule(raw[key], field_path, issues)
        if value is not None:
            out[key] = value
    return out


def _validate_profiles(raw: object, issues: list[ConfigValidationIssue]) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        _issue(issues, "profiles", f"expected object, got {type(raw).__name__}")
        return {}

    profiles: dict[str, Any] = {}
    for name in sorted(raw):
        path = f"profiles.{name}"
        if not _PROFILE_NAME.fullmatch(name):
            _issue(issues, path, "profile name must match ^[a-z][a-z0-9_-]*$")
            continue
        overlay = raw[name]
        if not isinstance(overlay, Mapping):
            _issue(issues, path, f"expected object, got {type(overlay).__name__}")
            continue
        _unknown_keys(overlay, set(_OVERLAY_SECTIONS), path, issues)
        profiles[name] = {
            section: _validate_section(
                overlay[section], f"{path}.{section}", _SECTION_RULES[section], issues, partial=True
            )
            for section in _OVERLAY_SECTIONS
            if section in overlay
        }
    return profiles


def _unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: list[ConfigValidationIssue],
) -> None:
    for key in sorted(str(item) for item in payload):
        if key not in allowed:
            _issue(issues, f"{path}.{key}" if path else key, "unknown field")


__all__ = [
    "DEFAULT_CONFIG",
    "PATH_FIELDS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DiagnosticsConfig",
    "ProfileOverlay",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
