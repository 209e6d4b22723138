"""
vehicle-diagnostics — runtime config loader.

Layers, lowest to highest: built-in defaults, ``vehdiag.toml``, the selected
profile overlay, ``VEHDIAG_<SECTION>_<FIELD>`` environment variables, then CLI
overrides given as dotted keys (``output.strict``). The result is validated
after the file layer and again at the end, and configured paths are resolved
relative to the config file's directory.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from vehicle_diagnostics.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
)
from vehicle_diagnostics.constants import DEFAULT_CONFIG_FILE, ENV_PREFIX

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})
_ENV_SECTIONS: Final[tuple[str, ...]] = ("records", "output", "observability")


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an override cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load the effective config: CLI > env > profile > file > defaults.

    Without ``config_path`` an optional ``vehdiag.toml`` in the working
    directory is used; an explicit path must exist. ``profile`` falls back to
    ``VEHDIAG_PROFILE``. ``None`` values in ``cli_overrides`` are ignored.
    """

    env = os.environ if environ is None else environ
    if config_path is None:
        source = Path.cwd() / DEFAULT_CONFIG_FILE
        file_payload = _read_toml(source) if source.is_file() else {}
    else:
        source = Path(config_path).expanduser()
        if not source.is_file():
            raise ConfigLoadError(f"config file not found: {source}")
        file_payload = _read_toml(source)

    config = assert_valid_config(merge_config(default_config(), file_payload))

    selected = profile if profile is not None else env.get(f"{ENV_PREFIX}PROFILE")
    selected = (selected or "").strip() or None
    config = apply_profile_overlay(config, selected)

    config = merge_config(config, _env_overrides(env))
    config = merge_config(config, _cli_overrides(cli_overrides or {}))
    config = normalize_paths(config, base_dir=source.resolve().parent)
    return assert_valid_config(config, active_profile=selected)


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve every path field against ``base_dir`` (``~`` and ``$VARS`` expanded)."""

    normalized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        table = normalized.get(section)
        if not isinstance(table, dict) or key not in table:
            continue
        value = table[key]
        if isinstance(value, str):
            table[key] = _resolve_path(value, base_dir)
        elif isinstance(value, list):
            table[key] = [
                _resolve_path(item, base_dir) if isinstance(item, str) else item for item in value
            ]
    return normalized


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    # The defaults define which variables exist and how each one is coerced.
    overrides: dict[str, Any] = {}
    for section in _ENV_SECTIONS:
        defaults: Mapping[str, object] = DEFAULT_CONFIG[section]  # type: ignore[literal-required]
        for key, default in defaults.items():
            env_name = f"{ENV_PREFIX}{section}_{key}".upper()
            raw = environ.get(env_name)
            if raw is None:
                continue
            value = _coerce(raw.strip(), default, f"{env_name} -> {section}.{key}")
            overrides.setdefault(section, {})[key] = value
    return overrides


def _coerce(raw: str, default: object, label: str) -> object:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise ConfigLoadError(f"{label} must be a boolean (true/false/1/0/yes/no/on/off)")
    if isinstance(default, list):
        return [item.strip() for item in raw.split(os.pathsep) if item.strip()]
    return raw


def _cli_overrides(overrides: Mapping[str, object]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for dotted in sorted(overrides):
        value = overrides[dotted]
        if value is None:
            continue
        parts = [part for part in dotted.split(".") if part]
        if not parts:
            raise ConfigLoadError(f"invalid CLI override key {dotted!r}")
        cursor = payload
        for part in parts[:-1]:
            cursor = cursor.setdefault(part, {})
        cursor[parts[-1]] = value
    return payload


def _resolve_path(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "load_config",
    "normalize_paths",
]
