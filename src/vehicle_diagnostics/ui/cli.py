"""Command-line interface router for vehicle-diagnostics."""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from vehicle_diagnostics.config import (
    ConfigLoadError,
    ConfigValidationError,
    load_config,
)
from vehicle_diagnostics.constants import LOG_LEVELS
from vehicle_diagnostics.diagnostics import DiagnosticEngine
from vehicle_diagnostics.domain import REQUIRED_PARTS, catalog_payload
from vehicle_diagnostics.main import ExitCode
from vehicle_diagnostics.observability import correlation_scope, setup_logging, shutdown_logging
from vehicle_diagnostics.records import RecordError, load_record
from vehicle_diagnostics.ui.render import CLIRenderer, create_renderer


class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    def __init__(self, message: str, exit_code: int = int(ExitCode.INPUT_ERROR)) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="vehdiag",
        description=(
            "vehicle-diagnostics: staged diagnostics for vehicle records.\n\n"
            "Common workflows:\n"
            "  vehdiag diagnose car1 car2     Diagnose records from the search dirs\n"
            "  vehdiag diagnose ./car.yaml    Diagnose a record file directly\n"
            "  vehdiag catalog                Show required part counts\n"
            "  vehdiag config                 Show effective configuration\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to vehdiag TOML config (default: ./vehdiag.toml if present).",
    )
    common.add_argument(
        "--profile",
        default=None,
        help="Optional config profile overlay name.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output and INFO-level logs.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # diagnose ------------------------------------------------------------
    diagnose_parser = subparsers.add_parser(
        "diagnose",
        parents=[common],
        help="Diagnose one or more vehicle records",
        description=(
            "Resolve each identifier to a record, then report missing vehicle information,\n"
            "missing parts and damaged parts, stopping at the first stage with findings.\n\n"
            "Examples:\n"
            "  vehdiag diagnose car1\n"
            "  vehdiag diagnose car1 car2 --records-dir samples/records\n"
            "  vehdiag diagnose ./records/car3.json --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    diagnose_parser.add_argument(
        "identifiers",
        nargs="*",
        help="Record identifiers (file paths or names resolved in the search dirs)",
    )
    diagnose_parser.add_argument(
        "--records-dir",
        dest="records_dirs",
        action="append",
        default=None,
        help="Directory to search for records (repeatable; overrides records.search_dirs).",
    )
    diagnose_parser.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="Exit with status 1 when any vehicle has findings.",
    )
    diagnose_parser.set_defaults(handler=_cmd_diagnose)

    # catalog -------------------------------------------------------------
    catalog_parser = subparsers.add_parser(
        "catalog",
        parents=[common],
        help="Show the required part counts",
    )
    catalog_parser.set_defaults(handler=_cmd_catalog)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.INPUT_ERROR)

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_diagnose(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    records_cfg = config["records"]
    output_cfg = config["output"]
    search_dirs = [Path(item) for item in records_cfg["search_dirs"]]
    preferred_suffix = f".{records_cfg['default_format']}"
    as_json = bool(output_cfg["json"])

    observability = dict(config["observability"])
    info_index = LOG_LEVELS.index("INFO")
    if _flag(args, "verbose") and LOG_LEVELS.index(observability["log_level"]) > info_index:
        # -v lowers the threshold to INFO but never raises a DEBUG profile.
        observability["log_level"] = "INFO"
    setup_logging(observability, run_id=f"diag-{uuid.uuid4().hex[:12]}")
    renderer = create_renderer(no_color=not output_cfg["color"], verbose=_flag(args, "verbose"))
    engine = DiagnosticEngine()

    any_findings = False
    try:
        for identifier in args.identifiers:
            with correlation_scope(vehicle_id=identifier):
                try:
                    record_path, vehicle = load_record(
                        identifier, search_dirs, preferred_suffix=preferred_suffix
                    )
                except RecordError as exc:
                    raise CLIError(str(exc), exit_code=int(ExitCode.INPUT_ERROR)) from exc

                with correlation_scope(record_path=str(record_path)):
                    report = engine.run(vehicle)
            any_findings = any_findings or not report.passed

            if as_json:
                _emit_json(
                    {
                        "command": "diagnose",
                        "identifier": identifier,
                        "record": record_path.as_posix(),
                        "report": report.to_dict(),
                    }
                )
                continue

            renderer.heading(f"Diagnosing {record_path.name}")
            if renderer.verbose:
                renderer.kv("Vehicle", vehicle.display_name)
                renderer.kv("Parts", len(vehicle.parts))
            renderer.findings(report.findings)
            renderer.blank()
    finally:
        shutdown_logging()

    if any_findings and bool(output_cfg["strict"]):
        return int(ExitCode.DIAGNOSTICS_FAILED)
    return int(ExitCode.SUCCESS)


def _cmd_catalog(args: argparse.Namespace) -> int:
    payload = catalog_payload(REQUIRED_PARTS)
    if _flag(args, "json"):
        _emit_json({"command": "catalog", "required_parts": payload})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.table(
        ("Part type", "Required"),
        [(part_type, str(count)) for part_type, count in payload.items()],
    )
    return int(ExitCode.SUCCESS)


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    profile = _optional_str(getattr(args, "profile", None))

    if _flag(args, "json"):
        _emit_json({"command": "config", "active_profile": profile, "config": config})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.kv("Active profile", profile or "(default)")
    renderer.text(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))
    profile = _optional_str(getattr(args, "profile", None))

    try:
        return load_config(config_path, profile=profile, cli_overrides=_cli_overrides(args))
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=int(ExitCode.INPUT_ERROR)) from exc


def _cli_overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    records_dirs = getattr(args, "records_dirs", None)
    if records_dirs:
        # Resolved against the working directory, not the config file.
        overrides["records.search_dirs"] = [
            Path(item).expanduser().resolve().as_posix() for item in records_dirs
        ]
    if _flag(args, "json"):
        overrides["output.json"] = True
    if _flag(args, "strict"):
        overrides["output.strict"] = True
    if _flag(args, "no_color"):
        overrides["output.color"] = False
    return overrides


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
