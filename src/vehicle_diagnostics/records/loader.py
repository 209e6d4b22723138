"""
vehicle-diagnostics — vehicle record resolution and deserialization.

Purpose
- Resolve a record identifier to a file and materialize it into a ``Vehicle``.

Formats
- XML: ``<car>``/``<vehicle>`` root with ``year``, ``make``, ``model`` child elements and
  ``<parts><part type=".." condition=".."/></parts>``. Part fields may also be child elements.
- JSON and YAML: ``{"year", "make", "model", "parts": [{"type", "condition"}]}``.

Failures surface as ``RecordNotFoundError`` or ``RecordParseError`` before any
diagnostic runs; a partially-populated record is never returned.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Final

import yaml

from vehicle_diagnostics.domain.models import Vehicle
from vehicle_diagnostics.observability.logging import get_logger

RECORD_SUFFIXES: Final[tuple[str, ...]] = (".xml", ".json", ".yaml", ".yml")
XML_ROOT_TAGS: Final[frozenset[str]] = frozenset({"car", "vehicle"})
_IDENTITY_TAGS: Final[tuple[str, ...]] = ("year", "make", "model")
_PART_FIELDS: Final[tuple[str, ...]] = ("type", "condition")

_logger = get_logger(__name__)


class RecordError(ValueError):
    """Base failure for record resolution and loading."""

    def __init__(self, *, path: Path | str, message: str, hint: str = "") -> None:
        self.path = Path(path)
        self.message = message
        self.hint = hint
        rendered = f"{self.path}: {message}"
        if hint:
            rendered = f"{rendered} (hint: {hint})"
        super().__init__(rendered)


class RecordNotFoundError(RecordError):
    """Raised when an identifier cannot be resolved to a readable record file."""


class RecordParseError(RecordError):
    """Raised when a record file cannot be parsed into a vehicle."""


def resolve_record(
    identifier: str,
    search_dirs: Sequence[Path | str] = (),
    *,
    preferred_suffix: str = ".xml",
) -> Path:
    """Resolve ``identifier`` to a record path.

    An identifier naming an existing file is used as-is. Otherwise every search
    directory is probed for ``<identifier>`` itself when it already ends in a
    record suffix, then for ``<identifier><suffix>``, trying ``preferred_suffix``
    first and then the remaining known suffixes.
    """

    name = identifier.strip()
    if not name:
        raise RecordNotFoundError(path=identifier, message="record identifier must not be empty")

    direct = Path(name).expanduser()
    if direct.is_file():
        return direct.resolve()

    probed: list[Path] = []
    directories = [Path(item).expanduser() for item in search_dirs] or [Path.cwd()]
    for directory in directories:
        for candidate in _candidates(directory, name, preferred_suffix):
            probed.append(candidate)
            if candidate.is_file():
                resolved = candidate.resolve()
                _logger.debug("record_resolved", identifier=name, path=str(resolved))
                return resolved

    raise RecordNotFoundError(
        path=name,
        message="unable to locate vehicle record",
        hint="looked for " + ", ".join(str(item) for item in probed),
    )


def load_vehicle(path: Path | str) -> Vehicle:
    """Parse the record at ``path`` into a ``Vehicle`` based on its suffix."""

    record_path = Path(path)
    parser = _PARSERS.get(record_path.suffix.lower())
    if parser is None:
        raise RecordParseError(
            path=record_path,
            message=f"unsupported record format {record_path.suffix or '(none)'!r}",
            hint="use one of " + ", ".join(RECORD_SUFFIXES),
        )

    try:
        raw_text = record_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise RecordNotFoundError(
            path=record_path, message="record file does not exist", hint=str(exc)
        ) from exc
    except OSError as exc:
        raise RecordParseError(
            path=record_path, message="failed to read record file", hint=str(exc)
        ) from exc

    payload = parser(raw_text, record_path)
    try:
        vehicle = Vehicle.from_dict(payload)
    except ValueError as exc:
        raise RecordParseError(
            path=record_path, message="record does not describe a vehicle", hint=str(exc)
        ) from exc

    _logger.debug("record_loaded", path=str(record_path), parts=len(vehicle.parts))
    return vehicle


def load_record(
    identifier: str,
    search_dirs: Sequence[Path | str] = (),
    *,
    preferred_suffix: str = ".xml",
) -> tuple[Path, Vehicle]:
    """Resolve and load one record, returning the resolved path alongside the vehicle."""

    path = resolve_record(identifier, search_dirs, preferred_suffix=preferred_suffix)
    return path, load_vehicle(path)


def _candidates(directory: Path, name: str, preferred_suffix: str) -> Iterator[Path]:
    # A name that already carries a record suffix is tried verbatim first.
    if Path(name).suffix.lower() in RECORD_SUFFIXES:
        yield directory / name
    for suffix in _probe_order(preferred_suffix):
        yield directory / f"{name}{suffix}"


def _probe_order(preferred_suffix: str) -> tuple[str, ...]:
    preferred = preferred_suffix if preferred_suffix.startswith(".") else f".{preferred_suffix}"
    preferred = preferred.lower()
    if preferred not in RECORD_SUFFIXES:
        return RECORD_SUFFIXES
    return (preferred, *(suffix for suffix in RECORD_SUFFIXES if suffix != preferred))


# ---------------------------------------------------------------------------
# Format parsers: each returns a plain mapping for ``Vehicle.from_dict``.
# ---------------------------------------------------------------------------


def _parse_json(raw_text: str, path: Path) -> Mapping[str, object]:
    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise RecordParseError(path=path, message="invalid JSON", hint=str(exc)) from exc
    return _expect_mapping(parsed, path)


def _parse_yaml(raw_text: str, path: Path) -> Mapping[str, object]:
    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        raise RecordParseError(path=path, message="invalid YAML", hint=str(exc)) from exc
    return _expect_mapping(parsed, path)


def _parse_xml(raw_text: str, path: Path) -> Mapping[str, object]:
    try:
        root = ET.fromstring(raw_text)
    except ET.ParseError as exc:
        raise RecordParseError(path=path, message="invalid XML", hint=str(exc)) from exc

    if _local_name(root.tag) not in XML_ROOT_TAGS:
        raise RecordParseError(
            path=path,
            message=f"unexpected root element <{_local_name(root.tag)}>",
            hint="expected <car> or <vehicle>",
        )

    payload: dict[str, object] = {}
    part_elements: list[ET.Element] = []
    saw_parts = False
    for child in root:
        tag = _local_name(child.tag)
        if tag in _IDENTITY_TAGS:
            if tag in payload:
                raise RecordParseError(path=path, message=f"duplicate <{tag}> element")
            # An empty element is present with empty text, unlike a missing element.
            payload[tag] = (child.text or "").strip()
        elif tag == "parts":
            saw_parts = True
            nested = [item for item in child if _local_name(item.tag) == "part"]
            if nested:
                part_elements.extend(nested)
            elif child.attrib or len(child):
                # Repeated <parts> entries that carry the part fields directly.
                part_elements.append(child)
        elif tag == "part":
            saw_parts = True
            part_elements.append(child)
        else:
            raise RecordParseError(path=path, message=f"unexpected element <{tag}>")

    if saw_parts:
        payload["parts"] = [_xml_part(element, path) for element in part_elements]
    return payload


def _xml_part(element: ET.Element, path: Path) -> dict[str, object]:
    part: dict[str, object] = {}
    for field_name in _PART_FIELDS:
        value = (element.attrib.get(field_name) or "").strip()
        if value:
            part[field_name] = value
    for child in element:
        tag = _local_name(child.tag)
        if tag not in _PART_FIELDS:
            raise RecordParseError(path=path, message=f"unexpected part element <{tag}>")
        text = (child.text or "").strip()
        # An empty <condition/> or condition="" is treated as an absent condition.
        if text:
            part[tag] = text
    return part


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


def _expect_mapping(value: object, path: Path) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        raise RecordParseError(
            path=path,
            message=f"record root must be an object, got {type(value).__name__}",
        )
    return value


_PARSERS: Final[dict[str, Callable[[str, Path], Mapping[str, object]]]] = {
    ".xml": _parse_xml,
    ".json": _parse_json,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
}


__all__ = [
    "RECORD_SUFFIXES",
    "RecordError",
    "RecordNotFoundError",
    "RecordParseError",
    "load_record",
    "load_vehicle",
    "resolve_record",
]
