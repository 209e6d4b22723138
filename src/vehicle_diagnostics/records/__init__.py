"""Vehicle record resolution and deserialization (XML, JSON, YAML)."""

from vehicle_diagnostics.records.loader import (
    RECORD_SUFFIXES,
    RecordError,
    RecordNotFoundError,
    RecordParseError,
    load_record,
    load_vehicle,
    resolve_record,
)

__all__ = [
    "RECORD_SUFFIXES",
    "RecordError",
    "RecordNotFoundError",
    "RecordParseError",
    "load_record",
    "load_vehicle",
    "resolve_record",
]
