"""Dataclass domain models for vehicle records with strict validation and canonical JSON."""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Final, NoReturn, TypeVar

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TModel = TypeVar("TModel", bound="CanonicalModel")
TEnum = TypeVar("TEnum", bound=Enum)

_MAX_TEXT = 256
_MAX_PARTS = 512

UNKNOWN_CONDITION_LABEL: Final[str] = "UNKNOWN"


class PartType(StrEnum):
    ENGINE = "ENGINE"
    ELECTRICAL = "ELECTRICAL"
    FUEL_FILTER = "FUEL_FILTER"
    OIL_FILTER = "OIL_FILTER"
    TIRE = "TIRE"


class ConditionType(StrEnum):
    """Physical condition of a part. Only NEW, GOOD and WORN count as working."""

    NEW = "NEW"
    GOOD = "GOOD"
    WORN = "WORN"
    USED = "USED"
    DAMAGED = "DAMAGED"
    BROKEN = "BROKEN"
    FLAT = "FLAT"
    CLOGGED = "CLOGGED"
    SPUN = "SPUN"
    NO_POWER = "NO_POWER"

    @property
    def is_working(self) -> bool:
        return self in WORKING_CONDITIONS


WORKING_CONDITIONS: Final[frozenset[ConditionType]] = frozenset(
    {ConditionType.NEW, ConditionType.GOOD, ConditionType.WORN}
)

# Identity fields in reporting order, paired with their display labels.
IDENTITY_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("year", "Year"),
    ("make", "Make"),
    ("model", "Model"),
)


class CanonicalModel:
    """Mixin for canonical dict/json serialization."""

    def to_dict(self) -> dict[str, JSONValue]:
        raise NotImplementedError

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())

    @classmethod
    def from_json(cls: type[TModel], raw: str) -> TModel:
        if not isinstance(raw, str):
            _fail(cls.__name__, f"expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            _fail(cls.__name__, f"invalid JSON: {exc}")
        if not isinstance(parsed, dict):
            _fail(cls.__name__, "JSON root must be an object")
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls: type[TModel], data: Mapping[str, object]) -> TModel:
        _fail(cls.__name__, "from_dict is not implemented for this model type")


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_optional_text(value: object, path: str) -> str | None:
    # Presence is all that matters here; empty text is still present.
    if value is None:
        return None
    if isinstance(value, bool):
        _fail(path, f"expected string, got {type(value).__name__}")
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    text = value.strip()
    if len(text) > _MAX_TEXT:
        _fail(path, f"must be <= {_MAX_TEXT} characters")
    return text


def _as_enum(enum_type: type[TEnum], value: object, path: str) -> TEnum:
    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        _fail(path, f"expected string enum value, got {type(value).__name__}")
    normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return enum_type[normalized]
    except KeyError:
        allowed = ", ".join(item.name for item in enum_type)
        _fail(path, f"invalid value {value!r}; expected one of: {allowed}")


def _as_optional_enum(enum_type: type[TEnum], value: object, path: str) -> TEnum | None:
    # A blank string is an absent value, the same as a missing key.
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _as_enum(enum_type, value, path)


def _as_sequence(value: object, path: str) -> list[object]:
    if isinstance(value, (list, tuple)):
        return list(value)
    _fail(path, f"expected array, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class Part(CanonicalModel):
    type: PartType
    condition: ConditionType | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, PartType):
            _fail("Part.type", f"expected PartType, got {type(self.type).__name__}")
        if self.condition is not None and not isinstance(self.condition, ConditionType):
            _fail(
                "Part.condition",
                f"expected ConditionType or None, got {type(self.condition).__name__}",
            )

    def is_in_working_condition(self) -> bool:
        """Return ``True`` only for NEW, GOOD or WORN; an absent condition is damaged."""

        return self.condition is not None and self.condition.is_working

    @property
    def condition_label(self) -> str:
        if self.condition is None:
            return UNKNOWN_CONDITION_LABEL
        return self.condition.value

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "type": self.type.value,
            "condition": None if self.condition is None else self.condition.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, path: str = "Part") -> Part:
        parsed = _expect_object(data, path, required={"type"}, optional={"condition"})
        return cls(
            type=_as_enum(PartType, parsed["type"], f"{path}.type"),
            condition=_as_optional_enum(
                ConditionType, parsed.get("condition"), f"{path}.condition"
            ),
        )


@dataclass(frozen=True, slots=True)
class Vehicle(CanonicalModel):
    """A vehicle record as handed to the diagnostic engine. Read-only once built."""

    year: str | None = None
    make: str | None = None
    model: str | None = None
    parts: tuple[Part, ...] = ()

    def __post_init__(self) -> None:
        parts = tuple(self.parts) if self.parts is not None else ()
        for index, part in enumerate(parts):
            if not isinstance(part, Part):
                _fail(f"Vehicle.parts[{index}]", f"expected Part, got {type(part).__name__}")
        object.__setattr__(self, "parts", parts)

    def missing_identity_fields(self) -> tuple[str, ...]:
        return tuple(label for name, label in IDENTITY_FIELDS if getattr(self, name) is None)

    def part_counts(self) -> Counter[PartType]:
        return Counter(part.type for part in self.parts)

    @property
    def display_name(self) -> str:
        known = [value for value in (self.year, self.make, self.model) if value]
        return " ".join(known) if known else "(unidentified vehicle)"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "year": self.year,
            "make": self.make,
            "model": self.model,
            "parts": [part.to_dict() for part in self.parts],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Vehicle:
        parsed = _expect_object(
            data,
            "Vehicle",
            required=set(),
            optional={"year", "make", "model", "parts"},
        )
        raw_parts = parsed.get("parts")
        items = [] if raw_parts is None else _as_sequence(raw_parts, "Vehicle.parts")
        if len(items) > _MAX_PARTS:
            _fail("Vehicle.parts", f"too many items (>{_MAX_PARTS})")
        return cls(
            year=_as_optional_text(parsed.get("year"), "Vehicle.year"),
            make=_as_optional_text(parsed.get("make"), "Vehicle.make"),
            model=_as_optional_text(parsed.get("model"), "Vehicle.model"),
            parts=tuple(_parse_parts(items)),
        )


def _parse_parts(items: Iterable[object]) -> list[Part]:
    parts: list[Part] = []
    for index, item in enumerate(items):
        path = f"Vehicle.parts[{index}]"
        if not isinstance(item, Mapping):
            _fail(path, f"expected object, got {type(item).__name__}")
        parts.append(Part.from_dict(item, path=path))
    return parts


__all__ = [
    "IDENTITY_FIELDS",
    "UNKNOWN_CONDITION_LABEL",
    "WORKING_CONDITIONS",
    "CanonicalModel",
    "ConditionType",
    "JSONScalar",
    "JSONValue",
    "Part",
    "PartType",
    "Vehicle",
]
