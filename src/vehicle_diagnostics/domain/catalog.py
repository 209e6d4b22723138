"""Required part counts for a complete vehicle."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from vehicle_diagnostics.domain.models import PartType

REQUIRED_PARTS: Final[Mapping[PartType, int]] = MappingProxyType(
    {
        PartType.ELECTRICAL: 1,
        PartType.ENGINE: 1,
        PartType.FUEL_FILTER: 1,
        PartType.OIL_FILTER: 1,
        PartType.TIRE: 4,
    }
)


def catalog_payload(catalog: Mapping[PartType, int] = REQUIRED_PARTS) -> dict[str, int]:
    return {part_type.value: count for part_type, count in catalog.items()}


__all__ = ["REQUIRED_PARTS", "catalog_payload"]
