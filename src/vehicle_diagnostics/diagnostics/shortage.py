"""Per-type part shortage against the requirement catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vehicle_diagnostics.domain.catalog import REQUIRED_PARTS

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from vehicle_diagnostics.domain.models import Part, PartType


def compute_shortage(
    parts: Iterable[Part] | None,
    catalog: Mapping[PartType, int] = REQUIRED_PARTS,
) -> dict[PartType, int]:
    """Return the deficit per part type.

    Starts from a copy of ``catalog`` and decrements once per carried part of a
    tracked type. A type is dropped as soon as it is satisfied, so the result
    only ever holds positive counts. Untracked types are ignored. Keys keep
    catalog order.
    """

    remaining = {part_type: count for part_type, count in catalog.items() if count > 0}
    for part in parts or ():
        count = remaining.get(part.type)
        if count is None:
            continue
        if count <= 1:
            del remaining[part.type]
        else:
            remaining[part.type] = count - 1
    return remaining


__all__ = ["compute_shortage"]
