"""
vehicle-diagnostics domain layer.

Vehicle records, their parts, the closed part/condition enumerations and the
requirement catalog. Keep this package free of IO side effects.
"""

from vehicle_diagnostics.domain.catalog import REQUIRED_PARTS, catalog_payload
from vehicle_diagnostics.domain.models import (
    IDENTITY_FIELDS,
    UNKNOWN_CONDITION_LABEL,
    WORKING_CONDITIONS,
    ConditionType,
    Part,
    PartType,
    Vehicle,
)

__all__ = [
    "IDENTITY_FIELDS",
    "REQUIRED_PARTS",
    "UNKNOWN_CONDITION_LABEL",
    "WORKING_CONDITIONS",
    "ConditionType",
    "Part",
    "PartType",
    "Vehicle",
    "catalog_payload",
]
