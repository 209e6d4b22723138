"""
vehicle-diagnostics — staged diagnostic engine.

Purpose
- Run the three ordered validation stages over one vehicle record and emit findings.

Stages
- identity: every absent field among year, make, model is reported in one finding.
- part presence: one finding per part type short of the requirement catalog.
- part condition: one finding per part not in working condition.

A stage always reports all of its defects before the run stops; the run stops
after the first stage that found anything. A clean run ends with one success
finding.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Final

from vehicle_diagnostics.diagnostics.shortage import compute_shortage
from vehicle_diagnostics.domain.catalog import REQUIRED_PARTS
from vehicle_diagnostics.domain.models import JSONValue, PartType, Vehicle
from vehicle_diagnostics.observability.logging import get_logger

FindingSink = Callable[[str], None]

SUCCESS_MESSAGE: Final[str] = "Vehicle checks out good!"


class DiagnosticStage(StrEnum):
    CHECKING_IDENTITY = "checking_identity"
    CHECKING_PART_PRESENCE = "checking_part_presence"
    CHECKING_PART_CONDITION = "checking_part_condition"
    DONE = "done"
    ABORTED_EARLY = "aborted_early"


class FindingKind(StrEnum):
    MISSING_IDENTITY = "missing_identity"
    MISSING_PART = "missing_part"
    DAMAGED_PART = "damaged_part"
    SUCCESS = "success"


@dataclass(frozen=True, slots=True)
class Finding:
    """One reported diagnostic line plus the structured values it was built from."""

    kind: FindingKind
    message: str
    fields: tuple[str, ...] = ()
    part_type: PartType | None = None
    count: int | None = None
    condition: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {"kind": self.kind.value, "message": self.message}
        if self.fields:
            payload["fields"] = list(self.fields)
        if self.part_type is not None:
            payload["part_type"] = self.part_type.value
        if self.count is not None:
            payload["count"] = self.count
        if self.condition is not None:
            payload["condition"] = self.condition
        return payload


@dataclass(frozen=True, slots=True)
class DiagnosticReport:
    vehicle: Vehicle
    findings: tuple[Finding, ...]
    final_stage: DiagnosticStage
    aborted_stage: DiagnosticStage | None = None

    @property
    def passed(self) -> bool:
        return self.final_stage is DiagnosticStage.DONE

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(finding.message for finding in self.findings)

    def findings_of(self, kind: FindingKind) -> tuple[Finding, ...]:
        return tuple(finding for finding in self.findings if finding.kind is kind)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "vehicle": self.vehicle.to_dict(),
            "passed": self.passed,
            "final_stage": self.final_stage.value,
            "aborted_stage": None if self.aborted_stage is None else self.aborted_stage.value,
            "findings": [finding.to_dict() for finding in self.findings],
        }


@dataclass(slots=True)
class _RunState:
    findings: list[Finding] = field(default_factory=list)
    stage: DiagnosticStage = DiagnosticStage.CHECKING_IDENTITY


class DiagnosticEngine:
    """Staged, read-only diagnostics for a single vehicle record per call."""

    def __init__(
        self,
        catalog: Mapping[PartType, int] = REQUIRED_PARTS,
        *,
        sink: FindingSink | None = None,
        logger: Any | None = None,
    ) -> None:
        self._catalog = catalog
        self._sink = sink
        self._logger = logger if logger is not None else get_logger(__name__)

    def run(self, vehicle: Vehicle) -> DiagnosticReport:
        state = _RunState()

        if not self._check_identity(vehicle, state):
            return self._abort(vehicle, state)

        self._advance(state, DiagnosticStage.CHECKING_PART_PRESENCE)
        if not self._check_part_presence(vehicle, state):
            return self._abort(vehicle, state)

        self._advance(state, DiagnosticStage.CHECKING_PART_CONDITION)
        if not self._check_part_condition(vehicle, state):
            return self._abort(vehicle, state)

        self._emit(state, Finding(kind=FindingKind.SUCCESS, message=SUCCESS_MESSAGE))
        self._advance(state, DiagnosticStage.DONE)
        report = DiagnosticReport(
            vehicle=vehicle,
            findings=tuple(state.findings),
            final_stage=DiagnosticStage.DONE,
        )
        self._log_summary(report)
        return report

    # ------------------------------------------------------------------
    # Stages. Each returns True when the stage found nothing to report.
    # ------------------------------------------------------------------

    def _check_identity(self, vehicle: Vehicle, state: _RunState) -> bool:
        missing = vehicle.missing_identity_fields()
        if not missing:
            return True
        self._report_missing_identity(state, missing)
        return False

    def _check_part_presence(self, vehicle: Vehicle, state: _RunState) -> bool:
        shortage = compute_shortage(vehicle.parts, self._catalog)
        for part_type, count in shortage.items():
            self._report_missing_part(state, part_type, count)
        return not shortage

    def _check_part_condition(self, vehicle: Vehicle, state: _RunState) -> bool:
        found_damaged = False
        for part in vehicle.parts:
            if part.is_in_working_condition():
                continue
            found_damaged = True
            self._report_damaged_part(state, part.type, part.condition_label)
        return not found_damaged

    # ------------------------------------------------------------------
    # Reporting primitives
    # ------------------------------------------------------------------

    def _report_missing_identity(self, state: _RunState, missing: Sequence[str]) -> None:
        if not missing:
            raise ValueError("missing identity fields must not be empty")
        labels = tuple(missing)
        self._emit(
            state,
            Finding(
                kind=FindingKind.MISSING_IDENTITY,
                message=f"Missing Vehicle Information Detected: {', '.join(labels)}",
                fields=labels,
            ),
        )

    def _report_missing_part(
        self, state: _RunState, part_type: PartType | None, count: int | None
    ) -> None:
        if part_type is None:
            raise ValueError("part_type must not be None")
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise ValueError(f"count must be a positive integer, got {count!r}")
        self._emit(
            state,
            Finding(
                kind=FindingKind.MISSING_PART,
                message=f"Missing Part(s) Detected: {part_type.value} - Count: {count}",
                part_type=part_type,
                count=count,
            ),
        )

    def _report_damaged_part(
        self, state: _RunState, part_type: PartType | None, condition: str | None
    ) -> None:
        if part_type is None:
            raise ValueError("part_type must not be None")
        if condition is None:
            raise ValueError("condition must not be None")
        self._emit(
            state,
            Finding(
                kind=FindingKind.DAMAGED_PART,
                message=f"Damaged Part Detected: {part_type.value} - Condition: {condition}",
                part_type=part_type,
                condition=condition,
            ),
        )

    def _emit(self, state: _RunState, finding: Finding) -> None:
        state.findings.append(finding)
        if self._sink is not None:
            self._sink(finding.message)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _advance(self, state: _RunState, stage: DiagnosticStage) -> None:
        self._logger.debug(
            "diagnostics_stage_transition",
            from_stage=state.stage.value,
            to_stage=stage.value,
            findings=len(state.findings),
        )
        state.stage = stage

    def _abort(self, vehicle: Vehicle, state: _RunState) -> DiagnosticReport:
        aborted_stage = state.stage
        self._advance(state, DiagnosticStage.ABORTED_EARLY)
        report = DiagnosticReport(
            vehicle=vehicle,
            findings=tuple(state.findings),
            final_stage=DiagnosticStage.ABORTED_EARLY,
            aborted_stage=aborted_stage,
        )
        self._log_summary(report)
        return report

    def _log_summary(self, report: DiagnosticReport) -> None:
        self._logger.info(
            "diagnostics_run_complete",
            vehicle=report.vehicle.display_name,
            passed=report.passed,
            final_stage=report.final_stage.value,
            aborted_stage=None if report.aborted_stage is None else report.aborted_stage.value,
            findings=[finding.kind.value for finding in report.findings],
        )


def diagnose(
    vehicle: Vehicle,
    *,
    catalog: Mapping[PartType, int] = REQUIRED_PARTS,
    sink: FindingSink | None = None,
) -> DiagnosticReport:
    """Convenience wrapper: run one diagnostic with a fresh engine."""

    return DiagnosticEngine(catalog, sink=sink).run(vehicle)


__all__ = [
    "SUCCESS_MESSAGE",
    "DiagnosticEngine",
    "DiagnosticReport",
    "DiagnosticStage",
    "Finding",
    "FindingKind",
    "FindingSink",
    "diagnose",
]
