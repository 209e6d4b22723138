"""
vehicle-diagnostics — unit tests for the staged diagnostic engine

Purpose
- Validate stage ordering, per-stage batching and the exact finding lines.

What this test file should cover
- Identity, presence and condition scenarios, including the clean run.
- Aborting after the first stage with findings.
- Idempotency across repeated runs on the same record.
- Contract violations in the reporting primitives.
- Stage transition and summary log events.
"""

from __future__ import annotations

from types import MappingProxyType

import pytest
import structlog
from structlog.testing import capture_logs

from vehicle_diagnostics.diagnostics import (
    SUCCESS_MESSAGE,
    DiagnosticEngine,
    DiagnosticStage,
    FindingKind,
    diagnose,
)
from vehicle_diagnostics.diagnostics.engine import _RunState
from vehicle_diagnostics.domain import ConditionType, Part, PartType, Vehicle


def _complete_parts(*, tires: int = 4) -> list[Part]:
    parts = [
        Part(PartType.ENGINE, ConditionType.GOOD),
        Part(PartType.ELECTRICAL, ConditionType.GOOD),
        Part(PartType.FUEL_FILTER, ConditionType.GOOD),
        Part(PartType.OIL_FILTER, ConditionType.GOOD),
    ]
    parts.extend(Part(PartType.TIRE, ConditionType.GOOD) for _ in range(tires))
    return parts


def _vehicle(**overrides: object) -> Vehicle:
    fields: dict[str, object] = {
        "year": "2012",
        "make": "Chevrolet",
        "model": "Malibu",
        "parts": _complete_parts(),
    }
    fields.update(overrides)
    return Vehicle(**fields)  # type: ignore[arg-type]


def test_complete_vehicle_checks_out_good() -> None:
    report = diagnose(_vehicle())

    assert report.passed
    assert report.final_stage is DiagnosticStage.DONE
    assert report.aborted_stage is None
    assert report.lines == (SUCCESS_MESSAGE,)


def test_missing_make_reports_identity_only() -> None:
    report = diagnose(_vehicle(make=None, parts=()))

    assert not report.passed
    assert report.aborted_stage is DiagnosticStage.CHECKING_IDENTITY
    assert report.lines == ("Missing Vehicle Information Detected: Make",)
    assert report.findings[0].fields == ("Make",)
    assert report.findings_of(FindingKind.MISSING_PART) == ()


def test_all_identity_fields_missing_are_batched_in_order() -> None:
    report = diagnose(Vehicle())

    assert report.lines == ("Missing Vehicle Information Detected: Year, Make, Model",)


def test_three_tires_reports_one_missing_tire_and_skips_conditions() -> None:
    parts = _complete_parts(tires=3)
    parts[0] = Part(PartType.ENGINE, ConditionType.FLAT)

    report = diagnose(_vehicle(parts=parts))

    assert report.aborted_stage is DiagnosticStage.CHECKING_PART_PRESENCE
    assert report.lines == ("Missing Part(s) Detected: TIRE - Count: 1",)
    assert report.findings[0].part_type is PartType.TIRE
    assert report.findings[0].count == 1


def test_no_parts_reports_every_shortage_in_catalog_order() -> None:
    report = diagnose(_vehicle(parts=()))

    assert report.lines == (
        "Missing Part(s) Detected: ELECTRICAL - Count: 1",
        "Missing Part(s) Detected: ENGINE - Count: 1",
        "Missing Part(s) Detected: FUEL_FILTER - Count: 1",
        "Missing Part(s) Detected: OIL_FILTER - Count: 1",
        "Missing Part(s) Detected: TIRE - Count: 4",
    )


def test_damaged_parts_are_reported_once_each_without_success() -> None:
    parts = _complete_parts()
    parts[0] = Part(PartType.ENGINE, ConditionType.FLAT)
    parts[5] = Part(PartType.TIRE, None)

    report = diagnose(_vehicle(parts=parts))

    assert report.aborted_stage is DiagnosticStage.CHECKING_PART_CONDITION
    assert report.lines == (
        "Damaged Part Detected: ENGINE - Condition: FLAT",
        "Damaged Part Detected: TIRE - Condition: UNKNOWN",
    )
    assert report.findings_of(FindingKind.SUCCESS) == ()


def test_worn_parts_are_working() -> None:
    parts = [Part(part.type, ConditionType.WORN) for part in _complete_parts()]

    assert diagnose(_vehicle(parts=parts)).passed


def test_untracked_part_types_do_not_change_the_outcome() -> None:
    catalog = MappingProxyType({PartType.ENGINE: 1, PartType.TIRE: 4})
    parts = [
        Part(PartType.ENGINE, ConditionType.GOOD),
        *(Part(PartType.TIRE, ConditionType.NEW) for _ in range(4)),
        Part(PartType.FUEL_FILTER, ConditionType.GOOD),
    ]

    report = diagnose(_vehicle(parts=parts), catalog=catalog)

    assert report.lines == (SUCCESS_MESSAGE,)


def test_repeated_runs_are_identical() -> None:
    engine = DiagnosticEngine()
    vehicle = _vehicle(model=None)

    first = engine.run(vehicle)
    second = engine.run(vehicle)

    assert first == second
    assert first.lines == ("Missing Vehicle Information Detected: Model",)


def test_sink_receives_each_line_as_emitted() -> None:
    received: list[str] = []
    parts = _complete_parts()
    parts[1] = Part(PartType.ELECTRICAL, ConditionType.NO_POWER)
    parts[2] = Part(PartType.FUEL_FILTER, ConditionType.CLOGGED)

    report = DiagnosticEngine(sink=received.append).run(_vehicle(parts=parts))

    assert received == list(report.lines)
    assert received == [
        "Damaged Part Detected: ELECTRICAL - Condition: NO_POWER",
        "Damaged Part Detected: FUEL_FILTER - Condition: CLOGGED",
    ]


def test_report_to_dict_is_json_ready() -> None:
    report = diagnose(_vehicle(parts=_complete_parts(tires=2)))

    payload = report.to_dict()

    assert payload["passed"] is False
    assert payload["final_stage"] == "aborted_early"
    assert payload["aborted_stage"] == "checking_part_presence"
    assert payload["findings"] == [
        {
            "kind": "missing_part",
            "message": "Missing Part(s) Detected: TIRE - Count: 2",
            "part_type": "TIRE",
            "count": 2,
        }
    ]


def test_missing_part_primitive_rejects_contract_violations() -> None:
    engine = DiagnosticEngine()
    state = _RunState()

    with pytest.raises(ValueError, match="part_type"):
        engine._report_missing_part(state, None, 1)
    with pytest.raises(ValueError, match="positive integer"):
        engine._report_missing_part(state, PartType.TIRE, 0)
    with pytest.raises(ValueError, match="positive integer"):
        engine._report_missing_part(state, PartType.TIRE, -2)
    with pytest.raises(ValueError, match="positive integer"):
        engine._report_missing_part(state, PartType.TIRE, None)
    assert state.findings == []


def test_damaged_part_primitive_rejects_contract_violations() -> None:
    engine = DiagnosticEngine()
    state = _RunState()

    with pytest.raises(ValueError, match="part_type"):
        engine._report_damaged_part(state, None, "FLAT")
    with pytest.raises(ValueError, match="condition"):
        engine._report_damaged_part(state, PartType.ENGINE, None)
    with pytest.raises(ValueError, match="must not be empty"):
        engine._report_missing_identity(state, [])
    assert state.findings == []


def test_engine_logs_transitions_and_summary() -> None:
    with capture_logs() as events:
        diagnose(_vehicle(parts=_complete_parts(tires=3)))

    transitions = [item for item in events if item["event"] == "diagnostics_stage_transition"]
    assert [(item["from_stage"], item["to_stage"]) for item in transitions] == [
        ("checking_identity", "checking_part_presence"),
        ("checking_part_presence", "aborted_early"),
    ]

    summaries = [item for item in events if item["event"] == "diagnostics_run_complete"]
    assert len(summaries) == 1
    assert summaries[0]["log_level"] == "info"
    assert summaries[0]["passed"] is False
    assert summaries[0]["aborted_stage"] == "checking_part_presence"


def test_default_logger_never_writes_to_stdout(capsys: pytest.CaptureFixture[str]) -> None:
    structlog.reset_defaults()
    try:
        report = diagnose(_vehicle(parts=_complete_parts()))
    finally:
        structlog.reset_defaults()

    assert report.passed
    assert capsys.readouterr().out == ""
