"""Shortage accounting and the staged diagnostic engine."""

from vehicle_diagnostics.diagnostics.engine import (
    SUCCESS_MESSAGE,
    DiagnosticEngine,
    DiagnosticReport,
    DiagnosticStage,
    Finding,
    FindingKind,
    FindingSink,
    diagnose,
)
from vehicle_diagnostics.diagnostics.shortage import compute_shortage

__all__ = [
    "SUCCESS_MESSAGE",
    "DiagnosticEngine",
    "DiagnosticReport",
    "DiagnosticStage",
    "Finding",
    "FindingKind",
    "FindingSink",
    "compute_shortage",
    "diagnose",
]
