"""Output rendering abstraction for the vehdiag CLI.

- Plain, deterministic text when stdout is not a terminal.
- Colored finding lines through ``rich`` on terminals.
- Respects the NO_COLOR environment variable and the --no-color CLI flag.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, Final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from vehicle_diagnostics.diagnostics.engine import FindingKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vehicle_diagnostics.diagnostics.engine import Finding

RULE_LINE: Final[str] = "------------------------"

_FINDING_STYLES: Final[dict[FindingKind, Style]] = {
    FindingKind.MISSING_IDENTITY: Style(color="yellow", bold=True),
    FindingKind.MISSING_PART: Style(color="yellow"),
    FindingKind.DAMAGED_PART: Style(color="red"),
    FindingKind.SUCCESS: Style(color="green", bold=True),
}


def _color_allowed(no_color_flag: bool) -> bool:
    """Check whether color output should be attempted."""

    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


class CLIRenderer:
    """Thin CLI output renderer over a ``rich`` console."""

    def __init__(self, *, no_color: bool = False, verbose: bool = False) -> None:
        self.verbose = verbose
        self._color = _color_allowed(no_color)
        self._console = Console(
            no_color=not self._color,
            highlight=False,
            markup=False,
            emoji=False,
            soft_wrap=True,
        )

    @property
    def color(self) -> bool:
        return self._color

    def heading(self, text: str) -> None:
        """Print a heading followed by a rule line."""

        self.text(text)
        self.text(RULE_LINE)

    def kv(self, key: str, value: object) -> None:
        """Print a key: value pair."""

        self.text(f"{key}: {value}")

    def text(self, line: str) -> None:
        """Print a plain text line."""

        self._console.print(Text(line))

    def blank(self) -> None:
        self._console.print()

    def finding(self, finding: Finding) -> None:
        """Print one diagnostic finding line, colored by kind when allowed."""

        style = _FINDING_STYLES.get(finding.kind) if self._color else None
        self._console.print(Text(finding.message, style=style or ""))

    def findings(self, findings: Sequence[Finding]) -> None:
        for item in findings:
            self.finding(item)

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Print a formatted ASCII table."""

        if not rows:
            return

        col_count = len(headers)
        widths = [len(h) for h in headers]
        for row in rows:
            for i in range(min(len(row), col_count)):
                widths[i] = max(widths[i], len(str(row[i])))

        def _pad(cells: Sequence[str]) -> str:
            parts: list[str] = []
            for i in range(col_count):
                cell = str(cells[i]) if i < len(cells) else ""
                parts.append(cell.ljust(widths[i]))
            return "  ".join(parts).rstrip()

        self.text(_pad(list(headers)))
        self.text("  ".join("-" * w for w in widths))
        for row in rows:
            self.text(_pad(list(row)))


def create_renderer(*, no_color: bool = False, verbose: bool = False) -> CLIRenderer:
    """Create a CLI renderer with the given settings."""

    return CLIRenderer(no_color=no_color, verbose=verbose)


__all__ = ["RULE_LINE", "CLIRenderer", "create_renderer"]
