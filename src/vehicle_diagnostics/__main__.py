"""Module entrypoint for ``python -m vehicle_diagnostics``."""

from __future__ import annotations

from vehicle_diagnostics.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
