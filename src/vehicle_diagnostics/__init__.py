"""
vehicle-diagnostics: staged diagnostics for vehicle records.

A vehicle record (year, make, model and a list of parts) is checked in three
ordered stages: vehicle identity, part presence against the required-parts
catalog, and part condition. Each stage reports every finding it has before
the run stops; a vehicle that clears all three checks out good.

Importing this package has no side effects (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
