"""
Module: production_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    production_modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import production_kernel domain types, exceptions and logging.
    MUST NOT import production_modules or production_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``.  The as-of instant is
      always passed in by the caller.
    - Decimal-only arithmetic; floats are never used for quantities.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from production_engines import FeasibilityEngine, StockCalculator
    from production_engines import RequirementLine, scale_formula
"""

from production_engines.feasibility import (
    FeasibilityEngine,
    FeasibilityResult,
    LineFeasibility,
)
from production_engines.scaling import (
    RequirementLine,
    aggregate_requirements,
    batches_for,
    scale_formula,
    scale_requirement,
)
from production_engines.stock import StockCalculator, StockLevel
from production_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "FeasibilityEngine",
    "FeasibilityResult",
    "LineFeasibility",
    "RequirementLine",
    "aggregate_requirements",
    "batches_for",
    "scale_formula",
    "scale_requirement",
    "StockCalculator",
    "StockLevel",
    "compute_input_fingerprint",
    "traced_engine",
]
