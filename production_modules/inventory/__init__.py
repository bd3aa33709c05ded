"""
Inventory Module (``production_modules.inventory``).

Responsibility
--------------
Raw material master data and the append-only stock ledger: movements,
on-demand and cached stock reads, the recomputation pass, and low-stock
alerts.

Architecture position
---------------------
**Modules layer** -- a service facade over ``production_kernel`` selectors
and services and the ``production_engines.stock`` fold.

Failure modes
-------------
* Stock shortfalls are never errors here; they surface as warnings and
  clamped reads.
"""

from production_modules.inventory.models import (
    LowStockAlert,
    RecomputeFailure,
    RecomputeReport,
)
from production_modules.inventory.service import InventoryService

__all__ = [
    "InventoryService",
    "LowStockAlert",
    "RecomputeFailure",
    "RecomputeReport",
]
