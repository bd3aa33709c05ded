"""
Inventory Domain Models (``production_modules.inventory.models``).

Responsibility
--------------
Frozen dataclass value objects returned by ``InventoryService``: the report
of a recomputation pass and low-stock alerts.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Quantities are ``Decimal`` -- NEVER ``float``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from production_engines.stock import StockLevel
from production_kernel.domain.dtos import MaterialInfo


@dataclass(frozen=True)
class RecomputeFailure:
    """A material whose snapshot could not be refreshed."""
    material_id: UUID
    code: str
    message: str


@dataclass(frozen=True)
class RecomputeReport:
    """
    Outcome of one recomputation pass.

    Each material is refreshed (or not) on its own; a failure on one does
    not undo the others.
    """
    computed_at: datetime
    refreshed: tuple[StockLevel, ...] = field(default_factory=tuple)
    failures: tuple[RecomputeFailure, ...] = field(default_factory=tuple)

    @property
    def is_complete(self) -> bool:
        return not self.failures

    @property
    def refreshed_material_ids(self) -> tuple[UUID, ...]:
        return tuple(level.material_id for level in self.refreshed)


@dataclass(frozen=True)
class LowStockAlert:
    """An active material whose stock is below its reorder threshold."""
    material: MaterialInfo
    stock: Decimal

    @property
    def shortfall(self) -> Decimal:
        return self.material.min_stock - self.stock
