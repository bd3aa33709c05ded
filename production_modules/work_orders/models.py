"""
Work Order Domain Models (``production_modules.work_orders.models``).

Responsibility
--------------
Frozen dataclass value objects for the work order API: creation requests,
completion input (produced quantities and actual consumption), and the
results returned to callers.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Persistence
lives in ``production_kernel.models.work_order``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Quantities are ``Decimal`` -- NEVER ``float``.
* Warnings are plain strings; a shortage is never an exception.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from production_kernel.domain.dtos import ConsumptionRecordInfo, WorkOrderInfo
from production_kernel.domain.values import WorkOrderStatus


@dataclass(frozen=True)
class WorkOrderItemRequest:
    """One product line of a work order to create."""
    product_id: UUID
    planned_quantity: Decimal
    unit: str | None = None  # defaults to the product's unit


@dataclass(frozen=True)
class WorkOrderResult:
    """A created work order plus non-blocking availability warnings."""
    work_order: WorkOrderInfo
    warnings: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ActualConsumption:
    """Quantity of one material actually used by an item."""
    material_id: UUID
    actual_quantity: Decimal


@dataclass(frozen=True)
class ItemCompletion:
    """
    Completion input for one work order item.

    ``produced_quantity`` defaults to the planned quantity.  ``consumption``
    of None means "use the formula"; materials missing from a given list
    also fall back to the formula requirement.
    """
    produced_quantity: Decimal | None = None
    consumption: tuple[ActualConsumption, ...] | None = None


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of reconciling and completing a work order."""
    work_order: WorkOrderInfo
    consumption_records: tuple[ConsumptionRecordInfo, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)
    affected_material_ids: tuple[UUID, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a status change; ``completion`` is set for completions."""
    work_order: WorkOrderInfo
    from_status: WorkOrderStatus
    to_status: WorkOrderStatus
    completion: CompletionResult | None = None

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.completion.warnings if self.completion else ()


@dataclass(frozen=True)
class MaterialAvailability:
    """Requirement of one material across all items of a work order."""
    material_id: UUID
    material_name: str
    unit: str
    required: Decimal
    available: Decimal

    @property
    def shortage(self) -> Decimal:
        gap = self.required - self.available
        return gap if gap > Decimal("0") else Decimal("0")

    @property
    def is_available(self) -> bool:
        return self.available >= self.required
