"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the store boundary:
    materials, ledger movements, formulas, work orders and consumption
    records, plus the results returned by ledger writes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from selectors and services (never from engine logic).

Invariants enforced:
    - Quantities are Decimal, never float.
    - Write results carry ``affected_material_ids`` so callers can refresh
      whatever they display; nothing is broadcast.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from production_kernel.domain.values import MovementDirection, WorkOrderStatus

if TYPE_CHECKING:
    from production_kernel.models.material import Material as MaterialModel
    from production_kernel.models.movement import Movement as MovementModel
    from production_kernel.models.product import FormulaLine as FormulaLineModel
    from production_kernel.models.product import Product as ProductModel
    from production_kernel.models.stock_snapshot import StockSnapshot as StockSnapshotModel
    from production_kernel.models.work_order import (
        ConsumptionRecord as ConsumptionRecordModel,
    )
    from production_kernel.models.work_order import WorkOrder as WorkOrderModel
    from production_kernel.models.work_order import WorkOrderItem as WorkOrderItemModel


@dataclass(frozen=True)
class MaterialInfo:
    """Read-only view of a raw material.  Carries no stock figure."""

    id: UUID
    code: str
    name: str
    unit: str
    min_stock: Decimal
    max_stock: Decimal | None = None
    description: str | None = None
    location: str | None = None
    supplier: str | None = None
    is_active: bool = True

    @classmethod
    def from_model(cls, model: MaterialModel) -> MaterialInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            unit=model.unit,
            min_stock=model.min_stock,
            max_stock=model.max_stock,
            description=model.description,
            location=model.location,
            supplier=model.supplier,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class MovementRecord:
    """
    One immutable ledger entry.

    ``seq`` is the store-assigned insertion id; together with ``occurred_at``
    it gives the total order used when folding the ledger.
    """

    id: UUID
    material_id: UUID
    seq: int
    quantity: Decimal
    direction: MovementDirection
    occurred_at: datetime
    notes: str | None = None
    work_order_item_id: UUID | None = None

    @property
    def signed_quantity(self) -> Decimal:
        """+quantity for IN, -quantity for OUT."""
        return self.quantity * self.direction.sign

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.occurred_at, self.seq)

    @classmethod
    def from_model(cls, model: MovementModel) -> MovementRecord:
        return cls(
            id=model.id,
            material_id=model.material_id,
            seq=model.seq,
            quantity=model.quantity,
            direction=MovementDirection(model.direction),
            occurred_at=model.occurred_at,
            notes=model.notes,
            work_order_item_id=model.work_order_item_id,
        )


@dataclass(frozen=True)
class FormulaLineInfo:
    """Quantity of one material needed per base batch of a product."""

    id: UUID
    product_id: UUID
    material_id: UUID
    required_quantity: Decimal
    percentage: Decimal | None = None
    position: int = 0

    @classmethod
    def from_model(cls, model: FormulaLineModel) -> FormulaLineInfo:
        return cls(
            id=model.id,
            product_id=model.product_id,
            material_id=model.material_id,
            required_quantity=model.required_quantity,
            percentage=model.percentage,
            position=model.position,
        )


@dataclass(frozen=True)
class ProductInfo:
    """A product together with its formula (bill of materials)."""

    id: UUID
    name: str
    unit: str
    base_quantity: Decimal
    description: str | None = None
    is_active: bool = True
    formula: tuple[FormulaLineInfo, ...] = ()

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductInfo:
        return cls(
            id=model.id,
            name=model.name,
            unit=model.unit,
            base_quantity=model.base_quantity,
            description=model.description,
            is_active=model.is_active,
            formula=tuple(FormulaLineInfo.from_model(line) for line in model.formula_lines),
        )


@dataclass(frozen=True)
class WorkOrderItemInfo:
    id: UUID
    work_order_id: UUID
    product_id: UUID
    planned_quantity: Decimal
    produced_quantity: Decimal
    unit: str
    status: WorkOrderStatus
    line_number: int = 1

    @classmethod
    def from_model(cls, model: WorkOrderItemModel) -> WorkOrderItemInfo:
        return cls(
            id=model.id,
            work_order_id=model.work_order_id,
            product_id=model.product_id,
            planned_quantity=model.planned_quantity,
            produced_quantity=model.produced_quantity,
            unit=model.unit,
            status=WorkOrderStatus(model.status),
            line_number=model.line_number,
        )


@dataclass(frozen=True)
class WorkOrderInfo:
    id: UUID
    order_number: str
    status: WorkOrderStatus
    priority: str
    description: str | None = None
    notes: str | None = None
    planned_start: datetime | None = None
    planned_end: datetime | None = None
    actual_start: datetime | None = None
    actual_end: datetime | None = None
    items: tuple[WorkOrderItemInfo, ...] = ()

    @classmethod
    def from_model(cls, model: WorkOrderModel) -> WorkOrderInfo:
        return cls(
            id=model.id,
            order_number=model.order_number,
            status=WorkOrderStatus(model.status),
            priority=model.priority,
            description=model.description,
            notes=model.notes,
            planned_start=model.planned_start,
            planned_end=model.planned_end,
            actual_start=model.actual_start,
            actual_end=model.actual_end,
            items=tuple(WorkOrderItemInfo.from_model(item) for item in model.items),
        )


@dataclass(frozen=True)
class ConsumptionRecordInfo:
    """Planned versus actual usage of one material by one work order item."""

    id: UUID
    work_order_item_id: UUID
    material_id: UUID
    planned_consumption: Decimal
    actual_consumption: Decimal
    unit: str
    movement_id: UUID | None = None

    @property
    def variance(self) -> Decimal:
        return self.actual_consumption - self.planned_consumption

    @classmethod
    def from_model(cls, model: ConsumptionRecordModel) -> ConsumptionRecordInfo:
        return cls(
            id=model.id,
            work_order_item_id=model.work_order_item_id,
            material_id=model.material_id,
            planned_consumption=model.planned_consumption,
            actual_consumption=model.actual_consumption,
            unit=model.unit,
            movement_id=model.movement_id,
        )


@dataclass(frozen=True)
class StockSnapshotInfo:
    material_id: UUID
    quantity: Decimal
    raw_balance: Decimal
    movement_count: int
    computed_at: datetime

    @classmethod
    def from_model(cls, model: StockSnapshotModel) -> StockSnapshotInfo:
        return cls(
            material_id=model.material_id,
            quantity=model.quantity,
            raw_balance=model.raw_balance,
            movement_count=model.movement_count,
            computed_at=model.computed_at,
        )


@dataclass(frozen=True)
class AppendResult:
    """Outcome of appending one movement to the ledger."""

    movement: MovementRecord
    affected_material_ids: tuple[UUID, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ConsumptionResult:
    """
    Outcome of persisting one consumption record.

    ``movement`` is None when the actual consumption was zero.
    """

    record: ConsumptionRecordInfo
    movement: MovementRecord | None = None
    affected_material_ids: tuple[UUID, ...] = field(default_factory=tuple)
