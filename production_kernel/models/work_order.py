"""
Module: production_kernel.models.work_order
Responsibility: ORM persistence for work orders, their items, and the
    consumption records written when an order completes.
Architecture position: Kernel > Models.

Invariants enforced:
    - order_number is unique.
    - Status only moves along the work order workflow
      (production_modules.work_orders.workflows); the model stores it as text.
    - ConsumptionRecord is append-only (db/immutability.py).

Failure modes:
    - IntegrityError on duplicate order_number.
    - ImmutabilityViolationError on UPDATE/DELETE of a consumption record.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from production_kernel.db.base import TrackedBase, UUIDString
from production_kernel.db.types import UTCDateTime
from production_kernel.domain.values import WorkOrderPriority, WorkOrderStatus


class WorkOrder(TrackedBase):
    """
    A request to produce one or more products.

    Creation never checks stock; the status machine and reconciliation step
    own every later change.
    """

    __tablename__ = "work_orders"

    __table_args__ = (
        Index("idx_work_order_status", "status"),
    )

    order_number: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkOrderStatus.PENDING.value,
    )

    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=WorkOrderPriority.NORMAL.value,
    )

    planned_start: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    planned_end: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    actual_start: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    actual_end: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    items: Mapped[list["WorkOrderItem"]] = relationship(
        back_populates="work_order",
        cascade="all, delete-orphan",
        order_by="WorkOrderItem.line_number",
    )

    def __repr__(self) -> str:
        return f"<WorkOrder {self.order_number} [{self.status}]>"


class WorkOrderItem(TrackedBase):
    """One product line of a work order."""

    __tablename__ = "work_order_items"

    __table_args__ = (
        CheckConstraint("planned_quantity > 0", name="ck_item_planned_positive"),
        CheckConstraint("produced_quantity >= 0", name="ck_item_produced_non_negative"),
        Index("idx_item_work_order", "work_order_id"),
        Index("idx_item_product", "product_id"),
    )

    work_order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("work_orders.id", ondelete="CASCADE"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    planned_quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    produced_quantity: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    unit: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkOrderStatus.PENDING.value,
    )

    work_order: Mapped[WorkOrder] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return (
            f"<WorkOrderItem #{self.line_number} product={self.product_id} "
            f"planned={self.planned_quantity} [{self.status}]>"
        )


class ConsumptionRecord(TrackedBase):
    """Planned versus actual consumption of one material by one item."""

    __tablename__ = "consumption_records"

    __table_args__ = (
        CheckConstraint("actual_consumption >= 0", name="ck_consumption_actual_non_negative"),
        Index("idx_consumption_item", "work_order_item_id"),
    )

    work_order_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("work_order_items.id"),
        nullable=False,
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=False,
    )

    planned_consumption: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    actual_consumption: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    unit: Mapped[str] = mapped_column(String(20), nullable=False)

    # Outbound movement written for this consumption (None when actual == 0)
    movement_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("stock_movements.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<ConsumptionRecord item={self.work_order_item_id} "
            f"material={self.material_id} actual={self.actual_consumption}>"
        )
