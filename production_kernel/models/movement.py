"""
Module: production_kernel.models.movement
Responsibility: ORM persistence for stock movements -- the single source of
    truth for inventory quantities.
Architecture position: Kernel > Models.  May import from db/ and domain/values.

Invariants enforced:
    - Append-only.  ORM listeners in db/immutability.py reject UPDATE and
      DELETE of any movement.
    - quantity > 0; the sign comes from direction.
    - seq is unique and strictly increasing in insertion order (allocated by
      SequenceService); ledger order is (occurred_at, seq).

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE.
    - IntegrityError on quantity <= 0 or unknown direction.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import TrackedBase, UUIDString
from production_kernel.db.types import UTCDateTime


class Movement(TrackedBase):
    """
    One inbound or outbound quantity of a material at an instant.

    Movements written by reconciliation carry the work order item that
    consumed the material.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        CheckConstraint("direction IN ('in', 'out')", name="ck_movement_direction"),
        Index("idx_movement_material_order", "material_id", "occurred_at", "seq"),
        Index("idx_movement_item", "work_order_item_id"),
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=False,
    )

    # Insertion sequence (tie-breaker for equal occurred_at)
    seq: Mapped[int] = mapped_column(nullable=False, unique=True)

    quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    direction: Mapped[str] = mapped_column(String(3), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    work_order_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("work_order_items.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Movement #{self.seq} {self.direction} {self.quantity} "
            f"material={self.material_id}>"
        )
