"""
Module: production_kernel.models.stock_snapshot
Responsibility: Persisted cache of computed stock per material.
Architecture position: Kernel > Models.

Invariants enforced:
    - One row per material.
    - Written only by the recomputation pass; on-demand stock reads never
      touch this table.  It is a cache, never a source of truth.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import Base, UUIDString
from production_kernel.db.types import UTCDateTime


class StockSnapshot(Base):
    __tablename__ = "stock_snapshots"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_snapshot_quantity_non_negative"),
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Clamped stock as reported to callers
    quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Unclamped ledger sum, kept for diagnosing oversells
    raw_balance: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    movement_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    computed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<StockSnapshot material={self.material_id} quantity={self.quantity}>"
