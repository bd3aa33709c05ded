"""
Module: production_kernel.models.material
Responsibility: ORM persistence for raw materials (master data).
Architecture position: Kernel > Models.  May import from db/ and domain/values.

Invariants enforced:
    - Material code is unique.
    - No stock column.  Stock is always derived from the movement ledger
      (see models/movement.py); the only persisted figure is the cache in
      models/stock_snapshot.py, written by the recomputation pass.
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from production_kernel.db.base import TrackedBase


class Material(TrackedBase):
    """
    A raw material tracked in the inventory ledger.

    Inactive materials stay in the ledger and keep their history, but
    formulas that use them are flagged as not ready to produce.
    """

    __tablename__ = "materials"

    __table_args__ = (
        CheckConstraint("min_stock >= 0", name="ck_material_min_stock"),
        Index("idx_material_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Unit of measure (kg, L, unit, ...)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)

    # Reorder threshold
    min_stock: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    max_stock: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    location: Mapped[str | None] = mapped_column(String(100), nullable=True)

    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Material {self.code} ({self.unit})>"
