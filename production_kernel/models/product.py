"""
Module: production_kernel.models.product
Responsibility: ORM persistence for products and their formulas (bill of
    materials).
Architecture position: Kernel > Models.

Invariants enforced:
    - A material appears at most once per formula (UNIQUE product/material).
    - base_quantity > 0 and required_quantity > 0, so rule-of-three scaling
      never divides by zero.
    - Deleting a product deletes its formula lines.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from production_kernel.db.base import TrackedBase, UUIDString


class Product(TrackedBase):
    """A finished good, produced in batches of ``base_quantity``."""

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("base_quantity > 0", name="ck_product_base_quantity_positive"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    unit: Mapped[str] = mapped_column(String(20), nullable=False)

    # Output quantity that the formula quantities refer to
    base_quantity: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("1"),
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    formula_lines: Mapped[list["FormulaLine"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="FormulaLine.position",
    )

    def __repr__(self) -> str:
        return f"<Product {self.name} base={self.base_quantity} {self.unit}>"


class FormulaLine(TrackedBase):
    """Quantity of one material consumed per base batch of a product."""

    __tablename__ = "formula_lines"

    __table_args__ = (
        UniqueConstraint("product_id", "material_id", name="uq_formula_product_material"),
        CheckConstraint("required_quantity > 0", name="ck_formula_required_positive"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )

    material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("materials.id"),
        nullable=False,
    )

    required_quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Informational share of the batch, 0..100
    percentage: Mapped[Decimal | None] = mapped_column(Numeric(9, 4), nullable=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped[Product] = relationship(back_populates="formula_lines")

    def __repr__(self) -> str:
        return (
            f"<FormulaLine product={self.product_id} material={self.material_id} "
            f"qty={self.required_quantity}>"
        )
