"""
Module: production_kernel.selectors.formula_selector
Responsibility: Read-only access to products and their formulas.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - get_formula() returns lines ordered by position, then id, so feasibility
      tie-breaking ("first line wins") is stable across calls.
"""

from uuid import UUID

from sqlalchemy import func, select

from production_kernel.domain.dtos import FormulaLineInfo, ProductInfo
from production_kernel.exceptions import ProductNotFoundError
from production_kernel.models.product import FormulaLine, Product
from production_kernel.models.work_order import WorkOrderItem
from production_kernel.selectors.base import BaseSelector


class FormulaSelector(BaseSelector[Product]):
    """Selector for products and formula lines."""

    def get_formula(self, product_id: UUID) -> list[FormulaLineInfo]:
        """
        Formula lines of a product.

        Raises:
            ProductNotFoundError: if the product does not exist.
        """
        self._require(Product, product_id, ProductNotFoundError)
        query = (
            select(FormulaLine)
            .where(FormulaLine.product_id == product_id)
            .order_by(FormulaLine.position, FormulaLine.id)
        )
        return [
            FormulaLineInfo.from_model(line)
            for line in self.session.execute(query).scalars()
        ]

    def get_product(self, product_id: UUID) -> ProductInfo:
        """
        Product with its formula.

        Raises:
            ProductNotFoundError: if the product does not exist.
        """
        product = self._require(Product, product_id, ProductNotFoundError)
        return ProductInfo.from_model(product)

    def get_by_name(self, name: str) -> ProductInfo | None:
        product = self.session.execute(
            select(Product).where(Product.name == name)
        ).scalar_one_or_none()
        return ProductInfo.from_model(product) if product else None

    def list_products(self, active_only: bool = False) -> list[ProductInfo]:
        query = select(Product)
        if active_only:
            query = query.where(Product.is_active.is_(True))
        query = query.order_by(Product.name)
        return [ProductInfo.from_model(p) for p in self.session.execute(query).scalars()]

    def work_order_item_count(self, product_id: UUID) -> int:
        return self.session.execute(
            select(func.count(WorkOrderItem.id)).where(WorkOrderItem.product_id == product_id)
        ).scalar_one()
