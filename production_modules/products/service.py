"""
Products Module Service (``production_modules.products.service``).

Responsibility
--------------
Orchestrates products and their formulas (bills of materials) and answers
"how many batches can we produce right now?" by feeding stock reads from
``InventoryService`` into the pure ``FeasibilityEngine``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``ProductService`` is the sole public entry
point for product and formula operations.

Invariants enforced
-------------------
* Each public write owns the transaction boundary (``commit`` on success,
  ``rollback`` and re-raise on failure).
* A material appears at most once per formula.
* Feasibility is read-only: it never writes stock, snapshots or orders.
* Formula quantities are per ``base_quantity``; every scaling goes through
  ``production_engines.scaling``.

Failure modes
-------------
* Unknown product / material / formula line -> ``NotFoundError`` subclass.
* Name, quantity or percentage out of range -> ``ValidationError`` subclass.
* Deleting a product used by work orders -> ``ProductReferencedError``.

Usage::

    products = ProductService(session, clock)
    bread = products.create_product(name="Bread", unit="unit", base_quantity=Decimal("1"))
    products.add_formula_line(bread.id, flour.id, Decimal("7"))
    products.feasibility(bread.id).max_batches
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from production_engines.feasibility import FeasibilityEngine, FeasibilityResult
from production_engines.scaling import RequirementLine, batches_for
from production_kernel.db.base import SYSTEM_ACTOR_ID
from production_kernel.db.engine import store_errors
from production_kernel.db.types import ZERO, to_quantity
from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.domain.dtos import FormulaLineInfo, ProductInfo
from production_kernel.exceptions import (
    DuplicateFormulaLineError,
    DuplicateProductNameError,
    FormulaLineNotFoundError,
    InvalidQuantityError,
    ProductNotFoundError,
    ProductReferencedError,
    ValidationError,
)
from production_kernel.logging_config import get_logger
from production_kernel.models.product import FormulaLine, Product
from production_kernel.selectors.formula_selector import FormulaSelector
from production_kernel.selectors.material_selector import MaterialSelector
from production_modules.inventory.service import InventoryService

logger = get_logger("modules.products.service")

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
_HUNDRED = Decimal("100")


class ProductService:
    """
    Orchestrates products, formulas and feasibility checks.

    Contract
    --------
    * ``feasibility`` accepts a product id (scaled by its base quantity) or
      a raw formula given as ``RequirementLine`` objects.
    * Shortages are reported in the result, never raised.

    Guarantees
    ----------
    * The same formula and stock figures always give the same result,
      whether stock was read on demand or from the cache.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        inventory: InventoryService | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._actor_id = actor_id
        self._inventory = inventory or InventoryService(session, self._clock, actor_id)

        self._formulas = FormulaSelector(session)
        self._materials = MaterialSelector(session)
        self._engine = FeasibilityEngine()

    # =========================================================================
    # Feasibility
    # =========================================================================

    def feasibility(
        self,
        product_or_formula: UUID | Sequence[RequirementLine],
        quantity: Decimal | int | str | None = None,
        use_cached: bool = False,
    ) -> FeasibilityResult:
        """
        Maximum producible batches given current stock.

        Args:
            product_or_formula: A product id, or requirement lines per batch.
            quantity: Intended output.  For a product it is expressed in the
                product's unit and divided by ``base_quantity``; for a raw
                formula it is the number of batches.  Defaults to one batch.
            use_cached: Read stock from the recomputation cache.

        Raises:
            ProductNotFoundError: unknown product id.
            MaterialNotFoundError: a formula line names an unknown material.
        """
        if isinstance(product_or_formula, UUID):
            product, lines = self.requirement_lines(product_or_formula)
            batches = (
                batches_for(to_quantity(quantity), product.base_quantity)
                if quantity is not None else Decimal("1")
            )
            subject = str(product.id)
        else:
            lines = list(product_or_formula)
            batches = to_quantity(quantity) if quantity is not None else Decimal("1")
            subject = "formula"

        if batches < ZERO:
            raise InvalidQuantityError("quantity", quantity, "quantity cannot be negative")

        stock_of = self._inventory.stock_levels(
            (line.material_id for line in lines), use_cached=use_cached,
        )
        result = self._engine.evaluate(lines=lines, stock_of=stock_of, batches=batches)

        logger.info(
            "feasibility_checked",
            extra={
                "subject": subject,
                "use_cached": use_cached,
                "batches": str(batches),
                "max_batches": result.max_batches,
                "limiting_material_id": (
                    str(result.limiting_material_id) if result.limiting_material_id else None
                ),
                "insufficient_count": result.insufficient_count,
                "is_production_ready": result.is_production_ready,
            },
        )
        return result

    def requirement_lines(self, product_id: UUID) -> tuple[ProductInfo, list[RequirementLine]]:
        """
        A product and its formula as per-batch requirement lines, with the
        material name, unit and active flag attached.
        """
        with store_errors("requirement_lines"):
            product = self._formulas.get_product(product_id)
            materials = self._materials.get_many([line.material_id for line in product.formula])
        lines = []
        for line in product.formula:
            material = materials.get(line.material_id)
            lines.append(
                RequirementLine(
                    material_id=line.material_id,
                    required_quantity=line.required_quantity,
                    material_name=material.name if material else None,
                    unit=material.unit if material else None,
                    is_active=material.is_active if material else False,
                )
            )
        return product, lines

    # =========================================================================
    # Products
    # =========================================================================

    def get_product(self, product_id: UUID) -> ProductInfo:
        with store_errors("get_product"):
            return self._formulas.get_product(product_id)

    def list_products(self, active_only: bool = False) -> list[ProductInfo]:
        with store_errors("list_products"):
            return self._formulas.list_products(active_only=active_only)

    def get_formula(self, product_id: UUID) -> list[FormulaLineInfo]:
        with store_errors("get_formula"):
            return self._formulas.get_formula(product_id)

    def create_product(
        self,
        name: str,
        unit: str,
        base_quantity: Decimal | int | str = Decimal("1"),
        description: str | None = None,
    ) -> ProductInfo:
        """
        Create a product with an empty formula.

        Raises:
            ValidationError: name length, missing unit, description too long.
            InvalidQuantityError: base_quantity <= 0.
            DuplicateProductNameError: name already taken.
        """
        name = _product_name(name)
        unit = _product_unit(unit)
        base = _base_quantity(base_quantity)
        _check_description(description)

        try:
            with store_errors("create_product"):
                if self._formulas.get_by_name(name) is not None:
                    raise DuplicateProductNameError(name)
                product = Product(
                    name=name,
                    unit=unit,
                    base_quantity=base,
                    description=description,
                    is_active=True,
                    created_by_id=self._actor_id,
                )
                self._session.add(product)
                self._session.flush()
                info = ProductInfo.from_model(product)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "product_created",
            extra={"product_id": str(info.id), "product_name": name, "base_quantity": str(base)},
        )
        return info

    def update_product(
        self,
        product_id: UUID,
        name: str | None = None,
        unit: str | None = None,
        base_quantity: Decimal | int | str | None = None,
        description: str | None = None,
    ) -> ProductInfo:
        """Change any of name, unit, base quantity or description."""
        try:
            with store_errors("update_product"):
                product = self._get_product_model(product_id)
                if name is not None:
                    name = _product_name(name)
                    if name != product.name and self._formulas.get_by_name(name) is not None:
                        raise DuplicateProductNameError(name)
                    product.name = name
                if unit is not None:
                    product.unit = _product_unit(unit)
                if base_quantity is not None:
                    product.base_quantity = _base_quantity(base_quantity)
                if description is not None:
                    _check_description(description)
                    product.description = description
                product.updated_by_id = self._actor_id
                self._session.flush()
                info = ProductInfo.from_model(product)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("product_updated", extra={"product_id": str(product_id)})
        return info

    def set_product_active(self, product_id: UUID, is_active: bool) -> ProductInfo:
        try:
            with store_errors("set_product_active"):
                product = self._get_product_model(product_id)
                product.is_active = is_active
                product.updated_by_id = self._actor_id
                self._session.flush()
                info = ProductInfo.from_model(product)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "product_activation_changed",
            extra={"product_id": str(product_id), "is_active": is_active},
        )
        return info

    def delete_product(self, product_id: UUID) -> None:
        """
        Delete a product and its formula.

        Raises:
            ProductReferencedError: work order items reference the product.
        """
        try:
            with store_errors("delete_product"):
                product = self._get_product_model(product_id)
                item_count = self._formulas.work_order_item_count(product_id)
                if item_count:
                    raise ProductReferencedError(str(product_id), item_count)
                self._session.delete(product)
                self._session.flush()
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("product_deleted", extra={"product_id": str(product_id)})

    # =========================================================================
    # Formula lines
    # =========================================================================

    def add_formula_line(
        self,
        product_id: UUID,
        material_id: UUID,
        required_quantity: Decimal | int | str,
        percentage: Decimal | int | str | None = None,
    ) -> FormulaLineInfo:
        """
        Append a material to a product's formula.

        Raises:
            MaterialNotFoundError: unknown material.
            DuplicateFormulaLineError: material already in the formula.
            InvalidQuantityError: required_quantity <= 0 or percentage
                outside 0..100.
        """
        required = _required_quantity(required_quantity)
        share = _percentage(percentage)

        try:
            with store_errors("add_formula_line"):
                product = self._get_product_model(product_id)
                self._materials.get(material_id)
                if any(line.material_id == material_id for line in product.formula_lines):
                    raise DuplicateFormulaLineError(str(product_id), str(material_id))

                position = self._session.execute(
                    select(func.coalesce(func.max(FormulaLine.position), 0))
                    .where(FormulaLine.product_id == product_id)
                ).scalar_one() + 1
                line = FormulaLine(
                    product_id=product_id,
                    material_id=material_id,
                    required_quantity=required,
                    percentage=share,
                    position=position,
                    created_by_id=self._actor_id,
                )
                product.formula_lines.append(line)
                self._session.flush()
                info = FormulaLineInfo.from_model(line)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "formula_line_added",
            extra={
                "product_id": str(product_id),
                "material_id": str(material_id),
                "required_quantity": str(required),
                "position": position,
            },
        )
        return info

    def update_formula_line(
        self,
        line_id: UUID,
        required_quantity: Decimal | int | str | None = None,
        percentage: Decimal | int | str | None = None,
    ) -> FormulaLineInfo:
        """Change the quantity and/or percentage of a formula line."""
        required = _required_quantity(required_quantity) if required_quantity is not None else None
        share = _percentage(percentage)

        try:
            with store_errors("update_formula_line"):
                line = self._session.get(FormulaLine, line_id)
                if line is None:
                    raise FormulaLineNotFoundError(str(line_id))
                if required is not None:
                    line.required_quantity = required
                if share is not None:
                    line.percentage = share
                line.updated_by_id = self._actor_id
                self._session.flush()
                info = FormulaLineInfo.from_model(line)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "formula_line_updated",
            extra={"line_id": str(line_id), "required_quantity": str(info.required_quantity)},
        )
        return info

    def remove_formula_line(self, line_id: UUID) -> None:
        try:
            with store_errors("remove_formula_line"):
                line = self._session.get(FormulaLine, line_id)
                if line is None:
                    raise FormulaLineNotFoundError(str(line_id))
                product_id = line.product_id
                line.product.formula_lines.remove(line)
                self._session.flush()
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "formula_line_removed",
            extra={"line_id": str(line_id), "product_id": str(product_id)},
        )

    def _get_product_model(self, product_id: UUID) -> Product:
        product = self._session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product


def _product_name(name: str | None) -> str:
    text = (name or "").strip()
    if not NAME_MIN_LENGTH <= len(text) <= NAME_MAX_LENGTH:
        raise ValidationError(
            f"Product name must be {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} characters",
            field="name",
        )
    return text


def _product_unit(unit: str | None) -> str:
    text = (unit or "").strip()
    if not text:
        raise ValidationError("Product unit is required", field="unit")
    return text


def _check_description(description: str | None) -> None:
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
            field="description",
        )


def _base_quantity(value: Decimal | int | str) -> Decimal:
    base = to_quantity(value, "base_quantity")
    if base <= ZERO:
        raise InvalidQuantityError("base_quantity", base, "base quantity must be > 0")
    return base


def _required_quantity(value: Decimal | int | str) -> Decimal:
    required = to_quantity(value, "required_quantity")
    if required <= ZERO:
        raise InvalidQuantityError(
            "required_quantity", required, "required quantity must be > 0",
        )
    return required


def _percentage(value: Decimal | int | str | None) -> Decimal | None:
    if value is None:
        return None
    share = to_quantity(value, "percentage")
    if not ZERO <= share <= _HUNDRED:
        raise InvalidQuantityError("percentage", share, "percentage must be between 0 and 100")
    return share
