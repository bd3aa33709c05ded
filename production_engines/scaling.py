"""
production_engines.scaling -- Rule-of-three scaling of formula quantities.

Formula quantities are stated per ``base_quantity`` of product.  Producing
``planned_quantity`` needs ``required * planned / base`` of each material.
Every feasibility check and every consumption fallback goes through here.

Example:
    scale_requirement(Decimal("10"), Decimal("250"), Decimal("100"))  # -> 25
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from production_kernel.exceptions import InvalidQuantityError

_ZERO = Decimal("0")


@dataclass(frozen=True)
class RequirementLine:
    """
    Quantity of one material needed, already scaled or per base batch.

    ``is_active`` mirrors the material's flag so feasibility can flag
    formulas that depend on retired materials.
    """

    material_id: UUID
    required_quantity: Decimal
    material_name: str | None = None
    unit: str | None = None
    is_active: bool = True


def _check_base(base_quantity: Decimal) -> None:
    if base_quantity <= _ZERO:
        raise InvalidQuantityError(
            "base_quantity", base_quantity, "base quantity must be > 0",
        )


def batches_for(planned_quantity: Decimal, base_quantity: Decimal) -> Decimal:
    """Number of base batches (possibly fractional) in a planned quantity."""
    _check_base(base_quantity)
    return planned_quantity / base_quantity


def scale_requirement(
    required_quantity: Decimal,
    planned_quantity: Decimal,
    base_quantity: Decimal,
) -> Decimal:
    """required * planned / base, multiplying first to keep exact results exact."""
    _check_base(base_quantity)
    if required_quantity < _ZERO:
        raise InvalidQuantityError(
            "required_quantity", required_quantity, "required quantity cannot be negative",
        )
    return (required_quantity * planned_quantity) / base_quantity


def scale_formula(
    lines: Iterable[RequirementLine],
    planned_quantity: Decimal,
    base_quantity: Decimal,
) -> list[RequirementLine]:
    return [
        RequirementLine(
            material_id=line.material_id,
            required_quantity=scale_requirement(
                line.required_quantity, planned_quantity, base_quantity,
            ),
            material_name=line.material_name,
            unit=line.unit,
            is_active=line.is_active,
        )
        for line in lines
    ]


def aggregate_requirements(lines: Iterable[RequirementLine]) -> list[RequirementLine]:
    """
    Sum requirements per material, keeping first-seen order.

    Used when several work order items draw on the same material.
    """
    totals: dict[UUID, RequirementLine] = {}
    for line in lines:
        existing = totals.get(line.material_id)
        if existing is None:
            totals[line.material_id] = line
        else:
            totals[line.material_id] = RequirementLine(
                material_id=line.material_id,
                required_quantity=existing.required_quantity + line.required_quantity,
                material_name=existing.material_name or line.material_name,
                unit=existing.unit or line.unit,
                is_active=existing.is_active and line.is_active,
            )
    return list(totals.values())
