"""
production_engines.feasibility -- How many batches of a formula current stock allows.

Responsibility:
    Given formula requirement lines and the stock of each material, compute
    the maximum number of whole batches that can be produced, the material
    that limits it, and how many lines fall short of a requested number of
    batches.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ProductService.feasibility and WorkOrderService (creation
    warnings and availability checks).

Invariants enforced:
    - max_batches = min over lines with required > 0 of floor(stock / required).
    - Lines with required == 0 are skipped; they neither limit nor fail.
    - The limiting material is the FIRST line reaching the minimum.
    - Empty formula (or only zero lines): max_batches = 0 and the formula is
      not production-ready.
    - Monotonic: raising any stock never lowers max_batches.
    - Pure: identical inputs give identical results whatever the stock source
      (on-demand or cached).

Failure modes:
    - InvalidQuantityError on a negative required quantity, a negative
      number of batches, or any NaN or Infinity among the inputs.

Usage:
    from production_engines.feasibility import FeasibilityEngine
    from production_engines.scaling import RequirementLine

    result = FeasibilityEngine().evaluate(
        lines=[RequirementLine(material_id=m, required_quantity=Decimal("7"))],
        stock_of={m: Decimal("70")},
    )
    result.max_batches  # 10
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from production_engines.scaling import RequirementLine
from production_engines.tracer import traced_engine
from production_kernel.exceptions import InvalidQuantityError
from production_kernel.logging_config import get_logger

logger = get_logger("engines.feasibility")

_ZERO = Decimal("0")
_ONE = Decimal("1")


@dataclass(frozen=True)
class LineFeasibility:
    """
    Per-material detail of a feasibility evaluation.

    ``needed`` is required_quantity scaled by the requested batches.
    ``max_batches`` is None for zero-requirement lines.
    """

    material_id: UUID
    required_quantity: Decimal
    needed: Decimal
    available: Decimal
    max_batches: int | None
    is_active: bool = True
    material_name: str | None = None

    @property
    def shortage(self) -> Decimal:
        gap = self.needed - self.available
        return gap if gap > _ZERO else _ZERO

    @property
    def is_sufficient(self) -> bool:
        return self.available >= self.needed


@dataclass(frozen=True)
class FeasibilityResult:
    """
    Outcome of a feasibility evaluation.

    Shortages are data, never errors: callers turn them into warnings.
    """

    max_batches: int
    limiting_material_id: UUID | None
    insufficient_count: int
    is_production_ready: bool
    batches: Decimal
    lines: tuple[LineFeasibility, ...] = ()

    @property
    def inactive_material_ids(self) -> tuple[UUID, ...]:
        return tuple(line.material_id for line in self.lines if not line.is_active)

    @property
    def insufficient_lines(self) -> tuple[LineFeasibility, ...]:
        return tuple(
            line for line in self.lines
            if line.max_batches is not None and not line.is_sufficient
        )

    @property
    def can_produce(self) -> bool:
        """Ready, and every material covers the requested batches."""
        return self.is_production_ready and self.insufficient_count == 0


class FeasibilityEngine:
    """
    Pure feasibility calculator.

    Contract:
        No I/O, no database access, fully deterministic.
    Guarantees:
        - ``insufficient_count`` counts lines where stock < required * batches
          (batches defaults to one base batch).
        - A formula using an inactive material is not production-ready,
          whatever the stock.
    """

    @traced_engine(
        "feasibility", "1.0",
        fingerprint_fields=("lines", "stock_of", "batches"),
        result_fields=("max_batches", "limiting_material_id", "insufficient_count"),
    )
    def evaluate(
        self,
        lines: Sequence[RequirementLine],
        stock_of: Mapping[UUID, Decimal],
        batches: Decimal = _ONE,
    ) -> FeasibilityResult:
        """
        Evaluate a formula against stock.

        Args:
            lines: Requirement per base batch, in formula order.
            stock_of: Available stock per material; absent materials count as 0.
            batches: Batches the caller intends to produce (may be fractional).

        Returns:
            FeasibilityResult.
        """
        if not batches.is_finite():
            raise InvalidQuantityError("batches", batches, "batches must be finite")
        if batches < _ZERO:
            raise InvalidQuantityError("batches", batches, "batches cannot be negative")

        max_batches: int | None = None
        limiting: UUID | None = None
        insufficient = 0
        details: list[LineFeasibility] = []
        any_inactive = False

        for line in lines:
            required = line.required_quantity
            available = stock_of.get(line.material_id, _ZERO)
            if not required.is_finite():
                raise InvalidQuantityError("required_quantity", required, "quantity must be finite")
            if not available.is_finite():
                raise InvalidQuantityError("stock", available, "quantity must be finite")
            if required < _ZERO:
                raise InvalidQuantityError(
                    "required_quantity", required, "required quantity cannot be negative",
                )
            if not line.is_active:
                any_inactive = True

            if required == _ZERO:
                details.append(
                    LineFeasibility(
                        material_id=line.material_id,
                        required_quantity=required,
                        needed=_ZERO,
                        available=available,
                        max_batches=None,
                        is_active=line.is_active,
                        material_name=line.material_name,
                    )
                )
                continue

            line_batches = int(available // required) if available > _ZERO else 0
            if max_batches is None or line_batches < max_batches:
                max_batches = line_batches
                limiting = line.material_id

            needed = required * batches
            if available < needed:
                insufficient += 1

            details.append(
                LineFeasibility(
                    material_id=line.material_id,
                    required_quantity=required,
                    needed=needed,
                    available=available,
                    max_batches=line_batches,
                    is_active=line.is_active,
                    material_name=line.material_name,
                )
            )

        has_requirements = max_batches is not None
        result = FeasibilityResult(
            max_batches=max_batches if has_requirements else 0,
            limiting_material_id=limiting,
            insufficient_count=insufficient,
            is_production_ready=has_requirements and not any_inactive,
            batches=batches,
            lines=tuple(details),
        )

        logger.debug(
            "feasibility_evaluated",
            extra={
                "line_count": len(details),
                "max_batches": result.max_batches,
                "limiting_material_id": str(limiting) if limiting else None,
                "insufficient_count": insufficient,
                "is_production_ready": result.is_production_ready,
            },
        )
        return result
