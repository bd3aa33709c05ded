"""
production_engines.stock -- Ledger fold producing the stock of one material.

Responsibility:
    Turn a material's movement history into its stock at an instant:
    filter by occurred_at <= as_of, order by (occurred_at, seq), sum the
    signed quantities and clamp the result at zero.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by InventoryService (on-demand reads and the recomputation pass).

Invariants enforced:
    - Non-negativity: reported quantity is max(0, raw sum), for every as_of.
    - Order independence: the result depends only on the multiset of
      (occurred_at, quantity, direction) up to as_of, never on the order
      movements were supplied or inserted.
    - Idempotency: no state, no clock access, no writes.

Failure modes:
    - ValueError if a movement belongs to a different material.

Usage:
    from production_engines.stock import StockCalculator

    level = StockCalculator().fold(
        material_id=material_id,
        movements=movements,
        as_of=clock.now(),
    )
    level.quantity      # clamped
    level.raw_balance   # may be negative after an oversell
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from production_engines.tracer import traced_engine
from production_kernel.domain.dtos import MovementRecord
from production_kernel.logging_config import get_logger

logger = get_logger("engines.stock")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class StockLevel:
    """Stock of one material as of one instant."""

    material_id: UUID
    as_of: datetime
    quantity: Decimal
    raw_balance: Decimal
    movement_count: int

    @property
    def is_oversold(self) -> bool:
        """True when outbound movements exceeded inbound ones."""
        return self.raw_balance < _ZERO

    @property
    def deficit(self) -> Decimal:
        """Quantity hidden by the clamp (0 unless oversold)."""
        return -self.raw_balance if self.raw_balance < _ZERO else _ZERO


class StockCalculator:
    """
    Pure fold over a movement ledger.

    Contract:
        No I/O, no database access, fully deterministic.
    Guarantees:
        - ``fold`` of an empty ledger is zero.
        - ``quantity >= 0`` always; ``raw_balance`` keeps the unclamped sum.
    """

    @staticmethod
    def clamp(raw_balance: Decimal) -> Decimal:
        return raw_balance if raw_balance > _ZERO else _ZERO

    @traced_engine(
        "stock", "1.0",
        fingerprint_fields=("material_id", "movements", "as_of"),
        result_fields=("quantity", "raw_balance"),
    )
    def fold(
        self,
        material_id: UUID,
        movements: Iterable[MovementRecord],
        as_of: datetime,
    ) -> StockLevel:
        """
        Compute stock from movements.

        Args:
            material_id: Material whose ledger is folded.
            movements: Movements of that material, any order.
            as_of: Inclusive cutoff on occurred_at.

        Returns:
            StockLevel with clamped quantity and raw balance.
        """
        applicable = []
        for movement in movements:
            if movement.material_id != material_id:
                raise ValueError(
                    f"Movement {movement.id} belongs to material "
                    f"{movement.material_id}, not {material_id}"
                )
            if movement.occurred_at <= as_of:
                applicable.append(movement)
        applicable.sort(key=lambda m: m.sort_key)

        raw = _ZERO
        for movement in applicable:
            raw += movement.signed_quantity

        level = StockLevel(
            material_id=material_id,
            as_of=as_of,
            quantity=self.clamp(raw),
            raw_balance=raw,
            movement_count=len(applicable),
        )
        if level.is_oversold:
            logger.warning(
                "stock_oversold",
                extra={
                    "material_id": str(material_id),
                    "raw_balance": str(raw),
                    "as_of": as_of.isoformat(),
                },
            )
        return level
