"""
Module: production_kernel.selectors.movement_selector
Responsibility: Read-only access to the stock movement ledger.  The ledger is
    the only source of truth for stock; there is no stored balance anywhere
    except the recomputation cache.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - list_movements() returns movements in (occurred_at, seq) order, the
      total order used when folding the ledger.
    - Movements with occurred_at after ``as_of`` are excluded.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from production_kernel.domain.dtos import MovementRecord, StockSnapshotInfo
from production_kernel.domain.values import MovementDirection
from production_kernel.models.movement import Movement
from production_kernel.models.stock_snapshot import StockSnapshot
from production_kernel.selectors.base import BaseSelector


class MovementSelector(BaseSelector[Movement]):
    """Selector for ledger movements and cached stock snapshots."""

    def list_movements(
        self,
        material_id: UUID,
        as_of: datetime | None = None,
    ) -> list[MovementRecord]:
        """
        All movements of a material in ledger order.

        Args:
            material_id: Material whose ledger is read.
            as_of: Optional inclusive cutoff on occurred_at.

        Returns:
            MovementRecords ordered by (occurred_at ASC, seq ASC).
        """
        query = select(Movement).where(Movement.material_id == material_id)
        if as_of is not None:
            query = query.where(Movement.occurred_at <= as_of)
        query = query.order_by(Movement.occurred_at, Movement.seq)
        return [
            MovementRecord.from_model(m)
            for m in self.session.execute(query).scalars()
        ]

    def recent_movements(
        self,
        material_id: UUID,
        direction: MovementDirection | None = None,
        limit: int = 100,
    ) -> list[MovementRecord]:
        """Newest-first history for display."""
        query = select(Movement).where(Movement.material_id == material_id)
        if direction is not None:
            query = query.where(Movement.direction == direction.value)
        query = query.order_by(Movement.occurred_at.desc(), Movement.seq.desc()).limit(limit)
        return [
            MovementRecord.from_model(m)
            for m in self.session.execute(query).scalars()
        ]

    def movements_for_item(self, work_order_item_id: UUID) -> list[MovementRecord]:
        """Outbound movements written when a work order item completed."""
        query = (
            select(Movement)
            .where(Movement.work_order_item_id == work_order_item_id)
            .order_by(Movement.seq)
        )
        return [
            MovementRecord.from_model(m)
            for m in self.session.execute(query).scalars()
        ]

    def count_for_material(self, material_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Movement.id)).where(Movement.material_id == material_id)
        ).scalar_one()

    def get_snapshot(self, material_id: UUID) -> StockSnapshotInfo | None:
        """Cached stock written by the last recomputation pass, if any."""
        snapshot = self.session.execute(
            select(StockSnapshot).where(StockSnapshot.material_id == material_id)
        ).scalar_one_or_none()
        return StockSnapshotInfo.from_model(snapshot) if snapshot else None
