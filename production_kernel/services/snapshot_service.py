"""
SnapshotService -- writes the stock cache.

Only the recomputation pass calls this.  On-demand stock reads never write
snapshots, so a stale cache can never leak into a ledger-derived figure.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from production_kernel.domain.dtos import StockSnapshotInfo
from production_kernel.logging_config import get_logger
from production_kernel.models.stock_snapshot import StockSnapshot
from production_kernel.services.base import BaseService

logger = get_logger("services.snapshot")


class SnapshotService(BaseService[StockSnapshot]):

    def upsert(
        self,
        material_id: UUID,
        quantity: Decimal,
        raw_balance: Decimal,
        movement_count: int,
        computed_at: datetime,
    ) -> StockSnapshotInfo:
        snapshot = self.session.execute(
            select(StockSnapshot).where(StockSnapshot.material_id == material_id)
        ).scalar_one_or_none()
        if snapshot is None:
            snapshot = StockSnapshot(material_id=material_id)
            self.session.add(snapshot)
        snapshot.quantity = quantity
        snapshot.raw_balance = raw_balance
        snapshot.movement_count = movement_count
        snapshot.computed_at = computed_at
        self.session.flush()

        logger.debug(
            "stock_snapshot_written",
            extra={
                "material_id": str(material_id),
                "quantity": str(quantity),
                "raw_balance": str(raw_balance),
            },
        )
        return StockSnapshotInfo.from_model(snapshot)

    def delete_for_material(self, material_id: UUID) -> None:
        snapshot = self.session.execute(
            select(StockSnapshot).where(StockSnapshot.material_id == material_id)
        ).scalar_one_or_none()
        if snapshot is not None:
            self.session.delete(snapshot)
            self.session.flush()
