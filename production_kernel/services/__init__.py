"""Services for the production kernel (write side)."""

from production_kernel.services.ledger_service import LedgerService, parse_direction
from production_kernel.services.sequence_service import SequenceService
from production_kernel.services.snapshot_service import SnapshotService
from production_kernel.services.work_order_writer import WorkOrderWriter

__all__ = [
    "LedgerService",
    "parse_direction",
    "SequenceService",
    "SnapshotService",
    "WorkOrderWriter",
]
