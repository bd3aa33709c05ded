"""
Pure domain layer.

Data transfer objects, value enums and the clock abstraction, with NO
dependencies on the ORM, the database or I/O (SystemClock excepted).
"""

from production_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
)
from production_kernel.domain.dtos import (
    AppendResult,
    ConsumptionRecordInfo,
    ConsumptionResult,
    FormulaLineInfo,
    MaterialInfo,
    MovementRecord,
    ProductInfo,
    StockSnapshotInfo,
    WorkOrderInfo,
    WorkOrderItemInfo,
)
from production_kernel.domain.values import (
    MovementDirection,
    WorkOrderPriority,
    WorkOrderStatus,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AppendResult",
    "ConsumptionRecordInfo",
    "ConsumptionResult",
    "FormulaLineInfo",
    "MaterialInfo",
    "MovementRecord",
    "ProductInfo",
    "StockSnapshotInfo",
    "WorkOrderInfo",
    "WorkOrderItemInfo",
    "MovementDirection",
    "WorkOrderPriority",
    "WorkOrderStatus",
]
