"""ORM models for the production kernel."""

from production_kernel.models.material import Material
from production_kernel.models.movement import Movement
from production_kernel.models.product import FormulaLine, Product
from production_kernel.models.sequence import SequenceCounter
from production_kernel.models.stock_snapshot import StockSnapshot
from production_kernel.models.work_order import (
    ConsumptionRecord,
    WorkOrder,
    WorkOrderItem,
)

__all__ = [
    "Material",
    "Movement",
    "Product",
    "FormulaLine",
    "SequenceCounter",
    "StockSnapshot",
    "WorkOrder",
    "WorkOrderItem",
    "ConsumptionRecord",
]
