"""Selectors for the production kernel (read side)."""

from production_kernel.selectors.formula_selector import FormulaSelector
from production_kernel.selectors.material_selector import MaterialSelector
from production_kernel.selectors.movement_selector import MovementSelector
from production_kernel.selectors.work_order_selector import WorkOrderSelector

__all__ = [
    "FormulaSelector",
    "MaterialSelector",
    "MovementSelector",
    "WorkOrderSelector",
]
