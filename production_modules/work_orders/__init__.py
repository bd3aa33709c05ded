"""
Work Orders Module (``production_modules.work_orders``).

Responsibility
--------------
Production work orders: creation with non-blocking availability warnings,
the pending -> in_progress -> completed/cancelled state machine, and the
reconciliation step that records actual consumption against the ledger
when an order completes.

Architecture position
---------------------
**Modules layer** -- declarative workflow, config schema, value objects,
and a service facade over ``production_kernel`` and ``production_engines``.

Invariants enforced
-------------------
* Only the transitions declared in ``WORK_ORDER_WORKFLOW`` are allowed.
* Completion commits all of an order's consumption or none of it.
"""

from production_modules.work_orders.config import WorkOrderConfig
from production_modules.work_orders.models import (
    ActualConsumption,
    CompletionResult,
    ItemCompletion,
    MaterialAvailability,
    TransitionResult,
    WorkOrderItemRequest,
    WorkOrderResult,
)
from production_modules.work_orders.service import WorkOrderService
from production_modules.work_orders.workflows import WORK_ORDER_WORKFLOW

__all__ = [
    "ActualConsumption",
    "CompletionResult",
    "ItemCompletion",
    "MaterialAvailability",
    "TransitionResult",
    "WorkOrderItemRequest",
    "WorkOrderResult",
    "WorkOrderService",
    "WorkOrderConfig",
    "WORK_ORDER_WORKFLOW",
]
