"""
Value enums shared by models, DTOs, engines and modules.

Stored as plain strings in the database; the str mixin keeps comparisons
against raw column values working.
"""

from enum import Enum


class MovementDirection(str, Enum):
    """Sign of a ledger movement: IN adds stock, OUT removes it."""

    IN = "in"
    OUT = "out"

    @property
    def sign(self) -> int:
        return 1 if self is MovementDirection.IN else -1


class WorkOrderStatus(str, Enum):
    """Lifecycle status shared by work orders and their items."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED)


class WorkOrderPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
