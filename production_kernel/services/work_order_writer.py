"""
WorkOrderWriter -- status and production updates for work orders.

Responsibility:
    Persists the outcome of a work order transition that was already
    validated by the workflow: new status on the order and its open items,
    start/end timestamps, and produced quantities.

Architecture position:
    Kernel > Services.  Flushes, never commits.  Does not decide whether a
    transition is legal; production_modules.work_orders.workflows does.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from production_kernel.db.base import SYSTEM_ACTOR_ID
from production_kernel.db.types import ZERO, to_quantity
from production_kernel.domain.dtos import WorkOrderInfo
from production_kernel.domain.values import WorkOrderStatus
from production_kernel.exceptions import (
    InvalidQuantityError,
    WorkOrderItemNotFoundError,
    WorkOrderNotFoundError,
)
from production_kernel.logging_config import get_logger
from production_kernel.models.work_order import WorkOrder, WorkOrderItem
from production_kernel.services.base import BaseService

logger = get_logger("services.work_order_writer")


class WorkOrderWriter(BaseService[WorkOrder]):

    def update_status(
        self,
        work_order_id: UUID,
        new_status: WorkOrderStatus,
        actual_start: datetime | None = None,
        actual_end: datetime | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ) -> WorkOrderInfo:
        """
        Set the status of an order and of every item not already terminal.

        Timestamps are only written when given; existing values are kept.
        """
        order = self._require_for_update(WorkOrder, work_order_id, WorkOrderNotFoundError)

        previous = order.status
        order.status = new_status.value
        order.updated_by_id = actor_id
        if actual_start is not None:
            order.actual_start = actual_start
        if actual_end is not None:
            order.actual_end = actual_end

        for item in order.items:
            if not WorkOrderStatus(item.status).is_terminal:
                item.status = new_status.value
                item.updated_by_id = actor_id

        self.session.flush()
        logger.info(
            "work_order_status_updated",
            extra={
                "work_order_id": str(work_order_id),
                "order_number": order.order_number,
                "from_status": previous,
                "to_status": new_status.value,
            },
        )
        return WorkOrderInfo.from_model(order)

    def record_production(
        self,
        work_order_item_id: UUID,
        produced_quantity: Decimal | int | str,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ) -> None:
        """Set the produced quantity of an item."""
        produced = to_quantity(produced_quantity, "produced_quantity")
        if produced < ZERO:
            raise InvalidQuantityError(
                "produced_quantity", produced, "produced quantity cannot be negative",
            )
        item = self._require_for_update(
            WorkOrderItem, work_order_item_id, WorkOrderItemNotFoundError,
        )
        item.produced_quantity = produced
        item.updated_by_id = actor_id
        self.session.flush()
