"""Read-only queries over work orders, their items and consumption records."""

from uuid import UUID

from sqlalchemy import case, select

from production_kernel.domain.dtos import (
    ConsumptionRecordInfo,
    WorkOrderInfo,
    WorkOrderItemInfo,
)
from production_kernel.domain.values import WorkOrderStatus
from production_kernel.exceptions import WorkOrderNotFoundError
from production_kernel.models.work_order import (
    ConsumptionRecord,
    WorkOrder,
    WorkOrderItem,
)
from production_kernel.selectors.base import BaseSelector

# Active orders first, finished ones last
_STATUS_RANK = case(
    {
        WorkOrderStatus.IN_PROGRESS.value: 0,
        WorkOrderStatus.PENDING.value: 1,
        WorkOrderStatus.COMPLETED.value: 2,
        WorkOrderStatus.CANCELLED.value: 3,
    },
    value=WorkOrder.status,
    else_=4,
)


class WorkOrderSelector(BaseSelector[WorkOrder]):

    def get(self, work_order_id: UUID) -> WorkOrderInfo:
        """
        Raises:
            WorkOrderNotFoundError: if no work order has this id.
        """
        order = self._require(WorkOrder, work_order_id, WorkOrderNotFoundError)
        return WorkOrderInfo.from_model(order)

    def get_items(self, work_order_id: UUID) -> list[WorkOrderItemInfo]:
        """
        Items of a work order in line order.

        Raises:
            WorkOrderNotFoundError: if no work order has this id.
        """
        self._require(WorkOrder, work_order_id, WorkOrderNotFoundError)
        query = (
            select(WorkOrderItem)
            .where(WorkOrderItem.work_order_id == work_order_id)
            .order_by(WorkOrderItem.line_number)
        )
        return [
            WorkOrderItemInfo.from_model(item)
            for item in self.session.execute(query).scalars()
        ]

    def list_work_orders(
        self, status: WorkOrderStatus | None = None,
    ) -> list[WorkOrderInfo]:
        query = select(WorkOrder)
        if status is not None:
            query = query.where(WorkOrder.status == status.value)
        query = query.order_by(
            _STATUS_RANK,
            WorkOrder.planned_start.is_(None),
            WorkOrder.planned_start,
            WorkOrder.order_number,
        )
        return [WorkOrderInfo.from_model(o) for o in self.session.execute(query).scalars()]

    def get_consumption(self, work_order_id: UUID) -> list[ConsumptionRecordInfo]:
        query = (
            select(ConsumptionRecord)
            .join(WorkOrderItem, ConsumptionRecord.work_order_item_id == WorkOrderItem.id)
            .where(WorkOrderItem.work_order_id == work_order_id)
            .order_by(WorkOrderItem.line_number, ConsumptionRecord.created_at)
        )
        return [
            ConsumptionRecordInfo.from_model(r)
            for r in self.session.execute(query).scalars()
        ]
