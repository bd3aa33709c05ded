"""
Work Order Module Service (``production_modules.work_orders.service``).

Responsibility
--------------
Orchestrates the work order lifecycle -- creation with availability
warnings, status transitions, and the reconciliation step that turns a
completed order into consumption records and outbound stock movements --
by delegating scaling and feasibility to ``production_engines`` and
persistence to the kernel ``LedgerService`` and ``WorkOrderWriter``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``WorkOrderService`` is the sole public
entry point for work order operations.  Legal transitions are declared in
``production_modules.work_orders.workflows``.

Invariants enforced
-------------------
* Each public write owns the transaction boundary (``commit`` on success,
  ``rollback`` and re-raise on failure).
* Creation never checks stock as a gate; shortages become warnings.
* Completion is all-or-nothing per work order: every consumption record,
  movement, produced quantity and status change of one ``complete`` call
  commits together or not at all.
* Consumption never refuses for lack of stock; a projected negative
  balance is a warning and stock reads clamp to zero.

Failure modes
-------------
* Illegal state change -> ``InvalidTransitionError`` naming both states.
* Malformed input -> ``ValidationError`` subclasses.
* Unknown order / product / material -> ``NotFoundError`` subclasses.
* Store failure or timeout -> ``UnavailableError``; never retried here.

Audit relevance
---------------
Creation, every transition and every completion emit structured log
events carrying the order number, statuses and affected materials.  Each
consumption is kept as an immutable ``ConsumptionRecord`` linked to its
outbound movement.

Usage::

    service = WorkOrderService(session, clock)
    created = service.create_work_order(
        items=[WorkOrderItemRequest(product_id=bread.id, planned_quantity=Decimal("5"))],
        description="Morning batch",
    )
    service.start(created.work_order.id)
    service.complete(created.work_order.id)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from production_engines.scaling import (
    RequirementLine,
    aggregate_requirements,
    scale_formula,
    scale_requirement,
)
from production_kernel.db.base import SYSTEM_ACTOR_ID
from production_kernel.db.engine import store_errors
from production_kernel.db.types import ZERO, ensure_aware, to_quantity
from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.domain.dtos import (
    ConsumptionRecordInfo,
    ProductInfo,
    WorkOrderInfo,
    WorkOrderItemInfo,
)
from production_kernel.domain.values import WorkOrderPriority, WorkOrderStatus
from production_kernel.exceptions import (
    InvalidQuantityError,
    MissingDescriptionError,
    ProductInactiveError,
    ValidationError,
    WorkOrderLockedError,
    WorkOrderNotFoundError,
)
from production_kernel.logging_config import LogContext, get_logger
from production_kernel.models.work_order import WorkOrder, WorkOrderItem
from production_kernel.selectors.material_selector import MaterialSelector
from production_kernel.selectors.work_order_selector import WorkOrderSelector
from production_kernel.services.ledger_service import LedgerService
from production_kernel.services.sequence_service import SequenceService
from production_kernel.services.work_order_writer import WorkOrderWriter
from production_modules.inventory.service import InventoryService
from production_modules.products.service import ProductService
from production_modules.work_orders.config import WorkOrderConfig
from production_modules.work_orders.models import (
    CompletionResult,
    ItemCompletion,
    MaterialAvailability,
    TransitionResult,
    WorkOrderItemRequest,
    WorkOrderResult,
)
from production_modules.work_orders.workflows import WORK_ORDER_WORKFLOW

logger = get_logger("modules.work_orders.service")

# Orders in these states have no consumption and may be deleted
_DELETABLE = (WorkOrderStatus.PENDING, WorkOrderStatus.CANCELLED)


class WorkOrderService:
    """
    Orchestrates work orders through engines and kernel.

    Contract
    --------
    * ``create_work_order`` returns ``WorkOrderResult``; its warnings never
      block creation.
    * ``transition`` returns ``TransitionResult``; a transition to
      ``completed`` runs the reconciliation step and carries its
      ``CompletionResult``.

    Guarantees
    ----------
    * Clock is injectable; "now" stamps actual start/end times and the
      occurred_at of consumption movements.
    * Order numbers come from a locked per-year counter and never repeat.

    Non-goals
    ---------
    * Does NOT reserve stock for pending orders.
    * Does NOT retry on ``UnavailableError``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: WorkOrderConfig | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
        inventory: InventoryService | None = None,
        products: ProductService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or WorkOrderConfig.with_defaults()
        self._actor_id = actor_id

        self._inventory = inventory or InventoryService(session, self._clock, actor_id)
        self._products = products or ProductService(
            session, self._clock, inventory=self._inventory, actor_id=actor_id,
        )

        self._orders = WorkOrderSelector(session)
        self._materials = MaterialSelector(session)
        self._sequences = SequenceService(session)
        self._ledger = LedgerService(session, self._sequences)
        self._writer = WorkOrderWriter(session)

    # =========================================================================
    # Creation
    # =========================================================================

    def create_work_order(
        self,
        items: Iterable[WorkOrderItemRequest],
        description: str | None = None,
        notes: str | None = None,
        priority: WorkOrderPriority | str | None = None,
        planned_start: datetime | None = None,
        planned_end: datetime | None = None,
    ) -> WorkOrderResult:
        """
        Create a pending work order.

        Availability of every item is computed against current stock and
        returned as warnings; creation succeeds whenever validation passes.

        Raises:
            ValidationError: no items, bad priority, end before start.
            MissingDescriptionError: neither description nor notes given.
            InvalidQuantityError: planned quantity <= 0.
            ProductNotFoundError / ProductInactiveError: bad product.
        """
        requests = list(items)
        if not requests:
            raise ValidationError("A work order needs at least one item", field="items")
        if not (description or "").strip() and not (notes or "").strip():
            raise MissingDescriptionError()
        parsed_priority = _parse_priority(priority or self._config.default_priority)
        start = ensure_aware(planned_start) if planned_start is not None else None
        end = ensure_aware(planned_end) if planned_end is not None else None
        if start is not None and end is not None and end < start:
            raise ValidationError(
                "Planned end cannot be before planned start", field="planned_end",
            )
        quantities = []
        for request in requests:
            quantity = to_quantity(request.planned_quantity, "planned_quantity")
            if quantity <= ZERO:
                raise InvalidQuantityError(
                    "planned_quantity", quantity, "planned quantity must be > 0",
                )
            quantities.append(quantity)

        try:
            with store_errors("create_work_order"):
                planned = []
                for request, quantity in zip(requests, quantities):
                    product, lines = self._products.requirement_lines(request.product_id)
                    if not product.is_active:
                        raise ProductInactiveError(str(product.id))
                    planned.append((request, product, lines, quantity))

                order = WorkOrder(
                    order_number=self._next_order_number(self._clock.now()),
                    description=description,
                    notes=notes,
                    status=WORK_ORDER_WORKFLOW.initial_state,
                    priority=parsed_priority.value,
                    planned_start=start,
                    planned_end=end,
                    created_by_id=self._actor_id,
                )
                for line_number, (request, product, _, quantity) in enumerate(planned, start=1):
                    order.items.append(
                        WorkOrderItem(
                            product_id=product.id,
                            line_number=line_number,
                            planned_quantity=quantity,
                            produced_quantity=ZERO,
                            unit=request.unit or product.unit,
                            status=WORK_ORDER_WORKFLOW.initial_state,
                            created_by_id=self._actor_id,
                        )
                    )
                self._session.add(order)
                self._session.flush()

                warnings = self._creation_warnings(
                    [(product, lines, quantity) for _, product, lines, quantity in planned]
                )
                info = WorkOrderInfo.from_model(order)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "work_order_created",
            extra={
                "work_order_id": str(info.id),
                "order_number": info.order_number,
                "item_count": len(info.items),
                "priority": info.priority,
                "warning_count": len(warnings),
            },
        )
        return WorkOrderResult(work_order=info, warnings=tuple(warnings))

    def _next_order_number(self, now: datetime) -> str:
        prefix = self._config.order_number_prefix
        value = self._sequences.next_value(
            SequenceService.work_order_sequence(prefix, now.year)
        )
        return f"{prefix}-{now.year:04d}-{now.month:02d}-{value:0{self._config.sequence_width}d}"

    def _creation_warnings(
        self,
        planned: list[tuple[ProductInfo, list[RequirementLine], Decimal]],
    ) -> list[str]:
        warnings = []
        for product, lines, _ in planned:
            if not lines:
                warnings.append(
                    f"Product '{product.name}' has no formula and is not production-ready"
                )
            for line in lines:
                if not line.is_active:
                    warnings.append(
                        f"Material '{line.material_name}' in the formula of "
                        f"'{product.name}' is inactive"
                    )

        for availability in self._availability(self._requirements(planned)):
            if not availability.is_available:
                warnings.append(_shortage_warning(availability))
        return warnings

    # =========================================================================
    # Availability
    # =========================================================================

    def check_availability(self, work_order_id: UUID) -> list[MaterialAvailability]:
        """
        Requirement versus current stock per material, summed over every
        item of the order.
        """
        with store_errors("check_availability"):
            order = self._orders.get(work_order_id)
        planned = []
        for item in order.items:
            product, lines = self._products.requirement_lines(item.product_id)
            planned.append((product, lines, item.planned_quantity))
        return self._availability(self._requirements(planned))

    def _requirements(
        self,
        planned: list[tuple[ProductInfo, list[RequirementLine], Decimal]],
    ) -> list[RequirementLine]:
        scaled = []
        for product, lines, quantity in planned:
            scaled.extend(scale_formula(lines, quantity, product.base_quantity))
        return aggregate_requirements(scaled)

    def _availability(self, requirements: list[RequirementLine]) -> list[MaterialAvailability]:
        stock_of = self._inventory.stock_levels(line.material_id for line in requirements)
        return [
            MaterialAvailability(
                material_id=line.material_id,
                material_name=line.material_name or str(line.material_id),
                unit=line.unit or "",
                required=line.required_quantity,
                available=stock_of[line.material_id],
            )
            for line in requirements
        ]

    # =========================================================================
    # Transitions
    # =========================================================================

    def transition(
        self,
        work_order_id: UUID,
        target_status: WorkOrderStatus | str,
        completion: Mapping[UUID, ItemCompletion] | None = None,
    ) -> TransitionResult:
        """
        Move a work order to ``target_status``.

        ``completion`` (per-item produced quantities and actual consumption)
        is only accepted when the target is ``completed``.

        Raises:
            InvalidTransitionError: the workflow has no such transition.
            ValidationError: unknown status, or completion data for a
                non-completing transition.
        """
        target = _parse_status(target_status)
        if target is WorkOrderStatus.COMPLETED:
            result = self.complete(work_order_id, completion)
            return TransitionResult(
                work_order=result.work_order,
                from_status=WorkOrderStatus.IN_PROGRESS,
                to_status=WorkOrderStatus.COMPLETED,
                completion=result,
            )
        if completion is not None:
            raise ValidationError(
                "Completion data is only accepted when completing a work order",
                field="completion",
            )

        with LogContext.bind(work_order_id=str(work_order_id), actor_id=str(self._actor_id)):
            try:
                with store_errors("transition_work_order"):
                    order = self._get_order_model(work_order_id)
                    current = WorkOrderStatus(order.status)
                    WORK_ORDER_WORKFLOW.transition_for(current.value, target.value)
                    info = self._writer.update_status(
                        work_order_id,
                        target,
                        actual_start=(
                            self._clock.now() if target is WorkOrderStatus.IN_PROGRESS else None
                        ),
                        actor_id=self._actor_id,
                    )
                    self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "work_order_transitioned",
                extra={
                    "order_number": info.order_number,
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )
        return TransitionResult(work_order=info, from_status=current, to_status=target)

    def start(self, work_order_id: UUID) -> TransitionResult:
        return self.transition(work_order_id, WorkOrderStatus.IN_PROGRESS)

    def cancel(self, work_order_id: UUID) -> TransitionResult:
        return self.transition(work_order_id, WorkOrderStatus.CANCELLED)

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def complete(
        self,
        work_order_id: UUID,
        per_item: Mapping[UUID, ItemCompletion] | None = None,
    ) -> CompletionResult:
        """
        Reconcile consumption and complete an in-progress work order.

        For every item, caller-supplied consumption is used as given; formula
        materials the caller did not mention fall back to the formula
        requirement scaled to the planned quantity; materials outside the
        formula are accepted as substitutes.  Items missing from
        ``per_item`` complete with their planned quantity and the full
        formula consumption.

        Each consumed material gets a ``ConsumptionRecord`` and, when the
        actual quantity is positive, an outbound movement at "now".
        Everything commits together; any failure leaves the order
        ``in_progress`` with nothing written.

        Raises:
            InvalidTransitionError: the order is not in progress.
            ValidationError: unknown item id, negative quantity, or a
                material listed twice for one item.
            MaterialNotFoundError: consumption names an unknown material.
        """
        completions = dict(per_item or {})

        with LogContext.bind(work_order_id=str(work_order_id), actor_id=str(self._actor_id)):
            try:
                with store_errors("complete_work_order"):
                    order = self._get_order_model(work_order_id)
                    WORK_ORDER_WORKFLOW.transition_for(
                        order.status, WorkOrderStatus.COMPLETED.value,
                    )
                    item_ids = {item.id for item in order.items}
                    unknown = [str(item_id) for item_id in completions if item_id not in item_ids]
                    if unknown:
                        raise ValidationError(
                            f"Item(s) {', '.join(unknown)} do not belong to work order "
                            f"{order.order_number}",
                            field="per_item",
                        )

                    now = self._clock.now()
                    records: list[ConsumptionRecordInfo] = []
                    warnings: list[str] = []
                    affected: dict[UUID, None] = {}

                    for item in list(order.items):
                        if WorkOrderStatus(item.status).is_terminal:
                            continue
                        completion = completions.get(item.id, ItemCompletion())
                        produced = (
                            item.planned_quantity
                            if completion.produced_quantity is None
                            else to_quantity(completion.produced_quantity)
                        )
                        if produced < ZERO:
                            raise InvalidQuantityError(
                                "produced_quantity", produced,
                                "produced quantity cannot be negative",
                            )

                        for material_id, planned, actual in self._consumption_plan(
                            item, completion,
                        ):
                            material = self._materials.get(material_id)
                            available = self._inventory.current_stock(material_id, as_of=now)
                            if actual > available:
                                warnings.append(
                                    f"Insufficient stock for '{material.name}': consuming "
                                    f"{_fmt(actual)} {material.unit}, available "
                                    f"{_fmt(available)} {material.unit}"
                                )
                            result = self._ledger.persist_consumption(
                                work_order_item_id=item.id,
                                material_id=material_id,
                                planned=planned,
                                actual=actual,
                                occurred_at=now,
                                notes=f"Consumption for work order {order.order_number}",
                                actor_id=self._actor_id,
                            )
                            records.append(result.record)
                            affected.update(dict.fromkeys(result.affected_material_ids))

                        self._writer.record_production(item.id, produced, self._actor_id)

                    info = self._writer.update_status(
                        work_order_id,
                        WorkOrderStatus.COMPLETED,
                        actual_end=now,
                        actor_id=self._actor_id,
                    )
                    self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning(
                    "work_order_completion_rolled_back",
                    extra={"work_order_id": str(work_order_id)},
                )
                raise

            logger.info(
                "work_order_completed",
                extra={
                    "order_number": info.order_number,
                    "consumption_count": len(records),
                    "affected_material_count": len(affected),
                    "warning_count": len(warnings),
                },
            )
        return CompletionResult(
            work_order=info,
            consumption_records=tuple(records),
            warnings=tuple(warnings),
            affected_material_ids=tuple(affected),
        )

    def _consumption_plan(
        self,
        item: WorkOrderItem,
        completion: ItemCompletion,
    ) -> list[tuple[UUID, Decimal, Decimal]]:
        """(material_id, planned, actual) per material, formula order first."""
        product, lines = self._products.requirement_lines(item.product_id)
        planned = {
            line.material_id: scale_requirement(
                line.required_quantity, item.planned_quantity, product.base_quantity,
            )
            for line in lines
        }

        actual: dict[UUID, Decimal] = {}
        for entry in completion.consumption or ():
            quantity = to_quantity(entry.actual_quantity, "actual_quantity")
            if quantity < ZERO:
                raise InvalidQuantityError(
                    "actual_quantity", quantity, "consumption cannot be negative",
                )
            if entry.material_id in actual:
                raise ValidationError(
                    f"Material {entry.material_id} is listed twice for item {item.id}",
                    field="consumption",
                )
            actual[entry.material_id] = quantity

        plan = [
            (material_id, required, actual.get(material_id, required))
            for material_id, required in planned.items()
        ]
        plan.extend(
            (material_id, ZERO, quantity)
            for material_id, quantity in actual.items()
            if material_id not in planned
        )
        return plan

    # =========================================================================
    # Read side and deletion
    # =========================================================================

    def get_work_order(self, work_order_id: UUID) -> WorkOrderInfo:
        with store_errors("get_work_order"):
            return self._orders.get(work_order_id)

    def get_items(self, work_order_id: UUID) -> list[WorkOrderItemInfo]:
        with store_errors("get_work_order_items"):
            return self._orders.get_items(work_order_id)

    def list_work_orders(
        self, status: WorkOrderStatus | str | None = None,
    ) -> list[WorkOrderInfo]:
        """Active orders first, then by planned start and order number."""
        parsed = _parse_status(status) if status is not None else None
        with store_errors("list_work_orders"):
            return self._orders.list_work_orders(status=parsed)

    def get_consumption(self, work_order_id: UUID) -> list[ConsumptionRecordInfo]:
        with store_errors("get_consumption"):
            self._orders.get(work_order_id)
            return self._orders.get_consumption(work_order_id)

    def delete_work_order(self, work_order_id: UUID) -> None:
        """
        Delete a pending or cancelled work order with its items.

        Raises:
            WorkOrderLockedError: the order was started.
        """
        try:
            with store_errors("delete_work_order"):
                order = self._get_order_model(work_order_id)
                status = WorkOrderStatus(order.status)
                if status not in _DELETABLE:
                    raise WorkOrderLockedError(str(work_order_id), status.value)
                order_number = order.order_number
                self._session.delete(order)
                self._session.flush()
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "work_order_deleted",
            extra={"work_order_id": str(work_order_id), "order_number": order_number},
        )

    def _get_order_model(self, work_order_id: UUID) -> WorkOrder:
        order = self._session.get(WorkOrder, work_order_id)
        if order is None:
            raise WorkOrderNotFoundError(str(work_order_id))
        return order


def _parse_status(status: WorkOrderStatus | str) -> WorkOrderStatus:
    if isinstance(status, WorkOrderStatus):
        return status
    try:
        return WorkOrderStatus(str(status).lower())
    except ValueError:
        raise ValidationError(f"Unknown work order status '{status}'", field="status") from None


def _parse_priority(priority: WorkOrderPriority | str) -> WorkOrderPriority:
    if isinstance(priority, WorkOrderPriority):
        return priority
    try:
        return WorkOrderPriority(str(priority).lower())
    except ValueError:
        raise ValidationError(f"Unknown priority '{priority}'", field="priority") from None


def _fmt(quantity: Decimal) -> str:
    return f"{quantity.normalize():f}"


def _shortage_warning(availability: MaterialAvailability) -> str:
    unit = availability.unit
    return (
        f"Insufficient stock for '{availability.material_name}': required "
        f"{_fmt(availability.required)} {unit}, available "
        f"{_fmt(availability.available)} {unit}, short {_fmt(availability.shortage)} {unit}"
    )
