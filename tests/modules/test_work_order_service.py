"""
Tests for WorkOrderService: creation, availability, transitions and deletion.

Completion and consumption reconciliation live in test_reconciliation.py.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from production_kernel.domain.values import WorkOrderPriority, WorkOrderStatus
from production_kernel.exceptions import (
    InvalidQuantityError,
    InvalidTransitionError,
    MissingDescriptionError,
    ProductInactiveError,
    ProductNotFoundError,
    ValidationError,
    WorkOrderLockedError,
    WorkOrderNotFoundError,
)
from production_modules.work_orders import (
    WORK_ORDER_WORKFLOW,
    ActualConsumption,
    ItemCompletion,
    WorkOrderConfig,
    WorkOrderItemRequest,
    WorkOrderService,
)


@pytest.fixture
def flour(create_material):
    return create_material(code="MP-FLOUR", name="Flour", unit="kg")


@pytest.fixture
def bread(create_product, flour):
    return create_product(name="Bread", formula=[(flour.id, "7")])


def _order(service, product, quantity="5", **kwargs):
    kwargs.setdefault("description", "Morning batch")
    return service.create_work_order(
        items=[WorkOrderItemRequest(product_id=product.id, planned_quantity=Decimal(quantity))],
        **kwargs,
    )


class TestCreateWorkOrder:

    def test_created_pending_with_items(self, work_order_service, bread, flour, receive):
        receive(flour.id, "100")

        result = _order(work_order_service, bread, quantity="5")

        order = result.work_order
        assert order.status is WorkOrderStatus.PENDING
        assert order.priority == WorkOrderPriority.NORMAL.value
        assert order.description == "Morning batch"
        assert len(order.items) == 1
        item = order.items[0]
        assert item.product_id == bread.id
        assert item.planned_quantity == Decimal("5")
        assert item.produced_quantity == Decimal("0")
        assert item.unit == bread.unit
        assert item.status is WorkOrderStatus.PENDING
        assert item.line_number == 1
        assert result.warnings == ()

    def test_order_numbers_follow_prefix_year_month_counter(self, work_order_service, bread):
        first = _order(work_order_service, bread).work_order
        second = _order(work_order_service, bread).work_order

        assert first.order_number == "OT-2024-01-001"
        assert second.order_number == "OT-2024-01-002"

    def test_counter_restarts_each_year(self, work_order_service, bread, deterministic_clock):
        _order(work_order_service, bread)
        deterministic_clock.set_time(datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.utc))

        order = _order(work_order_service, bread).work_order

        assert order.order_number == "OT-2025-03-001"

    def test_configured_prefix_and_width(
        self, session, deterministic_clock, test_actor_id, bread,
    ):
        service = WorkOrderService(
            session,
            deterministic_clock,
            config=WorkOrderConfig(order_number_prefix="WO", sequence_width=5),
            actor_id=test_actor_id,
        )

        order = _order(service, bread).work_order

        assert order.order_number == "WO-2024-01-00001"

    def test_several_items_get_line_numbers(self, work_order_service, bread, create_product):
        cake = create_product(name="Cake", unit="kg")

        order = work_order_service.create_work_order(
            items=[
                WorkOrderItemRequest(product_id=bread.id, planned_quantity=Decimal("2")),
                WorkOrderItemRequest(product_id=cake.id, planned_quantity=Decimal("1.5")),
            ],
            notes="Notes are enough without a description",
            priority="high",
        ).work_order

        assert [item.line_number for item in order.items] == [1, 2]
        assert order.items[1].unit == "kg"
        assert order.priority == "high"

    def test_shortage_is_a_warning_not_an_error(self, work_order_service, bread, flour, receive):
        receive(flour.id, "20")

        result = _order(work_order_service, bread, quantity="5")

        assert result.work_order.status is WorkOrderStatus.PENDING
        assert result.warnings == (
            "Insufficient stock for 'Flour': required 35 kg, available 20 kg, short 15 kg",
        )

    def test_requirements_are_summed_across_items(
        self, work_order_service, bread, flour, receive,
    ):
        receive(flour.id, "50")

        result = work_order_service.create_work_order(
            items=[
                WorkOrderItemRequest(product_id=bread.id, planned_quantity=Decimal("4")),
                WorkOrderItemRequest(product_id=bread.id, planned_quantity=Decimal("4")),
            ],
            description="Two lines of bread",
        )

        assert result.warnings == (
            "Insufficient stock for 'Flour': required 56 kg, available 50 kg, short 6 kg",
        )

    def test_product_without_formula_warns(self, work_order_service, create_product):
        empty = create_product(name="Mystery")

        result = _order(work_order_service, empty)

        assert result.warnings == ("Product 'Mystery' has no formula and is not production-ready",)

    def test_inactive_material_warns(
        self, work_order_service, inventory_service, bread, flour, receive,
    ):
        receive(flour.id, "100")
        inventory_service.set_material_active(flour.id, False)

        result = _order(work_order_service, bread)

        assert result.warnings == ("Material 'Flour' in the formula of 'Bread' is inactive",)

    def test_creation_is_logged(self, work_order_service, bread, captured_logs):
        order = _order(work_order_service, bread).work_order

        events = [r for r in captured_logs() if r["message"] == "work_order_created"]
        assert events[0]["order_number"] == order.order_number
        assert events[0]["item_count"] == 1


class TestCreateValidation:

    def test_no_items(self, work_order_service):
        with pytest.raises(ValidationError):
            work_order_service.create_work_order(items=[], description="Nothing")

    def test_missing_description_and_notes(self, work_order_service, bread):
        with pytest.raises(MissingDescriptionError) as exc_info:
            _order(work_order_service, bread, description="  ", notes=None)

        assert exc_info.value.code == "MISSING_DESCRIPTION"

    @pytest.mark.parametrize("quantity", ["0", "-2", "NaN", "Infinity"])
    def test_planned_quantity_must_be_positive_and_finite(self, work_order_service, bread, quantity):
        with pytest.raises(InvalidQuantityError):
            _order(work_order_service, bread, quantity=quantity)

    def test_unknown_priority(self, work_order_service, bread):
        with pytest.raises(ValidationError, match="priority"):
            _order(work_order_service, bread, priority="whenever")

    def test_end_before_start(self, work_order_service, bread, deterministic_clock):
        start = deterministic_clock.now()

        with pytest.raises(ValidationError):
            _order(
                work_order_service, bread,
                planned_start=start, planned_end=start - timedelta(hours=1),
            )

    def test_unknown_product(self, work_order_service):
        with pytest.raises(ProductNotFoundError):
            work_order_service.create_work_order(
                items=[WorkOrderItemRequest(product_id=uuid4(), planned_quantity=Decimal("1"))],
                description="Ghost product",
            )

    def test_inactive_product(self, work_order_service, product_service, bread):
        product_service.set_product_active(bread.id, False)

        with pytest.raises(ProductInactiveError):
            _order(work_order_service, bread)

    def test_failed_creation_writes_nothing(self, work_order_service, bread):
        with pytest.raises(ProductNotFoundError):
            work_order_service.create_work_order(
                items=[
                    WorkOrderItemRequest(product_id=bread.id, planned_quantity=Decimal("1")),
                    WorkOrderItemRequest(product_id=uuid4(), planned_quantity=Decimal("1")),
                ],
                description="Half valid",
            )

        assert work_order_service.list_work_orders() == []


class TestCheckAvailability:

    def test_availability_per_material(
        self, work_order_service, create_product, create_material, receive,
    ):
        flour = create_material(name="Flour")
        water = create_material(name="Water", unit="L")
        receive(flour.id, "100")
        receive(water.id, "2")
        bread = create_product(
            name="Bread", base_quantity="10", formula=[(flour.id, "5"), (water.id, "3")],
        )
        order = _order(work_order_service, bread, quantity="20").work_order

        availability = work_order_service.check_availability(order.id)

        assert [a.material_id for a in availability] == [flour.id, water.id]
        assert availability[0].required == Decimal("10")
        assert availability[0].is_available is True
        assert availability[1].required == Decimal("6")
        assert availability[1].available == Decimal("2")
        assert availability[1].shortage == Decimal("4")
        assert availability[1].unit == "L"

    def test_unknown_order(self, work_order_service):
        with pytest.raises(WorkOrderNotFoundError):
            work_order_service.check_availability(uuid4())


class TestTransitions:

    def test_start_stamps_actual_start(self, work_order_service, bread, deterministic_clock):
        order = _order(work_order_service, bread).work_order
        deterministic_clock.advance(300)

        result = work_order_service.start(order.id)

        assert result.from_status is WorkOrderStatus.PENDING
        assert result.to_status is WorkOrderStatus.IN_PROGRESS
        assert result.work_order.status is WorkOrderStatus.IN_PROGRESS
        assert result.work_order.actual_start == deterministic_clock.now()
        assert result.work_order.items[0].status is WorkOrderStatus.IN_PROGRESS
        assert result.completion is None
        assert result.warnings == ()

    def test_transition_accepts_status_strings(self, work_order_service, bread):
        order = _order(work_order_service, bread).work_order

        result = work_order_service.transition(order.id, "in_progress")

        assert result.to_status is WorkOrderStatus.IN_PROGRESS

    @pytest.mark.parametrize("started", [False, True])
    def test_cancel(self, work_order_service, bread, started):
        order = _order(work_order_service, bread).work_order
        if started:
            work_order_service.start(order.id)

        result = work_order_service.cancel(order.id)

        assert result.work_order.status is WorkOrderStatus.CANCELLED
        assert result.work_order.items[0].status is WorkOrderStatus.CANCELLED

    def test_pending_cannot_complete(self, work_order_service, bread):
        order = _order(work_order_service, bread).work_order

        with pytest.raises(InvalidTransitionError) as exc_info:
            work_order_service.transition(order.id, WorkOrderStatus.COMPLETED)

        assert exc_info.value.current_status == "pending"
        assert exc_info.value.requested_status == "completed"

    def test_terminal_states_are_final(self, work_order_service, bread):
        order = _order(work_order_service, bread).work_order
        work_order_service.cancel(order.id)

        for target in ("pending", "in_progress", "completed", "cancelled"):
            with pytest.raises(InvalidTransitionError):
                work_order_service.transition(order.id, target)

        assert work_order_service.get_work_order(order.id).status is WorkOrderStatus.CANCELLED

    def test_no_way_back_to_pending(self, work_order_service, bread):
        order = _order(work_order_service, bread).work_order
        work_order_service.start(order.id)

        with pytest.raises(InvalidTransitionError):
            work_order_service.transition(order.id, "pending")

    def test_unknown_status(self, work_order_service, bread):
        order = _order(work_order_service, bread).work_order

        with pytest.raises(ValidationError, match="status"):
            work_order_service.transition(order.id, "paused")

    def test_completion_data_only_when_completing(self, work_order_service, bread, flour):
        order = _order(work_order_service, bread).work_order
        completion = {
            order.items[0].id: ItemCompletion(
                consumption=(ActualConsumption(flour.id, Decimal("1")),),
            ),
        }

        with pytest.raises(ValidationError, match="Completion data"):
            work_order_service.transition(order.id, "in_progress", completion)

    def test_unknown_order(self, work_order_service):
        with pytest.raises(WorkOrderNotFoundError):
            work_order_service.start(uuid4())

    def test_transition_is_logged_with_context(self, work_order_service, bread, captured_logs):
        order = _order(work_order_service, bread).work_order

        work_order_service.start(order.id)

        events = [r for r in captured_logs() if r["message"] == "work_order_transitioned"]
        assert events[0]["from_status"] == "pending"
        assert events[0]["to_status"] == "in_progress"
        assert events[0]["work_order_id"] == str(order.id)


class TestWorkflowDefinition:

    def test_declared_transitions(self):
        assert WORK_ORDER_WORKFLOW.initial_state == "pending"
        assert set(WORK_ORDER_WORKFLOW.allowed_targets("pending")) == {"in_progress", "cancelled"}
        assert set(WORK_ORDER_WORKFLOW.allowed_targets("in_progress")) == {"completed", "cancelled"}
        assert WORK_ORDER_WORKFLOW.allowed_targets("completed") == ()
        assert WORK_ORDER_WORKFLOW.allowed_targets("cancelled") == ()

    def test_only_completion_posts_consumption(self):
        posting = [t for t in WORK_ORDER_WORKFLOW.transitions if t.posts_consumption]

        assert [(t.from_state, t.to_state) for t in posting] == [("in_progress", "completed")]
        assert posting[0].guard is not None


class TestListAndRead:

    def test_active_orders_first(self, work_order_service, bread):
        pending = _order(work_order_service, bread).work_order
        running = _order(work_order_service, bread).work_order
        cancelled = _order(work_order_service, bread).work_order
        work_order_service.start(running.id)
        work_order_service.cancel(cancelled.id)

        orders = work_order_service.list_work_orders()

        assert [o.id for o in orders] == [running.id, pending.id, cancelled.id]

    def test_status_filter(self, work_order_service, bread):
        pending = _order(work_order_service, bread).work_order
        running = _order(work_order_service, bread).work_order
        work_order_service.start(running.id)

        assert [o.id for o in work_order_service.list_work_orders("pending")] == [pending.id]

    def test_get_items(self, work_order_service, bread):
        order = _order(work_order_service, bread).work_order

        items = work_order_service.get_items(order.id)

        assert [item.id for item in items] == [order.items[0].id]

    def test_unknown_order(self, work_order_service):
        with pytest.raises(WorkOrderNotFoundError):
            work_order_service.get_work_order(uuid4())


class TestDeleteWorkOrder:

    @pytest.mark.parametrize("cancel_first", [False, True])
    def test_pending_or_cancelled_can_be_deleted(self, work_order_service, bread, cancel_first):
        order = _order(work_order_service, bread).work_order
        if cancel_first:
            work_order_service.cancel(order.id)

        work_order_service.delete_work_order(order.id)

        with pytest.raises(WorkOrderNotFoundError):
            work_order_service.get_work_order(order.id)

    def test_started_order_is_locked(self, work_order_service, bread):
        order = _order(work_order_service, bread).work_order
        work_order_service.start(order.id)

        with pytest.raises(WorkOrderLockedError) as exc_info:
            work_order_service.delete_work_order(order.id)

        assert exc_info.value.code == "WORK_ORDER_LOCKED"
        assert work_order_service.get_work_order(order.id).status is WorkOrderStatus.IN_PROGRESS
