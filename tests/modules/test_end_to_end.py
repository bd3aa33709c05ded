"""
End-to-end production flow through all three module services.

receive -> issue -> feasibility -> work order -> start -> complete ->
recompute cache -> feasibility again.
"""

from datetime import timedelta
from decimal import Decimal

from production_engines import scale_requirement
from production_kernel.domain.values import WorkOrderStatus
from production_modules.work_orders import WorkOrderItemRequest


class TestBakeryDay:

    def test_full_cycle(
        self,
        inventory_service,
        product_service,
        work_order_service,
        deterministic_clock,
    ):
        flour = inventory_service.create_material(
            code="MP-001", name="Flour", unit="kg", min_stock=Decimal("50"),
        )
        t1 = deterministic_clock.now()
        inventory_service.record_movement(flour.id, Decimal("100"), "in", notes="Delivery")
        deterministic_clock.advance(3600)
        t2 = deterministic_clock.now()
        inventory_service.record_movement(flour.id, Decimal("30"), "out", notes="Spoiled")

        assert inventory_service.current_stock(flour.id) == Decimal("70")
        assert inventory_service.current_stock(flour.id, as_of=t1) == Decimal("100")
        assert inventory_service.current_stock(flour.id, as_of=t2 - timedelta(seconds=1)) == (
            Decimal("100")
        )

        bread = product_service.create_product(name="Bread", unit="unit")
        product_service.add_formula_line(bread.id, flour.id, Decimal("7"))

        feasibility = product_service.feasibility(bread.id)
        assert feasibility.max_batches == 10
        assert feasibility.limiting_material_id == flour.id

        created = work_order_service.create_work_order(
            items=[WorkOrderItemRequest(product_id=bread.id, planned_quantity=Decimal("5"))],
            description="Five loaves",
        )
        assert created.warnings == ()
        order_id = created.work_order.id

        deterministic_clock.advance(600)
        work_order_service.start(order_id)
        deterministic_clock.advance(1800)
        completed = work_order_service.transition(order_id, WorkOrderStatus.COMPLETED)

        assert completed.work_order.status is WorkOrderStatus.COMPLETED
        assert completed.completion.affected_material_ids == (flour.id,)
        assert inventory_service.current_stock(flour.id) == Decimal("35")
        assert [a.material.id for a in inventory_service.low_stock_materials()] == [flour.id]

        report = inventory_service.recompute_snapshots()
        assert report.is_complete
        assert inventory_service.cached_stock(flour.id) == Decimal("35")
        assert product_service.feasibility(bread.id, use_cached=True).max_batches == 5

    def test_rule_of_three(self):
        assert scale_requirement(Decimal("10"), Decimal("250"), Decimal("100")) == Decimal("25")
