"""
Concurrency tests for outbound movements.

Stock is never reserved: several operators can read the same stock, each
decide it is enough, and all write their outbound movement.  Every write
must land, the raw balance goes negative, and reads clamp to zero.

Each thread uses its own session from ``session_factory``; data is
committed for real and deleted at teardown.

Skip with: pytest -m "not slow_locks"
"""

import pytest

pytestmark = pytest.mark.slow_locks

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier, Lock

from production_kernel.domain.clock import DeterministicClock
from production_modules.inventory import InventoryService

WORKERS = 4


@pytest.fixture
def stocked_material(session_factory, test_actor_id):
    """A committed material with 10 units on hand."""
    session = session_factory()
    clock = DeterministicClock()
    service = InventoryService(session, clock, test_actor_id)
    material = service.create_material(code="MP-RACE", name="Contested", unit="kg")
    service.record_movement(material.id, Decimal("10"), "in")
    session.close()
    return material


class TestConcurrentOutbound:

    def test_every_operator_sees_full_stock_and_all_writes_land(
        self, session_factory, stocked_material, test_actor_id,
    ):
        barrier = Barrier(WORKERS)
        write_lock = Lock()

        def operator(index: int) -> tuple[Decimal, int]:
            session = session_factory()
            clock = DeterministicClock()
            clock.advance(60 + index)
            service = InventoryService(session, clock, test_actor_id)
            try:
                seen = service.current_stock(stocked_material.id)
                # End the read transaction before waiting on the others
                session.rollback()
                barrier.wait(timeout=30)
                # SQLite allows one writer at a time
                with write_lock:
                    result = service.record_movement(stocked_material.id, seen, "out")
                return seen, result.movement.seq
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            outcomes = list(pool.map(operator, range(WORKERS)))

        assert [seen for seen, _ in outcomes] == [Decimal("10")] * WORKERS
        assert len({seq for _, seq in outcomes}) == WORKERS

        reader = session_factory()
        clock = DeterministicClock()
        clock.advance(3600)
        service = InventoryService(reader, clock, test_actor_id)
        level = service.stock_level(stocked_material.id)
        assert level.movement_count == WORKERS + 1
        assert level.raw_balance == Decimal("10") - Decimal("10") * WORKERS
        assert level.quantity == Decimal("0")
        reader.close()

    def test_recompute_after_concurrent_writes(
        self, session_factory, stocked_material, test_actor_id,
    ):
        write_lock = Lock()

        def issue(index: int) -> None:
            session = session_factory()
            clock = DeterministicClock()
            clock.advance(10 + index)
            try:
                with write_lock:
                    InventoryService(session, clock, test_actor_id).record_movement(
                        stocked_material.id, Decimal("1"), "out",
                    )
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            list(pool.map(issue, range(WORKERS)))

        session = session_factory()
        clock = DeterministicClock()
        clock.advance(3600)
        service = InventoryService(session, clock, test_actor_id)
        report = service.recompute_snapshots()

        assert report.is_complete
        assert service.cached_stock(stocked_material.id) == Decimal("10") - WORKERS
        session.close()
