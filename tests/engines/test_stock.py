"""
Tests for the Stock Calculator.

Covers:
- Folding inbound and outbound movements
- Clamping at zero after an oversell
- as_of cutoff (inclusive)
- Order independence
- Rejection of movements from another material
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from production_engines.stock import StockCalculator, StockLevel
from production_kernel.domain.dtos import MovementRecord
from production_kernel.domain.values import MovementDirection

T0 = datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)


def _movement(material_id, quantity, direction, occurred_at, seq):
    return MovementRecord(
        id=uuid4(),
        material_id=material_id,
        seq=seq,
        quantity=Decimal(quantity),
        direction=direction,
        occurred_at=occurred_at,
    )


class TestFold:
    """Basic ledger folding."""

    def setup_method(self):
        self.calculator = StockCalculator()
        self.material_id = uuid4()

    def test_empty_ledger_is_zero(self):
        level = self.calculator.fold(
            material_id=self.material_id, movements=[], as_of=T0,
        )

        assert level.quantity == Decimal("0")
        assert level.raw_balance == Decimal("0")
        assert level.movement_count == 0
        assert level.is_oversold is False

    def test_in_then_out(self):
        """+100 then -30 leaves 70."""
        movements = [
            _movement(self.material_id, "100", MovementDirection.IN, T0, 1),
            _movement(self.material_id, "30", MovementDirection.OUT, T0 + timedelta(hours=1), 2),
        ]

        level = self.calculator.fold(
            material_id=self.material_id,
            movements=movements,
            as_of=T0 + timedelta(days=1),
        )

        assert level.quantity == Decimal("70")
        assert level.raw_balance == Decimal("70")
        assert level.movement_count == 2

    def test_fractional_quantities_stay_exact(self):
        movements = [
            _movement(self.material_id, "0.1", MovementDirection.IN, T0, 1),
            _movement(self.material_id, "0.2", MovementDirection.IN, T0, 2),
        ]

        level = self.calculator.fold(
            material_id=self.material_id, movements=movements, as_of=T0,
        )

        assert level.quantity == Decimal("0.3")


class TestClamp:
    """Stock is never reported below zero."""

    def setup_method(self):
        self.calculator = StockCalculator()
        self.material_id = uuid4()

    def test_oversell_clamps_to_zero(self):
        movements = [
            _movement(self.material_id, "10", MovementDirection.IN, T0, 1),
            _movement(self.material_id, "25", MovementDirection.OUT, T0 + timedelta(minutes=5), 2),
        ]

        level = self.calculator.fold(
            material_id=self.material_id,
            movements=movements,
            as_of=T0 + timedelta(hours=1),
        )

        assert level.quantity == Decimal("0")
        assert level.raw_balance == Decimal("-15")
        assert level.is_oversold is True
        assert level.deficit == Decimal("15")

    def test_only_outbound_movements(self):
        movements = [_movement(self.material_id, "5", MovementDirection.OUT, T0, 1)]

        level = self.calculator.fold(
            material_id=self.material_id, movements=movements, as_of=T0,
        )

        assert level.quantity == Decimal("0")
        assert level.raw_balance == Decimal("-5")

    def test_clamp_helper(self):
        assert StockCalculator.clamp(Decimal("-1")) == Decimal("0")
        assert StockCalculator.clamp(Decimal("0")) == Decimal("0")
        assert StockCalculator.clamp(Decimal("3.5")) == Decimal("3.5")

    def test_oversell_logs_warning(self, captured_logs):
        movements = [_movement(self.material_id, "5", MovementDirection.OUT, T0, 1)]

        self.calculator.fold(material_id=self.material_id, movements=movements, as_of=T0)

        events = [r for r in captured_logs() if r["message"] == "stock_oversold"]
        assert len(events) == 1
        assert events[0]["raw_balance"] == "-5"


class TestAsOf:
    """Movements after the cutoff are ignored; the cutoff itself is included."""

    def setup_method(self):
        self.calculator = StockCalculator()
        self.material_id = uuid4()
        self.movements = [
            _movement(self.material_id, "100", MovementDirection.IN, T0, 1),
            _movement(self.material_id, "30", MovementDirection.OUT, T0 + timedelta(hours=2), 2),
        ]

    def test_before_first_movement(self):
        level = self.calculator.fold(
            material_id=self.material_id,
            movements=self.movements,
            as_of=T0 - timedelta(seconds=1),
        )

        assert level.quantity == Decimal("0")
        assert level.movement_count == 0

    def test_between_movements(self):
        level = self.calculator.fold(
            material_id=self.material_id,
            movements=self.movements,
            as_of=T0 + timedelta(hours=1),
        )

        assert level.quantity == Decimal("100")

    def test_cutoff_is_inclusive(self):
        level = self.calculator.fold(
            material_id=self.material_id,
            movements=self.movements,
            as_of=T0 + timedelta(hours=2),
        )

        assert level.quantity == Decimal("70")
        assert level.movement_count == 2

    def test_level_carries_as_of(self):
        as_of = T0 + timedelta(hours=3)

        level = self.calculator.fold(
            material_id=self.material_id, movements=self.movements, as_of=as_of,
        )

        assert isinstance(level, StockLevel)
        assert level.as_of == as_of


class TestOrderIndependence:

    def test_supplied_order_does_not_matter(self):
        calculator = StockCalculator()
        material_id = uuid4()
        movements = [
            _movement(material_id, "50", MovementDirection.IN, T0, 1),
            _movement(material_id, "80", MovementDirection.OUT, T0 + timedelta(hours=1), 2),
            _movement(material_id, "40", MovementDirection.IN, T0 + timedelta(hours=2), 3),
        ]
        as_of = T0 + timedelta(days=1)

        forward = calculator.fold(material_id=material_id, movements=movements, as_of=as_of)
        backward = calculator.fold(
            material_id=material_id, movements=list(reversed(movements)), as_of=as_of,
        )

        assert forward.quantity == backward.quantity == Decimal("10")
        assert forward.raw_balance == backward.raw_balance


class TestForeignMovement:

    def test_movement_of_other_material_raises(self):
        calculator = StockCalculator()
        material_id = uuid4()
        movements = [_movement(uuid4(), "10", MovementDirection.IN, T0, 1)]

        with pytest.raises(ValueError, match="belongs to material"):
            calculator.fold(material_id=material_id, movements=movements, as_of=T0)
