"""
Inventory Module Service (``production_modules.inventory.service``).

Responsibility
--------------
Orchestrates raw material master data and the stock ledger: creating and
retiring materials, recording manual stock movements, reading stock on
demand or from the cache, and running the recomputation pass that refreshes
the cache.  Pure folding is delegated to ``production_engines.stock``;
persistence goes through the kernel ``LedgerService`` and
``SnapshotService``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``InventoryService`` is the sole public
entry point for inventory operations.

Invariants enforced
-------------------
* Each public write owns the transaction boundary (``commit`` on success,
  ``rollback`` and re-raise on failure).
* Stock is never stored on the material; ``current_stock`` always folds the
  ledger and never writes.
* The recomputation pass refreshes each material in its own savepoint and
  commit, so one failure never undoes the others.
* Outbound movements are never refused for lack of stock.  An oversell is
  logged as a warning; reads clamp to zero.

Failure modes
-------------
* Malformed input -> ``ValidationError`` subclasses; nothing written.
* Unknown material -> ``MaterialNotFoundError``.
* Deleting a referenced material -> ``MaterialReferencedError``.
* Store failure or timeout -> ``UnavailableError`` (``retryable``).

Audit relevance
---------------
Every movement appended, material created or retired, and recomputation
pass emits a structured log event carrying material ids and quantities.

Usage::

    service = InventoryService(session, clock)
    material = service.create_material(code="MP-001", name="Flour", unit="kg")
    service.record_movement(material.id, Decimal("70"), "in")
    service.current_stock(material.id)  # Decimal("70")
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from production_engines.stock import StockCalculator, StockLevel
from production_kernel.db.base import SYSTEM_ACTOR_ID
from production_kernel.db.engine import store_errors
from production_kernel.db.types import ZERO, ensure_aware, to_quantity
from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.domain.dtos import AppendResult, MaterialInfo, MovementRecord
from production_kernel.domain.values import MovementDirection
from production_kernel.exceptions import (
    DuplicateMaterialCodeError,
    InvalidQuantityError,
    MaterialNotFoundError,
    MaterialReferencedError,
    ProductionKernelError,
    ValidationError,
)
from production_kernel.logging_config import LogContext, get_logger
from production_kernel.models.material import Material
from production_kernel.selectors.material_selector import MaterialSelector
from production_kernel.selectors.movement_selector import MovementSelector
from production_kernel.services.ledger_service import LedgerService, parse_direction
from production_kernel.services.snapshot_service import SnapshotService
from production_modules.inventory.models import (
    LowStockAlert,
    RecomputeFailure,
    RecomputeReport,
)

logger = get_logger("modules.inventory.service")

_EDITABLE_FIELDS = (
    "code",
    "name", "description", "unit", "min_stock", "max_stock", "location", "supplier",
)


class InventoryService:
    """
    Orchestrates materials and the stock ledger.

    Contract
    --------
    * Stock reads return a ``Decimal`` that is never negative.
    * Writes return DTOs; ledger writes also report the affected material
      ids so callers can refresh what they display.

    Guarantees
    ----------
    * Clock is injectable; "now" is the default ``as_of`` of every read and
      the default ``occurred_at`` of every movement.
    * Reads never commit; writes commit exactly once.

    Non-goals
    ---------
    * Does NOT gate outbound movements on available stock.
    * Does NOT schedule the recomputation pass; callers invoke it.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._actor_id = actor_id

        self._materials = MaterialSelector(session)
        self._movements = MovementSelector(session)
        self._ledger = LedgerService(session)
        self._snapshots = SnapshotService(session)
        self._calculator = StockCalculator()

    # =========================================================================
    # Stock reads
    # =========================================================================

    def stock_level(self, material_id: UUID, as_of: datetime | None = None) -> StockLevel:
        """
        Fold the ledger of one material up to ``as_of`` (default: now).

        Raises:
            MaterialNotFoundError: if the material does not exist.
        """
        cutoff = ensure_aware(as_of) if as_of is not None else self._clock.now()
        with store_errors("stock_level"):
            self._materials.get(material_id)
            movements = self._movements.list_movements(material_id, as_of=cutoff)
        return self._calculator.fold(material_id=material_id, movements=movements, as_of=cutoff)

    def current_stock(self, material_id: UUID, as_of: datetime | None = None) -> Decimal:
        """Stock derived from the ledger at ``as_of``, clamped at zero."""
        return self.stock_level(material_id, as_of).quantity

    def cached_stock(self, material_id: UUID) -> Decimal:
        """
        Stock from the last recomputation pass.

        May lag the ledger.  A material never recomputed falls back to an
        on-demand read, which is not persisted.
        """
        with store_errors("cached_stock"):
            self._materials.get(material_id)
            snapshot = self._movements.get_snapshot(material_id)
        if snapshot is None:
            logger.debug(
                "stock_cache_miss",
                extra={"material_id": str(material_id)},
            )
            return self.current_stock(material_id)
        return snapshot.quantity

    def stock_levels(
        self,
        material_ids: Iterable[UUID],
        use_cached: bool = False,
        as_of: datetime | None = None,
    ) -> dict[UUID, Decimal]:
        """Stock of several materials, keyed by material id."""
        ids = list(dict.fromkeys(material_ids))
        if use_cached:
            return {material_id: self.cached_stock(material_id) for material_id in ids}
        return {material_id: self.current_stock(material_id, as_of) for material_id in ids}

    # =========================================================================
    # Recomputation pass
    # =========================================================================

    def recompute_snapshots(self, material_ids: Iterable[UUID] | None = None) -> RecomputeReport:
        """
        Refresh the stock cache of every active material (or of ``material_ids``).

        Each material is folded and written in its own savepoint and then
        committed.  A failure is logged, reported and skipped; materials
        already refreshed keep their new snapshot.
        """
        computed_at = self._clock.now()
        with store_errors("recompute_snapshots"):
            if material_ids is None:
                targets = [m.id for m in self._materials.list_materials(active_only=True)]
            else:
                targets = list(dict.fromkeys(material_ids))

        logger.info(
            "stock_recompute_started",
            extra={"material_count": len(targets), "as_of": computed_at.isoformat()},
        )

        refreshed: list[StockLevel] = []
        failures: list[RecomputeFailure] = []
        for material_id in targets:
            try:
                with store_errors("recompute_snapshots"):
                    with self._session.begin_nested():
                        level = self.stock_level(material_id, as_of=computed_at)
                        self._snapshots.upsert(
                            material_id=material_id,
                            quantity=level.quantity,
                            raw_balance=level.raw_balance,
                            movement_count=level.movement_count,
                            computed_at=computed_at,
                        )
                    self._session.commit()
                refreshed.append(level)
            except (ProductionKernelError, SQLAlchemyError, ValueError) as exc:
                code = getattr(exc, "code", type(exc).__name__)
                logger.warning(
                    "stock_recompute_failed",
                    extra={
                        "material_id": str(material_id),
                        "error_code": code,
                        "error": str(exc),
                    },
                )
                failures.append(
                    RecomputeFailure(material_id=material_id, code=code, message=str(exc))
                )

        logger.info(
            "stock_recompute_completed",
            extra={
                "refreshed_count": len(refreshed),
                "failure_count": len(failures),
                "as_of": computed_at.isoformat(),
            },
        )
        return RecomputeReport(
            computed_at=computed_at,
            refreshed=tuple(refreshed),
            failures=tuple(failures),
        )

    # =========================================================================
    # Movements
    # =========================================================================

    def record_movement(
        self,
        material_id: UUID,
        quantity: Decimal | int | str,
        direction: MovementDirection | str,
        occurred_at: datetime | None = None,
        notes: str | None = None,
    ) -> AppendResult:
        """
        Append a manual movement (receipt, adjustment, issue).

        An outbound movement larger than the current stock is accepted and
        logged as ``stock_oversold``.
        """
        when = ensure_aware(occurred_at) if occurred_at is not None else self._clock.now()
        with LogContext.bind(material_id=str(material_id), actor_id=str(self._actor_id)):
            try:
                with store_errors("record_movement"):
                    result = self._ledger.append_movement(
                        material_id=material_id,
                        quantity=quantity,
                        direction=direction,
                        occurred_at=when,
                        notes=notes,
                        actor_id=self._actor_id,
                    )
                    if result.movement.direction is MovementDirection.OUT:
                        level = self.stock_level(material_id, as_of=when)
                        if level.is_oversold:
                            logger.warning(
                                "movement_oversells_stock",
                                extra={
                                    "material_id": str(material_id),
                                    "quantity": str(result.movement.quantity),
                                    "raw_balance": str(level.raw_balance),
                                },
                            )
                    self._session.commit()
                return result
            except Exception:
                self._session.rollback()
                raise

    def list_movements(
        self,
        material_id: UUID,
        direction: MovementDirection | str | None = None,
        limit: int = 100,
    ) -> list[MovementRecord]:
        """Newest-first movement history of a material."""
        parsed = parse_direction(direction) if direction is not None else None
        with store_errors("list_movements"):
            self._materials.get(material_id)
            return self._movements.recent_movements(material_id, direction=parsed, limit=limit)

    # =========================================================================
    # Master data
    # =========================================================================

    def get_material(self, material_id: UUID) -> MaterialInfo:
        with store_errors("get_material"):
            return self._materials.get(material_id)

    def list_materials(self, active_only: bool = False) -> list[MaterialInfo]:
        with store_errors("list_materials"):
            return self._materials.list_materials(active_only=active_only)

    def create_material(
        self,
        code: str,
        name: str,
        unit: str,
        min_stock: Decimal | int | str = ZERO,
        max_stock: Decimal | int | str | None = None,
        description: str | None = None,
        location: str | None = None,
        supplier: str | None = None,
    ) -> MaterialInfo:
        """
        Create a material.  It starts with no movements, so its stock is 0.

        Raises:
            ValidationError: empty code, name or unit.
            InvalidQuantityError: negative min_stock, or max_stock < min_stock.
            DuplicateMaterialCodeError: code already taken.
        """
        code = _required_text(code, "code")
        name = _required_text(name, "name")
        unit = _required_text(unit, "unit")
        minimum, maximum = _stock_bounds(min_stock, max_stock)

        try:
            with store_errors("create_material"):
                if self._materials.get_by_code(code) is not None:
                    raise DuplicateMaterialCodeError(code)
                material = Material(
                    code=code,
                    name=name,
                    unit=unit,
                    min_stock=minimum,
                    max_stock=maximum,
                    description=description,
                    location=location,
                    supplier=supplier,
                    is_active=True,
                    created_by_id=self._actor_id,
                )
                self._session.add(material)
                self._session.flush()
                info = MaterialInfo.from_model(material)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "material_created",
            extra={"material_id": str(info.id), "code": code, "unit": unit},
        )
        return info

    def update_material(self, material_id: UUID, **changes) -> MaterialInfo:
        """
        Update editable master data fields.

        The ledger is never touched.  Accepted fields: code, name,
        description, unit, min_stock, max_stock, location, supplier.
        """
        unknown = sorted(set(changes) - set(_EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Cannot update material field(s): {', '.join(unknown)}")

        try:
            with store_errors("update_material"):
                material = self._session.get(Material, material_id)
                if material is None:
                    raise MaterialNotFoundError(str(material_id))

                for key in ("code", "name", "unit"):
                    if key in changes:
                        changes[key] = _required_text(changes[key], key)
                if "code" in changes and changes["code"] != material.code:
                    if self._materials.get_by_code(changes["code"]) is not None:
                        raise DuplicateMaterialCodeError(changes["code"])
                if "min_stock" in changes or "max_stock" in changes:
                    minimum, maximum = _stock_bounds(
                        changes.get("min_stock", material.min_stock),
                        changes.get("max_stock", material.max_stock),
                    )
                    changes["min_stock"] = minimum
                    changes["max_stock"] = maximum

                for key, value in changes.items():
                    setattr(material, key, value)
                material.updated_by_id = self._actor_id
                self._session.flush()
                info = MaterialInfo.from_model(material)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "material_updated",
            extra={"material_id": str(material_id), "fields": sorted(changes)},
        )
        return info

    def set_material_active(self, material_id: UUID, is_active: bool) -> MaterialInfo:
        """Retire or reactivate a material.  Its ledger is kept either way."""
        try:
            with store_errors("set_material_active"):
                material = self._session.get(Material, material_id)
                if material is None:
                    raise MaterialNotFoundError(str(material_id))
                material.is_active = is_active
                material.updated_by_id = self._actor_id
                self._session.flush()
                info = MaterialInfo.from_model(material)
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "material_activation_changed",
            extra={"material_id": str(material_id), "is_active": is_active},
        )
        return info

    def delete_material(self, material_id: UUID) -> None:
        """
        Delete a material that has no history.

        Raises:
            MaterialReferencedError: the material has movements or is used
                in a formula.  Retire it with ``set_material_active`` instead.
        """
        try:
            with store_errors("delete_material"):
                material = self._session.get(Material, material_id)
                if material is None:
                    raise MaterialNotFoundError(str(material_id))
                movement_count = self._movements.count_for_material(material_id)
                formula_count = self._materials.formula_usage_count(material_id)
                if movement_count or formula_count:
                    raise MaterialReferencedError(
                        str(material_id), movement_count, formula_count,
                    )
                self._snapshots.delete_for_material(material_id)
                self._session.delete(material)
                self._session.flush()
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("material_deleted", extra={"material_id": str(material_id)})

    def low_stock_materials(self, use_cached: bool = False) -> list[LowStockAlert]:
        """Active materials whose stock is strictly below ``min_stock``."""
        alerts = []
        for material in self.list_materials(active_only=True):
            stock = (
                self.cached_stock(material.id) if use_cached
                else self.current_stock(material.id)
            )
            if stock < material.min_stock:
                alerts.append(LowStockAlert(material=material, stock=stock))
        return alerts


def _required_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"Material {field} is required", field=field)
    return text


def _stock_bounds(
    min_stock: Decimal | int | str,
    max_stock: Decimal | int | str | None,
) -> tuple[Decimal, Decimal | None]:
    minimum = to_quantity(min_stock, "min_stock")
    if minimum < ZERO:
        raise InvalidQuantityError("min_stock", minimum, "minimum stock cannot be negative")
    if max_stock is None:
        return minimum, None
    maximum = to_quantity(max_stock, "max_stock")
    if maximum < minimum:
        raise InvalidQuantityError(
            "max_stock", maximum, "maximum stock cannot be below minimum stock",
        )
    return minimum, maximum
