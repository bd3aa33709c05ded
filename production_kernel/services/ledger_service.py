"""
LedgerService -- append-only writes to the stock movement ledger.

Responsibility:
    The write side of the store boundary for inventory: appending a movement
    and persisting a consumption record (with its outbound movement).  Every
    write returns the ids of the materials whose stock changed so callers
    can refresh what they show; nothing is broadcast.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes, never commits.

Invariants enforced:
    - Movement quantity > 0 and direction in {in, out}.
    - Every movement receives a fresh ``seq`` from SequenceService, so
      ledger order (occurred_at, seq) is total.
    - No stock gate: outbound movements are accepted even when they drive
      the raw balance negative.  Reads clamp to zero.
    - A consumption of zero is recorded without a movement.

Failure modes:
    - InvalidQuantityError, InvalidDirectionError on malformed input.
    - MaterialNotFoundError, WorkOrderItemNotFoundError on unknown ids.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from production_kernel.db.base import SYSTEM_ACTOR_ID
from production_kernel.db.types import ZERO, ensure_aware, to_quantity
from production_kernel.domain.dtos import (
    AppendResult,
    ConsumptionRecordInfo,
    ConsumptionResult,
    MovementRecord,
)
from production_kernel.domain.values import MovementDirection
from production_kernel.exceptions import (
    InvalidDirectionError,
    InvalidQuantityError,
    MaterialNotFoundError,
    WorkOrderItemNotFoundError,
)
from production_kernel.logging_config import get_logger
from production_kernel.models.material import Material
from production_kernel.models.movement import Movement
from production_kernel.models.work_order import ConsumptionRecord, WorkOrderItem
from production_kernel.services.base import BaseService
from production_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger")


def parse_direction(direction: MovementDirection | str) -> MovementDirection:
    """
    Raises:
        InvalidDirectionError: if direction is not 'in' or 'out'.
    """
    if isinstance(direction, MovementDirection):
        return direction
    try:
        return MovementDirection(str(direction).lower())
    except ValueError:
        raise InvalidDirectionError(str(direction)) from None


class LedgerService(BaseService[Movement]):
    """
    Appends movements and consumption records.

    Contract:
        Both operations flush within the caller's transaction.  A caller that
        rolls back loses the movement, the record and the allocated seq.
    """

    def __init__(
        self,
        session: Session,
        sequence_service: SequenceService | None = None,
    ):
        super().__init__(session)
        self._sequences = sequence_service or SequenceService(session)

    def append_movement(
        self,
        material_id: UUID,
        quantity: Decimal | int | str,
        direction: MovementDirection | str,
        occurred_at: datetime,
        notes: str | None = None,
        work_order_item_id: UUID | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ) -> AppendResult:
        """
        Append one movement to a material's ledger.

        Returns:
            AppendResult with the stored movement and ``(material_id,)``.
        """
        qty = to_quantity(quantity)
        if qty <= ZERO:
            raise InvalidQuantityError("quantity", qty, "movement quantity must be > 0")
        parsed_direction = parse_direction(direction)

        self._require_for_update(Material, material_id, MaterialNotFoundError)

        seq = self._sequences.next_value(SequenceService.STOCK_MOVEMENT)
        movement = Movement(
            material_id=material_id,
            seq=seq,
            quantity=qty,
            direction=parsed_direction.value,
            occurred_at=ensure_aware(occurred_at),
            notes=notes,
            work_order_item_id=work_order_item_id,
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "movement_appended",
            extra={
                "material_id": str(material_id),
                "seq": seq,
                "direction": parsed_direction.value,
                "quantity": str(qty),
                "occurred_at": movement.occurred_at.isoformat(),
                "work_order_item_id": str(work_order_item_id) if work_order_item_id else None,
            },
        )
        return AppendResult(
            movement=MovementRecord.from_model(movement),
            affected_material_ids=(material_id,),
        )

    def persist_consumption(
        self,
        work_order_item_id: UUID,
        material_id: UUID,
        planned: Decimal | int | str,
        actual: Decimal | int | str,
        occurred_at: datetime,
        notes: str | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ) -> ConsumptionResult:
        """
        Record planned versus actual consumption and, when actual > 0, the
        matching outbound movement.

        Returns:
            ConsumptionResult; ``movement`` is None and no material is
            reported as affected when actual == 0.
        """
        planned_qty = to_quantity(planned, "planned_quantity")
        actual_qty = to_quantity(actual, "actual_quantity")
        if actual_qty < ZERO:
            raise InvalidQuantityError(
                "actual_consumption", actual_qty, "consumption cannot be negative",
            )
        if planned_qty < ZERO:
            raise InvalidQuantityError(
                "planned_consumption", planned_qty, "consumption cannot be negative",
            )

        self._require_for_update(
            WorkOrderItem, work_order_item_id, WorkOrderItemNotFoundError,
        )
        material = self._require_for_update(Material, material_id, MaterialNotFoundError)

        movement_record: MovementRecord | None = None
        if actual_qty > ZERO:
            appended = self.append_movement(
                material_id=material_id,
                quantity=actual_qty,
                direction=MovementDirection.OUT,
                occurred_at=occurred_at,
                notes=notes,
                work_order_item_id=work_order_item_id,
                actor_id=actor_id,
            )
            movement_record = appended.movement

        record = ConsumptionRecord(
            work_order_item_id=work_order_item_id,
            material_id=material_id,
            planned_consumption=planned_qty,
            actual_consumption=actual_qty,
            unit=material.unit,
            movement_id=movement_record.id if movement_record else None,
            created_by_id=actor_id,
        )
        self.session.add(record)
        self.session.flush()

        logger.info(
            "consumption_persisted",
            extra={
                "work_order_item_id": str(work_order_item_id),
                "material_id": str(material_id),
                "planned": str(planned_qty),
                "actual": str(actual_qty),
                "movement_seq": movement_record.seq if movement_record else None,
            },
        )
        return ConsumptionResult(
            record=ConsumptionRecordInfo.from_model(record),
            movement=movement_record,
            affected_material_ids=(material_id,) if movement_record else (),
        )
