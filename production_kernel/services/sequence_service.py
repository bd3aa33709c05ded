"""
SequenceService -- named counters for movement ``seq`` and order numbers.

Responsibility:
    Hands out the next integer of a named counter.  Two counters exist in
    practice: ``stock_movement``, whose values order movements that share
    an ``occurred_at``, and one ``work_order:{prefix}-{year}`` counter per
    numbering prefix and year, so order numbers restart every January.

Architecture position:
    Kernel > Services.  Called by LedgerService and WorkOrderService.

Invariants enforced:
    - A counter row is read with ``SELECT ... FOR UPDATE`` before it is
      incremented, so two transactions never receive the same value.
      Values are never derived from ``MAX(seq) + 1``.
    - The increment belongs to the caller's transaction: if the caller
      rolls back, the value is handed out again.

Failure modes:
    - Two transactions creating the same counter at once: the loser's
      INSERT fails inside a savepoint, and it then locks the winner's row.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from production_kernel.logging_config import get_logger
from production_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """Transactional counters.  Flushes, never commits."""

    STOCK_MOVEMENT = "stock_movement"

    def __init__(self, session: Session):
        self._session = session

    @staticmethod
    def work_order_sequence(prefix: str, year: int) -> str:
        return f"work_order:{prefix}-{year}"

    def next_value(self, sequence_name: str) -> int:
        """Increment the counter (creating it at 1 on first use) and return it."""
        counter = self._lock(sequence_name)
        if counter is None:
            counter, created = self._create(sequence_name)
            if created:
                return self._allocated(sequence_name, 1)
        counter.current_value += 1
        self._session.flush()
        return self._allocated(sequence_name, counter.current_value)

    def current_value(self, sequence_name: str) -> int | None:
        """Last value handed out, or None for a counter never used."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

    def _lock(self, sequence_name: str) -> SequenceCounter | None:
        # populate_existing refreshes a row already in the identity map
        # without expiring the caller's pending objects.
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create(self, sequence_name: str) -> tuple[SequenceCounter, bool]:
        """Insert the counter at 1; on a lost race, lock the existing row instead."""
        savepoint = self._session.begin_nested()
        try:
            counter = SequenceCounter(name=sequence_name, current_value=1)
            self._session.add(counter)
            self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_counter_race", extra={"sequence_name": sequence_name})
            counter = self._lock(sequence_name)
            if counter is None:
                raise
            return counter, False
        savepoint.commit()
        return counter, True

    @staticmethod
    def _allocated(sequence_name: str, value: int) -> int:
        logger.debug("sequence_allocated", extra={"sequence_name": sequence_name, "value": value})
        return value
