"""
ORM-Level Immutability Enforcement for the stock ledger.

===============================================================================
WHY THIS EXISTS
===============================================================================

Stock is never stored; it is recomputed from the movement ledger.  That only
holds if the ledger cannot be rewritten.  Corrections are new movements in
the opposite direction, never edits.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable          | Why
--------------------|-------------------------|------------------------------------
Movement            | ALWAYS (from creation)  | Ledger is the source of truth
ConsumptionRecord   | ALWAYS (from creation)  | Reconciliation history

TrackedBase audit metadata (updated_at, updated_by_id) may still change.
"""

from sqlalchemy import event, inspect

from production_kernel.exceptions import ImmutabilityViolationError
from production_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Audit metadata that may change even on append-only rows
AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _changed_fields(target) -> set[str]:
    state = inspect(target)
    return {
        attr.key
        for attr in state.attrs
        if attr.history.has_changes()
    }


def _block(entity_type: str, target, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_movement_immutability(mapper, connection, target):
    """Prevent updates to stock movements (audit metadata excepted)."""
    changed = _changed_fields(target) - AUDIT_FIELDS
    if not changed:
        return
    _block(
        "Movement",
        target,
        "UPDATE",
        f"Stock movements are append-only (attempted change: {sorted(changed)})",
    )


def _check_movement_delete(mapper, connection, target):
    """Prevent deletion of stock movements."""
    _block("Movement", target, "DELETE", "Stock movements cannot be deleted")


def _check_consumption_immutability(mapper, connection, target):
    """Prevent updates to consumption records (audit metadata excepted)."""
    changed = _changed_fields(target) - AUDIT_FIELDS
    if not changed:
        return
    _block(
        "ConsumptionRecord",
        target,
        "UPDATE",
        f"Consumption records are append-only (attempted change: {sorted(changed)})",
    )


def _check_consumption_delete(mapper, connection, target):
    """Prevent deletion of consumption records."""
    _block(
        "ConsumptionRecord", target, "DELETE", "Consumption records cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    from production_kernel.models.movement import Movement
    from production_kernel.models.work_order import ConsumptionRecord

    for target, name, fn in _listener_table(Movement, ConsumptionRecord):
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def _listener_table(movement_cls, consumption_cls):
    return (
        (movement_cls, "before_update", _check_movement_immutability),
        (movement_cls, "before_delete", _check_movement_delete),
        (consumption_cls, "before_update", _check_consumption_immutability),
        (consumption_cls, "before_delete", _check_consumption_delete),
    )


def _safe_remove_listener(target, event_name, listener_fn):
    """
    Safely remove an event listener, ignoring if not registered.
    """
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from production_kernel.models.movement import Movement
    from production_kernel.models.work_order import ConsumptionRecord

    for target, name, fn in _listener_table(Movement, ConsumptionRecord):
        _safe_remove_listener(target, name, fn)
