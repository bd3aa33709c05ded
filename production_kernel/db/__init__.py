"""Database layer - engine, base classes, types, and immutability."""

from production_kernel.db.base import SYSTEM_ACTOR_ID, UUID, Base, TrackedBase, UUIDString
from production_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
    store_errors,
)
from production_kernel.db.types import Quantity, Sequence, UTCDateTime

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "session_scope",
    "store_errors",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "SYSTEM_ACTOR_ID",
    "Quantity",
    "Sequence",
    "UTCDateTime",
]
