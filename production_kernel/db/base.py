"""
Module: production_kernel.db.base
Responsibility: Declarative bases for the ledger and master-data tables.
Architecture position: Kernel > DB.  Imported by every model; imports only
    db/types.py.

Invariants enforced:
    - Every row has a uuid4 primary key stored as text (UUIDString).
    - Annotated ``Decimal`` columns are Numeric(38, 9); quantities never
      pass through float.
    - Annotated ``datetime`` columns are UTCDateTime and come back aware.
    - Constraint names follow one convention, so the unique constraints the
      services rely on (material code, product name, one formula line per
      material) have stable names on every backend.
    - TrackedBase records who created a row.  updated_at and updated_by_id
      are audit metadata and stay writable on append-only tables (see
      db/immutability.py).
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, MetaData, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from production_kernel.db.types import UTCDateTime, UUIDString

# Actor recorded when a caller does not identify itself
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000000")

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Root of every model: uuid4 key plus the shared column type map."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class TrackedBase(Base):
    """Abstract base adding creation and last-update audit columns."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(),
    )
    created_by_id: Mapped[UUID]
    updated_by_id: Mapped[UUID | None]
