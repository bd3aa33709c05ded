"""
Module: production_kernel.db.types
Responsibility: Column types and annotated aliases shared by every model.
    Centralizes quantity precision and timestamp handling so that models,
    selectors and services agree on the stored representation.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers;
    imports only production_kernel.exceptions.

Invariants enforced:
    - No floats for quantities.  Quantity maps to Numeric(38, 9) and is
      always handled as a finite Decimal in Python.
    - Timestamps are always timezone-aware UTC when they leave the database,
      including on backends (SQLite) that store them without an offset.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, Numeric, String
from sqlalchemy.types import TypeDecorator

from production_kernel.exceptions import InvalidQuantityError


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    Naive values are taken to be UTC on write; naive values read back (SQLite
    does not keep offsets) are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return ensure_aware(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class UUIDString(TypeDecorator):
    """UUID kept as its 36-character text form, so SQLite and PostgreSQL store it alike."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value if isinstance(value, UUID) else UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return UUID(value)


# Stock and formula quantities: 38 digits total, 9 decimal places
Quantity = Annotated[Decimal, Numeric(38, 9)]

# Insertion sequence used as ordering tie-breaker
Sequence = Annotated[int, BigInteger]

# Unit of measure ("kg", "L", "unit")
UnitCode = Annotated[str, String(20)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for descriptions and notes
LongText = Annotated[str, String(4000)]

QUANTITY_DECIMAL_PLACES = 9
ZERO = Decimal("0")


def to_quantity(value: Decimal | int | str, field: str = "quantity") -> Decimal:
    """
    Coerce a caller-supplied quantity to a finite Decimal.

    Floats, NaN and Infinity are refused.

    Raises:
        TypeError: if value is a float or bool.
        InvalidQuantityError: if value is not a number or is not finite.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Quantities must be Decimal, int or str, not {type(value).__name__}")
    if isinstance(value, Decimal):
        quantity = value
    else:
        try:
            quantity = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidQuantityError(field, value, "not a number") from None
    if not quantity.is_finite():
        raise InvalidQuantityError(field, value, "quantity must be finite")
    return quantity


def ensure_aware(value: datetime) -> datetime:
    """Return value as UTC, treating naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
