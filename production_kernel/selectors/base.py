"""
Module: production_kernel.selectors.base
Responsibility: Common base for the read side of the store boundary.
Architecture position: Kernel > Selectors.  May import from db/, domain/ and
    models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Selectors never add, delete, flush or commit.
    - Public methods return domain DTOs, never ORM instances, so callers
      cannot mutate ledger rows by accident.
    - Missing entities raise the typed NotFoundError subclass for their
      kind, never return None, unless the method name says ``find``.
"""

from abc import ABC
from collections.abc import Callable
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from production_kernel.db.base import Base
from production_kernel.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=Base)
RowType = TypeVar("RowType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Holds the caller's session; the caller owns its transaction."""

    def __init__(self, session: Session):
        self.session = session

    def _require(
        self,
        model: type[RowType],
        entity_id: UUID,
        not_found: Callable[[str], NotFoundError],
    ) -> RowType:
        row = self.session.get(model, entity_id)
        if row is None:
            raise not_found(str(entity_id))
        return row
