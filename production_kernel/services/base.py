"""
BaseService -- common base for the write side of the store boundary.

Responsibility:
    Kernel services append movements, consumption records and status
    changes inside the caller's transaction.  They ``flush()`` so generated
    values (ids, server timestamps) are visible, and leave ``commit()`` and
    ``rollback()`` to the module services in ``production_modules``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Rows a service writes against must exist.  ``_require_for_update``
    loads them or raises the typed NotFoundError before anything is added,
    so a failed write leaves nothing pending in the session.
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


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Query-only methods belong in ``production_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session

    def _require_for_update(
        self,
        model: type[RowType],
        entity_id: UUID,
        not_found: Callable[[str], NotFoundError],
    ) -> RowType:
        row = self.session.get(model, entity_id)
        if row is None:
            raise not_found(str(entity_id))
        return row
