"""
Store boundary: session scope and translation of driver failures.

Driver errors (lock timeouts, pool exhaustion, dropped connections) reach
callers as UnavailableError; integrity and domain errors pass through.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from production_kernel.db.engine import session_scope, store_errors
from production_kernel.exceptions import MaterialNotFoundError, UnavailableError
from production_kernel.models.material import Material


def _operational(message):
    return OperationalError("SELECT 1", {}, Exception(message))


class TestStoreErrors:

    def test_operational_error_becomes_unavailable(self):
        with pytest.raises(UnavailableError) as exc_info:
            with store_errors("stock_level"):
                raise _operational("database is locked")

        assert exc_info.value.operation == "stock_level"
        assert exc_info.value.reason == "database is locked"
        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_pool_timeout_becomes_unavailable(self):
        with pytest.raises(UnavailableError, match="connection pool timeout"):
            with store_errors("append_movement"):
                raise PoolTimeoutError("QueuePool limit reached")

    def test_invalidated_connection_becomes_unavailable(self):
        error = DBAPIError("SELECT 1", {}, Exception("server closed"), connection_invalidated=True)

        with pytest.raises(UnavailableError, match="connection lost"):
            with store_errors("list_movements"):
                raise error

    def test_integrity_error_passes_through(self):
        with pytest.raises(IntegrityError):
            with store_errors("create_material"):
                raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    def test_domain_error_passes_through(self):
        with pytest.raises(MaterialNotFoundError):
            with store_errors("stock_level"):
                raise MaterialNotFoundError("missing")

    def test_failure_is_logged(self, captured_logs):
        with pytest.raises(UnavailableError):
            with store_errors("cached_stock"):
                raise _operational("disk I/O error")

        failures = [r for r in captured_logs() if r["message"] == "store_unavailable"]
        assert failures[0]["operation"] == "cached_stock"


class TestServiceTranslation:

    def test_stock_read_during_outage(self, session, inventory_service, create_material, monkeypatch):
        material = create_material()

        def unavailable(*args, **kwargs):
            raise _operational("database is locked")

        monkeypatch.setattr(session, "execute", unavailable)

        with pytest.raises(UnavailableError) as exc_info:
            inventory_service.current_stock(material.id)
        assert exc_info.value.code == "UNAVAILABLE"


class TestSessionScope:

    def test_commits_on_success(self, session_factory, test_actor_id):
        with session_scope() as scoped:
            scoped.add(Material(
                code="MP-SCOPE", name="Scoped", unit="kg",
                min_stock=Decimal("0"), created_by_id=test_actor_id,
            ))

        reader = session_factory()
        found = reader.execute(select(Material).where(Material.code == "MP-SCOPE")).scalar_one()
        assert found.name == "Scoped"
        reader.close()

    def test_rolls_back_on_error(self, session_factory, test_actor_id):
        with pytest.raises(RuntimeError):
            with session_scope() as scoped:
                scoped.add(Material(
                    code="MP-GONE", name="Rolled back", unit="kg",
                    min_stock=Decimal("0"), created_by_id=test_actor_id,
                ))
                scoped.flush()
                raise RuntimeError("abort")

        reader = session_factory()
        assert reader.execute(
            select(Material).where(Material.code == "MP-GONE")
        ).scalar_one_or_none() is None
        reader.close()
