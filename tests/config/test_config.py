"""Tests for runtime configuration loading and the work order config bridge.

get_active_config() is the single entrypoint: packaged default, explicit
path, PRODUCTION_CONFIG and DATABASE_URL resolution, validation errors
and checksum identity.
"""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from production_config import get_active_config
from production_config.loader import compute_checksum, parse_config
from production_modules.work_orders.config import WorkOrderConfig


def _write_config(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "production.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("PRODUCTION_CONFIG", raising=False)


class TestDefaultConfig:

    def test_packaged_default_loads(self):
        config = get_active_config()

        assert config.config_id == "production-default"
        assert config.version == 1
        assert config.work_orders.numbering.prefix == "OT"
        assert config.work_orders.numbering.sequence_width == 3
        assert config.work_orders.default_priority == "normal"
        assert config.store.database_url == "sqlite:///production.db"
        assert config.logging.level == "INFO"

    def test_trace_is_logged(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "PRODUCTION_CONFIG_TRACE"]
        assert traces[0]["config_id"] == "production-default"
        assert traces[0]["checksum"] == config.checksum

    def test_checksum_is_stable(self):
        assert get_active_config().checksum == get_active_config().checksum


class TestResolution:

    def test_explicit_path(self, tmp_path):
        path = _write_config(tmp_path, {
            "config_id": "plant-b",
            "version": 3,
            "work_orders": {"numbering": {"prefix": "WO", "sequence_width": 5}},
        })

        config = get_active_config(path)

        assert config.config_id == "plant-b"
        assert config.version == 3
        assert config.work_orders.numbering.prefix == "WO"
        assert config.work_orders.numbering.sequence_width == 5
        # Unspecified sections keep their defaults
        assert config.store.pool_size == 20

    def test_environment_path(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path, {"config_id": "from-env"})
        monkeypatch.setenv("PRODUCTION_CONFIG", str(path))

        assert get_active_config().config_id == "from-env"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://prod:prod@db/production")

        config = get_active_config()

        assert config.store.database_url == "postgresql://prod:prod@db/production"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestValidation:

    @pytest.mark.parametrize("prefix", ["ot", "", "TOO-LONG", "WAYTOOLONGPREFIX"])
    def test_bad_prefix(self, prefix):
        data = {"config_id": "x", "work_orders": {"numbering": {"prefix": prefix}}}

        with pytest.raises(ValueError, match="prefix"):
            parse_config(data)

    def test_bad_priority(self):
        data = {"config_id": "x", "work_orders": {"default_priority": "asap"}}

        with pytest.raises(ValueError, match="default_priority"):
            parse_config(data)

    @pytest.mark.parametrize("value", [0, -5, "30", True])
    def test_non_positive_timeout(self, value):
        data = {"config_id": "x", "store": {"statement_timeout_ms": value}}

        with pytest.raises(ValueError, match="statement_timeout_ms"):
            parse_config(data)

    def test_bad_log_level(self):
        with pytest.raises(ValueError, match="logging.level"):
            parse_config({"config_id": "x", "logging": {"level": "chatty"}})

    def test_missing_config_id(self):
        with pytest.raises(KeyError):
            parse_config({})


class TestChecksum:

    def test_key_order_does_not_matter(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_content_changes_checksum(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestWorkOrderConfig:

    def test_defaults(self):
        config = WorkOrderConfig.with_defaults()

        assert config.order_number_prefix == "OT"
        assert config.sequence_width == 3
        assert config.default_priority == "normal"

    def test_from_settings(self, tmp_path):
        path = _write_config(tmp_path, {
            "config_id": "plant-b",
            "work_orders": {
                "numbering": {"prefix": "WO", "sequence_width": 4},
                "default_priority": "high",
            },
        })

        config = WorkOrderConfig.from_settings(get_active_config(path).work_orders)

        assert config == WorkOrderConfig(
            order_number_prefix="WO", sequence_width=4, default_priority="high",
        )

    def test_from_dict(self):
        config = WorkOrderConfig.from_dict({"order_number_prefix": "PR"})

        assert config.order_number_prefix == "PR"
        assert config.sequence_width == 3
