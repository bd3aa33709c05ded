"""
Configuration Loader (``production_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``production_config.schema`` dataclasses.  Runtime callers use
``production_config.get_active_config()`` instead of this module.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` with descriptive messages; unknown
  priorities, non-positive timeouts and malformed prefixes are rejected.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from production_config.schema import (
    LoggingSettings,
    ProductionConfig,
    StoreConfig,
    WorkOrderNumbering,
    WorkOrderSettings,
)

_PRIORITIES = ("low", "normal", "high", "urgent")
_PREFIX_PATTERN = re.compile(r"^[A-Z][A-Z0-9]{0,9}$")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{key} must be a positive integer, got {value!r}")
    return value


def parse_store(data: dict[str, Any]) -> StoreConfig:
    """Parse a StoreConfig from a dict."""
    defaults = StoreConfig()
    url = data.get("database_url", defaults.database_url)
    if not isinstance(url, str) or not url:
        raise ValueError("store.database_url must be a non-empty string")
    return StoreConfig(
        database_url=url,
        statement_timeout_ms=_positive_int(
            data, "statement_timeout_ms", defaults.statement_timeout_ms,
        ),
        pool_timeout_seconds=_positive_int(
            data, "pool_timeout_seconds", defaults.pool_timeout_seconds,
        ),
        pool_size=_positive_int(data, "pool_size", defaults.pool_size),
        echo=bool(data.get("echo", defaults.echo)),
    )


def parse_work_orders(data: dict[str, Any]) -> WorkOrderSettings:
    """
    Parse WorkOrderSettings from a dict.

    Raises:
        ValueError: on an invalid prefix, width or priority.
    """
    numbering_data = data.get("numbering", {}) or {}
    prefix = numbering_data.get("prefix", WorkOrderNumbering.prefix)
    if not isinstance(prefix, str) or not _PREFIX_PATTERN.match(prefix):
        raise ValueError(
            f"work_orders.numbering.prefix must be 1-10 uppercase letters/digits, got {prefix!r}"
        )
    numbering = WorkOrderNumbering(
        prefix=prefix,
        sequence_width=_positive_int(
            numbering_data, "sequence_width", WorkOrderNumbering.sequence_width,
        ),
    )

    priority = data.get("default_priority", "normal")
    if priority not in _PRIORITIES:
        raise ValueError(
            f"work_orders.default_priority must be one of {_PRIORITIES}, got {priority!r}"
        )
    return WorkOrderSettings(numbering=numbering, default_priority=priority)


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"logging.level is not a valid level name: {level!r}")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any], database_url_override: str | None = None) -> ProductionConfig:
    """
    Parse a full ProductionConfig from a dict.

    Args:
        data: Parsed YAML document.
        database_url_override: Replaces store.database_url when given
            (the DATABASE_URL environment variable).
    """
    store_data = dict(data.get("store", {}) or {})
    if database_url_override:
        store_data["database_url"] = database_url_override

    return ProductionConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        store=parse_store(store_data),
        work_orders=parse_work_orders(data.get("work_orders", {}) or {}),
        logging=parse_logging(data.get("logging", {}) or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
