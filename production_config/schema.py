"""
ProductionConfig schema.

Typed, frozen view of the YAML configuration.  The loader parses YAML into
these types; ``get_active_config()`` hands them to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoreConfig:
    """Database connection and timeout settings."""

    database_url: str = "sqlite:///production.db"
    statement_timeout_ms: int = 30000
    pool_timeout_seconds: int = 30
    pool_size: int = 20
    echo: bool = False


# ---------------------------------------------------------------------------
# Work orders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkOrderNumbering:
    """Format of generated order numbers: {prefix}-{YYYY}-{MM}-{NNN}."""

    prefix: str = "OT"
    sequence_width: int = 3


@dataclass(frozen=True)
class WorkOrderSettings:
    numbering: WorkOrderNumbering = field(default_factory=WorkOrderNumbering)
    default_priority: str = "normal"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProductionConfig:
    """Complete runtime configuration."""

    config_id: str
    version: int
    store: StoreConfig = field(default_factory=StoreConfig)
    work_orders: WorkOrderSettings = field(default_factory=WorkOrderSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
