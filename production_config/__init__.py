"""
production_config: single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``production_kernel`` and below
    ``production_modules``.  The kernel MUST NEVER import from
    ``production_config``; callers pass the relevant values (database URL,
    timeouts, numbering prefix) into kernel and module constructors.

Environment:
    PRODUCTION_CONFIG -- path to an alternative YAML file.
    DATABASE_URL      -- overrides ``store.database_url``.

Failure modes:
    - ``FileNotFoundError`` -- configuration file does not exist.
    - ``ValueError`` -- invalid values (unknown priority, bad prefix,
      non-positive timeout).

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PRODUCTION_CONFIG_TRACE`` log entry containing the config_id,
    version and checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from production_config.loader import load_yaml_file, parse_config
from production_config.schema import (
    LoggingSettings,
    ProductionConfig,
    StoreConfig,
    WorkOrderNumbering,
    WorkOrderSettings,
)

_logger = logging.getLogger("production_kernel.config")

# Default configuration file
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> ProductionConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: explicit ``config_path``, then the
    PRODUCTION_CONFIG environment variable, then the packaged default.
    DATABASE_URL, when set, replaces the configured database URL.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    path = config_path or _env_path() or _DEFAULT_CONFIG_PATH
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    data = load_yaml_file(path)
    config = parse_config(data, database_url_override=os.environ.get("DATABASE_URL"))

    _logger.info(
        "PRODUCTION_CONFIG_TRACE",
        extra={
            "trace_type": "PRODUCTION_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
            "order_number_prefix": config.work_orders.numbering.prefix,
        },
    )
    return config


def _env_path() -> Path | None:
    value = os.environ.get("PRODUCTION_CONFIG")
    return Path(value) if value else None


__all__ = [
    "get_active_config",
    "ProductionConfig",
    "StoreConfig",
    "WorkOrderSettings",
    "WorkOrderNumbering",
    "LoggingSettings",
]
