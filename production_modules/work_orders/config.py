"""
Work Order Configuration Schema.

Defines the structure and defaults for work order numbering and priority.
Actual values come from ``production_config`` at runtime.
"""

from dataclasses import dataclass
from typing import Self

from production_config.schema import WorkOrderSettings
from production_kernel.domain.values import WorkOrderPriority
from production_kernel.logging_config import get_logger

logger = get_logger("modules.work_orders.config")


@dataclass
class WorkOrderConfig:
    """
    Configuration schema for the work order module.

    Override at instantiation:

        config = WorkOrderConfig(order_number_prefix="WO", sequence_width=4)
    """

    # Order numbers look like {prefix}-{YYYY}-{MM}-{NNN}
    order_number_prefix: str = "OT"
    sequence_width: int = 3

    default_priority: str = WorkOrderPriority.NORMAL.value

    def __post_init__(self):
        logger.info(
            "work_order_config_initialized",
            extra={
                "order_number_prefix": self.order_number_prefix,
                "sequence_width": self.sequence_width,
                "default_priority": self.default_priority,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard numbering scheme."""
        logger.info("work_order_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from a file)."""
        logger.info(
            "work_order_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: WorkOrderSettings) -> Self:
        """Create config from the ``work_orders`` section of ProductionConfig."""
        return cls(
            order_number_prefix=settings.numbering.prefix,
            sequence_width=settings.numbering.sequence_width,
            default_priority=settings.default_priority,
        )
