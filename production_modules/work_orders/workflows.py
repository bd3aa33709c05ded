"""
Work Order Workflows.

State machine for work order processing.  A work order moves forward only;
completed and cancelled are terminal.
"""

from dataclasses import dataclass

from production_kernel.domain.values import WorkOrderStatus
from production_kernel.exceptions import InvalidTransitionError
from production_kernel.logging_config import get_logger

logger = get_logger("modules.work_orders.workflows")


@dataclass(frozen=True)
class Guard:
    """A condition for a transition."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    posts_consumption: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    def allowed_targets(self, from_state: str) -> tuple[str, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)

    def transition_for(self, from_state: str, to_state: str) -> Transition:
        """
        Raises:
            InvalidTransitionError: no transition links the two states.
        """
        for transition in self.transitions:
            if transition.from_state == from_state and transition.to_state == to_state:
                return transition
        raise InvalidTransitionError(from_state, to_state)


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

CONSUMPTION_RECONCILED = Guard(
    name="consumption_reconciled",
    description="Actual consumption of every item has been recorded",
)

logger.info(
    "work_order_workflow_guards_defined",
    extra={"guards": [CONSUMPTION_RECONCILED.name]},
)


# -----------------------------------------------------------------------------
# Work Order Workflow
# -----------------------------------------------------------------------------

_PENDING = WorkOrderStatus.PENDING.value
_IN_PROGRESS = WorkOrderStatus.IN_PROGRESS.value
_COMPLETED = WorkOrderStatus.COMPLETED.value
_CANCELLED = WorkOrderStatus.CANCELLED.value

WORK_ORDER_WORKFLOW = Workflow(
    name="production_work_order",
    description="Production work order lifecycle",
    initial_state=_PENDING,
    states=(
        _PENDING,
        _IN_PROGRESS,
        _COMPLETED,
        _CANCELLED,
    ),
    transitions=(
        Transition(_PENDING, _IN_PROGRESS, action="start"),
        Transition(_PENDING, _CANCELLED, action="cancel"),
        Transition(
            _IN_PROGRESS, _COMPLETED, action="complete",
            guard=CONSUMPTION_RECONCILED, posts_consumption=True,
        ),
        Transition(_IN_PROGRESS, _CANCELLED, action="cancel"),
    ),
)

logger.info(
    "work_order_workflow_registered",
    extra={
        "workflow_name": WORK_ORDER_WORKFLOW.name,
        "state_count": len(WORK_ORDER_WORKFLOW.states),
        "transition_count": len(WORK_ORDER_WORKFLOW.transitions),
        "initial_state": WORK_ORDER_WORKFLOW.initial_state,
    },
)
