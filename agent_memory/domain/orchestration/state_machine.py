from typing import Dict, FrozenSet

from agent_memory.domain.errors import InvalidTransitionError
from agent_memory.domain.models.trace import OrchestrationStatus, OrchestrationTrace

# Completed traces are history: nothing leaves COMPLETED.
ALLOWED_TRANSITIONS: Dict[OrchestrationStatus, FrozenSet[OrchestrationStatus]] = {
    OrchestrationStatus.CREATED: frozenset({OrchestrationStatus.RUNNING}),
    OrchestrationStatus.RUNNING: frozenset({OrchestrationStatus.COMPLETED}),
    OrchestrationStatus.COMPLETED: frozenset(),
}


def can_transition(current: OrchestrationStatus, target: OrchestrationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(trace: OrchestrationTrace, target: OrchestrationStatus) -> OrchestrationStatus:
    """Move a trace to `target`, returning the previous status"""

    previous = trace.status
    if not can_transition(previous, target):
        raise InvalidTransitionError(trace.orchestration_id, previous.value, target.value)
    trace.status = target
    return previous


def ensure_running(trace: OrchestrationTrace) -> None:
    """Tool calls may only be appended while the trace is running"""

    if trace.status != OrchestrationStatus.RUNNING:
        raise InvalidTransitionError(trace.orchestration_id, trace.status.value, "log_tool_call")
