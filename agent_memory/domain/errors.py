from typing import List


class AgentMemoryError(Exception):
    """Base class for memory and orchestration errors"""


class OrchestrationNotFoundError(AgentMemoryError, KeyError):
    """Raised when an operation targets an unknown orchestration id"""

    def __init__(self, orchestration_id: str):
        self.orchestration_id = orchestration_id
        super().__init__(f"Orchestration {orchestration_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateOrchestrationError(AgentMemoryError):
    """Raised when starting an orchestration whose id is already tracked"""

    def __init__(self, orchestration_id: str, status: str):
        self.orchestration_id = orchestration_id
        self.status = status
        super().__init__(f"Orchestration {orchestration_id} already exists ({status})")


class InvalidTransitionError(AgentMemoryError):
    """Raised on a state change the orchestration lifecycle does not allow"""

    def __init__(self, orchestration_id: str, from_status: str, to_status: str):
        self.orchestration_id = orchestration_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Orchestration {orchestration_id} cannot move from {from_status} to {to_status}"
        )


class AmbiguousMemoryKeyError(AgentMemoryError):
    """Raised in strict mode when one key lives in more than one scope"""

    def __init__(self, key: str, scopes: List[str]):
        self.key = key
        self.scopes = scopes
        super().__init__(f"Memory key {key!r} exists in multiple scopes: {', '.join(scopes)}")


class ReservedMemoryKeyError(AgentMemoryError):
    """Raised when a plain write targets a key the memory layer manages itself"""

    def __init__(self, key: str, scope: str):
        self.key = key
        self.scope = scope
        super().__init__(f"Memory key {key!r} is reserved in the {scope} scope")
