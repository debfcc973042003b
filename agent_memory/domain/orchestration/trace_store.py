from typing import Dict, List, Optional, Protocol
import asyncio

from agent_memory.domain.models.trace import OrchestrationTrace


class TraceStore(Protocol):
    """Keyed storage for orchestration traces"""

    async def get(self, orchestration_id: str) -> Optional[OrchestrationTrace]:
        ...

    async def put(self, trace: OrchestrationTrace) -> None:
        ...

    async def list(self, session_id: Optional[str] = None) -> List[OrchestrationTrace]:
        ...


class InMemoryTraceStore:
    """Holds traces per orchestration id for the lifetime of the process"""

    def __init__(self):
        self.traces: Dict[str, OrchestrationTrace] = {}
        self._lock = asyncio.Lock()

    async def get(self, orchestration_id: str) -> Optional[OrchestrationTrace]:
        async with self._lock:
            trace = self.traces.get(orchestration_id)
            return trace.model_copy(deep=True) if trace else None

    async def put(self, trace: OrchestrationTrace) -> None:
        async with self._lock:
            self.traces[trace.orchestration_id] = trace.model_copy(deep=True)

    async def list(self, session_id: Optional[str] = None) -> List[OrchestrationTrace]:
        """All traces in start order, optionally for one session"""

        async with self._lock:
            return [
                trace.model_copy(deep=True)
                for trace in self.traces.values()
                if session_id is None or trace.session_id == session_id
            ]
