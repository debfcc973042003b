"""
Shared fixtures: deterministic clocks, isolated settings, in-memory stores.
"""

from datetime import datetime, timedelta, timezone

import pytest

from agent_memory.domain.context.memory.in_memory_store import InMemoryMemoryStore
from agent_memory.domain.context.memory.memory_manager import MemoryManager
from agent_memory.domain.models.memory import MemoryContext
from agent_memory.domain.orchestration.trace_store import InMemoryTraceStore
from agent_memory.domain.orchestration.tracer import OrchestrationTracer
from agent_memory.infrastructure.config.settings import MemorySettings


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> MemorySettings:
    return MemorySettings(_env_file=None)


@pytest.fixture
def store(clock) -> InMemoryMemoryStore:
    return InMemoryMemoryStore(clock=clock)


@pytest.fixture
def manager(store, settings) -> MemoryManager:
    return MemoryManager(store=store, settings=settings)


@pytest.fixture
def context() -> MemoryContext:
    return MemoryContext(user_id="u1", session_id="s1")


@pytest.fixture
def trace_store() -> InMemoryTraceStore:
    return InMemoryTraceStore()


@pytest.fixture
def tracer(trace_store, settings, clock) -> OrchestrationTracer:
    return OrchestrationTracer(store=trace_store, settings=settings, clock=clock)
