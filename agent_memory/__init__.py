"""Agent memory scopes, preference learning and tool-call orchestration tracing."""

from agent_memory.application.runtime import AgentMemoryRuntime, create_runtime
from agent_memory.domain.context.memory.memory_manager import MemoryManager
from agent_memory.domain.orchestration.tracer import OrchestrationTracer

__all__ = [
    "AgentMemoryRuntime",
    "MemoryManager",
    "OrchestrationTracer",
    "create_runtime",
]
