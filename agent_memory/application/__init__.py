from .runtime import AgentMemoryRuntime, create_runtime

__all__ = ["AgentMemoryRuntime", "create_runtime"]
