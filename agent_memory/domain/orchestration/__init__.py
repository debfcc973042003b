from .state_machine import ALLOWED_TRANSITIONS, can_transition, transition
from .trace_store import InMemoryTraceStore, TraceStore
from .tracer import OrchestrationTracer, TraceExporter, summarize
from .visualization import render_trace
from .demo import DEMO_TOOL_SEQUENCE, create_demo_scenario

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DEMO_TOOL_SEQUENCE",
    "InMemoryTraceStore",
    "OrchestrationTracer",
    "TraceExporter",
    "TraceStore",
    "can_transition",
    "create_demo_scenario",
    "render_trace",
    "summarize",
    "transition",
]
