from typing import Optional
import asyncio
import structlog

from agent_memory.domain.context.memory.memory_manager import MemoryManager
from agent_memory.domain.context.memory.memory_store import MemoryStore
from agent_memory.domain.orchestration.trace_store import TraceStore
from agent_memory.domain.orchestration.tracer import OrchestrationTracer
from agent_memory.infrastructure.config.settings import MemorySettings, get_settings
from agent_memory.infrastructure.observability.langfuse_tracing import LangfuseTraceExporter
from agent_memory.infrastructure.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


class AgentMemoryRuntime:
    """Memory manager and orchestration tracer sharing one configuration"""

    def __init__(self, memory_manager: MemoryManager, tracer: OrchestrationTracer, settings: MemorySettings):
        self.memory_manager = memory_manager
        self.tracer = tracer
        self.settings = settings

    async def shutdown(self) -> None:
        """Flush buffered trace exports without blocking the event loop"""

        exporter = self.tracer.exporter
        if exporter is None:
            return
        try:
            await asyncio.to_thread(exporter.flush)
        except Exception as e:
            logger.error("Trace exporter flush failed", error=str(e))


def create_runtime(
    settings: Optional[MemorySettings] = None,
    store: Optional[MemoryStore] = None,
    trace_store: Optional[TraceStore] = None,
    configure_logging: bool = True,
) -> AgentMemoryRuntime:
    """Build the memory and tracing components from settings"""

    settings = settings or get_settings()

    if configure_logging:
        setup_logging(
            log_level=settings.log_level,
            log_format=settings.log_format,
            service_name=settings.service_name,
        )

    exporter = LangfuseTraceExporter.from_settings(settings)
    runtime = AgentMemoryRuntime(
        memory_manager=MemoryManager(store=store, settings=settings),
        tracer=OrchestrationTracer(store=trace_store, settings=settings, exporter=exporter),
        settings=settings,
    )

    logger.info("Agent memory runtime created", langfuse_export=exporter is not None)
    return runtime
