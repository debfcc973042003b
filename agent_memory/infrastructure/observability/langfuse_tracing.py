# Langfuse integration
from typing import Any, Optional
from datetime import timedelta
import structlog
from langfuse import Langfuse

from agent_memory.domain.models.trace import OrchestrationTrace
from agent_memory.infrastructure.config.settings import MemorySettings

logger = structlog.get_logger(__name__)


class LangfuseTraceExporter:
    """Sends completed orchestrations to Langfuse, one span per tool call"""

    def __init__(self, client: Any, environment: str = "production"):
        self.langfuse = client
        self.environment = environment

    @classmethod
    def from_settings(cls, settings: MemorySettings) -> Optional["LangfuseTraceExporter"]:
        if not settings.langfuse_enabled:
            return None
        client = Langfuse(
            public_key=settings.langfuse_public_key,
            secret_key=settings.langfuse_secret_key,
            host=settings.langfuse_host,
        )
        return cls(client)

    def export(self, trace: OrchestrationTrace) -> None:
        """Queue the trace and its spans; the client ships them in the background"""

        lf_trace = self.langfuse.trace(
            id=trace.orchestration_id,
            name="tool_orchestration",
            user_id=trace.user_id,
            session_id=trace.session_id,
            timestamp=trace.start_time,
            input={
                "planned_tool_sequence": trace.planned_tool_sequence,
                "memory_before": trace.memory_snapshot.before,
            },
            output=trace.final_output,
            tags=[self.environment, "orchestration"],
            metadata={
                "success": trace.success,
                "reasoning": trace.reasoning,
                "total_execution_time_ms": trace.total_execution_time_ms,
                "memory_after": trace.memory_snapshot.after,
            },
        )

        for call in trace.tool_traces:
            lf_trace.span(
                id=call.trace_id,
                name=call.tool_name,
                start_time=call.timestamp - timedelta(milliseconds=call.execution_time_ms),
                end_time=call.timestamp,
                input=call.input,
                output=call.output,
                level="DEFAULT" if call.success else "ERROR",
                status_message=call.reasoning,
                metadata={
                    "orchestration_step": call.orchestration_step,
                    **call.metadata.model_dump(),
                },
            )

        logger.debug(
            "Queued orchestration for Langfuse",
            orchestration_id=trace.orchestration_id,
            spans=len(trace.tool_traces),
        )

    def flush(self) -> None:
        """Block until every queued event has been sent"""

        self.langfuse.flush()
        logger.info("Langfuse events flushed")
