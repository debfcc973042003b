from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Union
import json
from collections import Counter
from datetime import datetime, timedelta
from pathlib import Path
import structlog

from agent_memory.domain.errors import DuplicateOrchestrationError, OrchestrationNotFoundError
from agent_memory.domain.models.memory import utcnow
from agent_memory.domain.models.trace import (
    MemorySnapshot,
    OrchestrationStatus,
    OrchestrationTrace,
    ToolCallTrace,
    TraceExport,
    TraceMetadata,
    TraceSummary,
)
from agent_memory.infrastructure.config.settings import MemorySettings, get_settings
from agent_memory.infrastructure.observability.logging import AgentLogger
from .state_machine import ensure_running, transition
from .trace_store import InMemoryTraceStore, TraceStore
from .visualization import render_trace

logger = structlog.get_logger(__name__)
agent_logger = AgentLogger(__name__)


class TraceExporter(Protocol):
    """Receives each orchestration once it completes.

    `export` runs inline on the event loop and must not block on I/O;
    `flush` is called once, off the loop, at shutdown.
    """

    def export(self, trace: OrchestrationTrace) -> None:
        ...

    def flush(self) -> None:
        ...


def summarize(orchestrations: Iterable[OrchestrationTrace]) -> TraceSummary:
    """Aggregate tool-call statistics over a set of orchestrations"""

    orchestrations = list(orchestrations)
    calls = [call for trace in orchestrations for call in trace.tool_traces]
    if not calls:
        return TraceSummary(total_orchestrations=len(orchestrations))

    return TraceSummary(
        total_orchestrations=len(orchestrations),
        total_tool_calls=len(calls),
        average_execution_time_ms=sum(call.execution_time_ms for call in calls) / len(calls),
        success_rate=sum(1 for call in calls if call.success) / len(calls),
        tool_usage_stats=dict(Counter(call.tool_name for call in calls)),
    )


class OrchestrationTracer:
    """Records the ordered tool calls an orchestrator makes per request.

    One orchestrator drives a given orchestration id, one step at a time;
    concurrent calls against the same id are not serialized here.
    """

    def __init__(
        self,
        store: Optional[TraceStore] = None,
        settings: Optional[MemorySettings] = None,
        exporter: Optional[TraceExporter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store if store is not None else InMemoryTraceStore()
        self.settings = settings or get_settings()
        self.exporter = exporter
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    async def start_orchestration(
        self,
        orchestration_id: str,
        session_id: str,
        user_id: str,
        planned_tool_sequence: List[str],
        memory_snapshot_before: Any = None,
        overwrite: bool = False,
    ) -> OrchestrationTrace:
        """Create a trace and move it to running.

        Reusing a tracked id raises DuplicateOrchestrationError unless
        `overwrite` is set, in which case the old trace is discarded.
        """

        existing = await self.store.get(orchestration_id)
        if existing is not None:
            if not overwrite:
                raise DuplicateOrchestrationError(orchestration_id, existing.status.value)
            logger.warning(
                "Overwriting orchestration",
                orchestration_id=orchestration_id,
                previous_status=existing.status.value,
            )

        trace = OrchestrationTrace(
            orchestration_id=orchestration_id,
            session_id=session_id,
            user_id=user_id,
            start_time=self._clock(),
            planned_tool_sequence=list(planned_tool_sequence),
            memory_snapshot=MemorySnapshot(before=memory_snapshot_before),
        )
        previous = transition(trace, OrchestrationStatus.RUNNING)
        await self.store.put(trace)

        agent_logger.log_orchestration_transition(
            orchestration_id=orchestration_id,
            from_status=previous.value,
            to_status=trace.status.value,
            planned_tools=trace.planned_tool_sequence,
            session_id=session_id,
            user_id=user_id,
        )
        return trace

    async def log_tool_call(
        self,
        orchestration_id: str,
        tool_name: str,
        input: Any,
        output: Any,
        execution_time_ms: float,
        success: bool,
        reasoning: Optional[str] = None,
        metadata: Optional[Union[TraceMetadata, Dict[str, Any]]] = None,
    ) -> ToolCallTrace:
        """Append the next step to a running orchestration"""

        trace = await self._require(orchestration_id)
        ensure_running(trace)

        step = len(trace.tool_traces) + 1
        call = ToolCallTrace(
            trace_id=f"{orchestration_id}-{tool_name}-{step}",
            session_id=trace.session_id,
            user_id=trace.user_id,
            timestamp=self._clock(),
            tool_name=tool_name,
            input=input,
            output=output,
            execution_time_ms=execution_time_ms,
            success=success,
            reasoning=reasoning,
            orchestration_step=step,
            parent_trace_id=orchestration_id,
            metadata=self._trace_metadata(metadata),
        )
        trace.tool_traces.append(call)
        await self.store.put(trace)

        agent_logger.log_tool_execution(
            tool_name=tool_name,
            orchestration_id=orchestration_id,
            step=step,
            duration_ms=execution_time_ms,
            success=success,
            reasoning=reasoning,
        )
        if trace.planned_tool_sequence and step > len(trace.planned_tool_sequence):
            logger.debug(
                "Tool call beyond planned sequence",
                orchestration_id=orchestration_id,
                step=step,
                planned=len(trace.planned_tool_sequence),
            )
        return call

    async def complete_orchestration(
        self,
        orchestration_id: str,
        final_output: Any,
        success: bool,
        reasoning: str,
        memory_snapshot_after: Any = None,
    ) -> OrchestrationTrace:
        """Freeze a running orchestration and record its outcome"""

        trace = await self._require(orchestration_id)
        previous = transition(trace, OrchestrationStatus.COMPLETED)

        trace.end_time = self._clock()
        trace.total_execution_time_ms = (trace.end_time - trace.start_time) / timedelta(milliseconds=1)
        trace.final_output = final_output
        trace.success = success
        trace.reasoning = reasoning
        trace.memory_snapshot.after = memory_snapshot_after
        await self.store.put(trace)

        agent_logger.log_orchestration_transition(
            orchestration_id=orchestration_id,
            from_status=previous.value,
            to_status=trace.status.value,
            planned_tools=trace.planned_tool_sequence,
            success=success,
            total_execution_time_ms=trace.total_execution_time_ms,
            tools_executed=len(trace.tool_traces),
        )

        if self.exporter is not None:
            try:
                self.exporter.export(trace)
            except Exception as e:
                logger.error("Trace export failed", orchestration_id=orchestration_id, error=str(e))

        return trace

    async def get_orchestration_trace(self, orchestration_id: str) -> Optional[OrchestrationTrace]:
        return await self.store.get(orchestration_id)

    async def get_session_traces(self, session_id: str) -> List[OrchestrationTrace]:
        return await self.store.list(session_id)

    async def export_traces_for_demo(self, session_id: Optional[str] = None) -> TraceExport:
        """All (or one session's) orchestrations plus aggregate statistics"""

        orchestrations = await self.store.list(session_id)
        return TraceExport(orchestrations=orchestrations, summary=summarize(orchestrations))

    async def generate_trace_visualization(self, orchestration_id: str) -> str:
        trace = await self.store.get(orchestration_id)
        if trace is None:
            return f"Orchestration {orchestration_id} not found\n"
        return render_trace(trace)

    async def save_traces_to_file(self, path: Union[str, Path], session_id: Optional[str] = None) -> Path:
        """Write the trace export, with a rendered report per orchestration, as JSON"""

        export = await self.export_traces_for_demo(session_id)
        payload = {
            "generated_at": self._clock().isoformat(),
            "session_id": session_id,
            "summary": export.summary.model_dump(mode="json"),
            "orchestrations": [
                {**trace.model_dump(mode="json"), "visualization": render_trace(trace)}
                for trace in export.orchestrations
            ],
        }

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

        logger.info("Traces saved", path=str(path), orchestrations=len(export.orchestrations))
        return path

    async def _require(self, orchestration_id: str) -> OrchestrationTrace:
        trace = await self.store.get(orchestration_id)
        if trace is None:
            raise OrchestrationNotFoundError(orchestration_id)
        return trace

    def _trace_metadata(self, metadata: Optional[Union[TraceMetadata, Dict[str, Any]]]) -> TraceMetadata:
        """Settings defaults overlaid with whatever fields the caller supplied"""

        base = {
            "agent_version": self.settings.agent_version,
            "model_used": self.settings.model_used,
            "confidence": self.settings.default_trace_confidence,
        }
        if isinstance(metadata, TraceMetadata):
            base.update(metadata.model_dump(exclude_unset=True))
        elif metadata:
            base.update(metadata)
        return TraceMetadata.model_validate(base)
