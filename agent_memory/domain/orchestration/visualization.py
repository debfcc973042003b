from typing import Any, List
import json

from agent_memory.domain.models.trace import OrchestrationTrace

PAYLOAD_PREVIEW_CHARS = 100
FINAL_OUTPUT_PREVIEW_CHARS = 200


def render_trace(trace: OrchestrationTrace) -> str:
    """Human-readable, deterministic report of one orchestration"""

    lines: List[str] = [
        f"Orchestration: {trace.orchestration_id}",
        f"Started: {trace.start_time.isoformat()}",
        f"User: {trace.user_id}",
        f"Session: {trace.session_id}",
        f"Status: {trace.status.value}",
        "",
        f"Planned Sequence: {' -> '.join(trace.planned_tool_sequence) or '(none)'}",
        "",
        "Tool Execution Trace:",
    ]

    total = len(trace.tool_traces)
    for call in trace.tool_traces:
        status = "OK" if call.success else "FAILED"
        lines.extend([
            "",
            f"[{status}] Step {call.orchestration_step}/{total}: {call.tool_name}",
            f"   Execution time: {format_ms(call.execution_time_ms)}",
            f"   Confidence: {call.metadata.confidence * 100:.1f}%",
            f"   Reasoning: {call.reasoning or 'No reasoning provided'}",
            f"   Input: {preview(call.input, PAYLOAD_PREVIEW_CHARS)}",
            f"   Output: {preview(call.output, PAYLOAD_PREVIEW_CHARS)}",
        ])
        if call.metadata.memory_accessed:
            lines.append(f"   Memory accessed: {', '.join(call.metadata.memory_accessed)}")
        if call.metadata.memory_updated:
            lines.append(f"   Memory updated: {', '.join(call.metadata.memory_updated)}")

    if trace.end_time is not None:
        lines.extend([
            "",
            "Final Result:",
            f"   Success: {trace.success}",
            f"   Total time: {format_ms(trace.total_execution_time_ms or 0.0)}",
            f"   Final reasoning: {trace.reasoning}",
            f"   Final output: {preview(trace.final_output, FINAL_OUTPUT_PREVIEW_CHARS)}",
            "",
            "Memory Changes:",
            f"   Before: {count_entries(trace.memory_snapshot.before)} entries",
            f"   After: {count_entries(trace.memory_snapshot.after)} entries",
        ])

    return "\n".join(lines) + "\n"


def preview(value: Any, limit: int) -> str:
    try:
        text = json.dumps(value, indent=2, default=str, sort_keys=True)
    except TypeError:
        # mixed or non-string dict keys can be neither sorted nor encoded
        text = repr(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def format_ms(value: float) -> str:
    return f"{value:.0f}ms" if float(value).is_integer() else f"{value:.1f}ms"


def count_entries(snapshot: Any) -> int:
    if isinstance(snapshot, (dict, list, tuple, set)):
        return len(snapshot)
    return 0
