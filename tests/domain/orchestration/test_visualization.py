from datetime import datetime, timezone

from agent_memory.domain.models.trace import (
    MemorySnapshot,
    OrchestrationStatus,
    OrchestrationTrace,
    ToolCallTrace,
    TraceMetadata,
)
from agent_memory.domain.orchestration.visualization import count_entries, format_ms, preview, render_trace

STARTED = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_call(step, tool_name, success=True, **kwargs):
    return ToolCallTrace(
        trace_id=f"o1-{tool_name}-{step}",
        session_id="s1",
        user_id="u1",
        timestamp=STARTED,
        tool_name=tool_name,
        orchestration_step=step,
        parent_trace_id="o1",
        success=success,
        **kwargs,
    )


def test_running_trace_report():
    trace = OrchestrationTrace(
        orchestration_id="o1",
        session_id="s1",
        user_id="u1",
        status=OrchestrationStatus.RUNNING,
        start_time=STARTED,
        planned_tool_sequence=["a", "b"],
        tool_traces=[
            make_call(
                1, "a",
                input={"q": 1},
                output=[1, 2],
                execution_time_ms=245,
                reasoning="looked things up",
                metadata=TraceMetadata(confidence=0.92, memory_accessed=["preferences", "categories"]),
            ),
            make_call(2, "b", success=False, execution_time_ms=12.5),
        ],
    )

    report = render_trace(trace)

    assert report.startswith(
        "Orchestration: o1\n"
        "Started: 2024-01-01T12:00:00+00:00\n"
        "User: u1\n"
        "Session: s1\n"
        "Status: running\n"
        "\n"
        "Planned Sequence: a -> b\n"
    )
    assert "[OK] Step 1/2: a\n" in report
    assert "   Execution time: 245ms\n" in report
    assert "   Confidence: 92.0%\n" in report
    assert "   Reasoning: looked things up\n" in report
    assert "   Memory accessed: preferences, categories\n" in report
    assert "[FAILED] Step 2/2: b\n" in report
    assert "   Execution time: 12.5ms\n" in report
    assert "   Reasoning: No reasoning provided\n" in report
    assert "Final Result:" not in report
    assert report.endswith("\n")


def test_completed_trace_report_and_determinism():
    trace = OrchestrationTrace(
        orchestration_id="o2",
        session_id="s1",
        user_id="u1",
        status=OrchestrationStatus.COMPLETED,
        start_time=STARTED,
        end_time=STARTED,
        total_execution_time_ms=1250,
        final_output={"savings": 576},
        success=True,
        reasoning="all done",
        memory_snapshot=MemorySnapshot(before={"a": 1}, after={"a": 1, "b": 2, "c": 3}),
    )

    report = render_trace(trace)

    assert "Planned Sequence: (none)\n" in report
    assert "   Success: True\n" in report
    assert "   Total time: 1250ms\n" in report
    assert "   Final reasoning: all done\n" in report
    assert "   Before: 1 entries\n" in report
    assert "   After: 3 entries\n" in report
    assert render_trace(trace) == report


def test_preview_truncates_long_payloads():
    payload = {"text": "x" * 300}

    text = preview(payload, 100)

    assert len(text) == 103
    assert text.endswith("...")
    assert preview({"b": 1, "a": 2}, 100) == '{\n  "a": 2,\n  "b": 1\n}'


def test_format_ms():
    assert format_ms(245) == "245ms"
    assert format_ms(245.0) == "245ms"
    assert format_ms(12.5) == "12.5ms"


def test_count_entries():
    assert count_entries({"a": 1, "b": 2}) == 2
    assert count_entries([1, 2, 3]) == 3
    assert count_entries(None) == 0
    assert count_entries("text") == 0


def test_preview_of_payloads_with_unsortable_keys():
    assert preview({1: "a", "b": 2}, 100) == "{1: 'a', 'b': 2}"
    assert preview({(1, 2): "pair"}, 100) == "{(1, 2): 'pair'}"
