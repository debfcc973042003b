from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum

from .memory import utcnow


class OrchestrationStatus(str, Enum):
    """Lifecycle of an orchestration trace"""
    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"


class TraceMetadata(BaseModel):
    """Agent and memory details attached to a tool call"""
    agent_version: str = "1.0.0"
    model_used: str = "claude-3-5-sonnet"
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    memory_accessed: List[str] = Field(default_factory=list)
    memory_updated: List[str] = Field(default_factory=list)


class ToolCallTrace(BaseModel):
    """One tool invocation within an orchestration"""
    trace_id: str
    session_id: str
    user_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    tool_name: str
    input: Any = None
    output: Any = None
    execution_time_ms: float = 0.0
    success: bool = True
    reasoning: Optional[str] = None
    orchestration_step: int = Field(ge=1, description="1-based position within the orchestration")
    parent_trace_id: str = Field(description="Owning orchestration id")
    metadata: TraceMetadata = Field(default_factory=TraceMetadata)


class MemorySnapshot(BaseModel):
    before: Any = None
    after: Any = None


class OrchestrationTrace(BaseModel):
    """Ordered record of the tool calls serving one user request"""
    orchestration_id: str
    session_id: str
    user_id: str
    status: OrchestrationStatus = OrchestrationStatus.CREATED
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    total_execution_time_ms: Optional[float] = None
    planned_tool_sequence: List[str] = Field(default_factory=list)
    tool_traces: List[ToolCallTrace] = Field(default_factory=list)
    final_output: Any = None
    success: bool = False
    reasoning: str = ""
    memory_snapshot: MemorySnapshot = Field(default_factory=MemorySnapshot)

    @property
    def is_completed(self) -> bool:
        return self.status == OrchestrationStatus.COMPLETED


class TraceSummary(BaseModel):
    """Aggregate statistics over a set of orchestrations"""
    total_orchestrations: int = 0
    total_tool_calls: int = 0
    average_execution_time_ms: float = 0.0
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    tool_usage_stats: Dict[str, int] = Field(default_factory=dict)


class TraceExport(BaseModel):
    orchestrations: List[OrchestrationTrace] = Field(default_factory=list)
    summary: TraceSummary = Field(default_factory=TraceSummary)
