from .memory import (
    AgentSession,
    CategoryMapping,
    ConversationTurn,
    EntryMetadata,
    InteractionType,
    MemoryContext,
    MemoryEntry,
    MemoryScope,
    MemorySummary,
    PreferenceInteraction,
    SessionRecord,
    SessionStatus,
    ToolExecution,
    TurnType,
    UserPreference,
)
from .trace import (
    MemorySnapshot,
    OrchestrationStatus,
    OrchestrationTrace,
    ToolCallTrace,
    TraceExport,
    TraceMetadata,
    TraceSummary,
)

__all__ = [
    "AgentSession",
    "CategoryMapping",
    "ConversationTurn",
    "EntryMetadata",
    "InteractionType",
    "MemoryContext",
    "MemoryEntry",
    "MemoryScope",
    "MemorySummary",
    "PreferenceInteraction",
    "SessionRecord",
    "SessionStatus",
    "ToolExecution",
    "TurnType",
    "UserPreference",
    "MemorySnapshot",
    "OrchestrationStatus",
    "OrchestrationTrace",
    "ToolCallTrace",
    "TraceExport",
    "TraceMetadata",
    "TraceSummary",
]
