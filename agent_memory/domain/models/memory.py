from typing import Dict, Any, List, Optional, Literal
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryScope(str, Enum):
    """Named partitions of an agent's memory"""
    SESSION = "session"
    PREFERENCES = "preferences"
    CATEGORIES = "categories"
    CONVERSATION = "conversation"
    ANALYSIS = "analysis"


# Order in which scopes are searched by key lookups
SCOPE_SEARCH_ORDER: List[MemoryScope] = [
    MemoryScope.SESSION,
    MemoryScope.PREFERENCES,
    MemoryScope.CATEGORIES,
    MemoryScope.CONVERSATION,
    MemoryScope.ANALYSIS,
]


class TurnType(str, Enum):
    """Kinds of conversation turns"""
    USER_INPUT = "user_input"
    AGENT_RESPONSE = "agent_response"
    TOOL_EXECUTION = "tool_execution"
    MEMORY_ENTRY = "memory_entry"


class InteractionType(str, Enum):
    """User interactions that update preferences"""
    CATEGORY_CORRECTION = "category_correction"
    RECOMMENDATION_FEEDBACK = "recommendation_feedback"
    GOAL_UPDATE = "goal_update"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"


class EntryMetadata(BaseModel):
    """Provenance attached to a memory entry"""
    source: str = Field(default="agent", description="Who produced the entry")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    last_updated: datetime = Field(default_factory=utcnow)
    tags: List[str] = Field(default_factory=list)


class MemoryEntry(BaseModel):
    """Canonical form of a single memory item"""
    key: str = Field(description="Unique within its scope")
    value: Any = None
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)


class UserPreference(BaseModel):
    """A learned or user-provided preference"""
    id: str
    type: str = "general"
    value: Any = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    source: str = "agent"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CategoryMapping(BaseModel):
    """Maps a description pattern onto a spending category"""
    id: str
    pattern: str = ""
    category: str = ""
    subcategory: Optional[str] = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    source: str = "agent"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ConversationTurn(BaseModel):
    """One immutable entry in a user's conversation history"""
    id: str
    type: TurnType
    timestamp: datetime = Field(default_factory=utcnow)
    content: Any = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SessionRecord(BaseModel):
    """Value stored under a session-scope key"""
    user_id: str
    session_id: str
    conversation_id: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class MemoryContext(BaseModel):
    """Addresses memory operations to one user and session"""
    user_id: str
    session_id: str
    conversation_id: Optional[str] = None
    default_scope: MemoryScope = MemoryScope.SESSION


class ToolExecution(BaseModel):
    """Record of one external tool call, payloads kept opaque"""
    tool_name: str
    input: Any = None
    output: Any = None
    execution_time_ms: float = 0.0
    success: bool = True
    reasoning: Optional[str] = None


class PreferenceInteraction(BaseModel):
    """Explicit user feedback that becomes a preference"""
    type: InteractionType
    data: Any = None


class MemorySummary(BaseModel):
    """Snapshot of a user's memory across scopes"""
    session: Optional[SessionRecord] = None
    preferences: List[UserPreference] = Field(default_factory=list)
    category_mappings: List[CategoryMapping] = Field(default_factory=list)
    recent_conversations: List[ConversationTurn] = Field(default_factory=list)
    last_analysis: Optional[datetime] = None


class AgentSession(BaseModel):
    """Ephemeral handle over a user's memory at session start"""
    session_id: str
    user_id: str
    conversation_id: Optional[str] = None
    default_scope: MemoryScope = MemoryScope.SESSION
    start_time: datetime = Field(default_factory=utcnow)
    status: SessionStatus = SessionStatus.ACTIVE
    memory_entries: List[MemoryEntry] = Field(default_factory=list)

    @property
    def context(self) -> MemoryContext:
        return MemoryContext(
            user_id=self.user_id,
            session_id=self.session_id,
            conversation_id=self.conversation_id,
            default_scope=self.default_scope,
        )
