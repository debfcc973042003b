from typing import Dict, List, Any, Optional, Tuple, Union
import asyncio
import uuid
from datetime import datetime
import structlog

from agent_memory.domain.errors import AmbiguousMemoryKeyError, ReservedMemoryKeyError
from agent_memory.domain.models.memory import (
    SCOPE_SEARCH_ORDER,
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
    ToolExecution,
    TurnType,
    UserPreference,
    utcnow,
)
from agent_memory.infrastructure.config.settings import MemorySettings, get_settings
from agent_memory.infrastructure.observability.logging import AgentLogger
from .in_memory_store import InMemoryMemoryStore
from .learning_engine import LearningEngine
from .memory_store import MemoryStore
from .scoped_memory import LAST_ANALYSIS_KEY, RESERVED_KEYS, ScopedMemory

logger = structlog.get_logger(__name__)
agent_logger = AgentLogger(__name__)

DEFAULT_SOURCE = "agent"

SCOPE_PREFIXES: List[Tuple[str, MemoryScope]] = [
    ("session_", MemoryScope.SESSION),
    ("pref_", MemoryScope.PREFERENCES),
    ("category_", MemoryScope.CATEGORIES),
    ("conversation_", MemoryScope.CONVERSATION),
]

# interaction type -> (preference type, confidence, source, id prefix)
INTERACTION_RULES: Dict[InteractionType, Tuple[str, float, str, str]] = {
    InteractionType.CATEGORY_CORRECTION: ("category_preference", 1.0, "user_correction", "category_correction"),
    InteractionType.RECOMMENDATION_FEEDBACK: ("recommendation_feedback", 0.9, "user_feedback", "rec_feedback"),
    InteractionType.GOAL_UPDATE: ("financial_goal", 1.0, "user_input", "goal_update"),
}


def resolve_scope(key: str, default_scope: MemoryScope) -> MemoryScope:
    """Pick a scope from the key prefix convention, else the default"""

    for prefix, scope in SCOPE_PREFIXES:
        if key.startswith(prefix):
            return scope
    return default_scope


class MemoryManager:
    """Routes agent memory reads and writes across scopes"""

    def __init__(
        self,
        store: Optional[MemoryStore] = None,
        settings: Optional[MemorySettings] = None,
        learning_engine: Optional[LearningEngine] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store if store is not None else InMemoryMemoryStore()
        self.memory = ScopedMemory(self.store, self.settings)
        self.learning_engine = learning_engine or LearningEngine(self.memory, self.settings)

    async def initialize_session(
        self,
        user_id: str,
        session_id: str,
        default_scope: MemoryScope = MemoryScope.SESSION,
        conversation_id: Optional[str] = None,
    ) -> AgentSession:
        """Open a session over the user's existing long-term memory.

        Re-initializing an existing session id replaces its session entry
        with a fresh, empty one.
        """

        preferences, mappings, last_analysis = await asyncio.gather(
            self.memory.list_preferences(user_id),
            self.memory.list_category_mappings(user_id),
            self.memory.get_last_analysis(user_id),
        )

        session = AgentSession(
            session_id=session_id,
            user_id=user_id,
            conversation_id=conversation_id,
            default_scope=default_scope,
            memory_entries=self.convert_to_memory_entries(preferences, mappings, last_analysis),
        )

        await self.memory.put_session(SessionRecord(
            user_id=user_id,
            session_id=session_id,
            conversation_id=conversation_id,
            started_at=session.start_time,
        ))

        logger.info(
            "Session initialized",
            user_id=user_id,
            session_id=session_id,
            memory_entries=len(session.memory_entries),
        )
        return session

    async def store_memory(
        self,
        context: MemoryContext,
        key: str,
        value: Any,
        metadata: Optional[EntryMetadata] = None,
        scope: Optional[MemoryScope] = None,
    ) -> MemoryEntry:
        """Write a value into the scope named by `scope` or by the key prefix.

        Keys the manager maintains itself (the analysis timestamp and the
        conversation history list) are rejected with ReservedMemoryKeyError.
        """

        metadata = metadata or EntryMetadata(source=DEFAULT_SOURCE)
        target = MemoryScope(scope) if scope is not None else resolve_scope(key, context.default_scope)
        if key in RESERVED_KEYS.get(target, frozenset()):
            raise ReservedMemoryKeyError(key, target.value)

        tags = list(dict.fromkeys([*metadata.tags, target.value]))
        entry = MemoryEntry(
            key=key,
            value=value,
            metadata=metadata.model_copy(update={"last_updated": utcnow(), "tags": tags}),
        )

        if target == MemoryScope.SESSION:
            await self._store_session_attribute(context, key, value)
        elif target == MemoryScope.PREFERENCES:
            await self._store_preference(context.user_id, entry)
        elif target == MemoryScope.CATEGORIES:
            await self._store_category_mapping(context.user_id, entry)
        elif target == MemoryScope.CONVERSATION:
            await self._store_conversation_entry(context, entry)
        else:
            await self.store.put(context.user_id, target, key, value)

        agent_logger.log_memory_update(
            user_id=context.user_id,
            scope=target.value,
            key=key,
            action="store",
            details={"source": metadata.source, "confidence": metadata.confidence},
        )
        return entry

    async def retrieve_memory(self, context: MemoryContext, key: str) -> Optional[MemoryEntry]:
        """Find a key in any scope; None when absent everywhere.

        Scopes are searched in SCOPE_SEARCH_ORDER and the first hit wins. A key
        present in several scopes is reported (or rejected in strict mode).
        """

        matches: List[Tuple[MemoryScope, MemoryEntry]] = []
        for scope in SCOPE_SEARCH_ORDER:
            entry = await self._lookup(context, scope, key)
            if entry is not None:
                matches.append((scope, entry))

        if not matches:
            return None

        if len(matches) > 1:
            scopes = [scope.value for scope, _ in matches]
            if self.settings.strict_scope_lookup:
                raise AmbiguousMemoryKeyError(key, scopes)
            logger.warning("Memory key found in multiple scopes", key=key, scopes=scopes, user_id=context.user_id)

        return matches[0][1]

    async def get_memory_summary(self, context: MemoryContext) -> MemorySummary:
        """Read every scope concurrently; any failed read fails the summary"""

        session, preferences, mappings, history, last_analysis = await asyncio.gather(
            self.memory.get_session(context.user_id, context.session_id),
            self.memory.list_preferences(context.user_id),
            self.memory.list_category_mappings(context.user_id),
            self.memory.get_conversation_history(context.user_id),
            self.memory.get_last_analysis(context.user_id),
        )

        limit = self.settings.summary_conversation_limit
        return MemorySummary(
            session=session,
            preferences=preferences,
            category_mappings=mappings,
            recent_conversations=history[-limit:] if limit else [],
            last_analysis=last_analysis,
        )

    async def record_tool_execution(
        self,
        context: MemoryContext,
        tool_execution: Union[ToolExecution, Dict[str, Any]],
    ) -> ConversationTurn:
        """Log a tool call in the conversation and learn from it if it succeeded"""

        execution = ToolExecution.model_validate(tool_execution)
        turn = ConversationTurn(
            id=f"tool-{uuid.uuid4().hex[:12]}",
            type=TurnType.TOOL_EXECUTION,
            content={
                "tool": execution.tool_name,
                "input": execution.input,
                "output": execution.output,
                "success": execution.success,
                "execution_time_ms": execution.execution_time_ms,
                "reasoning": execution.reasoning,
            },
            metadata={"session_id": context.session_id, "source": DEFAULT_SOURCE},
        )
        await self.memory.append_conversation_turn(context.user_id, turn)

        if execution.success:
            learned = await self.learning_engine.learn_from_tool_execution(context.user_id, execution)
            if learned:
                agent_logger.log_memory_update(
                    user_id=context.user_id,
                    scope="learning",
                    key=execution.tool_name,
                    action="learn",
                    details={"entries": learned},
                )

        return turn

    async def update_preferences_from_interaction(
        self,
        user_id: str,
        interaction: Union[PreferenceInteraction, Dict[str, Any]],
    ) -> UserPreference:
        """Turn explicit user feedback into a new preference entry"""

        interaction = PreferenceInteraction.model_validate(interaction)
        preference_type, confidence, source, id_prefix = INTERACTION_RULES[interaction.type]

        now = utcnow()
        preference = UserPreference(
            id=f"{id_prefix}_{uuid.uuid4().hex[:12]}",
            type=preference_type,
            value=interaction.data,
            confidence=confidence,
            source=source,
            created_at=now,
            updated_at=now,
        )
        await self.memory.put_preference(user_id, preference)

        agent_logger.log_memory_update(
            user_id=user_id,
            scope=MemoryScope.PREFERENCES.value,
            key=preference.id,
            action=interaction.type.value,
        )
        return preference

    async def record_analysis(self, context: MemoryContext, at: Optional[datetime] = None) -> datetime:
        """Mark when the user's data was last analysed"""

        at = at or utcnow()
        await self.memory.set_last_analysis(context.user_id, at)
        return at

    async def get_conversation_history(self, user_id: str) -> List[ConversationTurn]:
        return await self.memory.get_conversation_history(user_id)

    async def cleanup_expired_memory(self, user_id: str) -> None:
        """Session expiry belongs to the backing store's TTL; nothing to do here"""

        logger.info("Memory cleanup delegated to store TTL", user_id=user_id)

    def convert_to_memory_entries(
        self,
        preferences: List[UserPreference],
        mappings: List[CategoryMapping],
        last_analysis: Optional[datetime] = None,
    ) -> List[MemoryEntry]:
        """Canonical entries for the long-term scopes loaded at session start"""

        entries: List[MemoryEntry] = []

        for preference in preferences:
            entries.append(_preference_entry(preference.id, preference))

        for mapping in mappings:
            entries.append(_mapping_entry(mapping.id, mapping))

        if last_analysis is not None:
            entries.append(MemoryEntry(
                key=LAST_ANALYSIS_KEY,
                value=last_analysis,
                metadata=EntryMetadata(
                    source=DEFAULT_SOURCE,
                    last_updated=last_analysis,
                    tags=[MemoryScope.ANALYSIS.value],
                ),
            ))

        return entries

    # Scope writers

    async def _store_session_attribute(self, context: MemoryContext, key: str, value: Any):
        record = await self.memory.get_session(context.user_id, context.session_id)
        if record is None:
            record = SessionRecord(
                user_id=context.user_id,
                session_id=context.session_id,
                conversation_id=context.conversation_id,
            )
        record.attributes[key] = value
        await self.memory.put_session(record)

    async def _store_preference(self, user_id: str, entry: MemoryEntry):
        now = entry.metadata.last_updated
        await self.memory.put_preference(user_id, UserPreference(
            id=entry.key,
            type="general",
            value=entry.value,
            confidence=entry.metadata.confidence,
            source=entry.metadata.source,
            created_at=now,
            updated_at=now,
        ))

    async def _store_category_mapping(self, user_id: str, entry: MemoryEntry):
        value = entry.value if isinstance(entry.value, dict) else {"category": str(entry.value)}
        now = entry.metadata.last_updated
        await self.memory.put_category_mapping(user_id, CategoryMapping(
            id=entry.key,
            pattern=value.get("pattern") or "",
            category=value.get("category") or "",
            subcategory=value.get("subcategory"),
            confidence=entry.metadata.confidence,
            source=entry.metadata.source,
            created_at=now,
            updated_at=now,
        ))

    async def _store_conversation_entry(self, context: MemoryContext, entry: MemoryEntry):
        await self.memory.append_conversation_turn(context.user_id, ConversationTurn(
            id=entry.key,
            type=TurnType.MEMORY_ENTRY,
            timestamp=entry.metadata.last_updated,
            content=entry.value,
            metadata={
                "session_id": context.session_id,
                "source": entry.metadata.source,
                "confidence": entry.metadata.confidence,
            },
        ))

    # Scope readers

    async def _lookup(self, context: MemoryContext, scope: MemoryScope, key: str) -> Optional[MemoryEntry]:
        user_id = context.user_id

        if scope == MemoryScope.SESSION:
            record = await self.memory.get_session(user_id, context.session_id)
            if record is None or key not in record.attributes:
                return None
            return MemoryEntry(
                key=key,
                value=record.attributes[key],
                metadata=EntryMetadata(source=DEFAULT_SOURCE, tags=[scope.value]),
            )

        if scope == MemoryScope.PREFERENCES:
            preference = await self.memory.get_preference(user_id, key)
            return _preference_entry(key, preference) if preference else None

        if scope == MemoryScope.CATEGORIES:
            mapping = await self.memory.get_category_mapping(user_id, key)
            return _mapping_entry(key, mapping) if mapping else None

        if scope == MemoryScope.CONVERSATION:
            history = await self.memory.get_conversation_history(user_id)
            for turn in reversed(history):
                if turn.id == key:
                    return MemoryEntry(
                        key=key,
                        value=turn.content,
                        metadata=EntryMetadata(
                            source=turn.metadata.get("source", DEFAULT_SOURCE),
                            confidence=turn.metadata.get("confidence", 1.0),
                            last_updated=turn.timestamp,
                            tags=[scope.value, turn.type.value],
                        ),
                    )
            return None

        stored = await self.store.get(user_id, scope, key)
        if stored is None:
            return None
        return MemoryEntry(
            key=key,
            value=stored.value,
            metadata=EntryMetadata(source=DEFAULT_SOURCE, last_updated=stored.updated_at, tags=[scope.value]),
        )


def _preference_entry(key: str, preference: UserPreference) -> MemoryEntry:
    return MemoryEntry(
        key=key,
        value=preference.value,
        metadata=EntryMetadata(
            source=preference.source,
            confidence=preference.confidence,
            last_updated=preference.updated_at,
            tags=[MemoryScope.PREFERENCES.value, "preference"],
        ),
    )


def _mapping_entry(key: str, mapping: CategoryMapping) -> MemoryEntry:
    return MemoryEntry(
        key=key,
        value={
            "pattern": mapping.pattern,
            "category": mapping.category,
            "subcategory": mapping.subcategory,
        },
        metadata=EntryMetadata(
            source=mapping.source,
            confidence=mapping.confidence,
            last_updated=mapping.updated_at,
            tags=[MemoryScope.CATEGORIES.value, "category"],
        ),
    )
