from typing import Dict, FrozenSet, List, Optional
from datetime import datetime

from agent_memory.domain.models.memory import (
    CategoryMapping,
    ConversationTurn,
    MemoryScope,
    SessionRecord,
    UserPreference,
)
from agent_memory.infrastructure.config.settings import MemorySettings
from .memory_store import MemoryStore

CONVERSATION_KEY = "history"
LAST_ANALYSIS_KEY = "last_analysis"

# Keys owned by ScopedMemory itself; store_memory may not write them
RESERVED_KEYS: Dict[MemoryScope, FrozenSet[str]] = {
    MemoryScope.CONVERSATION: frozenset({CONVERSATION_KEY}),
    MemoryScope.ANALYSIS: frozenset({LAST_ANALYSIS_KEY}),
}


class ScopedMemory:
    """Typed accessors for each memory scope over a raw MemoryStore.

    Values are written as plain dicts so any store that round-trips nested
    data and datetimes can back them.
    """

    def __init__(self, store: MemoryStore, settings: MemorySettings):
        self.store = store
        self.settings = settings

    # Session (short-term, TTL)

    async def get_session(self, user_id: str, session_id: str) -> Optional[SessionRecord]:
        entry = await self.store.get(user_id, MemoryScope.SESSION, session_id)
        if entry is None:
            return None
        return SessionRecord.model_validate(entry.value)

    async def put_session(self, record: SessionRecord) -> None:
        await self.store.put(
            record.user_id,
            MemoryScope.SESSION,
            record.session_id,
            record.model_dump(),
            ttl_days=self.settings.session_ttl_days,
        )

    # Preferences (long-term)

    async def list_preferences(self, user_id: str) -> List[UserPreference]:
        entries = await self.store.scan(user_id, MemoryScope.PREFERENCES)
        return [UserPreference.model_validate(entry.value) for entry in entries]

    async def get_preference(self, user_id: str, preference_id: str) -> Optional[UserPreference]:
        entry = await self.store.get(user_id, MemoryScope.PREFERENCES, preference_id)
        return UserPreference.model_validate(entry.value) if entry else None

    async def put_preference(self, user_id: str, preference: UserPreference) -> None:
        await self.store.put(user_id, MemoryScope.PREFERENCES, preference.id, preference.model_dump())

    # Category mappings (long-term)

    async def list_category_mappings(self, user_id: str) -> List[CategoryMapping]:
        entries = await self.store.scan(user_id, MemoryScope.CATEGORIES)
        return [CategoryMapping.model_validate(entry.value) for entry in entries]

    async def get_category_mapping(self, user_id: str, mapping_id: str) -> Optional[CategoryMapping]:
        entry = await self.store.get(user_id, MemoryScope.CATEGORIES, mapping_id)
        return CategoryMapping.model_validate(entry.value) if entry else None

    async def put_category_mapping(self, user_id: str, mapping: CategoryMapping) -> None:
        await self.store.put(user_id, MemoryScope.CATEGORIES, mapping.id, mapping.model_dump())

    # Conversation history (sliding window)

    async def get_conversation_history(self, user_id: str) -> List[ConversationTurn]:
        entry = await self.store.get(user_id, MemoryScope.CONVERSATION, CONVERSATION_KEY)
        if entry is None:
            return []
        return [ConversationTurn.model_validate(turn) for turn in entry.value or []]

    async def append_conversation_turn(self, user_id: str, turn: ConversationTurn) -> List[ConversationTurn]:
        """Append a turn, evicting the oldest beyond the configured window"""

        history = await self.get_conversation_history(user_id)
        history.append(turn)
        history = history[-self.settings.conversation_window:]

        await self.store.put(
            user_id,
            MemoryScope.CONVERSATION,
            CONVERSATION_KEY,
            [t.model_dump() for t in history],
            ttl_days=self.settings.conversation_ttl_days,
        )
        return history

    # Analysis tracking

    async def get_last_analysis(self, user_id: str) -> Optional[datetime]:
        entry = await self.store.get(user_id, MemoryScope.ANALYSIS, LAST_ANALYSIS_KEY)
        return entry.value if entry else None

    async def set_last_analysis(self, user_id: str, at: datetime) -> None:
        await self.store.put(user_id, MemoryScope.ANALYSIS, LAST_ANALYSIS_KEY, at)
