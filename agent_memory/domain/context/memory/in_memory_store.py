from typing import Any, Callable, Dict, List, Optional, Tuple
import asyncio
import copy
from datetime import datetime, timedelta

from agent_memory.domain.models.memory import MemoryScope, utcnow
from .memory_store import StoredEntry

EntryKey = Tuple[str, str, str]


class InMemoryMemoryStore:
    """In-process MemoryStore with per-entry TTL"""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.entries: Dict[EntryKey, StoredEntry] = {}
        self._clock = clock or utcnow
        self._lock = asyncio.Lock()

    async def put(
        self,
        user_id: str,
        scope: MemoryScope,
        key: str,
        value: Any,
        ttl_days: Optional[int] = None,
    ) -> None:
        """Store a copy of value, replacing any previous entry"""

        async with self._lock:
            now = self._clock()
            entry_key = self._entry_key(user_id, scope, key)
            previous = self.entries.get(entry_key)

            self.entries[entry_key] = StoredEntry(
                key=key,
                value=copy.deepcopy(value),
                created_at=previous.created_at if previous and not self._expired(previous, now) else now,
                updated_at=now,
                expires_at=now + timedelta(days=ttl_days) if ttl_days else None,
            )

    async def get(self, user_id: str, scope: MemoryScope, key: str) -> Optional[StoredEntry]:
        """Get an entry if present and not expired"""

        async with self._lock:
            entry_key = self._entry_key(user_id, scope, key)
            entry = self.entries.get(entry_key)
            if entry is None:
                return None

            if self._expired(entry, self._clock()):
                del self.entries[entry_key]
                return None

            return entry.model_copy(update={"value": copy.deepcopy(entry.value)})

    async def scan(self, user_id: str, scope: MemoryScope) -> List[StoredEntry]:
        """List live entries of one scope in insertion order"""

        async with self._lock:
            now = self._clock()
            scope_value = MemoryScope(scope).value
            results = []
            for (owner, entry_scope, _), entry in self.entries.items():
                if owner != user_id or entry_scope != scope_value:
                    continue
                if self._expired(entry, now):
                    continue
                results.append(entry.model_copy(update={"value": copy.deepcopy(entry.value)}))
            return results

    async def delete(self, user_id: str, scope: MemoryScope, key: str) -> None:
        async with self._lock:
            self.entries.pop(self._entry_key(user_id, scope, key), None)

    async def clear_expired(self) -> int:
        """Clear expired entries and return count"""

        async with self._lock:
            now = self._clock()
            expired_keys = [
                entry_key for entry_key, entry in self.entries.items()
                if self._expired(entry, now)
            ]

            for entry_key in expired_keys:
                del self.entries[entry_key]

            return len(expired_keys)

    async def get_stats(self) -> Dict[str, Any]:
        """Get store statistics"""

        async with self._lock:
            now = self._clock()
            active_count = sum(
                1 for entry in self.entries.values()
                if not self._expired(entry, now)
            )
            users = {owner for owner, _, _ in self.entries}

            return {
                "total_keys": len(self.entries),
                "active_keys": active_count,
                "expired_keys": len(self.entries) - active_count,
                "users": len(users),
            }

    @staticmethod
    def _entry_key(user_id: str, scope: MemoryScope, key: str) -> EntryKey:
        return (user_id, MemoryScope(scope).value, key)

    @staticmethod
    def _expired(entry: StoredEntry, now: datetime) -> bool:
        return entry.expires_at is not None and now >= entry.expires_at
