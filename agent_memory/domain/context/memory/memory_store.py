from typing import Any, List, Optional, Protocol
from datetime import datetime
from pydantic import BaseModel, Field

from agent_memory.domain.models.memory import MemoryScope, utcnow


class StoredEntry(BaseModel):
    """Raw entry as held by a backing store"""
    key: str
    value: Any = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None


class MemoryStore(Protocol):
    """Key-scoped persistence addressed by (user_id, scope, key).

    Writes are last-write-wins. Entries written with ``ttl_days`` are
    expired by the store itself; callers never poll for expiry.
    """

    async def get(self, user_id: str, scope: MemoryScope, key: str) -> Optional[StoredEntry]:
        ...

    async def put(
        self,
        user_id: str,
        scope: MemoryScope,
        key: str,
        value: Any,
        ttl_days: Optional[int] = None,
    ) -> None:
        ...

    async def scan(self, user_id: str, scope: MemoryScope) -> List[StoredEntry]:
        ...

    async def delete(self, user_id: str, scope: MemoryScope, key: str) -> None:
        ...
