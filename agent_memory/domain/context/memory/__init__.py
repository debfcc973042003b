from .in_memory_store import InMemoryMemoryStore
from .learning_engine import LearningEngine, extract_pattern
from .memory_manager import MemoryManager, resolve_scope
from .memory_store import MemoryStore, StoredEntry
from .scoped_memory import ScopedMemory

__all__ = [
    "InMemoryMemoryStore",
    "LearningEngine",
    "MemoryManager",
    "MemoryStore",
    "ScopedMemory",
    "StoredEntry",
    "extract_pattern",
    "resolve_scope",
]
