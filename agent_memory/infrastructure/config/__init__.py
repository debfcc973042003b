from .settings import MemorySettings, get_settings

__all__ = ["MemorySettings", "get_settings"]
