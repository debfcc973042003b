from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MemorySettings(BaseSettings):
    """
    Agent memory and orchestration tracing settings.

    Environment variables use the AGENT_MEMORY_ prefix, e.g.
    AGENT_MEMORY_SESSION_TTL_DAYS=2 or AGENT_MEMORY_LOG_FORMAT=console.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AGENT_MEMORY_",
        extra="ignore",
    )

    # Memory lifetimes
    session_ttl_days: int = Field(default=1, ge=1)
    conversation_ttl_days: Optional[int] = Field(default=None, ge=1)
    conversation_window: int = Field(default=50, ge=1)
    summary_conversation_limit: int = Field(default=10, ge=0)
    strict_scope_lookup: bool = False

    # Learning
    learning_confidence_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    pattern_word_count: int = Field(default=2, ge=1)
    categorization_tools: List[str] = Field(default_factory=lambda: ["categorize_transactions"])
    recommendation_tools: List[str] = Field(default_factory=lambda: ["generate_savings_recommendations"])

    # Trace metadata defaults
    agent_version: str = "1.0.0"
    model_used: str = "claude-3-5-sonnet"
    default_trace_confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "agent-memory"

    # Langfuse export (disabled unless both keys are set)
    langfuse_public_key: Optional[str] = None
    langfuse_secret_key: Optional[str] = None
    langfuse_host: str = "https://cloud.langfuse.com"

    @property
    def langfuse_enabled(self) -> bool:
        return bool(self.langfuse_public_key and self.langfuse_secret_key)


@lru_cache(maxsize=1)
def get_settings() -> MemorySettings:
    """Process-wide settings loaded from the environment"""
    return MemorySettings()
