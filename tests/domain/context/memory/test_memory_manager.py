"""
Tests for MemoryManager

Verifies:
1. Session initialization over existing long-term memory
2. Scope routing by key prefix and by explicit scope
3. Replace semantics for preferences and categories
4. Conversation sliding window
5. Cross-scope lookup, including duplicate keys
6. Memory summary, tool execution recording and preference interactions
"""

import pytest
from structlog.testing import capture_logs

from agent_memory.domain.context.memory.in_memory_store import InMemoryMemoryStore
from agent_memory.domain.context.memory.memory_manager import MemoryManager, resolve_scope
from agent_memory.domain.errors import AmbiguousMemoryKeyError, ReservedMemoryKeyError
from agent_memory.domain.models.memory import (
    EntryMetadata,
    InteractionType,
    MemoryContext,
    MemoryScope,
    SessionStatus,
    ToolExecution,
    TurnType,
)
from agent_memory.infrastructure.config.settings import MemorySettings


class FailingCategoryStore(InMemoryMemoryStore):
    async def scan(self, user_id, scope):
        if scope == MemoryScope.CATEGORIES:
            raise RuntimeError("categories unavailable")
        return await super().scan(user_id, scope)


@pytest.mark.parametrize(
    "key, expected",
    [
        ("session_token", MemoryScope.SESSION),
        ("pref_theme", MemoryScope.PREFERENCES),
        ("category_coffee", MemoryScope.CATEGORIES),
        ("conversation_note", MemoryScope.CONVERSATION),
        ("budget", MemoryScope.ANALYSIS),
    ],
)
def test_resolve_scope_uses_prefix_then_default(key, expected):
    assert resolve_scope(key, MemoryScope.ANALYSIS) == expected


@pytest.mark.asyncio
async def test_initialize_session_loads_long_term_memory(manager, context, store):
    await manager.store_memory(context, "pref_currency", "EUR")
    await manager.store_memory(context, "category_cafe", {"pattern": "blue bottle", "category": "Dining"})
    await manager.record_analysis(context)

    session = await manager.initialize_session("u1", "s2")

    keys = {entry.key for entry in session.memory_entries}
    assert keys == {"pref_currency", "category_cafe", "last_analysis"}
    assert session.status == SessionStatus.ACTIVE
    assert session.context == MemoryContext(user_id="u1", session_id="s2")

    stored = await store.get("u1", MemoryScope.SESSION, "s2")
    assert stored.value["attributes"] == {}
    assert stored.expires_at is not None


@pytest.mark.asyncio
async def test_initialize_session_is_idempotent(manager, context):
    await manager.initialize_session("u1", "s1")
    await manager.store_memory(context, "cart", ["item"])
    assert (await manager.retrieve_memory(context, "cart")).value == ["item"]

    await manager.initialize_session("u1", "s1")

    assert await manager.retrieve_memory(context, "cart") is None


@pytest.mark.asyncio
async def test_session_writes_shallow_merge_attributes(manager, context):
    await manager.initialize_session("u1", "s1")
    await manager.store_memory(context, "session_step", 1)
    await manager.store_memory(context, "goal", {"save": 100})
    await manager.store_memory(context, "session_step", 2)

    summary = await manager.get_memory_summary(context)

    assert summary.session.attributes == {"session_step": 2, "goal": {"save": 100}}


@pytest.mark.asyncio
async def test_session_attributes_expire_with_ttl(manager, context, clock):
    await manager.initialize_session("u1", "s1")
    await manager.store_memory(context, "session_token", "abc")

    clock.advance(days=2)

    assert await manager.retrieve_memory(context, "session_token") is None


@pytest.mark.asyncio
async def test_preference_overwrite_replaces_not_merges(manager, context):
    await manager.store_memory(context, "pref_x", 1, EntryMetadata(confidence=1.0))
    await manager.store_memory(context, "pref_x", 2, EntryMetadata(confidence=0.5))

    entry = await manager.retrieve_memory(context, "pref_x")

    assert entry.value == 2
    assert entry.metadata.confidence == 0.5
    summary = await manager.get_memory_summary(context)
    assert [p.id for p in summary.preferences] == ["pref_x"]


@pytest.mark.asyncio
async def test_category_upsert_by_id(manager, context):
    await manager.store_memory(context, "category_1", {"pattern": "shell", "category": "Fuel"})
    await manager.store_memory(context, "category_1", {"pattern": "shell gas", "category": "Transportation"})

    entry = await manager.retrieve_memory(context, "category_1")
    summary = await manager.get_memory_summary(context)

    assert entry.value == {"pattern": "shell gas", "category": "Transportation", "subcategory": None}
    assert len(summary.category_mappings) == 1


@pytest.mark.asyncio
async def test_retrieve_missing_key_returns_none(manager, context):
    await manager.initialize_session("u1", "s1")

    assert await manager.retrieve_memory(context, "never_written") is None


@pytest.mark.asyncio
async def test_explicit_scope_overrides_prefix(manager, context, store):
    await manager.store_memory(context, "pref_looking", "yes", scope=MemoryScope.ANALYSIS)

    assert await store.get("u1", MemoryScope.PREFERENCES, "pref_looking") is None
    assert (await store.get("u1", MemoryScope.ANALYSIS, "pref_looking")).value == "yes"


@pytest.mark.asyncio
async def test_default_scope_comes_from_context(manager, store):
    context = MemoryContext(user_id="u1", session_id="s1", default_scope=MemoryScope.ANALYSIS)

    await manager.store_memory(context, "weekly_total", 412.5)

    entry = await manager.retrieve_memory(context, "weekly_total")
    assert entry.value == 412.5
    assert entry.metadata.tags == ["analysis"]


@pytest.mark.asyncio
async def test_conversation_entries_become_memory_turns(manager, context):
    await manager.store_memory(context, "conversation_note", {"text": "hi"})

    history = await manager.get_conversation_history("u1")

    assert len(history) == 1
    assert history[0].id == "conversation_note"
    assert history[0].type == TurnType.MEMORY_ENTRY
    assert history[0].metadata["session_id"] == "s1"
    assert (await manager.retrieve_memory(context, "conversation_note")).value == {"text": "hi"}


@pytest.mark.asyncio
async def test_conversation_history_keeps_last_fifty(manager, context):
    for i in range(51):
        await manager.store_memory(context, f"conversation_{i}", i)

    history = await manager.get_conversation_history("u1")

    assert len(history) == 50
    assert history[0].id == "conversation_1"
    assert history[-1].id == "conversation_50"


@pytest.mark.asyncio
async def test_duplicate_key_across_scopes_returns_first_and_warns(manager, context):
    await manager.initialize_session("u1", "s1")
    await manager.store_memory(context, "budget", "session-value")
    await manager.store_memory(context, "budget", "analysis-value", scope=MemoryScope.ANALYSIS)

    with capture_logs() as logs:
        entry = await manager.retrieve_memory(context, "budget")

    assert entry.value == "session-value"
    warnings = [log for log in logs if log["log_level"] == "warning"]
    assert warnings and warnings[0]["scopes"] == ["session", "analysis"]


@pytest.mark.asyncio
async def test_duplicate_key_rejected_in_strict_mode(store, context):
    manager = MemoryManager(store=store, settings=MemorySettings(_env_file=None, strict_scope_lookup=True))
    await manager.store_memory(context, "budget", 1)
    await manager.store_memory(context, "budget", 2, scope=MemoryScope.ANALYSIS)

    with pytest.raises(AmbiguousMemoryKeyError) as exc_info:
        await manager.retrieve_memory(context, "budget")

    assert exc_info.value.scopes == ["session", "analysis"]


@pytest.mark.asyncio
async def test_users_are_isolated(manager, context):
    other = MemoryContext(user_id="u2", session_id="s1")
    await manager.store_memory(context, "pref_theme", "dark")

    assert await manager.retrieve_memory(other, "pref_theme") is None


@pytest.mark.asyncio
async def test_memory_summary_collects_all_scopes(manager, context, clock):
    await manager.initialize_session("u1", "s1")
    await manager.store_memory(context, "pref_alerts", True)
    await manager.store_memory(context, "category_a", {"pattern": "trader joes", "category": "Groceries"})
    for i in range(12):
        await manager.store_memory(context, f"conversation_{i}", i)
    analysed_at = await manager.record_analysis(context, at=clock())

    summary = await manager.get_memory_summary(context)

    assert summary.session.session_id == "s1"
    assert [p.id for p in summary.preferences] == ["pref_alerts"]
    assert [m.pattern for m in summary.category_mappings] == ["trader joes"]
    assert [t.id for t in summary.recent_conversations] == [f"conversation_{i}" for i in range(2, 12)]
    assert summary.last_analysis == analysed_at == clock()


@pytest.mark.asyncio
async def test_memory_summary_fails_when_any_read_fails(settings, context):
    manager = MemoryManager(store=FailingCategoryStore(), settings=settings)

    with pytest.raises(RuntimeError, match="categories unavailable"):
        await manager.get_memory_summary(context)


@pytest.mark.asyncio
async def test_record_tool_execution_appends_turn_and_learns(manager, context):
    execution = ToolExecution(
        tool_name="categorize_transactions",
        input={"transactions": [{"id": "tx1", "description": "WHOLE FOODS MARKET"}]},
        output={"categorizedTransactions": [
            {"transactionId": "tx1", "category": "Groceries", "confidence": 0.95},
        ]},
        execution_time_ms=156,
        success=True,
    )

    turn = await manager.record_tool_execution(context, execution)

    assert turn.type == TurnType.TOOL_EXECUTION
    assert turn.content["tool"] == "categorize_transactions"
    summary = await manager.get_memory_summary(context)
    assert [t.id for t in summary.recent_conversations] == [turn.id]
    assert [(m.pattern, m.source) for m in summary.category_mappings] == [("whole foods", "learned")]


@pytest.mark.asyncio
async def test_failed_tool_execution_is_recorded_without_learning(manager, context):
    await manager.record_tool_execution(context, {
        "tool_name": "categorize_transactions",
        "output": {"categorizedTransactions": [
            {"description": "WHOLE FOODS MARKET", "category": "Groceries", "confidence": 0.99},
        ]},
        "success": False,
    })

    summary = await manager.get_memory_summary(context)

    assert len(summary.recent_conversations) == 1
    assert summary.recent_conversations[0].content["success"] is False
    assert summary.category_mappings == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "interaction_type, expected_type, expected_confidence, expected_source",
    [
        (InteractionType.CATEGORY_CORRECTION, "category_preference", 1.0, "user_correction"),
        (InteractionType.RECOMMENDATION_FEEDBACK, "recommendation_feedback", 0.9, "user_feedback"),
        (InteractionType.GOAL_UPDATE, "financial_goal", 1.0, "user_input"),
    ],
)
async def test_update_preferences_from_interaction(
    manager, context, interaction_type, expected_type, expected_confidence, expected_source
):
    preference = await manager.update_preferences_from_interaction(
        "u1", {"type": interaction_type, "data": {"detail": "x"}}
    )

    assert preference.type == expected_type
    assert preference.confidence == expected_confidence
    assert preference.source == expected_source
    summary = await manager.get_memory_summary(context)
    assert [p.id for p in summary.preferences] == [preference.id]


@pytest.mark.asyncio
async def test_interactions_append_new_preferences(manager, context):
    await manager.update_preferences_from_interaction("u1", {"type": "goal_update", "data": 1})
    await manager.update_preferences_from_interaction("u1", {"type": "goal_update", "data": 2})

    summary = await manager.get_memory_summary(context)

    assert [p.value for p in summary.preferences] == [1, 2]


@pytest.mark.asyncio
async def test_unknown_interaction_type_is_rejected(manager):
    with pytest.raises(ValueError):
        await manager.update_preferences_from_interaction("u1", {"type": "mood_swing", "data": None})


@pytest.mark.asyncio
async def test_cleanup_expired_memory_leaves_store_untouched(manager, store, context, clock):
    await manager.initialize_session("u1", "s1")
    clock.advance(days=3)

    await manager.cleanup_expired_memory("u1")

    stats = await store.get_stats()
    assert stats["expired_keys"] == 1


@pytest.mark.asyncio
async def test_record_tool_execution_tolerates_unreadable_output(manager, context):
    turn = await manager.record_tool_execution(context, {
        "tool_name": "categorize_transactions",
        "output": {"categorizedTransactions": [
            {"description": "WHOLE FOODS MARKET", "category": "Groceries", "confidence": "high"},
        ]},
    })

    history = await manager.get_conversation_history("u1")

    assert [t.id for t in history] == [turn.id]
    assert (await manager.get_memory_summary(context)).category_mappings == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "key, scope",
    [
        ("last_analysis", MemoryScope.ANALYSIS),
        ("history", MemoryScope.CONVERSATION),
    ],
)
async def test_reserved_keys_are_rejected(manager, context, key, scope):
    await manager.initialize_session("u1", "s1")
    analysed_at = await manager.record_analysis(context)

    with pytest.raises(ReservedMemoryKeyError) as exc_info:
        await manager.store_memory(context, key, "weekly", scope=scope)

    assert exc_info.value.scope == scope.value
    summary = await manager.get_memory_summary(context)
    assert summary.last_analysis == analysed_at
    assert summary.recent_conversations == []


@pytest.mark.asyncio
async def test_reserved_key_rejected_through_default_scope(manager):
    context = MemoryContext(user_id="u1", session_id="s1", default_scope=MemoryScope.ANALYSIS)

    with pytest.raises(ReservedMemoryKeyError):
        await manager.store_memory(context, "last_analysis", "weekly")

    assert (await manager.get_memory_summary(context)).last_analysis is None
