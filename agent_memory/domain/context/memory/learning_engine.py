from typing import Dict, List, Any, Optional, Set
import math
import re
import uuid
import structlog

from agent_memory.domain.models.memory import (
    CategoryMapping,
    ToolExecution,
    UserPreference,
    utcnow,
)
from agent_memory.infrastructure.config.settings import MemorySettings
from .scoped_memory import ScopedMemory

logger = structlog.get_logger(__name__)

STOP_WORDS = frozenset({"the", "and", "for", "with", "from"})
LEARNED_SOURCE = "learned"


def extract_pattern(description: str, word_count: int = 2) -> str:
    """Lower-cased leading significant words of a transaction description"""

    words = re.split(r"\s+", (description or "").lower())
    significant = [
        word for word in words
        if len(word) > 3 and word not in STOP_WORDS
    ]
    return " ".join(significant[:word_count])


class LearningEngine:
    """Derives long-term memory updates from successful tool executions"""

    def __init__(self, memory: ScopedMemory, settings: MemorySettings):
        self.memory = memory
        self.settings = settings

    async def learn_from_tool_execution(self, user_id: str, execution: ToolExecution) -> List[str]:
        """Apply learning hooks; returns the ids of entries written"""

        if not execution.success:
            return []

        learned: List[str] = []
        if execution.tool_name in self.settings.categorization_tools:
            learned.extend(await self.learn_category_patterns(user_id, execution))
        if execution.tool_name in self.settings.recommendation_tools:
            learned.extend(await self.learn_recommendation_preferences(user_id, execution))
        return learned

    async def learn_category_patterns(self, user_id: str, execution: ToolExecution) -> List[str]:
        """Add a mapping for each new high-confidence categorization pattern.

        Patterns match exactly; a pattern already known to the user is never
        inserted twice, including within the same batch.
        """

        items = _categorized_items(execution.output)
        if not items:
            return []

        existing = await self.memory.list_category_mappings(user_id)
        known_patterns: Set[str] = {mapping.pattern for mapping in existing}
        descriptions = _input_descriptions(execution.input)
        created: List[str] = []

        for item in items:
            confidence = _read_confidence(item)
            description = item.get("description") or descriptions.get(str(item.get("transactionId")), "")
            category = item.get("category") or ""
            subcategory = item.get("subcategory")
            if (
                confidence is None
                or not isinstance(description, str)
                or not isinstance(category, str)
                or not isinstance(subcategory, (str, type(None)))
            ):
                logger.debug(
                    "Skipping unreadable categorization item",
                    user_id=user_id,
                    transaction_id=item.get("transactionId"),
                )
                continue

            if confidence <= self.settings.learning_confidence_threshold:
                continue

            pattern = extract_pattern(description, self.settings.pattern_word_count)
            if not pattern or pattern in known_patterns:
                continue

            now = utcnow()
            mapping = CategoryMapping(
                id=f"auto_{uuid.uuid4().hex[:12]}",
                pattern=pattern,
                category=category,
                subcategory=subcategory,
                confidence=min(confidence, 1.0),
                source=LEARNED_SOURCE,
                created_at=now,
                updated_at=now,
            )
            await self.memory.put_category_mapping(user_id, mapping)
            known_patterns.add(pattern)
            created.append(mapping.id)

        if created:
            logger.info("Learned category patterns", user_id=user_id, count=len(created))

        return created

    async def learn_recommendation_preferences(self, user_id: str, execution: ToolExecution) -> List[str]:
        """Record a coarse usage signal for generated recommendations"""

        output = execution.output if isinstance(execution.output, dict) else {}
        recommendations = output.get("recommendations")
        if not isinstance(recommendations, list):
            recommendations = []

        now = utcnow()
        preference = UserPreference(
            id=f"rec_pref_{uuid.uuid4().hex[:12]}",
            type="recommendation_style",
            value={
                "last_recommendation_time": now,
                "recommendation_count": len(recommendations),
            },
            confidence=0.8,
            source=LEARNED_SOURCE,
            created_at=now,
            updated_at=now,
        )
        await self.memory.put_preference(user_id, preference)
        return [preference.id]


def _categorized_items(output: Any) -> List[Dict[str, Any]]:
    if not isinstance(output, dict):
        return []
    items = output.get("categorizedTransactions")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _read_confidence(item: Dict[str, Any]) -> Optional[float]:
    """Numeric confidence of an item, None when it is not a finite number"""

    raw = item.get("confidence") or 0.0
    if isinstance(raw, bool):
        return None
    try:
        confidence = float(raw)
    except (TypeError, ValueError):
        return None
    return confidence if math.isfinite(confidence) else None


def _input_descriptions(payload: Any) -> Dict[str, str]:
    """Map transaction id to description from a categorization input"""

    if not isinstance(payload, dict):
        return {}
    descriptions: Dict[str, str] = {}
    transactions = payload.get("transactions")
    if not isinstance(transactions, list):
        return {}
    for transaction in transactions:
        if isinstance(transaction, dict) and transaction.get("id") is not None:
            descriptions[str(transaction["id"])] = transaction.get("description") or ""
    return descriptions
