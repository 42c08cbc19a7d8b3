"""
Conversation context for multi-turn queries.

Keeps a bounded query history, the current focus, recently viewed nodes,
favourites and query frequencies. Everything lives in the instance; there
is no persistence.
"""
import re
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from kpi_copilot.agents.state import Entity, EntityType, ParsedQuery, QueryIntent
from kpi_copilot.config import settings
from kpi_copilot.data.models import is_kpi


REFERENCE_PATTERN = re.compile(r"它|这个|这些|那个|那些|上一个|刚才|之前")

PREVIOUS_RESULT_MARKER = "(引用上文)"
FOCUS_MARKER = "(当前焦点)"

SIMILARITY_THRESHOLD = 0.3

FOLLOW_UP_HINTS = {
    QueryIntent.QUERY_NODES: [
        "💡 你可以继续问：\"这些节点的链路是什么？\"",
        "💡 或者：\"分析它们的影响范围\"",
    ],
    QueryIntent.TRACE_CHAIN: [
        "💡 你可以继续问：\"这条链路有什么风险？\"",
        "💡 或者：\"如何优化这条链路？\"",
    ],
    QueryIntent.FIND_ISSUES: [
        "💡 你可以继续问：\"给出优化建议\"",
        "💡 或者：\"计算优先级\"",
    ],
    QueryIntent.QUERY_STATS: [
        "💡 你可以继续问：\"显示未达成的指标\"",
        "💡 或者：\"分析模型覆盖缺口\"",
    ],
}


@dataclass
class HistoryEntry:
    query: str
    parsed: ParsedQuery
    result_nodes: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "parsed": self.parsed.to_dict(),
            "result_nodes": self.result_nodes,
            "timestamp": self.timestamp.isoformat(),
        }


def word_similarity(text1: str, text2: str) -> float:
    """Jaccard overlap of whitespace-separated words."""
    words1, words2 = set(text1.split()), set(text2.split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


class ContextManager:
    """
    Multi-turn conversation context.

    Args:
        history_size: Maximum number of queries kept in the history
        recently_viewed_size: Maximum length of the recently viewed list
    """

    def __init__(self, history_size: Optional[int] = None, recently_viewed_size: Optional[int] = None):
        self.history_size = history_size or settings.history_size
        self.recently_viewed_size = recently_viewed_size or settings.recently_viewed_size
        self.clear()

    def clear(self) -> None:
        """Reset every piece of context."""
        self.history: List[HistoryEntry] = []
        self.focused_nodes: List[str] = []
        self.focused_category: Optional[str] = None
        self.favorites: List[str] = []
        self.recently_viewed: List[str] = []
        self.query_counts: Counter = Counter()
        self.last_intent: Optional[QueryIntent] = None
        self.last_entities: List[Entity] = []

    # ========================================
    # Recording
    # ========================================

    def record_query(self, query: str, parsed: ParsedQuery, result_nodes: Optional[Sequence[str]] = None) -> None:
        self.history.append(HistoryEntry(query=query, parsed=parsed, result_nodes=list(result_nodes or [])))
        if len(self.history) > self.history_size:
            self.history.pop(0)

        self.last_intent = parsed.intent
        self.last_entities = list(parsed.entities)
        self.query_counts[query] += 1

        logger.debug(f"[Context] Recorded query ({len(self.history)}/{self.history_size} in history)")

    def update_focus(self, node_ids: Sequence[str], category: Optional[str] = None) -> None:
        """Set the focus and move the nodes to the front of the recently viewed list."""
        self.focused_nodes = list(node_ids)
        self.focused_category = category

        for node_id in node_ids:
            if node_id in self.recently_viewed:
                self.recently_viewed.remove(node_id)
            self.recently_viewed.insert(0, node_id)

        del self.recently_viewed[self.recently_viewed_size:]

    # ========================================
    # Reference resolution
    # ========================================

    def resolve_references(self, query: str, parsed: ParsedQuery) -> ParsedQuery:
        """
        Expand referring words (它, 这些, 上一个, ...) into node entities.

        The previous query's result nodes and then the focused nodes are
        appended as ``node_id`` entities, skipping values already present.

        Returns:
            A new ParsedQuery; ``parsed`` is not modified
        """
        if not REFERENCE_PATTERN.search(query):
            return parsed

        entities = list(parsed.entities)
        known = {e.value for e in entities}

        last = self.get_last_query()
        candidates = [(node_id, PREVIOUS_RESULT_MARKER) for node_id in (last.result_nodes if last else [])]
        candidates += [(node_id, FOCUS_MARKER) for node_id in self.focused_nodes]

        for node_id, marker in candidates:
            if node_id in known:
                continue
            entities.append(Entity(type=EntityType.NODE_ID, value=node_id, raw=marker))
            known.add(node_id)

        added = len(entities) - len(parsed.entities)
        if added:
            logger.info(f"[Context] Resolved reference to {added} node(s)")

        return replace(parsed, entities=entities)

    # ========================================
    # Accessors
    # ========================================

    def get_last_query(self) -> Optional[HistoryEntry]:
        return self.history[-1] if self.history else None

    def get_related_queries(self, current_query: str) -> List[str]:
        related = [
            entry.query for entry in self.history
            if word_similarity(entry.query, current_query) > SIMILARITY_THRESHOLD
        ]
        return related[-3:]

    def get_frequent_queries(self, limit: int = 5) -> List[str]:
        return [query for query, _ in self.query_counts.most_common(limit)]

    def add_favorite(self, node_id: str) -> None:
        if node_id not in self.favorites:
            self.favorites.append(node_id)

    def remove_favorite(self, node_id: str) -> None:
        if node_id in self.favorites:
            self.favorites.remove(node_id)

    def get_favorites(self) -> List[str]:
        return list(self.favorites)

    def get_recently_viewed(self, limit: int = 10) -> List[str]:
        return self.recently_viewed[:limit]

    def get_contextual_hints(self) -> List[str]:
        """Follow-up suggestions based on the last intent and the current focus."""
        hints: List[str] = []

        last = self.get_last_query()
        if last is not None:
            hints.extend(FOLLOW_UP_HINTS.get(last.parsed.intent, []))

        if self.focused_nodes:
            hints.append("💡 当前关注的节点可以用于进一步分析")

        return hints

    def generate_suggestions(self, nodes: Sequence) -> List[str]:
        """
        Suggestions from recently viewed KPIs, favourites and the last intent.

        Args:
            nodes: Current node snapshot, used to resolve labels
        """
        suggestions: List[str] = []
        by_id = {node.id: node for node in nodes}

        recent_kpis = [by_id[i] for i in self.recently_viewed if is_kpi(by_id.get(i))][:3]
        if recent_kpis:
            suggestions.append(f"你最近查看了 {'、'.join(n.label for n in recent_kpis)}")
            suggestions.append("💡 是否需要查看它们的最新状态？")

        if self.favorites:
            suggestions.append(f"你有 {len(self.favorites)} 个收藏的指标")

        if self.last_intent == QueryIntent.FIND_ISSUES:
            suggestions.append("💡 建议：查看优先级排序以确定改进顺序")

        return suggestions
