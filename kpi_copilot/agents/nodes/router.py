"""
Router node for intent classification.

Intents are matched by an ordered rule list over the normalized query;
the first matching rule wins, so a query such as "统计 KPI_FoldTime 的链路"
is a statistics query, not a chain trace.
"""
import re
from typing import Any, Dict, List, Pattern, Tuple

from loguru import logger

from kpi_copilot.agents.state import CopilotState, QueryIntent, add_message


# (pattern, intent, confidence), evaluated top to bottom
INTENT_RULES: List[Tuple[Pattern, QueryIntent, float]] = [
    (re.compile(r"统计|多少|几个|数量|占比|比例|百分"), QueryIntent.QUERY_STATS, 0.9),
    (re.compile(r"链路|路径|追踪|关系"), QueryIntent.TRACE_CHAIN, 0.9),
    (re.compile(r"影响|波及|连带"), QueryIntent.ANALYZE_IMPACT, 0.9),
    (re.compile(r"问题|瓶颈|风险|缺失|缺少"), QueryIntent.FIND_ISSUES, 0.8),
    (re.compile(r"建议|推荐|优化|改进"), QueryIntent.SUGGEST, 0.8),
    (re.compile(r"对比|比较|差异"), QueryIntent.COMPARE, 0.8),
    (re.compile(r"相关|关联"), QueryIntent.CORRELATION, 0.8),
    (re.compile(r"健康|评估|诊断"), QueryIntent.HEALTH_CHECK, 0.9),
    (re.compile(r"优先级|排序|重要"), QueryIntent.PRIORITIZE, 0.8),
    (re.compile(r"显示|查看|列出|找出"), QueryIntent.QUERY_NODES, 0.7),
]

FALLBACK_CONFIDENCE = 0.5


def normalize_query(query: str) -> str:
    return query.lower().strip()


def classify_intent(query: str) -> Tuple[QueryIntent, float]:
    """
    Classify a raw query.

    Args:
        query: User query (any case, may be padded)

    Returns:
        (intent, confidence); ``UNKNOWN`` at 0.5 when no rule matches
    """
    normalized = normalize_query(query)
    for pattern, intent, confidence in INTENT_RULES:
        if pattern.search(normalized):
            return intent, confidence
    return QueryIntent.UNKNOWN, FALLBACK_CONFIDENCE


def router_node(state: CopilotState) -> Dict[str, Any]:
    """
    Intent classification node.

    Args:
        state: Current copilot state

    Returns:
        State updates with intent and confidence
    """
    user_query = state["user_query"]

    logger.info(f"[Router] Classifying query: {user_query[:100]}")

    intent, confidence = classify_intent(user_query)

    logger.info(f"[Router] Classified as {intent.value} ({confidence})")

    return {
        "intent": intent.value,
        "confidence": confidence,
        "messages": [add_message(state, "system", f"Intent: {intent.value}")],
    }
