"""
Entity Extractor node.

Rule-based extraction of node IDs, aliases, status, model type, level and
category from the query. Every rule runs; results accumulate in rule order.
"""
import re
from typing import Any, Dict, List

from loguru import logger

from kpi_copilot.agents.state import CopilotState, Entity, EntityType, add_message
from kpi_copilot.agents.nodes.router import normalize_query


# Colloquial name -> node ID
ALIAS_MAP: Dict[str, str] = {
    "折叠时间": "KPI_FoldTime",
    "空间收益": "KPI_SpaceGain",
    "用户体验": "KPI_UX",
    "安全性": "KPI_Safety",
    "nvh": "KPI_NVH",
    "成本": "KPI_Cost",
    "可靠性": "KPI_Reliability",
    "电机扭矩": "D_MotorTorque",
    "控制算法": "D_ControlAlgo",
}

NODE_ID_PATTERN = re.compile(r"(?<![A-Za-z0-9_])((?:KPI|D|V|G)_[A-Za-z0-9_]*)")

UNACHIEVED_PATTERN = re.compile(r"未达成|未完成|不达标")
ACHIEVED_PATTERN = re.compile(r"已达成|完成|达标")

# First hit wins
MODEL_TYPE_RULES = [
    (re.compile(r"sysml|系统建模"), "sysml"),
    (re.compile(r"simulink|仿真"), "simulink"),
    (re.compile(r"modelica"), "modelica"),
    (re.compile(r"fmu"), "fmu"),
]
NO_MODEL_PATTERN = re.compile(r"非?模型|没有模型")

LEVEL_RULES = [
    (re.compile(r"一级|1级|level\s*1"), "1"),
    (re.compile(r"二级|2级|level\s*2"), "2"),
]

CATEGORY_RULES = [
    (re.compile(r"目标"), "goal"),
    (re.compile(r"指标|kpi"), "kpi"),
    (re.compile(r"设计|参数"), "design"),
    (re.compile(r"验证|仿真"), "verify"),
]


def extract_entities(query: str) -> List[Entity]:
    """
    Extract typed entities from a raw query.

    Node IDs are taken verbatim from the raw text; every other rule runs on
    the normalized (lowercased, stripped) query. Duplicates are kept.

    Args:
        query: User query

    Returns:
        Entities in rule order
    """
    normalized = normalize_query(query)
    entities: List[Entity] = []

    for match in NODE_ID_PATTERN.finditer(query):
        entities.append(Entity(type=EntityType.NODE_ID, value=match.group(1), confidence=0.95))

    for alias, node_id in ALIAS_MAP.items():
        if alias in normalized:
            entities.append(Entity(type=EntityType.NODE_ID, value=node_id, confidence=0.9))

    if UNACHIEVED_PATTERN.search(normalized):
        entities.append(Entity(type=EntityType.STATUS, value="unachieved", confidence=0.9))
    elif ACHIEVED_PATTERN.search(normalized):
        entities.append(Entity(type=EntityType.STATUS, value="achieved", confidence=0.9))

    model_type = next((value for pattern, value in MODEL_TYPE_RULES if pattern.search(normalized)), None)
    if model_type:
        entities.append(Entity(type=EntityType.MODEL_TYPE, value=model_type, confidence=0.95))
    elif NO_MODEL_PATTERN.search(normalized):
        entities.append(Entity(type=EntityType.MODEL_TYPE, value="none", confidence=0.9))

    level = next((value for pattern, value in LEVEL_RULES if pattern.search(normalized)), None)
    if level:
        entities.append(Entity(type=EntityType.LEVEL, value=level, confidence=0.9))

    category = next((value for pattern, value in CATEGORY_RULES if pattern.search(normalized)), None)
    if category:
        entities.append(Entity(type=EntityType.CATEGORY, value=category, confidence=0.9))

    return entities


def entity_extractor_node(state: CopilotState) -> Dict[str, Any]:
    """
    Entity extraction node.

    Args:
        state: Current copilot state

    Returns:
        State updates with serialized entities
    """
    user_query = state["user_query"]

    logger.info("[EntityExtractor] Extracting entities from query...")

    entities = extract_entities(user_query)
    summary = ", ".join(f"{e.type.value}={e.value}" for e in entities) or "none"

    logger.info(f"[EntityExtractor] Extracted entities: {summary}")

    return {
        "entities": [e.to_dict() for e in entities],
        "messages": [add_message(state, "system", f"Extracted entities: {summary}")],
    }
