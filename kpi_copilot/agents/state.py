"""
Copilot state definition for LangGraph.

CopilotState is the shared object passed between the pipeline nodes. It
carries the user query, the parsed query, the generated response and the
message log. Values are plain dicts so a checkpointer can store them.
"""
from typing import TypedDict, List, Optional, Annotated
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime

from kpi_copilot.config import settings

DEFAULT_THREAD = "default"


class QueryIntent(str, Enum):
    """Intent categories recognised by the router."""
    QUERY_NODES = "query_nodes"        # List nodes matching status/model/level filters
    QUERY_STATS = "query_stats"        # Achievement / model coverage statistics
    TRACE_CHAIN = "trace_chain"        # Full chain of a node
    ANALYZE_IMPACT = "analyze_impact"  # Upstream impact closure
    FIND_ISSUES = "find_issues"        # Bottlenecks, verification gaps, diagnosis
    SUGGEST = "suggest"
    COMPARE = "compare"
    CORRELATION = "correlation"
    HEALTH_CHECK = "health_check"
    PRIORITIZE = "prioritize"
    UNKNOWN = "unknown"


class EntityType(str, Enum):
    NODE_ID = "node_id"
    CATEGORY = "category"
    STATUS = "status"
    MODEL_TYPE = "model_type"
    LEVEL = "level"
    METRIC = "metric"
    RELATIONSHIP = "relationship"


@dataclass
class Entity:
    """
    A typed value extracted from the query.

    ``raw`` is set when the entity was injected by reference resolution
    rather than found in the query text.
    """
    type: EntityType
    value: str
    confidence: Optional[float] = None
    raw: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "value": self.value,
            "confidence": self.confidence,
            "raw": self.raw,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Entity":
        return cls(
            type=EntityType(data["type"]),
            value=data["value"],
            confidence=data.get("confidence"),
            raw=data.get("raw"),
        )


@dataclass
class ParsedQuery:
    """Output of the query parser."""
    raw_query: str
    intent: QueryIntent
    entities: List[Entity] = field(default_factory=list)
    confidence: float = 0.5

    def values_of(self, entity_type: EntityType) -> List[str]:
        return [e.value for e in self.entities if e.type == entity_type]

    def first_value(self, entity_type: EntityType) -> Optional[str]:
        values = self.values_of(entity_type)
        return values[0] if values else None

    def to_dict(self) -> dict:
        return {
            "raw_query": self.raw_query,
            "intent": self.intent.value,
            "entities": [e.to_dict() for e in self.entities],
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ParsedQuery":
        return cls(
            raw_query=data["raw_query"],
            intent=QueryIntent(data["intent"]),
            entities=[Entity.from_dict(e) for e in data.get("entities", [])],
            confidence=data.get("confidence", 0.5),
        )


def append_messages(left: List[dict], right: List[dict]) -> List[dict]:
    """Message reducer: append, keeping the newest ``settings.max_state_messages``."""
    return (left + right)[-settings.max_state_messages:]


class CopilotState(TypedDict):
    """
    Shared state object for the copilot pipeline.

    ``intent`` and ``confidence`` are written by the router, ``entities`` by
    the entity extractor; the context node folds them into ``parsed_query``.
    """
    # Input
    user_query: str
    thread_id: str

    # Message log (accumulated with append_messages)
    messages: Annotated[List[dict], append_messages]

    # Parsing
    intent: Optional[str]
    confidence: float
    entities: List[dict]  # Serialized Entity list
    parsed_query: Optional[dict]  # Serialized ParsedQuery

    # Output
    response: Optional[dict]  # Serialized ResponseData

    # Metadata
    start_time: Optional[str]
    end_time: Optional[str]


def create_initial_state(user_query: str, thread_id: str = DEFAULT_THREAD) -> CopilotState:
    """Create an initial state for a new query."""
    return CopilotState(
        user_query=user_query,
        thread_id=thread_id,
        messages=[{"role": "user", "content": user_query}],
        intent=None,
        confidence=0.0,
        entities=[],
        parsed_query=None,
        response=None,
        start_time=datetime.now().isoformat(),
        end_time=None,
    )


def add_message(state: CopilotState, role: str, content: str) -> dict:
    """Helper to create a message dict for state update."""
    return {"role": role, "content": content, "timestamp": datetime.now().isoformat()}
