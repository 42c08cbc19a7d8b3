from .state import CopilotState, QueryIntent, EntityType, Entity, ParsedQuery
from .parser import parse_query
from .context import ContextManager
from .nodes.generator import ResponseData, ResponseGenerator
from .graph import create_graph, CopilotGraph

__all__ = [
    "CopilotState",
    "QueryIntent",
    "EntityType",
    "Entity",
    "ParsedQuery",
    "parse_query",
    "ContextManager",
    "ResponseData",
    "ResponseGenerator",
    "create_graph",
    "CopilotGraph",
]
