from .router import router_node
from .entity_extractor import entity_extractor_node
from .context import create_context_node, create_memory_node
from .generator import create_generator_node

__all__ = [
    "router_node",
    "entity_extractor_node",
    "create_context_node",
    "create_memory_node",
    "create_generator_node",
]
