from .graph_store import GraphStore, QueryCondition

__all__ = ["GraphStore", "QueryCondition"]
