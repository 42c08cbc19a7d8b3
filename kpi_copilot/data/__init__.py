from .models import (
    NodeCategory,
    Relationship,
    ModelType,
    KPIMetrics,
    GoalNode,
    KPINode,
    DesignNode,
    VerifyNode,
    Node,
    Edge,
    is_kpi,
)
from .loader import load_graph, load_graph_file
from .graph_data import GRAPH_DATA, load_sample_graph, load_default_graph

__all__ = [
    "NodeCategory",
    "Relationship",
    "ModelType",
    "KPIMetrics",
    "GoalNode",
    "KPINode",
    "DesignNode",
    "VerifyNode",
    "Node",
    "Edge",
    "is_kpi",
    "load_graph",
    "load_graph_file",
    "GRAPH_DATA",
    "load_sample_graph",
    "load_default_graph",
]
