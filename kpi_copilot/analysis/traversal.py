"""
Reachability over the traceability graph.

The graph contains verify -> kpi feedback edges, so every traversal keeps
a visited set and runs iteratively.
"""
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Set

from kpi_copilot.engine.graph_store import GraphStore


@dataclass
class ChainResult:
    """Node and edge IDs reached by a traversal."""
    nodes: Set[str] = field(default_factory=set)
    edges: Set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {"nodes": sorted(self.nodes), "edges": sorted(self.edges)}


def trace_chain(store: GraphStore, start_ids: Iterable[str]) -> ChainResult:
    """
    Bidirectional closure: the weakly-connected component(s) of the start nodes.

    Start IDs that are not in the store are ignored. Every edge touching a
    visited node is part of the result, so re-tracing the result is a no-op.
    Node IDs reached through dangling edges are included even though they
    have no node object.
    """
    result = ChainResult()
    queue = deque(node_id for node_id in start_ids if store.has_node(node_id))

    while queue:
        node_id = queue.popleft()
        if node_id in result.nodes:
            continue
        result.nodes.add(node_id)

        for edge in store.incoming_edges(node_id):
            result.edges.add(edge.id)
            if edge.source not in result.nodes:
                queue.append(edge.source)

        for edge in store.outgoing_edges(node_id):
            result.edges.add(edge.id)
            if edge.target not in result.nodes:
                queue.append(edge.target)

    return result


def _trace_directed(store: GraphStore, node_id: str, upstream: bool) -> ChainResult:
    result = ChainResult()
    queue = deque([node_id])

    while queue:
        current = queue.popleft()
        if current in result.nodes:
            continue
        result.nodes.add(current)

        edges = store.incoming_edges(current) if upstream else store.outgoing_edges(current)
        for edge in edges:
            result.edges.add(edge.id)
            neighbour = edge.source if upstream else edge.target
            if neighbour not in result.nodes:
                queue.append(neighbour)

    return result


def trace_impact(store: GraphStore, node_id: str) -> ChainResult:
    """Upstream closure (incoming edges only): what could affect ``node_id``."""
    return _trace_directed(store, node_id, upstream=True)


def trace_dependencies(store: GraphStore, node_id: str) -> ChainResult:
    """Downstream closure (outgoing edges only): what ``node_id`` affects."""
    return _trace_directed(store, node_id, upstream=False)
