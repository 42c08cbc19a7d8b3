"""
Graph Store.

Holds a snapshot of the traceability graph and answers structural queries
(filtering, adjacency, statistics). Traversal lives in
``kpi_copilot.analysis.traversal``.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Sequence

from loguru import logger

from kpi_copilot.data.models import Edge, Node, NodeCategory, is_kpi


Direction = Literal["incoming", "outgoing", "both"]


@dataclass
class QueryCondition:
    """
    AND-combined node filter. ``None`` (or an empty list) means "no restriction".

    ``achieved``, ``model_type`` and ``has_model`` only ever match KPI nodes;
    ``level`` only matches nodes that carry a level.
    """
    category: Optional[List[str]] = None
    achieved: Optional[bool] = None
    model_type: Optional[str] = None
    level: Optional[int] = None
    has_model: Optional[bool] = None
    node_ids: Optional[List[str]] = None

    def matches(self, node: Node) -> bool:
        if self.category and node.category not in self.category:
            return False
        if self.achieved is not None:
            if not is_kpi(node) or node.metrics.achieved != self.achieved:
                return False
        if self.model_type is not None:
            if not is_kpi(node) or node.metrics.model_type != self.model_type:
                return False
        if self.level is not None and getattr(node, "level", None) != self.level:
            return False
        if self.has_model is not None:
            if not is_kpi(node) or node.has_model != self.has_model:
                return False
        if self.node_ids and node.id not in self.node_ids:
            return False
        return True


class GraphStore:
    """
    In-memory snapshot of nodes and edges.

    The snapshot is replaced wholesale by ``update_data``; every read runs
    against the latest snapshot.
    """

    def __init__(self, nodes: Sequence[Node] = (), edges: Sequence[Edge] = ()):
        self.update_data(nodes, edges)

    def update_data(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
        """Replace the snapshot and rebuild the lookup indexes."""
        node_list = list(nodes)
        edge_list = list(edges)

        by_id = {node.id: node for node in node_list}
        incoming: Dict[str, List[Edge]] = defaultdict(list)
        outgoing: Dict[str, List[Edge]] = defaultdict(list)
        for edge in edge_list:
            outgoing[edge.source].append(edge)
            incoming[edge.target].append(edge)

        # Swap in one step so readers never see a half-built snapshot
        self._nodes, self._edges = node_list, edge_list
        self._by_id, self._incoming, self._outgoing = by_id, dict(incoming), dict(outgoing)

        logger.debug(f"[Store] Snapshot updated: {len(node_list)} nodes, {len(edge_list)} edges")

    # ========================================
    # Accessors
    # ========================================

    @property
    def nodes(self) -> List[Node]:
        return self._nodes

    @property
    def edges(self) -> List[Edge]:
        return self._edges

    def get_node(self, node_id: str) -> Optional[Node]:
        """Look up a node; IDs reached through dangling edges return ``None``."""
        return self._by_id.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._by_id

    def incoming_edges(self, node_id: str) -> List[Edge]:
        return self._incoming.get(node_id, [])

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        return self._outgoing.get(node_id, [])

    # ========================================
    # Structural queries
    # ========================================

    def query_nodes(self, condition: Optional[QueryCondition] = None) -> List[Node]:
        """
        Return the nodes matching every filter in ``condition``.

        Args:
            condition: Filter set; ``None`` returns every node

        Returns:
            Matching nodes in snapshot order (possibly empty)
        """
        if condition is None:
            return list(self._nodes)
        return [node for node in self._nodes if condition.matches(node)]

    def query_edges(self, node_ids: Sequence[str], relationship: Optional[str] = None) -> List[Edge]:
        """Edges with either endpoint in ``node_ids``, optionally of one relationship type."""
        id_set = set(node_ids)
        return [
            edge for edge in self._edges
            if (edge.source in id_set or edge.target in id_set)
            and (relationship is None or edge.relationship == relationship)
        ]

    def calculate_stats(self, nodes: Optional[Sequence[Node]] = None) -> dict:
        """
        Aggregate counts over ``nodes`` (defaults to the whole snapshot).

        Returns:
            ``{"total", "by_category", "by_status"}``; ``by_status`` is computed
            over KPI nodes only, so achieved + unachieved == number of KPIs.
        """
        target = self._nodes if nodes is None else list(nodes)

        by_category: Dict[str, int] = {}
        by_status = {"achieved": 0, "unachieved": 0, "withModel": 0, "withoutModel": 0}

        for node in target:
            by_category[node.category] = by_category.get(node.category, 0) + 1

            if node.category != NodeCategory.KPI:
                continue
            by_status["achieved" if node.metrics.achieved else "unachieved"] += 1
            by_status["withModel" if node.has_model else "withoutModel"] += 1

        return {
            "total": len(target),
            "by_category": by_category,
            "by_status": by_status,
        }

    def get_connected_nodes(self, node_id: str, direction: Direction = "both") -> List[Node]:
        """
        Direct (one-hop) neighbours of ``node_id``.

        Neighbour IDs without a node object (dangling edges) are skipped.
        """
        connected = set()
        if direction in ("incoming", "both"):
            connected.update(edge.source for edge in self.incoming_edges(node_id))
        if direction in ("outgoing", "both"):
            connected.update(edge.target for edge in self.outgoing_edges(node_id))

        return [node for node in self._nodes if node.id in connected]

    def connected_of_category(self, node_id: str, category: str, direction: Direction = "outgoing") -> List[Node]:
        """Neighbours of ``node_id`` restricted to one category."""
        return [n for n in self.get_connected_nodes(node_id, direction) if n.category == category]
