"""
Graph payload loader.

Accepts the host's node/edge arrays either flat (``{"id", "category", ...}``)
or in the canvas form where fields live under ``data``
(``{"id", "data": {"category", "metrics", ...}}``), with snake_case or
camelCase keys.
"""
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple, Union

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from kpi_copilot.data.models import Edge, Node
from kpi_copilot.utils.exceptions import GraphDataError


_NODE_LIST = TypeAdapter(List[Node])
_EDGE_LIST = TypeAdapter(List[Edge])


def _flatten_node(raw: Dict[str, Any]) -> Dict[str, Any]:
    data = raw.get("data")
    if isinstance(data, dict):
        return {**data, "id": raw.get("id", data.get("id"))}
    return dict(raw)


def _flatten_edge(raw: Dict[str, Any]) -> Dict[str, Any]:
    flat = {k: v for k, v in raw.items() if k != "data"}
    data = raw.get("data")
    if isinstance(data, dict) and "relationship" not in flat:
        flat["relationship"] = data.get("relationship")
    return flat


def parse_nodes(raw_nodes: Iterable[Dict[str, Any]]) -> List[Node]:
    """
    Validate raw node dicts into typed node variants.

    Raises:
        GraphDataError: if any node fails validation
    """
    try:
        return _NODE_LIST.validate_python([_flatten_node(n) for n in raw_nodes])
    except (ValidationError, AttributeError) as e:
        raise GraphDataError(f"Invalid node payload: {e}") from e


def parse_edges(raw_edges: Iterable[Dict[str, Any]]) -> List[Edge]:
    """
    Validate raw edge dicts.

    Raises:
        GraphDataError: if any edge fails validation
    """
    try:
        return _EDGE_LIST.validate_python([_flatten_edge(e) for e in raw_edges])
    except (ValidationError, AttributeError) as e:
        raise GraphDataError(f"Invalid edge payload: {e}") from e


def load_graph(payload: Dict[str, Any]) -> Tuple[List[Node], List[Edge]]:
    """
    Build typed nodes and edges from a ``{"nodes": [...], "edges": [...]}`` payload.

    Args:
        payload: Host payload

    Returns:
        Tuple of (nodes, edges)
    """
    if not isinstance(payload, dict):
        raise GraphDataError("Graph payload must be an object with 'nodes' and 'edges'")

    nodes = parse_nodes(payload.get("nodes") or [])
    edges = parse_edges(payload.get("edges") or [])

    logger.debug(f"[Loader] Loaded {len(nodes)} nodes, {len(edges)} edges")
    return nodes, edges


def load_graph_file(path: Union[str, Path]) -> Tuple[List[Node], List[Edge]]:
    """Load a graph payload from a JSON file."""
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise GraphDataError(f"Cannot read graph file {path}: {e}") from e

    logger.info(f"[Loader] Reading graph from {path}")
    return load_graph(payload)
