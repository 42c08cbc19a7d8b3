"""
Context and memory nodes.

The context node assembles the ParsedQuery from router/extractor output and
resolves referring words against the conversation context. The memory node
records the finished turn.
"""
from datetime import datetime
from typing import Any, Callable, Dict

from loguru import logger

from kpi_copilot.agents.context import ContextManager
from kpi_copilot.agents.state import CopilotState, Entity, EntityType, ParsedQuery, QueryIntent, add_message
from kpi_copilot.engine.graph_store import GraphStore


def create_context_node(context_for: Callable[[str], ContextManager]):
    """
    Build the node that turns intent + entities into a resolved ParsedQuery.

    References resolve against the context of the state's own thread.
    """

    def context_node(state: CopilotState) -> Dict[str, Any]:
        context = context_for(state["thread_id"])
        parsed = ParsedQuery(
            raw_query=state["user_query"],
            intent=QueryIntent(state.get("intent") or QueryIntent.UNKNOWN.value),
            entities=[Entity.from_dict(e) for e in state.get("entities", [])],
            confidence=state.get("confidence", 0.5),
        )

        resolved = context.resolve_references(state["user_query"], parsed)
        injected = len(resolved.entities) - len(parsed.entities)

        updates: Dict[str, Any] = {"parsed_query": resolved.to_dict()}
        if injected:
            logger.info(f"[Context] Injected {injected} referenced node(s)")
            updates["messages"] = [add_message(state, "system", f"Resolved references: {injected} node(s)")]
        return updates

    return context_node


def create_memory_node(context_for: Callable[[str], ContextManager], store: GraphStore):
    """
    Build the node that records the turn.

    The highlighted nodes become the turn's result nodes; the node IDs named
    in the query (and known to the store) become the new focus.
    """

    def memory_node(state: CopilotState) -> Dict[str, Any]:
        context = context_for(state["thread_id"])
        parsed = ParsedQuery.from_dict(state["parsed_query"])
        response = state.get("response") or {}

        context.record_query(state["user_query"], parsed, response.get("nodes") or [])

        named = parsed.values_of(EntityType.NODE_ID)
        focus = [value for value in dict.fromkeys(named) if store.has_node(value)]
        if focus:
            context.update_focus(focus, parsed.first_value(EntityType.CATEGORY))

        return {"end_time": datetime.now().isoformat()}

    return memory_node
