"""
LangGraph state machine definition for the KPI Copilot.

The pipeline runs the parser, reference resolution, response generation and
context bookkeeping as a linear chain of nodes over one CopilotState.
"""
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from langgraph.graph import StateGraph, END
from langgraph.checkpoint.memory import MemorySaver

from kpi_copilot.agents.context import ContextManager
from kpi_copilot.agents.state import DEFAULT_THREAD, CopilotState, create_initial_state
from kpi_copilot.agents.nodes import (
    router_node,
    entity_extractor_node,
    create_context_node,
    create_memory_node,
    create_generator_node,
)
from kpi_copilot.agents.nodes.generator import ResponseData, ResponseGenerator
from kpi_copilot.analysis.analyzer import Analyzer
from kpi_copilot.data.models import Edge, Node
from kpi_copilot.engine.graph_store import GraphStore


class CopilotGraph:
    """
    LangGraph-based KPI Copilot.

    Owns the Graph Store binding, the analyzer, the response generator and the
    conversation contexts, one per thread; nothing is shared through module
    globals.

    Graph structure:
        User Query → Router → Entity Extractor → Context → Generator → Memory → Response
    """

    def __init__(
        self,
        store: GraphStore,
        context: Optional[ContextManager] = None,
        checkpointer: Optional[MemorySaver] = None,
    ):
        """
        Initialize the copilot graph.

        Args:
            store: Graph Store holding the current snapshot
            context: Conversation context of the default thread (a fresh one if omitted)
            checkpointer: Optional state checkpointer
        """
        self.store = store
        self.context = context or ContextManager()
        self.contexts: Dict[str, ContextManager] = {DEFAULT_THREAD: self.context}
        self.analyzer = Analyzer(store)
        self.generator = ResponseGenerator(store, self.analyzer)

        self.graph = self._build_graph()
        self.checkpointer = checkpointer or MemorySaver()
        self.app = self.graph.compile(checkpointer=self.checkpointer)

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(CopilotState)

        graph.add_node("router", router_node)
        graph.add_node("entity_extractor", entity_extractor_node)
        graph.add_node("context", create_context_node(self.context_for))
        graph.add_node("generator", create_generator_node(self.generator))
        graph.add_node("memory", create_memory_node(self.context_for, self.store))

        graph.set_entry_point("router")
        graph.add_edge("router", "entity_extractor")
        graph.add_edge("entity_extractor", "context")
        graph.add_edge("context", "generator")
        graph.add_edge("generator", "memory")
        graph.add_edge("memory", END)

        return graph

    def context_for(self, thread_id: Optional[str] = None) -> ContextManager:
        """Conversation context of one thread, created on first use."""
        thread_id = thread_id or DEFAULT_THREAD
        if thread_id not in self.contexts:
            logger.debug(f"[Graph] New conversation context for thread {thread_id}")
            self.contexts[thread_id] = ContextManager()
        return self.contexts[thread_id]

    def rebind(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
        """Replace the graph data; the next query runs against the new snapshot."""
        self.store.update_data(nodes, edges)
        logger.info(f"[Graph] Re-bound to {len(nodes)} nodes, {len(edges)} edges")

    def invoke(self, query: str, thread_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Process a user query through the graph.

        Args:
            query: User's natural language query
            thread_id: Optional thread ID for conversation continuity

        Returns:
            Final state containing the parsed query, response and messages
        """
        thread_id = thread_id or DEFAULT_THREAD
        initial_state = create_initial_state(query, thread_id)
        config = {"configurable": {"thread_id": thread_id}}

        logger.info(f"[Graph] Processing query: {query[:100]}")

        try:
            final_state = self.app.invoke(initial_state, config=config)
            final_state["end_time"] = final_state.get("end_time") or datetime.now().isoformat()

            logger.info("[Graph] Query processed successfully")

            return final_state

        except Exception as e:
            logger.error(f"[Graph] Execution failed: {e}")
            raise

    def ask(self, query: str, thread_id: Optional[str] = None) -> ResponseData:
        """Process a query and return only the response."""
        return ResponseData.from_dict(self.invoke(query, thread_id)["response"])

    def stream(self, query: str, thread_id: Optional[str] = None):
        """
        Stream graph execution.

        Yields:
            State updates from each node
        """
        thread_id = thread_id or DEFAULT_THREAD
        initial_state = create_initial_state(query, thread_id)
        config = {"configurable": {"thread_id": thread_id}}

        logger.info(f"[Graph] Streaming query: {query[:100]}")

        for event in self.app.stream(initial_state, config=config):
            yield event


def create_graph(
    store: GraphStore,
    context: Optional[ContextManager] = None,
    checkpointer: Optional[MemorySaver] = None,
) -> CopilotGraph:
    """
    Factory function to create a CopilotGraph instance.

    Args:
        store: Graph Store to answer from
        context: Optional conversation context
        checkpointer: Optional state checkpointer

    Returns:
        Configured CopilotGraph
    """
    return CopilotGraph(store, context=context, checkpointer=checkpointer)
