"""Shared test fixtures."""

import pytest

from kpi_copilot.data import load_graph, load_sample_graph
from kpi_copilot.engine import GraphStore


class GraphBuilder:
    """Small graph payloads in the host's flat form."""

    def __init__(self):
        self.nodes = []
        self.edges = []

    def goal(self, node_id):
        self.nodes.append({"id": node_id, "category": "goal"})
        return self

    def kpi(self, node_id, achieved=False, model_type=None, level=1, rate=0, label=None):
        self.nodes.append({
            "id": node_id,
            "label": label or node_id,
            "description": f"{node_id} description",
            "category": "kpi",
            "level": level,
            "metrics": {
                "achieved": achieved,
                "achievement_rate": rate,
                "model_type": model_type,
                "model_covered": model_type is not None,
            },
        })
        return self

    def design(self, node_id):
        self.nodes.append({"id": node_id, "category": "design"})
        return self

    def verify(self, node_id):
        self.nodes.append({"id": node_id, "category": "verify"})
        return self

    def link(self, source, target, relationship="satisfy"):
        self.edges.append({
            "id": f"e-{source}-{target}",
            "source": source,
            "target": target,
            "relationship": relationship,
        })
        return self

    def payload(self):
        return {"nodes": list(self.nodes), "edges": list(self.edges)}

    def store(self):
        nodes, edges = load_graph(self.payload())
        return GraphStore(nodes, edges)


@pytest.fixture
def builder():
    return GraphBuilder()


@pytest.fixture
def sample_graph():
    return load_sample_graph()


@pytest.fixture
def sample_store(sample_graph):
    nodes, edges = sample_graph
    return GraphStore(nodes, edges)


@pytest.fixture
def chain_store(builder):
    """A -> B -> C, all KPIs."""
    return (
        builder.kpi("KPI_A").kpi("KPI_B").kpi("KPI_C")
        .link("KPI_A", "KPI_B")
        .link("KPI_B", "KPI_C")
        .store()
    )


@pytest.fixture
def cycle_store(builder):
    """X <-> Y."""
    return (
        builder.design("D_X").verify("V_Y")
        .link("D_X", "V_Y", "verify")
        .link("V_Y", "D_X", "verify")
        .store()
    )
