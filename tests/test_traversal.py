"""Tests for graph traversal."""

import pytest

from kpi_copilot.analysis import trace_chain, trace_dependencies, trace_impact


class TestDirectionality:

    def test_impact_follows_incoming_edges(self, chain_store):
        assert trace_impact(chain_store, "KPI_B").nodes == {"KPI_A", "KPI_B"}

    def test_dependencies_follow_outgoing_edges(self, chain_store):
        assert trace_dependencies(chain_store, "KPI_B").nodes == {"KPI_B", "KPI_C"}

    def test_chain_is_bidirectional(self, chain_store):
        result = trace_chain(chain_store, ["KPI_B"])
        assert result.nodes == {"KPI_A", "KPI_B", "KPI_C"}
        assert result.edges == {"e-KPI_A-KPI_B", "e-KPI_B-KPI_C"}

    def test_directed_traces_include_start(self, chain_store):
        assert trace_impact(chain_store, "KPI_A").nodes == {"KPI_A"}
        assert trace_dependencies(chain_store, "KPI_C").nodes == {"KPI_C"}


class TestCycles:

    @pytest.mark.parametrize("trace", [trace_impact, trace_dependencies])
    def test_directed_traces_terminate(self, cycle_store, trace):
        assert trace(cycle_store, "D_X").nodes == {"D_X", "V_Y"}

    def test_chain_terminates(self, cycle_store):
        result = trace_chain(cycle_store, ["D_X"])
        assert result.nodes == {"D_X", "V_Y"}
        assert result.edges == {"e-D_X-V_Y", "e-V_Y-D_X"}

    def test_feedback_edges_in_sample(self, sample_store):
        impact = trace_impact(sample_store, "D_MotorTorque")
        assert {"KPI_FoldTime_Complete", "KPI_Life_Cycle", "KPI_FoldTime", "KPI_Life", "G1"} <= impact.nodes


class TestChainClosure:

    def test_idempotent(self, sample_store):
        first = trace_chain(sample_store, ["KPI_NVH_Noise"])
        second = trace_chain(sample_store, sorted(first.nodes))
        assert second.nodes == first.nodes
        assert second.edges == first.edges

    def test_weakly_connected(self, sample_store):
        result = trace_chain(sample_store, ["D_CPK"])

        for edge in sample_store.edges:
            touches = edge.source in result.nodes or edge.target in result.nodes
            assert touches == (edge.id in result.edges)
            if touches:
                assert edge.source in result.nodes and edge.target in result.nodes

    def test_sample_graph_is_one_component(self, sample_store):
        result = trace_chain(sample_store, ["G1"])
        assert result.nodes == {n.id for n in sample_store.nodes}
        assert result.edges == {e.id for e in sample_store.edges}

    def test_separate_components(self, builder):
        store = (
            builder.kpi("KPI_A").kpi("KPI_B").kpi("KPI_C").kpi("KPI_D")
            .link("KPI_A", "KPI_B")
            .link("KPI_C", "KPI_D")
            .store()
        )
        assert trace_chain(store, ["KPI_A"]).nodes == {"KPI_A", "KPI_B"}
        assert trace_chain(store, ["KPI_A", "KPI_D"]).nodes == {"KPI_A", "KPI_B", "KPI_C", "KPI_D"}

    def test_unknown_start_is_skipped(self, chain_store):
        result = trace_chain(chain_store, ["KPI_Missing"])
        assert result.nodes == set()
        assert result.edges == set()

    def test_empty_start(self, chain_store):
        assert trace_chain(chain_store, []).nodes == set()

    def test_to_dict_is_sorted(self, chain_store):
        result = trace_chain(chain_store, ["KPI_C"]).to_dict()
        assert result["nodes"] == ["KPI_A", "KPI_B", "KPI_C"]
        assert result["edges"] == ["e-KPI_A-KPI_B", "e-KPI_B-KPI_C"]

    def test_dangling_edge_target_is_reported(self, builder):
        store = builder.kpi("KPI_A").link("KPI_A", "KPI_Missing").store()

        result = trace_chain(store, ["KPI_A"])
        assert result.nodes == {"KPI_A", "KPI_Missing"}
        assert store.get_node("KPI_Missing") is None
        assert trace_dependencies(store, "KPI_A").nodes == {"KPI_A", "KPI_Missing"}
