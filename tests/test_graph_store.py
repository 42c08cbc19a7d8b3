"""Tests for the Graph Store."""

from kpi_copilot.data import load_graph
from kpi_copilot.engine import GraphStore, QueryCondition


def ids(nodes):
    return {n.id for n in nodes}


class TestQueryNodes:

    def test_no_condition_returns_everything(self, sample_store):
        assert len(sample_store.query_nodes()) == 40

    def test_category_filter(self, sample_store):
        kpis = sample_store.query_nodes(QueryCondition(category=["kpi"]))
        assert len(kpis) == 18
        assert all(n.category == "kpi" for n in kpis)

    def test_achieved_filter(self, sample_store):
        achieved = sample_store.query_nodes(QueryCondition(category=["kpi"], achieved=True))
        unachieved = sample_store.query_nodes(QueryCondition(category=["kpi"], achieved=False))
        assert len(achieved) == 11
        assert len(unachieved) == 7

    def test_has_model_filter(self, sample_store):
        without = sample_store.query_nodes(QueryCondition(category=["kpi"], has_model=False))
        assert ids(without) == {
            "KPI_SpaceGain", "KPI_LockSafe", "KPI_NVH",
            "KPI_SpaceGain_Access", "KPI_NVH_Noise", "KPI_Life_Degradation",
        }

    def test_model_type_filter(self, sample_store):
        simulink = sample_store.query_nodes(QueryCondition(model_type="simulink"))
        assert ids(simulink) == {
            "KPI_FoldTime", "KPI_FoldTime_Start", "KPI_FoldTime_Complete", "KPI_FoldAngle_Precision",
        }

    def test_filters_combine_with_and(self, sample_store):
        result = sample_store.query_nodes(QueryCondition(category=["kpi"], level=2, achieved=False))
        assert ids(result) == {
            "KPI_SpaceGain_Vertical", "KPI_NVH_Noise", "KPI_NVH_Vibration", "KPI_Life_Degradation",
        }

    def test_node_ids_filter(self, sample_store):
        result = sample_store.query_nodes(QueryCondition(node_ids=["G1", "D_CPK", "nope"]))
        assert ids(result) == {"G1", "D_CPK"}

    def test_kpi_only_filters_exclude_other_categories(self, sample_store):
        result = sample_store.query_nodes(QueryCondition(achieved=False))
        assert all(n.category == "kpi" for n in result)

    def test_no_match_is_empty_list(self, sample_store):
        assert sample_store.query_nodes(QueryCondition(category=["goal"], level=2)) == []


class TestStats:

    def test_whole_graph(self, sample_store):
        stats = sample_store.calculate_stats()
        assert stats["total"] == 40
        assert stats["by_category"] == {"goal": 1, "kpi": 18, "design": 15, "verify": 6}
        assert stats["by_status"] == {"achieved": 11, "unachieved": 7, "withModel": 12, "withoutModel": 6}

    def test_status_counts_cover_every_kpi(self, builder):
        store = (
            builder.kpi("KPI_A", achieved=True, model_type="fmu")
            .kpi("KPI_B")
            .design("D_A")
            .store()
        )
        # A KPI without authored metrics still lands in the histogram
        nodes, edges = load_graph({"nodes": [{"id": "KPI_C", "category": "kpi"}], "edges": []})
        store.update_data(list(store.nodes) + nodes, store.edges)

        stats = store.calculate_stats()
        kpi_count = stats["by_category"]["kpi"]
        assert stats["by_status"]["achieved"] + stats["by_status"]["unachieved"] == kpi_count == 3
        assert stats["by_status"]["withModel"] + stats["by_status"]["withoutModel"] == kpi_count

    def test_subset(self, sample_store):
        subset = sample_store.query_nodes(QueryCondition(level=1))
        stats = sample_store.calculate_stats(subset)
        assert stats["total"] == 6
        assert stats["by_status"]["achieved"] == 3


class TestAdjacency:

    def test_directions(self, sample_store):
        outgoing = sample_store.get_connected_nodes("G1", "outgoing")
        assert ids(outgoing) == {
            "KPI_FoldTime", "KPI_FoldAngle", "KPI_SpaceGain", "KPI_LockSafe", "KPI_NVH", "KPI_Life",
        }
        assert sample_store.get_connected_nodes("G1", "incoming") == []
        assert ids(sample_store.get_connected_nodes("KPI_NVH_Noise", "incoming")) == {"KPI_NVH", "V_NVHTest"}

    def test_both_directions(self, chain_store):
        assert ids(chain_store.get_connected_nodes("KPI_B")) == {"KPI_A", "KPI_C"}

    def test_dangling_ids_are_skipped(self, builder):
        store = builder.kpi("KPI_A").link("KPI_A", "KPI_Missing").store()
        assert store.get_connected_nodes("KPI_A", "outgoing") == []
        assert store.get_node("KPI_Missing") is None

    def test_connected_of_category(self, sample_store):
        designs = sample_store.connected_of_category("KPI_FoldTime_Complete", "design")
        assert ids(designs) == {"D_MotorTorque", "D_GearRatio", "D_Damping", "D_Clearance"}

    def test_query_edges(self, sample_store):
        edges = sample_store.query_edges(["KPI_NVH_Noise"])
        assert {e.id for e in edges} == {
            "e-KPI_NVH-KPI_NVH_Noise",
            "e-KPI_NVH_Noise-D_FrictionPair",
            "e-KPI_NVH_Noise-D_Damping",
            "e-V_NVHTest-KPI_NVH_Noise",
        }
        implement = sample_store.query_edges(["KPI_NVH_Noise"], relationship="implement")
        assert len(implement) == 2


class TestUpdateData:

    def test_replaces_snapshot(self, sample_store, chain_store):
        sample_store.update_data(chain_store.nodes, chain_store.edges)

        assert len(sample_store.nodes) == 3
        assert sample_store.get_node("G1") is None
        assert ids(sample_store.get_connected_nodes("KPI_A", "outgoing")) == {"KPI_B"}

    def test_empty_store(self):
        store = GraphStore()
        assert store.query_nodes() == []
        assert store.calculate_stats()["by_status"]["achieved"] == 0
