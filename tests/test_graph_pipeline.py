"""Tests for the LangGraph copilot pipeline."""

import pytest

from kpi_copilot.agents import ContextManager, ResponseData, create_graph
from kpi_copilot.agents.context import PREVIOUS_RESULT_MARKER
from kpi_copilot.config import settings
from kpi_copilot.data import load_graph
from kpi_copilot.utils.templates import ResponseTemplates


@pytest.fixture
def copilot(sample_store):
    return create_graph(sample_store)


class TestInvoke:

    def test_final_state(self, copilot):
        result = copilot.invoke("统计指标达成情况")

        assert result["intent"] == "query_stats"
        assert result["parsed_query"]["intent"] == "query_stats"
        assert "📈 达成率：**61.1%**" in result["response"]["content"]
        assert result["end_time"] is not None

    def test_message_log(self, copilot):
        result = copilot.invoke("KPI_NVH 的链路")
        roles = [m["role"] for m in result["messages"]]
        assert roles[0] == "user"
        assert roles[-1] == "assistant"

    def test_ask(self, copilot):
        response = copilot.ask("KPI_NVH 的链路")
        assert isinstance(response, ResponseData)
        assert response.action == "highlight"
        assert "KPI_NVH" in response.nodes

    def test_unknown_query(self, copilot):
        response = copilot.ask("你好")
        assert response.content.startswith("🤔")
        assert response.nodes == []

    def test_stream_visits_every_node(self, copilot):
        visited = [name for event in copilot.stream("识别瓶颈") for name in event]
        assert visited == ["router", "entity_extractor", "context", "generator", "memory"]


class TestConversation:

    def test_reference_to_previous_result(self, copilot):
        first = copilot.invoke("显示所有未达成的指标", thread_id="t1")
        second = copilot.invoke("这些指标的链路", thread_id="t1")

        entities = second["parsed_query"]["entities"]
        injected = [e for e in entities if e.get("raw") == PREVIOUS_RESULT_MARKER]
        assert [e["value"] for e in injected] == first["response"]["nodes"]
        assert second["response"]["content"].startswith("🔗 **")

    def test_memory_records_focus(self, sample_store):
        context = ContextManager()
        copilot = create_graph(sample_store, context=context)

        copilot.invoke("KPI_NVH_Noise 的链路")
        copilot.invoke("KPI_Missing 的链路")

        assert len(context.history) == 2
        assert context.focused_nodes == ["KPI_NVH_Noise", "KPI_NVH"]
        assert context.get_recently_viewed()[:2] == ["KPI_NVH", "KPI_NVH_Noise"]

    def test_focus_used_for_follow_up(self, copilot):
        copilot.invoke("KPI_FoldTime_Start 的链路")
        response = copilot.ask("它的影响")
        assert response.content.startswith("⚡ **")


class TestRebind:

    def test_next_query_sees_new_data(self, copilot, builder):
        nodes, edges = load_graph(builder.kpi("KPI_A", achieved=True).kpi("KPI_B").payload())
        copilot.rebind(nodes, edges)

        response = copilot.ask("统计指标达成情况")
        assert "📈 达成率：**50.0%**" in response.content
        assert copilot.ask("KPI_NVH 的链路").content == "❌ 未找到节点：KPI_NVH"


class TestThreads:

    def test_references_stay_in_their_thread(self, copilot):
        copilot.invoke("KPI_NVH_Noise 的链路", thread_id="alice")
        result = copilot.invoke("它的链路", thread_id="bob")

        values = [e["value"] for e in result["parsed_query"]["entities"]]
        assert "KPI_NVH_Noise" not in values
        assert result["response"]["content"] == ResponseTemplates.ASK_TRACE_NODE

    def test_each_thread_keeps_its_own_focus(self, copilot):
        copilot.invoke("KPI_FoldTime_Start 的链路", thread_id="alice")
        copilot.invoke("D_MotorTorque 的链路", thread_id="bob")

        assert copilot.context_for("alice").focused_nodes == ["KPI_FoldTime_Start"]
        assert copilot.context_for("bob").focused_nodes == ["D_MotorTorque"]
        assert copilot.context_for().history == []

    def test_default_thread_uses_given_context(self, sample_store):
        context = ContextManager()
        copilot = create_graph(sample_store, context=context)

        assert copilot.context_for() is context
        assert copilot.context_for(None) is context


class TestMessageLog:

    def test_log_is_bounded_per_thread(self, copilot, monkeypatch):
        monkeypatch.setattr(settings, "max_state_messages", 6)

        for _ in range(5):
            result = copilot.invoke("统计指标达成情况", thread_id="long")

        assert len(result["messages"]) == 6
        assert result["messages"][-1]["role"] == "assistant"
