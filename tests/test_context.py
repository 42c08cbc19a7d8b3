"""Tests for the conversation Context Manager."""

from kpi_copilot.agents import ContextManager, EntityType, QueryIntent, parse_query
from kpi_copilot.agents.context import FOCUS_MARKER, PREVIOUS_RESULT_MARKER, word_similarity


def record(context, query, result_nodes=()):
    context.record_query(query, parse_query(query), list(result_nodes))


class TestHistory:

    def test_history_is_bounded(self):
        context = ContextManager(history_size=10)
        for i in range(12):
            record(context, f"query {i}")

        assert len(context.history) == 10
        assert context.history[0].query == "query 2"
        assert context.get_last_query().query == "query 11"

    def test_last_intent(self):
        context = ContextManager()
        record(context, "识别瓶颈")
        assert context.last_intent == QueryIntent.FIND_ISSUES

    def test_frequent_queries(self):
        context = ContextManager()
        for query in ["a", "b", "b", "c", "b", "c"]:
            record(context, query)
        assert context.get_frequent_queries(2) == ["b", "c"]

    def test_related_queries(self):
        context = ContextManager()
        record(context, "KPI_A 的 链路")
        record(context, "完全 不同")
        assert context.get_related_queries("KPI_A 的 影响") == ["KPI_A 的 链路"]

    def test_word_similarity(self):
        assert word_similarity("a b c", "a b d") == 0.5
        assert word_similarity("", "") == 0.0

    def test_clear(self):
        context = ContextManager()
        record(context, "识别瓶颈", ["KPI_A"])
        context.update_focus(["KPI_A"])
        context.add_favorite("KPI_A")
        context.clear()

        assert context.get_last_query() is None
        assert context.focused_nodes == []
        assert context.get_favorites() == []
        assert context.get_recently_viewed() == []


class TestFocus:

    def test_recently_viewed_most_recent_first(self):
        context = ContextManager()
        context.update_focus(["KPI_A", "KPI_B"])
        context.update_focus(["KPI_A"])
        assert context.get_recently_viewed() == ["KPI_A", "KPI_B"]

    def test_recently_viewed_is_bounded(self):
        context = ContextManager(recently_viewed_size=3)
        context.update_focus([f"KPI_{i}" for i in range(5)])
        assert context.recently_viewed == ["KPI_4", "KPI_3", "KPI_2"]

    def test_favorites(self):
        context = ContextManager()
        context.add_favorite("KPI_A")
        context.add_favorite("KPI_A")
        context.add_favorite("KPI_B")
        context.remove_favorite("KPI_A")
        context.remove_favorite("KPI_Missing")
        assert context.get_favorites() == ["KPI_B"]


class TestReferences:

    def test_no_reference_word_is_untouched(self):
        context = ContextManager()
        record(context, "显示所有未达成的指标", ["KPI_A"])

        parsed = parse_query("KPI_B 的链路")
        assert context.resolve_references("KPI_B 的链路", parsed) is parsed

    def test_previous_results_then_focus(self):
        context = ContextManager()
        record(context, "显示所有未达成的指标", ["KPI_A", "KPI_B"])
        context.update_focus(["KPI_C", "KPI_A"])

        query = "这些节点的链路"
        parsed = parse_query(query)
        resolved = context.resolve_references(query, parsed)

        injected = [(e.value, e.raw) for e in resolved.entities if e.type == EntityType.NODE_ID]
        assert injected == [
            ("KPI_A", PREVIOUS_RESULT_MARKER),
            ("KPI_B", PREVIOUS_RESULT_MARKER),
            ("KPI_C", FOCUS_MARKER),
        ]
        assert parsed.entities == []

    def test_named_nodes_are_not_duplicated(self):
        context = ContextManager()
        record(context, "KPI_A 的链路", ["KPI_A", "KPI_B"])

        query = "KPI_A 和它的影响"
        resolved = context.resolve_references(query, parse_query(query))
        assert resolved.values_of(EntityType.NODE_ID) == ["KPI_A", "KPI_B"]
        assert resolved.first_value(EntityType.NODE_ID) == "KPI_A"

    def test_reference_without_context(self):
        context = ContextManager()
        query = "它的影响"
        parsed = parse_query(query)
        assert context.resolve_references(query, parsed).entities == []


class TestSuggestions:

    def test_hints_follow_last_intent(self):
        context = ContextManager()
        assert context.get_contextual_hints() == []

        record(context, "统计指标达成情况")
        context.update_focus(["KPI_NVH"])
        hints = context.get_contextual_hints()

        assert hints[0] == "💡 你可以继续问：\"显示未达成的指标\""
        assert hints[-1] == "💡 当前关注的节点可以用于进一步分析"

    def test_generate_suggestions(self, sample_store):
        context = ContextManager()
        context.update_focus(["D_Damping", "KPI_NVH", "KPI_Life"])
        context.add_favorite("KPI_NVH")
        record(context, "识别瓶颈")

        suggestions = context.generate_suggestions(sample_store.nodes)
        assert suggestions[0] == "你最近查看了 KPI_Life、KPI_NVH"
        assert "你有 1 个收藏的指标" in suggestions
        assert suggestions[-1] == "💡 建议：查看优先级排序以确定改进顺序"
