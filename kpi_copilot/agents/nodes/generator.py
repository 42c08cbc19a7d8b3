"""
Generator node for response generation.

Turns a parsed query into a chat response: rich-text content plus the node
and edge IDs the host panel should highlight.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from kpi_copilot.agents.nodes.router import normalize_query
from kpi_copilot.agents.state import CopilotState, EntityType, ParsedQuery, QueryIntent, add_message
from kpi_copilot.analysis.analyzer import Analyzer
from kpi_copilot.analysis.traversal import ChainResult
from kpi_copilot.config import settings
from kpi_copilot.data.models import NodeCategory, is_kpi
from kpi_copilot.engine.graph_store import GraphStore, QueryCondition
from kpi_copilot.utils.templates import (
    GRADE_EMOJI,
    ResponseTemplates,
    category_icon,
    category_name,
    format_number,
    format_rate,
    format_signed,
    percentage,
)

# A "none" model entity only filters when the query negates the model
NEGATED_MODEL_PATTERN = re.compile(r"没有模型|无模型|缺少模型|非模型")


@dataclass
class ResponseData:
    """
    A copilot answer.

    ``nodes``/``edges`` are the IDs to highlight; ``action`` is ``highlight``
    whenever they are set.
    """
    content: str
    nodes: List[str] = field(default_factory=list)
    edges: List[str] = field(default_factory=list)
    action: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "nodes": self.nodes,
            "edges": self.edges,
            "action": self.action,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ResponseData":
        return cls(
            content=data["content"],
            nodes=list(data.get("nodes") or []),
            edges=list(data.get("edges") or []),
            action=data.get("action"),
        )


def highlight(content: str, chain: ChainResult) -> ResponseData:
    result = chain.to_dict()
    return ResponseData(content=content, nodes=result["nodes"], edges=result["edges"], action="highlight")


def status_mark(node) -> str:
    return "✅" if node.metrics.achieved else "❌"


def achievement_suggestion(unachieved: int, rate: float) -> str:
    if unachieved == 0:
        return "所有指标均已达成，表现优秀！"
    if rate >= 80:
        return f"还有 {unachieved} 个指标未达成，整体表现良好，继续努力！"
    if rate >= 60:
        return f"有 {unachieved} 个指标需要关注，建议使用 \"识别瓶颈\" 找出优先事项。"
    return "达成率较低，建议立即使用 \"识别瓶颈\" 分析关键问题。"


def model_coverage_suggestion(without_model: int, rate: float) -> str:
    if without_model == 0:
        return "模型覆盖完整，继续保持！"
    if rate >= 80:
        return f"还有 {without_model} 个指标缺少模型，整体覆盖率良好。"
    if rate >= 60:
        return f"有 {without_model} 个指标缺少模型支撑，建议逐步补充建模。"
    return "模型覆盖率较低，建议优先为关键指标补充建模。"


class ResponseGenerator:
    """
    Intent-dispatched response builder over a Graph Store.

    Stateless per call: every handler reads the store's current snapshot.

    Args:
        store: Graph Store to answer from
        analyzer: Analyzer bound to the same store (created if omitted)
        max_listed_nodes: Number of nodes listed by node queries
    """

    def __init__(self, store: GraphStore, analyzer: Optional[Analyzer] = None, max_listed_nodes: Optional[int] = None):
        self.store = store
        self.analyzer = analyzer or Analyzer(store)
        self.max_listed_nodes = max_listed_nodes or settings.max_listed_nodes

        self._handlers: Dict[QueryIntent, Callable[[ParsedQuery], ResponseData]] = {
            QueryIntent.QUERY_STATS: self.stats_response,
            QueryIntent.QUERY_NODES: self.query_nodes_response,
            QueryIntent.TRACE_CHAIN: self.trace_chain_response,
            QueryIntent.ANALYZE_IMPACT: self.impact_response,
            QueryIntent.FIND_ISSUES: self.find_issues_response,
            QueryIntent.SUGGEST: self.suggestion_response,
            QueryIntent.COMPARE: self.compare_response,
            QueryIntent.CORRELATION: self.correlation_response,
            QueryIntent.HEALTH_CHECK: self.health_check_response,
            QueryIntent.PRIORITIZE: self.priority_response,
        }

    def generate_response(self, parsed: ParsedQuery) -> ResponseData:
        """
        Build the response for a parsed query.

        Args:
            parsed: Output of the query parser (possibly reference-resolved)

        Returns:
            ResponseData; unknown intents get the help text
        """
        handler = self._handlers.get(parsed.intent, self.unknown_response)
        logger.info(f"[Generator] Generating response for intent: {parsed.intent.value}")
        return handler(parsed)

    # ========================================
    # Statistics
    # ========================================

    def stats_response(self, parsed: ParsedQuery) -> ResponseData:
        query = parsed.raw_query.lower()
        if "模型" in query or "覆盖" in query:
            return self.model_coverage_stats()
        return self.achievement_stats()

    def achievement_stats(self) -> ResponseData:
        stats = self.analyzer.calculate_achievement_stats()

        content = (
            "📊 **指标达成情况统计**\n\n"
            "**总体情况：**\n"
            f"✅ 已达成：**{stats.achieved_count}** 个\n"
            f"❌ 未达成：**{stats.unachieved_count}** 个\n"
            f"📈 达成率：**{stats.achieved_rate}%**\n\n"
            "**按层级统计：**\n"
            f"- 一级指标：{stats.level1_achieved}/{stats.level1_total} 个达成\n"
            f"- 二级指标：{stats.level2_achieved}/{stats.level2_total} 个达成\n\n"
            "---\n\n"
            f"💡 **建议**：{achievement_suggestion(stats.unachieved_count, float(stats.achieved_rate))}"
        )
        return ResponseData(content=content)

    def model_coverage_stats(self) -> ResponseData:
        stats = self.analyzer.calculate_model_coverage_stats()
        by_type = stats.by_model_type

        content = (
            "📦 **模型覆盖率统计**\n\n"
            "**总体情况：**\n"
            f"✅ 已覆盖：**{stats.with_model}** 个指标\n"
            f"❌ 未覆盖：**{stats.without_model}** 个指标\n"
            f"📊 覆盖率：**{stats.coverage_rate}%**\n\n"
            "**各模型类型使用情况：**\n"
            f"- 🔷 SysML：**{by_type['sysml']}** 个 ({percentage(by_type['sysml'], stats.with_model)})\n"
            f"- 🔶 Simulink：**{by_type['simulink']}** 个 ({percentage(by_type['simulink'], stats.with_model)})\n"
            f"- 🔵 Modelica：**{by_type['modelica']}** 个 ({percentage(by_type['modelica'], stats.with_model)})\n"
            f"- 🟣 FMU：**{by_type['fmu']}** 个 ({percentage(by_type['fmu'], stats.with_model)})\n\n"
            "---\n\n"
            f"💡 **建议**：{model_coverage_suggestion(stats.without_model, float(stats.coverage_rate))}"
        )
        return ResponseData(content=content)

    # ========================================
    # Node queries and tracing
    # ========================================

    def query_nodes_response(self, parsed: ParsedQuery) -> ResponseData:
        condition = QueryCondition(category=[NodeCategory.KPI.value])

        status = parsed.first_value(EntityType.STATUS)
        if status == "unachieved":
            condition.achieved = False
        elif status == "achieved":
            condition.achieved = True

        model_type = parsed.first_value(EntityType.MODEL_TYPE)
        if model_type == "none":
            if NEGATED_MODEL_PATTERN.search(normalize_query(parsed.raw_query)):
                condition.has_model = False
        elif model_type:
            condition.model_type = model_type

        level = parsed.first_value(EntityType.LEVEL)
        if level:
            condition.level = int(level)

        results = self.store.query_nodes(condition)
        if not results:
            return ResponseData(content=self._empty_result_message(condition))

        chain = self.analyzer.trace_chain([n.id for n in results])

        lines = [self._node_list_header(condition, len(results))]
        for idx, node in enumerate(results[:self.max_listed_nodes], start=1):
            lines.append(
                f"{idx}. **{node.label}** (L{node.level or 1}) {status_mark(node)}\n"
                f"   📝 {node.description}\n"
                f"   📊 达成率：{format_number(node.metrics.achievement_rate)}% | 模型：{node.metrics.model_type or '无模型'}\n\n"
            )
        if len(results) > self.max_listed_nodes:
            lines.append(f"_...还有 {len(results) - self.max_listed_nodes} 个节点_\n\n")
        lines.append("---\n\n")
        lines.append(f"🔗 已为你高亮显示这些指标及其完整链路（包含 {len(chain.nodes)} 个节点）")

        return highlight("".join(lines), chain)

    @staticmethod
    def _empty_result_message(condition: QueryCondition) -> str:
        if condition.achieved is False:
            return ResponseTemplates.EMPTY_UNACHIEVED
        if condition.has_model is False:
            return ResponseTemplates.EMPTY_NO_MODEL
        return ResponseTemplates.EMPTY_GENERIC

    @staticmethod
    def _node_list_header(condition: QueryCondition, count: int) -> str:
        if condition.achieved is False:
            return f"❌ **找到 {count} 个未达成指标：**\n\n"
        if condition.has_model is False:
            return f"⚠️ **找到 {count} 个缺少模型的指标：**\n\n"
        if condition.level:
            return f"📋 **找到 {count} 个 L{condition.level} 指标：**\n\n"
        return f"📋 **找到 {count} 个节点：**\n\n"

    def _ordered(self, node_ids) -> list:
        """Node objects for ``node_ids`` in snapshot order."""
        id_set = set(node_ids)
        return [node for node in self.store.nodes if node.id in id_set]

    def trace_chain_response(self, parsed: ParsedQuery) -> ResponseData:
        node_id = parsed.first_value(EntityType.NODE_ID)
        if node_id is None:
            return ResponseData(content=ResponseTemplates.ASK_TRACE_NODE)

        target = self.store.get_node(node_id)
        if target is None:
            return ResponseData(content=ResponseTemplates.NODE_NOT_FOUND.format(node_id=node_id))

        chain = self.analyzer.trace_chain([node_id])

        by_category: Dict[str, int] = {}
        for node in self._ordered(chain.nodes):
            by_category[node.category] = by_category.get(node.category, 0) + 1
        distribution = "\n".join(
            f"- {category_icon(cat)} {category_name(cat)}：{count} 个" for cat, count in by_category.items()
        )

        content = (
            f"🔗 **{target.label} 的完整链路分析**\n\n"
            f"📝 描述：{target.description}\n\n"
            "**链路统计：**\n"
            f"- 总节点数：**{len(chain.nodes)}** 个\n"
            f"- 连接数：**{len(chain.edges)}** 条\n\n"
            "**节点分布：**\n"
            f"{distribution}\n\n"
            "---\n\n"
            "✨ 已在画布上高亮显示完整链路"
        )
        return highlight(content, chain)

    def impact_response(self, parsed: ParsedQuery) -> ResponseData:
        node_id = parsed.first_value(EntityType.NODE_ID)
        if node_id is None:
            return ResponseData(content=ResponseTemplates.ASK_IMPACT_NODE)

        target = self.store.get_node(node_id)
        if target is None:
            return ResponseData(content=ResponseTemplates.NODE_NOT_FOUND.format(node_id=node_id))

        impact = self.analyzer.trace_impact(node_id)
        affected = [n for n in self._ordered(impact.nodes) if is_kpi(n)]

        listed = "\n".join(f"- {status_mark(n)} {n.label}" for n in affected[:5])
        more = f"_...还有 {len(affected) - 5} 个指标_\n" if len(affected) > 5 else ""

        content = (
            f"⚡ **{target.label} 的影响分析**\n\n"
            f"📝 描述：{target.description}\n"
            f"🏷️ 类型：{category_name(target.category)}\n\n"
            "**影响范围：**\n"
            f"- 影响节点数：**{len(impact.nodes)}** 个\n"
            f"- 影响指标数：**{len(affected)}** 个\n\n"
            "**受影响的指标：**\n"
            f"{listed}\n"
            f"{more}\n"
            "---\n\n"
            f"⚠️ 变更此节点可能影响 {len(affected)} 个指标，请谨慎操作！"
        )
        return highlight(content, impact)

    # ========================================
    # Issues
    # ========================================

    def find_issues_response(self, parsed: ParsedQuery) -> ResponseData:
        query = parsed.raw_query.lower()
        if any(word in query for word in ("优先", "关注", "瓶颈")):
            return self.bottleneck_analysis()
        if "验证" in query or "缺口" in query:
            return self.verification_gap_analysis()
        return self.comprehensive_diagnosis()

    def bottleneck_analysis(self) -> ResponseData:
        unachieved = self.store.query_nodes(QueryCondition(category=[NodeCategory.KPI.value], achieved=False))
        if not unachieved:
            return ResponseData(content=ResponseTemplates.NO_BOTTLENECK)

        ranked = sorted(
            ((kpi, len(self.analyzer.trace_dependencies(kpi.id).nodes)) for kpi in unachieved),
            key=lambda item: item[1],
            reverse=True,
        )
        top = ranked[:3]

        lines = [
            "🎯 **关键瓶颈识别**\n\n"
            f"发现 **{len(unachieved)}** 个未达成指标，"
            f"以下是影响最大的 **{len(top)}** 个：\n\n"
        ]
        for idx, (kpi, impact_size) in enumerate(top, start=1):
            lines.append(
                f"**{idx}. {kpi.label}** (L{kpi.level or 1})\n"
                f"   📉 达成率：{format_number(kpi.metrics.achievement_rate)}%\n"
                f"   🔗 影响范围：{impact_size} 个节点\n"
                f"   📝 {kpi.description}\n\n"
            )
        lines.append("---\n\n")
        lines.append("💡 **建议**：优先解决上述指标，可获得最大收益。点击查看完整链路。")

        return highlight("".join(lines), self.analyzer.trace_chain([kpi.id for kpi, _ in top]))

    def verification_gap_analysis(self) -> ResponseData:
        missing = [kpi for kpi in self.analyzer.kpis() if not self.analyzer.has_verification(kpi.id)]
        if not missing:
            return ResponseData(content=ResponseTemplates.ALL_VERIFIED)

        lines = [
            "⚠️ **验证缺口分析**\n\n"
            f"发现 **{len(missing)}** 个指标缺少验证环节：\n\n"
        ]
        for idx, kpi in enumerate(missing[:8], start=1):
            lines.append(
                f"{idx}. **{kpi.label}** (L{kpi.level or 1}) {status_mark(kpi)}\n"
                f"   📝 {kpi.description}\n\n"
            )
        if len(missing) > 8:
            lines.append(f"_...还有 {len(missing) - 8} 个指标_\n\n")
        lines.append("---\n\n")
        lines.append("💡 **建议**：为这些指标补充相应的仿真验证或测试验证环节。")

        return highlight("".join(lines), self.analyzer.trace_chain([kpi.id for kpi in missing]))

    def comprehensive_diagnosis(self) -> ResponseData:
        stats = self.store.calculate_stats(self.analyzer.kpis())
        unachieved = stats["by_status"]["unachieved"]
        no_model = stats["by_status"]["withoutModel"]

        issues = []
        if unachieved > 0:
            issues.append(f"❌ **{unachieved}** 个指标未达成")
        if no_model > 0:
            issues.append(f"📦 **{no_model}** 个指标缺少模型")

        if not issues:
            return ResponseData(content=ResponseTemplates.NO_ISSUES)

        content = (
            "🔍 **综合问题诊断**\n\n"
            "发现以下问题：\n\n"
            + "\n".join(issues) + "\n\n"
            "---\n\n"
            + ResponseTemplates.DIAGNOSIS_TIPS
        )
        return ResponseData(content=content)

    # ========================================
    # Suggestions and comparison
    # ========================================

    def suggestion_response(self, parsed: ParsedQuery) -> ResponseData:
        node_id = parsed.first_value(EntityType.NODE_ID)
        if node_id is None:
            return ResponseData(content=ResponseTemplates.SUGGEST_MENU)
        return self.node_suggestion(node_id)

    def node_suggestion(self, node_id: str) -> ResponseData:
        node = self.store.get_node(node_id)
        if node is None:
            return ResponseData(content=ResponseTemplates.NODE_NOT_FOUND.format(node_id=node_id))
        if not is_kpi(node):
            return ResponseData(content=ResponseTemplates.SUGGEST_KPI_ONLY)

        suggestions = []
        if not node.metrics.achieved:
            suggestions.append(
                f"📉 当前达成率 {format_number(node.metrics.achievement_rate)}%，建议检查相关设计参数是否优化到位"
            )
        if not node.has_model:
            suggestions.append("📦 缺少模型支撑，建议补充建模以验证设计")

        designs = self.analyzer.design_neighbours(node_id)
        if designs:
            suggestions.append(f"🔧 关注以下设计参数：{'、'.join(n.label for n in designs)}")

        if not self.analyzer.has_verification(node_id):
            suggestions.append("⚠️ 缺少验证环节，建议补充仿真或测试验证")

        if not suggestions:
            suggestions.append("✅ 该指标状态良好，继续保持！")

        numbered = "\n\n".join(f"{i}. {s}" for i, s in enumerate(suggestions, start=1))
        content = (
            f"💡 **{node.label} 优化建议**\n\n"
            f"📝 {node.description}\n\n"
            "**分析与建议：**\n\n"
            f"{numbered}\n\n"
            "---\n\n"
            "✨ 已高亮显示相关链路"
        )
        return highlight(content, self.analyzer.trace_chain([node_id]))

    def compare_response(self, parsed: ParsedQuery) -> ResponseData:
        node_ids = parsed.values_of(EntityType.NODE_ID)
        if len(node_ids) < 2:
            return ResponseData(content=ResponseTemplates.ASK_COMPARE_NODES)

        id1, id2 = node_ids[0], node_ids[1]
        comparison = self.analyzer.compare_kpis(id1, id2)
        if comparison is None:
            return ResponseData(content=ResponseTemplates.COMPARE_NOT_KPI)

        lines = [f"📊 **{comparison.entity1} 和 {comparison.entity2} 的对比分析**\n\n"]
        for metric in comparison.metrics:
            lines.append(f"**{metric.name}**\n")
            lines.append(f"- {comparison.entity1}：{metric.value1}\n")
            lines.append(f"- {comparison.entity2}：{metric.value2}\n")
            if metric.diff is not None:
                lines.append(f"- 差值：{format_signed(metric.diff)}\n")
            lines.append("\n")
        lines.append("---\n\n")
        lines.append(f"📝 **总结**：{comparison.summary}")

        return highlight("".join(lines), self.analyzer.trace_chain([id1, id2]))

    # ========================================
    # System-level analysis
    # ========================================

    def correlation_response(self, parsed: ParsedQuery) -> ResponseData:
        correlations = self.analyzer.analyze_correlations()
        if not correlations:
            return ResponseData(content=ResponseTemplates.NO_CORRELATION)

        top = correlations[:5]
        lines = [
            "🔗 **指标关联分析**\n\n"
            f"发现 **{len(correlations)}** 对相关联的指标，"
            f"以下是关联最强的 **{len(top)}** 对：\n\n"
        ]
        for idx, corr in enumerate(top, start=1):
            mark1 = "✅" if corr.kpi1["achieved"] else "❌"
            mark2 = "✅" if corr.kpi2["achieved"] else "❌"
            lines.append(
                f"**{idx}. {corr.kpi1['name']} {mark1} ⬌ {corr.kpi2['name']} {mark2}**\n"
                f"   🔧 共享设计参数：{corr.shared_design_params} 个\n"
                f"   ✓ 共享验证：{corr.shared_verifications} 个\n"
                f"   💡 {corr.insight}\n\n"
            )
        lines.append("---\n\n")
        lines.append("🎯 **建议**：关注共享设计参数较多的指标组合，优化时需要综合考虑。")

        kpi_ids = [kpi_id for corr in top for kpi_id in (corr.kpi1["id"], corr.kpi2["id"])]
        return highlight("".join(lines), self.analyzer.trace_chain(kpi_ids))

    def health_check_response(self, parsed: ParsedQuery) -> ResponseData:
        levels = self.analyzer.analyze_level_health()

        lines = ["🏥 **系统健康度检查**\n\n"]
        for level in levels:
            lines.append(
                f"**{GRADE_EMOJI[level.grade]} L{level.level} 指标健康度：{level.grade} ({format_rate(level.health_score)}分)**\n\n"
                f"- 总指标数：{level.total_kpis} 个\n"
                f"- 达成情况：{level.achieved_kpis}/{level.total_kpis} ({format_rate(level.achievement_rate)}%)\n"
                f"- 模型覆盖：{level.with_model}/{level.total_kpis} ({format_rate(level.model_coverage)}%)\n"
                f"- 验证覆盖：{level.with_verify}/{level.total_kpis} ({format_rate(level.verification_coverage)}%)\n\n"
            )
        lines.append("---\n\n")

        weak = [level for level in levels if level.grade in ("D", "F")]
        if weak:
            lines.append(f"⚠️ **需要改进**：{'、'.join(f'L{level.level}' for level in weak)} 指标健康度较低，建议优先关注。")
        else:
            lines.append("✅ **整体表现良好**：所有层级健康度达标！")

        return ResponseData(content="".join(lines))

    def priority_response(self, parsed: ParsedQuery) -> ResponseData:
        priorities = self.analyzer.prioritize_nodes()
        if not priorities:
            return ResponseData(content=ResponseTemplates.NO_PRIORITY)

        top = priorities[:5]
        lines = [
            "🎯 **优先级排序分析**\n\n"
            f"共 **{len(priorities)}** 个指标需要关注，"
            f"以下是优先级最高的 **{len(top)}** 个：\n\n"
        ]
        for idx, item in enumerate(top, start=1):
            lines.append(
                f"**{idx}. {item.node_name}** (优先级：{item.priority_score}分)\n"
                f"   📝 原因：{'、'.join(item.reasons)}\n\n"
            )
        lines.append("---\n\n")
        lines.append("💡 **建议**：按照优先级顺序逐个解决，可以获得最大的改进效果。")

        return highlight("".join(lines), self.analyzer.trace_chain([item.node_id for item in top]))

    def unknown_response(self, parsed: ParsedQuery) -> ResponseData:
        return ResponseData(content=ResponseTemplates.HELP)


def create_generator_node(generator: ResponseGenerator):
    """
    Build the pipeline node that answers the parsed query.

    Args:
        generator: ResponseGenerator owned by the pipeline

    Returns:
        Node function reading ``parsed_query`` and writing ``response``
    """
    def generator_node(state: CopilotState) -> Dict[str, Any]:
        parsed = ParsedQuery.from_dict(state["parsed_query"])

        try:
            response = generator.generate_response(parsed)
        except Exception as e:
            logger.error(f"[Generator] Failed to generate response: {e}")
            raise

        logger.info(f"[Generator] Response ready ({len(response.nodes)} highlighted nodes)")

        return {
            "response": response.to_dict(),
            "messages": [add_message(state, "assistant", response.content)],
        }

    return generator_node
