"""
Report generation.

Builds multi-section analysis reports (whole system, single KPI, KPI pair)
from the Graph Store and Analyzer, and exports them as Markdown or JSON.
"""
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from loguru import logger

from kpi_copilot.analysis.analyzer import Analyzer, DependencyAnalysis
from kpi_copilot.data.models import ModelType, is_kpi
from kpi_copilot.engine.graph_store import GraphStore
from kpi_copilot.utils.templates import (
    GRADE_EMOJI,
    PRIORITY_EMOJI,
    RISK_EMOJI,
    format_number,
    format_rate,
    safe_rate,
)


FULL_REPORT_TITLE = "新能源汽车折叠方向盘系统分析报告"
REPORT_FOOTER = "*本报告由 KPI Copilot 指标链路分析工具自动生成*"


@dataclass
class ReportSection:
    title: str
    content: str
    data: Optional[dict] = None
    chart: Optional[str] = None  # "pie" | "bar" | "table"

    def to_dict(self) -> dict:
        result = {"title": self.title, "content": self.content}
        if self.data is not None:
            result["data"] = self.data
        if self.chart is not None:
            result["chart"] = self.chart
        return result


@dataclass
class Report:
    title: str
    sections: List[ReportSection]
    summary: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "timestamp": self.timestamp.isoformat(),
            "sections": [s.to_dict() for s in self.sections],
            "summary": self.summary,
        }


def slugify(text: str) -> str:
    """Anchor for a Markdown heading (ASCII word characters and CJK kept)."""
    text = re.sub(r"\s+", "-", text.lower())
    return re.sub(r"[^\w\-一-龥]+", "", text, flags=re.ASCII)


def overall_grade(achieved: int, total: int, with_model: int) -> str:
    score = (safe_rate(achieved, total) + safe_rate(with_model, total)) / 2
    if score >= 90:
        return "🏆 优秀"
    if score >= 80:
        return "🥈 良好"
    if score >= 70:
        return "🥉 中等"
    if score >= 60:
        return "⚠️ 需改进"
    return "🚨 需紧急改进"


class ReportGenerator:
    """
    Report builder over a Graph Store.

    Args:
        store: Graph Store to report on
        analyzer: Analyzer bound to the same store (created if omitted)
    """

    def __init__(self, store: GraphStore, analyzer: Optional[Analyzer] = None):
        self.store = store
        self.analyzer = analyzer or Analyzer(store)

    # ========================================
    # Reports
    # ========================================

    def generate_full_report(self) -> Report:
        """System-wide report: summary, achievement, models, health, issues, priorities, gaps."""
        sections = [
            self._executive_summary(),
            self._achievement_analysis(),
            self._model_coverage_analysis(),
            self._health_analysis(),
            self._issues_section(),
            self._priority_section(),
            self._gap_summary(),
        ]

        logger.info(f"[Report] Generated full report with {len(sections)} sections")

        return Report(title=FULL_REPORT_TITLE, sections=sections, summary=self._overall_summary())

    def generate_kpi_report(self, kpi_id: str) -> Optional[Report]:
        """
        Report on a single KPI.

        Returns:
            Report, or None if ``kpi_id`` is not a KPI node
        """
        kpi = self.store.get_node(kpi_id)
        if not is_kpi(kpi):
            return None

        chain = self.analyzer.trace_dependencies(kpi_id)
        deps = self.analyzer.analyze_dependencies(kpi_id)

        sections = [
            ReportSection(title="指标概况", content=self._kpi_overview(kpi)),
            ReportSection(
                title="依赖链路",
                content=(
                    "该指标的完整链路包含:\n\n"
                    f"- **相关节点总数**: {len(chain.nodes)} 个\n"
                    f"- **连接关系数**: {len(chain.edges)} 条\n"
                ),
            ),
            ReportSection(title="依赖与影响", content=self._dependency_content(deps)),
            ReportSection(title="风险评估", content=self._risk_content(deps)),
            ReportSection(title="改进建议", content=self._kpi_recommendations(kpi, deps)),
        ]

        return Report(
            title=f"{kpi.label} 专项分析报告",
            sections=sections,
            summary=f"本报告针对 {kpi.label} 进行了全面分析，包括链路追踪、依赖关系、风险评估和改进建议。",
        )

    def generate_comparison_report(self, kpi_id1: str, kpi_id2: str) -> Optional[Report]:
        comparison = self.analyzer.compare_kpis(kpi_id1, kpi_id2)
        if comparison is None:
            return None

        lines = ["## 详细对比\n\n"]
        for metric in comparison.metrics:
            lines.append(f"### {metric.name}\n")
            lines.append(f"- {comparison.entity1}: {metric.value1}\n")
            lines.append(f"- {comparison.entity2}: {metric.value2}\n")
            if metric.diff is not None:
                arrow = "↑" if metric.diff > 0 else "↓" if metric.diff < 0 else "→"
                lines.append(f"- 差值: {arrow} {format_number(abs(metric.diff))}\n")
            lines.append("\n")

        sections = [
            ReportSection(
                title="对比概览",
                content=f"本报告对比分析 **{comparison.entity1}** 和 **{comparison.entity2}** 的各项指标。",
            ),
            ReportSection(title="详细指标对比", content="".join(lines), data=comparison.to_dict(), chart="table"),
            ReportSection(title="对比总结", content=comparison.summary),
        ]

        return Report(
            title=f"{comparison.entity1} vs {comparison.entity2} 对比报告",
            sections=sections,
            summary=comparison.summary,
        )

    # ========================================
    # Export
    # ========================================

    def export_to_markdown(self, report: Report) -> str:
        """Render a report as Markdown with a table of contents."""
        parts = [
            f"# {report.title}\n\n",
            f"**生成时间**: {report.timestamp:%Y-%m-%d %H:%M:%S}\n\n",
            "---\n\n",
            "## 目录\n\n",
        ]
        for idx, section in enumerate(report.sections, start=1):
            parts.append(f"{idx}. [{section.title}](#{slugify(section.title)})\n")
        parts.append("\n---\n\n")

        parts.append(f"## 执行摘要\n\n{report.summary}\n\n---\n\n")

        for section in report.sections:
            parts.append(f"## {section.title}\n\n{section.content}\n\n---\n\n")

        parts.append("\n---\n\n")
        parts.append(f"{REPORT_FOOTER}\n")

        return "".join(parts)

    def export_to_json(self, report: Report) -> str:
        return json.dumps(report.to_dict(), ensure_ascii=False, indent=2)

    # ========================================
    # Full report sections
    # ========================================

    def _executive_summary(self) -> ReportSection:
        kpis = self.analyzer.kpis()
        achieved = sum(1 for n in kpis if n.metrics.achieved)
        with_model = sum(1 for n in kpis if n.has_model)

        content = (
            f"本系统共包含 **{len(kpis)}** 个关键性能指标（KPI），其中：\n\n"
            f"- ✅ **已达成**: {achieved} 个 ({format_rate(safe_rate(achieved, len(kpis)))}%)\n"
            f"- ❌ **未达成**: {len(kpis) - achieved} 个\n"
            f"- 🔧 **模型覆盖**: {with_model} 个 ({format_rate(safe_rate(with_model, len(kpis)))}%)\n\n"
            f"**整体评估**: {overall_grade(achieved, len(kpis), with_model)}"
        )
        return ReportSection(
            title="执行摘要",
            content=content,
            data={"total": len(kpis), "achieved": achieved, "with_model": with_model},
        )

    def _achievement_analysis(self) -> ReportSection:
        levels = {level: self.analyzer.kpis(level) for level in (1, 2)}
        names = {1: "一级指标 (L1)", 2: "二级指标 (L2)"}

        lines = []
        for level, kpis in levels.items():
            achieved = sum(1 for n in kpis if n.metrics.achieved)
            lines.append(f"### {names[level]}\n\n")
            lines.append(f"- 总数: {len(kpis)} 个\n")
            lines.append(f"- 已达成: {achieved} 个 ({format_rate(safe_rate(achieved, len(kpis)))}%)\n")
            lines.append(f"- 未达成: {len(kpis) - achieved} 个\n\n")

        unachieved = [n for n in levels[1] + levels[2] if not n.metrics.achieved]
        if unachieved:
            lines.append("### 未达成指标清单\n\n")
            for kpi in unachieved:
                lines.append(
                    f"- **{kpi.label}**: {kpi.description} (当前: {format_number(kpi.metrics.achievement_rate)}%)\n"
                )

        return ReportSection(title="指标达成分析", content="".join(lines), chart="bar")

    def _model_coverage_analysis(self) -> ReportSection:
        kpis = self.analyzer.kpis()

        lines = ["### 模型类型分布\n\n"]
        distribution = {}
        for model_type in ModelType:
            count = sum(1 for n in kpis if n.metrics.model_type == model_type.value)
            distribution[model_type.value] = count
            if count > 0:
                lines.append(f"- **{model_type.value.upper()}**: {count} 个\n")

        no_model = [n for n in kpis if not n.has_model]
        distribution["none"] = len(no_model)
        lines.append(f"- **无模型**: {len(no_model)} 个\n\n")

        if no_model:
            lines.append("### 缺少模型的指标\n\n")
            for kpi in no_model:
                lines.append(f"- {kpi.label}: {kpi.description}\n")

        return ReportSection(title="模型覆盖分析", content="".join(lines), data=distribution, chart="pie")

    def _health_analysis(self) -> ReportSection:
        lines = []
        for level in self.analyzer.analyze_level_health():
            lines.append(f"### {GRADE_EMOJI[level.grade]} L{level.level} 指标 - 健康度 {level.grade}\n\n")
            lines.append(f"- **综合评分**: {format_rate(level.health_score)}/100\n")
            lines.append(f"- **达成率**: {format_rate(level.achievement_rate)}%\n")
            lines.append(f"- **模型覆盖率**: {format_rate(level.model_coverage)}%\n")
            lines.append(f"- **验证覆盖率**: {format_rate(level.verification_coverage)}%\n\n")

        return ReportSection(title="层级健康度分析", content="".join(lines))

    def _issues_section(self) -> ReportSection:
        lines = []
        for gap in self.analyzer.analyze_gaps():
            lines.append(f"### {PRIORITY_EMOJI[gap.priority]} {gap.category} (优先级: {gap.priority})\n\n")
            lines.append(f"- **覆盖率**: {format_rate(gap.coverage_rate)}%\n")
            lines.append(f"- **已覆盖**: {len(gap.identified)} 个\n")
            lines.append(f"- **缺失**: {len(gap.missing)} 个\n\n")
            if gap.recommendations:
                lines.append("**改进建议**:\n")
                lines.extend(f"- {rec}\n" for rec in gap.recommendations)
                lines.append("\n")

        return ReportSection(title="问题识别与缺口分析", content="".join(lines))

    def _priority_section(self) -> ReportSection:
        lines = ["以下是按优先级排序的需要关注的指标（Top 10）：\n\n"]
        for idx, item in enumerate(self.analyzer.prioritize_nodes()[:10], start=1):
            lines.append(f"**{idx}. {item.node_name}** (优先级: {item.priority_score})\n")
            lines.append(f"   - 原因: {'、'.join(item.reasons)}\n\n")

        return ReportSection(title="优先级排序", content="".join(lines), chart="table")

    def _gap_summary(self) -> ReportSection:
        lines = ["本节总结了系统在各维度的缺口情况：\n\n"]
        for gap in self.analyzer.analyze_gaps():
            lines.append(
                f"- **{gap.category}**: 覆盖率 {format_rate(gap.coverage_rate)}%，"
                f"缺失 {len(gap.missing)} 项 ({gap.priority}优先级)\n"
            )

        return ReportSection(title="缺口总结", content="".join(lines))

    def _overall_summary(self) -> str:
        kpis = self.analyzer.kpis()
        rate = safe_rate(sum(1 for n in kpis if n.metrics.achieved), len(kpis))

        summary = f"系统整体达成率为 {format_rate(rate)}%，"
        if rate >= 80:
            return summary + "表现优秀，建议继续保持并优化剩余指标。"
        if rate >= 60:
            return summary + "表现良好，但仍有提升空间，建议关注未达成的关键指标。"
        return summary + "存在较大改进空间，建议优先处理高优先级指标。"

    # ========================================
    # KPI report sections
    # ========================================

    @staticmethod
    def _kpi_overview(kpi) -> str:
        metrics = kpi.metrics
        status = "✅ 已达成" if metrics.achieved else "❌ 未达成"
        model = f"✓ {metrics.model_type.upper()}" if metrics.model_type else "✗ 无模型"

        return (
            f"- **名称**: {kpi.label}\n"
            f"- **描述**: {kpi.description}\n"
            f"- **层级**: L{kpi.level or 1}\n"
            f"- **状态**: {status}\n"
            f"- **达成率**: {format_number(metrics.achievement_rate)}%\n"
            f"- **模型支撑**: {model}"
        )

    @staticmethod
    def _dependency_content(deps: DependencyAnalysis) -> str:
        lines = ["### 上游依赖\n\n"]
        if deps.upstream:
            lines.extend(f"- {d['name']} ({d['category']})\n" for d in deps.upstream)
        else:
            lines.append("无上游依赖\n")

        lines.append("\n### 下游依赖\n\n")
        if deps.downstream:
            lines.extend(f"- {d['name']} ({d['category']})\n" for d in deps.downstream)
        else:
            lines.append("无下游依赖\n")

        return "".join(lines)

    @staticmethod
    def _risk_content(deps: DependencyAnalysis) -> str:
        risk = deps.risk
        lines = [f"**风险等级**: {RISK_EMOJI[risk.level]} {risk.level.upper()}\n\n"]

        if risk.factors:
            lines.append("**风险因素**:\n")
            lines.extend(f"- {factor}\n" for factor in risk.factors)
        else:
            lines.append("未发现明显风险因素\n")

        return "".join(lines)

    @staticmethod
    def _kpi_recommendations(kpi, deps: DependencyAnalysis) -> str:
        recommendations = []

        if not kpi.metrics.achieved:
            recommendations.append("指标未达成，建议优先排查关键设计参数")
        if not kpi.has_model:
            recommendations.append("缺少模型支撑，建议建立仿真模型进行验证")
        if not deps.downstream:
            recommendations.append("缺少验证环节，建议补充相应的测试和验证")
        if deps.risk.level == "high":
            recommendations.append("风险等级较高，建议加强监控和风险缓解措施")

        if not recommendations:
            recommendations.append("当前状态良好，建议持续监控")

        return "".join(f"{idx}. {rec}\n" for idx, rec in enumerate(recommendations, start=1))
