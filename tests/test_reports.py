"""Tests for report generation."""

import json

import pytest

from kpi_copilot.engine import GraphStore
from kpi_copilot.reports import FULL_REPORT_TITLE, REPORT_FOOTER, ReportGenerator, overall_grade, slugify


@pytest.fixture
def reports(sample_store):
    return ReportGenerator(sample_store)


class TestFullReport:

    def test_sections(self, reports):
        report = reports.generate_full_report()
        assert report.title == FULL_REPORT_TITLE
        assert [s.title for s in report.sections] == [
            "执行摘要",
            "指标达成分析",
            "模型覆盖分析",
            "层级健康度分析",
            "问题识别与缺口分析",
            "优先级排序",
            "缺口总结",
        ]
        assert report.summary.startswith("系统整体达成率为 61.1%，表现良好")

    def test_executive_summary(self, reports):
        summary = reports.generate_full_report().sections[0]
        assert summary.data == {"total": 18, "achieved": 11, "with_model": 12}
        assert "- ✅ **已达成**: 11 个 (61.1%)" in summary.content
        assert "**整体评估**: ⚠️ 需改进" in summary.content

    def test_empty_graph(self):
        report = ReportGenerator(GraphStore()).generate_full_report()
        assert "- ✅ **已达成**: 0 个 (0.0%)" in report.sections[0].content
        assert report.summary.startswith("系统整体达成率为 0.0%")

    def test_markdown(self, reports):
        report = reports.generate_full_report()
        markdown = reports.export_to_markdown(report)

        assert markdown.startswith(f"# {FULL_REPORT_TITLE}\n\n")
        assert "## 目录\n\n1. [执行摘要](#执行摘要)\n" in markdown
        assert f"## 执行摘要\n\n{report.summary}" in markdown
        assert "## 缺口总结" in markdown
        assert markdown.rstrip().endswith(REPORT_FOOTER)

    def test_json(self, reports):
        report = reports.generate_full_report()
        data = json.loads(reports.export_to_json(report))

        assert data["title"] == FULL_REPORT_TITLE
        assert len(data["sections"]) == 7
        assert data["sections"][2]["chart"] == "pie"
        assert "data" not in data["sections"][3]


class TestKpiReport:

    def test_not_a_kpi(self, reports):
        assert reports.generate_kpi_report("D_Damping") is None
        assert reports.generate_kpi_report("KPI_Missing") is None

    def test_sections(self, reports):
        report = reports.generate_kpi_report("KPI_NVH_Noise")
        assert report.title == "KPI_NVH_Noise 专项分析报告"
        assert [s.title for s in report.sections] == ["指标概况", "依赖链路", "依赖与影响", "风险评估", "改进建议"]


class TestComparisonReport:

    def test_not_kpis(self, reports):
        assert reports.generate_comparison_report("KPI_NVH", "G1") is None

    def test_comparison(self, reports):
        report = reports.generate_comparison_report("KPI_SpaceGain", "KPI_FoldTime")
        assert report.title == "KPI_SpaceGain vs KPI_FoldTime 对比报告"
        assert report.summary == "KPI_FoldTime 的达成率更高（15.0%）"
        assert "- 差值: ↓ 15" in report.sections[1].content
        assert report.sections[1].data["entity1"] == "KPI_SpaceGain"


class TestHelpers:

    @pytest.mark.parametrize("text,slug", [
        ("指标达成分析", "指标达成分析"),
        ("Level Health", "level-health"),
        ("KPI (L1)", "kpi-l1"),
    ])
    def test_slugify(self, text, slug):
        assert slugify(text) == slug

    @pytest.mark.parametrize("achieved,total,with_model,grade", [
        (10, 10, 10, "🏆 优秀"),
        (8, 10, 8, "🥈 良好"),
        (0, 0, 0, "🚨 需紧急改进"),
    ])
    def test_overall_grade(self, achieved, total, with_model, grade):
        assert overall_grade(achieved, total, with_model) == grade
