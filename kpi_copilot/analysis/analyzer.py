"""
Analytics over the traceability graph.

Comparison, dependency/risk, correlation, gap, health and priority analysis.
All methods read the store's current snapshot and have no side effects.
"""
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

from loguru import logger

from kpi_copilot.analysis.traversal import (
    ChainResult,
    trace_chain,
    trace_dependencies,
    trace_impact,
)
from kpi_copilot.data.models import ModelType, Node, NodeCategory, is_kpi
from kpi_copilot.engine.graph_store import GraphStore, QueryCondition
from kpi_copilot.utils.templates import format_number, format_rate, safe_rate


KPI_ONLY = QueryCondition(category=[NodeCategory.KPI.value])
LEVELS = (1, 2)


# ========================================
# Result records
# ========================================

@dataclass
class ComparisonMetric:
    name: str
    value1: object
    value2: object
    diff: Optional[float] = None
    better: Optional[str] = None  # "entity1" | "entity2" | "equal"


@dataclass
class ComparisonResult:
    entity1: str
    entity2: str
    metrics: List[ComparisonMetric]
    summary: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RiskAssessment:
    level: str  # "high" | "medium" | "low"
    score: int
    factors: List[str] = field(default_factory=list)


@dataclass
class DependencyAnalysis:
    node_id: str
    node_name: str
    upstream: List[dict]
    downstream: List[dict]
    critical_path: List[str]
    risk: RiskAssessment

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CorrelationAnalysis:
    kpi1: dict
    kpi2: dict
    shared_design_params: int
    shared_verifications: int
    correlation_strength: str  # "strong" | "medium" | "weak"
    insight: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GapAnalysis:
    category: str
    identified: List[str]
    missing: List[str]
    coverage_rate: float
    priority: str  # "high" | "medium" | "low"
    recommendations: List[str]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class LevelHealth:
    level: int
    total_kpis: int
    achieved_kpis: int
    achievement_rate: float
    with_model: int
    model_coverage: float
    with_verify: int
    verification_coverage: float
    health_score: float
    grade: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PriorityItem:
    node_id: str
    node_name: str
    category: str
    priority_score: int
    reasons: List[str]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AchievementStats:
    total: int
    achieved_count: int
    unachieved_count: int
    achieved_rate: str  # one decimal place, "0" when there are no KPIs
    level1_total: int
    level1_achieved: int
    level2_total: int
    level2_achieved: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ModelCoverageStats:
    total: int
    with_model: int
    without_model: int
    coverage_rate: str
    by_model_type: Dict[str, int]

    def to_dict(self) -> dict:
        return asdict(self)


def gap_priority(coverage_rate: float) -> str:
    if coverage_rate < 60:
        return "high"
    if coverage_rate < 80:
        return "medium"
    return "low"


def health_grade(score: float) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


class Analyzer:
    """
    Analytics layer bound to a Graph Store.

    The analyzer keeps a reference to the store rather than to node/edge
    lists, so a re-bound store is picked up by the next call.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    # ========================================
    # Traversal
    # ========================================

    def trace_chain(self, start_ids: Sequence[str]) -> ChainResult:
        return trace_chain(self.store, start_ids)

    def trace_impact(self, node_id: str) -> ChainResult:
        return trace_impact(self.store, node_id)

    def trace_dependencies(self, node_id: str) -> ChainResult:
        return trace_dependencies(self.store, node_id)

    # ========================================
    # Helpers
    # ========================================

    def kpis(self, level: Optional[int] = None) -> List[Node]:
        if level is None:
            return self.store.query_nodes(KPI_ONLY)
        return self.store.query_nodes(QueryCondition(category=[NodeCategory.KPI.value], level=level))

    def design_neighbours(self, node_id: str) -> List[Node]:
        return self.store.connected_of_category(node_id, NodeCategory.DESIGN.value)

    def verify_neighbours(self, node_id: str) -> List[Node]:
        return self.store.connected_of_category(node_id, NodeCategory.VERIFY.value)

    def has_verification(self, node_id: str) -> bool:
        return bool(self.verify_neighbours(node_id))

    def find_shared_design_params(self, design_id: str) -> List[Node]:
        """KPI nodes that implement the given design parameter."""
        return [n for n in self.store.get_connected_nodes(design_id, "incoming") if is_kpi(n)]

    # ========================================
    # Statistics
    # ========================================

    def calculate_achievement_stats(self) -> AchievementStats:
        """Achieved/unachieved counts over all KPIs, overall and per level."""
        kpis = self.kpis()
        stats = self.store.calculate_stats(kpis)

        achieved = stats["by_status"]["achieved"]
        unachieved = stats["by_status"]["unachieved"]
        total = achieved + unachieved
        rate = format_rate(achieved / total * 100) if total > 0 else "0"

        level1 = [n for n in kpis if n.level == 1]
        level2 = [n for n in kpis if n.level == 2]

        return AchievementStats(
            total=total,
            achieved_count=achieved,
            unachieved_count=unachieved,
            achieved_rate=rate,
            level1_total=len(level1),
            level1_achieved=sum(1 for n in level1 if n.metrics.achieved),
            level2_total=len(level2),
            level2_achieved=sum(1 for n in level2 if n.metrics.achieved),
        )

    def calculate_model_coverage_stats(self) -> ModelCoverageStats:
        """Model coverage over all KPIs with a per-model-type histogram."""
        kpis = self.kpis()
        stats = self.store.calculate_stats(kpis)

        with_model = stats["by_status"]["withModel"]
        without_model = stats["by_status"]["withoutModel"]
        total = with_model + without_model
        rate = format_rate(with_model / total * 100) if total > 0 else "0"

        by_type = {model_type.value: 0 for model_type in ModelType}
        for node in kpis:
            if node.metrics.model_type in by_type:
                by_type[node.metrics.model_type] += 1

        return ModelCoverageStats(
            total=total,
            with_model=with_model,
            without_model=without_model,
            coverage_rate=rate,
            by_model_type=by_type,
        )

    # ========================================
    # Comparison
    # ========================================

    def compare_kpis(self, kpi_id1: str, kpi_id2: str) -> Optional[ComparisonResult]:
        """
        Metric-by-metric comparison of two KPIs.

        Returns:
            ComparisonResult, or None if either ID is not a KPI node
        """
        kpi1 = self.store.get_node(kpi_id1)
        kpi2 = self.store.get_node(kpi_id2)
        if not is_kpi(kpi1) or not is_kpi(kpi2):
            return None

        rate1 = kpi1.metrics.achievement_rate
        rate2 = kpi2.metrics.achievement_rate
        if rate1 > rate2:
            better = "entity1"
        elif rate1 < rate2:
            better = "entity2"
        else:
            better = "equal"

        design1 = len(self.design_neighbours(kpi_id1))
        design2 = len(self.design_neighbours(kpi_id2))
        verify1 = len(self.verify_neighbours(kpi_id1))
        verify2 = len(self.verify_neighbours(kpi_id2))

        metrics = [
            ComparisonMetric(
                name="达成率",
                value1=f"{format_number(rate1)}%",
                value2=f"{format_number(rate2)}%",
                diff=rate1 - rate2,
                better=better,
            ),
            ComparisonMetric(name="KPI层级", value1=f"L{kpi1.level or 1}", value2=f"L{kpi2.level or 1}"),
            ComparisonMetric(
                name="模型类型",
                value1=kpi1.metrics.model_type or "无",
                value2=kpi2.metrics.model_type or "无",
            ),
            ComparisonMetric(name="设计参数数量", value1=design1, value2=design2, diff=design1 - design2),
            ComparisonMetric(name="验证环节数量", value1=verify1, value2=verify2, diff=verify1 - verify2),
        ]

        if better == "entity1":
            summary = f"{kpi1.label} 的达成率更高（{format_rate(rate1 - rate2)}%）"
        elif better == "entity2":
            summary = f"{kpi2.label} 的达成率更高（{format_rate(abs(rate1 - rate2))}%）"
        else:
            summary = "两个指标达成率相同"

        return ComparisonResult(entity1=kpi1.label, entity2=kpi2.label, metrics=metrics, summary=summary)

    # ========================================
    # Dependencies and risk
    # ========================================

    def analyze_dependencies(self, node_id: str) -> Optional[DependencyAnalysis]:
        """One-hop dependencies, critical path to the goal layer, and risk."""
        node = self.store.get_node(node_id)
        if node is None:
            return None

        upstream = self.store.get_connected_nodes(node_id, "incoming")
        downstream = self.store.get_connected_nodes(node_id, "outgoing")

        return DependencyAnalysis(
            node_id=node_id,
            node_name=node.label,
            upstream=[{"id": n.id, "name": n.label, "category": n.category} for n in upstream],
            downstream=[{"id": n.id, "name": n.label, "category": n.category} for n in downstream],
            critical_path=self.calculate_critical_path(node_id),
            risk=self.assess_risk(node, upstream, downstream),
        )

    def calculate_critical_path(self, node_id: str) -> List[str]:
        """Walk up through KPI parents until a goal node is reached."""
        path = [node_id]
        seen = {node_id}
        current = node_id

        while True:
            parent = next(
                (
                    n for n in self.store.get_connected_nodes(current, "incoming")
                    if n.category in (NodeCategory.GOAL, NodeCategory.KPI) and n.id not in seen
                ),
                None,
            )
            if parent is None:
                break
            path.insert(0, parent.id)
            seen.add(parent.id)
            current = parent.id
            if parent.category == NodeCategory.GOAL:
                break

        return path

    def assess_risk(
        self,
        node: Node,
        upstream: Optional[List[Node]] = None,
        downstream: Optional[List[Node]] = None,
    ) -> RiskAssessment:
        """
        Discrete risk score.

        unachieved KPI +3, KPI without model +2, KPI/design without a
        downstream verification +2, more than 5 upstream +1, more than 8
        downstream +1. high >= 5, medium >= 3.
        """
        if upstream is None:
            upstream = self.store.get_connected_nodes(node.id, "incoming")
        if downstream is None:
            downstream = self.store.get_connected_nodes(node.id, "outgoing")

        factors: List[str] = []
        score = 0

        if is_kpi(node) and not node.metrics.achieved:
            factors.append("指标未达成")
            score += 3

        if is_kpi(node) and not node.has_model:
            factors.append("缺少模型支撑")
            score += 2

        if node.category in (NodeCategory.KPI, NodeCategory.DESIGN):
            if not any(n.category == NodeCategory.VERIFY for n in downstream):
                factors.append("缺少验证环节")
                score += 2

        if len(upstream) > 5:
            factors.append(f"上游依赖较多（{len(upstream)}个）")
            score += 1

        if len(downstream) > 8:
            factors.append(f"下游依赖较多（{len(downstream)}个）")
            score += 1

        level = "high" if score >= 5 else "medium" if score >= 3 else "low"
        return RiskAssessment(level=level, score=score, factors=factors)

    # ========================================
    # Correlation
    # ========================================

    def analyze_correlations(self) -> List[CorrelationAnalysis]:
        """
        Pairwise KPI correlation through shared design parameters / verifications.

        Sorted by the number of shared design parameters, descending.
        """
        kpis = self.kpis()
        design_sets = {k.id: {n.id for n in self.design_neighbours(k.id)} for k in kpis}
        verify_sets = {k.id: {n.id for n in self.verify_neighbours(k.id)} for k in kpis}

        correlations: List[CorrelationAnalysis] = []
        for i, kpi1 in enumerate(kpis):
            for kpi2 in kpis[i + 1:]:
                shared_design = len(design_sets[kpi1.id] & design_sets[kpi2.id])
                shared_verify = len(verify_sets[kpi1.id] & verify_sets[kpi2.id])
                if shared_design == 0 and shared_verify == 0:
                    continue

                if shared_design >= 2:
                    strength = "strong"
                elif shared_design >= 1:
                    strength = "medium"
                else:
                    strength = "weak"

                correlations.append(CorrelationAnalysis(
                    kpi1={"id": kpi1.id, "name": kpi1.label, "achieved": kpi1.metrics.achieved},
                    kpi2={"id": kpi2.id, "name": kpi2.label, "achieved": kpi2.metrics.achieved},
                    shared_design_params=shared_design,
                    shared_verifications=shared_verify,
                    correlation_strength=strength,
                    insight=self._correlation_insight(kpi1, kpi2, shared_design),
                ))

        logger.debug(f"[Analyzer] Found {len(correlations)} correlated KPI pairs")
        return sorted(correlations, key=lambda c: c.shared_design_params, reverse=True)

    @staticmethod
    def _correlation_insight(kpi1: Node, kpi2: Node, shared_design: int) -> str:
        if shared_design < 2:
            return "存在关联，建议综合考虑"

        achieved1, achieved2 = kpi1.metrics.achieved, kpi2.metrics.achieved
        if not achieved1 and not achieved2:
            return "共享多个设计参数，两个指标都未达成，建议优先优化共享参数"
        if achieved1 != achieved2:
            return "共享设计参数但达成情况不同，可能存在其他影响因素"
        return "共享设计参数且都已达成，设计方案有效"

    # ========================================
    # Gaps
    # ========================================

    def analyze_gaps(self) -> List[GapAnalysis]:
        """Model, verification and achievement gaps; a gap is reported only if something is missing."""
        gaps = [
            self._model_gap(),
            self._verification_gap(),
            self._achievement_gap(),
        ]
        return [gap for gap in gaps if gap is not None]

    def _model_gap(self) -> Optional[GapAnalysis]:
        kpis = self.kpis()
        with_model = [n for n in kpis if n.has_model]
        without_model = [n for n in kpis if not n.has_model]
        if not without_model:
            return None

        coverage = safe_rate(len(with_model), len(kpis))

        recommendations = []
        l1_missing = sum(1 for n in without_model if n.level == 1)
        l2_missing = sum(1 for n in without_model if n.level == 2)
        if l1_missing > 0:
            recommendations.append(f"优先为 {l1_missing} 个一级指标补充模型")
        if l2_missing > 0:
            recommendations.append(f"为 {l2_missing} 个二级指标补充模型")
        recommendations.append("建议选用适合的模型类型（SysML/Simulink/Modelica/FMU）")

        return GapAnalysis(
            category="模型覆盖",
            identified=[n.id for n in with_model],
            missing=[n.id for n in without_model],
            coverage_rate=coverage,
            priority=gap_priority(coverage),
            recommendations=recommendations,
        )

    def _verification_gap(self) -> Optional[GapAnalysis]:
        kpis = self.kpis()
        with_verify = [n.id for n in kpis if self.has_verification(n.id)]
        without_verify = [n.id for n in kpis if n.id not in with_verify]
        if not without_verify:
            return None

        coverage = safe_rate(len(with_verify), len(kpis))

        return GapAnalysis(
            category="验证覆盖",
            identified=with_verify,
            missing=without_verify,
            coverage_rate=coverage,
            priority=gap_priority(coverage),
            recommendations=[
                f"为 {len(without_verify)} 个指标补充验证环节",
                "建议结合仿真验证和测试验证",
                "优先验证未达成的指标",
            ],
        )

    def _achievement_gap(self) -> Optional[GapAnalysis]:
        kpis = self.kpis()
        achieved = [n for n in kpis if n.metrics.achieved]
        unachieved = [n for n in kpis if not n.metrics.achieved]
        if not unachieved:
            return None

        coverage = safe_rate(len(achieved), len(kpis))

        critical = sorted(
            unachieved,
            key=lambda n: len(self.trace_dependencies(n.id).nodes),
            reverse=True,
        )[:3]

        recommendations = [f"优先解决：{'、'.join(n.label for n in critical)}"]
        recommendations.append("检查并优化相关设计参数")
        recommendations.append("补充必要的模型和验证")

        return GapAnalysis(
            category="指标达成",
            identified=[n.id for n in achieved],
            missing=[n.id for n in unachieved],
            coverage_rate=coverage,
            priority=gap_priority(coverage),
            recommendations=recommendations,
        )

    # ========================================
    # Health and priority
    # ========================================

    def analyze_level_health(self) -> List[LevelHealth]:
        """
        Health score per KPI level.

        score = 0.5 * achievement + 0.3 * model coverage + 0.2 * verification
        coverage, graded A (>=90) / B (>=80) / C (>=70) / D (>=60) / F.
        Levels without KPIs are skipped.
        """
        results: List[LevelHealth] = []

        for level in LEVELS:
            kpis = self.kpis(level)
            total = len(kpis)
            if total == 0:
                continue

            achieved = sum(1 for n in kpis if n.metrics.achieved)
            with_model = sum(1 for n in kpis if n.has_model)
            with_verify = sum(1 for n in kpis if self.has_verification(n.id))

            achievement_rate = achieved / total * 100
            model_coverage = with_model / total * 100
            verification_coverage = with_verify / total * 100
            score = achievement_rate * 0.5 + model_coverage * 0.3 + verification_coverage * 0.2

            results.append(LevelHealth(
                level=level,
                total_kpis=total,
                achieved_kpis=achieved,
                achievement_rate=achievement_rate,
                with_model=with_model,
                model_coverage=model_coverage,
                with_verify=with_verify,
                verification_coverage=verification_coverage,
                health_score=score,
                grade=health_grade(score),
            ))

        return results

    def prioritize_nodes(self) -> List[PriorityItem]:
        """
        Additive attention score per KPI.

        +50 unachieved, +30 no model, +20 no verification, +10 level 1,
        + downstream closure size capped at 20.
        """
        priorities: List[PriorityItem] = []

        for kpi in self.kpis():
            score = 0
            reasons: List[str] = []

            if not kpi.metrics.achieved:
                score += 50
                reasons.append("指标未达成")

            if not kpi.has_model:
                score += 30
                reasons.append("缺少模型")

            if not self.has_verification(kpi.id):
                score += 20
                reasons.append("缺少验证")

            if kpi.level == 1:
                score += 10
                reasons.append("一级指标")

            impact = len(self.trace_dependencies(kpi.id).nodes)
            score += min(impact, 20)
            if impact > 5:
                reasons.append(f"影响{impact}个节点")

            if score > 0:
                priorities.append(PriorityItem(
                    node_id=kpi.id,
                    node_name=kpi.label,
                    category=kpi.category,
                    priority_score=score,
                    reasons=reasons,
                ))

        return sorted(priorities, key=lambda p: p.priority_score, reverse=True)
