from .traversal import ChainResult, trace_chain, trace_impact, trace_dependencies
from .analyzer import (
    Analyzer,
    ComparisonResult,
    CorrelationAnalysis,
    DependencyAnalysis,
    GapAnalysis,
    LevelHealth,
    PriorityItem,
    RiskAssessment,
    AchievementStats,
    ModelCoverageStats,
    gap_priority,
    health_grade,
)

__all__ = [
    "ChainResult",
    "trace_chain",
    "trace_impact",
    "trace_dependencies",
    "Analyzer",
    "ComparisonResult",
    "CorrelationAnalysis",
    "DependencyAnalysis",
    "GapAnalysis",
    "LevelHealth",
    "PriorityItem",
    "RiskAssessment",
    "AchievementStats",
    "ModelCoverageStats",
    "gap_priority",
    "health_grade",
]
