"""
Traceability graph data model.

The graph is made of typed nodes (goal / kpi / design / verify) linked by
typed, directed edges (satisfy / implement / verify). Nodes form a tagged
union keyed by ``category``: only the KPI variant carries ``level``,
``parent_id`` and ``metrics``.
"""
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class NodeCategory(str, Enum):
    """Node categories of the traceability graph."""
    GOAL = "goal"        # Top-level objective
    KPI = "kpi"          # Key performance indicator (level 1 or 2)
    DESIGN = "design"    # Design parameter / decision
    VERIFY = "verify"    # Simulation / test activity


class Relationship(str, Enum):
    """
    Edge relationship types.

    goal->kpi and kpi->kpi are ``satisfy``, kpi->design is ``implement``,
    design->verify and the verify->kpi feedback edge are ``verify``.
    """
    SATISFY = "satisfy"
    IMPLEMENT = "implement"
    VERIFY = "verify"


class ModelType(str, Enum):
    """Modeling artifact types that can back a KPI."""
    SYSML = "sysml"
    SIMULINK = "simulink"
    MODELICA = "modelica"
    FMU = "fmu"


_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    use_enum_values=True,
    protected_namespaces=(),
    extra="ignore",
)


class KPIMetrics(BaseModel):
    """
    Achievement and modeling status of a KPI.

    ``achieved`` is authored independently of ``achievement_rate``; the
    sample data contains unachieved KPIs at 95%.
    """
    model_config = _MODEL_CONFIG

    achieved: bool = False
    achievement_rate: float = Field(default=0, ge=0, le=100)
    model_type: Optional[ModelType] = None
    model_covered: bool = False


class BaseNode(BaseModel):
    """Fields shared by every node variant."""
    model_config = _MODEL_CONFIG

    id: str = Field(..., min_length=1)
    label: str = ""
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, values):
        if isinstance(values, dict) and not values.get("label"):
            values = {**values, "label": values.get("id", "")}
        return values


class GoalNode(BaseNode):
    category: Literal["goal"] = "goal"


class KPINode(BaseNode):
    category: Literal["kpi"] = "kpi"
    level: Optional[int] = Field(default=None, ge=1, le=2)
    parent_id: Optional[str] = None
    metrics: KPIMetrics = Field(default_factory=KPIMetrics)

    @property
    def has_model(self) -> bool:
        return bool(self.metrics.model_type)


class DesignNode(BaseNode):
    category: Literal["design"] = "design"


class VerifyNode(BaseNode):
    category: Literal["verify"] = "verify"


Node = Annotated[
    Union[GoalNode, KPINode, DesignNode, VerifyNode],
    Field(discriminator="category"),
]


class Edge(BaseModel):
    """A directed relationship between two node IDs (endpoints are not validated)."""
    model_config = _MODEL_CONFIG

    id: str = Field(..., min_length=1)
    source: str
    target: str
    relationship: Relationship


def is_kpi(node) -> bool:
    """True for KPI nodes (the only variant carrying metrics)."""
    return node is not None and node.category == NodeCategory.KPI


__all__ = [
    "NodeCategory",
    "Relationship",
    "ModelType",
    "KPIMetrics",
    "BaseNode",
    "GoalNode",
    "KPINode",
    "DesignNode",
    "VerifyNode",
    "Node",
    "Edge",
    "is_kpi",
]
