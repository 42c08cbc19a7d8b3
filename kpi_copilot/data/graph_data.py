"""
Sample traceability graph: foldable steering wheel.

One goal, six level-1 KPIs each split into two level-2 KPIs, fifteen design
parameters and six verification activities. Verification results feed back
into the KPIs they validate (verify -> kpi edges), so the graph has cycles.
"""
from typing import Any, Dict, List, Optional, Tuple

from kpi_copilot.data.loader import load_graph, load_graph_file


def _kpi(node_id, description, level, achieved, model_type, rate, parent_id=None):
    node = {
        "id": node_id,
        "label": node_id,
        "description": description,
        "category": "kpi",
        "level": level,
        "metrics": {
            "achieved": achieved,
            "model_type": model_type,
            "model_covered": model_type is not None,
            "achievement_rate": rate,
        },
    }
    if parent_id:
        node["parent_id"] = parent_id
    return node


def _plain(node_id, description, category):
    return {"id": node_id, "label": node_id, "description": description, "category": category}


GOALS = [
    {
        "id": "G1",
        "label": "G1 方向盘折叠体验与安全优化",
        "description": "方向盘折叠体验与安全优化",
        "category": "goal",
    },
]

LEVEL1_KPIS = [
    _kpi("KPI_FoldTime", "折叠时间 ≤ 1.5 s", 1, True, "simulink", 100),
    _kpi("KPI_FoldAngle", "折叠角度范围 0–120°", 1, True, "sysml", 100),
    _kpi("KPI_SpaceGain", "乘员空间提升 ≥ X mm", 1, False, None, 85),
    _kpi("KPI_LockSafe", "锁止安全性", 1, True, None, 100),
    _kpi("KPI_NVH", "NVH性能", 1, False, None, 70),
    _kpi("KPI_Life", "折叠寿命 ≥ 10 万次", 1, False, "fmu", 95),
]

LEVEL2_KPIS = [
    _kpi("KPI_FoldTime_Start", "折叠启动响应时间 ≤ 0.2s", 2, True, "simulink", 100, "KPI_FoldTime"),
    _kpi("KPI_FoldTime_Complete", "折叠完成时间 ≤ 1.3s", 2, True, "simulink", 100, "KPI_FoldTime"),
    _kpi("KPI_FoldAngle_Max", "最大折叠角度 ≥ 120°", 2, True, "sysml", 100, "KPI_FoldAngle"),
    _kpi("KPI_FoldAngle_Precision", "角度控制精度 ± 2°", 2, True, "simulink", 100, "KPI_FoldAngle"),
    _kpi("KPI_SpaceGain_Vertical", "垂直空间增益 ≥ 150mm", 2, False, "modelica", 80, "KPI_SpaceGain"),
    _kpi("KPI_SpaceGain_Access", "进出便利性提升 ≥ 20%", 2, True, None, 90, "KPI_SpaceGain"),
    _kpi("KPI_LockSafe_Strength", "锁止强度 ≥ 2000N", 2, True, "fmu", 100, "KPI_LockSafe"),
    _kpi("KPI_LockSafe_Precision", "锁止位置精度 ± 0.5mm", 2, True, "sysml", 100, "KPI_LockSafe"),
    _kpi("KPI_NVH_Noise", "折叠噪声 ≤ 45 dB", 2, False, None, 75, "KPI_NVH"),
    _kpi("KPI_NVH_Vibration", "振动加速度 ≤ 2.0 m/s²", 2, False, "modelica", 65, "KPI_NVH"),
    _kpi("KPI_Life_Cycle", "循环寿命 ≥ 100,000 次", 2, True, "fmu", 100, "KPI_Life"),
    _kpi("KPI_Life_Degradation", "性能衰减率 ≤ 10%", 2, False, None, 85, "KPI_Life"),
]

DESIGN_PARAMS = [
    # Structure and mechanism
    _plain("D_HingeRange", "折叠铰链角度行程", "design"),
    _plain("D_HingeStrength", "铰链强度 / 安全系数", "design"),
    _plain("D_LockStructure", "锁止机构形式与锁爪布局", "design"),
    _plain("D_ColumnLayout", "转向柱与内饰空间布置", "design"),
    _plain("D_Clearance", "结构间隙 / 配合公差", "design"),
    # Actuation and control
    _plain("D_MotorTorque", "电机额定 / 峰值扭矩", "design"),
    _plain("D_GearRatio", "传动比与效率", "design"),
    _plain("D_ControlAlgo", "折叠控制算法\n（速度曲线 / PID / 前馈）", "design"),
    _plain("D_SensorRedund", "位置传感器冗余\n霍尔 / 编码器", "design"),
    _plain("D_SafetyLogic", "功能安全与车速联动逻辑", "design"),
    # Materials and NVH
    _plain("D_FrictionPair", "摩擦副材料\n(POM/PA66+GF/PTFE)", "design"),
    _plain("D_Damping", "阻尼件 / 垫片布置", "design"),
    _plain("D_MaterialMain", "主体结构材料\n(钢/铝/复材)", "design"),
    # Manufacturing and quality
    _plain("D_AssyTolerance", "装配公差方案", "design"),
    _plain("D_CPK", "关键尺寸 CPK ≥ 1.67", "design"),
]

VERIFICATIONS = [
    _plain("V_FoldCycle", "折叠耐久试验\n(循环次数、失效模式)", "verify"),
    _plain("V_StructFEA", "结构强度 / 刚度 FEA\n(含碰撞工况)", "verify"),
    _plain("V_NVHTest", "折叠过程噪声 / 振动试验", "verify"),
    _plain("V_HIL_SIL", "电控 HIL/SIL 仿真\n(失效注入 / 超时)", "verify"),
    _plain("V_EnvReliab", "高低温 / 湿热 / 盐雾试验", "verify"),
    _plain("V_RegulCert", "法规与功能安全认证\n(GB/UN ECE/ISO 26262)", "verify"),
]

# (source, target) pairs grouped by relationship
SATISFY_LINKS = [
    ("G1", "KPI_FoldTime"),
    ("G1", "KPI_FoldAngle"),
    ("G1", "KPI_SpaceGain"),
    ("G1", "KPI_LockSafe"),
    ("G1", "KPI_NVH"),
    ("G1", "KPI_Life"),
] + [(kpi["parent_id"], kpi["id"]) for kpi in LEVEL2_KPIS]

IMPLEMENT_LINKS = [
    ("KPI_FoldTime_Start", "D_ControlAlgo"),
    ("KPI_FoldTime_Complete", "D_MotorTorque"),
    ("KPI_FoldTime_Complete", "D_GearRatio"),
    ("KPI_FoldTime_Complete", "D_Damping"),
    ("KPI_FoldTime_Complete", "D_Clearance"),
    ("KPI_FoldAngle_Max", "D_HingeRange"),
    ("KPI_FoldAngle_Max", "D_ColumnLayout"),
    ("KPI_FoldAngle_Precision", "D_SensorRedund"),
    ("KPI_FoldAngle_Precision", "D_ControlAlgo"),
    ("KPI_SpaceGain_Vertical", "D_ColumnLayout"),
    ("KPI_SpaceGain_Vertical", "D_HingeRange"),
    ("KPI_LockSafe_Strength", "D_LockStructure"),
    ("KPI_LockSafe_Strength", "D_HingeStrength"),
    ("KPI_LockSafe_Strength", "D_MaterialMain"),
    ("KPI_LockSafe_Precision", "D_SensorRedund"),
    ("KPI_LockSafe_Precision", "D_SafetyLogic"),
    ("KPI_NVH_Noise", "D_FrictionPair"),
    ("KPI_NVH_Noise", "D_Damping"),
    ("KPI_NVH_Vibration", "D_GearRatio"),
    ("KPI_NVH_Vibration", "D_Clearance"),
    ("KPI_NVH_Vibration", "D_AssyTolerance"),
    ("KPI_Life_Cycle", "D_HingeStrength"),
    ("KPI_Life_Cycle", "D_FrictionPair"),
    ("KPI_Life_Cycle", "D_MotorTorque"),
    ("KPI_Life_Degradation", "D_MaterialMain"),
]

VERIFY_LINKS = [
    ("D_HingeStrength", "V_StructFEA"),
    ("D_MaterialMain", "V_StructFEA"),
    ("D_LockStructure", "V_StructFEA"),
    ("D_HingeRange", "V_StructFEA"),
    ("D_MotorTorque", "V_FoldCycle"),
    ("D_GearRatio", "V_FoldCycle"),
    ("D_ControlAlgo", "V_HIL_SIL"),
    ("D_SensorRedund", "V_HIL_SIL"),
    ("D_SafetyLogic", "V_HIL_SIL"),
    ("D_FrictionPair", "V_NVHTest"),
    ("D_Damping", "V_NVHTest"),
    ("D_Clearance", "V_NVHTest"),
    ("D_AssyTolerance", "V_NVHTest"),
    ("D_MaterialMain", "V_EnvReliab"),
    ("D_FrictionPair", "V_EnvReliab"),
    ("D_SensorRedund", "V_EnvReliab"),
    ("D_AssyTolerance", "V_FoldCycle"),
    ("D_CPK", "V_FoldCycle"),
    # Feedback loop: verification results validate KPIs
    ("V_FoldCycle", "KPI_Life_Cycle"),
    ("V_StructFEA", "KPI_LockSafe_Strength"),
    ("V_NVHTest", "KPI_NVH_Noise"),
    ("V_NVHTest", "KPI_NVH_Vibration"),
    ("V_HIL_SIL", "KPI_FoldTime_Start"),
    ("V_HIL_SIL", "KPI_LockSafe_Precision"),
    ("V_EnvReliab", "KPI_Life_Degradation"),
    ("V_RegulCert", "KPI_LockSafe"),
]


def _links(pairs, relationship) -> List[Dict[str, Any]]:
    return [
        {"id": f"e-{source}-{target}", "source": source, "target": target, "relationship": relationship}
        for source, target in pairs
    ]


GRAPH_DATA: Dict[str, List[Dict[str, Any]]] = {
    "nodes": GOALS + LEVEL1_KPIS + LEVEL2_KPIS + DESIGN_PARAMS + VERIFICATIONS,
    "edges": (
        _links(SATISFY_LINKS, "satisfy")
        + _links(IMPLEMENT_LINKS, "implement")
        + _links(VERIFY_LINKS, "verify")
    ),
}


def load_sample_graph() -> Tuple[list, list]:
    """Return freshly validated (nodes, edges) for the sample dataset."""
    return load_graph(GRAPH_DATA)


def load_default_graph(graph_file: Optional[str] = None) -> Tuple[list, list]:
    """Load ``graph_file`` when given, otherwise the sample dataset."""
    if graph_file:
        return load_graph_file(graph_file)
    return load_sample_graph()
