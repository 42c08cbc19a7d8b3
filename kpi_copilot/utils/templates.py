"""
Response templates and formatting helpers.

Content uses lightweight inline markup (``**bold**``, emoji, line breaks)
that the host panel renders as rich text.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union


Number = Union[int, float]


class ResponseTemplates:
    """Fixed texts of the copilot responses."""

    # ==================== HELP ====================
    HELP = (
        "🤔 抱歉，我还不太理解这个问题。\n\n"
        "**你可以尝试：**\n\n"
        "📊 **统计查询**\n"
        "- \"统计指标达成情况\"\n"
        "- \"模型覆盖率统计\"\n\n"
        "🔍 **节点查询**\n"
        "- \"显示所有未达成的指标\"\n"
        "- \"显示没有模型的一级指标\"\n\n"
        "🔗 **链路追踪**\n"
        "- \"KPI_SpaceGain 的链路\"\n"
        "- \"D_MotorTorque 的影响分析\"\n\n"
        "💡 **问题诊断**\n"
        "- \"识别瓶颈\"\n"
        "- \"哪些指标缺少验证\"\n\n"
        "或者使用下面的快捷命令！"
    )

    # ==================== CLARIFICATION ====================
    ASK_TRACE_NODE = "🤔 请指定要追踪的节点ID，例如：\"KPI_FoldTime 的链路\""
    ASK_IMPACT_NODE = "🤔 请指定要分析的节点，例如：\"D_MotorTorque 的影响分析\""
    ASK_COMPARE_NODES = "🤔 请指定要比较的两个节点ID，例如：\"比较 KPI_SpaceGain 和 KPI_FoldTime\""

    # ==================== NOT FOUND / UNSUPPORTED ====================
    NODE_NOT_FOUND = "❌ 未找到节点：{node_id}"
    COMPARE_NOT_KPI = "❌ 无法比较这两个节点，请确保都是KPI节点。"
    SUGGEST_KPI_ONLY = "ℹ️ 暂时只支持为 KPI 节点提供建议。"

    # ==================== EMPTY RESULTS ====================
    EMPTY_UNACHIEVED = "🎉 太棒了！所有指标都已达成！"
    EMPTY_NO_MODEL = "✅ 所有指标都有模型覆盖！"
    EMPTY_GENERIC = "未找到符合条件的节点。"
    NO_BOTTLENECK = "✅ 太棒了！所有指标都已达成，没有发现瓶颈问题。"
    ALL_VERIFIED = "✅ 所有指标都有对应的验证环节！"
    NO_ISSUES = "🎉 恭喜！系统状态良好，未发现明显问题。"
    NO_CORRELATION = "✅ 未发现指标之间的明显关联。"
    NO_PRIORITY = "✅ 太棒了！所有指标都已达成，无需优先处理。"

    # ==================== GENERAL SUGGESTIONS ====================
    SUGGEST_MENU = (
        "💡 **优化建议**\n\n"
        "我可以为你提供以下建议：\n\n"
        "1. **指标优化**：告诉我具体的指标ID（如 KPI_SpaceGain）\n"
        "2. **系统优化**：使用 \"识别瓶颈\" 找出优先事项\n"
        "3. **覆盖率提升**：使用 \"哪些指标缺少验证\"\n\n"
        "你想了解哪方面的建议？"
    )

    DIAGNOSIS_TIPS = (
        "💡 **建议**：\n"
        "- 使用 \"显示未达成指标\" 查看详情\n"
        "- 使用 \"识别瓶颈\" 找出优先事项\n"
        "- 使用 \"哪些指标缺少验证\" 补全缺口"
    )


CATEGORY_ICONS = {"goal": "🎯", "kpi": "📊", "design": "🔧", "verify": "✓"}
CATEGORY_NAMES = {"goal": "目标", "kpi": "指标", "design": "设计参数", "verify": "验证"}
GRADE_EMOJI = {"A": "🏆", "B": "🥈", "C": "🥉", "D": "⚠️", "F": "🚨"}
PRIORITY_EMOJI = {"high": "🚨", "medium": "⚠️", "low": "ℹ️"}
RISK_EMOJI = {"high": "🚨", "medium": "⚠️", "low": "✅"}


def category_icon(category: str) -> str:
    return CATEGORY_ICONS.get(category, "•")


def category_name(category: str) -> str:
    return CATEGORY_NAMES.get(category, category)


def format_rate(value: Number, places: int = 1) -> str:
    """Fixed-point formatting with round-half-up (``66.666`` -> ``"66.7"``)."""
    exponent = Decimal(1).scaleb(-places)
    return str(Decimal(repr(float(value))).quantize(exponent, rounding=ROUND_HALF_UP))


def format_number(value: Number) -> str:
    """Print whole numbers without a decimal part (``85.0`` -> ``"85"``)."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_signed(value: Number) -> str:
    return f"+{format_number(value)}" if value > 0 else format_number(value)


def percentage(count: int, total: int) -> str:
    """Share of ``count`` in ``total`` as a whole percent."""
    if total == 0:
        return "0%"
    return f"{format_rate(count / total * 100, 0)}%"


def safe_rate(count: int, total: int) -> float:
    """Percentage that is 0 for an empty population."""
    return count / total * 100 if total else 0.0
