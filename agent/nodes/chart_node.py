"""
agent/nodes/chart_node.py

Visualization node: derives chart descriptors from successful tool results.

Matching is by step id substring and payload shape. Output depends only on
the tool results, so the same results always give the same charts.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from agent.state import AgentState
from analysis_tools.base import ToolResult
from llm_synthesis.schema import ChartDescriptor, ChartPoint

_MAX_COMPETITOR_BARS = 5
_NAME_LIMIT = 20
_DESCRIPTION_LIMIT = 50
UNRANKED = "unranked"

_PIE_FILLS = {"Critical": "#ef4444", "Low": "#f97316", "Adequate": "#22c55e"}


def competitor_chart(data: Mapping[str, Any]) -> ChartDescriptor | None:
    competitors = (data.get("competitor_analysis") or {}).get("competitors")
    if not isinstance(competitors, list):
        return None

    points = []
    for competitor in competitors[:_MAX_COMPETITOR_BARS]:
        position = competitor.get("position")
        point: dict[str, Any] = {
            "name": str(competitor.get("name") or "Unknown")[:_NAME_LIMIT],
            "value": position,
            "description": str(competitor.get("description") or "")[:_DESCRIPTION_LIMIT],
        }
        if position is None:
            point["rank"] = UNRANKED
        points.append(ChartPoint(**point))
    return ChartDescriptor(type="bar", title="Competitor Landscape", data=points)


def market_trend_chart(data: Mapping[str, Any]) -> ChartDescriptor | None:
    trends = data.get("monthly_trends")
    if not isinstance(trends, list):
        return None
    return ChartDescriptor(
        type="line",
        title="Market Trend Analysis",
        data=[
            ChartPoint(name=str(trend["month"]), value=trend["revenue"], orders=trend["orders"])
            for trend in trends
        ],
    )


def inventory_chart(data: Mapping[str, Any], capacity: int) -> ChartDescriptor | None:
    low_stock = data.get("low_stock_items")
    if not isinstance(low_stock, list):
        return None

    critical = len(data.get("critical_items") or [])
    counts = {
        "Critical": critical,
        "Low": len(low_stock) - critical,
        "Adequate": max(0, capacity - len(low_stock)),
    }
    return ChartDescriptor(
        type="pie",
        title="Inventory Status Distribution",
        data=[
            ChartPoint(name=name, value=value, fill=_PIE_FILLS[name])
            for name, value in counts.items()
        ],
    )


class ChartDeriver:
    """Stateless pass over tool results; charts accumulate in step order."""

    def __init__(self, inventory_capacity: int = 20) -> None:
        self._inventory_capacity = inventory_capacity

    def derive(self, tool_results: Mapping[str, ToolResult]) -> list[ChartDescriptor]:
        charts: list[ChartDescriptor] = []
        for step_id, result in tool_results.items():
            if not result.success or not isinstance(result.data, Mapping):
                continue

            candidates = []
            if "competitor" in step_id or "search" in step_id:
                candidates.append(competitor_chart(result.data))
            if "market" in step_id:
                candidates.append(market_trend_chart(result.data))
            if "inventory" in step_id:
                candidates.append(inventory_chart(result.data, self._inventory_capacity))

            charts.extend(chart for chart in candidates if chart is not None)
        return charts


def build_chart_node(deriver: ChartDeriver) -> Callable[[AgentState], AgentState]:
    """LangGraph node factory: records the visualization marker and writes ``state["charts"]``."""

    def chart_node(state: AgentState) -> AgentState:
        state["cancel_token"].raise_if_cancelled("visualization")
        state["recorder"].record(
            "visualization",
            "Generating charts and visualizations",
            90,
        )
        return {**state, "charts": deriver.derive(state.get("tool_results") or {})}

    return chart_node
