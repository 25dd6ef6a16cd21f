"""
analysis_tools/registry.py

Tool registry keyed by :class:`ToolName` and its default factory.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from analysis_tools.base import BaseTool, ToolName
from analysis_tools.competitor_search import CompetitorSearchTool, SearchBackend
from analysis_tools.inventory import LowStockItemsTool
from analysis_tools.market_trends import MarketTrendsTool
from analysis_tools.product_analysis import FullProductAnalysisTool
from app.config import (
    AgentSettings,
    WebSearchSettings,
    get_agent_settings,
    get_web_search_http_settings,
    get_web_search_settings,
)


class ToolRegistry:
    """
    Mapping of every :class:`ToolName` to exactly one tool implementation.
    """

    def __init__(self, tools: Iterable[BaseTool]) -> None:
        registered: dict[ToolName, BaseTool] = {}
        for tool in tools:
            if tool.name in registered:
                raise ValueError(f"Duplicate tool registration for '{tool.name.value}'.")
            registered[tool.name] = tool

        missing = [name.value for name in ToolName if name not in registered]
        if missing:
            raise ValueError(f"Tool registry is missing implementations for: {', '.join(missing)}.")
        self._tools = registered

    def get(self, name: str | ToolName) -> BaseTool | None:
        try:
            key = ToolName(name)
        except ValueError:
            return None
        return self._tools.get(key)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, (str, ToolName)) and self.get(name) is not None

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(self._tools[name] for name in ToolName)

    def names(self) -> list[str]:
        return [name.value for name in ToolName]

    def describe(self) -> list[dict[str, Any]]:
        """Tool catalogue used in planning prompts."""
        return [
            {"name": tool.name.value, "description": tool.description, "parameters": tool.parameters}
            for tool in self
        ]


def build_default_registry(
    *,
    search_backend: SearchBackend | None = None,
    agent_settings: AgentSettings | None = None,
    web_search_settings: WebSearchSettings | None = None,
) -> ToolRegistry:
    """
    Build the standard registry from settings.

    ``search_backend`` defaults to a :class:`WebSearchConnector` built from
    environment settings.
    """

    agent_settings = agent_settings or get_agent_settings()
    web_search_settings = web_search_settings or get_web_search_settings()
    if search_backend is None:
        from app.connectors.web_search_connector import WebSearchConnector  # noqa: PLC0415

        search_backend = WebSearchConnector(
            settings=web_search_settings,
            http_settings=get_web_search_http_settings(),
        )

    return ToolRegistry(
        [
            FullProductAnalysisTool(),
            LowStockItemsTool(
                default_min_alert=agent_settings.default_min_alert,
                sales_window_months=agent_settings.sales_window_months,
            ),
            CompetitorSearchTool(
                backend=search_backend,
                query_qualifier=web_search_settings.query_qualifier,
                domain_keywords=web_search_settings.domain_keywords,
                max_results=web_search_settings.max_results,
                max_sources=web_search_settings.max_sources,
            ),
            MarketTrendsTool(),
        ]
    )
