"""
agent/state.py

LangGraph agent state schema for one business-intelligence query.
"""

from typing import Any, Optional
from typing_extensions import TypedDict

from agent.progress import CancellationToken, StepRecorder
from analysis_tools.base import ToolResult
from analysis_tools.dataset import BusinessDataset
from llm_synthesis.schema import ActionPlan, ChartDescriptor


class AgentState(TypedDict, total=False):
    """Shared state passed between all nodes in the LangGraph agent graph."""

    user_query: str
    business_context: dict[str, Any]
    recent_queries: list[dict[str, Any]]

    dataset: Optional[BusinessDataset]
    recorder: StepRecorder
    cancel_token: CancellationToken

    plan: Optional[ActionPlan]
    tool_results: Optional[dict[str, ToolResult]]
    synthesis: Optional[Any]
    charts: Optional[list[ChartDescriptor]]
