"""
agent/graph.py

LangGraph workflow assembly for the business-intelligence agent.
"""

from __future__ import annotations

import logging

from langgraph.graph import END, START, StateGraph

from agent.nodes.chart_node import ChartDeriver, build_chart_node
from agent.nodes.planner_node import ActionPlanner, build_planner_node
from agent.nodes.synthesis_node import ResultSynthesizer, build_synthesis_node
from agent.nodes.tool_chain_node import ToolChainExecutor, build_tool_chain_node
from agent.state import AgentState

logger = logging.getLogger(__name__)


def build_graph(
    *,
    planner: ActionPlanner,
    executor: ToolChainExecutor,
    synthesizer: ResultSynthesizer,
    chart_deriver: ChartDeriver,
):
    """
    Build and compile the plan -> execute_tools -> synthesize -> visualize workflow.
    """
    graph = StateGraph(AgentState)

    graph.add_node("plan", build_planner_node(planner))
    graph.add_node("execute_tools", build_tool_chain_node(executor))
    graph.add_node("synthesize", build_synthesis_node(synthesizer))
    graph.add_node("visualize", build_chart_node(chart_deriver))

    graph.add_edge(START, "plan")
    graph.add_edge("plan", "execute_tools")
    graph.add_edge("execute_tools", "synthesize")
    graph.add_edge("synthesize", "visualize")
    graph.add_edge("visualize", END)

    logger.debug("Compiled agent graph with nodes plan, execute_tools, synthesize, visualize")
    return graph.compile()
