"""
agent/nodes/synthesis_node.py

Synthesis node: turns tool results into insights, analysis and
recommendations.

The model reply is strictly decoded. Any model or decode failure produces
a deterministic templated synthesis marked ``degraded``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from agent.state import AgentState
from analysis_tools.base import ToolResult
from app import failure_codes
from app.logging_utils import log_event
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import SynthesisPromptBuilder
from llm_synthesis.retry import LLMRetryExhaustedError, generate_with_retry
from llm_synthesis.schema import SynthesisOutput
from llm_synthesis.validator import LLMOutputValidationError, validate_synthesis_output

logger = logging.getLogger(__name__)

_SEARCH_STEP_MARKERS = ("search", "competitor")


@dataclass(frozen=True)
class Synthesis:
    output: SynthesisOutput
    degraded: bool = False


def extract_web_search_results(tool_results: Mapping[str, ToolResult]) -> Optional[dict[str, Any]]:
    """
    Web search payload for the synthesis prompt.

    Only the first step whose id mentions search or competitor is used. A
    failed search contributes its fallback benchmarks flagged as fallback.
    """
    for step_id, result in tool_results.items():
        if not any(marker in step_id for marker in _SEARCH_STEP_MARKERS):
            continue
        if result.success:
            return result.data if isinstance(result.data, dict) else None
        if isinstance(result.data, dict) and result.data.get("fallback_data"):
            return {
                "fallback": True,
                "error": result.data.get("error"),
                "competitor_analysis": result.data["fallback_data"],
            }
        return None
    return None


def _average_rating(business_context: Mapping[str, Any]) -> Optional[float]:
    raw = business_context.get("averageRating", business_context.get("average_rating"))
    try:
        return float(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def fallback_synthesis(
    tool_results: Mapping[str, ToolResult],
    query: str,
    web_search_results: Optional[dict[str, Any]],
    business_context: Mapping[str, Any],
) -> SynthesisOutput:
    """Templated answer built only from the tool results and context."""
    successful = [result for result in tool_results.values() if result.success]
    data_points = sum(result.data_points for result in successful)
    live_search = web_search_results is not None and not web_search_results.get("fallback")

    competitor_section = ""
    if web_search_results:
        analysis = web_search_results.get("competitor_analysis") or {}
        competitors = analysis.get("competitors") or []
        if competitors:
            heading = (
                f"Live web search identified {len(competitors)} key competitors in the Indian marine industry:"
                if live_search
                else f"Live search was unavailable; {len(competitors)} benchmark competitors from industry knowledge:"
            )
            lines = "\n".join(
                f"- **{item.get('name', 'Unknown')}**: {item.get('description') or item.get('pricing') or ''}"
                for item in competitors
            )
            competitor_section = f"\n\n### Competitive Intelligence\n{heading}\n{lines}"

    insights = (
        f"Executed business analysis using {len(successful)} analytical tools"
        f"{' including live web search' if live_search else ''}, processing "
        f"{data_points} data points to uncover actionable insights."
    )
    analysis_text = (
        "## Agent Analysis Report\n\n"
        f'I performed a multi-tool analysis to answer your query: "{query}"\n\n'
        "### Analysis Execution\n"
        f"- **Tools Deployed**: {', '.join(tool_results) or 'none'}\n"
        f"- **Data Points Processed**: {data_points:,}\n"
        f"- **Web Search Integration**: {'Active' if live_search else 'Limited'}\n"
        f"- **Analysis Depth**: Multi-tool cross-correlation{competitor_section}\n\n"
        "### Key Findings\n"
        "The narrative model was unavailable, so this summary is generated directly "
        "from the tool outputs listed above."
    )

    rating = _average_rating(business_context)
    if rating is not None and rating > 0:
        rating_recommendation = (
            f"Leverage the customer satisfaction score ({rating:.1f}/5) in targeted "
            "marketing campaigns to differentiate from competitors"
        )
    else:
        rating_recommendation = (
            "Collect more customer reviews to build a reliable satisfaction baseline "
            "before the next campaign"
        )

    return SynthesisOutput(
        insights=insights,
        analysis=analysis_text,
        recommendations=[
            "Implement real-time competitive monitoring to track market changes and competitor pricing strategies",
            rating_recommendation,
            "Optimize inventory management for high-demand products to prevent stock-outs during peak sales periods",
            "Develop region-specific marketing strategies based on Indian market preferences and cultural factors",
            "Establish strategic partnerships with local suppliers to improve cost competitiveness against regional players",
        ],
    )


class ResultSynthesizer:
    """Synthesizes the final narrative from tool results."""

    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter,
        prompt_builder: SynthesisPromptBuilder | None = None,
        max_format_retries: int = 1,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or SynthesisPromptBuilder()
        self._max_format_retries = max_format_retries

    def synthesize(
        self,
        tool_results: Mapping[str, ToolResult],
        query: str,
        business_context: Mapping[str, Any],
    ) -> Synthesis:
        web_search_results = extract_web_search_results(tool_results)
        prompt = self._prompt_builder.build_prompt(
            query=query,
            tool_results={
                step_id: result.data for step_id, result in tool_results.items() if result.success
            },
            web_search_results=web_search_results,
            business_context=dict(business_context),
        )

        try:
            output = generate_with_retry(
                self._adapter,
                prompt,
                validate_synthesis_output,
                max_retries=self._max_format_retries,
            )
            return Synthesis(output=output)
        except (LLMOutputValidationError, LLMRetryExhaustedError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "synthesis_parse_failed",
                error=str(exc),
                failure_code=failure_codes.SYNTHESIS_PARSE_ERROR,
            )
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.WARNING,
                "synthesis_model_call_failed",
                error=str(exc),
                failure_code=failure_codes.EXTERNAL_CALL_FAILURE,
            )

        return Synthesis(
            output=fallback_synthesis(tool_results, query, web_search_results, business_context),
            degraded=True,
        )


def build_synthesis_node(synthesizer: ResultSynthesizer) -> Callable[[AgentState], AgentState]:
    """LangGraph node factory: records the synthesis marker and writes ``state["synthesis"]``."""

    def synthesis_node(state: AgentState) -> AgentState:
        state["cancel_token"].raise_if_cancelled("synthesis")
        state["recorder"].record(
            "synthesis",
            "Synthesizing insights from multiple data sources including web research",
            70,
        )
        synthesis = synthesizer.synthesize(
            state.get("tool_results") or {},
            state["user_query"],
            state.get("business_context") or {},
        )
        return {**state, "synthesis": synthesis}

    return synthesis_node
