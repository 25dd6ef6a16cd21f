"""Structured prompt builders for action planning and result synthesis."""

import json
from typing import Any, Dict, List, Optional

PLANNING_TASK_MARKER = "# TASK: ACTION PLANNING"
SYNTHESIS_TASK_MARKER = "# TASK: RESULT SYNTHESIS"

_PLAN_EXAMPLE = json.dumps(
    {
        "intent": "inventory_management",
        "complexity": "moderate",
        "requiresWebSearch": False,
        "steps": [
            {
                "id": "inventory_analysis",
                "tool": "getLowStockItems",
                "description": "Find products below their stock alert level",
                "params": {},
            },
            {
                "id": "market_trends",
                "tool": "analyzeMarketTrends",
                "description": "Check demand trends for affected categories",
                "params": {"productCategory": "all"},
                "dependsOn": ["inventory_analysis"],
            },
        ],
    },
    indent=2,
)

_SYNTHESIS_EXAMPLE = json.dumps(
    {
        "insights": "One powerful sentence summarizing the most critical business insight.",
        "analysis": "Detailed markdown analysis citing specific figures from the tool results.",
        "recommendations": [
            "Specific, actionable recommendation based on competitor analysis",
            "Data-driven recommendation incorporating web search insights",
            "Recommendation combining internal data with market intelligence",
            "Strategic recommendation based on the competitive landscape",
            "Growth-oriented recommendation using market research findings",
        ],
    },
    indent=2,
)

_PLANNING_INSTRUCTIONS = """\
You are a business intelligence planning agent with web search capabilities.
Analyze the user query and create an execution plan over the available tools.

Determine:
1. The primary intent: one of sales_analysis, inventory_management,
   sentiment_analysis, competitor_analysis, market_research,
   product_analysis, comprehensive_analysis.
2. The complexity level: simple, moderate or complex.
3. Whether web search is needed (true if the query mentions competitors,
   market research, pricing comparison, or industry analysis).
4. Which tools to use and in what order. Use only the tool names listed
   below, give every step a unique id, and list prior step ids in
   dependsOn when a step needs another step's output.

Respond with ONLY a JSON object. Do NOT include any text outside it.
"""

_SYNTHESIS_INSTRUCTIONS = """\
You are an expert business intelligence agent with access to live web
search data. You have executed analytical tools, including web searches
for competitor intelligence.

STRICT RULES:
- Use ONLY the data provided below; quote specific figures from it.
- If web search data is present, feature competitor names, pricing ranges
  and market trends from it. If it is marked as fallback, say the live
  search was unavailable.
- Use Indian Rupee (₹) formatting and consider Indian market dynamics.
- "insights" is one sentence; "analysis" is markdown; give five recommendations.
- Return strictly valid JSON with exactly the keys shown in the example.
- Do NOT include any text outside the JSON object.
"""

_SECTION_TEMPLATE = """\
## {title}
```json
{data}
```
"""


def _format_sections(**data: Any) -> str:
    """Format each value as a labeled JSON section.

    Args:
        **data: Named values to include in the prompt.

    Returns:
        Concatenated formatted sections.
    """
    parts = []
    for key, value in data.items():
        title = key.replace("_", " ").title()
        body = json.dumps(value, indent=2, default=str, ensure_ascii=False)
        parts.append(_SECTION_TEMPLATE.format(title=title, data=body))
    return "\n".join(parts)


class PlanningPromptBuilder:
    """Builds the action-planning prompt."""

    def build_prompt(
        self,
        query: str,
        business_context: Dict[str, Any],
        tools: List[Dict[str, Any]],
        recent_queries: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        """Build the planning prompt.

        Args:
            query: Raw user question.
            business_context: Business summary scalars.
            tools: Tool catalogue (name, description, parameters schema).
            recent_queries: Earlier queries and their intents in this conversation.

        Returns:
            A fully formatted prompt string ready for LLM consumption.
        """
        sections = _format_sections(
            business_context=business_context,
            available_tools=tools,
            recent_conversation=recent_queries or [],
        )
        tool_names = ", ".join(tool["name"] for tool in tools)

        return (
            f"{_PLANNING_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{sections}\n"
            f"Available Tools: {tool_names}\n\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_PLAN_EXAMPLE}\n```\n\n"
            f"{PLANNING_TASK_MARKER}\n\n"
            f'User Query: "{query}"\n'
        )


class SynthesisPromptBuilder:
    """Builds the result-synthesis prompt."""

    def build_prompt(
        self,
        query: str,
        tool_results: Dict[str, Any],
        web_search_results: Optional[Dict[str, Any]],
        business_context: Dict[str, Any],
    ) -> str:
        """Build the synthesis prompt.

        Args:
            query: Raw user question.
            tool_results: Step id -> data of each successful tool result.
            web_search_results: Web search payload, or None when no search ran.
            business_context: Business summary scalars.

        Returns:
            A fully formatted prompt string ready for LLM consumption.
        """
        sections = _format_sections(
            tool_execution_results=tool_results,
            web_search_results=web_search_results,
            business_context=business_context,
        )

        return (
            f"{_SYNTHESIS_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{sections}\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_SYNTHESIS_EXAMPLE}\n```\n\n"
            f"{SYNTHESIS_TASK_MARKER}\n\n"
            f'Original Query: "{query}"\n'
        )
