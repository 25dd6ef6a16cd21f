"""
agent/nodes/planner_node.py

Planner node: turns the user query into an ActionPlan.

The model is asked first; any transport failure or unparseable reply falls
back to deterministic keyword rules. The competitor override is applied to
every plan regardless of which path produced it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from agent.state import AgentState
from analysis_tools.base import ToolName
from analysis_tools.registry import ToolRegistry
from app import failure_codes
from app.config import AgentSettings
from app.logging_utils import log_event
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import PlanningPromptBuilder
from llm_synthesis.retry import LLMRetryExhaustedError, generate_with_retry
from llm_synthesis.schema import ActionPlan, PlanStep
from llm_synthesis.validator import LLMOutputValidationError, validate_plan_output

logger = logging.getLogger(__name__)

FORCED_SEARCH_STEP_ID = "forced_web_search"

# ---------------------------------------------------------------------------
# Keyword rules
# ---------------------------------------------------------------------------

_WEB_SEARCH_HINTS = ("competitor", "competition", "market research", "pricing", "industry analysis")
_COMPETITOR_HINTS = ("competitor", "competition", "market", "pricing")
_SALES_HINTS = ("trend", "sales", "revenue")
_INVENTORY_HINTS = ("inventory", "stock", "restock")
_PRODUCT_ACTION_HINTS = ("analyze", "performance")


def _mentions(text: str, hints: Sequence[str]) -> bool:
    return any(hint in text for hint in hints)


def needs_competitor_search(query: str) -> bool:
    """True when the query must always include a live competitor search."""
    lowered = query.lower()
    return "competitor" in lowered or ("other" in lowered and "companies" in lowered)


def extract_competitor_search_term(query: str, settings: AgentSettings) -> str:
    lowered = query.lower()
    for keyword in settings.competitor_keywords:
        if keyword in lowered:
            return f"{keyword} companies India competitors market analysis"
    return settings.default_competitor_search


def extract_product_name(query: str, settings: AgentSettings) -> str:
    words = {word.strip(",.!?;:()\"'") for word in query.lower().split()}
    vocabulary = settings.product_vocabulary or ("yacht",)
    for product in vocabulary:
        if product in words:
            return product.capitalize()
    return vocabulary[0].capitalize()


def apply_competitor_override(plan: ActionPlan, query: str) -> ActionPlan:
    """
    Guarantee a competitor search step for competitor-style queries.

    Applying this twice yields the same plan as applying it once.
    """
    if not needs_competitor_search(query):
        return plan

    steps = list(plan.steps)
    if not plan.has_tool(ToolName.SEARCH_WEB_FOR_COMPETITOR_DATA.value):
        taken = {step.id for step in steps}
        step_id = FORCED_SEARCH_STEP_ID
        suffix = 1
        while step_id in taken:
            suffix += 1
            step_id = f"{FORCED_SEARCH_STEP_ID}_{suffix}"
        steps.insert(
            0,
            PlanStep(
                id=step_id,
                tool=ToolName.SEARCH_WEB_FOR_COMPETITOR_DATA.value,
                description="Search web for competitor information",
                params={"query": query},
            ),
        )
        log_event(logger, logging.INFO, "plan_forced_web_search", step_id=step_id)

    return plan.model_copy(update={"steps": steps, "requires_web_search": True})


def fallback_plan(query: str, settings: AgentSettings) -> ActionPlan:
    """Keyword-rule plan used whenever the model path fails."""
    lowered = query.lower()

    if _mentions(lowered, _COMPETITOR_HINTS) or (
        "other" in lowered and ("companies" in lowered or "brands" in lowered)
    ):
        return ActionPlan(
            intent="competitor_analysis",
            complexity="moderate",
            requires_web_search=True,
            steps=[
                PlanStep(
                    id="web_search",
                    tool=ToolName.SEARCH_WEB_FOR_COMPETITOR_DATA.value,
                    description="Search web for competitor information",
                    params={"query": extract_competitor_search_term(query, settings)},
                )
            ],
        )

    if _mentions(lowered, _SALES_HINTS):
        return ActionPlan(
            intent="sales_analysis",
            complexity="simple",
            steps=[
                PlanStep(
                    id="market_trends",
                    tool=ToolName.ANALYZE_MARKET_TRENDS.value,
                    description="Analyze sales trends and patterns",
                    params={"product_category": "all"},
                )
            ],
        )

    if _mentions(lowered, _INVENTORY_HINTS):
        return ActionPlan(
            intent="inventory_management",
            complexity="simple",
            steps=[
                PlanStep(
                    id="inventory_analysis",
                    tool=ToolName.GET_LOW_STOCK_ITEMS.value,
                    description="Identify items that need restocking",
                )
            ],
        )

    if "product" in lowered and _mentions(lowered, _PRODUCT_ACTION_HINTS):
        return ActionPlan(
            intent="product_analysis",
            complexity="moderate",
            steps=[
                PlanStep(
                    id="product_analysis",
                    tool=ToolName.GET_FULL_PRODUCT_ANALYSIS.value,
                    description="Analyze product performance",
                    params={"product_name": extract_product_name(query, settings)},
                )
            ],
        )

    return ActionPlan(
        intent="comprehensive_analysis",
        complexity="complex",
        requires_web_search=True,
        steps=[
            PlanStep(
                id="web_research",
                tool=ToolName.SEARCH_WEB_FOR_COMPETITOR_DATA.value,
                description="Research market and competitor information",
                params={"query": settings.comprehensive_search},
            ),
            PlanStep(
                id="inventory_check",
                tool=ToolName.GET_LOW_STOCK_ITEMS.value,
                description="Check inventory levels",
            ),
            PlanStep(
                id="market_analysis",
                tool=ToolName.ANALYZE_MARKET_TRENDS.value,
                description="Analyze market trends",
                params={"product_category": settings.comprehensive_category},
            ),
        ],
    )


class ActionPlanner:
    """Produces the ActionPlan for one query."""

    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter,
        registry: ToolRegistry,
        settings: AgentSettings,
        prompt_builder: PlanningPromptBuilder | None = None,
        max_format_retries: int = 1,
    ) -> None:
        self._adapter = adapter
        self._registry = registry
        self._settings = settings
        self._prompt_builder = prompt_builder or PlanningPromptBuilder()
        self._max_format_retries = max_format_retries

    def create_plan(
        self,
        query: str,
        business_context: Mapping[str, Any],
        recent_queries: Optional[list[dict[str, Any]]] = None,
    ) -> ActionPlan:
        plan = self._plan_with_model(query, business_context, recent_queries)
        if plan is None:
            plan = fallback_plan(query, self._settings)
            log_event(
                logger,
                logging.INFO,
                "plan_fallback_used",
                intent=plan.intent,
                steps=[step.id for step in plan.steps],
            )
        return apply_competitor_override(plan, query)

    def _plan_with_model(
        self,
        query: str,
        business_context: Mapping[str, Any],
        recent_queries: Optional[list[dict[str, Any]]],
    ) -> ActionPlan | None:
        prompt = self._prompt_builder.build_prompt(
            query=query,
            business_context=dict(business_context),
            tools=self._registry.describe(),
            recent_queries=recent_queries,
        )
        try:
            plan = generate_with_retry(
                self._adapter,
                prompt,
                validate_plan_output,
                max_retries=self._max_format_retries,
            )
        except (LLMOutputValidationError, LLMRetryExhaustedError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "plan_parse_failed",
                error=str(exc),
                failure_code=failure_codes.PLAN_PARSE_ERROR,
            )
            return None
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.WARNING,
                "plan_model_call_failed",
                error=str(exc),
                failure_code=failure_codes.EXTERNAL_CALL_FAILURE,
            )
            return None

        if _mentions(query.lower(), _WEB_SEARCH_HINTS) and not plan.requires_web_search:
            plan = plan.model_copy(update={"requires_web_search": True})
        return plan


def build_planner_node(planner: ActionPlanner) -> Callable[[AgentState], AgentState]:
    """
    LangGraph node factory: records the intent_analysis marker and writes
    ``state["plan"]``.
    """

    def planner_node(state: AgentState) -> AgentState:
        state["cancel_token"].raise_if_cancelled("intent_analysis")
        state["recorder"].record(
            "intent_analysis",
            "Understanding query intent and planning analysis approach",
            10,
        )
        plan = planner.create_plan(
            state["user_query"],
            state.get("business_context") or {},
            state.get("recent_queries"),
        )
        return {**state, "plan": plan}

    return planner_node
