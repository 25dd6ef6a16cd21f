"""
tests/test_planner.py

Action planner: model path, keyword fallback precedence and the competitor
search override.
"""

from __future__ import annotations

import pytest

from agent.nodes.planner_node import (
    FORCED_SEARCH_STEP_ID,
    ActionPlanner,
    apply_competitor_override,
    extract_competitor_search_term,
    extract_product_name,
    fallback_plan,
)
from analysis_tools.registry import ToolRegistry
from app.config import AgentSettings
from llm_synthesis.schema import ActionPlan
from conftest import ScriptedLLMAdapter

SEARCH_TOOL = "searchWebForCompetitorData"

INVENTORY_PLAN = {
    "intent": "inventory_management",
    "complexity": "simple",
    "requiresWebSearch": False,
    "steps": [{"id": "inventory_analysis", "tool": "getLowStockItems", "params": {}}],
}


@pytest.fixture()
def settings() -> AgentSettings:
    return AgentSettings()


def _planner(adapter: ScriptedLLMAdapter, registry: ToolRegistry, settings: AgentSettings) -> ActionPlanner:
    return ActionPlanner(adapter=adapter, registry=registry, settings=settings, max_format_retries=0)


# ---------------------------------------------------------------------------
# Model path
# ---------------------------------------------------------------------------


class TestModelPath:
    def test_uses_model_plan(self, registry: ToolRegistry, settings: AgentSettings) -> None:
        adapter = ScriptedLLMAdapter(plan=INVENTORY_PLAN)
        plan = _planner(adapter, registry, settings).create_plan("Which items need restocking?", {})

        assert plan.intent == "inventory_management"
        assert [step.id for step in plan.steps] == ["inventory_analysis"]
        assert "getLowStockItems" in adapter.prompts[0]

    def test_competitor_query_forces_search_step(self, registry: ToolRegistry, settings: AgentSettings) -> None:
        query = "How do our competitors price speedboats?"
        plan = _planner(ScriptedLLMAdapter(plan=INVENTORY_PLAN), registry, settings).create_plan(query, {})

        assert plan.requires_web_search is True
        assert plan.steps[0].id == FORCED_SEARCH_STEP_ID
        assert plan.steps[0].tool == SEARCH_TOOL
        assert plan.steps[0].params == {"query": query}
        assert plan.steps[1].id == "inventory_analysis"

    def test_web_search_hint_sets_flag(self, registry: ToolRegistry, settings: AgentSettings) -> None:
        plan = _planner(ScriptedLLMAdapter(plan=INVENTORY_PLAN), registry, settings).create_plan(
            "Is our pricing right for current stock?", {}
        )
        assert plan.requires_web_search is True
        assert not plan.has_tool(SEARCH_TOOL)

    def test_unparseable_reply_falls_back(self, registry: ToolRegistry, settings: AgentSettings) -> None:
        plan = _planner(ScriptedLLMAdapter(plan="I cannot help"), registry, settings).create_plan(
            "Show me the revenue trend", {}
        )
        assert plan.intent == "sales_analysis"

    def test_model_timeout_falls_back(self, registry: ToolRegistry, settings: AgentSettings) -> None:
        plan = _planner(ScriptedLLMAdapter(), registry, settings).create_plan("Which items need restocking?", {})
        assert plan.intent == "inventory_management"
        assert plan.steps[0].id == "inventory_analysis"


# ---------------------------------------------------------------------------
# Fallback precedence
# ---------------------------------------------------------------------------


class TestFallbackPlan:
    def test_competitor_rules_win(self, settings: AgentSettings) -> None:
        plan = fallback_plan("What are the sales of other brands?", settings)
        assert plan.intent == "competitor_analysis"
        assert plan.steps[0].id == "web_search"
        assert plan.requires_web_search is True

    def test_search_term_uses_first_keyword(self, settings: AgentSettings) -> None:
        plan = fallback_plan("Who competes with our yacht market?", settings)
        assert plan.steps[0].params == {"query": "yacht companies India competitors market analysis"}

    def test_default_search_term(self, settings: AgentSettings) -> None:
        assert extract_competitor_search_term("pricing check", settings) == settings.default_competitor_search

    def test_sales(self, settings: AgentSettings) -> None:
        plan = fallback_plan("Show me the revenue trend", settings)
        assert plan.intent == "sales_analysis"
        assert plan.steps[0].tool == "analyzeMarketTrends"
        assert plan.steps[0].params == {"product_category": "all"}

    def test_inventory(self, settings: AgentSettings) -> None:
        plan = fallback_plan("Which items need restocking?", settings)
        assert plan.intent == "inventory_management"
        assert plan.steps[0].tool == "getLowStockItems"

    def test_inventory_beats_product_wording(self, settings: AgentSettings) -> None:
        plan = fallback_plan("Which products should I prioritize for restocking?", settings)
        assert plan.intent == "inventory_management"
        assert [step.tool for step in plan.steps] == ["getLowStockItems"]

    def test_product(self, settings: AgentSettings) -> None:
        plan = fallback_plan("Analyze product performance for the kayak line", settings)
        assert plan.intent == "product_analysis"
        assert plan.steps[0].params == {"product_name": "Kayak"}

    def test_product_name_defaults_to_first_vocabulary_entry(self, settings: AgentSettings) -> None:
        assert extract_product_name("analyze product performance", settings) == "Yacht"
        assert extract_product_name("how is the speedboat doing", settings) == "Speedboat"

    def test_comprehensive(self, settings: AgentSettings) -> None:
        plan = fallback_plan("Give me an overview", settings)
        assert plan.intent == "comprehensive_analysis"
        assert [step.id for step in plan.steps] == ["web_research", "inventory_check", "market_analysis"]
        assert plan.steps[2].params == {"product_category": "marine"}
        assert plan.requires_web_search is True


# ---------------------------------------------------------------------------
# Competitor override
# ---------------------------------------------------------------------------


class TestCompetitorOverride:
    def test_is_idempotent(self) -> None:
        plan = ActionPlan.model_validate(INVENTORY_PLAN)
        query = "Compare us to other companies"
        once = apply_competitor_override(plan, query)
        twice = apply_competitor_override(once, query)

        assert once == twice
        assert [step.tool for step in once.steps].count(SEARCH_TOOL) == 1

    def test_existing_search_step_is_kept(self, settings: AgentSettings) -> None:
        plan = fallback_plan("competitor pricing", settings)
        overridden = apply_competitor_override(plan, "competitor pricing")
        assert [step.id for step in overridden.steps] == ["web_search"]

    def test_non_competitor_query_untouched(self) -> None:
        plan = ActionPlan.model_validate(INVENTORY_PLAN)
        assert apply_competitor_override(plan, "Which items need restocking?") is plan

    def test_forced_step_id_avoids_collision(self) -> None:
        payload = {
            **INVENTORY_PLAN,
            "steps": [{"id": FORCED_SEARCH_STEP_ID, "tool": "getLowStockItems"}],
        }
        plan = apply_competitor_override(ActionPlan.model_validate(payload), "competitor stock")
        assert [step.id for step in plan.steps] == [f"{FORCED_SEARCH_STEP_ID}_2", FORCED_SEARCH_STEP_ID]
