"""
tests/conftest.py

Shared fixtures: sample datasets, scripted model adapters and a fake
search backend. No test touches the network or a real model.
"""

from __future__ import annotations

import json
import os

os.environ["LLM_ADAPTER"] = "mock"
os.environ["WEB_SEARCH_ENABLED"] = "false"

from typing import Any, Callable  # noqa: E402

import pytest  # noqa: E402

from agent.orchestrator import BusinessIntelligenceAgent  # noqa: E402
from analysis_tools.dataset import BusinessDataset, DataStore  # noqa: E402
from analysis_tools.registry import ToolRegistry, build_default_registry  # noqa: E402
from app.config import AgentSettings, LLMSettings, WebSearchSettings  # noqa: E402
from app.domain.web_search import SearchResult, WebSearchResponse  # noqa: E402
from llm_synthesis.adapter import BaseLLMAdapter  # noqa: E402
from llm_synthesis.prompt_builder import PLANNING_TASK_MARKER  # noqa: E402


# ---------------------------------------------------------------------------
# Model adapters
# ---------------------------------------------------------------------------


class ScriptedLLMAdapter(BaseLLMAdapter):
    """Returns a fixed planning reply and a fixed synthesis reply; exceptions are raised."""

    def __init__(self, *, plan: Any = None, synthesis: Any = None) -> None:
        self._plan = plan if plan is not None else TimeoutError("planning model timed out")
        self._synthesis = synthesis if synthesis is not None else TimeoutError("synthesis model timed out")
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self._plan if PLANNING_TASK_MARKER in prompt else self._synthesis
        if isinstance(reply, Exception):
            raise reply
        return reply if isinstance(reply, str) else json.dumps(reply)


VALID_SYNTHESIS = {
    "insights": "Yacht revenue dominates the portfolio.",
    "analysis": "## Summary\nLuxury Yacht X1 generated ₹510,000 across two orders.",
    "recommendations": [
        "Restock Luxury Yacht X1 before the festival season.",
        "Bundle kayaks with speedboats.",
        "Review speedboat pricing.",
        "Collect more kayak reviews.",
        "Track competitor launches monthly.",
    ],
}


# ---------------------------------------------------------------------------
# Search backend
# ---------------------------------------------------------------------------


class FakeSearchBackend:
    """Deterministic search backend; ``error`` makes every call raise."""

    def __init__(
        self,
        results: list[SearchResult] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._results = list(results or [])
        self._error = error
        self.queries: list[str] = []

    def search(self, query: str) -> WebSearchResponse:
        self.queries.append(query)
        if self._error is not None:
            raise self._error
        return WebSearchResponse(
            results=list(self._results),
            related_searches=["boat dealers india"],
            total_results=len(self._results),
            timestamp="2024-04-01T00:00:00Z",
        )


MARINE_RESULTS = [
    SearchResult(
        title="Coastal Marine Boats Pricing",
        snippet="Coastal Marine sells speedboats from ₹85,000 with strong market growth.",
        link="https://example.com/coastal",
        position=1,
    ),
    SearchResult(
        title="AquaSport Yacht Dealers India",
        snippet="Luxury yacht packages from Rs. 2,50,000 for coastal buyers.",
        link="https://example.com/aquasport",
        position=2,
    ),
    SearchResult(
        title="Gardening tips",
        snippet="Nothing related here.",
        link="https://example.com/garden",
        position=3,
    ),
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def dataset() -> BusinessDataset:
    """Small marine-retail dataset with one unparseable sale date."""
    return BusinessDataset.from_rows(
        sales=[
            {"Date": "2024-01-05", "Product": "Luxury Yacht X1", "Category": "Yachts", "Quantity": 1, "Amount": 250000},
            {"Date": "2024-01-20", "Product": "Speedboat S2", "Category": "Speedboats", "Quantity": 2, "Amount": 90000},
            {"Date": "2024-02-11", "Product": "Luxury Yacht X1", "Category": "Yachts", "Quantity": 1, "Amount": 260000},
            {"Date": "2024-03-02", "Product": "Kayak K1", "Category": "Kayaks", "Quantity": 4, "Amount": 20000},
            {"Date": "not-a-date", "Product": "Kayak K1", "Category": "Kayaks", "Quantity": 1, "Amount": 5000},
        ],
        inventory=[
            {"Product": "Luxury Yacht X1", "Category": "Yachts", "Stock": 2, "Price": 250000, "Min_Alert": 3},
            {"Product": "Speedboat S2", "Category": "Speedboats", "Stock": 0, "Price": 45000, "Min_Alert": 2},
            {"Product": "Kayak K1", "Category": "Kayaks", "Stock": 12, "Price": 5000},
            {"Product": "Canoe C1", "Category": "Canoes", "Stock": 4, "Price": 8000, "Min_Alert": ""},
        ],
        reviews=[
            {"Date": "2024-01-10", "Product": "Luxury Yacht X1", "Rating": 5, "Review": "Superb"},
            {"Date": "2024-02-15", "Product": "Luxury Yacht X1", "Rating": 4, "Review": "Great ride"},
            {"Date": "2024-03-05", "Product": "Kayak K1", "Rating": 3, "Review": "Okay"},
        ],
    )


@pytest.fixture()
def restock_dataset() -> BusinessDataset:
    """Two-item inventory: A is below its alert level, B is not."""
    return BusinessDataset.from_rows(
        inventory=[
            {"Product": "A", "Category": "Boats", "Stock": 1, "Price": 1000, "Min_Alert": 5},
            {"Product": "B", "Category": "Boats", "Stock": 10, "Price": 1000, "Min_Alert": 5},
        ],
    )


@pytest.fixture()
def search_backend() -> FakeSearchBackend:
    return FakeSearchBackend(MARINE_RESULTS)


@pytest.fixture()
def registry(search_backend: FakeSearchBackend) -> ToolRegistry:
    return build_default_registry(
        search_backend=search_backend,
        agent_settings=AgentSettings(),
        web_search_settings=WebSearchSettings(),
    )


@pytest.fixture()
def agent_factory() -> Callable[..., BusinessIntelligenceAgent]:
    """Build an isolated agent around the given adapter, dataset and backend."""

    def _build(
        adapter: BaseLLMAdapter,
        *,
        dataset: BusinessDataset | None = None,
        backend: FakeSearchBackend | None = None,
        agent_settings: AgentSettings | None = None,
    ) -> BusinessIntelligenceAgent:
        settings = agent_settings or AgentSettings()
        registry = build_default_registry(
            search_backend=backend or FakeSearchBackend(MARINE_RESULTS),
            agent_settings=settings,
            web_search_settings=WebSearchSettings(),
        )
        return BusinessIntelligenceAgent(
            data_store=DataStore(dataset),
            adapter=adapter,
            registry=registry,
            agent_settings=settings,
            llm_settings=LLMSettings(adapter="mock", max_format_retries=0),
        )

    return _build
