"""
tests/test_tool_chain.py

Tool-chain executor: totality, dependency ordering and progress events.
"""

from __future__ import annotations

from typing import Any

import pytest

from agent.nodes.tool_chain_node import ToolChainExecutor, schedule_batches
from agent.progress import CancellationToken, QueryCancelledError, StepRecorder
from analysis_tools.base import BaseTool, ToolName, ToolResult
from analysis_tools.dataset import BusinessDataset
from analysis_tools.registry import ToolRegistry
from llm_synthesis.schema import ActionPlan, PlanStep


class _ExplodingLowStockTool(BaseTool):
    name = ToolName.GET_LOW_STOCK_ITEMS
    description = "Raises instead of returning a result"

    def execute(self, params: Any, dataset: Any) -> ToolResult:  # type: ignore[override]
        raise RuntimeError("disk on fire")

    def run(self, params: Any, dataset: Any, started: float) -> ToolResult:
        raise NotImplementedError


def _plan(*steps: dict) -> ActionPlan:
    return ActionPlan(intent="comprehensive_analysis", steps=[PlanStep(**step) for step in steps])


def _step_names(recorder: StepRecorder) -> list[str]:
    return [step.step for step in recorder.steps]


class TestScheduleBatches:
    def test_array_order_without_dependencies(self) -> None:
        plan = _plan({"id": "a", "tool": "t"}, {"id": "b", "tool": "t"})
        assert [[s.id for s in batch] for batch in schedule_batches(plan.steps)] == [["a", "b"]]

    def test_dependencies_are_honored(self) -> None:
        plan = _plan(
            {"id": "a", "tool": "t", "depends_on": ["b"]},
            {"id": "b", "tool": "t"},
            {"id": "c", "tool": "t"},
        )
        assert [[s.id for s in batch] for batch in schedule_batches(plan.steps)] == [["b", "c"], ["a"]]

    def test_unknown_dependency_is_ignored(self) -> None:
        plan = _plan({"id": "a", "tool": "t", "depends_on": ["ghost"]})
        assert [[s.id for s in batch] for batch in schedule_batches(plan.steps)] == [["a"]]

    def test_cycle_falls_back_to_array_order(self) -> None:
        plan = _plan(
            {"id": "a", "tool": "t", "depends_on": ["b"]},
            {"id": "b", "tool": "t", "depends_on": ["a"]},
        )
        assert [[s.id for s in batch] for batch in schedule_batches(plan.steps)] == [["a"], ["b"]]


class TestToolChainExecutor:
    def test_executes_every_known_step(self, registry: ToolRegistry, dataset: BusinessDataset) -> None:
        plan = _plan(
            {"id": "inventory_analysis", "tool": "getLowStockItems"},
            {"id": "market_trends", "tool": "analyzeMarketTrends", "params": {"productCategory": "all"}},
        )
        recorder = StepRecorder()
        results = ToolChainExecutor(registry).execute(plan, dataset, recorder)

        assert list(results) == ["inventory_analysis", "market_trends"]
        assert all(result.success for result in results.values())
        assert _step_names(recorder) == [
            "tool_inventory_analysis",
            "complete_inventory_analysis",
            "tool_market_trends",
            "complete_market_trends",
        ]
        assert [step.progress for step in recorder.steps] == [30, 40, 40, 50]

    def test_unknown_tool_is_skipped(self, registry: ToolRegistry, dataset: BusinessDataset) -> None:
        plan = _plan(
            {"id": "crystal_ball", "tool": "predictTheFuture"},
            {"id": "inventory_analysis", "tool": "getLowStockItems"},
        )
        results = ToolChainExecutor(registry).execute(plan, dataset, StepRecorder())
        assert list(results) == ["inventory_analysis"]

    def test_raising_tool_becomes_failed_result(self, registry: ToolRegistry, dataset: BusinessDataset) -> None:
        tools = [tool for tool in registry if tool.name is not ToolName.GET_LOW_STOCK_ITEMS]
        broken = ToolRegistry(tools + [_ExplodingLowStockTool()])
        plan = _plan(
            {"id": "inventory_analysis", "tool": "getLowStockItems"},
            {"id": "market_trends", "tool": "analyzeMarketTrends"},
        )
        results = ToolChainExecutor(broken).execute(plan, dataset, StepRecorder())

        failed = results["inventory_analysis"]
        assert failed.success is False
        assert failed.data == "Error executing getLowStockItems: disk on fire"
        assert failed.error == "disk on fire"
        assert results["market_trends"].success is True

    def test_missing_dataset_still_yields_results(self, registry: ToolRegistry) -> None:
        plan = _plan({"id": "inventory_analysis", "tool": "getLowStockItems"})
        results = ToolChainExecutor(registry).execute(plan, None, StepRecorder())
        assert results["inventory_analysis"].success is False

    def test_dependent_step_runs_after_dependency(self, registry: ToolRegistry, dataset: BusinessDataset) -> None:
        plan = _plan(
            {"id": "market_trends", "tool": "analyzeMarketTrends", "depends_on": ["inventory_analysis"]},
            {"id": "inventory_analysis", "tool": "getLowStockItems"},
        )
        recorder = StepRecorder()
        results = ToolChainExecutor(registry).execute(plan, dataset, recorder)

        names = _step_names(recorder)
        assert names.index("complete_inventory_analysis") < names.index("tool_market_trends")
        assert list(results) == ["market_trends", "inventory_analysis"]

    def test_parallel_batches_match_sequential(self, registry: ToolRegistry, dataset: BusinessDataset) -> None:
        plan = _plan(
            {"id": "inventory_analysis", "tool": "getLowStockItems"},
            {"id": "market_trends", "tool": "analyzeMarketTrends"},
            {"id": "product_analysis", "tool": "getFullProductAnalysis", "params": {"productName": "Yacht"}},
        )
        sequential = ToolChainExecutor(registry).execute(plan, dataset, StepRecorder())
        recorder = StepRecorder()
        parallel = ToolChainExecutor(registry, max_parallel=3).execute(plan, dataset, recorder)

        assert list(parallel) == list(sequential)
        assert {k: v.data for k, v in parallel.items()} == {k: v.data for k, v in sequential.items()}
        assert len(recorder.steps) == 6

    def test_cancellation_between_batches(self, registry: ToolRegistry, dataset: BusinessDataset) -> None:
        token = CancellationToken()
        token.cancel()
        plan = _plan({"id": "inventory_analysis", "tool": "getLowStockItems"})
        with pytest.raises(QueryCancelledError):
            ToolChainExecutor(registry).execute(plan, dataset, StepRecorder(), token)
