"""
agent/nodes/tool_chain_node.py

Tool-chain node: executes the planned steps against the registry.

Execution is total. Unknown tools are skipped, and a tool that raises is
converted into a failed ToolResult, so every executed step yields a result.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from agent.progress import CancellationToken, StepRecorder
from agent.state import AgentState
from analysis_tools.base import ToolResult
from analysis_tools.dataset import BusinessDataset
from analysis_tools.registry import ToolRegistry
from app import failure_codes
from app.logging_utils import log_event
from llm_synthesis.schema import ActionPlan, PlanStep

logger = logging.getLogger(__name__)

_TOOL_PROGRESS_BASE = 30
_TOOL_PROGRESS_STEP = 10
_TOOL_PROGRESS_CEILING = 69


def schedule_batches(steps: list[PlanStep]) -> list[list[PlanStep]]:
    """
    Group steps into dependency-ordered batches.

    Within a batch, plan order is kept. Dependencies on unknown step ids are
    ignored; if a cycle is found the remaining steps run one by one in plan
    order.
    """
    known = {step.id for step in steps}
    pending_deps: dict[str, set[str]] = {}
    for step in steps:
        unknown = [dep for dep in step.depends_on if dep not in known]
        if unknown:
            log_event(
                logger,
                logging.WARNING,
                "plan_unknown_dependency",
                step_id=step.id,
                depends_on=unknown,
            )
        pending_deps[step.id] = {dep for dep in step.depends_on if dep in known and dep != step.id}

    batches: list[list[PlanStep]] = []
    done: set[str] = set()
    remaining = list(steps)
    while remaining:
        ready = [step for step in remaining if pending_deps[step.id] <= done]
        if not ready:
            log_event(
                logger,
                logging.WARNING,
                "plan_dependency_cycle",
                step_ids=[step.id for step in remaining],
            )
            batches.extend([step] for step in remaining)
            break
        batches.append(ready)
        done.update(step.id for step in ready)
        ready_ids = {step.id for step in ready}
        remaining = [step for step in remaining if step.id not in ready_ids]
    return batches


class ToolChainExecutor:
    """Runs an ActionPlan's steps and collects one ToolResult per step."""

    def __init__(self, registry: ToolRegistry, *, max_parallel: int = 1) -> None:
        self._registry = registry
        self._max_parallel = max(1, max_parallel)

    def execute(
        self,
        plan: ActionPlan,
        dataset: Optional[BusinessDataset],
        recorder: StepRecorder,
        cancel_token: Optional[CancellationToken] = None,
    ) -> dict[str, ToolResult]:
        runnable: list[PlanStep] = []
        for step in plan.steps:
            if step.tool in self._registry:
                runnable.append(step)
                continue
            log_event(
                logger,
                logging.WARNING,
                "tool_not_found",
                step_id=step.id,
                tool=step.tool,
                failure_code=failure_codes.TOOL_NOT_FOUND,
            )

        position = {step.id: index for index, step in enumerate(runnable)}
        results: dict[str, ToolResult] = {}

        for batch in schedule_batches(runnable):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("tool_execution")

            if self._max_parallel == 1 or len(batch) == 1:
                for step in batch:
                    results[step.id] = self._run_step(step, position[step.id], dataset, recorder)
                continue

            with ThreadPoolExecutor(max_workers=min(self._max_parallel, len(batch))) as pool:
                futures = {
                    step.id: pool.submit(self._run_step, step, position[step.id], dataset, recorder)
                    for step in batch
                }
                for step_id, future in futures.items():
                    results[step_id] = future.result()

        return {step.id: results[step.id] for step in runnable if step.id in results}

    def _run_step(
        self,
        step: PlanStep,
        index: int,
        dataset: Optional[BusinessDataset],
        recorder: StepRecorder,
    ) -> ToolResult:
        tool = self._registry.get(step.tool)
        recorder.record(
            f"tool_{step.id}",
            f"Executing {step.description or step.tool}",
            min(_TOOL_PROGRESS_BASE + index * _TOOL_PROGRESS_STEP, _TOOL_PROGRESS_CEILING),
        )

        try:
            result = tool.execute(step.params, dataset)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Tool %s raised for step %s", step.tool, step.id)
            result = ToolResult(
                success=False,
                data=f"Error executing {step.tool}: {exc}",
                error=str(exc),
            )

        recorder.record(
            f"complete_{step.id}",
            f"Completed {step.description or step.tool}",
            min(
                _TOOL_PROGRESS_BASE + (index + 1) * _TOOL_PROGRESS_STEP,
                _TOOL_PROGRESS_CEILING,
            ),
            result.to_dict(),
        )
        log_event(
            logger,
            logging.INFO,
            "tool_step_completed",
            step_id=step.id,
            tool=step.tool,
            success=result.success,
            data_points=result.data_points,
        )
        return result


def build_tool_chain_node(executor: ToolChainExecutor) -> Callable[[AgentState], AgentState]:
    """LangGraph node factory: records the tool_execution marker and writes ``state["tool_results"]``."""

    def tool_chain_node(state: AgentState) -> AgentState:
        token = state["cancel_token"]
        token.raise_if_cancelled("tool_execution")
        plan = state["plan"]
        state["recorder"].record(
            "tool_execution",
            f"Executing {len(plan.steps)} analytical tools including web search",
            30,
        )
        results = executor.execute(plan, state.get("dataset"), state["recorder"], token)
        return {**state, "tool_results": results}

    return tool_chain_node
