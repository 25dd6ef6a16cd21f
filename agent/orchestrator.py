"""
agent/orchestrator.py

Business-intelligence agent façade.

Runs plan -> execute_tools -> synthesize -> visualize for one query and
assembles the AgentResponse envelope.

Failure contract
----------------
- Tool, model and web-search failures are absorbed by the nodes and show up
  as failed tool results or a ``degraded`` synthesis.
- Any other exception is absorbed here and returned as the fixed degraded
  response from :meth:`AgentResponse.failure`.
- :class:`QueryCancelledError` is the one exception that reaches the caller,
  since cancellation is requested by the caller itself.
"""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Mapping, Union

from agent.graph import build_graph
from agent.memory import ConversationMemory
from agent.nodes.chart_node import ChartDeriver
from agent.nodes.planner_node import ActionPlanner
from agent.nodes.synthesis_node import ResultSynthesizer
from agent.nodes.tool_chain_node import ToolChainExecutor
from agent.progress import CancellationToken, QueryCancelledError, StepCallback, StepRecorder
from analysis_tools.base import ToolResult
from analysis_tools.dataset import BusinessDataset, BusinessSummary, DataStore
from analysis_tools.registry import ToolRegistry, build_default_registry
from app import failure_codes
from app.config import AgentSettings, LLMSettings, get_agent_settings, get_llm_settings
from app.logging_utils import log_event, timed_event
from llm_synthesis.adapter import BaseLLMAdapter, build_adapter
from llm_synthesis.schema import ActionPlan, AgentResponse, ResponseMetadata

logger = logging.getLogger(__name__)

BusinessContext = Union[Mapping[str, Any], BusinessSummary, None]


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _unique_sources(tool_results: Mapping[str, ToolResult]) -> list[str]:
    seen: dict[str, None] = {}
    for result in tool_results.values():
        for source in result.sources:
            seen.setdefault(source, None)
    return list(seen)


class BusinessIntelligenceAgent:
    """
    One agent instance owns its conversation memory; the dataset is read
    from the injected :class:`DataStore` once per query.
    """

    def __init__(
        self,
        *,
        data_store: DataStore | None = None,
        adapter: BaseLLMAdapter | None = None,
        registry: ToolRegistry | None = None,
        agent_settings: AgentSettings | None = None,
        llm_settings: LLMSettings | None = None,
    ) -> None:
        self._settings = agent_settings or get_agent_settings()
        llm_settings = llm_settings or get_llm_settings()
        adapter = adapter or build_adapter(llm_settings)
        registry = registry or build_default_registry(agent_settings=self._settings)

        self.data_store = data_store or DataStore()
        self.memory = ConversationMemory(max_entries=self._settings.memory_max_entries)
        self._graph = build_graph(
            planner=ActionPlanner(
                adapter=adapter,
                registry=registry,
                settings=self._settings,
                max_format_retries=llm_settings.max_format_retries,
            ),
            executor=ToolChainExecutor(registry, max_parallel=self._settings.max_parallel_tools),
            synthesizer=ResultSynthesizer(
                adapter=adapter,
                max_format_retries=llm_settings.max_format_retries,
            ),
            chart_deriver=ChartDeriver(inventory_capacity=self._settings.inventory_capacity),
        )

    def process_query(
        self,
        query: str,
        business_context: BusinessContext = None,
        *,
        cancel_token: CancellationToken | None = None,
        on_step: StepCallback | None = None,
    ) -> AgentResponse:
        started = time.perf_counter()
        recorder = StepRecorder(on_step)
        token = cancel_token or CancellationToken()

        try:
            with timed_event(logger, "agent_query_processed", query_length=len(query)) as event:
                dataset = self.data_store.snapshot()
                context = self._resolve_context(business_context, dataset)
                final_state = self._graph.invoke(
                    {
                        "user_query": query,
                        "business_context": context,
                        "recent_queries": self._recent_queries(),
                        "dataset": dataset,
                        "recorder": recorder,
                        "cancel_token": token,
                    }
                )
                token.raise_if_cancelled("completion")
                recorder.record("completion", "Analysis complete with web research integration", 100)
                response = self._assemble_response(final_state, recorder, started)
                event.update(intent=final_state["plan"].intent, degraded=response.degraded)
        except QueryCancelledError as exc:
            log_event(logger, logging.INFO, "agent_query_cancelled", stage=exc.stage)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Agent pipeline failed for query")
            log_event(
                logger,
                logging.ERROR,
                "agent_query_failed",
                error=str(exc),
                failure_code=failure_codes.UNEXPECTED_ERROR,
            )
            return AgentResponse.failure(
                execution_steps=recorder.steps,
                total_execution_time=_elapsed_ms(started),
            )

        self.memory.append(query, final_state["plan"].intent, response)
        return response

    @staticmethod
    def _resolve_context(
        business_context: BusinessContext,
        dataset: BusinessDataset | None,
    ) -> dict[str, Any]:
        if isinstance(business_context, BusinessSummary):
            return business_context.to_context()
        if business_context:
            return dict(business_context)
        if dataset is not None:
            return dataset.summarize().to_context()
        return {}

    def _recent_queries(self) -> list[dict[str, Any]]:
        return [
            {"query": entry.query, "intent": entry.intent}
            for entry in self.memory.recent(self._settings.recent_context_queries)
        ]

    @staticmethod
    def _assemble_response(
        state: Mapping[str, Any],
        recorder: StepRecorder,
        started: float,
    ) -> AgentResponse:
        plan: ActionPlan = state["plan"]
        tool_results: Mapping[str, ToolResult] = state.get("tool_results") or {}
        synthesis = state["synthesis"]
        sources = _unique_sources(tool_results)

        return AgentResponse(
            insights=synthesis.output.insights,
            analysis=synthesis.output.analysis,
            recommendations=list(synthesis.output.recommendations),
            charts=state.get("charts") or [],
            sources=sources,
            execution_steps=recorder.steps,
            metadata=ResponseMetadata(
                total_execution_time=_elapsed_ms(started),
                tools_used=[step.tool for step in plan.steps],
                data_points_analyzed=sum(result.data_points for result in tool_results.values()),
                web_search_performed=plan.requires_web_search or bool(sources),
            ),
            degraded=synthesis.degraded,
        )


@lru_cache(maxsize=1)
def get_shared_data_store() -> DataStore:
    return DataStore()


@lru_cache(maxsize=1)
def get_shared_agent() -> BusinessIntelligenceAgent:
    return BusinessIntelligenceAgent(data_store=get_shared_data_store())


def run_agentic_query(message: str, business_context: BusinessContext = None) -> AgentResponse:
    """Answer one query with the process-wide shared agent."""
    return get_shared_agent().process_query(message, business_context)


def stream_agentic_analysis(
    message: str,
    business_context: BusinessContext,
    on_step: StepCallback,
    *,
    cancel_token: CancellationToken | None = None,
) -> AgentResponse:
    """
    Answer one query on a fresh agent, emitting each step to ``on_step`` as it happens.

    The fresh instance keeps concurrent streams from sharing step logs or memory.
    """
    agent = BusinessIntelligenceAgent(data_store=get_shared_data_store())
    return agent.process_query(message, business_context, cancel_token=cancel_token, on_step=on_step)
