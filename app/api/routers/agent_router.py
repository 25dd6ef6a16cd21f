"""
app/api/routers/agent_router.py

Agent HTTP endpoints: dataset loading, blocking queries and NDJSON streaming.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections.abc import Iterator
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from agent.orchestrator import BusinessIntelligenceAgent
from analysis_tools.dataset import BusinessDataset, DataStore
from app.api.dependencies import get_agent, get_data_store, get_stream_agent
from app.schemas.agent import DatasetPayload, DatasetSummaryResponse, QueryRequest
from llm_synthesis.schema import AgentResponse, AnalysisStep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", tags=["agent"])

_STREAM_END = object()


def _summary_response(dataset: BusinessDataset | None) -> DatasetSummaryResponse:
    if dataset is None:
        return DatasetSummaryResponse(sales_count=0, inventory_count=0, review_count=0)
    return DatasetSummaryResponse(
        sales_count=len(dataset.sales),
        inventory_count=len(dataset.inventory),
        review_count=len(dataset.reviews),
        business_context=dataset.summarize().to_context(),
    )


@router.put("/dataset", response_model=DatasetSummaryResponse)
def load_dataset(
    payload: DatasetPayload,
    data_store: DataStore = Depends(get_data_store),
) -> DatasetSummaryResponse:
    """
    Replace the loaded dataset wholesale.
    """

    dataset = BusinessDataset.from_rows(
        sales=payload.sales,
        inventory=payload.inventory,
        reviews=payload.reviews,
    )
    data_store.load(dataset)
    logger.info(
        "Dataset loaded sales=%d inventory=%d reviews=%d",
        len(dataset.sales),
        len(dataset.inventory),
        len(dataset.reviews),
    )
    return _summary_response(dataset)


@router.get("/dataset", response_model=DatasetSummaryResponse)
def get_dataset_summary(data_store: DataStore = Depends(get_data_store)) -> DatasetSummaryResponse:
    return _summary_response(data_store.snapshot())


@router.delete("/dataset", status_code=status.HTTP_204_NO_CONTENT)
def clear_dataset(data_store: DataStore = Depends(get_data_store)) -> None:
    data_store.clear()
    logger.info("Dataset cleared")


@router.post("/query", response_model=AgentResponse)
def query_agent(
    body: QueryRequest,
    agent: BusinessIntelligenceAgent = Depends(get_agent),
) -> AgentResponse:
    """
    Answer one business question. Pipeline failures come back as a degraded response, not an error status.
    """

    return agent.process_query(body.message, body.business_context)


def _ndjson_events(agent: BusinessIntelligenceAgent, body: QueryRequest) -> Iterator[str]:
    events: queue.Queue[Any] = queue.Queue()

    def on_step(step: AnalysisStep) -> None:
        events.put({"type": "step", "step": step.model_dump(mode="json", by_alias=True)})

    def worker() -> None:
        try:
            response = agent.process_query(body.message, body.business_context, on_step=on_step)
            events.put({"type": "response", "response": response.model_dump(mode="json", by_alias=True)})
        except Exception as exc:  # noqa: BLE001
            logger.exception("Streaming query failed")
            events.put({"type": "error", "error": str(exc)})
        finally:
            events.put(_STREAM_END)

    threading.Thread(target=worker, name="agent-stream", daemon=True).start()
    while True:
        event = events.get()
        if event is _STREAM_END:
            break
        yield json.dumps(event, default=str) + "\n"


@router.post("/query/stream")
def stream_query(
    body: QueryRequest,
    agent: BusinessIntelligenceAgent = Depends(get_stream_agent),
) -> StreamingResponse:
    """
    Stream progress steps as NDJSON lines, followed by the final response line.
    """

    return StreamingResponse(_ndjson_events(agent, body), media_type="application/x-ndjson")
