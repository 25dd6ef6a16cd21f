"""
app/api/dependencies.py

Shared FastAPI dependencies for the agent endpoints.
"""

from __future__ import annotations

from agent.orchestrator import BusinessIntelligenceAgent, get_shared_agent, get_shared_data_store
from analysis_tools.dataset import DataStore


def get_data_store() -> DataStore:
    """
    Process-wide dataset holder shared by every agent instance.
    """

    return get_shared_data_store()


def get_agent() -> BusinessIntelligenceAgent:
    """
    Shared agent used by the blocking query endpoint.
    """

    return get_shared_agent()


def get_stream_agent() -> BusinessIntelligenceAgent:
    """
    Fresh agent per streaming request so concurrent streams never share step logs or memory.
    """

    return BusinessIntelligenceAgent(data_store=get_shared_data_store())
