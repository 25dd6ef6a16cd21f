"""
app/schemas/agent.py

Request and response schemas for the agent endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DatasetPayload(BaseModel):
    """
    API request model for replacing the loaded dataset.

    Rows accept the CSV column names (``Date``, ``Product`` ...) or snake_case keys.
    """

    model_config = _CAMEL_CONFIG

    sales: list[dict[str, Any]] = Field(default_factory=list)
    inventory: list[dict[str, Any]] = Field(default_factory=list)
    reviews: list[dict[str, Any]] = Field(default_factory=list)


class DatasetSummaryResponse(BaseModel):
    """
    API response model describing the dataset now in use.
    """

    model_config = _CAMEL_CONFIG

    sales_count: int = Field(..., ge=0)
    inventory_count: int = Field(..., ge=0)
    review_count: int = Field(..., ge=0)
    business_context: dict[str, Any] = Field(default_factory=dict)


class QueryRequest(BaseModel):
    """
    API request model for one agent query.

    When ``business_context`` is omitted it is derived from the loaded dataset.
    """

    model_config = _CAMEL_CONFIG

    message: str = Field(..., min_length=1)
    business_context: dict[str, Any] | None = None
