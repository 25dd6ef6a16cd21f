"""
analysis_tools/base.py

Tool contract shared by every analytical tool.

Tools receive the dataset snapshot as an argument and wrap every outcome
in a :class:`ToolResult`. ``execute`` never raises: parameter errors and
unexpected exceptions are converted to ``success=False`` diagnostics.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from analysis_tools.dataset import BusinessDataset
from app import failure_codes
from app.logging_utils import log_event

logger = logging.getLogger(__name__)

DATASET_UNAVAILABLE_MESSAGE = "Error: Full dataset not available."


class ToolName(str, Enum):
    GET_FULL_PRODUCT_ANALYSIS = "getFullProductAnalysis"
    GET_LOW_STOCK_ITEMS = "getLowStockItems"
    SEARCH_WEB_FOR_COMPETITOR_DATA = "searchWebForCompetitorData"
    ANALYZE_MARKET_TRENDS = "analyzeMarketTrends"


class ToolParams(BaseModel):
    """Base for tool parameter models; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


@dataclass(frozen=True)
class ToolMetadata:
    execution_time_ms: float
    data_points: int
    calculations: list[str] = field(default_factory=list)
    sources: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "execution_time_ms": self.execution_time_ms,
            "data_points": self.data_points,
            "calculations": list(self.calculations),
        }
        if self.sources is not None:
            payload["sources"] = list(self.sources)
        return payload


@dataclass(frozen=True)
class ToolResult:
    """
    Uniform result envelope.

    ``success=False`` means ``data`` is a diagnostic (a message, or a mapping
    with an ``error`` entry), never a partial analytical payload.
    """

    success: bool
    data: Any
    metadata: ToolMetadata | None = None
    error: str | None = None

    @property
    def data_points(self) -> int:
        return self.metadata.data_points if self.metadata else 0

    @property
    def sources(self) -> list[str]:
        if self.metadata is None or not self.metadata.sources:
            return []
        return list(self.metadata.sources)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "data": self.data}
        if self.metadata is not None:
            payload["metadata"] = self.metadata.to_dict()
        if self.error is not None:
            payload["error"] = self.error
        return payload


class BaseTool(ABC):
    """
    Named, independently invocable analytical function.

    Subclasses set ``name``, ``description`` and ``params_model`` and
    implement :meth:`run`, which may raise; :meth:`execute` owns timing
    and failure conversion.
    """

    name: ClassVar[ToolName]
    description: ClassVar[str]
    params_model: ClassVar[type[ToolParams]] = ToolParams
    requires_dataset: ClassVar[bool] = True

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the tool parameters, as shown to the planner."""
        return self.params_model.model_json_schema(by_alias=True)

    def execute(
        self,
        params: Mapping[str, Any] | None,
        dataset: BusinessDataset | None,
    ) -> ToolResult:
        started = time.perf_counter()

        if self.requires_dataset and dataset is None:
            log_event(
                logger,
                logging.WARNING,
                "tool_data_unavailable",
                tool=self.name.value,
                failure_code=failure_codes.DATA_UNAVAILABLE,
            )
            return self.failure(DATASET_UNAVAILABLE_MESSAGE, started)

        try:
            parsed = self.params_model.model_validate(dict(params or {}))
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            return self.failure(f"Error: invalid parameters for {self.name.value}: {problems}", started)

        try:
            return self.run(parsed, dataset, started)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Tool %s raised during execution", self.name.value)
            return self.failure(f"Error executing {self.name.value}: {exc}", started, error=str(exc))

    @abstractmethod
    def run(
        self,
        params: Any,
        dataset: BusinessDataset | None,
        started: float,
    ) -> ToolResult:
        """
        Compute the tool payload. ``started`` is the ``perf_counter`` value at invocation.
        """

    @staticmethod
    def elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000

    def failure(
        self,
        data: Any,
        started: float,
        *,
        calculations: list[str] | None = None,
        error: str | None = None,
    ) -> ToolResult:
        return ToolResult(
            success=False,
            data=data,
            metadata=ToolMetadata(
                execution_time_ms=self.elapsed_ms(started),
                data_points=0,
                calculations=calculations or [],
            ),
            error=error,
        )
