"""Structured contracts for planning, synthesis and the final agent response."""

from typing import Any, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Intent = Literal[
    "sales_analysis",
    "inventory_management",
    "sentiment_analysis",
    "competitor_analysis",
    "market_research",
    "product_analysis",
    "comprehensive_analysis",
]
Complexity = Literal["simple", "moderate", "complex"]

INTENTS: frozenset = frozenset(get_args(Intent))
COMPLEXITIES: frozenset = frozenset(get_args(Complexity))
DEFAULT_INTENT = "comprehensive_analysis"
DEFAULT_COMPLEXITY = "moderate"

_CAMEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
)


class PlanStep(BaseModel):
    """One tool invocation in an action plan."""

    model_config = _CAMEL_CONFIG

    id: str = Field(min_length=1)
    tool: str = Field(min_length=1)
    description: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    depends_on: List[str] = Field(default_factory=list)

    @field_validator("params", mode="before")
    @classmethod
    def _none_params(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("depends_on", mode="before")
    @classmethod
    def _none_depends(cls, value: Any) -> Any:
        return [] if value is None else value


class ActionPlan(BaseModel):
    """Ordered tool plan produced before any tool executes."""

    model_config = _CAMEL_CONFIG

    intent: Intent
    complexity: Complexity = DEFAULT_COMPLEXITY
    requires_web_search: bool = False
    steps: List[PlanStep] = Field(min_length=1)

    @field_validator("intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value: Any) -> Any:
        text = str(value or "").strip().lower()
        return text if text in INTENTS else DEFAULT_INTENT

    @field_validator("complexity", mode="before")
    @classmethod
    def _normalize_complexity(cls, value: Any) -> Any:
        text = str(value or "").strip().lower()
        return text if text in COMPLEXITIES else DEFAULT_COMPLEXITY

    @model_validator(mode="after")
    def _unique_step_ids(self) -> "ActionPlan":
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"duplicate step id '{step.id}'")
            seen.add(step.id)
        return self

    def has_tool(self, tool: str) -> bool:
        return any(step.tool == tool for step in self.steps)


class SynthesisOutput(BaseModel):
    """Narrative answer expected from the synthesis model call."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    insights: str = Field(min_length=1)
    analysis: str = Field(min_length=1)
    recommendations: List[str] = Field(min_length=1)

    @field_validator("recommendations")
    @classmethod
    def _non_blank(cls, value: List[str]) -> List[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("recommendations must contain at least one non-blank entry")
        return cleaned


class ChartPoint(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    value: Optional[float] = None


class ChartDescriptor(BaseModel):
    """Library-neutral chart description."""

    type: Literal["bar", "line", "pie"]
    title: str
    data: List[ChartPoint] = Field(default_factory=list)


class AnalysisStep(BaseModel):
    model_config = _CAMEL_CONFIG

    step: str
    action: str
    progress: int = Field(ge=0, le=100)
    result: Optional[Any] = None


class ResponseMetadata(BaseModel):
    model_config = _CAMEL_CONFIG

    total_execution_time: float = Field(ge=0.0)
    tools_used: List[str] = Field(default_factory=list)
    data_points_analyzed: int = Field(default=0, ge=0)
    web_search_performed: bool = False


class AgentResponse(BaseModel):
    """Sole response contract surfaced to callers."""

    model_config = _CAMEL_CONFIG

    insights: str
    analysis: str
    recommendations: List[str]
    charts: List[ChartDescriptor] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    execution_steps: List[AnalysisStep] = Field(default_factory=list)
    metadata: Optional[ResponseMetadata] = None
    degraded: bool = False

    @classmethod
    def failure(
        cls,
        *,
        execution_steps: List[AnalysisStep],
        total_execution_time: float,
    ) -> "AgentResponse":
        return cls(
            insights="Analysis encountered an issue during execution with web search integration.",
            analysis=(
                "I encountered a technical challenge while processing your request with live "
                "web search capabilities. The agentic analysis system attempted to search the "
                "web for competitor data and market insights but faced connectivity issues. "
                "Please try rephrasing your question or check if all required data sources "
                "are available."
            ),
            recommendations=[
                "Verify internet connectivity for web search functionality",
                "Try asking a more specific question about competitors",
                "Check if competitor search terms are relevant to your industry",
            ],
            charts=[],
            sources=[],
            execution_steps=execution_steps,
            metadata=ResponseMetadata(
                total_execution_time=total_execution_time,
                tools_used=[],
                data_points_analyzed=0,
                web_search_performed=False,
            ),
            degraded=True,
        )


GeminiResponse = AgentResponse
