"""Validation layer for raw LLM output.

Parses and validates JSON strings against the planning and synthesis
schemas. Failures raise typed errors that feed the deterministic fallbacks.
"""

import json
import re
from typing import Any, Callable, Dict, List, Tuple, TypeVar

from pydantic import BaseModel, ValidationError

from llm_synthesis.schema import ActionPlan, SynthesisOutput

T = TypeVar("T", bound=BaseModel)

_SYNTHESIS_KEYS: Tuple[str, ...] = ("insights", "analysis", "recommendations")
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)


class LLMOutputValidationError(Exception):
    """Raised when LLM output fails parsing or schema validation.

    Attributes:
        stage: Which validation step failed ("json_parse" or "schema").
        errors: List of human-readable error descriptions.
        raw_response: The original string that failed validation.
    """

    def __init__(
        self,
        stage: str,
        errors: List[str],
        raw_response: str,
    ) -> None:
        self.stage = stage
        self.errors = errors
        self.raw_response = raw_response
        message = (
            f"LLM output validation failed at stage '{stage}': "
            + "; ".join(errors)
        )
        super().__init__(message)


class PlanParseError(LLMOutputValidationError):
    """The planning reply could not be decoded into an ActionPlan."""


class SynthesisParseError(LLMOutputValidationError):
    """The synthesis reply could not be decoded into a SynthesisOutput."""


def _strip_markdown_fences(text: str) -> str:
    """Remove markdown code fences wrapping JSON.

    LLMs sometimes wrap output in ```json ... ``` despite instructions, or
    surround the fenced block with prose. The first fenced block wins;
    otherwise the outermost ``{...}`` span is used.

    Args:
        text: Raw LLM response string.

    Returns:
        The JSON candidate text.
    """
    stripped = (text or "").strip()
    match = _FENCED_BLOCK.search(stripped)
    if match:
        return match.group(1).strip()
    if stripped.startswith("{"):
        return stripped
    start = stripped.find("{")
    end = stripped.rfind("}")
    if start != -1 and end > start:
        return stripped[start : end + 1]
    return stripped


def _format_validation_errors(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
        for e in exc.errors()
    ]


def _decode(
    raw_response: str,
    model: type[T],
    error_cls: type[LLMOutputValidationError],
    project: Callable[[Dict[str, Any]], Dict[str, Any]],
) -> T:
    cleaned = _strip_markdown_fences(raw_response)

    # Step 1: JSON parse
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as exc:
        raise error_cls(
            stage="json_parse",
            errors=[str(exc)],
            raw_response=raw_response,
        ) from exc

    # Step 2: Object shape
    if not isinstance(data, dict):
        raise error_cls(
            stage="schema",
            errors=["top-level JSON must be an object"],
            raw_response=raw_response,
        )

    # Step 3: Schema validation
    try:
        return model.model_validate(project(data))
    except ValidationError as exc:
        raise error_cls(
            stage="schema",
            errors=_format_validation_errors(exc),
            raw_response=raw_response,
        ) from exc


def _project_synthesis(data: Dict[str, Any]) -> Dict[str, Any]:
    """Project payloads into the SynthesisOutput keys only."""
    return {key: data.get(key) for key in _SYNTHESIS_KEYS}


def validate_plan_output(raw_response: str) -> ActionPlan:
    """Parse and validate a raw planning reply.

    Raises:
        PlanParseError: If JSON parsing or schema validation fails.
    """
    return _decode(raw_response, ActionPlan, PlanParseError, dict)


def validate_synthesis_output(raw_response: str) -> SynthesisOutput:
    """Parse and validate a raw synthesis reply.

    Raises:
        SynthesisParseError: If JSON parsing or schema validation fails.
    """
    return _decode(raw_response, SynthesisOutput, SynthesisParseError, _project_synthesis)
