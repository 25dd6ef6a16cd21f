"""LLM adapters for planning and synthesis generation.

Provides a base interface and concrete adapters for the Gemini and
OpenAI-compatible APIs and a deterministic mock for testing.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from app.config import LLMSettings
from llm_synthesis.prompt_builder import PLANNING_TASK_MARKER

logger = logging.getLogger(__name__)


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Raw string response from the model (expected to be JSON).
        """


class GeminiLLMAdapter(BaseLLMAdapter):
    """Adapter for Google Gemini models through the google-genai SDK."""

    def __init__(
        self,
        model: str = "gemini-1.5-flash",
        max_tokens: int = 2048,
        api_key: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialise the Gemini adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum output tokens.
            api_key: Gemini API key. Falls back to GEMINI_API_KEY env var.
            timeout_seconds: Per-request timeout.
        """
        try:
            from google import genai  # type: ignore[import-untyped]
            from google.genai import types  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "google-genai package is required for GeminiLLMAdapter. "
                "Install it with: pip install google-genai"
            ) from exc

        resolved_key = api_key or os.environ.get("GEMINI_API_KEY", "")
        self._types = types
        self._client = genai.Client(
            api_key=resolved_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, prompt: str) -> str:
        response = self._client.models.generate_content(
            model=self._model,
            contents=prompt,
            config=self._types.GenerateContentConfig(
                temperature=0.0,
                max_output_tokens=self._max_tokens,
            ),
        )
        return getattr(response, "text", None) or ""


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Configured for deterministic, non-streaming output with
    low temperature suitable for structured JSON generation.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 2048,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Per-request timeout.
        """
        try:
            from openai import OpenAI  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAILLMAdapter. "
                "Install it with: pip install openai"
            ) from exc

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        client_kwargs: dict = {"api_key": resolved_key, "timeout": timeout_seconds, "max_retries": 0}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
            top_p=1,
            max_tokens=self._max_tokens,
            stream=False,
            seed=42,
        )
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Fixed mock responses used for local testing.
# ---------------------------------------------------------------------------
_MOCK_PLAN = {
    "intent": "sales_analysis",
    "complexity": "moderate",
    "requiresWebSearch": False,
    "steps": [
        {
            "id": "market_trends",
            "tool": "analyzeMarketTrends",
            "description": "Analyze sales trends across all categories",
            "params": {"productCategory": "all"},
        }
    ],
}

_MOCK_SYNTHESIS = {
    "insights": "Mock insight for testing purposes.",
    "analysis": "Mock analysis generated without a live model.",
    "recommendations": [
        "Verify integration with upstream tools.",
        "Review monthly revenue trends.",
        "Restock low inventory items.",
        "Monitor competitor pricing.",
        "Track customer review sentiment.",
    ],
}


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns fixed valid JSON responses.

    Used for local testing and CI pipelines where no LLM API
    is available. Planning prompts get a fixed plan; every other
    prompt gets a fixed synthesis.
    """

    def generate(self, prompt: str) -> str:
        if PLANNING_TASK_MARKER in prompt:
            return "```json\n" + json.dumps(_MOCK_PLAN, indent=2) + "\n```"
        return json.dumps(_MOCK_SYNTHESIS, indent=2)


class UnavailableLLMAdapter(BaseLLMAdapter):
    """Stands in for an adapter whose client could not be constructed.

    Every ``generate`` call raises the construction error, so the planner
    and synthesizer take their fallback paths instead of the caller
    seeing the failure when the agent is built.
    """

    def __init__(self, adapter: str, error: Exception) -> None:
        self.adapter = adapter
        self.error = error

    def generate(self, prompt: str) -> str:
        raise RuntimeError(f"{self.adapter} adapter unavailable: {self.error}") from self.error


def _construct_adapter(settings: LLMSettings) -> BaseLLMAdapter:
    if settings.adapter == "mock":
        return MockLLMAdapter()

    if settings.adapter == "openai":
        return OpenAILLMAdapter(
            model=settings.model,
            max_tokens=settings.max_tokens,
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
        )

    return GeminiLLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        api_key=settings.api_key,
        timeout_seconds=settings.timeout_seconds,
    )


def build_adapter(settings: LLMSettings) -> BaseLLMAdapter:
    """Instantiate the adapter selected by ``settings.adapter``.

    mock   -> MockLLMAdapter  (testing, no API key required)
    openai -> OpenAILLMAdapter
    gemini -> GeminiLLMAdapter (default)

    A client that fails to construct (missing key, missing SDK) yields an
    UnavailableLLMAdapter.
    """
    try:
        return _construct_adapter(settings)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "LLM adapter construction failed adapter=%s error=%s",
            settings.adapter,
            exc,
        )
        return UnavailableLLMAdapter(settings.adapter, exc)
