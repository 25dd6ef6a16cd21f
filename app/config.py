"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """
    Read a comma-separated list from environment variables.
    """

    raw_value = _get_optional_str_env(name)
    if raw_value is None:
        return default
    items = tuple(item.strip().lower() for item in raw_value.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class LLMSettings:
    """
    Generative-text model adapter settings.
    """

    adapter: str = "gemini"
    model: str = "gemini-1.5-flash"
    api_key: str | None = None
    base_url: str | None = None
    max_tokens: int = 2048
    timeout_seconds: float = 30.0
    max_format_retries: int = 1


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external connectors.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 1
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class WebSearchSettings:
    """
    Web-search backend settings used by the competitor search tool.
    """

    enabled: bool = True
    url: str = "http://127.0.0.1:3000/api/web-search"
    api_key: str | None = None
    query_qualifier: str = "competitors pricing Indian market boat yacht marine industry"
    domain_keywords: tuple[str, ...] = ("boat", "yacht", "marine")
    max_results: int = 8
    max_sources: int = 5


@dataclass(frozen=True)
class AgentSettings:
    """
    Planner, executor and chart heuristics.
    """

    default_min_alert: int = 5
    sales_window_months: int = 3
    inventory_capacity: int = 20
    product_vocabulary: tuple[str, ...] = (
        "yacht",
        "boat",
        "speedboat",
        "sailboat",
        "kayak",
        "canoe",
    )
    competitor_keywords: tuple[str, ...] = (
        "boat",
        "yacht",
        "marine",
        "water sports",
        "speedboat",
        "sailing",
    )
    default_competitor_search: str = "marine boat yacht competitors India market research"
    comprehensive_search: str = "business intelligence market research India"
    comprehensive_category: str = "marine"
    max_parallel_tools: int = 1
    memory_max_entries: int = 50
    recent_context_queries: int = 3


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Return generative-text model settings from environment variables.
    """

    adapter = _get_str_env("LLM_ADAPTER", "gemini").lower()
    default_model = "gpt-4o-mini" if adapter == "openai" else "gemini-1.5-flash"
    api_key = (
        _get_optional_str_env("LLM_API_KEY")
        or _get_optional_str_env("GEMINI_API_KEY" if adapter == "gemini" else "OPENAI_API_KEY")
    )
    return LLMSettings(
        adapter=adapter,
        model=_get_str_env("LLM_MODEL", default_model),
        api_key=api_key,
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 2048)),
        timeout_seconds=max(1.0, _get_float_env("LLM_TIMEOUT_SECONDS", 30.0)),
        max_format_retries=max(0, _get_int_env("LLM_MAX_FORMAT_RETRIES", 1)),
    )


@lru_cache(maxsize=1)
def get_web_search_http_settings() -> ExternalHTTPSettings:
    """
    Return HTTP behavior settings for the web-search connector.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("WEB_SEARCH_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("WEB_SEARCH_MAX_RETRIES", 1)),
        backoff_initial_seconds=max(0.1, _get_float_env("WEB_SEARCH_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("WEB_SEARCH_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("WEB_SEARCH_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_web_search_settings() -> WebSearchSettings:
    """
    Return web-search backend settings from environment variables.
    """

    defaults = WebSearchSettings()
    return WebSearchSettings(
        enabled=_get_bool_env("WEB_SEARCH_ENABLED", True),
        url=_get_str_env("WEB_SEARCH_URL", defaults.url),
        api_key=_get_optional_str_env("WEB_SEARCH_API_KEY"),
        query_qualifier=_get_str_env("WEB_SEARCH_QUERY_QUALIFIER", defaults.query_qualifier),
        domain_keywords=_get_list_env("WEB_SEARCH_DOMAIN_KEYWORDS", defaults.domain_keywords),
        max_results=max(1, _get_int_env("WEB_SEARCH_MAX_RESULTS", defaults.max_results)),
        max_sources=max(1, _get_int_env("WEB_SEARCH_MAX_SOURCES", defaults.max_sources)),
    )


@lru_cache(maxsize=1)
def get_agent_settings() -> AgentSettings:
    """
    Return agent heuristics from environment variables.
    """

    defaults = AgentSettings()
    return AgentSettings(
        default_min_alert=max(0, _get_int_env("AGENT_DEFAULT_MIN_ALERT", defaults.default_min_alert)),
        sales_window_months=max(1, _get_int_env("AGENT_SALES_WINDOW_MONTHS", defaults.sales_window_months)),
        inventory_capacity=max(0, _get_int_env("AGENT_INVENTORY_CAPACITY", defaults.inventory_capacity)),
        product_vocabulary=_get_list_env("AGENT_PRODUCT_VOCABULARY", defaults.product_vocabulary),
        competitor_keywords=_get_list_env("AGENT_COMPETITOR_KEYWORDS", defaults.competitor_keywords),
        default_competitor_search=_get_str_env(
            "AGENT_DEFAULT_COMPETITOR_SEARCH", defaults.default_competitor_search
        ),
        comprehensive_search=_get_str_env("AGENT_COMPREHENSIVE_SEARCH", defaults.comprehensive_search),
        comprehensive_category=_get_str_env(
            "AGENT_COMPREHENSIVE_CATEGORY", defaults.comprehensive_category
        ),
        max_parallel_tools=max(1, _get_int_env("AGENT_MAX_PARALLEL_TOOLS", defaults.max_parallel_tools)),
        memory_max_entries=max(1, _get_int_env("AGENT_MEMORY_MAX_ENTRIES", defaults.memory_max_entries)),
        recent_context_queries=max(
            0, _get_int_env("AGENT_RECENT_CONTEXT_QUERIES", defaults.recent_context_queries)
        ),
    )
