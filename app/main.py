from __future__ import annotations

import logging
import os

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - LLM_ADAPTER must be one of gemini, openai or mock.
    - LLM API key check is skipped only when LLM_ADAPTER=mock.
    - WEB_SEARCH_URL must be non-empty whenever WEB_SEARCH_ENABLED is not false.
    """

    from app.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- LLM adapter ----------------------------------------------------
    adapter = os.getenv("LLM_ADAPTER", "gemini").strip().lower()
    allowed_adapters = ["gemini", "openai", "mock"]
    if adapter not in allowed_adapters:
        errors.append(
            f"LLM_ADAPTER='{adapter}' is not valid. Allowed values: {allowed_adapters}."
        )

    # --- LLM API key ----------------------------------------------------
    if adapter != "mock":
        provider_key_name = "OPENAI_API_KEY" if adapter == "openai" else "GEMINI_API_KEY"
        llm_api_key = os.getenv("LLM_API_KEY", "").strip()
        provider_api_key = os.getenv(provider_key_name, "").strip()
        if not llm_api_key and not provider_api_key:
            errors.append(
                f"LLM API key is not set. Provide LLM_API_KEY or {provider_key_name}. "
                "Empty strings are not permitted."
            )

    # --- Web search backend ---------------------------------------------
    search_enabled_raw = os.getenv("WEB_SEARCH_ENABLED", "true").strip().lower()
    search_enabled = search_enabled_raw in {"1", "true", "yes", "on"}
    if search_enabled and os.getenv("WEB_SEARCH_URL") is not None and not os.getenv("WEB_SEARCH_URL", "").strip():
        errors.append(
            "WEB_SEARCH_URL is empty but WEB_SEARCH_ENABLED is true. "
            "Set WEB_SEARCH_URL or disable web search with WEB_SEARCH_ENABLED=false."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Business Intelligence Agent API",
        version="1.0.0",
    )

    from app.api.routers import agent_router

    application.include_router(agent_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("API_HOST", "127.0.0.1"),
        port=int(os.getenv("API_PORT", "8000")),
        log_level="info",
    )
