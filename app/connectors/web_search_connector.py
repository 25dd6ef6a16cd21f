"""
app/connectors/web_search_connector.py

Web-search backend connector used for competitor research.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from app.config import ExternalHTTPSettings, WebSearchSettings
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.domain.web_search import SearchResult, WebSearchResponse

logger = logging.getLogger(__name__)


class WebSearchError(ConnectorRequestError):
    """
    Raised when the web-search backend is disabled, unreachable or returns a malformed body.
    """


class WebSearchConnector(BaseConnector):
    """
    POSTs ``{"query": ...}`` to the configured search endpoint and parses the reply.
    """

    def __init__(
        self,
        *,
        settings: WebSearchSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="web_search", http_settings=http_settings, session=session)
        self._settings = settings

    def search(self, query: str) -> WebSearchResponse:
        if not self._settings.enabled:
            raise WebSearchError("web_search: backend disabled by configuration.")

        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"

        try:
            payload = self._request_json(
                method="POST",
                url=self._settings.url,
                json_body={"query": query},
                headers=headers,
            )
        except WebSearchError:
            raise
        except ConnectorRequestError as exc:
            raise WebSearchError(str(exc), status_code=exc.status_code, detail=exc.detail) from exc

        return self._parse_response(payload)

    def _parse_response(self, payload: Any) -> WebSearchResponse:
        if not isinstance(payload, dict):
            raise WebSearchError("web_search: response body must be a JSON object.")

        raw_results = payload.get("results")
        if raw_results is None:
            raw_results = []
        if not isinstance(raw_results, list):
            raise WebSearchError("web_search: 'results' must be a list.")

        results: list[SearchResult] = []
        for index, item in enumerate(raw_results):
            parsed = self._normalize_result(item)
            if parsed is None:
                logger.warning("Skipping malformed web-search result index=%s", index)
                continue
            results.append(parsed)

        knowledge_graph = payload.get("knowledgeGraph")
        related = payload.get("relatedSearches")
        total = payload.get("totalResults")
        try:
            total_results = int(total) if total is not None else len(results)
        except (TypeError, ValueError):
            total_results = len(results)

        return WebSearchResponse(
            results=results,
            knowledge_graph=knowledge_graph if isinstance(knowledge_graph, dict) else None,
            related_searches=related if isinstance(related, list) else [],
            total_results=total_results,
            timestamp=payload.get("timestamp"),
        )

    @staticmethod
    def _normalize_result(item: Any) -> SearchResult | None:
        if not isinstance(item, dict):
            return None

        position = item.get("position")
        try:
            position = int(position) if position is not None else None
        except (TypeError, ValueError):
            position = None

        return SearchResult(
            title=str(item.get("title") or ""),
            snippet=str(item.get("snippet") or ""),
            link=str(item.get("link") or ""),
            position=position,
        )
