"""
tests/test_web_search_connector.py

Web-search connector against a fake requests session: parsing, retry with
backoff, and error-body reporting.
"""

from __future__ import annotations

import json
import threading
from typing import Any

import pytest
import requests

from app.config import ExternalHTTPSettings, WebSearchSettings
from app.connectors import base as connector_base
from app.connectors.web_search_connector import WebSearchConnector, WebSearchError


def _response(status_code: int, payload: Any = None, *, raw: bytes | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = raw if raw is not None else json.dumps(payload).encode("utf-8")
    return response


class _FakeSession:
    def __init__(self, *outcomes: Any) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> requests.Response:
        self.calls.append(kwargs)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    sleeps: list[float] = []
    monkeypatch.setattr(connector_base.time, "sleep", sleeps.append)
    return sleeps


def _connector(session: _FakeSession, *, enabled: bool = True, api_key: str | None = None) -> WebSearchConnector:
    return WebSearchConnector(
        settings=WebSearchSettings(enabled=enabled, url="http://search.test/api/web-search", api_key=api_key),
        http_settings=ExternalHTTPSettings(max_retries=1, rate_limit_per_second=0),
        session=session,  # type: ignore[arg-type]
    )


SEARCH_BODY = {
    "results": [
        {"title": "Coastal Marine", "snippet": "Boats from ₹85,000", "link": "https://example.com/a", "position": 1},
        {"title": "No position", "snippet": "Yachts", "link": "https://example.com/b"},
        "garbage",
    ],
    "knowledgeGraph": {"title": "Boating"},
    "relatedSearches": ["boat prices"],
    "totalResults": "120",
    "timestamp": "2024-04-01T00:00:00Z",
}


class TestWebSearchConnector:
    def test_posts_query_and_parses_results(self) -> None:
        session = _FakeSession(_response(200, SEARCH_BODY))
        result = _connector(session, api_key="secret").search("boat competitors")

        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["json"] == {"query": "boat competitors"}
        assert call["headers"]["Authorization"] == "Bearer secret"

        assert [r.link for r in result.results] == ["https://example.com/a", "https://example.com/b"]
        assert result.results[1].position is None
        assert result.knowledge_graph == {"title": "Boating"}
        assert result.related_searches == ["boat prices"]
        assert result.total_results == 120

    def test_retries_once_on_server_error(self, _no_sleep: list[float]) -> None:
        session = _FakeSession(_response(503, {"error": "busy"}), _response(200, {"results": []}))
        result = _connector(session).search("boats")

        assert result.results == []
        assert len(session.calls) == 2
        assert _no_sleep == [0.5]

    def test_retries_once_on_timeout_then_fails(self) -> None:
        session = _FakeSession(requests.Timeout("slow"), requests.Timeout("slow again"))
        with pytest.raises(WebSearchError, match="after retries"):
            _connector(session).search("boats")
        assert len(session.calls) == 2

    def test_client_error_reports_error_field(self) -> None:
        session = _FakeSession(_response(400, {"error": "query too long"}))
        with pytest.raises(WebSearchError) as exc_info:
            _connector(session).search("boats")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "query too long"
        assert len(session.calls) == 1

    def test_client_error_without_body_is_reported(self) -> None:
        session = _FakeSession(_response(404, raw=b"<html>not found</html>"))
        with pytest.raises(WebSearchError) as exc_info:
            _connector(session).search("boats")
        assert exc_info.value.detail == "error response did not include a parsable error body"

    def test_results_must_be_a_list(self) -> None:
        session = _FakeSession(_response(200, {"results": {"title": "x"}}))
        with pytest.raises(WebSearchError, match="must be a list"):
            _connector(session).search("boats")

    def test_disabled_backend_raises_without_calling(self) -> None:
        session = _FakeSession()
        with pytest.raises(WebSearchError, match="disabled"):
            _connector(session, enabled=False).search("boats")
        assert session.calls == []

    def test_rate_limit_spacing_holds_across_threads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        clock = [0.0]
        sleeps: list[float] = []

        def _sleep(seconds: float) -> None:
            sleeps.append(seconds)
            clock[0] += seconds

        monkeypatch.setattr(connector_base.time, "monotonic", lambda: clock[0])
        monkeypatch.setattr(connector_base.time, "sleep", _sleep)

        workers = 4
        session = _FakeSession(*[_response(200, {"results": []}) for _ in range(workers)])
        connector = WebSearchConnector(
            settings=WebSearchSettings(enabled=True, url="http://search.test/api/web-search"),
            http_settings=ExternalHTTPSettings(max_retries=0, rate_limit_per_second=2.0),
            session=session,  # type: ignore[arg-type]
        )
        barrier = threading.Barrier(workers)

        def _search() -> None:
            barrier.wait()
            connector.search("boats")

        threads = [threading.Thread(target=_search) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(session.calls) == workers
        assert sleeps == [0.5] * workers
        assert clock[0] == 2.0
