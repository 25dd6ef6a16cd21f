"""
app/domain/web_search.py

Domain models for the web-search boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SearchResult:
    """
    One organic web-search hit.
    """

    title: str
    snippet: str
    link: str
    position: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "snippet": self.snippet,
            "link": self.link,
            "position": self.position,
        }


@dataclass(frozen=True)
class WebSearchResponse:
    """
    Parsed web-search backend response.
    """

    results: list[SearchResult]
    knowledge_graph: dict[str, Any] | None = None
    related_searches: list[Any] = field(default_factory=list)
    total_results: int = 0
    timestamp: str | None = None
