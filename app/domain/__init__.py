"""
app/domain package marker.
"""

from app.domain.web_search import SearchResult, WebSearchResponse

__all__ = [
    "SearchResult",
    "WebSearchResponse",
]
