"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError
from app.connectors.web_search_connector import WebSearchConnector, WebSearchError

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "WebSearchConnector",
    "WebSearchError",
]
