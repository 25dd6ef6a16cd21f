"""
app/schemas package marker.
"""

from app.schemas.agent import DatasetPayload, DatasetSummaryResponse, QueryRequest

__all__ = [
    "DatasetPayload",
    "DatasetSummaryResponse",
    "QueryRequest",
]
