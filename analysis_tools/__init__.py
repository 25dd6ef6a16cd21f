"""
analysis_tools package marker.
"""

from analysis_tools.base import BaseTool, ToolMetadata, ToolName, ToolResult
from analysis_tools.dataset import (
    BusinessDataset,
    BusinessSummary,
    DataStore,
    InventoryRecord,
    ReviewRecord,
    SalesRecord,
)
from analysis_tools.registry import ToolRegistry, build_default_registry

__all__ = [
    "BaseTool",
    "BusinessDataset",
    "BusinessSummary",
    "DataStore",
    "InventoryRecord",
    "ReviewRecord",
    "SalesRecord",
    "ToolMetadata",
    "ToolName",
    "ToolRegistry",
    "ToolResult",
    "build_default_registry",
]
