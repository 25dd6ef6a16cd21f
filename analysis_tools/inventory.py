"""
analysis_tools/inventory.py

Low-stock detection with demand and urgency estimates.
"""

from __future__ import annotations

import math
from typing import Any

from analysis_tools.base import BaseTool, ToolMetadata, ToolName, ToolParams, ToolResult
from analysis_tools.dataset import BusinessDataset, InventoryRecord

URGENCY_CRITICAL = "Critical"
URGENCY_HIGH = "High"
URGENCY_MEDIUM = "Medium"


def classify_urgency(stock: int) -> str:
    if stock <= 0:
        return URGENCY_CRITICAL
    if stock <= 2:
        return URGENCY_HIGH
    return URGENCY_MEDIUM


class LowStockItemsTool(BaseTool):
    """
    Lists inventory items below their alert threshold.

    ``sales_window_months`` is the number of months the sales rows are
    assumed to span when estimating average monthly demand.
    """

    name = ToolName.GET_LOW_STOCK_ITEMS
    description = (
        "Returns detailed analysis of products with low stock levels, including "
        "urgency and revenue impact"
    )

    def __init__(self, *, default_min_alert: int = 5, sales_window_months: int = 3) -> None:
        self._default_min_alert = default_min_alert
        self._sales_window_months = max(1, sales_window_months)

    def _threshold(self, item: InventoryRecord) -> int:
        return item.min_alert if item.min_alert is not None else self._default_min_alert

    def run(
        self,
        params: ToolParams,
        dataset: BusinessDataset,
        started: float,
    ) -> ToolResult:
        revenue_by_product: dict[str, float] = {}
        orders_by_product: dict[str, int] = {}
        for sale in dataset.sales:
            revenue_by_product[sale.product] = revenue_by_product.get(sale.product, 0.0) + sale.amount
            orders_by_product[sale.product] = orders_by_product.get(sale.product, 0) + 1

        low_stock: list[dict[str, Any]] = []
        for item in dataset.inventory:
            threshold = self._threshold(item)
            if item.stock >= threshold:
                continue

            avg_monthly_sales = orders_by_product.get(item.product, 0) / self._sales_window_months
            if avg_monthly_sales > 0:
                stockout_days: int | str = math.floor(item.stock / (avg_monthly_sales / 30))
            else:
                stockout_days = "Unknown"

            low_stock.append(
                {
                    "product": item.product,
                    "current_stock": item.stock,
                    "min_alert": threshold,
                    "category": item.category,
                    "price": item.price,
                    "total_revenue": revenue_by_product.get(item.product, 0.0),
                    "avg_monthly_sales": f"{avg_monthly_sales:.1f}",
                    "urgency": classify_urgency(item.stock),
                    "estimated_stockout_days": stockout_days,
                }
            )

        low_stock.sort(key=lambda entry: entry["current_stock"])
        critical = [entry for entry in low_stock if entry["urgency"] == URGENCY_CRITICAL]

        return ToolResult(
            success=True,
            data={
                "low_stock_items": low_stock,
                "total_items_low_stock": len(low_stock),
                "critical_items": critical,
                "total_value_at_risk": sum(entry["total_revenue"] for entry in low_stock),
            },
            metadata=ToolMetadata(
                execution_time_ms=self.elapsed_ms(started),
                data_points=len(dataset.inventory),
                calculations=["stock_analysis", "demand_calculation", "urgency_scoring"],
            ),
        )
