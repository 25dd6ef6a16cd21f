"""
analysis_tools/product_analysis.py

Per-product sales, review and inventory analysis.
"""

from __future__ import annotations

from pydantic import Field

from analysis_tools.base import BaseTool, ToolMetadata, ToolName, ToolParams, ToolResult
from analysis_tools.dataset import BusinessDataset

_RECENT_REVIEWS = 3
_RECENT_SALES = 5


class ProductAnalysisParams(ToolParams):
    product_name: str = Field(
        min_length=1,
        description="The exact or partial name of the product to analyze",
    )


class FullProductAnalysisTool(BaseTool):
    name = ToolName.GET_FULL_PRODUCT_ANALYSIS
    description = (
        "Provides comprehensive analysis for a specific product including sales, "
        "reviews, inventory, and trends"
    )
    params_model = ProductAnalysisParams

    def run(
        self,
        params: ProductAnalysisParams,
        dataset: BusinessDataset,
        started: float,
    ) -> ToolResult:
        needle = params.product_name.lower()

        sales = [s for s in dataset.sales if needle in s.product.lower()]
        reviews = [r for r in dataset.reviews if needle in r.product.lower()]
        inventory = next((i for i in dataset.inventory if needle in i.product.lower()), None)

        total_revenue = sum(s.amount for s in sales)
        total_quantity = sum(s.quantity for s in sales)
        average_rating = sum(r.rating for r in reviews) / len(reviews) if reviews else 0.0

        data = {
            "product": params.product_name,
            "total_revenue": total_revenue,
            "sales_count": len(sales),
            "total_quantity_sold": total_quantity,
            "average_rating": f"{average_rating:.2f}",
            "current_stock": inventory.stock if inventory else 0,
            "price": inventory.price if inventory else 0,
            "category": inventory.category if inventory and inventory.category else "Unknown",
            "recent_reviews": [
                {"rating": r.rating, "review": r.review, "date": r.date}
                for r in reviews[-_RECENT_REVIEWS:]
            ],
            "sales_trend": [
                {"date": s.date, "amount": s.amount, "quantity": s.quantity}
                for s in sales[-_RECENT_SALES:]
            ],
        }

        return ToolResult(
            success=True,
            data=data,
            metadata=ToolMetadata(
                execution_time_ms=self.elapsed_ms(started),
                data_points=len(sales) + len(reviews),
                calculations=["revenue_calculation", "rating_analysis", "inventory_check"],
            ),
        )
