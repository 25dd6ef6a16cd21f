"""
analysis_tools/market_trends.py

Category-level monthly trend, growth and seasonality analysis over sales history.

Formulas
--------
Growth rate   = (last_month_revenue - first_month_revenue) / first_month_revenue
Peak month    = revenue > 1.2 * mean monthly revenue
Low month     = revenue < 0.8 * mean monthly revenue
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from analysis_tools.base import BaseTool, ToolMetadata, ToolName, ToolParams, ToolResult
from analysis_tools.dataset import BusinessDataset, SalesRecord, parse_record_date

ALL_CATEGORIES = "all"
_TOP_PRODUCTS = 5
_SEASONALITY_MIN_MONTHS = 6
_PEAK_FACTOR = 1.2
_LOW_FACTOR = 0.8


class MarketTrendParams(ToolParams):
    product_category: str = Field(
        default=ALL_CATEGORIES,
        description="Product category to analyze trends for ('all' for every category)",
    )


def _matches_category(record: SalesRecord, category: str) -> bool:
    if not category or category == ALL_CATEGORIES:
        return True
    return category in record.category.lower()


def monthly_buckets(sales: list[SalesRecord]) -> tuple[list[dict[str, Any]], int]:
    """
    Group sales into ``YYYY-MM`` buckets sorted by month.

    Returns the buckets and the number of rows skipped for unparseable dates.
    """
    buckets: dict[str, dict[str, Any]] = {}
    skipped = 0
    for sale in sales:
        parsed = parse_record_date(sale.date)
        if parsed is None:
            skipped += 1
            continue
        month = parsed.strftime("%Y-%m")
        bucket = buckets.setdefault(month, {"revenue": 0.0, "orders": 0, "quantity": 0})
        bucket["revenue"] += sale.amount
        bucket["orders"] += 1
        bucket["quantity"] += sale.quantity

    trends = [
        {
            "month": month,
            **values,
            "avg_order_value": values["revenue"] / values["orders"],
        }
        for month, values in sorted(buckets.items())
    ]
    return trends, skipped


def growth_rate(monthly_trends: list[dict[str, Any]]) -> tuple[str, float | None]:
    if len(monthly_trends) < 2:
        return "Insufficient data", None

    first = monthly_trends[0]["revenue"]
    last = monthly_trends[-1]["revenue"]
    if first == 0:
        return "N/A", None

    rate = (last - first) / first * 100
    return f"{rate:.1f}% over {len(monthly_trends)} months", rate


def top_products(sales: list[SalesRecord], limit: int = _TOP_PRODUCTS) -> list[dict[str, Any]]:
    revenue: dict[str, float] = {}
    for sale in sales:
        revenue[sale.product] = revenue.get(sale.product, 0.0) + sale.amount
    ranked = sorted(revenue.items(), key=lambda item: item[1], reverse=True)
    return [{"product": product, "revenue": amount} for product, amount in ranked[:limit]]


def seasonality(monthly_trends: list[dict[str, Any]]) -> dict[str, Any]:
    if len(monthly_trends) < _SEASONALITY_MIN_MONTHS:
        return {"pattern": "Insufficient data for seasonality analysis"}

    average = sum(m["revenue"] for m in monthly_trends) / len(monthly_trends)
    peak_months = [m["month"] for m in monthly_trends if m["revenue"] > average * _PEAK_FACTOR]
    low_months = [m["month"] for m in monthly_trends if m["revenue"] < average * _LOW_FACTOR]

    return {
        "pattern": "Seasonal variations detected" if peak_months else "Consistent performance",
        "peak_months": peak_months,
        "low_months": low_months,
        "avg_monthly_revenue": f"{average:.0f}",
    }


class MarketTrendsTool(BaseTool):
    name = ToolName.ANALYZE_MARKET_TRENDS
    description = (
        "Analyzes market trends for a specific product category using historical "
        "sales data and pattern recognition"
    )
    params_model = MarketTrendParams

    def run(
        self,
        params: MarketTrendParams,
        dataset: BusinessDataset,
        started: float,
    ) -> ToolResult:
        category = params.product_category.lower()
        category_sales = [s for s in dataset.sales if _matches_category(s, category)]

        products = {s.product for s in category_sales}
        ratings = [r.rating for r in dataset.reviews if r.product in products]
        average_rating = sum(ratings) / len(ratings) if ratings else 0.0

        trends, skipped = monthly_buckets(category_sales)
        growth_text, growth_value = growth_rate(trends)

        data = {
            "category": params.product_category,
            "total_revenue": sum(s.amount for s in category_sales),
            "average_rating": f"{average_rating:.2f}",
            "total_orders": len(category_sales),
            "monthly_trends": trends,
            "growth_rate": growth_text,
            "growth_rate_percent": growth_value,
            "top_products": top_products(category_sales),
            "seasonality": seasonality(trends),
            "skipped_rows": skipped,
        }

        return ToolResult(
            success=True,
            data=data,
            metadata=ToolMetadata(
                execution_time_ms=self.elapsed_ms(started),
                data_points=len(category_sales),
                calculations=["trend_analysis", "growth_calculation", "seasonality_analysis"],
            ),
        )
