"""
analysis_tools/dataset.py

Business dataset records and the per-session data store.

Records are produced by the surrounding application (CSV upload and
validation live outside this package) and are treated as read-only here.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Mapping


def _pick(row: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present value among alternative column spellings."""
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return default


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%d-%m-%Y", "%Y/%m/%d")


def parse_record_date(value: Any) -> date | None:
    """
    Parse a record date; returns None when the value is not a recognizable date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value or "").strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


@dataclass(frozen=True)
class SalesRecord:
    date: str
    product: str
    category: str
    quantity: int
    amount: float

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "SalesRecord":
        return cls(
            date=str(_pick(row, "Date", "date", default="")),
            product=str(_pick(row, "Product", "product", default="")),
            category=str(_pick(row, "Category", "category", default="")),
            quantity=_to_int(_pick(row, "Quantity", "quantity", default=0)),
            amount=_to_float(_pick(row, "Amount", "amount", default=0.0)),
        )


@dataclass(frozen=True)
class InventoryRecord:
    product: str
    category: str
    stock: int
    price: float
    min_alert: int | None = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "InventoryRecord":
        min_alert = _pick(row, "Min_Alert", "min_alert")
        return cls(
            product=str(_pick(row, "Product", "product", default="")),
            category=str(_pick(row, "Category", "category", default="")),
            stock=_to_int(_pick(row, "Stock", "stock", default=0)),
            price=_to_float(_pick(row, "Price", "price", default=0.0)),
            min_alert=_to_int(min_alert) if min_alert not in (None, "") else None,
        )


@dataclass(frozen=True)
class ReviewRecord:
    date: str
    product: str
    rating: float
    review: str

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "ReviewRecord":
        return cls(
            date=str(_pick(row, "Date", "date", default="")),
            product=str(_pick(row, "Product", "product", default="")),
            rating=_to_float(_pick(row, "Rating", "rating", default=0.0)),
            review=str(_pick(row, "Review", "review", default="")),
        )


@dataclass(frozen=True)
class BusinessSummary:
    """
    Aggregate snapshot produced by the ingestion pipeline.
    """

    total_revenue: float = 0.0
    total_orders: int = 0
    average_order_value: float = 0.0
    average_rating: float = 0.0

    def to_context(self) -> dict[str, Any]:
        return {
            "totalRevenue": self.total_revenue,
            "totalOrders": self.total_orders,
            "averageOrderValue": self.average_order_value,
            "averageRating": self.average_rating,
        }


@dataclass(frozen=True)
class BusinessDataset:
    """
    Immutable sales / inventory / reviews snapshot.
    """

    sales: tuple[SalesRecord, ...] = field(default_factory=tuple)
    inventory: tuple[InventoryRecord, ...] = field(default_factory=tuple)
    reviews: tuple[ReviewRecord, ...] = field(default_factory=tuple)

    @classmethod
    def from_rows(
        cls,
        *,
        sales: Iterable[Mapping[str, Any]] = (),
        inventory: Iterable[Mapping[str, Any]] = (),
        reviews: Iterable[Mapping[str, Any]] = (),
    ) -> "BusinessDataset":
        return cls(
            sales=tuple(SalesRecord.from_mapping(row) for row in sales),
            inventory=tuple(InventoryRecord.from_mapping(row) for row in inventory),
            reviews=tuple(ReviewRecord.from_mapping(row) for row in reviews),
        )

    def summarize(self) -> BusinessSummary:
        total_revenue = sum(record.amount for record in self.sales)
        total_orders = len(self.sales)
        ratings = [record.rating for record in self.reviews]
        return BusinessSummary(
            total_revenue=total_revenue,
            total_orders=total_orders,
            average_order_value=total_revenue / total_orders if total_orders else 0.0,
            average_rating=round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
        )


class DataStore:
    """
    Holder for the currently loaded dataset.

    The dataset is replaced wholesale; readers take a snapshot once per
    query so a concurrent replacement never changes an in-flight analysis.
    """

    def __init__(self, dataset: BusinessDataset | None = None) -> None:
        self._lock = threading.Lock()
        self._dataset = dataset

    def load(self, dataset: BusinessDataset | None) -> None:
        with self._lock:
            self._dataset = dataset

    def clear(self) -> None:
        self.load(None)

    def snapshot(self) -> BusinessDataset | None:
        with self._lock:
            return self._dataset
