"""Vendor dashboards: kitchen summary, status counts and sales reports."""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from campus_rentals.errors import InvalidRequestError
from campus_rentals.models.common import utcnow
from campus_rentals.models.requests import RequestRecord, RequestStatus

ReportWindow = Literal["today", "week", "month"]

KITCHEN_STATUSES = (RequestStatus.PENDING, RequestStatus.PREPARING)
ACTIVE_STATUSES = (
    RequestStatus.PENDING,
    RequestStatus.PREPARING,
    RequestStatus.OUT_FOR_DELIVERY,
)


class ItemSales(BaseModel):
    name: str
    quantity: int


class SalesReport(BaseModel):
    """Aggregated sales for one shop over a window."""

    window: ReportWindow
    start: datetime
    end: datetime
    revenue: Decimal = Decimal("0.00")
    order_count: int = 0
    average_order_value: Decimal = Decimal("0.00")
    rejected_count: int = 0
    top_items: list[ItemSales] = Field(default_factory=list)
    daily_revenue: dict[str, Decimal] = Field(default_factory=dict)


def window_start(window: ReportWindow, now: datetime) -> datetime:
    """Start of a report window ending at `now`."""
    if window == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == "week":
        return now - timedelta(days=7)
    if window == "month":
        return now - timedelta(days=30)
    raise InvalidRequestError(f"Unknown report window: {window}", window=window)


def kitchen_summary(orders: list[RequestRecord]) -> dict[str, int]:
    """Units to prepare per item name across pending and preparing orders."""
    totals: Counter[str] = Counter()
    for order in orders:
        if order.status in KITCHEN_STATUSES:
            for line in order.line_items:
                totals[line.name] += line.quantity
    return dict(totals.most_common())


def status_counts(orders: list[RequestRecord]) -> dict[str, int]:
    """Number of orders in each active status."""
    counts = {status.value: 0 for status in ACTIVE_STATUSES}
    for order in orders:
        if order.status in ACTIVE_STATUSES:
            counts[order.status.value] += 1
    return counts


def sales_report(
    orders: list[RequestRecord],
    window: ReportWindow = "week",
    now: datetime | None = None,
) -> SalesReport:
    """
    Revenue figures for orders created inside the window.

    Rejected orders are counted separately and contribute no revenue.
    """
    now = now or utcnow()
    start = window_start(window, now)
    in_window = [order for order in orders if start <= order.created_at <= now]

    report = SalesReport(window=window, start=start, end=now)
    item_counts: Counter[str] = Counter()
    daily: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))

    for order in in_window:
        if order.status == RequestStatus.REJECTED:
            report.rejected_count += 1
            continue
        report.order_count += 1
        report.revenue += order.total
        daily[order.created_at.date().isoformat()] += order.total
        for line in order.line_items:
            item_counts[line.name] += line.quantity

    if report.order_count:
        report.average_order_value = (report.revenue / report.order_count).quantize(Decimal("0.01"))
    report.top_items = [
        ItemSales(name=name, quantity=quantity) for name, quantity in item_counts.most_common(5)
    ]
    report.daily_revenue = dict(sorted(daily.items()))
    return report

