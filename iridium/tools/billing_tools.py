"""Billing metrics tools — revenue, conversion and revenue trend.

All money fields in tool output are integer minor units (cents). Each
result also carries a ``display`` map produced by ``format_minor_units`` so
the model never has to do the cents-to-dollars arithmetic itself.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from iridium.billing.money import format_minor_units
from iridium.errors import ToolArgumentError
from iridium.tools.base import BaseTool, CallerContext, DateRangeParams, ToolResult

if TYPE_CHECKING:
    from iridium.billing.client import BillingClient, MetricsTotals

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 90

REVENUE_MONEY_FIELDS = (
    "revenue",
    "net_revenue",
    "average_order_value",
    "net_average_order_value",
    "gross_margin",
    "cashflow",
)


def resolve_date_range(
    start_date: date | None, end_date: date | None, today: date | None = None
) -> tuple[date, date]:
    """Fill in defaults: end is today, start is three months before end."""
    end = end_date or today or date.today()
    start = start_date or end - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    return start, end


class RevenueTrendParams(DateRangeParams):
    interval: Literal["day", "month", "year"] = Field(
        default="month",
        description="Bucket size for the trend points.",
    )


class _BillingTool(BaseTool):
    category = "billing"
    params_model = DateRangeParams

    def __init__(self, billing: BillingClient, currency: str = "usd") -> None:
        self._billing = billing
        self._currency = currency

    def _date_range(self, start_date: date | None, end_date: date | None) -> tuple[date, date]:
        start, end = resolve_date_range(start_date, end_date)
        if start > end:
            raise ToolArgumentError(self.name, "start_date must not be after end_date")
        return start, end

    def _display(self, values: dict[str, int]) -> dict[str, str]:
        return {k: format_minor_units(v, self._currency) for k, v in values.items()}


class GetRevenueMetricsTool(_BillingTool):
    name = "get_revenue_metrics"
    description = (
        "Get core revenue and sales metrics: total revenue, net revenue, number of "
        "orders, average order value, gross margin and cashflow. Money values are "
        "integer cents; use the 'display' values when quoting amounts. Defaults to "
        "the last 3 months if no dates are given."
    )

    async def execute(
        self,
        caller: CallerContext,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ToolResult:
        start, end = self._date_range(start_date, end_date)
        report = await self._billing.get_metrics(
            start, end, interval="month", external_customer_id=caller.user_id
        )
        totals: MetricsTotals = report.totals
        money = {field: getattr(totals, field) for field in REVENUE_MONEY_FIELDS}
        return ToolResult(
            data={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "currency": self._currency,
                "orders": totals.orders,
                **money,
                "gross_margin_percentage": totals.gross_margin_percentage,
                "display": self._display(money),
            }
        )


class GetConversionMetricsTool(_BillingTool):
    name = "get_conversion_metrics"
    description = (
        "Get checkout conversion metrics: checkouts started, succeeded checkouts, "
        "conversion rate (0-1) and orders. Defaults to the last 3 months."
    )

    async def execute(
        self,
        caller: CallerContext,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ToolResult:
        start, end = self._date_range(start_date, end_date)
        report = await self._billing.get_metrics(
            start, end, interval="month", external_customer_id=caller.user_id
        )
        totals = report.totals
        return ToolResult(
            data={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "checkouts": totals.checkouts,
                "succeeded_checkouts": totals.succeeded_checkouts,
                "checkout_conversion": totals.checkout_conversion,
                "orders": totals.orders,
            }
        )


class GetRevenueTrendTool(_BillingTool):
    name = "get_revenue_trend"
    description = (
        "Get revenue over time as a series of points (revenue and net revenue in "
        "integer cents, plus orders) bucketed by day, month or year."
    )
    params_model = RevenueTrendParams

    async def execute(
        self,
        caller: CallerContext,
        start_date: date | None = None,
        end_date: date | None = None,
        interval: str = "month",
    ) -> ToolResult:
        start, end = self._date_range(start_date, end_date)
        report = await self._billing.get_metrics(
            start, end, interval=interval, external_customer_id=caller.user_id
        )
        points: list[dict[str, Any]] = [
            {
                "date": p.timestamp[:10],
                "revenue": p.revenue,
                "net_revenue": p.net_revenue,
                "orders": p.orders,
                "display": self._display({"revenue": p.revenue, "net_revenue": p.net_revenue}),
            }
            for p in report.periods
        ]
        return ToolResult(
            data={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "interval": interval,
                "currency": self._currency,
                "points": points,
            }
        )


def billing_tools(billing: BillingClient, currency: str = "usd") -> list[BaseTool]:
    """All billing tools bound to one client."""
    return [
        GetRevenueMetricsTool(billing, currency),
        GetConversionMetricsTool(billing, currency),
        GetRevenueTrendTool(billing, currency),
    ]
