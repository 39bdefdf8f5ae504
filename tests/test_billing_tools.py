"""Tests for the billing metrics tools."""

from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from iridium.billing.client import BillingClient, MetricsReport
from iridium.errors import UpstreamProviderError
from iridium.tools import build_registry
from iridium.tools.base import CallerContext
from iridium.tools.billing_tools import (
    DEFAULT_LOOKBACK_DAYS,
    GetConversionMetricsTool,
    GetRevenueMetricsTool,
    GetRevenueTrendTool,
    resolve_date_range,
)
from tests.fakes import metrics_payload, mock_billing_http

CALLER = CallerContext(user_id="u1", thread_id="t1")


def _billing(requests: list[httpx.Request] | None = None, payload=None) -> BillingClient:
    return BillingClient(
        access_token="tok",
        base_url="https://billing.example.com",
        http_client=mock_billing_http(payload, requests=requests),
    )


# -- resolve_date_range --------------------------------------------------------


def test_default_range_is_three_months() -> None:
    start, end = resolve_date_range(None, None, today=date(2025, 6, 30))
    assert end == date(2025, 6, 30)
    assert (end - start).days == DEFAULT_LOOKBACK_DAYS


def test_explicit_range_kept() -> None:
    assert resolve_date_range(date(2025, 1, 1), date(2025, 1, 31)) == (
        date(2025, 1, 1),
        date(2025, 1, 31),
    )


def test_start_defaults_relative_to_end() -> None:
    start, _ = resolve_date_range(None, date(2025, 4, 1))
    assert start == date(2025, 1, 1)


# -- get_revenue_metrics -------------------------------------------------------


async def test_revenue_metrics_are_integer_cents() -> None:
    tool = GetRevenueMetricsTool(_billing())
    result = await tool.execute(CALLER, start_date=date(2025, 1, 1), end_date=date(2025, 3, 31))

    assert result.success
    assert result.data["revenue"] == 123456
    assert isinstance(result.data["revenue"], int)
    assert result.data["orders"] == 12
    assert result.data["currency"] == "usd"
    assert result.data["start_date"] == "2025-01-01"
    assert result.data["end_date"] == "2025-03-31"


async def test_revenue_metrics_display_map() -> None:
    tool = GetRevenueMetricsTool(_billing())
    result = await tool.execute(CALLER)

    assert result.data["display"]["revenue"] == "$1,234.56"
    assert result.data["display"]["net_revenue"] == "$1,100.00"
    assert "orders" not in result.data["display"]


async def test_revenue_metrics_scoped_to_caller() -> None:
    requests: list[httpx.Request] = []
    tool = GetRevenueMetricsTool(_billing(requests))
    await tool.execute(CallerContext(user_id="user-42"))

    assert requests[0].url.params["external_customer_id"] == "user-42"


async def test_revenue_metrics_propagates_provider_error() -> None:
    billing = MagicMock()
    billing.get_metrics = AsyncMock(
        side_effect=UpstreamProviderError("billing", "API returned 503")
    )
    tool = GetRevenueMetricsTool(billing)
    with pytest.raises(UpstreamProviderError):
        await tool.execute(CALLER)


# -- get_conversion_metrics ----------------------------------------------------


async def test_conversion_metrics() -> None:
    tool = GetConversionMetricsTool(_billing())
    result = await tool.execute(CALLER)

    assert result.data["checkouts"] == 40
    assert result.data["succeeded_checkouts"] == 12
    assert result.data["checkout_conversion"] == pytest.approx(0.3)


# -- get_revenue_trend ---------------------------------------------------------


async def test_revenue_trend_points() -> None:
    requests: list[httpx.Request] = []
    tool = GetRevenueTrendTool(_billing(requests))
    result = await tool.execute(CALLER, interval="month")

    points = result.data["points"]
    assert [p["date"] for p in points] == ["2025-01-01", "2025-02-01"]
    assert points[1]["revenue"] == 73456
    assert points[1]["display"]["revenue"] == "$734.56"
    assert requests[0].url.params["interval"] == "month"


async def test_trend_uses_other_currency() -> None:
    tool = GetRevenueTrendTool(_billing(payload=metrics_payload()), currency="eur")
    result = await tool.execute(CALLER)
    assert result.data["points"][0]["display"]["revenue"] == "€500.00"


# -- registry wiring -----------------------------------------------------------


async def test_registry_runs_revenue_tool_end_to_end(notes) -> None:
    registry = build_registry(notes, _billing())
    result = await registry.execute(
        "get_revenue_metrics", {"start_date": "2025-01-01", "end_date": "2025-03-31"}, CALLER
    )
    assert result.success
    assert result.data["revenue"] == 123456


async def test_registry_reports_malformed_amounts(notes) -> None:
    registry = build_registry(notes, _billing(payload=metrics_payload(revenue=99.5)))
    result = await registry.execute("get_revenue_metrics", {}, CALLER)
    assert not result.success
    assert result.error.startswith("billing is unavailable:")



async def test_registry_rejects_start_after_defaulted_end(notes) -> None:
    requests: list[httpx.Request] = []
    registry = build_registry(notes, _billing(requests))
    start = (date.today() + timedelta(days=30)).isoformat()
    result = await registry.execute("get_revenue_metrics", {"start_date": start}, CALLER)
    assert not result.success
    assert result.error.startswith("Invalid arguments")
    assert "start_date must not be after end_date" in result.error
    assert requests == []


async def test_registry_rejects_inverted_range(notes) -> None:
    registry = build_registry(notes, _billing())
    result = await registry.execute(
        "get_revenue_trend", {"start_date": "2025-03-01", "end_date": "2025-01-01"}, CALLER
    )
    assert not result.success
    assert "start_date must not be after end_date" in result.error

def test_billing_tools_need_configured_client(notes) -> None:
    registry = build_registry(notes, BillingClient(access_token=""))
    assert "get_revenue_metrics" not in registry.tool_names
    assert "create_note" in registry.tool_names


def test_billing_tools_registered_when_configured(notes) -> None:
    registry = build_registry(notes, _billing())
    assert {"get_revenue_metrics", "get_conversion_metrics", "get_revenue_trend"} <= set(
        registry.tool_names
    )


def test_report_model_shape() -> None:
    report = MetricsReport.model_validate(metrics_payload())
    assert report.totals.cashflow == 95000
