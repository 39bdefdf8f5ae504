"""Billing provider metrics API client (Polar-compatible ``/v1/metrics``)."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from iridium.billing.money import to_minor_units
from iridium.errors import UpstreamProviderError

logger = logging.getLogger(__name__)

Interval = Literal["day", "week", "month", "year"]

_MONEY_FIELDS = (
    "revenue",
    "net_revenue",
    "average_order_value",
    "net_average_order_value",
    "gross_margin",
    "cashflow",
)


class _MetricsValues(BaseModel):
    """Metric values shared by totals and per-period rows.

    Money fields are integer minor units; fractional provider values are
    rejected rather than rounded.
    """

    orders: int = 0
    revenue: int = 0
    net_revenue: int = 0
    average_order_value: int = 0
    net_average_order_value: int = 0
    gross_margin: int = 0
    gross_margin_percentage: float = 0.0
    cashflow: int = 0
    checkouts: int = 0
    succeeded_checkouts: int = 0
    checkout_conversion: float = 0.0

    @field_validator(*_MONEY_FIELDS, mode="before")
    @classmethod
    def _minor_units(cls, value: Any, info) -> int:
        return to_minor_units(value, field=info.field_name)

    @field_validator("orders", "checkouts", "succeeded_checkouts", mode="before")
    @classmethod
    def _counts(cls, value: Any) -> int:
        return 0 if value is None else value


class MetricsTotals(_MetricsValues):
    """Totals over the whole requested range."""


class MetricsPeriod(_MetricsValues):
    """Metric values for a single interval bucket."""

    timestamp: str


class MetricsReport(BaseModel):
    totals: MetricsTotals
    periods: list[MetricsPeriod] = Field(default_factory=list)


class BillingClient:
    """Read-only access to the billing provider's metrics.

    Pass an ``http_client`` to reuse a connection pool (or to inject a mock
    transport in tests); otherwise a client is opened per request.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.polar.sh",
        organization_id: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._organization_id = organization_id
        self._http_client = http_client
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._access_token.strip())

    async def get_metrics(
        self,
        start: date,
        end: date,
        *,
        interval: Interval = "month",
        external_customer_id: str | None = None,
    ) -> MetricsReport:
        """Fetch metrics for ``start``..``end`` inclusive.

        ``external_customer_id`` restricts the figures to the customer the
        caller is mapped to at the provider.

        Raises:
            UpstreamProviderError: Missing credentials, transport failure,
                non-2xx status, or a payload that is not integer minor units.
        """
        if not self.enabled:
            raise UpstreamProviderError("billing", "billing access token is not configured")

        params: dict[str, str] = {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "interval": interval,
        }
        if self._organization_id:
            params["organization_id"] = self._organization_id
        if external_customer_id:
            params["external_customer_id"] = external_customer_id

        payload = await self._get("/v1/metrics/", params)

        try:
            return MetricsReport.model_validate({
                "totals": payload.get("totals") or {},
                "periods": payload.get("periods") or [],
            })
        except PydanticValidationError as exc:
            logger.warning("Billing metrics payload rejected: %s", exc)
            raise UpstreamProviderError("billing", f"malformed metrics payload: {exc}") from exc

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }
        try:
            if self._http_client is not None:
                resp = await self._http_client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.exception("Billing request failed: %s", path)
            raise UpstreamProviderError("billing", f"request failed: {exc}") from exc

        if resp.status_code != 200:
            logger.warning("Billing API returned %d for %s", resp.status_code, path)
            raise UpstreamProviderError(
                "billing", f"API returned {resp.status_code}: {resp.text[:200]}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamProviderError("billing", "response was not JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamProviderError("billing", "response was not a JSON object")
        return data
