"""Billing provider access: metrics client and minor-unit money helpers."""

from iridium.billing.client import BillingClient, MetricsPeriod, MetricsReport, MetricsTotals
from iridium.billing.money import format_minor_units, to_major_units, to_minor_units

__all__ = [
    "BillingClient",
    "MetricsPeriod",
    "MetricsReport",
    "MetricsTotals",
    "format_minor_units",
    "to_major_units",
    "to_minor_units",
]
