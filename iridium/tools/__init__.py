"""Tool framework — build the registry from explicitly constructed clients."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from iridium.tools.base import CallerContext, ToolResult
from iridium.tools.billing_tools import billing_tools
from iridium.tools.note_tools import note_tools
from iridium.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from iridium.billing.client import BillingClient
    from iridium.notes.store import NoteStore

logger = logging.getLogger(__name__)


def build_registry(
    notes: NoteStore,
    billing: BillingClient | None = None,
    currency: str = "usd",
) -> ToolRegistry:
    """Register every available tool. Billing tools need a configured client."""
    registry = ToolRegistry(note_tools(notes))
    if billing is not None and billing.enabled:
        for tool in billing_tools(billing, currency):
            registry.register(tool)
    else:
        logger.info("Billing client not configured; billing tools disabled")
    return registry


__all__ = ["CallerContext", "ToolRegistry", "ToolResult", "build_registry"]
