"""Friendly model names."""

import logging

logger = logging.getLogger(__name__)

MODEL_MAP: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-1-20250805",
}

# Reverse lookup: full model string → friendly name
FRIENDLY_NAMES: dict[str, str] = {v: k for k, v in MODEL_MAP.items()}


def resolve_model(name_or_id: str, default: str = "sonnet") -> str:
    """Resolve a friendly name or full model ID to a full ID.

    Unrecognised full IDs (anything containing a dash) are passed through
    so new models can be configured before they are added to the map.
    """
    if name_or_id in MODEL_MAP:
        return MODEL_MAP[name_or_id]
    if name_or_id in FRIENDLY_NAMES or "-" in name_or_id:
        return name_or_id
    logger.warning("Unknown model '%s', falling back to %s", name_or_id, default)
    return MODEL_MAP[default]


def friendly(model_id: str) -> str:
    """Return the friendly name for a model ID, or the ID itself."""
    return FRIENDLY_NAMES.get(model_id, model_id)
