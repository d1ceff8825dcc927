"""Helpers for pulling JSON out of model output."""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Parse *text* as a JSON object, tolerating Markdown fences around it.

    Returns None when no JSON object can be recovered.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Try to extract JSON from markdown fences
        if "```" not in text:
            return None
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            return None
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError:
            logger.debug("Fenced block did not contain valid JSON")
            return None
    return data if isinstance(data, dict) else None
