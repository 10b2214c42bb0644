"""Decoding of intercepted map-tool results.

Tools answer with an MCP envelope whose text items carry the JSON response:

    {"content": [{"type": "text", "text": "{\"pois\": [...]}"}]}
"""

import json
from collections.abc import Mapping
from typing import Any

from geovec.logging_config import get_logger

logger = get_logger(__name__)


def parse_tool_result(result: str | bytes | Mapping[str, Any]) -> dict[str, Any] | None:
    """Extract the JSON object payload from a tool result.

    Args:
        result: Raw tool output, either the serialized envelope or a decoded one.

    Returns:
        The first text item that decodes to a JSON object, the result itself
        when it is already a bare payload, or None when nothing usable is found.
    """
    if isinstance(result, (str, bytes)):
        try:
            decoded = json.loads(result)
        except ValueError:
            logger.debug("Tool result is not JSON")
            return None
    else:
        decoded = result

    if not isinstance(decoded, Mapping):
        return None

    content = decoded.get("content")
    if not isinstance(content, list):
        return dict(decoded)

    for item in content:
        if not isinstance(item, Mapping) or item.get("type") != "text":
            continue
        text = item.get("text")
        if not isinstance(text, str):
            continue
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return payload

    return None
