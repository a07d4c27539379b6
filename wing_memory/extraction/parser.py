"""
Decoding of raw model output into an extraction payload.
"""

import json
import re
from typing import Any

from wing_memory.exceptions import ExtractionParseError

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def parse_extraction_response(text: str) -> dict[str, Any]:
    """
    Decode the model's extraction reply.

    Args:
        text: Raw model output, optionally wrapped in a ```json fence

    Returns:
        The decoded JSON object

    Raises:
        ExtractionParseError: If the text is not a JSON object
    """
    cleaned = strip_code_fence(text)
    if not cleaned:
        raise ExtractionParseError("Extraction response is empty")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionParseError(
            f"Extraction response is not valid JSON: {e.msg}",
            {"position": e.pos},
        ) from e
    except (ValueError, RecursionError) as e:
        # Oversized integer literals and pathologically deep nesting
        raise ExtractionParseError(f"Extraction response could not be decoded: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionParseError(
            f"Extraction response must be a JSON object, got {type(data).__name__}"
        )
    return data
