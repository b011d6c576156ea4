"""
Parsing of free-form model output into a JSON object.
"""

import json
import re
from typing import Any

from docintake.core.errors import ExtractionError
from docintake.core.logging import get_logger

log = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers anywhere in the text."""
    return _FENCE_RE.sub("", text).strip()


def _load_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def parse_model_json(response_text: str | None) -> dict[str, Any]:
    """
    Parse a model response into a JSON object.

    Attempts, in order: the raw text, the text with code fences removed,
    and the outermost {...} span of the fence-stripped text.

    Raises:
        ExtractionError: response is empty or no attempt yields a JSON object
    """
    if response_text is None or not response_text.strip():
        raise ExtractionError("Empty response from extraction service")

    text = response_text.strip()
    data = _load_object(text)
    if data is not None:
        return data

    stripped = strip_code_fences(text)
    data = _load_object(stripped)
    if data is not None:
        return data

    match = _OBJECT_RE.search(stripped)
    if match:
        data = _load_object(match.group(0))
        if data is not None:
            return data

    log.error("model_json_parse_failed", response_preview=text[:200])
    raise ExtractionError("Invalid JSON response from extraction service")
