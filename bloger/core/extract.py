"""
Best-effort recovery of JSON structures from loosely formatted model output.

Models wrap JSON in prose or code fences even when told not to, and may cut a
response short. These helpers scan for the first candidate that actually
decodes instead of trusting the whole text.
"""
import json
import re
from typing import Any, Dict, List

from bloger.core.errors import SuggestionParseFailure

# An array of objects: "[" then optional whitespace then "{"
_ARRAY_START = re.compile(r"\[\s*\{")

_decoder = json.JSONDecoder()


def extract_json_array(text: str) -> List[Any]:
    """
    Return the first decodable JSON array of objects embedded in ``text``.

    Each "[{" position is tried in order and decoded with ``raw_decode``, so
    surrounding commentary, code fences and any later arrays are ignored.

    Raises:
        SuggestionParseFailure: if no candidate decodes
    """
    if not text:
        raise SuggestionParseFailure("Empty response")

    for match in _ARRAY_START.finditer(text):
        try:
            value, _ = _decoder.raw_decode(text, match.start())
        except (json.JSONDecodeError, RecursionError):
            continue
        if isinstance(value, list):
            return value

    raise SuggestionParseFailure("No JSON array found in response")


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse ``text`` as a JSON object, falling back to the first decodable
    ``{...}`` block inside it.

    Raises:
        ValueError: if no object can be recovered
    """
    if not text or not text.strip():
        raise ValueError("Empty response")

    try:
        value = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        value = None
    if isinstance(value, dict):
        return value

    start = text.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except (json.JSONDecodeError, RecursionError):
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)

    raise ValueError("Response did not contain a JSON object")
