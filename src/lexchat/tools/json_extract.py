"""JSON extraction from model replies.

Tool handlers that ask the model for JSON accept it bare, wrapped in a
markdown fence, or embedded in a short preamble. Anything else is a
malformed reply.
"""

from __future__ import annotations

import json
import re
from typing import Any

from lexchat.core.errors import MalformedModelOutputError

_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def _first_object(text: str) -> dict[str, Any] | None:
    """Decode the first JSON object that starts at any ``{`` in text."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            result, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(result, dict):
            return result
        start = text.find("{", start + 1)
    return None


def extract_json(text: str) -> dict[str, Any]:
    """Extract a JSON object from a model reply.

    Tries, in order: the whole text, a fenced ```json block, the first
    decodable ``{...}`` in the text.

    Raises:
        MalformedModelOutputError: If no JSON object can be found. The
            raw text is kept on the exception for diagnosis.
    """
    stripped = text.strip()
    if not stripped:
        msg = "Model returned an empty reply"
        raise MalformedModelOutputError(msg, raw=text)

    try:
        result = json.loads(stripped)
    except json.JSONDecodeError:
        pass
    else:
        if isinstance(result, dict):
            return result

    match = _JSON_BLOCK_RE.search(text)
    if match:
        try:
            result = json.loads(match.group(1))
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(result, dict):
                return result

    result = _first_object(text)
    if result is not None:
        return result

    msg = "No valid JSON object found in model reply"
    raise MalformedModelOutputError(msg, raw=text)
