"""Best-effort extraction of JSON payloads from free-form model output.

Generation output is frequently wrapped in prose or markdown fences. The
extractor strips fences, picks the outermost array or object by whichever
opening bracket comes first, and cuts at the *last* matching closing bracket.
It is not a parser: bracket characters inside string values can fool it, so
callers must treat a decode failure as recoverable.
"""

from __future__ import annotations

import json
import re
from typing import Any

from ..exceptions import MalformedResponseError


_FENCE_JSON_RE = re.compile(r"```json", re.IGNORECASE)


def extract_json_payload(text: str | None) -> str:
    """Return the most likely JSON substring of ``text``.

    Examples:
        >>> extract_json_payload('```json\\n[{"index": 0}]\\n``` trailing note')
        '[{"index": 0}]'
        >>> extract_json_payload("no brackets here")
        'no brackets here'
    """
    if not text:
        return ""

    cleaned = _FENCE_JSON_RE.sub("", text).replace("```", "")

    first_square = cleaned.find("[")
    first_curly = cleaned.find("{")

    if first_square != -1 and (first_curly == -1 or first_square < first_curly):
        end = cleaned.rfind("]")
        if end != -1 and end > first_square:
            return cleaned[first_square : end + 1]
    elif first_curly != -1:
        end = cleaned.rfind("}")
        if end != -1 and end > first_curly:
            return cleaned[first_curly : end + 1]

    return cleaned


def parse_json_payload(text: str | None) -> Any:
    """Extract and decode a JSON payload.

    Raises:
        MalformedResponseError: If nothing decodable was found
    """
    snippet = extract_json_payload(text)
    if not snippet.strip():
        raise MalformedResponseError("Empty model response")
    try:
        return json.loads(snippet)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Invalid JSON in model response: {exc}") from exc


def expect_array(payload: Any) -> list[Any]:
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Expected a JSON array, got {type(payload).__name__}")
    return payload


def expect_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload
