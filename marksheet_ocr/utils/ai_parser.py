"""
Parsing helpers for vision model responses.

Models asked for JSON still wrap it in ```json fences or a sentence of
prose now and then; extract_json_object digs the first JSON object out.
"""

from __future__ import annotations

import json
import re
from typing import Any, List


_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```lang ... ``` fence, if any."""
    t = text.strip()
    if t.startswith("```"):
        t = _FENCE_OPEN_RE.sub("", t)
        t = _FENCE_CLOSE_RE.sub("", t).strip()
        return t
    match = _FENCED_BLOCK_RE.search(t)
    if match:
        return match.group(1)
    return t


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Extract the first JSON object from a model response.

    Handles fenced blocks and prose around the object.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    if text is None or not text.strip():
        raise ValueError("Empty response")

    t = strip_code_fence(text)

    # Fast path: full JSON
    try:
        data = json.loads(t)
    except ValueError:
        data = None
    if isinstance(data, dict):
        return data

    # Scan for balanced braces
    for start in (i for i, ch in enumerate(t) if ch == "{"):
        stack: List[str] = []
        in_str = False
        escape = False

        for i in range(start, len(t)):
            ch = t[i]

            if in_str:
                if escape:
                    escape = False
                elif ch == "\\":
                    escape = True
                elif ch == '"':
                    in_str = False
                continue

            if ch == '"':
                in_str = True
                continue

            if ch in "[{":
                stack.append(ch)
            elif ch in "]}":
                if not stack:
                    break
                opener = stack.pop()
                if (opener == "[" and ch != "]") or (opener == "{" and ch != "}"):
                    break
                if not stack:
                    try:
                        data = json.loads(t[start:i + 1])
                    except ValueError:
                        break
                    if isinstance(data, dict):
                        return data
                    break

    raise ValueError("Could not parse JSON object from model response")
