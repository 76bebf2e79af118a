"""
Helpers for pulling JSON out of model output.

Models are asked for "JSON only" but regularly wrap it in ```json fences or
add a sentence before/after. These helpers strip the noise and return None
when nothing parseable is left, so routes can fall back cleanly.
"""

import json
import re
from typing import Any, Optional

_FENCE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
_OBJECT = re.compile(r"\{[\s\S]*\}")
_ARRAY = re.compile(r"\[[\s\S]*\]")


def strip_code_fences(raw: str) -> str:
    return _FENCE.sub("", raw).strip()


def parse_ai_json(raw: str) -> Optional[Any]:
    """
    Parse a JSON object or array from `raw`.

    Tries the whole (fence-stripped) text first, then the outermost
    {...} block, then the outermost [...] block.
    """
    text = strip_code_fences(raw)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        pass

    for pattern in (_OBJECT, _ARRAY):
        m = pattern.search(text)
        if m:
            try:
                return json.loads(m.group())
            except (json.JSONDecodeError, ValueError):
                continue
    return None


def parse_ai_object(raw: str) -> Optional[dict[str, Any]]:
    """Like parse_ai_json() but only accepts a JSON object."""
    data = parse_ai_json(raw)
    return data if isinstance(data, dict) else None
