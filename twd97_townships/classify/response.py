"""Extract the JSON array from a free-form model reply."""

from __future__ import annotations

import json
import re
from typing import Any

from twd97_townships.common.errors import ResponseParseError

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text).strip()


def extract_json_array(text: str) -> list[Any]:
    """Return the first JSON array of objects found in ``text``.

    Models wrap answers in markdown fences or add commentary around them, and
    grounded replies cannot be forced into JSON mode. Grounded replies also
    carry citation markers such as ``[1]``, so an array of objects wins over
    any earlier array; failing that, the first array is returned.
    """
    cleaned = strip_code_fences(text)
    decoder = json.JSONDecoder()
    first_list: list[Any] | None = None
    start = cleaned.find("[")
    while start != -1:
        try:
            value, _end = decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            if value and all(isinstance(item, dict) for item in value):
                return value
            if first_list is None:
                first_list = value
        start = cleaned.find("[", start + 1)
    if first_list is not None:
        return first_list
    raise ResponseParseError("No JSON array in model response")
