"""Strict-JSON parsing of model output with bounded repair.

Model text is untrusted. ``parse_as`` returns either a validated pydantic
model or a ``ParseFailure``; callers branch on the type, never on the raw
payload shape.
"""

import json
import re
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class ParseFailure:
    raw: str
    reason: str


def _candidates(text: str) -> list[str]:
    """Strings worth trying as JSON, most faithful first."""
    stripped = text.strip()
    found = [stripped]
    fence = _FENCE_RE.search(stripped)
    if fence:
        found.append(fence.group(1))
    start, end = stripped.find("{"), stripped.rfind("}")
    if 0 <= start < end:
        found.append(stripped[start : end + 1])
    return found


def extract_json_object(text: str | None) -> dict | None:
    """Return the first JSON object recoverable from ``text``.

    Tries the raw text, a fenced ```json block, then the outermost braces;
    each strictly first, then leniently (raw control characters inside
    strings are accepted).
    """
    if not text:
        return None
    for candidate in _candidates(text):
        for strict in (True, False):
            try:
                value = json.loads(candidate, strict=strict)
            except ValueError:
                continue
            if isinstance(value, dict):
                return value
    return None


def parse_as(text: str | None, model: type[M]) -> M | ParseFailure:
    data = extract_json_object(text)
    if data is None:
        return ParseFailure(raw=text or "", reason="no JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        return ParseFailure(raw=text or "", reason=f"schema mismatch: {e.error_count()} error(s)")


def salvage_string_field(text: str, field: str) -> str | None:
    """Pull a ``"field": "..."`` string literal out of broken JSON."""
    match = re.search(rf'"{re.escape(field)}"\s*:\s*"((?:[^"\\]|\\.)*)"', text or "", re.DOTALL)
    if not match:
        return None
    try:
        return json.loads(f'"{match.group(1)}"', strict=False)
    except ValueError:
        return match.group(1).replace("\\n", "\n").replace('\\"', '"')
