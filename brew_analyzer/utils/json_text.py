"""Locating JSON objects inside free-form model output."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class JsonSpan:
    """Outcome of scanning text for the first top-level JSON object."""

    value: dict[str, Any] | None
    found_open_brace: bool
    unterminated: bool = False


def strip_markdown(text: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    parts = stripped.split("```")
    # The second segment holds the payload, possibly preceded by a language tag.
    if len(parts) < 3:
        return stripped
    candidate = parts[1]
    if "\n" in candidate:
        _, remainder = candidate.split("\n", 1)
        return remainder.strip()
    return candidate.strip()


def extract_json_object(text: str) -> JsonSpan:
    """Return the first balanced ``{...}`` substring of ``text`` that parses as an object.

    Braces inside JSON string literals do not count towards nesting. A balanced
    fragment that is not valid JSON (``use a {fine} grind``) is skipped whole
    and the scan resumes after it. A brace that never closes is skipped too;
    the span is unterminated only when no later object parses either.
    """
    position = text.find("{")
    found_open_brace = position >= 0
    unterminated = False
    while position >= 0:
        end = _balanced_end(text, position)
        if end is None:
            unterminated = True
            position = text.find("{", position + 1)
            continue
        try:
            value = json.loads(text[position : end + 1])
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return JsonSpan(value=value, found_open_brace=True)
        position = text.find("{", end + 1)
    return JsonSpan(value=None, found_open_brace=found_open_brace, unterminated=unterminated)


def _balanced_end(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escape = False
    for index in range(start, len(text)):
        ch = text[index]
        if escape:
            escape = False
            continue
        if ch == "\\":
            if in_string:
                escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return index
    return None
