"""Unified JSON parsing from LLM output.

Handles common LLM response patterns: plain JSON, markdown code blocks,
JSON with surrounding text, and JSON truncated or followed by junk after
the first complete top-level object.
"""

import json
import logging
import re
from typing import Any, Optional

from arbiter.primitives.errors import MalformedOutput

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def normalize_llm_text(raw: str) -> str:
    """Isolate the substring of ``raw`` most likely to be the JSON payload.

    1. A ```json fenced block wins: its interior is returned.
    2. Otherwise the span from the first ``{`` to the last ``}`` inclusive,
       which drops commentary the model appends after the payload.

    Without a usable brace pair the trimmed input is returned unchanged and
    left for the decoder to reject.
    """
    text = (raw or "").strip()

    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text


def find_truncation_offset(text: str, failure_offset: int) -> Optional[int]:
    """Offset of the last ``}`` closing a top-level unit before ``failure_offset``.

    Single pass over ``text[:failure_offset]`` counting brace depth on raw
    characters. Returns None when no unit closed, or when it closed at
    offset 0.
    """
    depth = 0
    last_good = 0
    for i in range(min(failure_offset, len(text))):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                last_good = i
    return last_good if last_good > 0 else None


def _decode(text: str, raw: str) -> Any:
    """``json.loads`` that reports nesting too deep for the decoder as MalformedOutput."""
    try:
        return json.loads(text)
    except RecursionError as e:
        raise MalformedOutput(f"JSON nesting too deep: {e}", raw_text=raw, position=None) from e


def recover_json(candidate: str, raw: Optional[str] = None) -> Any:
    """Strictly decode ``candidate``, salvaging the first complete unit on failure.

    Args:
        candidate: Normalized text (see ``normalize_llm_text``).
        raw: Original LLM output, kept on the error for diagnostics.
            Defaults to ``candidate``.

    Raises:
        MalformedOutput: Neither the full text nor the salvaged prefix decodes,
            or the nesting is deeper than the decoder can follow.
    """
    raw = candidate if raw is None else raw
    try:
        return _decode(candidate, raw)
    except json.JSONDecodeError as first_error:
        offset = find_truncation_offset(candidate, first_error.pos)
        if offset is None:
            raise MalformedOutput(first_error.msg, raw_text=raw, position=first_error.pos) from first_error

        logger.warning(
            "JSON parse error at position %d, truncating to last complete object at %d",
            first_error.pos,
            offset,
        )
        try:
            return _decode(candidate[:offset + 1], raw)
        except json.JSONDecodeError as retry_error:
            raise MalformedOutput(
                first_error.msg, raw_text=raw, position=first_error.pos
            ) from retry_error


def parse_json_from_llm(raw: str) -> Any:
    """Parse JSON from LLM output, handling common wrapping patterns.

    Supports:
    - Plain JSON: '{"key": "value"}'
    - Markdown code blocks: '```json\\n{"key": "value"}\\n```'
    - JSON with surrounding text
    - A complete object followed by a truncated or unparsable remainder

    Args:
        raw: Raw LLM output string.

    Returns:
        The decoded JSON value.

    Raises:
        MalformedOutput: If no valid JSON found.
    """
    candidate = normalize_llm_text(raw)
    logger.debug("LLM JSON candidate length: %d (raw %d)", len(candidate), len(raw or ""))
    return recover_json(candidate, raw=raw)
