"""
Tolerant JSON extraction from free-form model replies.

Gemini often wraps JSON in markdown fences or surrounds it with prose,
especially when grounding tools are enabled (structured output mode cannot be
combined with search grounding).  parse_json_reply() tries an ordered list of
strategies; each is a pure function of the reply text that raises
ReplyParseError when it does not apply.

Strategies also take the expected top-level type.  Grounded replies carry
citation markers such as ``[1]`` which are valid JSON on their own, so a value
of the wrong shape counts as a failed strategy rather than a result.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Sequence
from typing import Any

from wayfarer.observability.logging import get_logger

logger = get_logger(__name__)

# ```json ... ``` or ``` ... ```, non-greedy so the first block wins
_FENCE_RE = re.compile(r"```(?:[A-Za-z0-9_-]+)?\s*(.*?)\s*```", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}

# Upper bound on json decodes per reply in the balanced-span fallback
MAX_SPAN_ATTEMPTS = 64

Expected = type | tuple[type, ...] | None
ParseStrategy = Callable[[str, Expected], Any]


class ReplyParseError(ValueError):
    """Model reply could not be turned into the expected structured value."""


class EmptyReplyError(ReplyParseError):
    """Model returned no text at all."""

    def __init__(self, message: str = "Empty response from model") -> None:
        super().__init__(message)


class UnparseableReplyError(ReplyParseError):
    """Every parse strategy failed."""

    def __init__(self, message: str = "Could not parse JSON from response") -> None:
        super().__init__(message)


def _loads(text: str, expected: Expected) -> Any:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ReplyParseError(str(e)) from e
    except RecursionError as e:
        raise ReplyParseError("JSON nested too deeply") from e
    if expected is not None and not isinstance(value, expected):
        raise ReplyParseError(f"unexpected JSON type {type(value).__name__}")
    return value


def parse_direct(text: str, expected: Expected = None) -> Any:
    """Whole reply is JSON."""
    return _loads(text.strip(), expected)


def parse_fenced_block(text: str, expected: Expected = None) -> Any:
    """JSON inside the first markdown code fence."""
    match = _FENCE_RE.search(text)
    if not match or not match.group(1):
        raise ReplyParseError("no fenced block")
    return _loads(match.group(1), expected)


def _bracket_spans(text: str) -> list[tuple[int, int]]:
    """
    ``(start, end)`` of every balanced ``{...}`` / ``[...]`` pair, ordered by start.

    One pass with a single stack.  Quotes only count inside an open bracket;
    a mismatched closer drops everything still open, and openers that never
    close yield nothing.
    """
    spans: list[tuple[int, int]] = []
    stack: list[tuple[str, int]] = []
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char in _CLOSERS:
            stack.append((_CLOSERS[char], index))
        elif char in ("}", "]"):
            if not stack:
                continue
            closer, start = stack.pop()
            if char != closer:
                stack.clear()
                continue
            spans.append((start, index + 1))
        elif char == '"' and stack:
            in_string = True

    spans.sort()
    return spans


def _is_citation(value: Any) -> bool:
    """``[1]`` or ``[2, 3]``: grounding citation markers, not a payload."""
    return (
        isinstance(value, list)
        and bool(value)
        and all(isinstance(item, int) and not isinstance(item, bool) for item in value)
    )


def parse_balanced_span(text: str, expected: Expected = None) -> Any:
    """
    First balanced ``{...}`` or ``[...]`` span in the prose that parses as JSON.

    Candidates are tried in order of their opening bracket, so an outer span is
    tried before the spans nested in it.  Citation markers such as ``[1]`` are
    skipped, and at most MAX_SPAN_ATTEMPTS candidates are decoded.
    """
    for attempt, (start, end) in enumerate(_bracket_spans(text)):
        if attempt >= MAX_SPAN_ATTEMPTS:
            logger.debug("Gave up after %d balanced spans", MAX_SPAN_ATTEMPTS)
            break
        try:
            value = _loads(text[start:end], expected)
        except ReplyParseError:
            continue
        if _is_citation(value):
            continue
        return value
    raise ReplyParseError("no balanced JSON span")


DEFAULT_STRATEGIES: tuple[ParseStrategy, ...] = (
    parse_direct,
    parse_fenced_block,
    parse_balanced_span,
)


def parse_json_reply(
    text: str | None,
    expected: Expected = None,
    strategies: Sequence[ParseStrategy] = DEFAULT_STRATEGIES,
) -> Any:
    """
    Extract a JSON value from a model reply.

    Args:
        text: Raw reply text.
        expected: Optional required top-level type (``dict`` or ``list``).
        strategies: Ordered strategies; the first success wins.

    Raises:
        EmptyReplyError: text is empty or whitespace; no strategy is attempted.
        UnparseableReplyError: every strategy failed.
    """
    if not text or not text.strip():
        raise EmptyReplyError()

    for strategy in strategies:
        try:
            return strategy(text, expected)
        except ReplyParseError:
            continue

    logger.warning("Could not parse JSON from model reply (%d chars)", len(text))
    raise UnparseableReplyError()
