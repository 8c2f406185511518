"""Staged repair of model output into a JSON object.

Each stage runs only if the previous one failed to produce a parseable
object:

1. strip markdown fences and extract the first balanced ``{...}`` span
2. direct ``json.loads``
3. string-aware scan: escape control characters and stray quotes inside
   strings, drop trailing commas outside them
4. replace raw newlines/tabs outside strings with a space
5. escape the unescaped quote at the decoder's error offset (bounded)
6. match the expected top-level shape and parse only that substring

If all stages fail a :class:`ResponseFormatError` is raised; a guessed
object is never returned.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from wingman.exceptions import ResponseFormatError

STAGE_ESCAPE_IN_STRINGS = "escape_in_strings"
STAGE_COLLAPSE_WHITESPACE = "collapse_outside_whitespace"
STAGE_ESCAPE_STRAY_QUOTES = "escape_stray_quotes"
STAGE_EXTRACT_SHAPE = "extract_shape"

MAX_QUOTE_FIXES = 3

# A quote inside a string closes it only when followed by one of these
_STRING_TERMINATORS = ",}]:"

_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\b": "\\b",
    "\f": "\\f",
}

# Characters that may legally follow a backslash inside a JSON string
_VALID_ESCAPES = set('"\\/bfnrtu')

_OPEN_FENCE_RE = re.compile(r"^```[a-zA-Z]*[ \t]*\r?\n?")
_FENCE_OPENING_RE = re.compile(r"```[a-zA-Z]*[ \t]*\r?\n?")
_CLOSE_FENCE_RE = re.compile(r"\r?\n?[ \t]*```\s*$")
_FENCED_BLOCK_RE = re.compile(r"```[a-zA-Z]*[ \t]*\r?\n?(.*?)\r?\n?[ \t]*```", re.DOTALL)


@dataclass
class RepairResult:
    """Parsed object plus the repair stages that were needed to get it."""

    data: dict[str, Any]
    stages: list[str] = field(default_factory=list)
    wrappers_stripped: bool = False


# ---------------------------------------------------------------------------
# Stage 1
# ---------------------------------------------------------------------------


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the ``}`` closing the object opened at ``start``."""
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def strip_fences(text: str) -> str:
    """Trim whitespace and markdown code fences."""
    stripped = text.strip()
    opening = _FENCE_OPENING_RE.search(stripped)
    if opening is None:
        return stripped
    body = stripped[opening.end() :].lstrip()
    if body.startswith("{"):
        # Close at the end of the object, not at the next ```, which may sit inside a string value
        end = _balanced_end(body, 0)
        if end is not None:
            return body[:end]
    match = _FENCED_BLOCK_RE.search(stripped)
    if match and "{" in match.group(1):
        return match.group(1).strip()
    # Unterminated or oddly placed fences
    stripped = _OPEN_FENCE_RE.sub("", stripped)
    stripped = _CLOSE_FENCE_RE.sub("", stripped)
    return stripped.strip()


def extract_balanced_object(text: str) -> str:
    """Return the first balanced ``{...}`` span, honouring string literals.

    When no span balances (truncated output, or a stray quote that confuses
    string tracking) everything from the first ``{`` to the last ``}`` is
    returned instead.
    """
    start = text.find("{")
    if start == -1:
        return text

    end = _balanced_end(text, start)
    if end is not None:
        return text[start:end]

    end = text.rfind("}")
    return text[start : end + 1] if end > start else text[start:]


# ---------------------------------------------------------------------------
# Stage 3
# ---------------------------------------------------------------------------


def _next_significant(text: str, index: int) -> str | None:
    """First non-whitespace character at or after ``index`` (None at end)."""
    n = len(text)
    while index < n and text[index] in " \t\r\n":
        index += 1
    return text[index] if index < n else None


def escape_in_strings(text: str) -> str:
    """Character-level fix-up driven by an ``in_string``/``escape_next`` state machine.

    Inside strings: raw control characters are escaped, a backslash before a
    character that cannot be escaped is itself escaped, and a ``"`` that is
    not followed by ``, } ] :`` (or end of text) is treated as content and
    escaped. Outside strings: trailing commas before ``}`` or ``]`` are
    dropped.
    """
    out: list[str] = []
    in_string = False
    escape_next = False

    for i, ch in enumerate(text):
        if in_string:
            if escape_next:
                escape_next = False
                out.append(ch)
            elif ch == "\\":
                nxt = text[i + 1] if i + 1 < len(text) else ""
                if nxt and nxt in _VALID_ESCAPES:
                    escape_next = True
                    out.append(ch)
                else:
                    out.append("\\\\")
            elif ch == '"':
                nxt = _next_significant(text, i + 1)
                if nxt is None or nxt in _STRING_TERMINATORS:
                    in_string = False
                    out.append(ch)
                else:
                    out.append('\\"')
            elif ch in _CONTROL_ESCAPES:
                out.append(_CONTROL_ESCAPES[ch])
            elif ord(ch) < 0x20:
                out.append(f"\\u{ord(ch):04x}")
            else:
                out.append(ch)
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
        elif ch == ",":
            nxt = _next_significant(text, i + 1)
            if nxt is not None and nxt in "}]":
                continue
            out.append(ch)
        else:
            out.append(ch)

    return "".join(out)


# ---------------------------------------------------------------------------
# Stage 4
# ---------------------------------------------------------------------------


def collapse_outside_whitespace(text: str) -> str:
    """Replace raw newline/tab/CR outside strings with a single space."""
    out: list[str] = []
    in_string = False
    escape_next = False

    for ch in text:
        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            out.append(ch)
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch in "\n\t\r":
            out.append(" ")
        else:
            out.append(ch)

    return "".join(out)


# ---------------------------------------------------------------------------
# Stage 5
# ---------------------------------------------------------------------------


def _is_unescaped_quote(text: str, index: int) -> bool:
    if index < 0 or index >= len(text) or text[index] != '"':
        return False
    backslashes = 0
    j = index - 1
    while j >= 0 and text[j] == "\\":
        backslashes += 1
        j -= 1
    return backslashes % 2 == 0


def find_stray_quote(text: str, offset: int) -> int | None:
    """Index of the unescaped quote at ``offset`` or just before it."""
    if _is_unescaped_quote(text, offset):
        return offset
    j = offset - 1
    while j >= 0 and text[j] in " \t\r\n":
        j -= 1
    if _is_unescaped_quote(text, j):
        return j
    return None


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def _loads_object(text: str) -> dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise json.JSONDecodeError("Top-level JSON value is not an object", text, 0)
    return value


class JsonRepairer:
    """Coerce raw model text into a JSON object.

    Args:
        shape_pattern: Regex matching the expected top-level object, used by
            the last-resort stage (e.g. ``r'\\{\\s*"analysis"[\\s\\S]*\\}'``)
        max_quote_fixes: Cap on stray-quote iterations
    """

    def __init__(self, shape_pattern: str | None = None, max_quote_fixes: int = MAX_QUOTE_FIXES):
        self._shape_re = re.compile(shape_pattern) if shape_pattern else None
        self._max_quote_fixes = max_quote_fixes

    def repair(self, raw_text: str) -> RepairResult:
        text = (raw_text or "").strip()
        stages: list[str] = []

        # Well-formed input is returned untouched
        try:
            return RepairResult(_loads_object(text), stages, False)
        except json.JSONDecodeError:
            pass

        unfenced = strip_fences(text)
        candidate = extract_balanced_object(unfenced)
        stripped = True
        try:
            return RepairResult(_loads_object(candidate), stages, stripped)
        except json.JSONDecodeError as exc:
            first_error = exc

        stages.append(STAGE_ESCAPE_IN_STRINGS)
        candidate = escape_in_strings(candidate)
        try:
            return RepairResult(_loads_object(candidate), stages, stripped)
        except json.JSONDecodeError:
            pass

        stages.append(STAGE_COLLAPSE_WHITESPACE)
        candidate = collapse_outside_whitespace(candidate)
        try:
            return RepairResult(_loads_object(candidate), stages, stripped)
        except json.JSONDecodeError as exc:
            last_error = exc

        stages.append(STAGE_ESCAPE_STRAY_QUOTES)
        for _ in range(self._max_quote_fixes):
            index = find_stray_quote(candidate, last_error.pos)
            if index is None:
                break
            candidate = candidate[:index] + "\\" + candidate[index:]
            try:
                return RepairResult(_loads_object(candidate), stages, stripped)
            except json.JSONDecodeError as exc:
                last_error = exc

        if self._shape_re is not None:
            stages.append(STAGE_EXTRACT_SHAPE)
            match = self._shape_re.search(unfenced)
            if match:
                fragment = match.group(0)
                for attempt in (fragment, escape_in_strings(fragment)):
                    try:
                        return RepairResult(_loads_object(attempt), stages, True)
                    except json.JSONDecodeError:
                        continue

        raise ResponseFormatError(
            raw_text or "",
            offset=first_error.pos,
            reason=first_error.msg,
        )
