"""Best-effort extraction of a JSON object from free-form model output."""

import json
import re

_RE_FENCE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)
_RE_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_RE_CONTROL = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")


def _escape_controls_in_strings(s: str) -> str:
    """Escape raw newlines/tabs that appear inside quoted strings."""
    out: list[str] = []
    in_string = False
    escaped = False
    for ch in s:
        if escaped:
            out.append(ch)
            escaped = False
            continue
        if ch == "\\":
            out.append(ch)
            if in_string:
                escaped = True
            continue
        if ch == '"':
            out.append(ch)
            in_string = not in_string
            continue
        if in_string:
            if ch == "\n":
                out.append("\\n")
                continue
            if ch == "\r":
                out.append("\\r")
                continue
            if ch == "\t":
                out.append("\\t")
                continue
        out.append(ch)
    return "".join(out)


def _try_parse(candidate: str) -> dict | None:
    s = (candidate or "").strip()
    if not s:
        return None
    try:
        parsed = json.loads(s)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        repaired = s.replace("“", '"').replace("”", '"').replace("\ufeff", "")
        repaired = _escape_controls_in_strings(repaired)
        repaired = _RE_CONTROL.sub("", repaired)
        repaired = _RE_TRAILING_COMMA.sub(r"\1", repaired)
        try:
            parsed = json.loads(repaired)
            return parsed if isinstance(parsed, dict) else None
        except json.JSONDecodeError:
            return None


def first_json_object(text: str) -> str | None:
    """Return the first balanced {...} span, ignoring braces inside strings."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
            continue
        if ch == "\\" and in_string:
            escaped = True
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
                return text[start:i + 1]
    return None


def extract_json(text: str) -> dict | None:
    """
    Robustly extract a JSON object from model output.
    Handles pure JSON, markdown code fences and JSON embedded in prose.
    Returns None when no object can be recovered.
    """
    if not text or not text.strip():
        return None

    raw = text.strip()

    parsed = _try_parse(raw)
    if parsed is not None:
        return parsed

    fence = _RE_FENCE.search(raw)
    if fence:
        parsed = _try_parse(fence.group(1))
        if parsed is not None:
            return parsed

    candidate = first_json_object(raw)
    if candidate:
        return _try_parse(candidate)
    return None
