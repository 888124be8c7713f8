"""Structured response parser for untrusted model output."""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class ParsedResponse(BaseModel):
    """Tagged parse result: either ``data`` or ``error`` is set."""

    ok: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    strategy: Optional[str] = None


def strip_code_fences(text: str) -> str:
    """Remove a leading/trailing markdown code fence (```json / ```)."""
    clean = text.strip()
    match = _FENCE_RE.match(clean)
    if match:
        return match.group(1).strip()
    if clean.startswith("```"):
        clean = clean[3:]
        if clean.lower().startswith("json"):
            clean = clean[4:]
    if clean.endswith("```"):
        clean = clean[:-3]
    return clean.strip()


def extract_balanced_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in *text*, or ``None``.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def _load_object(text: str) -> Dict[str, Any]:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_structured_response(raw: Optional[str]) -> ParsedResponse:
    """Parse a model response that should contain one JSON object.

    Tries, in order: a direct parse, a parse after stripping markdown code
    fences, and a parse of the first balanced ``{...}`` span. Never raises.

    Parameters
    ----------
    raw : str | None
        The raw completion text.

    Returns
    -------
    ParsedResponse
    """
    if raw is None or not raw.strip():
        return ParsedResponse(ok=False, error="Empty response from model")

    text = raw.strip()
    last_error = "Invalid JSON response from model"

    try:
        return ParsedResponse(ok=True, data=_load_object(text), strategy="direct")
    except (ValueError, RecursionError) as exc:
        last_error = str(exc)

    unfenced = strip_code_fences(text)
    if unfenced != text:
        try:
            return ParsedResponse(ok=True, data=_load_object(unfenced), strategy="unfenced")
        except (ValueError, RecursionError) as exc:
            last_error = str(exc)

    span = extract_balanced_object(unfenced)
    if span is not None:
        try:
            return ParsedResponse(ok=True, data=_load_object(span), strategy="extracted")
        except (ValueError, RecursionError) as exc:
            last_error = str(exc)

    logger.debug("Unparseable model response (%d chars): %s", len(text), last_error)
    return ParsedResponse(ok=False, error=f"Invalid JSON response from model: {last_error}")


def as_str_list(value: Any) -> List[str]:
    """Coerce a model-supplied list field into a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]
