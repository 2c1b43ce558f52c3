"""Repair of near-JSON model output into a parseable transaction array"""

import json
import re
from datetime import datetime, timezone
from typing import Any, List, Optional

from logbook_ledger.domain.exceptions import UnparsableModelResponse
from logbook_ledger.domain.prompts import TIMESTAMP_PLACEHOLDER

_CODE_FENCE_OPEN = re.compile(r"```json\n?", re.IGNORECASE)
_CODE_FENCE_CLOSE = re.compile(r"```\n?")
# C0 and C1 controls except tab, newline and carriage return, which collapse to spaces below
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_WHITESPACE_RUN = re.compile(r"\s+")


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a Z suffix"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_model_output(text: str, now: Optional[datetime] = None) -> str:
    """
    Best-effort textual repair of model output into a JSON array.

    Steps (order matters):
    1. Strip Markdown code fences
    2. Substitute the timestamp placeholder with the real current time
    3. Drop control characters
    4. Collapse newlines, tabs and whitespace runs into single spaces
    5. Add a missing leading '[' / trailing ']'
    6. Cut everything after the last '}' and close the array, which drops a
       record truncated mid-object (e.g. by the output token limit)

    Example:
        '```json\\n[{"a":1},{"a":2'  ->  '[{"a":1}]'
        '{"a":1},{"a":2}'           ->  '[{"a":1},{"a":2}]'
    """
    cleaned = _CODE_FENCE_OPEN.sub("", text)
    cleaned = _CODE_FENCE_CLOSE.sub("", cleaned)
    cleaned = cleaned.replace(f'"{TIMESTAMP_PLACEHOLDER}"', f'"{iso_timestamp(now)}"')
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()

    if not cleaned.startswith("["):
        cleaned = "[" + cleaned
    if not cleaned.endswith("]"):
        cleaned = cleaned + "]"

    last_brace = cleaned.rfind("}")
    if last_brace != -1:
        cleaned = cleaned[: last_brace + 1] + "]"

    return cleaned


def parse_model_output(text: str, now: Optional[datetime] = None) -> List[Any]:
    """
    Sanitize model output and parse it as a JSON array.

    Raises:
        UnparsableModelResponse: When the repaired text is still not a JSON array.
            The sanitized text is kept on the exception for diagnostics.
    """
    sanitized = sanitize_model_output(text, now=now)
    try:
        parsed = json.loads(sanitized)
    except json.JSONDecodeError as e:
        raise UnparsableModelResponse(
            f"Model response is not valid JSON after sanitization: {e.msg} at position {e.pos}",
            sanitized_text=sanitized,
        ) from e

    # Sanitization guarantees a leading '[', so a successful parse is always a list
    return parsed
