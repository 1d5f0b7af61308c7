"""
Opaque pagination cursor: base64 of the JSON array of the last hit's sort values.

A cursor is only meaningful under the sort clauses that minted it. Tokens
that fail to decode, deeply nested payloads included, are treated as absent
so the search restarts from the first page instead of failing the request.
"""

from __future__ import annotations

import base64
import json
import math
from collections.abc import Sequence
from typing import Any, Optional

import structlog

log = structlog.get_logger()


def encode_cursor(sort_values: Sequence[Any]) -> str:
    payload = json.dumps(list(sort_values), separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def _is_sort_value(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool, int)):
        return True
    return isinstance(value, float) and math.isfinite(value)


def decode_cursor(
    token: Optional[str], *, sort_length: Optional[int] = None
) -> Optional[list[Any]]:
    """Decode ``token`` into ``search_after`` values, or None when unusable.

    ``sort_length`` is the number of sort clauses of the current query; a
    cursor of a different length belongs to another sort and is ignored.
    """
    if not token:
        return None
    try:
        decoded = json.loads(base64.b64decode(token).decode("utf-8"))
    except (ValueError, RecursionError) as exc:
        log.warning("search_cursor.invalid", reason=str(exc))
        return None

    if not isinstance(decoded, list) or not decoded:
        log.warning("search_cursor.invalid", reason="payload is not a non-empty array")
        return None
    if not all(_is_sort_value(value) for value in decoded):
        log.warning("search_cursor.invalid", reason="payload holds non-scalar values")
        return None
    if sort_length is not None and len(decoded) != sort_length:
        log.warning(
            "search_cursor.sort_mismatch",
            cursor_length=len(decoded),
            sort_length=sort_length,
        )
        return None
    return decoded
