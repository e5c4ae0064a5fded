"""
Identity Resolver - stable row keys across sorts, filters and re-renders
"""

import json
import logging
import random
import time
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence

from .errors import SerializationError

logger = logging.getLogger(__name__)

ID_FIELDS = ("id", "_id")
HASH_PREFIX_LENGTH = 20


def stringify_id(value: Any) -> str:
    """Render an id value the way hosts print it ("7" for 7.0, "true" for True)"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def serialize_row(row: Any) -> str:
    """Serialize a row to JSON, raising SerializationError when impossible"""
    try:
        return json.dumps(row, default=str, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(f"Row cannot be serialized: {e}") from e


def resolve_row_id(row: Any, position: Optional[int] = None) -> str:
    """
    Resolve the identity of ``row``. First match wins:

        1. the ``id`` field, when present and not None
        2. the ``_id`` field, when present and not None
        3. ``row-<position>`` when a position is supplied
        4. a key built from the serialized length and prefix of the row
        5. a time/random key when the row cannot be serialized

    The last strategy is not deterministic; callers that can supply a
    position never reach it.
    """
    if isinstance(row, Mapping):
        for key in ID_FIELDS:
            value = row.get(key)
            if value is not None:
                return stringify_id(value)

    if position is not None:
        return f"row-{position}"

    try:
        text = serialize_row(row)
        return f"row-hash-{len(text)}-{text[:HASH_PREFIX_LENGTH]}"
    except SerializationError as e:
        logger.warning("Falling back to unstable row identity: %s", e)
        return f"row-{time.time_ns()}-{random.random()}"


def assign_row_ids(rows: Sequence[Any]) -> List[str]:
    """Resolve identities for a freshly loaded dataset, keeping them unique"""
    row_ids: List[str] = []
    seen: Dict[str, int] = {}
    for position, row in enumerate(rows):
        row_id = resolve_row_id(row, position)
        if row_id in seen:
            seen[row_id] += 1
            duplicate = row_id
            row_id = f"{row_id}#{seen[duplicate]}"
            while row_id in seen:
                seen[duplicate] += 1
                row_id = f"{duplicate}#{seen[duplicate]}"
            logger.warning("Duplicate row identity %r at position %d, using %r",
                           duplicate, position, row_id)
        seen[row_id] = 0
        row_ids.append(row_id)
    return row_ids
