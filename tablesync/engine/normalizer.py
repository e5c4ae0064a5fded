"""
Format Normalizer - turns a value of unknown shape into a canonical row list

Hosts hand over query results in several shapes: a bare list of records, a
response object with a ``data`` or ``results`` list, or a single record.
This module accepts all of them without making assumptions about the
fields the rows carry.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .errors import NormalizationError, NormalizationErrorKind

logger = logging.getLogger(__name__)

Row = Mapping
RowSequence = List[Any]

WRAPPER_KEYS = ("data", "results")
SAMPLE_LENGTH = 200


@dataclass
class NormalizationResult:
    """Outcome of normalize(): the canonical rows or a classified error"""
    rows: RowSequence = field(default_factory=list)
    error: Optional[NormalizationError] = None
    shape: str = "unknown"

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> RowSequence:
        """Return the rows or raise the normalization error"""
        if self.error is not None:
            raise self.error
        return self.rows


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _failure(kind: NormalizationErrorKind, message: str, value: Any,
             rows: Optional[RowSequence] = None, shape: str = "unknown") -> NormalizationResult:
    logger.warning("[DataProcessing] %s", message)
    return NormalizationResult(
        rows=list(rows) if rows is not None else [],
        error=NormalizationError(kind, message, value),
        shape=shape,
    )


def normalize(value: Any) -> NormalizationResult:
    """
    Normalize ``value`` into a list of row mappings.

    Accepted shapes, first match wins:
        - list/tuple of rows (used directly)
        - mapping with a ``data`` list (unwrapped)
        - mapping with a ``results`` list (unwrapped)
        - any other mapping (wrapped into a one-element list)

    Anything else fails with UNSUPPORTED_SHAPE. An empty sequence fails with
    EMPTY_DATASET; a sequence holding non-mapping elements fails with
    INVALID_ROW_TYPE and still carries the sequence for diagnostics.
    """
    if _is_sequence(value):
        rows, shape = list(value), "sequence"
    elif isinstance(value, Mapping):
        rows, shape = None, "object"
        for key in WRAPPER_KEYS:
            if key in value and _is_sequence(value[key]):
                rows, shape = list(value[key]), key
                break
        if rows is None:
            rows = [value]
    elif value is None:
        return _failure(NormalizationErrorKind.UNSUPPORTED_SHAPE,
                        "No data received from host", value)
    else:
        return _failure(NormalizationErrorKind.UNSUPPORTED_SHAPE,
                        f"Invalid data format received: {type(value).__name__}", value)

    if not rows:
        return _failure(NormalizationErrorKind.EMPTY_DATASET, "No data available",
                        value, shape=shape)

    invalid = [row for row in rows if not isinstance(row, Mapping)]
    if invalid:
        return _failure(
            NormalizationErrorKind.INVALID_ROW_TYPE,
            f"Found {len(invalid)} invalid rows that are not objects",
            value, rows=rows, shape=shape,
        )

    logger.debug("[DataProcessing] Normalized %d rows from %s input", len(rows), shape)
    return NormalizationResult(rows=rows, shape=shape)


def select_source(row_data: Any, alternative_data: Any = None) -> Any:
    """Pick the alternative input only when the primary one is absent or empty"""
    primary_empty = row_data is None or (_is_sequence(row_data) and len(row_data) == 0)
    if primary_empty and _is_sequence(alternative_data) and len(alternative_data) > 0:
        logger.debug("[DataProcessing] Using alternative data source")
        return alternative_data
    return row_data


def _sample(value: Any) -> str:
    try:
        text = json.dumps(value, indent=2, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    if len(text) > SAMPLE_LENGTH:
        return text[:SAMPLE_LENGTH] + "..."
    return text


def describe_value(value: Any, rows: Optional[RowSequence] = None) -> str:
    """Build the diagnostic text shown when an input could not be loaded"""
    lines = [f"Raw data type: {type(value).__name__}"]
    is_sequence = _is_sequence(rows if rows is not None else value)
    target = rows if rows is not None else value
    lines.append(f"Is array: {'Yes' if is_sequence else 'No'}")
    lines.append(f"Length: {len(target) if is_sequence else 'N/A'}")
    if is_sequence and target and isinstance(target[0], Mapping):
        lines.append(f"First row keys: {', '.join(str(k) for k in target[0].keys())}")
    lines.append(f"Raw data sample: {_sample(value) if value is not None else 'undefined'}")
    return "\n".join(lines)
