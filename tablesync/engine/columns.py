"""
Column Inference Engine - schema-agnostic column detection

Derives a column schema (kind, label, formatting and parsing rules) from
the loaded rows alone, without making assumptions about the dataset.
"""

import json
import math
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from dateutil import parser as dateparser
from PyQt6.QtCore import QDate, QLocale

logger = logging.getLogger(__name__)

DATE_SAMPLE_SIZE = 3
MIN_PARSEABLE_DATE_LENGTH = 5

DATE_PATTERNS = (
    re.compile(r"^\d{4}-\d{2}-\d{2}"),        # ISO date
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}"),    # MM/DD/YYYY
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}"),    # MM-DD-YYYY
    re.compile(r"^\d{4}/\d{1,2}/\d{1,2}"),    # YYYY/MM/DD
)

URL_PATTERN = re.compile(
    r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"
)

TRUE_GLYPH = "✓"
FALSE_GLYPH = "✗"
LINK_TEXT = "Open"
PLACEHOLDER = "—"

BOOLEAN_VALUES = {
    "true": True, "yes": True, "on": True, "1": True,
    "false": False, "no": False, "off": False, "0": False,
}


class ColumnKind(Enum):
    """Detected column data types"""
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    URL = "url"
    TEXT = "text"


def header_label(key: str) -> str:
    """Turn a field key into a header label ("createdAt" -> "Created At")"""
    words = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", str(key)).replace("_", " ")
    words = " ".join(words.split())
    if not words:
        return str(key)
    return words[0].upper() + words[1:]


def is_valid_url(value: Any) -> bool:
    return isinstance(value, str) and URL_PATTERN.match(value) is not None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _looks_numeric(text: str) -> bool:
    try:
        float(text.replace(",", ""))
        return True
    except ValueError:
        return False


def parse_date(value: Any) -> Optional[datetime]:
    """Best-effort conversion of ``value`` to a datetime, None when impossible"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return dateparser.parse(value)
    except (ValueError, OverflowError):
        return None


def looks_like_date(value: Any) -> bool:
    """Check a single value against the recognized date formats"""
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    if any(pattern.match(value) for pattern in DATE_PATTERNS):
        return True
    if len(value) <= MIN_PARSEABLE_DATE_LENGTH or _looks_numeric(value):
        return False
    return parse_date(value) is not None


def is_date_column(rows: Sequence[Mapping], key: str) -> bool:
    """A strict majority of the sampled non-null values must look like dates"""
    sample = [row.get(key) for row in rows[:DATE_SAMPLE_SIZE] if isinstance(row, Mapping)]
    values = [v for v in sample if v is not None]
    if not values:
        return False
    date_count = sum(1 for v in values if looks_like_date(v))
    return date_count * 2 > len(values)


def _format_number(value: Any) -> str:
    locale = QLocale()
    try:
        if isinstance(value, int):
            return locale.toString(value)
        text = repr(value)
        if not math.isfinite(value) or "e" in text:
            return text
        decimals = len(text.split(".", 1)[1]) if "." in text else 0
        return locale.toString(value, "f", decimals)
    except (OverflowError, TypeError):
        return str(value)


def _format_date(value: Any) -> str:
    parsed = parse_date(value)
    if parsed is None:
        return str(value)
    return QLocale().toString(QDate(parsed.year, parsed.month, parsed.day),
                              QLocale.FormatType.ShortFormat)


def _format_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


@dataclass
class ColumnSchema:
    """Metadata and cell rules for one grid column"""
    field: str
    label: str
    kind: ColumnKind = ColumnKind.TEXT
    editable: bool = False
    sortable: bool = True
    definition: Optional[Dict[str, Any]] = None

    @property
    def filter_type(self) -> str:
        if self.kind in (ColumnKind.NUMBER, ColumnKind.DATE):
            return self.kind.value
        return "text"

    def display_text(self, value: Any) -> str:
        """Text shown in the cell for ``value``"""
        if self.kind == ColumnKind.URL:
            return LINK_TEXT if is_valid_url(value) else PLACEHOLDER
        if value is None:
            return ""
        if self.kind == ColumnKind.BOOLEAN:
            return TRUE_GLYPH if value else FALSE_GLYPH
        if self.kind == ColumnKind.NUMBER and _is_number(value):
            return _format_number(value)
        if self.kind == ColumnKind.DATE:
            return _format_date(value)
        return _format_text(value)

    def parse_value(self, value: Any) -> Any:
        """Convert an edited value back to the column's type, passing it through when it does not fit"""
        if value is None or not isinstance(value, str):
            return value
        text = value.strip()
        if self.kind == ColumnKind.DATE:
            parsed = parse_date(text)
            return parsed if parsed is not None else value
        if self.kind == ColumnKind.NUMBER:
            try:
                return int(text)
            except ValueError:
                pass
            try:
                return float(text.replace(",", ""))
            except ValueError:
                return value
        if self.kind == ColumnKind.BOOLEAN:
            return BOOLEAN_VALUES.get(text.lower(), value)
        return value


def infer_column(rows: Sequence[Mapping], key: str, enable_editing: bool = False) -> ColumnSchema:
    """Infer the schema of a single field from the first row and a date sample"""
    value = rows[0].get(key)
    if isinstance(value, bool):
        kind = ColumnKind.BOOLEAN
    elif _is_number(value):
        kind = ColumnKind.NUMBER
    elif is_date_column(rows, key):
        kind = ColumnKind.DATE
    elif is_valid_url(value):
        kind = ColumnKind.URL
    else:
        kind = ColumnKind.TEXT

    return ColumnSchema(
        field=key,
        label=header_label(key),
        kind=kind,
        editable=enable_editing and kind != ColumnKind.URL,
    )


def infer_schema(rows: Sequence[Mapping], enable_editing: bool = False) -> List[ColumnSchema]:
    """
    Derive the column schema of a canonical row list.

    Only the first row's keys become columns; extra fields in later rows are
    not rendered and missing ones render blank.
    """
    if not rows or not isinstance(rows[0], Mapping):
        return []

    columns = []
    for key in rows[0].keys():
        try:
            columns.append(infer_column(rows, key, enable_editing))
        except Exception as e:
            logger.error("Error creating column for %s: %s", key, e)
            columns.append(ColumnSchema(field=key, label=str(key), editable=enable_editing))
    logger.debug("Inferred %d columns: %s", len(columns),
                 {c.field: c.kind.value for c in columns})
    return columns


def schema_from_definitions(definitions: Sequence[Mapping], enable_editing: bool = False) -> List[ColumnSchema]:
    """Use host-supplied column definitions verbatim, skipping inference"""
    columns = []
    for definition in definitions:
        if not isinstance(definition, Mapping):
            logger.warning("Ignoring column definition that is not an object: %r", definition)
            continue
        key = definition.get("field") or definition.get("colId")
        if not key:
            logger.warning("Ignoring column definition without a field: %r", definition)
            continue
        try:
            kind = ColumnKind(definition.get("cellDataType", "text"))
        except ValueError:
            kind = ColumnKind.TEXT
        columns.append(ColumnSchema(
            field=key,
            label=definition.get("headerName") or header_label(key),
            kind=kind,
            editable=bool(definition.get("editable", enable_editing)),
            sortable=bool(definition.get("sortable", True)),
            definition=dict(definition),
        ))
    return columns
