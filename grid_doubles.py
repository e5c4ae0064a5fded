#!/usr/bin/env python3
"""
Test doubles for the grid widget interface
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence, Set

from tablesync.engine.columns import ColumnSchema
from tablesync.engine.errors import WidgetCommandError, WidgetCommandErrorKind
from tablesync.engine.grid import (
    CellValueChangedEvent, CsvExportOptions, GridNode, SortDirection
)


class FakeGrid:
    """In-memory grid that records the commands it receives"""

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.rows: List[Dict[str, Any]] = []
        self.row_ids: List[str] = []
        self.columns: List[ColumnSchema] = []
        self.selected_ids: List[str] = []
        self.displayed: Optional[int] = None
        self.sorts: List[tuple] = []
        self.exports: List[CsvExportOptions] = []
        self.calls: List[str] = []
        self.fail_on = set(fail_on or ())

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    def load_rows(self, rows: Sequence[Dict[str, Any]], row_ids: Sequence[str],
                  columns: Sequence[ColumnSchema]) -> None:
        self._call("load_rows")
        self.rows = list(rows)
        self.row_ids = list(row_ids)
        self.columns = list(columns)
        self.selected_ids = []
        self.displayed = None

    def displayed_row_count(self) -> int:
        self._call("displayed_row_count")
        return len(self.rows) if self.displayed is None else self.displayed

    def selected_rows(self) -> List[Dict[str, Any]]:
        self._call("selected_rows")
        return [row for row_id, row in zip(self.row_ids, self.rows) if row_id in self.selected_ids]

    def iter_nodes(self) -> Iterator[GridNode]:
        self._call("iter_nodes")
        for row_id, row in zip(self.row_ids, self.rows):
            yield GridNode(row_id=row_id, data=row)

    def apply_sort(self, field: str, direction: SortDirection) -> None:
        self._call("apply_sort")
        if field not in [c.field for c in self.columns]:
            raise WidgetCommandError(WidgetCommandErrorKind.INVALID_SORT_COLUMN,
                                     f"Unknown sort column: {field}")
        self.sorts.append((field, direction))

    def reset_column_state(self) -> None:
        self._call("reset_column_state")
        self.sorts.clear()

    def export_csv(self, options: CsvExportOptions) -> str:
        self._call("export_csv")
        self.exports.append(options)
        return f"/tmp/{options.filename}"

    def clear_filters(self) -> None:
        self._call("clear_filters")
        self.displayed = None

    def auto_size_columns(self) -> None:
        self._call("auto_size_columns")

    # Helpers driving the double like a user would

    def select(self, row_ids: Sequence[str]) -> None:
        self.selected_ids = list(row_ids)

    def edit(self, row_id: str, field: str, value: Any) -> CellValueChangedEvent:
        row = self.rows[self.row_ids.index(row_id)]
        old_value = row.get(field)
        row[field] = value
        return CellValueChangedEvent(row_id=row_id, field=field,
                                     old_value=old_value, new_value=value)
