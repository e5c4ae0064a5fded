#!/usr/bin/env python3
"""
Grid Table Model - Qt item models over a canonical row list

Exposes the reconciler's rows to a QTableView, applies the inferred column
rules for display and editing, and layers filtering, type-aware sorting and
pagination on top through proxy models.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Sequence

from PyQt6.QtCore import (
    QAbstractTableModel, QModelIndex, QSortFilterProxyModel, Qt, pyqtSignal
)
from PyQt6.QtGui import QColor

from ...engine.columns import ColumnKind, ColumnSchema, is_valid_url, parse_date
from ...engine.grid import CellValueChangedEvent, GridNode

# Raw (unformatted) cell value, used for sorting
RAW_VALUE_ROLE = Qt.ItemDataRole.UserRole + 1

LINK_COLOR = "#1976d2"
PLACEHOLDER_COLOR = "#999999"


def _edit_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class GridTableModel(QAbstractTableModel):
    """Table model over the loaded rows; edits are applied to the row dicts in place"""

    cell_edited = pyqtSignal(object)  # CellValueChangedEvent

    def __init__(self, parent=None):
        super().__init__(parent)
        self.rows: List[Dict[str, Any]] = []
        self.row_ids: List[str] = []
        self.columns: List[ColumnSchema] = []

    def load(self, rows: Sequence[Dict[str, Any]], row_ids: Sequence[str],
             columns: Sequence[ColumnSchema]) -> None:
        """Replace the whole dataset"""
        self.beginResetModel()
        self.rows = list(rows)
        self.row_ids = list(row_ids)
        self.columns = list(columns)
        self.endResetModel()

    def rowCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self.rows)

    def columnCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self.columns)

    def column_index(self, field: str) -> int:
        for i, column in enumerate(self.columns):
            if column.field == field:
                return i
        return -1

    def raw_value(self, row: int, column: int) -> Any:
        return self.rows[row].get(self.columns[column].field)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:
        if not index.isValid():
            return None
        column = self.columns[index.column()]
        value = self.rows[index.row()].get(column.field)

        if role == Qt.ItemDataRole.DisplayRole:
            return column.display_text(value)
        if role == Qt.ItemDataRole.EditRole:
            return _edit_text(value)
        if role == RAW_VALUE_ROLE:
            return value
        if role == Qt.ItemDataRole.ToolTipRole and column.kind == ColumnKind.URL:
            return value if is_valid_url(value) else None
        if role == Qt.ItemDataRole.ForegroundRole and column.kind == ColumnKind.URL:
            return QColor(LINK_COLOR if is_valid_url(value) else PLACEHOLDER_COLOR)
        if role == Qt.ItemDataRole.TextAlignmentRole:
            if column.kind == ColumnKind.NUMBER:
                return Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter
            if column.kind == ColumnKind.BOOLEAN:
                return Qt.AlignmentFlag.AlignCenter
        return None

    def flags(self, index: QModelIndex) -> Qt.ItemFlag:
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        flags = Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable
        if self.columns[index.column()].editable:
            flags |= Qt.ItemFlag.ItemIsEditable
        return flags

    def setData(self, index: QModelIndex, value: Any, role: int = Qt.ItemDataRole.EditRole) -> bool:
        if not index.isValid() or role != Qt.ItemDataRole.EditRole:
            return False
        column = self.columns[index.column()]
        if not column.editable:
            return False

        row = self.rows[index.row()]
        old_value = row.get(column.field)
        new_value = column.parse_value(value)
        if new_value == old_value:
            return False

        row[column.field] = new_value
        self.dataChanged.emit(index, index, [Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.EditRole])
        self.cell_edited.emit(CellValueChangedEvent(
            row_id=self.row_ids[index.row()],
            field=column.field,
            old_value=old_value,
            new_value=new_value,
        ))
        return True

    def headerData(self, section: int, orientation: Qt.Orientation,
                   role: int = Qt.ItemDataRole.DisplayRole) -> Any:
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            if 0 <= section < len(self.columns):
                return self.columns[section].label
            return None
        return str(section + 1)

    def node_at(self, row: int) -> GridNode:
        return GridNode(row_id=self.row_ids[row], data=self.rows[row])

    def nodes(self) -> Iterator[GridNode]:
        """Every loaded row in load order, regardless of sort or filter"""
        for row in range(len(self.rows)):
            yield self.node_at(row)


class ColumnFilter:
    """Represents a filter for a specific column"""

    def __init__(self, column_name: str, value: str = "", filter_type: str = "contains"):
        self.column_name = column_name
        self.filter_type = filter_type  # "contains", "equals", "starts_with", "ends_with"
        self.value = value
        self.case_sensitive = False
        self.enabled = True

    def matches(self, row: Dict[str, Any]) -> bool:
        """Check if a row matches this filter"""
        if not self.enabled or not self.value:
            return True

        cell_value = _edit_text(row.get(self.column_name))
        filter_value = self.value

        if not self.case_sensitive:
            cell_value = cell_value.lower()
            filter_value = filter_value.lower()

        if self.filter_type == "contains":
            return filter_value in cell_value
        elif self.filter_type == "equals":
            return cell_value == filter_value
        elif self.filter_type == "starts_with":
            return cell_value.startswith(filter_value)
        elif self.filter_type == "ends_with":
            return cell_value.endswith(filter_value)

        return True


def _sort_key(kind: ColumnKind, value: Any):
    if kind == ColumnKind.DATE:
        parsed = parse_date(value)
        if parsed is not None:
            return (1, parsed.replace(tzinfo=None))
    elif kind in (ColumnKind.NUMBER, ColumnKind.BOOLEAN):
        if isinstance(value, (int, float)):
            return (1, value)
    return (2, _edit_text(value).casefold())


class GridFilterProxy(QSortFilterProxyModel):
    """Global search, per-column filters and type-aware sorting"""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.column_filters: Dict[str, ColumnFilter] = {}
        self.global_search_text = ""
        self.setSortRole(RAW_VALUE_ROLE)

    def grid_model(self) -> GridTableModel:
        return self.sourceModel()

    def set_global_search(self, text: str) -> None:
        self.global_search_text = text or ""
        self.invalidateFilter()

    def set_column_filter(self, field: str, value: str, filter_type: str = "contains") -> None:
        if value:
            self.column_filters[field] = ColumnFilter(field, value, filter_type)
        else:
            self.column_filters.pop(field, None)
        self.invalidateFilter()

    def clear_filters(self) -> None:
        self.column_filters.clear()
        self.global_search_text = ""
        self.invalidateFilter()

    def has_active_filters(self) -> bool:
        return bool(self.global_search_text) or any(
            f.enabled and f.value for f in self.column_filters.values()
        )

    def filterAcceptsRow(self, source_row: int, source_parent: QModelIndex) -> bool:
        model = self.grid_model()
        if model is None or source_row >= len(model.rows):
            return True
        row = model.rows[source_row]

        if self.global_search_text:
            needle = self.global_search_text.lower()
            if not any(needle in _edit_text(row.get(c.field)).lower() for c in model.columns):
                return False

        return all(f.matches(row) for f in self.column_filters.values())

    def lessThan(self, left: QModelIndex, right: QModelIndex) -> bool:
        model = self.grid_model()
        kind = model.columns[left.column()].kind
        left_value = model.raw_value(left.row(), left.column())
        right_value = model.raw_value(right.row(), right.column())

        # Blank cells sort first
        if left_value is None or right_value is None:
            return left_value is None and right_value is not None

        left_key = _sort_key(kind, left_value)
        right_key = _sort_key(kind, right_value)
        try:
            return left_key < right_key
        except TypeError:
            return str(left_key[1]) < str(right_key[1])


class PageProxy(QSortFilterProxyModel):
    """Shows one page of the (already sorted and filtered) source rows"""

    def __init__(self, page_size: int = 50, parent=None):
        super().__init__(parent)
        self.enabled = False
        self.page_size = max(1, page_size)
        self.page = 0

    def configure(self, enabled: bool, page_size: int) -> None:
        self.enabled = enabled
        self.page_size = max(1, page_size)
        self.page = 0
        self.invalidateFilter()

    def page_count(self) -> int:
        source = self.sourceModel()
        total = source.rowCount() if source is not None else 0
        if not self.enabled or total == 0:
            return 1
        return (total + self.page_size - 1) // self.page_size

    def set_page(self, page: int) -> None:
        self.page = min(max(0, page), self.page_count() - 1)
        self.invalidateFilter()

    def refresh(self) -> None:
        """Re-run paging after the source was re-sorted or re-filtered"""
        self.page = min(self.page, self.page_count() - 1)
        self.invalidateFilter()

    def filterAcceptsRow(self, source_row: int, source_parent: QModelIndex) -> bool:
        if not self.enabled:
            return True
        start = self.page * self.page_size
        return start <= source_row < start + self.page_size
