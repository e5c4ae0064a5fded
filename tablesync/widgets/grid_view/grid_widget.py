#!/usr/bin/env python3
"""
Data Grid Widget - sortable, filterable, paginated table view

Implements the commands the reconciler drives (load, sort, export, filter,
column reset) on top of a QTableView, and reports user interaction back as
Qt signals carrying the engine's event objects.
"""

import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QTableView, QPushButton, QLabel,
    QLineEdit, QComboBox, QHeaderView, QAbstractItemView
)
from PyQt6.QtCore import QItemSelectionModel, Qt, QTimer, pyqtSignal

from ...config import GridOptions
from ...engine.columns import ColumnSchema
from ...engine.errors import WidgetCommandError, WidgetCommandErrorKind
from ...engine.grid import (
    CsvExportOptions, GridNode, SelectionChangedEvent, SelectionSource, SortDirection
)
from .grid_table_model import GridFilterProxy, GridTableModel, PageProxy

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_MS = 300
DEFAULT_COLUMN_WIDTH = 120


class DataGridWidget(QWidget):
    """Table view over the reconciler's dataset"""

    # Signals
    grid_ready = pyqtSignal()
    selection_changed = pyqtSignal(object)    # SelectionChangedEvent
    cell_value_changed = pyqtSignal(object)   # CellValueChangedEvent
    filter_changed = pyqtSignal()
    sort_changed = pyqtSignal(object)         # sort model: list of {"colId", "sort"}

    def __init__(self, options: Optional[GridOptions] = None, parent=None):
        super().__init__(parent)
        self.options = options or GridOptions()
        self._loading = False
        self._ready_emitted = False

        self.model = GridTableModel(self)
        self.filter_proxy = GridFilterProxy(self)
        self.filter_proxy.setSourceModel(self.model)
        self.page_proxy = PageProxy(self.options.page_size, self)
        self.page_proxy.setSourceModel(self.filter_proxy)
        self.page_proxy.configure(self.options.enable_pagination, self.options.page_size)

        # Debounce timer for live search
        self.search_timer = QTimer(self)
        self.search_timer.setSingleShot(True)
        self.search_timer.timeout.connect(self._apply_search)

        self.model.cell_edited.connect(self.cell_value_changed.emit)

        self.init_ui()
        self.update_page_controls()

    def init_ui(self):
        """Initialize the user interface"""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(5)

        self.create_filter_bar(layout)

        self.table = QTableView()
        self.table.setModel(self.page_proxy)
        self.table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(self._selection_mode())
        self.table.setAlternatingRowColors(True)
        self.table.setWordWrap(False)
        # Header clicks sort the whole filtered dataset, not just the visible page
        self.table.setSortingEnabled(False)
        if not self.options.enable_editing:
            self.table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)

        header = self.table.horizontalHeader()
        header.setSectionResizeMode(QHeaderView.ResizeMode.Interactive)
        header.setSectionsMovable(True)
        header.setSectionsClickable(True)
        header.setSortIndicatorShown(True)
        header.setSortIndicator(-1, Qt.SortOrder.AscendingOrder)
        header.setStretchLastSection(True)
        header.setDefaultSectionSize(DEFAULT_COLUMN_WIDTH)
        header.sortIndicatorChanged.connect(self._on_sort_indicator_changed)

        self.table.selectionModel().selectionChanged.connect(self._on_selection_model_changed)
        layout.addWidget(self.table)

        self.create_page_bar(layout)

    def create_filter_bar(self, layout):
        """Search box and single-column filter"""
        filter_layout = QHBoxLayout()

        filter_layout.addWidget(QLabel("Search:"))
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search all columns...")
        self.search_input.setMaximumWidth(200)
        self.search_input.textChanged.connect(lambda _: self.search_timer.start(SEARCH_DEBOUNCE_MS))
        filter_layout.addWidget(self.search_input)

        filter_layout.addWidget(QLabel("|"))  # Separator

        filter_layout.addWidget(QLabel("Filter:"))
        self.filter_column_combo = QComboBox()
        self.filter_column_combo.setMinimumWidth(120)
        filter_layout.addWidget(self.filter_column_combo)

        self.filter_type_combo = QComboBox()
        self.filter_type_combo.addItems(["contains", "equals", "starts_with", "ends_with"])
        filter_layout.addWidget(self.filter_type_combo)

        self.filter_input = QLineEdit()
        self.filter_input.setPlaceholderText("Filter value...")
        self.filter_input.setMaximumWidth(150)
        self.filter_input.returnPressed.connect(self._apply_column_filter)
        filter_layout.addWidget(self.filter_input)

        apply_btn = QPushButton("Apply")
        apply_btn.clicked.connect(self._apply_column_filter)
        filter_layout.addWidget(apply_btn)

        filter_layout.addStretch()
        layout.addLayout(filter_layout)

    def create_page_bar(self, layout):
        """Pagination controls, hidden unless pagination is enabled"""
        self.page_bar = QWidget()
        page_layout = QHBoxLayout(self.page_bar)
        page_layout.setContentsMargins(0, 0, 0, 0)
        page_layout.addStretch()

        self.prev_page_btn = QPushButton("◀ Prev")
        self.prev_page_btn.clicked.connect(lambda: self.set_page(self.page_proxy.page - 1))
        page_layout.addWidget(self.prev_page_btn)

        self.page_label = QLabel("")
        page_layout.addWidget(self.page_label)

        self.next_page_btn = QPushButton("Next ▶")
        self.next_page_btn.clicked.connect(lambda: self.set_page(self.page_proxy.page + 1))
        page_layout.addWidget(self.next_page_btn)

        self.page_bar.setVisible(self.options.enable_pagination)
        layout.addWidget(self.page_bar)

    def _selection_mode(self) -> QAbstractItemView.SelectionMode:
        mode = self.options.selection_mode
        if mode is None:
            return QAbstractItemView.SelectionMode.NoSelection
        if mode == "single":
            return QAbstractItemView.SelectionMode.SingleSelection
        return QAbstractItemView.SelectionMode.ExtendedSelection

    # ------------------------------------------------------------------
    # Dataset
    # ------------------------------------------------------------------

    def load_rows(self, rows: Sequence[Dict[str, Any]], row_ids: Sequence[str],
                  columns: Sequence[ColumnSchema]) -> None:
        """Replace the displayed dataset; clears selection, keeps filters"""
        self._loading = True
        try:
            self.model.load(rows, row_ids, columns)
            self.page_proxy.set_page(0)
            self._refresh_filter_columns()
        finally:
            self._loading = False

        self.update_page_controls()
        # The model reset dropped any selection without notifying
        self.selection_changed.emit(SelectionChangedEvent(SelectionSource.ROW_DATA_CHANGED))

        if not self._ready_emitted and columns:
            self._ready_emitted = True
            QTimer.singleShot(0, self._emit_ready)

    def _emit_ready(self):
        logger.debug("Grid ready with %d rows", self.model.rowCount())
        self.grid_ready.emit()

    def _refresh_filter_columns(self):
        current = self.filter_column_combo.currentData()
        self.filter_column_combo.blockSignals(True)
        self.filter_column_combo.clear()
        for column in self.model.columns:
            self.filter_column_combo.addItem(column.label, column.field)
        index = self.filter_column_combo.findData(current)
        self.filter_column_combo.setCurrentIndex(max(0, index))
        self.filter_column_combo.blockSignals(False)

    def displayed_row_count(self) -> int:
        """Rows passing the current filters, across all pages"""
        return self.filter_proxy.rowCount()

    def _displayed_source_rows(self) -> List[int]:
        return [
            self.filter_proxy.mapToSource(self.filter_proxy.index(r, 0)).row()
            for r in range(self.filter_proxy.rowCount())
        ]

    def _selected_source_rows(self) -> List[int]:
        selection = self.table.selectionModel()
        if selection is None:
            return []
        rows = set()
        for index in selection.selectedRows():
            source_index = self.filter_proxy.mapToSource(self.page_proxy.mapToSource(index))
            if source_index.isValid():
                rows.add(source_index.row())
        # Display order
        order = {row: i for i, row in enumerate(self._displayed_source_rows())}
        return sorted(rows, key=lambda row: order.get(row, row))

    def selected_rows(self) -> List[Dict[str, Any]]:
        return [self.model.rows[r] for r in self._selected_source_rows()]

    def select_rows(self, row_ids: Sequence[str]) -> None:
        """Select rows by identity on the current page"""
        wanted = set(row_ids)
        selection = self.table.selectionModel()
        selection.clearSelection()
        for r in range(self.page_proxy.rowCount()):
            index = self.page_proxy.index(r, 0)
            source = self.filter_proxy.mapToSource(self.page_proxy.mapToSource(index))
            if self.model.row_ids[source.row()] in wanted:
                selection.select(index, QItemSelectionModel.SelectionFlag.Select
                                 | QItemSelectionModel.SelectionFlag.Rows)

    def iter_nodes(self) -> Iterator[GridNode]:
        return self.model.nodes()

    def _on_selection_model_changed(self, selected, deselected):
        source = SelectionSource.ROW_DATA_CHANGED if self._loading else SelectionSource.USER
        self.selection_changed.emit(SelectionChangedEvent(source))

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    def sort_model(self) -> List[Dict[str, str]]:
        column = self.filter_proxy.sortColumn()
        if column < 0 or column >= len(self.model.columns):
            return []
        direction = "asc" if self.filter_proxy.sortOrder() == Qt.SortOrder.AscendingOrder else "desc"
        return [{"colId": self.model.columns[column].field, "sort": direction}]

    def _sort_by(self, column: int, order: Qt.SortOrder) -> None:
        self.filter_proxy.sort(column, order)
        self.page_proxy.refresh()
        self.update_page_controls()
        self.sort_changed.emit(self.sort_model())

    def _on_sort_indicator_changed(self, column: int, order: Qt.SortOrder):
        self._sort_by(column, order)

    def apply_sort(self, field: str, direction: SortDirection) -> None:
        column = self.model.column_index(field)
        if column < 0:
            raise WidgetCommandError(WidgetCommandErrorKind.INVALID_SORT_COLUMN,
                                     f"Unknown sort column: {field}")
        order = Qt.SortOrder.AscendingOrder if direction == SortDirection.ASC \
            else Qt.SortOrder.DescendingOrder

        header = self.table.horizontalHeader()
        header.blockSignals(True)
        header.setSortIndicator(column, order)
        header.blockSignals(False)
        self._sort_by(column, order)

    def reset_column_state(self) -> None:
        """Restore column order, widths, visibility and the unsorted row order"""
        header = self.table.horizontalHeader()
        for logical in range(header.count()):
            visual = header.visualIndex(logical)
            if visual != logical:
                header.moveSection(visual, logical)
            header.setSectionHidden(logical, False)
            header.resizeSection(logical, header.defaultSectionSize())

        header.blockSignals(True)
        header.setSortIndicator(-1, Qt.SortOrder.AscendingOrder)
        header.blockSignals(False)
        self._sort_by(-1, Qt.SortOrder.AscendingOrder)

    def auto_size_columns(self) -> None:
        self.table.resizeColumnsToContents()

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def _apply_search(self):
        self.filter_proxy.set_global_search(self.search_input.text())
        self._filters_updated()

    def _apply_column_filter(self):
        field = self.filter_column_combo.currentData()
        if not field:
            return
        self.set_column_filter(field, self.filter_input.text(),
                               self.filter_type_combo.currentText())

    def set_column_filter(self, field: str, value: str, filter_type: str = "contains") -> None:
        self.filter_proxy.set_column_filter(field, value, filter_type)
        self._filters_updated()

    def clear_filters(self) -> None:
        self.search_timer.stop()
        self.search_input.blockSignals(True)
        self.search_input.clear()
        self.search_input.blockSignals(False)
        self.filter_input.clear()
        self.filter_proxy.clear_filters()
        self._filters_updated()

    def _filters_updated(self):
        self.page_proxy.refresh()
        self.update_page_controls()
        self.filter_changed.emit()

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def set_page(self, page: int) -> None:
        self.page_proxy.set_page(page)
        self.update_page_controls()

    def update_page_controls(self):
        page_count = self.page_proxy.page_count()
        page = self.page_proxy.page
        self.page_label.setText(f"Page {page + 1} of {page_count}")
        self.prev_page_btn.setEnabled(page > 0)
        self.next_page_btn.setEnabled(page < page_count - 1)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _visible_columns(self) -> List[ColumnSchema]:
        header = self.table.horizontalHeader()
        logical = [header.logicalIndex(v) for v in range(header.count())]
        return [self.model.columns[i] for i in logical
                if 0 <= i < len(self.model.columns) and not header.isSectionHidden(i)]

    def export_csv(self, options: CsvExportOptions) -> str:
        """Write displayed (or selected) rows to CSV in the export directory"""
        if options.only_selected:
            source_rows = self._selected_source_rows()
        else:
            source_rows = self._displayed_source_rows()
        columns = self._visible_columns()

        export_dir = Path(self.options.export_dir).expanduser()
        export_dir.mkdir(parents=True, exist_ok=True)
        path = export_dir / options.filename

        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow([c.label for c in columns])
            for r in source_rows:
                row = self.model.rows[r]
                writer.writerow(["" if row.get(c.field) is None else row.get(c.field)
                                 for c in columns])

        logger.debug("Wrote %d rows to %s", len(source_rows), path)
        return str(path)
