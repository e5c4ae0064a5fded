#!/usr/bin/env python3
"""
Table Sync Widget - embeddable data grid with selection and edit outputs

Composes the grid view with a GridReconciler. The host feeds data through
set_input() and observes the three output views either as Qt signals or
through the reconciler's output channels.
"""

import logging
from typing import Any, Dict, List, Optional

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QStatusBar,
    QPlainTextEdit
)
from PyQt6.QtCore import pyqtSignal

from ..config import GridOptions
from ..engine.diagnostics import GridDiagnostics
from ..engine.reconciler import GridReconciler, GridState
from ..engine.scheduler import GenerationScheduler
from .grid_view import DataGridWidget

logger = logging.getLogger(__name__)

NOTICE_TIMEOUT_MS = 5000
NO_DATA_MESSAGE = "No data available to display"


class TableSyncWidget(QWidget):
    """Interactive grid that reports selected, edited and changed rows"""

    # Signals
    selected_rows_changed = pyqtSignal(object)   # list of row dicts
    edited_data_changed = pyqtSignal(object)
    changed_rows_changed = pyqtSignal(object)

    def __init__(self, options: Optional[GridOptions] = None,
                 diagnostics: Optional[GridDiagnostics] = None,
                 scheduler: Optional[GenerationScheduler] = None,
                 parent=None):
        super().__init__(parent)
        self.options = options or GridOptions()
        self.reconciler = GridReconciler(
            self.options,
            scheduler=scheduler,
            diagnostics=diagnostics,
            notifier=self.show_notice,
        )

        views = self.reconciler.views
        views.selected_rows.subscribe(self.selected_rows_changed.emit)
        views.edited_data.subscribe(self.edited_data_changed.emit)
        views.changed_rows.subscribe(self.changed_rows_changed.emit)

        self.init_ui()
        self.reconciler.attach_grid(self.grid)
        self.update_ui_state()

    def init_ui(self):
        """Initialize the user interface"""
        layout = QVBoxLayout(self)
        layout.setSpacing(5)

        self.create_toolbar(layout)

        # Shown instead of the grid when there is nothing to display
        self.diagnostic_label = QLabel("")
        self.diagnostic_label.setWordWrap(True)
        layout.addWidget(self.diagnostic_label)

        self.diagnostic_details = QPlainTextEdit()
        self.diagnostic_details.setReadOnly(True)
        self.diagnostic_details.setMaximumHeight(140)
        layout.addWidget(self.diagnostic_details)

        self.grid = DataGridWidget(self.options)
        self.grid.grid_ready.connect(self._on_grid_ready)
        self.grid.selection_changed.connect(self._on_selection_changed)
        self.grid.cell_value_changed.connect(self._on_cell_value_changed)
        self.grid.filter_changed.connect(self._on_filter_changed)
        self.grid.sort_changed.connect(self._on_sort_changed)
        layout.addWidget(self.grid)

        # Status bar
        self.status_bar = QStatusBar()
        self.status_label = QLabel("")
        self.status_bar.addPermanentWidget(self.status_label)
        layout.addWidget(self.status_bar)

    def create_toolbar(self, layout):
        """Create toolbar with export and column operations"""
        toolbar_layout = QHBoxLayout()

        self.export_all_btn = QPushButton("Export All")
        self.export_all_btn.clicked.connect(self.export_all)
        self.export_all_btn.setToolTip("Export displayed rows to CSV")
        toolbar_layout.addWidget(self.export_all_btn)

        self.export_selected_btn = QPushButton("Export Selected")
        self.export_selected_btn.clicked.connect(self.export_selected)
        self.export_selected_btn.setToolTip("Export selected rows to CSV")
        self.export_selected_btn.setVisible(self.options.enable_row_selection)
        toolbar_layout.addWidget(self.export_selected_btn)

        toolbar_layout.addWidget(QLabel("|"))  # Separator

        self.clear_filters_btn = QPushButton("Clear Filters")
        self.clear_filters_btn.clicked.connect(self.clear_filters)
        toolbar_layout.addWidget(self.clear_filters_btn)

        self.auto_size_btn = QPushButton("Auto-size Columns")
        self.auto_size_btn.clicked.connect(self.auto_size_columns)
        toolbar_layout.addWidget(self.auto_size_btn)

        self.reset_columns_btn = QPushButton("Reset Columns")
        self.reset_columns_btn.clicked.connect(self.reset_column_state)
        self.reset_columns_btn.setToolTip("Restore column order, width and sort")
        toolbar_layout.addWidget(self.reset_columns_btn)

        toolbar_layout.addWidget(QLabel("|"))  # Separator

        self.reload_btn = QPushButton("Reload Data")
        self.reload_btn.clicked.connect(self.reload_data)
        self.reload_btn.setToolTip("Reload from the original input, discarding edits")
        toolbar_layout.addWidget(self.reload_btn)

        toolbar_layout.addStretch()

        # Info label
        self.info_label = QLabel("")
        self.info_label.setStyleSheet("color: #666; font-style: italic;")
        toolbar_layout.addWidget(self.info_label)

        layout.addLayout(toolbar_layout)

    # ------------------------------------------------------------------
    # Host API
    # ------------------------------------------------------------------

    def set_input(self, row_data: Any, alternative_data: Any = None,
                  column_defs: Any = None) -> bool:
        """Deliver host data; returns True when it caused a (re)load"""
        loaded = self.reconciler.set_input(row_data, alternative_data, column_defs)
        if loaded:
            self.update_ui_state()
        return loaded

    @property
    def selected_rows(self) -> List[Dict[str, Any]]:
        return self.reconciler.views.selected_rows.value

    @property
    def edited_data(self) -> List[Dict[str, Any]]:
        return self.reconciler.views.edited_data.value

    @property
    def changed_rows(self) -> List[Dict[str, Any]]:
        return self.reconciler.views.changed_rows.value

    def show_notice(self, message: str):
        logger.debug("Notice: %s", message)
        self.status_bar.showMessage(message, NOTICE_TIMEOUT_MS)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def export_all(self) -> Optional[str]:
        path = self.reconciler.export_all()
        if path:
            self.show_notice(f"Exported to {path}")
        return path

    def export_selected(self) -> Optional[str]:
        path = self.reconciler.export_selected()
        if path:
            self.show_notice(f"Exported selected rows to {path}")
        return path

    def clear_filters(self):
        self.reconciler.clear_filters()
        self.update_ui_state()

    def auto_size_columns(self):
        self.reconciler.auto_size_columns()

    def reset_column_state(self):
        self.reconciler.reset_column_state()
        self.update_ui_state()

    def reload_data(self):
        self.reconciler.reload()
        self.update_ui_state()

    # ------------------------------------------------------------------
    # Grid events
    # ------------------------------------------------------------------

    def _on_grid_ready(self):
        self.reconciler.on_ready()
        self.update_ui_state()

    def _on_selection_changed(self, event):
        self.reconciler.on_selection_changed(event)
        self.update_ui_state()

    def _on_cell_value_changed(self, event):
        self.reconciler.on_cell_value_changed(event)
        self.update_ui_state()

    def _on_filter_changed(self):
        self.reconciler.on_filter_changed()
        self.update_ui_state()

    def _on_sort_changed(self, sort_model):
        self.reconciler.on_sort_changed(sort_model)
        self.update_ui_state()

    # ------------------------------------------------------------------
    # UI state
    # ------------------------------------------------------------------

    def update_ui_state(self):
        """Update UI state based on current data"""
        reconciler = self.reconciler
        has_data = reconciler.has_data
        has_input = reconciler.state != GridState.EMPTY or reconciler.error is not None

        self.grid.setVisible(has_data)
        self.export_all_btn.setEnabled(has_data)
        self.export_selected_btn.setEnabled(has_data)
        self.clear_filters_btn.setEnabled(has_data)
        self.auto_size_btn.setEnabled(has_data)
        self.reset_columns_btn.setEnabled(has_data)
        self.reload_btn.setEnabled(has_input)

        if reconciler.error is not None:
            self.diagnostic_label.setText(f"Error: {reconciler.error.message}")
            self.diagnostic_label.setStyleSheet("color: #c62828; font-weight: bold;")
            self.diagnostic_details.setPlainText(reconciler.diagnostic or "")
            self.diagnostic_label.setVisible(True)
            self.diagnostic_details.setVisible(True)
        elif not has_data:
            self.diagnostic_label.setText(NO_DATA_MESSAGE)
            self.diagnostic_label.setStyleSheet("color: #8a6d3b; font-style: italic;")
            self.diagnostic_label.setVisible(True)
            self.diagnostic_details.setVisible(False)
        else:
            self.diagnostic_label.setVisible(False)
            self.diagnostic_details.setVisible(False)

        stats = reconciler.stats
        if has_data:
            parts = [f"Total: {stats.total_rows}"]
            if stats.displayed_rows != stats.total_rows:
                parts.append(f"Displayed: {stats.displayed_rows}")
            if self.options.enable_row_selection:
                parts.append(f"Selected: {stats.selected_count}")
            if self.options.enable_editing:
                parts.append(f"Edited: {stats.edited_count}")
            self.status_label.setText(" | ".join(parts))
            modified = " (modified)" if reconciler.state == GridState.DIRTY else ""
            self.info_label.setText(
                f"{stats.total_rows} rows × {len(reconciler.columns)} columns{modified}"
            )
        else:
            self.status_label.setText("")
            self.info_label.setText("")
