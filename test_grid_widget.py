#!/usr/bin/env python3
"""
Tests for the Qt grid widgets (runs on the offscreen platform)
"""

import csv
import os
import sys
import tempfile
import unittest
from pathlib import Path

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

sys.path.insert(0, str(Path(__file__).parent))

from PyQt6.QtCore import QLocale, Qt
from PyQt6.QtWidgets import QApplication

from tablesync.config import GridOptions
from tablesync.engine.columns import infer_schema
from tablesync.engine.errors import WidgetCommandError, WidgetCommandErrorKind
from tablesync.engine.grid import CsvExportOptions, SelectionSource, SortDirection
from tablesync.engine.identity import assign_row_ids
from tablesync.engine.reconciler import EMPTY_SELECTION_NOTICE
from tablesync.engine.scheduler import GenerationScheduler, ManualTimerBackend
from tablesync.widgets import DataGridWidget, TableSyncWidget
from tablesync.widgets.grid_view import RAW_VALUE_ROLE

app = QApplication.instance() or QApplication(sys.argv)


def sample_rows():
    return [
        {"id": 1, "name": "Plasma Rifle", "price": 1200, "active": True},
        {"id": 2, "name": "Energy Cell", "price": 25, "active": False},
        {"id": 3, "name": "Med Kit", "price": 50, "active": True},
        {"id": 4, "name": "Scanner", "price": 800, "active": False},
        {"id": 5, "name": "Beacon", "price": None, "active": True},
    ]


class GridWidgetTestCase(unittest.TestCase):

    options = GridOptions(enable_editing=True)

    def setUp(self):
        QLocale.setDefault(QLocale(QLocale.Language.English, QLocale.Country.UnitedStates))
        self.temp_dir = tempfile.TemporaryDirectory()
        options = GridOptions.from_mapping({**self.options.to_dict(),
                                            "export_dir": self.temp_dir.name})
        self.grid = DataGridWidget(options)
        self.rows = sample_rows()
        self.grid.load_rows(self.rows, assign_row_ids(self.rows),
                            infer_schema(self.rows, options.enable_editing))

    def tearDown(self):
        self.grid.deleteLater()
        self.temp_dir.cleanup()

    def column(self, field):
        return self.grid.model.column_index(field)

    def displayed_ids(self):
        proxy = self.grid.page_proxy
        return [proxy.index(r, self.column("id")).data(RAW_VALUE_ROLE)
                for r in range(proxy.rowCount())]


class TestDataGridWidget(GridWidgetTestCase):

    def test_load(self):
        self.assertEqual(self.grid.displayed_row_count(), 5)
        self.assertEqual(self.grid.model.headerData(self.column("name"), Qt.Orientation.Horizontal),
                         "Name")
        self.assertEqual([n.row_id for n in self.grid.iter_nodes()], ["1", "2", "3", "4", "5"])

    def test_display_roles(self):
        model = self.grid.model
        self.assertEqual(model.index(0, self.column("price")).data(), "1,200")
        self.assertEqual(model.index(0, self.column("active")).data(), "✓")
        self.assertEqual(model.index(4, self.column("price")).data(), "")

    def test_apply_sort(self):
        self.grid.apply_sort("price", SortDirection.DESC)
        self.assertEqual(self.displayed_ids()[:4], [1, 4, 3, 2])
        self.assertEqual(self.grid.sort_model(), [{"colId": "price", "sort": "desc"}])

        self.grid.apply_sort("name", SortDirection.ASC)
        self.assertEqual(self.displayed_ids(), [5, 2, 3, 1, 4])

    def test_blank_cells_sort_first(self):
        self.grid.apply_sort("price", SortDirection.ASC)
        self.assertEqual(self.displayed_ids(), [5, 2, 3, 4, 1])

    def test_apply_sort_unknown_column(self):
        with self.assertRaises(WidgetCommandError) as ctx:
            self.grid.apply_sort("missing", SortDirection.ASC)
        self.assertEqual(ctx.exception.kind, WidgetCommandErrorKind.INVALID_SORT_COLUMN)

    def test_sort_changed_signal(self):
        received = []
        self.grid.sort_changed.connect(received.append)
        self.grid.apply_sort("name", SortDirection.DESC)
        self.assertEqual(received, [[{"colId": "name", "sort": "desc"}]])

    def test_reset_column_state(self):
        self.grid.apply_sort("price", SortDirection.DESC)
        header = self.grid.table.horizontalHeader()
        header.moveSection(0, 2)
        self.grid.reset_column_state()
        self.assertEqual(self.grid.sort_model(), [])
        self.assertEqual(self.displayed_ids(), [1, 2, 3, 4, 5])
        self.assertEqual([header.logicalIndex(v) for v in range(header.count())], [0, 1, 2, 3])

    def test_filters(self):
        changed = []
        self.grid.filter_changed.connect(lambda: changed.append(True))
        self.grid.set_column_filter("name", "e", "starts_with")
        self.assertEqual(self.grid.displayed_row_count(), 1)
        self.grid.set_column_filter("name", "")
        self.grid.search_input.setText("scan")
        self.grid.search_timer.stop()
        self.grid._apply_search()
        self.assertEqual(self.displayed_ids(), [4])
        self.grid.clear_filters()
        self.assertEqual(self.grid.displayed_row_count(), 5)
        self.assertEqual(self.grid.search_input.text(), "")
        self.assertEqual(len(changed), 4)

    def test_selection(self):
        events = []
        self.grid.selection_changed.connect(events.append)
        self.grid.select_rows(["4", "2"])
        self.assertEqual([row["id"] for row in self.grid.selected_rows()], [2, 4])
        self.assertTrue(events)
        self.assertEqual(events[-1].source, SelectionSource.USER)

    def test_reload_reports_data_change_selection(self):
        events = []
        self.grid.select_rows(["1"])
        self.grid.selection_changed.connect(events.append)
        self.grid.load_rows(self.rows, assign_row_ids(self.rows), self.grid.model.columns)
        self.assertEqual(self.grid.selected_rows(), [])
        self.assertEqual(events[-1].source, SelectionSource.ROW_DATA_CHANGED)

    def test_cell_edit(self):
        events = []
        self.grid.cell_value_changed.connect(events.append)
        index = self.grid.page_proxy.index(1, self.column("price"))
        self.assertTrue(self.grid.page_proxy.setData(index, "30", Qt.ItemDataRole.EditRole))
        self.assertEqual(self.rows[1]["price"], 30)
        self.assertEqual(len(events), 1)
        self.assertEqual((events[0].row_id, events[0].field, events[0].old_value, events[0].new_value),
                         ("2", "price", 25, 30))

    def test_unchanged_edit_is_ignored(self):
        events = []
        self.grid.cell_value_changed.connect(events.append)
        index = self.grid.model.index(0, self.column("name"))
        self.assertFalse(self.grid.model.setData(index, "Plasma Rifle"))
        self.assertEqual(events, [])

    def test_export_all(self):
        self.grid.apply_sort("price", SortDirection.DESC)
        path = self.grid.export_csv(CsvExportOptions(filename="all.csv"))
        with open(path, newline="", encoding="utf-8") as f:
            lines = list(csv.reader(f))
        self.assertEqual(lines[0], ["Id", "Name", "Price", "Active"])
        self.assertEqual(lines[1], ["1", "Plasma Rifle", "1200", "True"])
        self.assertEqual(len(lines), 6)
        self.assertEqual(lines[-1][2], "")

    def test_export_selected(self):
        self.grid.select_rows(["3"])
        path = self.grid.export_csv(CsvExportOptions(filename="selected.csv", only_selected=True))
        with open(path, newline="", encoding="utf-8") as f:
            lines = list(csv.reader(f))
        self.assertEqual(lines[1:], [["3", "Med Kit", "50", "True"]])


class TestPagination(GridWidgetTestCase):

    options = GridOptions(enable_pagination=True, page_size=2)

    def test_pages(self):
        self.assertEqual(self.grid.page_proxy.rowCount(), 2)
        self.assertEqual(self.grid.page_proxy.page_count(), 3)
        self.assertEqual(self.grid.displayed_row_count(), 5)
        self.grid.set_page(2)
        self.assertEqual(self.displayed_ids(), [5])
        self.assertFalse(self.grid.next_page_btn.isEnabled())

    def test_sort_spans_pages(self):
        self.grid.apply_sort("price", SortDirection.DESC)
        self.assertEqual(self.displayed_ids(), [1, 4])

    def test_not_editable(self):
        index = self.grid.model.index(0, self.column("name"))
        self.assertFalse(self.grid.model.flags(index) & Qt.ItemFlag.ItemIsEditable)


class TestTableSyncWidget(unittest.TestCase):

    def setUp(self):
        self.clock = ManualTimerBackend()
        self.temp_dir = tempfile.TemporaryDirectory()
        options = GridOptions(enable_editing=True, default_sort_column="name",
                              default_sort_direction="desc", export_dir=self.temp_dir.name)
        self.widget = TableSyncWidget(options, scheduler=GenerationScheduler(self.clock))

    def tearDown(self):
        self.widget.deleteLater()
        self.temp_dir.cleanup()

    def test_outputs_as_signals(self):
        edited, changed = [], []
        self.widget.edited_data_changed.connect(edited.append)
        self.widget.changed_rows_changed.connect(changed.append)

        self.assertTrue(self.widget.set_input(sample_rows()))
        self.assertEqual(len(edited[-1]), 5)

        grid = self.widget.grid
        index = grid.model.index(0, grid.model.column_index("name"))
        grid.model.setData(index, "Ion Rifle")

        self.assertEqual(changed[-1], [{"id": 1, "name": "Ion Rifle", "price": 1200, "active": True}])
        self.assertEqual(self.widget.changed_rows, changed[-1])
        self.assertIn("Edited: 1", self.widget.status_label.text())

    def test_default_sort_after_ready(self):
        self.widget.set_input(sample_rows())
        self.widget.grid.grid_ready.emit()
        self.clock.advance(200)
        self.assertEqual(self.widget.grid.sort_model(), [{"colId": "name", "sort": "desc"}])

    def test_export_selected_without_selection(self):
        self.widget.set_input(sample_rows())
        self.assertIsNone(self.widget.export_selected())
        self.assertEqual(self.widget.status_bar.currentMessage(), EMPTY_SELECTION_NOTICE)

    def test_export_all(self):
        self.widget.set_input(sample_rows())
        path = self.widget.export_all()
        self.assertTrue(Path(path).exists())
        self.assertEqual(Path(path).parent, Path(self.temp_dir.name))

    def test_selection_output(self):
        selected = []
        self.widget.selected_rows_changed.connect(selected.append)
        self.widget.set_input(sample_rows())
        self.widget.grid.select_rows(["2"])
        self.assertEqual([row["id"] for row in selected[-1]], [2])
        self.assertIn("Selected: 1", self.widget.status_label.text())

    def test_diagnostic_panel(self):
        self.widget.set_input(None)
        self.assertTrue(self.widget.grid.isHidden())
        self.assertIn("No data received from host", self.widget.diagnostic_label.text())
        self.assertIn("Raw data type: NoneType", self.widget.diagnostic_details.toPlainText())

        self.widget.set_input(sample_rows())
        self.assertFalse(self.widget.grid.isHidden())
        self.assertTrue(self.widget.diagnostic_label.isHidden())

    def test_reload_discards_edits(self):
        self.widget.set_input(sample_rows())
        grid = self.widget.grid
        grid.model.setData(grid.model.index(0, grid.model.column_index("name")), "Ion Rifle")
        self.widget.reload_data()
        self.assertEqual(self.widget.changed_rows, [])
        self.assertEqual(self.widget.edited_data, sample_rows())


if __name__ == "__main__":
    unittest.main()
